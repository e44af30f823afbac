"""
Core business logic for content archiving.

This module is framework-agnostic - it doesn't import FastAPI, httpx,
or boto3. The pipeline talks to its collaborators through protocols,
so the fetch client and the object store can be swapped independently.
"""

"""
Content Archiver - a gated relay that archives remote content into object storage.

This package contains the complete application:
- core: Framework-agnostic archive pipeline
- infrastructure: External service integrations (HTTP fetch, S3 storage)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"

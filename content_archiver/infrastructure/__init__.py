"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- http: Outbound content fetching (httpx)
- storage: S3-compatible object storage (boto3)

These wrappers implement the protocols declared by the core pipeline.
"""

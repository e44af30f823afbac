"""
Archive endpoint.

POST /archive fetches a remote source and streams it into the bucket
under a caller-chosen key. Flow:
1. Bearer token is checked (dependency, before anything else)
2. Source is fetched and validated (must answer 200)
3. Body is relayed into a single streamed PUT
4. Public location is composed from configuration and the key

Failures come back as 400 with {"error": <kind>}; see main.py for the
exception handlers.
"""

import logging
from typing import Literal

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator

from ...core.archive.models import ArchiveRequest
from ..dependencies import ArchiverDep, AuthenticatedPrincipalDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ArchiveRequestBody(BaseModel):
    """Request to archive one remote source."""
    source: str = Field(description="Absolute URL to fetch")
    suffix: str = Field(description="Object key to store the content under")
    public: bool = Field(
        description="Accepted for compatibility. Archived objects are always public-read."
    )

    @field_validator("suffix")
    @classmethod
    def _check_suffix(cls, value: str) -> str:
        # Keys are stored verbatim; reject the ones a URL client would rewrite
        if not value:
            raise ValueError("suffix must not be empty")
        if value.startswith("/"):
            raise ValueError("suffix must not start with '/'")
        if any(segment in ("", ".", "..") for segment in value.split("/")):
            raise ValueError("suffix must not contain empty, '.' or '..' segments")
        return value


class ArchiveResponse(BaseModel):
    """Where the archived content can be read."""
    location: str = Field(description="Public URL of the archived object")


class ErrorInfo(BaseModel):
    """Body of a failed archive request."""
    error: Literal["ContentFetchFailed", "ContentUploadFailed", "InvalidConfiguration"]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/archive",
    response_model=ArchiveResponse,
    status_code=status.HTTP_200_OK,
    summary="Archive a remote source",
    responses={
        400: {
            "description": "Fetch, upload or location resolution failed, or the request was rejected",
            "model": ErrorInfo,
        }
    },
)
async def archive_content(
    principal: AuthenticatedPrincipalDep,
    body: ArchiveRequestBody,
    archiver: ArchiverDep,
) -> ArchiveResponse:
    """
    Fetch `source` and store it under `suffix`.

    The body is streamed straight from the source into the object store.
    """
    logger.info(
        "Archive requested",
        extra={"source": body.source, "key": body.suffix, "public": body.public}
    )

    result = await archiver.archive(
        ArchiveRequest(source=body.source, suffix=body.suffix, public=body.public)
    )

    return ArchiveResponse(location=result.location)

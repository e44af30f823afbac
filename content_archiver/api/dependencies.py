"""
FastAPI dependency injection.

Dependencies hand route handlers the process-wide ServiceContext and the
services built on it. The context is created once in the application
lifespan and stored on app.state; handlers only ever borrow it.

Authentication is a dependency too, so it is resolved before the handler
body runs and before any outbound request is made.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.archive.pipeline import Archiver, ServiceContext

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Raw header access; the prefix is checked by hand because it must match exactly
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


class InvalidCredentials(Exception):
    """
    Raised when the bearer token is missing or wrong.

    Rendered as a bare 400 so callers cannot tell which check failed.
    """
    pass


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Marker that the request passed the bearer check. Carries no identity."""
    pass


# ---------------------------------------------------------------------------
# Service Context
# ---------------------------------------------------------------------------

def get_service_context(request: Request) -> ServiceContext:
    """Borrow the ServiceContext built at startup."""
    return request.app.state.service_context


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def is_valid_bearer(header_value: Optional[str], expected_token: str) -> bool:
    """
    Check an Authorization header value against the configured token.

    The header must start with exactly "Bearer " and the rest must equal
    the token. An empty configured token never matches.
    """
    if not header_value or not expected_token:
        return False
    if not header_value.startswith(BEARER_PREFIX):
        return False

    token = header_value[len(BEARER_PREFIX):]
    return secrets.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8"))


async def verify_bearer_token(
    context: Annotated[ServiceContext, Depends(get_service_context)],
    authorization: Optional[str] = Security(authorization_header),
) -> AuthenticatedPrincipal:
    """
    Gate a route on the shared bearer secret.

    Missing header, wrong scheme and wrong token all raise the same
    InvalidCredentials.
    """
    if not is_valid_bearer(authorization, context.bearer_token):
        logger.warning(
            "Rejected request with invalid bearer credentials",
            extra={"header_present": authorization is not None}
        )
        raise InvalidCredentials()

    return AuthenticatedPrincipal()


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_archiver(
    context: Annotated[ServiceContext, Depends(get_service_context)],
) -> Archiver:
    """
    Provide an Archiver bound to the shared context.

    The archiver is stateless, so a new instance per request is cheap.
    """
    return Archiver(context)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthenticatedPrincipalDep = Annotated[AuthenticatedPrincipal, Depends(verify_bearer_token)]
ArchiverDep = Annotated[Archiver, Depends(get_archiver)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

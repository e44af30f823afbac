"""
Public location resolution for archived objects.

The location is always derived from configuration plus the caller's key,
never from anything the object store echoes back.
"""

from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

from .errors import LocationError


def parse_public_url(public_url: str) -> SplitResult:
    """
    Parse and check a public base URL.

    Raises LocationError unless the URL is absolute http(s) with a host.
    """
    try:
        parts = urlsplit(public_url)
    except ValueError as e:
        raise LocationError(f"Public URL does not parse: {e}") from e

    if parts.scheme not in ("http", "https"):
        raise LocationError(f"Public URL must be http or https, got {parts.scheme!r}")
    if not parts.netloc:
        raise LocationError("Public URL has no host")

    return parts


def resolve_location(public_url: str, bucket: str, key: str) -> str:
    """
    Build `{public_url}/{bucket}/{key}`.

    Any path on the base URL is kept and a trailing slash is not doubled.
    Query and fragment of the base are dropped. The key is percent-encoded
    with "/" preserved, so plain keys come back unchanged.
    """
    parts = parse_public_url(public_url)

    path = "/".join([
        parts.path.rstrip("/"),
        quote(bucket, safe=""),
        quote(key, safe="/"),
    ])

    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))

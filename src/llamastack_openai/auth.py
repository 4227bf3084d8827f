"""Bearer token presence check for inbound requests.

Only the shape of the Authorization header is checked. Token verification
happens in front of the adapter, not here.
"""

from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


class AuthError(Exception):
    """Base exception for rejected Authorization headers."""

    kind = "auth_error"


class MissingHeaderError(AuthError):
    kind = "missing_header"

    def __init__(self, message: str = "Missing Authorization header"):
        super().__init__(message)


class MalformedHeaderError(AuthError):
    kind = "malformed_header"

    def __init__(self, message: str = "Invalid Authorization header format"):
        super().__init__(message)


class EmptyTokenError(AuthError):
    kind = "empty_token"

    def __init__(self, message: str = "Empty token"):
        super().__init__(message)


def validate_bearer_token(authorization: Optional[str]) -> str:
    """Validate the Authorization header and return the bearer token.

    Args:
        authorization: Raw header value, or None when absent

    Returns:
        The token after the ``Bearer `` prefix

    Raises:
        MissingHeaderError: Header absent or empty
        MalformedHeaderError: Header does not start with ``Bearer ``
        EmptyTokenError: Nothing follows the prefix
    """
    if not authorization:
        raise MissingHeaderError()

    if not authorization.startswith(BEARER_PREFIX):
        raise MalformedHeaderError()

    token = authorization[len(BEARER_PREFIX):]
    if not token:
        raise EmptyTokenError()

    logger.debug("Validated token", token_prefix=token[:10] + "...")
    return token

import hmac
import logging
from typing import Optional

from fastapi import Header, Request

from badge_proxy.errors import UnauthorizedError
from badge_proxy.utils import token_fingerprint

logger = logging.getLogger("uvicorn.error")

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer <token>`` header, or None for any other shape."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):]


def is_authorized(authorization: Optional[str], password: Optional[str]) -> bool:
    """
    Check a write request against the configured update password.

    With no password configured every write is allowed. Otherwise the bearer
    token must equal the password byte for byte. ``authorization`` is the header
    as the server decoded it (latin-1), so it is turned back into the bytes that
    were on the wire and compared with the UTF-8 encoding of the password.
    """
    if password is None:
        return True
    token = extract_bearer_token(authorization)
    if token is None:
        return False
    try:
        token_bytes = token.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(token_bytes, password.encode("utf-8"))


async def require_update_password(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Dependency guarding the write routes. Raises 401 when the configured
    password is not presented.
    """
    password = request.app.state.update_password
    if is_authorized(authorization, password):
        return
    logger.warning(
        f"[Auth] Rejected URL update from "
        f"{request.client.host if request.client else 'unknown'}: "
        f"token {token_fingerprint(extract_bearer_token(authorization))}"
    )
    raise UnauthorizedError()

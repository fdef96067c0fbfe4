"""Caller identity from bearer tokens.

Tokens are issued elsewhere; this module only verifies them and exposes the
``sub`` claim as the caller id.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shortlinks.config import Settings
from shortlinks.dependencies import ServiceManager, get_service_manager

__all__ = ["decode_caller_id", "get_optional_caller_id", "get_caller_id"]

logger = logging.getLogger("shortlinks.auth")

bearer_scheme = HTTPBearer(auto_error=False)


def decode_caller_id(token: str, settings: Settings) -> str | None:
    """Return the token subject, or None when the token does not verify."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug(f"Rejected bearer token: {exc}")
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


async def get_optional_caller_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    manager: ServiceManager = Depends(get_service_manager),
) -> str | None:
    if credentials is None:
        return None
    return decode_caller_id(credentials.credentials, manager.settings)


async def get_caller_id(caller_id: str | None = Depends(get_optional_caller_id)) -> str:
    if caller_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller_id

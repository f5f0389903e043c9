"""Signed bearer tokens identifying the ledger owner."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ledgerbook.config import AppSettings

LOGGER = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """The bearer token is missing, malformed, expired or wrongly signed."""


def create_token(
    user_id: str, settings: AppSettings, *, expires_in: Optional[timedelta] = None
) -> str:
    """Sign a token whose user claim names ``user_id``."""
    if not settings.jwt_secret:
        raise AuthenticationError("No JWT secret configured")
    payload: Dict[str, Any] = {
        settings.jwt_user_claim: user_id,
        "exp": datetime.now(timezone.utc) + (expires_in or timedelta(minutes=settings.jwt_expires_minutes)),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: AppSettings) -> str:
    """Verify ``token`` and return the user id it carries."""
    if not settings.jwt_secret:
        LOGGER.warning("Rejecting bearer token: no JWT secret configured")
        raise AuthenticationError("No JWT secret configured")
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        raise AuthenticationError(str(exc)) from exc
    user_id = claims.get(settings.jwt_user_claim)
    if not isinstance(user_id, str) or not user_id:
        raise AuthenticationError(f"Token has no '{settings.jwt_user_claim}' claim")
    return user_id


__all__ = ["AuthenticationError", "create_token", "decode_token"]

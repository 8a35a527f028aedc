from __future__ import annotations

import logging

from fastapi import Header, HTTPException, status

from settings import get_settings

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def resolve_owner(token: str) -> str | None:
    return get_settings().api_tokens.get(token)


def require_owner(
    authorization: str | None = Header(default=None),
) -> str:
    """
    Resolve the calling owner from an ``Authorization: Bearer <token>`` header.

    Tokens map to owner ids through API_TOKENS (``token:owner,...``).
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Missing or invalid authorization header",
        )

    token = authorization[len(_BEARER_PREFIX):].strip()
    owner_id = resolve_owner(token) if token else None
    if owner_id is None:
        logger.info("Rejected bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid token",
        )
    return owner_id

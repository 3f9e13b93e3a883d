"""Request authentication delegated to the upstream auth gateway."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Request

from smartledger.api.errors import AuthenticationError
from smartledger.config import Settings, get_settings

USER_ID_HEADER = "X-User-Id"
MAX_USER_ID_LENGTH = 64


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def verify_gateway_token(request: Request, settings: Settings) -> None:
    """Check the shared gateway secret when one is configured."""

    if not settings.api_token:
        return
    token = _bearer_token(request)
    if token is None or not hmac.compare_digest(token.encode("utf-8"), settings.api_token.encode("utf-8")):
        raise AuthenticationError("Invalid or missing API token")


def extract_user_id(request: Request) -> str:
    """Return the authenticated user id forwarded by the gateway."""

    raw = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not raw:
        raise AuthenticationError("Authentication required")
    if len(raw) > MAX_USER_ID_LENGTH:
        raise AuthenticationError("Malformed user id")
    return raw


async def require_api_auth(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """Enforce request-level auth for API routes."""

    verify_gateway_token(request, settings)
    user_id = extract_user_id(request)
    request.state.user_id = user_id
    return user_id

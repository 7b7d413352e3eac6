"""
Authentication and session lifecycle.

Credentials are checked by Supabase Auth. A successful sign-in registers the
session in Redis (keyed by a hash of the access token) for the lifetime of the
token; sign-out revokes the token upstream and tears down the session along
with its notifications. Requests with a token that is not registered locally
are verified against Supabase Auth directly.
"""

import hashlib
import json
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status

from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.services.logger import logger


def _session_key(access_token: str) -> str:
    digest = hashlib.sha256(access_token.encode()).hexdigest()
    return f"session:{digest}"


class SessionRegistry:
    def __init__(self, redis_client: Any):
        self.redis = redis_client

    def create(self, access_token: str, user: Dict[str, Any], ttl: Optional[int] = None) -> None:
        self.redis.setex(
            _session_key(access_token),
            ttl or settings.SESSION_TTL_SECONDS,
            json.dumps(user),
        )

    def get(self, access_token: str) -> Optional[Dict[str, Any]]:
        raw = self.redis.get(_session_key(access_token))
        if raw is None:
            return None
        return json.loads(raw)

    def destroy(self, access_token: str) -> None:
        self.redis.delete(_session_key(access_token))


def is_admin(user: Dict[str, Any]) -> bool:
    email = (user.get("email") or "").lower()
    return bool(email) and email in settings.admin_emails


def sign_in(context: AppContext, email: str, password: str) -> Dict[str, Any]:
    session = context.gateway.sign_in_with_password(email, password)
    SessionRegistry(context.redis).create(
        session["access_token"], session["user"], ttl=session.get("expires_in")
    )
    logger.info(f"User {session['user']['id']} signed in")
    return session


def sign_out(context: AppContext, current_user: Dict[str, Any]) -> None:
    access_token = current_user["access_token"]
    try:
        context.gateway.sign_out(access_token)
    finally:
        SessionRegistry(context.redis).destroy(access_token)
        context.notifier_for(current_user).clear()
        logger.info(f"User {current_user['id']} signed out")


def _bearer_token(request: Request) -> str:
    authorization = request.headers.get("authorization")

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization format. Use 'Bearer <token>'",
        )

    token = authorization.replace("Bearer ", "").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required"
        )
    return token


async def get_current_user(
    request: Request, context: AppContext = Depends(get_context)
) -> Dict[str, Any]:
    """Resolve the signed-in user for the request's bearer token."""
    token = _bearer_token(request)

    user = SessionRegistry(context.redis).get(token)
    if user is None:
        user = context.gateway.get_current_user(token)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )

    return {**user, "access_token": token, "is_admin": is_admin(user)}


async def require_admin(
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    if not current_user["is_admin"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user

"""
Request authentication and board-scope helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException
from .security import decode_access_token

ADMIN_ROLES = {"ADMIN"}


@dataclass
class UserContext:
    role: str
    user_id: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() in ADMIN_ROLES

    @property
    def actor(self) -> str:
        return self.username or self.user_id or self.role


def auth_disabled() -> bool:
    return os.getenv("TASKFLOW_AUTH_DISABLED", "true").lower() in {"1", "true", "yes"}


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def get_current_user(
    authorization: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> UserContext:
    if auth_disabled():
        return UserContext(role="ADMIN", username=x_user_name)
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_access_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    role = str(claims.get("role") or "").strip().upper()
    username = str(claims.get("sub") or "").strip() or None
    user_id = str(claims.get("user_id") or "").strip() or None
    if not role or not username or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return UserContext(role=role, user_id=user_id, username=username)


def get_optional_user(
    authorization: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Optional[UserContext]:
    if auth_disabled():
        return UserContext(role="ADMIN", username=x_user_name)
    if not authorization:
        return None
    return get_current_user(authorization=authorization, x_user_name=x_user_name)

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sweet_shop.config import Config
from sweet_shop.db import connect
from sweet_shop.errors import AuthError, ForbiddenError, InternalError

from .crud import get_user_by_id, public_user
from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise InternalError("Server configuration missing")
    return cfg


def get_current_user(
    cfg: Config = Depends(get_config),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    The token only identifies the user; the role comes from the stored user row so a
    deleted user's token stops working immediately.
    """

    token = credentials.credentials if credentials is not None else None
    if not token:
        raise AuthError("Not authorized, no token provided")

    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise AuthError("Not authorized, token expired")
    except (jwt.InvalidTokenError, ValueError):
        raise AuthError("Not authorized, token invalid")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthError("Not authorized, token invalid")

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user_id)
    if row is None:
        raise AuthError("Not authorized, user not found")
    return public_user(row)


def require_roles(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: authenticated user whose role is one of `roles`."""
    allowed = set(roles)

    def _guard(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in allowed:
            raise ForbiddenError(f"User role '{user.get('role')}' is not authorized to access this route")
        return user

    return _guard


require_admin = require_roles("admin")

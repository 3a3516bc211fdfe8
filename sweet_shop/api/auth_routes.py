from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator

from sweet_shop.auth.crud import create_user, public_user, verify_user_credentials
from sweet_shop.auth.deps import get_config, get_current_user
from sweet_shop.auth.security import create_access_token
from sweet_shop.config import Config
from sweet_shop.db import connect
from sweet_shop.errors import AuthError, ForbiddenError
from sweet_shop.models import PASSWORD_MIN_LENGTH

from .responses import success


auth_router = APIRouter(tags=["Auth"])


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    role: Optional[Literal["user", "admin"]] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


def _issue_token(cfg: Config, user: Dict[str, Any]) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["id"]),
        email=str(user["email"]),
        role=str(user["role"]),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


@auth_router.post("/register", status_code=201)
def register(payload: RegisterRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    role = payload.role or "user"
    if role == "admin" and not cfg.AUTH_ALLOW_ADMIN_SIGNUP:
        raise ForbiddenError("Admin self-registration is disabled")

    with connect(cfg.DB_DSN) as conn:
        user = create_user(
            conn,
            name=payload.name,
            email=str(payload.email),
            password=payload.password,
            role=role,
        )

    return success({"user": user, "token": _issue_token(cfg, user)})


@auth_router.post("/login")
def login(payload: LoginRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = verify_user_credentials(conn, str(payload.email), payload.password)
    # Same message whether the email or the password was wrong.
    if row is None:
        raise AuthError("Invalid credentials")

    user = public_user(row)
    return success({"user": user, "token": _issue_token(cfg, user)})


@auth_router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return success({"user": user})

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Pick up a local .env if there is one; real env vars win.
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred for deployments: SWEET_SHOP_DATABASE_URL (or DATABASE_URL) pointing at Postgres.
    # Fallback: SWEET_SHOP_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SWEET_SHOP_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SWEET_SHOP_DB_PATH", "./sweet_shop.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

    # Self-serve registration may ask for role=admin. Set to 0 to force role=user on /register.
    AUTH_ALLOW_ADMIN_SIGNUP: bool = _env_bool("AUTH_ALLOW_ADMIN_SIGNUP", True) is True

    # Bootstrap the first admin when the users table is empty.
    # Unlike the dev JWT secret there is no default here: both must be set explicitly.
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "")
    AUTH_BOOTSTRAP_ADMIN_NAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_NAME", "Admin")

    # -----------------
    # Inventory
    # -----------------
    DEFAULT_SWEET_IMAGE_URL: str = os.environ.get(
        "DEFAULT_SWEET_IMAGE_URL",
        "https://via.placeholder.com/300x200?text=Sweet",
    )

    # -----------------
    # CORS (development)
    # -----------------
    # The SPA dev server (Vite on :5173, CRA on :3000) talks to the API on :8000.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )


def load_config() -> Config:
    return Config()

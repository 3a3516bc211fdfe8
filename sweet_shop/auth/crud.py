from __future__ import annotations

from typing import Any, Dict, Optional

from sweet_shop.config import Config
from sweet_shop.db import connect, fetch_returning
from sweet_shop.errors import ConflictError, ValidationError
from sweet_shop.models import ROLES
from sweet_shop.util.time import utcnow_iso

from .security import burn_password_check, hash_password, verify_password


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """API shape of a user row. The password hash never leaves this module."""
    d = dict(row)
    return {
        "id": int(d["user_id"]),
        "name": d.get("name"),
        "email": d.get("email"),
        "role": d.get("role"),
        "createdAt": d.get("created_at"),
    }


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute("SELECT * FROM users WHERE email=?", (e,)).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE user_id=?", (int(user_id),)).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    """Return the user row if email/password match, else None (caller can't tell which was wrong)."""
    row = get_user_by_email(conn, email)
    if row is None:
        burn_password_check()
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    role: str = "user",
) -> Dict[str, Any]:
    n = (name or "").strip()
    e = normalize_email(email)
    if not n:
        raise ValidationError(errors=[{"field": "name", "message": "Name is required"}])
    if not e:
        raise ValidationError(errors=[{"field": "email", "message": "Please provide a valid email"}])
    if role not in ROLES:
        raise ValidationError(errors=[{"field": "role", "message": "Invalid role"}])

    # ON CONFLICT keeps the uniqueness check inside the INSERT, so two concurrent
    # registrations can't both pass a separate "does it exist" query.
    now = utcnow_iso()
    row = fetch_returning(conn.execute(
        """
        INSERT INTO users (name, email, password_hash, role, created_at, updated_at)
        VALUES (?,?,?,?,?,?)
        ON CONFLICT(email) DO NOTHING
        RETURNING *
        """,
        (n, e, hash_password(password), role, now, now),
    ))
    if row is None:
        raise ConflictError("User with this email already exists")
    return public_user(row)


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via environment variables:

    - AUTH_BOOTSTRAP_ADMIN_EMAIL
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD
    - AUTH_BOOTSTRAP_ADMIN_NAME (default: Admin)

    Nothing happens unless both email and password are set.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None
        u = create_user(
            conn,
            name=cfg.AUTH_BOOTSTRAP_ADMIN_NAME or "Admin",
            email=email,
            password=password,
            role="admin",
        )
    return u

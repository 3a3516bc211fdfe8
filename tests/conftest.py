import os
import sys
from typing import Any, Callable, Dict

import pytest

# so `import sweet_shop` works when running pytest from the repo root without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fastapi.testclient import TestClient

from sweet_shop.api.server import create_app
from sweet_shop.config import Config
from sweet_shop.db import connect, init_db


@pytest.fixture()
def cfg(tmp_path):
    # Every field pinned so a developer's .env can't leak into the tests.
    return Config(
        DB_DSN=str(tmp_path / "sweet_shop_test.sqlite"),
        AUTH_JWT_SECRET="test-secret",
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        AUTH_ALLOW_ADMIN_SIGNUP=True,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="",
        DEFAULT_SWEET_IMAGE_URL="https://img.test/placeholder.png",
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture()
def app(cfg):
    return create_app(cfg)


@pytest.fixture()
def client(app):
    # Context manager runs the startup hook (schema creation).
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def conn(cfg):
    """Raw DB connection for storage-level tests (no HTTP)."""
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as c:
        yield c


def _register(client, name: str, email: str, password: str, role: str | None = None) -> Dict[str, Any]:
    body = {"name": name, "email": email, "password": password}
    if role:
        body["role"] = role
    res = client.post("/api/auth/register", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.fixture()
def user_headers(client) -> Dict[str, str]:
    data = _register(client, "Test User", "user@example.com", "password123", "user")
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture()
def admin_headers(client) -> Dict[str, str]:
    data = _register(client, "Admin User", "admin@example.com", "admin123", "admin")
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture()
def make_sweet(client, admin_headers) -> Callable[..., Dict[str, Any]]:
    """Create a sweet through the API as admin and return it."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        body = {"name": "Test Sweet", "category": "candy", "price": 10.99, "quantity": 50}
        body.update(overrides)
        res = client.post("/api/sweets", json=body, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]["sweet"]

    return _make

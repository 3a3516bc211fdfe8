"""Thin HTTP client for the Sweet Shop API.

Mirrors what the browser app does: log in, keep the bearer token, call the
sweets endpoints and unwrap the `{"status", "data"}` envelope. No business
logic lives here; every rule is enforced by the server.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


def _debug(msg: str) -> None:
    print(f"[client] {msg}")


class SweetShopError(RuntimeError):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class SweetShopClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        token: Optional[str] = None,
        session: Any = None,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        # Anything with a requests-style .request(method, url, ...) works (e.g. FastAPI's TestClient).
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.user: Optional[Dict[str, Any]] = None

    # -----------------------------
    # Plumbing
    # -----------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        r = self.session.request(method, url, json=json, params=params, headers=headers, timeout=self.timeout)

        try:
            body = r.json() if r.content else {}
        except ValueError:
            body = {}

        if r.status_code >= 400:
            message = str(body.get("message") or f"HTTP {r.status_code}")
            _debug(f"{method} {path} -> {r.status_code}: {message}")
            raise SweetShopError(r.status_code, message, body.get("errors"))
        return body

    def _data(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        return self._request(method, path, **kwargs).get("data") or {}

    def _remember(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.token = data.get("token")
        self.user = data.get("user")
        return data

    # -----------------------------
    # Auth
    # -----------------------------

    def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name, "email": email, "password": password}
        if role:
            body["role"] = role
        return self._remember(self._data("POST", "/api/auth/register", json=body))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._remember(self._data("POST", "/api/auth/login", json={"email": email, "password": password}))

    def logout(self) -> None:
        # Tokens are stateless; forgetting it is all there is to do.
        self.token = None
        self.user = None

    def me(self) -> Dict[str, Any]:
        return self._data("GET", "/api/auth/me")["user"]

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.get("role") == "admin")

    # -----------------------------
    # Sweets
    # -----------------------------

    def list_sweets(self) -> List[Dict[str, Any]]:
        return self._data("GET", "/api/sweets")["sweets"]

    def search_sweets(
        self,
        *,
        name: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if name:
            params["name"] = name
        if category:
            params["category"] = category
        if min_price is not None:
            params["minPrice"] = min_price
        if max_price is not None:
            params["maxPrice"] = max_price
        return self._data("GET", "/api/sweets/search", params=params)["sweets"]

    def get_sweet(self, sweet_id: int) -> Dict[str, Any]:
        return self._data("GET", f"/api/sweets/{sweet_id}")["sweet"]

    def create_sweet(self, **fields: Any) -> Dict[str, Any]:
        return self._data("POST", "/api/sweets", json=fields)["sweet"]

    def update_sweet(self, sweet_id: int, **fields: Any) -> Dict[str, Any]:
        return self._data("PUT", f"/api/sweets/{sweet_id}", json=fields)["sweet"]

    def delete_sweet(self, sweet_id: int) -> None:
        self._request("DELETE", f"/api/sweets/{sweet_id}")

    def purchase(self, sweet_id: int, quantity: int = 1) -> Dict[str, Any]:
        """Returns {"sweet", "purchasedQuantity", "totalPrice"}."""
        return self._data("POST", f"/api/sweets/{sweet_id}/purchase", json={"quantity": quantity})

    def restock(self, sweet_id: int, quantity: int) -> Dict[str, Any]:
        """Returns {"sweet", "restockedQuantity"}."""
        return self._data("POST", f"/api/sweets/{sweet_id}/restock", json={"quantity": quantity})

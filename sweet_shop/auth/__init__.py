"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (email + password hash + role)
- JWT access tokens, sent as `Authorization: Bearer <token>`

Routes declare what they need as FastAPI dependencies: `get_current_user`
for any logged-in user, `require_admin` / `require_roles(...)` for role gates.
"""

from .deps import get_config, get_current_user, require_admin, require_roles
from .crud import bootstrap_admin_if_needed, create_user

__all__ = [
    "get_config",
    "get_current_user",
    "require_admin",
    "require_roles",
    "bootstrap_admin_if_needed",
    "create_user",
]

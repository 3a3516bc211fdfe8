"""Sweet Shop inventory API - Backend.

- Users register / log in and receive a JWT bearer token.
- Sweets are an inventory collection: admins create, edit, delete and
  restock them; any logged-in user can browse, search and purchase.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

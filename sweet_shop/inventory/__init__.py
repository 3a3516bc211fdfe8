"""Sweet inventory: storage-level operations.

Every function takes an open connection from `sweet_shop.db.connect` and raises
`sweet_shop.errors` exceptions; the API layer only maps them to HTTP.
"""

from .crud import (
    create_sweet,
    delete_sweet,
    get_sweet,
    list_sweets,
    purchase_sweet,
    restock_sweet,
    search_sweets,
    update_sweet,
)

__all__ = [
    "create_sweet",
    "delete_sweet",
    "get_sweet",
    "list_sweets",
    "purchase_sweet",
    "restock_sweet",
    "search_sweets",
    "update_sweet",
]

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


ROLES = ("user", "admin")

CATEGORIES = (
    "chocolate",
    "candy",
    "gummy",
    "lollipop",
    "hard-candy",
    "toffee",
    "other",
)

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 6
# Largest stock level; fits a Postgres INTEGER column.
MAX_QUANTITY = 2**31 - 1


@dataclass(frozen=True)
class SweetSearch:
    """Conjunctive sweet filters. None means "don't filter on this"."""

    name: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

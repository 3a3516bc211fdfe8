"""Load sweets into the inventory.

Usage:
  python scripts/seed_sweets.py                    # built-in sample catalogue
  python scripts/seed_sweets.py --file sweets.json # JSON list of sweet objects

Each object uses the API field names: name, category, price, quantity,
description?, imageUrl?. Sweets whose name already exists are skipped.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sweet_shop.config import load_config
from sweet_shop.db import connect, init_db
from sweet_shop.errors import ConflictError
from sweet_shop.inventory.crud import create_sweet


SAMPLE_SWEETS: List[Dict[str, Any]] = [
    {"name": "Dark Chocolate Bar", "category": "chocolate", "price": 25.99, "quantity": 100,
     "description": "70% cocoa, single origin"},
    {"name": "Milk Chocolate Truffles", "category": "chocolate", "price": 18.5, "quantity": 40},
    {"name": "Sour Gummy Worms", "category": "gummy", "price": 4.25, "quantity": 250},
    {"name": "Rainbow Lollipop", "category": "lollipop", "price": 1.99, "quantity": 300},
    {"name": "Butter Toffee", "category": "toffee", "price": 6.75, "quantity": 80},
    {"name": "Peppermint Drops", "category": "hard-candy", "price": 3.1, "quantity": 150},
    {"name": "Cotton Candy", "category": "candy", "price": 2.5, "quantity": 60},
]


def _load(path: Path) -> List[Dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise SystemExit(f"{path}: expected a JSON list of sweets")
    return data


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", default=None, help="JSON file with a list of sweets")
    args = parser.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    items = _load(Path(args.file)) if args.file else SAMPLE_SWEETS
    created = 0
    skipped = 0
    with connect(cfg.DB_DSN) as conn:
        for it in items:
            try:
                create_sweet(
                    conn,
                    name=str(it["name"]),
                    category=str(it["category"]),
                    price=float(it["price"]),
                    quantity=int(it.get("quantity", 0)),
                    description=it.get("description"),
                    image_url=it.get("imageUrl"),
                    default_image_url=cfg.DEFAULT_SWEET_IMAGE_URL,
                )
                created += 1
            except ConflictError:
                skipped += 1

    print(f"Seeded sweets: created={created} skipped_existing={skipped}")


if __name__ == "__main__":
    main()

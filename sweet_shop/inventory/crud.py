from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from sweet_shop.db import fetch_returning, is_integrity_error
from sweet_shop.errors import ConflictError, NotFoundError, StockError, ValidationError
from sweet_shop.models import CATEGORIES, MAX_QUANTITY, SweetSearch
from sweet_shop.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[inventory] {msg}")


# Columns a PUT may touch, in storage naming.
UPDATABLE_FIELDS = ("name", "category", "price", "quantity", "description", "image_url")

_NOT_FOUND = "Sweet not found"
_NAME_TAKEN = "Sweet with this name already exists"


def public_sweet(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    return {
        "id": int(d["sweet_id"]),
        "name": d.get("name"),
        "category": d.get("category"),
        "price": float(d["price"]),
        "quantity": int(d["quantity"]),
        "description": d.get("description"),
        "imageUrl": d.get("image_url"),
        "createdAt": d.get("created_at"),
        "updatedAt": d.get("updated_at"),
    }


def parse_sweet_id(raw: Any) -> Optional[int]:
    """Path ids are opaque to callers; anything that isn't a positive integer simply doesn't exist."""
    try:
        sweet_id = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return sweet_id if sweet_id > 0 else None


def normalize_category(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    c = str(category).strip().lower()
    return c or None


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        raise ValidationError(errors=[{"field": "category", "message": "Invalid category"}])


def _check_non_negative(field: str, value: float) -> None:
    if not math.isfinite(value):
        raise ValidationError(errors=[{"field": field, "message": f"{field} must be a finite number"}])
    if value < 0:
        raise ValidationError(errors=[{"field": field, "message": f"{field} cannot be negative"}])
    if field == "quantity" and value > MAX_QUANTITY:
        raise ValidationError(errors=[{"field": field, "message": f"{field} cannot exceed {MAX_QUANTITY}"}])


def _check_stock_change(quantity: int) -> int:
    q = int(quantity)
    if q < 1:
        raise ValidationError(errors=[{"field": "quantity", "message": "Quantity must be at least 1"}])
    if q > MAX_QUANTITY:
        raise ValidationError(errors=[{"field": "quantity", "message": f"Quantity cannot exceed {MAX_QUANTITY}"}])
    return q


def _get_row(conn: Any, sweet_id: Any) -> Any:
    sid = parse_sweet_id(sweet_id)
    if sid is None:
        raise NotFoundError(_NOT_FOUND)
    row = conn.execute("SELECT * FROM sweets WHERE sweet_id=?", (sid,)).fetchone()
    if row is None:
        raise NotFoundError(_NOT_FOUND)
    return row


def _name_taken(conn: Any, name: str) -> bool:
    return conn.execute("SELECT 1 FROM sweets WHERE name=?", (name,)).fetchone() is not None


def create_sweet(
    conn: Any,
    *,
    name: str,
    category: str,
    price: float,
    quantity: int,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
    default_image_url: Optional[str] = None,
) -> Dict[str, Any]:
    n = (name or "").strip()
    if not n:
        raise ValidationError(errors=[{"field": "name", "message": "Name is required"}])
    c = normalize_category(category) or ""
    _check_category(c)
    _check_non_negative("price", float(price))
    _check_non_negative("quantity", int(quantity))

    now = utcnow_iso()
    row = fetch_returning(conn.execute(
        """
        INSERT INTO sweets (name, category, price, quantity, description, image_url, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?)
        ON CONFLICT(name) DO NOTHING
        RETURNING *
        """,
        (n, c, float(price), int(quantity), description, image_url or default_image_url, now, now),
    ))
    if row is None:
        raise ConflictError(_NAME_TAKEN)
    _debug(f"created sweet id={row['sweet_id']} name={n!r}")
    return public_sweet(row)


def list_sweets(conn: Any) -> List[Dict[str, Any]]:
    """All sweets, newest first."""
    return search_sweets(conn, SweetSearch())


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_sweets(conn: Any, filters: SweetSearch) -> List[Dict[str, Any]]:
    """Filter sweets; every supplied filter must hold (AND).

    - name: case-insensitive substring
    - category: exact match after lowercasing
    - min_price / max_price: inclusive bounds
    """
    where: List[str] = []
    params: List[Any] = []

    if filters.name:
        # LOWER() on both sides: Postgres LIKE is case-sensitive, sqlite's only for non-ASCII.
        where.append("LOWER(name) LIKE ? ESCAPE '\\'")
        params.append(_like_pattern(filters.name))

    category = normalize_category(filters.category)
    if category:
        where.append("category=?")
        params.append(category)

    if filters.min_price is not None:
        where.append("price >= ?")
        params.append(float(filters.min_price))

    if filters.max_price is not None:
        where.append("price <= ?")
        params.append(float(filters.max_price))

    sql = "SELECT * FROM sweets"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY created_at DESC, sweet_id DESC"

    rows = conn.execute(sql, tuple(params)).fetchall()
    return [public_sweet(r) for r in rows]


def get_sweet(conn: Any, sweet_id: Any) -> Dict[str, Any]:
    return public_sweet(_get_row(conn, sweet_id))


def update_sweet(conn: Any, sweet_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Partial update: only keys present in `changes` are written.

    Blank values for name/category/image_url and None for any field except description
    leave the stored value alone; description may be cleared with None or "".
    """
    current = _get_row(conn, sweet_id)

    fields: List[tuple[str, Any]] = []
    for key in UPDATABLE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "description":
            fields.append((key, value or None))
            continue
        if value is None:
            continue
        if key in ("name", "image_url"):
            value = str(value).strip()
            if not value:
                continue
        if key == "category":
            value = normalize_category(value)
            if value is None:
                continue
            _check_category(value)
        if key in ("price", "quantity"):
            _check_non_negative(key, value)
        fields.append((key, value))

    new_name = dict(fields).get("name")
    if new_name is not None and new_name != current["name"] and _name_taken(conn, new_name):
        raise ConflictError(_NAME_TAKEN)

    # updatedAt moves on every write, even one that changes nothing else.
    fields.append(("updated_at", utcnow_iso()))
    sets = ", ".join(f"{k}=?" for k, _ in fields)
    params = [v for _, v in fields] + [int(current["sweet_id"])]
    try:
        row = fetch_returning(conn.execute(f"UPDATE sweets SET {sets} WHERE sweet_id=? RETURNING *", params))
    except Exception as e:
        # A concurrent rename can take the name between the check above and this write.
        if new_name is not None and is_integrity_error(e):
            raise ConflictError(_NAME_TAKEN) from e
        raise
    if row is None:
        # Deleted between the read and the write.
        raise NotFoundError(_NOT_FOUND)
    return public_sweet(row)


def delete_sweet(conn: Any, sweet_id: Any) -> None:
    sid = parse_sweet_id(sweet_id)
    if sid is None:
        raise NotFoundError(_NOT_FOUND)
    cur = conn.execute("DELETE FROM sweets WHERE sweet_id=?", (sid,))
    if cur.rowcount == 0:
        raise NotFoundError(_NOT_FOUND)
    _debug(f"deleted sweet id={sid}")


def purchase_sweet(conn: Any, sweet_id: Any, quantity: int) -> Dict[str, Any]:
    """Take `quantity` units out of stock.

    The stock check and the decrement are one conditional UPDATE, so concurrent
    purchases can't oversell. Returns the updated sweet plus the purchase total.
    """
    q = _check_stock_change(quantity)
    sid = parse_sweet_id(sweet_id)
    if sid is None:
        raise NotFoundError(_NOT_FOUND)

    row = fetch_returning(conn.execute(
        """
        UPDATE sweets
        SET quantity = quantity - ?, updated_at = ?
        WHERE sweet_id = ? AND quantity >= ?
        RETURNING *
        """,
        (q, utcnow_iso(), sid, q),
    ))
    if row is None:
        # Either the sweet is gone or there isn't enough of it.
        current = _get_row(conn, sid)
        raise StockError(f"Not enough stock. Only {int(current['quantity'])} items available")

    sweet = public_sweet(row)
    total_price = round(sweet["price"] * q, 2)
    _debug(f"purchase sweet id={sid} quantity={q} remaining={sweet['quantity']}")
    return {"sweet": sweet, "purchasedQuantity": q, "totalPrice": total_price}


def restock_sweet(conn: Any, sweet_id: Any, quantity: int) -> Dict[str, Any]:
    q = _check_stock_change(quantity)
    sid = parse_sweet_id(sweet_id)
    if sid is None:
        raise NotFoundError(_NOT_FOUND)

    row = fetch_returning(conn.execute(
        """
        UPDATE sweets
        SET quantity = quantity + ?, updated_at = ?
        WHERE sweet_id = ? AND quantity <= ? - ?
        RETURNING *
        """,
        (q, utcnow_iso(), sid, MAX_QUANTITY, q),
    ))
    if row is None:
        current = _get_row(conn, sid)
        room = MAX_QUANTITY - int(current["quantity"])
        raise ValidationError(
            f"Restock would exceed the maximum stock of {MAX_QUANTITY}",
            errors=[{"field": "quantity", "message": f"At most {room} more items can be stocked"}],
        )

    sweet = public_sweet(row)
    _debug(f"restock sweet id={sid} quantity={q} now={sweet['quantity']}")
    return {"sweet": sweet, "restockedQuantity": q}

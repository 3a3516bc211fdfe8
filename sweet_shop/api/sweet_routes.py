from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sweet_shop.auth.deps import get_config, get_current_user, require_admin
from sweet_shop.config import Config
from sweet_shop.db import connect
from sweet_shop.errors import ValidationError
from sweet_shop.inventory import crud
from sweet_shop.models import CATEGORIES, DESCRIPTION_MAX_LENGTH, MAX_QUANTITY, NAME_MAX_LENGTH, SweetSearch

from .responses import success


sweet_router = APIRouter(tags=["Sweets"])


def _check_category(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in CATEGORIES:
        raise ValueError("Invalid category")
    return v


class SweetCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    category: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    image_url: Optional[str] = Field(None, alias="imageUrl")

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        return _check_category(v.lower())


class SweetUpdate(BaseModel):
    """Every field optional; only the ones present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    quantity: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    image_url: Optional[str] = Field(None, alias="imageUrl")

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: Optional[str]) -> Optional[str]:
        # An empty category means "leave it as is".
        return _check_category(v.lower() if v else None)


class StockChange(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)


def _price_param(raw: Optional[str], field: str) -> Optional[float]:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        value = float(s)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        raise ValidationError(errors=[{"field": field, "message": f"{field} must be a number"}])
    return value


@sweet_router.post("", status_code=201)
def create_sweet(
    payload: SweetCreate,
    cfg: Config = Depends(get_config),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        sweet = crud.create_sweet(
            conn,
            name=payload.name,
            category=payload.category,
            price=payload.price,
            quantity=payload.quantity,
            description=payload.description,
            image_url=payload.image_url,
            default_image_url=cfg.DEFAULT_SWEET_IMAGE_URL,
        )
    return success({"sweet": sweet})


@sweet_router.get("")
def list_sweets(
    cfg: Config = Depends(get_config),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        sweets = crud.list_sweets(conn)
    return success({"count": len(sweets), "sweets": sweets})


# Declared before /{sweet_id} so "search" is not captured as an id.
@sweet_router.get("/search")
def search_sweets(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    cfg: Config = Depends(get_config),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    filters = SweetSearch(
        name=(name or "").strip() or None,
        category=(category or "").strip().lower() or None,
        min_price=_price_param(min_price, "minPrice"),
        max_price=_price_param(max_price, "maxPrice"),
    )
    with connect(cfg.DB_DSN) as conn:
        sweets = crud.search_sweets(conn, filters)
    return success({"count": len(sweets), "sweets": sweets})


@sweet_router.get("/{sweet_id}")
def get_sweet(
    sweet_id: str,
    cfg: Config = Depends(get_config),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        sweet = crud.get_sweet(conn, sweet_id)
    return success({"sweet": sweet})


@sweet_router.put("/{sweet_id}")
def update_sweet(
    sweet_id: str,
    payload: SweetUpdate,
    cfg: Config = Depends(get_config),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        sweet = crud.update_sweet(conn, sweet_id, payload.model_dump(exclude_unset=True))
    return success({"sweet": sweet})


@sweet_router.delete("/{sweet_id}")
def delete_sweet(
    sweet_id: str,
    cfg: Config = Depends(get_config),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        crud.delete_sweet(conn, sweet_id)
    return success(message="Sweet deleted successfully")


@sweet_router.post("/{sweet_id}/purchase")
def purchase_sweet(
    sweet_id: str,
    payload: StockChange,
    cfg: Config = Depends(get_config),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        result = crud.purchase_sweet(conn, sweet_id, payload.quantity)
    return success(result, message="Purchase successful")


@sweet_router.post("/{sweet_id}/restock")
def restock_sweet(
    sweet_id: str,
    payload: StockChange,
    cfg: Config = Depends(get_config),
    _admin: Dict[str, Any] = Depends(require_admin),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        result = crud.restock_sweet(conn, sweet_id, payload.quantity)
    return success(result, message="Restock successful")

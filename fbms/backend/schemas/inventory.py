"""Schemas for categories, products and stock movements."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from fbms.backend.schemas.base import ORMModel

MovementType = Literal[
    "stock_in", "stock_out", "adjustment", "sale", "return", "damage", "purchase_receipt"
]


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    is_active: bool = True


class CategoryOut(ORMModel):
    id: str
    name: str
    description: str | None = None
    is_active: bool


class ProductIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str
    description: str | None = None
    barcode: str | None = None
    category_id: str | None = None
    price: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    stock: int = 0
    min_stock: int = 0
    reorder_quantity: int | None = None
    unit: str = "piece"
    expiry_date: date | None = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = None
    sku: str | None = None
    description: str | None = None
    barcode: str | None = None
    category_id: str | None = None
    price: Decimal | None = None
    cost: Decimal | None = None
    min_stock: int | None = None
    reorder_quantity: int | None = None
    unit: str | None = None
    expiry_date: date | None = None
    is_active: bool | None = None


class ProductOut(ORMModel):
    id: str
    name: str
    sku: str
    description: str | None = None
    barcode: str | None = None
    category_id: str | None = None
    price: Decimal
    cost: Decimal
    stock: int
    min_stock: int
    reorder_quantity: int | None = None
    unit: str
    expiry_date: date | None = None
    sold_quantity: int
    is_active: bool


class StockAdjustmentIn(BaseModel):
    """Signed stock change; ``stock_out`` and ``damage`` take positive quantities."""

    movement_type: Literal["stock_in", "stock_out", "adjustment", "return", "damage"]
    quantity: int
    unit_cost: Decimal | None = None
    reason: str | None = None


class StockCountIn(BaseModel):
    counted_quantity: int = Field(ge=0)
    reason: str | None = "Physical count"


class StockMovementOut(ORMModel):
    id: str
    product_id: str
    product_name: str
    product_sku: str
    movement_type: str
    quantity: int
    previous_stock: int
    new_stock: int
    unit_cost: Decimal
    total_value: Decimal
    reason: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    performed_by: str | None = None
    created_at: datetime

"""Categories, products and stock movements."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from fbms.backend.api.deps import get_config, get_session, require
from fbms.backend.core.inventory.stock_validation import stock_status
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    CategoryIn,
    CategoryOut,
    ProductIn,
    ProductOut,
    ProductUpdate,
    StockAdjustmentIn,
    StockCountIn,
    StockMovementOut,
)
from fbms.backend.services import inventory

router = APIRouter()


# ── Categories ─────────────────────────────────────────────────────────────


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    active_only: bool = False,
    session: Session = Depends(get_session),
    _: User = Depends(require("inventory", "read")),
):
    return inventory.list_categories(session, active_only)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn, session: Session = Depends(get_session), user: User = Depends(require("inventory", "write"))
):
    return inventory.create_category(session, data, user.id)


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    data: CategoryIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("inventory", "write")),
):
    return inventory.update_category(session, category_id, data, user.id)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(
    category_id: str, session: Session = Depends(get_session), user: User = Depends(require("inventory", "write"))
) -> Response:
    inventory.delete_category(session, category_id, user.id)
    return Response(status_code=204)


# ── Products ───────────────────────────────────────────────────────────────


@router.get("/products", response_model=list[ProductOut])
def list_products(
    search: str | None = None,
    category_id: str | None = None,
    active_only: bool = True,
    session: Session = Depends(get_session),
    _: User = Depends(require("inventory", "read")),
):
    return inventory.list_products(session, search, category_id, active_only)


@router.get("/products/barcode/{barcode}", response_model=ProductOut)
def product_by_barcode(
    barcode: str, session: Session = Depends(get_session), _: User = Depends(require("inventory", "read"))
):
    return inventory.find_by_barcode(session, barcode)


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: str, session: Session = Depends(get_session), _: User = Depends(require("inventory", "read"))
):
    return inventory.get_product(session, product_id)


@router.post("/products", response_model=ProductOut, status_code=201)
def create_product(
    data: ProductIn, session: Session = Depends(get_session), user: User = Depends(require("inventory", "write"))
):
    return inventory.create_product(session, data, user.id)


@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    data: ProductUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require("inventory", "write")),
):
    return inventory.update_product(session, product_id, data, user.id)


@router.delete("/products/{product_id}", response_model=ProductOut)
def delete_product(
    product_id: str, session: Session = Depends(get_session), user: User = Depends(require("inventory", "write"))
):
    return inventory.delete_product(session, product_id, user.id)


@router.get("/products/{product_id}/movements", response_model=list[StockMovementOut])
def product_movements(
    product_id: str,
    limit: int = Query(200, ge=1, le=1000),
    session: Session = Depends(get_session),
    _: User = Depends(require("inventory", "read")),
):
    inventory.get_product(session, product_id)
    return inventory.list_movements(session, product_id=product_id, limit=limit)


# ── Stock ──────────────────────────────────────────────────────────────────


@router.get("/stock/movements", response_model=list[StockMovementOut])
def list_movements(
    product_id: str | None = None,
    movement_type: str | None = None,
    limit: int = Query(200, ge=1, le=1000),
    session: Session = Depends(get_session),
    _: User = Depends(require("inventory", "read")),
):
    return inventory.list_movements(session, product_id, movement_type, limit)


@router.get("/stock/alerts")
def stock_alerts(
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    _: User = Depends(require("inventory", "read")),
) -> dict[str, Any]:
    alerts = inventory.stock_alerts(session, config)
    return {
        kind: [
            {
                "id": p.id,
                "sku": p.sku,
                "name": p.name,
                "stock": p.stock,
                "min_stock": p.min_stock,
                "expiry_date": p.expiry_date,
                "status": stock_status(p),
            }
            for p in products
        ]
        for kind, products in alerts.items()
    }


@router.post("/stock/{product_id}/adjust", response_model=StockMovementOut, status_code=201)
def adjust_stock(
    product_id: str,
    data: StockAdjustmentIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("inventory", "write")),
):
    return inventory.adjust_stock(session, product_id, data, user.id, config)


@router.post("/stock/{product_id}/count", response_model=StockMovementOut | None)
def count_stock(
    product_id: str,
    data: StockCountIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("inventory", "write")),
):
    """Set stock to a physical count; ``null`` when it already matched."""
    return inventory.adjust_stock_to(session, product_id, data.counted_quantity, data.reason, user.id, config)

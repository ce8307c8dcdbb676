"""Categories, products and stock movements."""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from fbms.backend.core.errors import ConflictError, Issue, NotFoundError, StockError, ValidationError
from fbms.backend.core.inventory.costing import weighted_average_cost
from fbms.backend.core.inventory.stock_validation import validate_stock_update
from fbms.backend.core.utils.money import money, to_decimal
from fbms.backend.db.models import Category, Product, StockMovement
from fbms.backend.schemas.inventory import (
    CategoryIn,
    ProductIn,
    ProductUpdate,
    StockAdjustmentIn,
)
from fbms.backend.services import audit

logger = logging.getLogger(__name__)

SKU_RE = re.compile(r"^[A-Z0-9][A-Z0-9-]{1,49}$")
MOVEMENT_TYPES = ("stock_in", "stock_out", "adjustment", "sale", "return", "damage", "purchase_receipt")
_OUTBOUND = ("stock_out", "damage", "sale")
_PRODUCT_FIELDS = ("name", "sku", "barcode", "price", "cost", "stock", "min_stock", "is_active")


def _prevent_negative(config: dict[str, Any] | None) -> bool:
    return bool((config or {}).get("inventory", {}).get("prevent_negative_stock", True))


# ── Categories ──────────────────────────────────────────────────────────────


def list_categories(session: Session, active_only: bool = False) -> list[Category]:
    stmt = select(Category).order_by(Category.name)
    if active_only:
        stmt = stmt.where(Category.is_active.is_(True))
    return list(session.scalars(stmt))


def get_category(session: Session, category_id: str) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


def create_category(session: Session, data: CategoryIn, user_id: str | None = None) -> Category:
    name = data.name.strip()
    if session.scalar(select(Category).where(func.lower(Category.name) == name.lower())):
        raise ConflictError(f"Category '{name}' already exists")
    category = Category(name=name, description=data.description, is_active=data.is_active)
    session.add(category)
    session.flush()
    audit.record(session, user_id, "create", "category", category.id, None, {"name": name})
    return category


def update_category(session: Session, category_id: str, data: CategoryIn, user_id: str | None = None) -> Category:
    category = get_category(session, category_id)
    name = data.name.strip()
    clash = session.scalar(
        select(Category).where(func.lower(Category.name) == name.lower(), Category.id != category_id)
    )
    if clash:
        raise ConflictError(f"Category '{name}' already exists")
    category.name = name
    category.description = data.description
    category.is_active = data.is_active
    session.flush()
    audit.record(session, user_id, "update", "category", category.id, None, {"name": name})
    return category


def delete_category(session: Session, category_id: str, user_id: str | None = None) -> None:
    category = get_category(session, category_id)
    in_use = session.scalar(
        select(func.count(Product.id)).where(Product.category_id == category_id, Product.is_active.is_(True))
    )
    if in_use:
        raise ConflictError(f"Category '{category.name}' is used by {in_use} active products")
    session.delete(category)
    session.flush()
    audit.record(session, user_id, "delete", "category", category_id)


# ── Products ────────────────────────────────────────────────────────────────


def _validate_product_fields(values: dict[str, Any]) -> list[Issue]:
    issues = []
    if "sku" in values and not SKU_RE.match(values["sku"]):
        issues.append(Issue("sku", "SKU must be 2-50 letters, digits or dashes", "INVALID_SKU"))
    for field in ("price", "cost"):
        if values.get(field) is not None and to_decimal(values[field]) < 0:
            issues.append(Issue(field, f"{field.capitalize()} cannot be negative", "NEGATIVE_VALUE"))
    for field in ("min_stock", "reorder_quantity"):
        if values.get(field) is not None and values[field] < 0:
            issues.append(Issue(field, f"{field} cannot be negative", "NEGATIVE_VALUE"))
    if values.get("stock") is not None and values["stock"] < 0:
        issues.append(Issue("stock", "Opening stock cannot be negative", "NEGATIVE_VALUE"))
    return issues


def _check_unique(session: Session, sku: str | None, barcode: str | None, exclude_id: str | None = None) -> None:
    if sku:
        stmt = select(Product.id).where(Product.sku == sku)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if session.scalar(stmt):
            raise ConflictError(f"SKU {sku} is already in use")
    if barcode:
        stmt = select(Product.id).where(Product.barcode == barcode)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if session.scalar(stmt):
            raise ConflictError(f"Barcode {barcode} is already in use")


def get_product(session: Session, product_id: str) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def find_by_barcode(session: Session, barcode: str) -> Product:
    product = session.scalar(select(Product).where(Product.barcode == barcode))
    if product is None:
        raise NotFoundError("Product", barcode)
    return product


def list_products(
    session: Session,
    search: str | None = None,
    category_id: str | None = None,
    active_only: bool = True,
) -> list[Product]:
    stmt = select(Product)
    if active_only:
        stmt = stmt.where(Product.is_active.is_(True))
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    if search:
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Product.name).like(term),
                func.lower(Product.sku).like(term),
                func.lower(func.coalesce(Product.barcode, "")).like(term),
            )
        )
    return list(session.scalars(stmt.order_by(Product.name)))


def create_product(
    session: Session, data: ProductIn, user_id: str | None = None
) -> Product:
    values = data.model_dump()
    values["sku"] = values["sku"].strip().upper()
    values["barcode"] = (values.get("barcode") or "").strip() or None
    issues = _validate_product_fields(values)
    if issues:
        raise ValidationError("Invalid product", issues)
    if values.get("category_id"):
        get_category(session, values["category_id"])
    _check_unique(session, values["sku"], values["barcode"])

    opening = values.pop("stock")
    product = Product(**values, stock=0)
    product.price = money(product.price)
    session.add(product)
    session.flush()

    if opening:
        record_movement(
            session, product, "stock_in", opening, unit_cost=product.cost,
            reason="Opening stock", user_id=user_id,
        )
    audit.record(session, user_id, "create", "product", product.id, None, audit.snapshot(product, _PRODUCT_FIELDS))
    logger.info("Created product %s (%s)", product.sku, product.name)
    return product


def update_product(
    session: Session, product_id: str, data: ProductUpdate, user_id: str | None = None
) -> Product:
    """Update product details. Stock is changed only through movements."""
    product = get_product(session, product_id)
    changes = data.model_dump(exclude_unset=True)
    if "sku" in changes and changes["sku"]:
        changes["sku"] = changes["sku"].strip().upper()
    if "barcode" in changes:
        changes["barcode"] = (changes["barcode"] or "").strip() or None
    issues = _validate_product_fields(changes)
    if issues:
        raise ValidationError("Invalid product", issues)
    if changes.get("category_id"):
        get_category(session, changes["category_id"])
    _check_unique(session, changes.get("sku"), changes.get("barcode"), exclude_id=product.id)

    old = audit.snapshot(product, _PRODUCT_FIELDS)
    for key, value in changes.items():
        if key == "price":
            value = money(value)
        setattr(product, key, value)
    session.flush()
    audit.record(session, user_id, "update", "product", product.id, old, audit.snapshot(product, _PRODUCT_FIELDS))
    return product


def delete_product(session: Session, product_id: str, user_id: str | None = None) -> Product:
    """Soft delete: sales history keeps pointing at the product."""
    product = get_product(session, product_id)
    product.is_active = False
    session.flush()
    audit.record(session, user_id, "delete", "product", product.id)
    return product


# ── Stock movements ─────────────────────────────────────────────────────────


def record_movement(
    session: Session,
    product: Product,
    movement_type: str,
    quantity: int,
    unit_cost=None,
    reason: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    user_id: str | None = None,
    config: dict[str, Any] | None = None,
) -> StockMovement:
    """
    Apply a signed stock change and log it.

    ``quantity`` is signed for ``adjustment``; for the other types its sign
    is taken from the movement type.

    Raises:
        ValidationError: Unknown type or zero quantity
        StockError: Result would be negative while negatives are prevented
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(
            f"Unknown movement type: {movement_type}",
            [Issue("movement_type", "Unknown movement type", "INVALID_TYPE")],
        )
    if movement_type == "adjustment":
        change = quantity
    elif movement_type in _OUTBOUND:
        change = -abs(quantity)
    else:
        change = abs(quantity)

    result = validate_stock_update(product, change, prevent_negative=_prevent_negative(config))
    if not result.is_valid:
        issue = result.errors[0]
        if issue.code == "INVALID_QUANTITY":
            raise ValidationError(issue.message, [Issue("quantity", issue.message, issue.code)])
        raise StockError(issue.message, [e.to_dict() for e in result.errors])

    cost = to_decimal(unit_cost if unit_cost is not None else product.cost)
    previous = product.stock
    product.stock = previous + change
    movement = StockMovement(
        product_id=product.id,
        product_name=product.name,
        product_sku=product.sku,
        movement_type=movement_type,
        quantity=change,
        previous_stock=previous,
        new_stock=product.stock,
        unit_cost=cost,
        total_value=money(abs(change) * cost),
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        performed_by=user_id,
    )
    session.add(movement)
    session.flush()
    for warning in result.warnings:
        logger.info(warning.message)
    return movement


def adjust_stock(
    session: Session,
    product_id: str,
    data: StockAdjustmentIn,
    user_id: str | None = None,
    config: dict[str, Any] | None = None,
) -> StockMovement:
    product = get_product(session, product_id)
    movement = record_movement(
        session,
        product,
        data.movement_type,
        data.quantity,
        unit_cost=data.unit_cost,
        reason=data.reason,
        reference_type="manual",
        user_id=user_id,
        config=config,
    )
    audit.record(
        session, user_id, "stock_" + data.movement_type, "product", product.id,
        {"stock": movement.previous_stock}, {"stock": movement.new_stock},
    )
    return movement


def adjust_stock_to(
    session: Session,
    product_id: str,
    counted_quantity: int,
    reason: str | None = None,
    user_id: str | None = None,
    config: dict[str, Any] | None = None,
) -> StockMovement | None:
    """Set stock to a physical count; returns None when nothing changed."""
    if counted_quantity < 0:
        raise ValidationError(
            "Counted quantity cannot be negative",
            [Issue("counted_quantity", "Must be zero or more", "INVALID_QUANTITY")],
        )
    product = get_product(session, product_id)
    delta = counted_quantity - product.stock
    if delta == 0:
        return None
    return record_movement(
        session, product, "adjustment", delta, reason=reason or "Physical count",
        reference_type="stock_count", user_id=user_id, config=config,
    )


def receive_into_stock(
    session: Session,
    product: Product,
    quantity: int,
    unit_cost,
    reference_id: str | None = None,
    user_id: str | None = None,
) -> StockMovement:
    """Stock in purchased units, blending their cost into the average cost."""
    update = weighted_average_cost(max(product.stock, 0), product.cost, quantity, unit_cost)
    product.cost = update.new_cost
    return record_movement(
        session, product, "purchase_receipt", quantity, unit_cost=unit_cost,
        reason="Purchase order receipt", reference_type="purchase_order",
        reference_id=reference_id, user_id=user_id,
    )


def list_movements(
    session: Session, product_id: str | None = None, movement_type: str | None = None, limit: int = 200
) -> list[StockMovement]:
    stmt = select(StockMovement)
    if product_id:
        stmt = stmt.where(StockMovement.product_id == product_id)
    if movement_type:
        stmt = stmt.where(StockMovement.movement_type == movement_type)
    return list(session.scalars(stmt.order_by(StockMovement.created_at.desc()).limit(limit)))


# ── Alerts ──────────────────────────────────────────────────────────────────


def stock_alerts(session: Session, config: dict[str, Any] | None = None, today: date | None = None) -> dict[str, list[Product]]:
    days = int((config or {}).get("inventory", {}).get("near_expiry_days", 30))
    today = today or date.today()
    products = list_products(session)
    return {
        "low_stock": [p for p in products if 0 < p.stock <= p.min_stock],
        "out_of_stock": [p for p in products if p.stock <= 0],
        "near_expiry": [
            p for p in products
            if p.expiry_date is not None and p.expiry_date <= today + timedelta(days=days)
        ],
    }


def stock_value(products: list[Product]) -> Decimal:
    return money(sum((p.stock * to_decimal(p.cost) for p in products), Decimal(0)))

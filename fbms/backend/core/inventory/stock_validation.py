"""
Stock availability checks used before sales and manual stock updates.

All functions are pure: they read product snapshots (anything exposing
``id``, ``name``, ``stock``, ``min_stock`` and optionally
``reorder_quantity``) and return a :class:`StockValidationResult` without
touching the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
NEGATIVE_STOCK = "NEGATIVE_STOCK"
PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
INVALID_QUANTITY = "INVALID_QUANTITY"


@dataclass
class StockIssue:
    product_id: str
    product_name: str
    requested_quantity: int
    available_stock: int
    code: str
    message: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.product_id,
            "product_name": self.product_name,
            "requested_quantity": self.requested_quantity,
            "available_stock": self.available_stock,
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class StockWarning:
    product_id: str
    product_name: str
    current_stock: int
    minimum_stock: int
    message: str
    recommended_reorder: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "message": self.message,
            "recommended_reorder": self.recommended_reorder,
        }


@dataclass
class StockValidationResult:
    is_valid: bool = True
    errors: list[StockIssue] = field(default_factory=list)
    warnings: list[StockWarning] = field(default_factory=list)

    def merge(self, other: StockValidationResult) -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.is_valid = not self.errors


def recommended_reorder(product) -> int:
    reorder = getattr(product, "reorder_quantity", None)
    if reorder:
        return int(reorder)
    return max(int(product.min_stock or 0) * 2, 1)


def _low_stock_warning(product, remaining: int) -> StockWarning | None:
    minimum = int(product.min_stock or 0)
    if minimum <= 0 or remaining > minimum:
        return None
    return StockWarning(
        product_id=product.id,
        product_name=product.name,
        current_stock=remaining,
        minimum_stock=minimum,
        message=f"{product.name} will be at or below minimum stock ({remaining}/{minimum})",
        recommended_reorder=recommended_reorder(product),
    )


def validate_product_stock(
    product, requested_quantity: int, prevent_negative: bool = False
) -> StockValidationResult:
    """
    Check that ``requested_quantity`` units can be taken out of stock.

    Args:
        product: Product snapshot, or None if it could not be found
        requested_quantity: Units requested
        prevent_negative: Also flag a sale that would drive stock negative

    Returns:
        StockValidationResult
    """
    result = StockValidationResult()

    if product is None:
        result.errors.append(
            StockIssue(
                product_id="",
                product_name="Unknown product",
                requested_quantity=requested_quantity,
                available_stock=0,
                code=PRODUCT_NOT_FOUND,
                message="Product not found",
            )
        )
        result.is_valid = False
        return result

    stock = int(product.stock or 0)

    if requested_quantity <= 0:
        result.errors.append(
            StockIssue(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=requested_quantity,
                available_stock=stock,
                code=INVALID_QUANTITY,
                message="Quantity must be greater than 0",
            )
        )
    elif requested_quantity > stock:
        result.errors.append(
            StockIssue(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=requested_quantity,
                available_stock=stock,
                code=INSUFFICIENT_STOCK,
                message=(
                    f"Insufficient stock for {product.name}: "
                    f"requested {requested_quantity}, available {stock}"
                ),
                suggestion=(
                    f"Reduce quantity to {stock}" if stock > 0 else "Product is out of stock"
                ),
            )
        )
        if prevent_negative:
            result.errors.append(
                StockIssue(
                    product_id=product.id,
                    product_name=product.name,
                    requested_quantity=requested_quantity,
                    available_stock=stock,
                    code=NEGATIVE_STOCK,
                    message=f"Sale would leave {product.name} at {stock - requested_quantity}",
                )
            )
    else:
        warning = _low_stock_warning(product, stock - requested_quantity)
        if warning:
            result.warnings.append(warning)

    result.is_valid = not result.errors
    return result


def validate_cart_stock(
    lines: Iterable[tuple[str, int]],
    products: Mapping[str, Any],
    prevent_negative: bool = False,
) -> StockValidationResult:
    """Validate every ``(product_id, quantity)`` line; quantities of repeated ids add up."""
    totals: dict[str, int] = {}
    for product_id, quantity in lines:
        totals[product_id] = totals.get(product_id, 0) + int(quantity)

    result = StockValidationResult()
    for product_id, quantity in totals.items():
        product = products.get(product_id)
        line_result = validate_product_stock(product, quantity, prevent_negative)
        if product is None:
            for issue in line_result.errors:
                issue.product_id = product_id
        result.merge(line_result)
    return result


def validate_stock_update(
    product, change: int, prevent_negative: bool = True
) -> StockValidationResult:
    """Validate a signed stock change (positive adds, negative removes)."""
    result = StockValidationResult()
    if product is None:
        return validate_product_stock(None, abs(change) or 1)

    stock = int(product.stock or 0)
    new_stock = stock + change

    if change == 0:
        result.errors.append(
            StockIssue(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=change,
                available_stock=stock,
                code=INVALID_QUANTITY,
                message="Stock change must not be zero",
            )
        )
    elif new_stock < 0 and prevent_negative:
        result.errors.append(
            StockIssue(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=change,
                available_stock=stock,
                code=NEGATIVE_STOCK,
                message=f"Stock for {product.name} cannot go below zero (would be {new_stock})",
                suggestion=f"Maximum removable quantity is {stock}",
            )
        )
    else:
        warning = _low_stock_warning(product, new_stock)
        if warning and change < 0:
            result.warnings.append(warning)

    result.is_valid = not result.errors
    return result


def stock_status(product) -> str:
    stock = int(product.stock or 0)
    if stock <= 0:
        return "out_of_stock"
    if stock <= int(product.min_stock or 0):
        return "low_stock"
    return "in_stock"

"""
Receiving tolerance checks.

Quantities delivered against a purchase order line are compared with what
was ordered. Tolerances come from the ``purchasing`` config section
(``over_receiving``, ``under_receiving`` and ``expiry``) and may be given as
percentages of the ordered quantity or as absolute units.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)

ITEM_CONDITIONS = ("good", "damaged", "expired", "rejected")


@dataclass
class ReceiptLine:
    """One line of a delivery being received."""

    item_id: str
    product_id: str
    product_name: str
    ordered_quantity: int
    received_quantity: int
    previously_received: int = 0
    condition: str = "good"
    expiry_date: date | None = None
    unit_cost: Decimal | None = None
    notes: str | None = None

    @property
    def accepted_quantity(self) -> int:
        """Units that go into stock; damaged, expired and rejected units do not."""
        return self.received_quantity if self.condition == "good" else 0


@dataclass
class ReceivingMessage:
    code: str
    message: str
    field: str | None = None
    blocking: bool = False
    recommendation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "blocking": self.blocking,
            "recommendation": self.recommendation,
        }


@dataclass
class ReceivingValidationResult:
    is_valid: bool = True
    can_proceed: bool = True
    requires_approval: bool = False
    required_roles: list[str] = field(default_factory=list)
    errors: list[ReceivingMessage] = field(default_factory=list)
    warnings: list[ReceivingMessage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "can_proceed": self.can_proceed,
            "requires_approval": self.requires_approval,
            "required_roles": self.required_roles,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


def _threshold(ordered: int, value, tolerance_type: str) -> float | None:
    if value is None:
        return None
    if tolerance_type == "percentage":
        return ordered * float(value) / 100
    return float(value)


def _require_approval(result: ReceivingValidationResult, roles) -> None:
    result.requires_approval = True
    for role in roles or []:
        if role not in result.required_roles:
            result.required_roles.append(role)


def _check_over(line: ReceiptLine, over: int, cfg: dict, result: ReceivingValidationResult) -> None:
    kind = cfg.get("tolerance_type", "percentage")
    tolerance = _threshold(line.ordered_quantity, cfg.get("tolerance_value", 0), kind)
    warning = _threshold(line.ordered_quantity, cfg.get("warning_threshold", 0), kind)
    block = _threshold(line.ordered_quantity, cfg.get("block_threshold"), kind)
    where = f"items.{line.item_id}.received_quantity"

    if block is not None and over > block:
        result.errors.append(
            ReceivingMessage(
                code="OVER_RECEIVING_BLOCKED",
                message=f"Over-receiving blocked: {over} units over ordered quantity for {line.product_name}",
                field=where,
                blocking=True,
            )
        )
    elif over > tolerance:
        if cfg.get("require_approval"):
            _require_approval(result, cfg.get("approval_roles"))
            result.warnings.append(
                ReceivingMessage(
                    code="OVER_RECEIVING_APPROVAL_REQUIRED",
                    message=f"Over-receiving requires approval: {over} units over tolerance for {line.product_name}",
                    field=where,
                    recommendation="Obtain approval from authorized personnel before proceeding",
                )
            )
        elif not cfg.get("auto_accept"):
            result.errors.append(
                ReceivingMessage(
                    code="OVER_RECEIVING_NOT_ALLOWED",
                    message=f"Over-receiving not allowed: {over} units over tolerance for {line.product_name}",
                    field=where,
                    blocking=True,
                )
            )
    elif over > warning:
        result.warnings.append(
            ReceivingMessage(
                code="OVER_RECEIVING_WARNING",
                message=f"Over-receiving warning: {over} units over ordered quantity for {line.product_name}",
                field=where,
                recommendation="Verify the received quantity is correct",
            )
        )


def _check_under(line: ReceiptLine, short: int, cfg: dict, result: ReceivingValidationResult) -> None:
    kind = cfg.get("tolerance_type", "percentage")
    tolerance = _threshold(line.ordered_quantity, cfg.get("tolerance_value", 0), kind)
    warning = _threshold(line.ordered_quantity, cfg.get("warning_threshold", 0), kind)
    where = f"items.{line.item_id}.received_quantity"

    if short > tolerance:
        if cfg.get("require_approval"):
            _require_approval(result, cfg.get("approval_roles"))
            result.warnings.append(
                ReceivingMessage(
                    code="UNDER_RECEIVING_APPROVAL_REQUIRED",
                    message=f"Under-receiving requires approval: {short} units short for {line.product_name}",
                    field=where,
                    recommendation="Obtain approval to close order with shortage",
                )
            )
        elif not cfg.get("auto_accept"):
            result.warnings.append(
                ReceivingMessage(
                    code="UNDER_RECEIVING_SIGNIFICANT",
                    message=f"Significant under-receiving: {short} units short for {line.product_name}",
                    field=where,
                    recommendation="Consider contacting supplier about shortage",
                )
            )
    elif short > warning:
        result.warnings.append(
            ReceivingMessage(
                code="UNDER_RECEIVING_WARNING",
                message=f"Under-receiving warning: {short} units short for {line.product_name}",
                field=where,
                recommendation="Verify if remaining items are expected",
            )
        )


def _check_expiry(line: ReceiptLine, cfg: dict, today: date, result: ReceivingValidationResult) -> None:
    days = (line.expiry_date - today).days
    where = f"items.{line.item_id}.expiry_date"

    if days < 0 and cfg.get("reject_expired", True):
        result.errors.append(
            ReceivingMessage(
                code="EXPIRED_ITEMS_REJECTED",
                message=f"Expired items rejected for {line.product_name} (expired {abs(days)} days ago)",
                field=where,
                blocking=True,
            )
        )
    elif days <= int(cfg.get("near_expiry_days", 7)):
        if cfg.get("near_expiry_requires_approval", True):
            _require_approval(result, cfg.get("approval_roles", ["manager"]))
            code = "NEAR_EXPIRY_APPROVAL_REQUIRED"
            recommendation = "Obtain approval to accept near-expiry items"
        else:
            code = "NEAR_EXPIRY_WARNING"
            recommendation = "Plan for quick turnover of these items"
        result.warnings.append(
            ReceivingMessage(
                code=code,
                message=f"{line.product_name} expires in {days} days",
                field=where,
                recommendation=recommendation,
            )
        )
    elif days <= int(cfg.get("warn_before_days", 30)):
        result.warnings.append(
            ReceivingMessage(
                code="EXPIRY_WARNING",
                message=f"Expiry warning for {line.product_name} (expires in {days} days)",
                field=where,
                recommendation="Monitor expiry date and prioritize usage",
            )
        )


def validate_receiving(
    lines: list[ReceiptLine],
    settings: dict[str, Any],
    is_partial: bool = False,
    today: date | None = None,
) -> ReceivingValidationResult:
    """
    Validate a delivery against the receiving tolerance settings.

    Args:
        lines: Lines being received
        settings: ``purchasing`` config section
        is_partial: More deliveries are expected, so shortages are not checked
        today: Reference date for expiry checks

    Returns:
        ReceivingValidationResult; ``can_proceed`` is true when there are no
        blocking errors. ``requires_approval`` still has to be satisfied by
        the caller.
    """
    today = today or date.today()
    over_cfg = settings.get("over_receiving", {})
    under_cfg = settings.get("under_receiving", {})
    expiry_cfg = settings.get("expiry", {})
    result = ReceivingValidationResult()

    if not lines:
        result.errors.append(
            ReceivingMessage(code="NO_ITEMS", message="Nothing to receive", blocking=True)
        )

    for line in lines:
        if line.condition not in ITEM_CONDITIONS:
            result.errors.append(
                ReceivingMessage(
                    code="INVALID_CONDITION",
                    message=f"Unknown item condition: {line.condition}",
                    field=f"items.{line.item_id}.condition",
                    blocking=True,
                )
            )
            continue
        if line.received_quantity < 0:
            result.errors.append(
                ReceivingMessage(
                    code="INVALID_QUANTITY",
                    message=f"Received quantity for {line.product_name} cannot be negative",
                    field=f"items.{line.item_id}.received_quantity",
                    blocking=True,
                )
            )
            continue

        total = line.previously_received + line.accepted_quantity
        variance = total - line.ordered_quantity
        if variance > 0 and over_cfg.get("enabled", True):
            _check_over(line, variance, over_cfg, result)
        if variance < 0 and not is_partial and under_cfg.get("enabled", True):
            _check_under(line, -variance, under_cfg, result)
        if line.expiry_date and expiry_cfg.get("enabled", True):
            _check_expiry(line, expiry_cfg, today, result)
        if line.condition == "damaged" and line.received_quantity > 0:
            result.warnings.append(
                ReceivingMessage(
                    code="DAMAGED_ITEMS",
                    message=f"{line.received_quantity} damaged units of {line.product_name} excluded from stock",
                    field=f"items.{line.item_id}.condition",
                    recommendation="Notify the supplier",
                )
            )

    if lines and all(line.received_quantity == 0 for line in lines):
        result.errors.append(
            ReceivingMessage(code="NO_QUANTITY", message="No quantities were received", blocking=True)
        )

    result.is_valid = not any(e.blocking for e in result.errors)
    result.can_proceed = result.is_valid
    if result.errors:
        logger.debug("Receiving blocked: %s", [e.code for e in result.errors])
    return result

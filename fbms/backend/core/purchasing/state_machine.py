"""
Purchase order lifecycle.

Statuses move only along ``VALID_TRANSITIONS``; ``cancelled`` and ``closed``
are final. Business rules on top of the graph are checked by
:func:`validate_transition`, which returns every problem it finds rather
than stopping at the first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from fbms.backend.core.errors import Issue

DRAFT = "draft"
PENDING_APPROVAL = "pending_approval"
APPROVED = "approved"
SENT_TO_SUPPLIER = "sent_to_supplier"
PARTIALLY_RECEIVED = "partially_received"
FULLY_RECEIVED = "fully_received"
CANCELLED = "cancelled"
CLOSED = "closed"

VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    DRAFT: (PENDING_APPROVAL, CANCELLED),
    PENDING_APPROVAL: (APPROVED, DRAFT, CANCELLED),
    APPROVED: (SENT_TO_SUPPLIER, PARTIALLY_RECEIVED, FULLY_RECEIVED, CANCELLED),
    SENT_TO_SUPPLIER: (PARTIALLY_RECEIVED, FULLY_RECEIVED, CANCELLED),
    PARTIALLY_RECEIVED: (FULLY_RECEIVED,),
    FULLY_RECEIVED: (CLOSED,),
    CANCELLED: (),
    CLOSED: (),
}

STATUSES = tuple(VALID_TRANSITIONS)
RECEIVABLE_STATUSES = (APPROVED, SENT_TO_SUPPLIER, PARTIALLY_RECEIVED)


@dataclass
class TransitionContext:
    performed_by: str | None
    reason: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, ())


def valid_transitions(status: str) -> tuple[str, ...]:
    return VALID_TRANSITIONS.get(status, ())


def is_final(status: str) -> bool:
    return not VALID_TRANSITIONS.get(status)


def validate_transition(order: Any, new_status: str, context: TransitionContext) -> list[Issue]:
    """
    Check a status change against the graph and the business rules.

    Args:
        order: Purchase order exposing ``status``, ``items``,
            ``total_amount`` and ``supplier_id``
        new_status: Requested status
        context: Who is making the change

    Returns:
        List of issues; empty when the transition is allowed
    """
    issues: list[Issue] = []
    current = order.status

    if new_status not in VALID_TRANSITIONS:
        return [Issue("status", f"Unknown status: {new_status}", "UNKNOWN_STATUS")]

    if not can_transition(current, new_status):
        issues.append(
            Issue("status", f"Invalid transition from {current} to {new_status}", "INVALID_TRANSITION")
        )

    if new_status == PENDING_APPROVAL:
        if not order.items:
            issues.append(
                Issue("items", "Purchase order must have at least one item before approval", "NO_ITEMS")
            )
        if Decimal(order.total_amount or 0) <= 0:
            issues.append(
                Issue("total", "Purchase order total must be greater than zero", "INVALID_TOTAL")
            )
        if not order.supplier_id:
            issues.append(
                Issue("supplier_id", "Supplier must be selected before approval", "NO_SUPPLIER")
            )

    if new_status == APPROVED and not context.performed_by:
        issues.append(Issue("performed_by", "Approver information is required", "NO_APPROVER"))

    if new_status in (PARTIALLY_RECEIVED, FULLY_RECEIVED) and current not in RECEIVABLE_STATUSES:
        issues.append(
            Issue(
                "status",
                "Purchase order must be approved or sent to supplier before receiving",
                "NOT_READY_FOR_RECEIVING",
            )
        )

    if new_status == CANCELLED and current in (FULLY_RECEIVED, CLOSED):
        issues.append(
            Issue("status", "Cannot cancel a received or closed purchase order", "CANNOT_CANCEL_RECEIVED")
        )

    return issues


def receiving_status(order: Any) -> str:
    """Status implied by the received quantities on each line."""
    if order.items and all(item.received_quantity >= item.quantity for item in order.items):
        return FULLY_RECEIVED
    return PARTIALLY_RECEIVED

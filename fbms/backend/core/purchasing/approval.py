"""
Purchase order permissions and approval thresholds.

Who may do what to a purchase order depends on the user's role and on the
order's status; how many approvals an order needs depends on its total.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from fbms.backend.core.purchasing import state_machine as sm

PO_ACTIONS = ("create", "view", "edit", "approve", "receive", "cancel", "view_history")


@dataclass(frozen=True)
class RolePermissions:
    actions: frozenset[str]
    max_approval_amount: Decimal | None = None


PO_ROLE_PERMISSIONS: dict[str, RolePermissions] = {
    "admin": RolePermissions(frozenset(PO_ACTIONS)),
    "manager": RolePermissions(frozenset(PO_ACTIONS), Decimal("100000")),
    "cashier": RolePermissions(frozenset({"view"})),
    "accountant": RolePermissions(frozenset({"view", "view_history"})),
    "employee": RolePermissions(frozenset()),
}

STATUS_ACTIONS: dict[str, frozenset[str]] = {
    sm.DRAFT: frozenset({"view", "edit", "approve", "cancel"}),
    sm.PENDING_APPROVAL: frozenset({"view", "edit", "approve", "cancel"}),
    sm.APPROVED: frozenset({"view", "receive", "cancel", "view_history"}),
    sm.SENT_TO_SUPPLIER: frozenset({"view", "receive", "cancel", "view_history"}),
    sm.PARTIALLY_RECEIVED: frozenset({"view", "receive", "view_history"}),
    sm.FULLY_RECEIVED: frozenset({"view", "view_history"}),
    sm.CANCELLED: frozenset({"view", "view_history"}),
    sm.CLOSED: frozenset({"view", "view_history"}),
}


def has_po_permission(
    role: str,
    action: str,
    status: str | None = None,
    amount=None,
    manager_limit=None,
) -> bool:
    """
    Whether ``role`` may perform ``action``.

    Args:
        role: User role
        action: One of ``PO_ACTIONS``
        status: Current order status, when acting on an existing order
        amount: Order total, checked against the role's approval limit
        manager_limit: Overrides the manager's default approval limit
    """
    perms = PO_ROLE_PERMISSIONS.get(role)
    if perms is None or action not in perms.actions:
        return False
    if status is not None and action not in STATUS_ACTIONS.get(status, frozenset()):
        return False
    if action == "approve" and amount is not None:
        limit = perms.max_approval_amount
        if role == "manager" and manager_limit is not None:
            limit = Decimal(str(manager_limit))
        if limit is not None and Decimal(str(amount)) > limit:
            return False
    return True


# ── Thresholds ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ApprovalThreshold:
    name: str
    min_amount: Decimal
    max_amount: Decimal | None
    required_roles: tuple[str, ...]
    required_approvers: int


APPROVAL_THRESHOLDS: tuple[ApprovalThreshold, ...] = (
    ApprovalThreshold("Small Orders", Decimal("0"), Decimal("10000"), ("manager", "admin"), 1),
    ApprovalThreshold("Medium Orders", Decimal("10000.01"), Decimal("50000"), ("manager", "admin"), 2),
    ApprovalThreshold("Large Orders", Decimal("50000.01"), None, ("admin",), 2),
)


def threshold_for(amount) -> ApprovalThreshold:
    value = Decimal(str(amount))
    for threshold in APPROVAL_THRESHOLDS:
        if threshold.max_amount is None or value <= threshold.max_amount:
            return threshold
    return APPROVAL_THRESHOLDS[-1]


@dataclass(frozen=True)
class ApprovalStatus:
    threshold: ApprovalThreshold
    approvers: tuple[str, ...]
    rejected: bool

    @property
    def remaining(self) -> int:
        return max(self.threshold.required_approvers - len(self.approvers), 0)

    @property
    def complete(self) -> bool:
        return not self.rejected and self.remaining == 0


def evaluate_approvals(amount, approvals: Iterable[Any]) -> ApprovalStatus:
    """
    Tally approval decisions for the current approval round.

    Only ``approved`` decisions from roles the threshold accepts count, and
    each approver counts once.
    """
    threshold = threshold_for(amount)
    approvers: list[str] = []
    rejected = False
    for approval in approvals:
        if approval.decision == "rejected":
            rejected = True
        elif (
            approval.decision == "approved"
            and approval.approver_role in threshold.required_roles
            and approval.approver_id not in approvers
        ):
            approvers.append(approval.approver_id)
    return ApprovalStatus(threshold=threshold, approvers=tuple(approvers), rejected=rejected)

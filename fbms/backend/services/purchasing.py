"""Suppliers, purchase orders, approvals and receiving."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fbms.backend.core.errors import (
    Issue,
    NotFoundError,
    PermissionDeniedError,
    TransitionError,
    ValidationError,
)
from fbms.backend.core.inventory.costing import cost_variance
from fbms.backend.core.purchasing import state_machine as sm
from fbms.backend.core.purchasing.approval import evaluate_approvals, has_po_permission
from fbms.backend.core.purchasing.tolerance import ReceiptLine, validate_receiving
from fbms.backend.core.utils.money import money, to_decimal
from fbms.backend.db.models import (
    POApproval,
    POStatusTransition,
    PriceVariance,
    PurchaseOrder,
    PurchaseOrderItem,
    ReceivingRecord,
    Supplier,
    User,
    utcnow,
)
from fbms.backend.db.session import next_sequence
from fbms.backend.schemas.purchasing import PurchaseOrderIn, ReceiveIn, SupplierIn
from fbms.backend.services import accounting, audit, inventory, settings

logger = logging.getLogger(__name__)


def _purchasing_cfg(config: dict[str, Any]) -> dict[str, Any]:
    return config.get("purchasing", {})


def _require(user: User, action: str, order: PurchaseOrder | None = None, amount=None, config=None) -> None:
    limit = _purchasing_cfg(config or {}).get("manager_approval_limit")
    status = order.status if order is not None else None
    if not has_po_permission(user.role, action, status, amount, limit):
        where = f" a {status} order" if status else " purchase orders"
        raise PermissionDeniedError(f"Role '{user.role}' may not {action}{where}")


# ── Suppliers ───────────────────────────────────────────────────────────────


def get_supplier(session: Session, supplier_id: str) -> Supplier:
    supplier = session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def list_suppliers(session: Session, active_only: bool = True) -> list[Supplier]:
    stmt = select(Supplier).order_by(Supplier.name)
    if active_only:
        stmt = stmt.where(Supplier.is_active.is_(True))
    return list(session.scalars(stmt))


def create_supplier(session: Session, data: SupplierIn, user_id: str | None = None) -> Supplier:
    supplier = Supplier(**data.model_dump())
    session.add(supplier)
    session.flush()
    audit.record(session, user_id, "create", "supplier", supplier.id, None, {"name": supplier.name})
    return supplier


def update_supplier(session: Session, supplier_id: str, data: SupplierIn, user_id: str | None = None) -> Supplier:
    supplier = get_supplier(session, supplier_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(supplier, key, value)
    session.flush()
    audit.record(session, user_id, "update", "supplier", supplier.id, None, {"name": supplier.name})
    return supplier


def delete_supplier(session: Session, supplier_id: str, user_id: str | None = None) -> Supplier:
    supplier = get_supplier(session, supplier_id)
    supplier.is_active = False
    session.flush()
    audit.record(session, user_id, "delete", "supplier", supplier.id)
    return supplier


# ── Purchase orders ─────────────────────────────────────────────────────────


def get_purchase_order(session: Session, order_id: str) -> PurchaseOrder:
    order = session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError("Purchase order", order_id)
    return order


def list_purchase_orders(
    session: Session, status: str | None = None, supplier_id: str | None = None
) -> list[PurchaseOrder]:
    stmt = select(PurchaseOrder)
    if status:
        stmt = stmt.where(PurchaseOrder.status == status)
    if supplier_id:
        stmt = stmt.where(PurchaseOrder.supplier_id == supplier_id)
    return list(session.scalars(stmt.order_by(PurchaseOrder.created_at.desc())))


def _apply_items(session: Session, order: PurchaseOrder, data: PurchaseOrderIn, config: dict[str, Any]) -> None:
    order.items.clear()
    session.flush()
    subtotal = Decimal("0")
    for position, item in enumerate(data.items):
        product = inventory.get_product(session, item.product_id)
        line_total = money(item.quantity * to_decimal(item.unit_cost))
        subtotal += line_total
        order.items.append(
            PurchaseOrderItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item.quantity,
                unit_cost=money(item.unit_cost),
                total_cost=line_total,
            )
        )
    order.subtotal = money(subtotal)
    order.tax_amount = money(subtotal * settings.vat_rate(config))
    order.total_amount = money(order.subtotal + order.tax_amount)


def _set_supplier(session: Session, order: PurchaseOrder, supplier_id: str | None) -> None:
    if supplier_id:
        supplier = get_supplier(session, supplier_id)
        order.supplier_id = supplier.id
        order.supplier_name = supplier.name
    else:
        order.supplier_id = None
        order.supplier_name = None


def create_purchase_order(
    session: Session, data: PurchaseOrderIn, user: User, config: dict[str, Any]
) -> PurchaseOrder:
    _require(user, "create", config=config)
    now = utcnow()
    day = now.strftime("%y%m%d")
    order = PurchaseOrder(
        po_number=f"PO{day}{next_sequence(session, f'po-{day}'):04d}",
        status=sm.DRAFT,
        expected_delivery_date=data.expected_delivery_date,
        notes=data.notes,
        created_by=user.id,
    )
    _set_supplier(session, order, data.supplier_id)
    session.add(order)
    _apply_items(session, order, data, config)
    session.flush()
    audit.record(session, user.id, "create", "purchase_order", order.id, None,
                 {"po_number": order.po_number, "total_amount": order.total_amount})
    logger.info("Created %s (%s)", order.po_number, order.total_amount)
    return order


def update_purchase_order(
    session: Session, order_id: str, data: PurchaseOrderIn, user: User, config: dict[str, Any]
) -> PurchaseOrder:
    order = get_purchase_order(session, order_id)
    _require(user, "edit", order, config=config)
    if order.status != sm.DRAFT:
        raise TransitionError(f"Only draft orders can be edited (order is {order.status})")
    _set_supplier(session, order, data.supplier_id)
    order.expected_delivery_date = data.expected_delivery_date
    order.notes = data.notes
    _apply_items(session, order, data, config)
    session.flush()
    audit.record(session, user.id, "update", "purchase_order", order.id)
    return order


def transition(
    session: Session, order: PurchaseOrder, new_status: str, user: User | None, reason: str | None = None
) -> POStatusTransition:
    """Move an order along the state machine and record the change."""
    context = sm.TransitionContext(performed_by=user.id if user else None, reason=reason)
    issues = sm.validate_transition(order, new_status, context)
    if issues:
        raise TransitionError(issues[0].message, issues)

    record = POStatusTransition(
        purchase_order_id=order.id,
        from_status=order.status,
        to_status=new_status,
        performed_by=context.performed_by,
        reason=reason,
    )
    order.transitions.append(record)
    order.status = new_status
    if new_status == sm.FULLY_RECEIVED and order.received_date is None:
        order.received_date = utcnow()
    session.flush()
    audit.record(session, context.performed_by, "status_change", "purchase_order", order.id,
                 {"status": record.from_status}, {"status": new_status, "reason": reason})
    return record


def submit_for_approval(session: Session, order_id: str, user: User, config: dict[str, Any]) -> PurchaseOrder:
    order = get_purchase_order(session, order_id)
    _require(user, "edit", order, config=config)
    transition(session, order, sm.PENDING_APPROVAL, user, "Submitted for approval")
    return order


def record_approval(
    session: Session,
    order_id: str,
    user: User,
    config: dict[str, Any],
    decision: str = "approved",
    comments: str | None = None,
) -> PurchaseOrder:
    """
    Add an approval decision to a pending order.

    The order is approved once the threshold's number of distinct approvers
    have approved; a single rejection sends it back to draft.
    """
    order = get_purchase_order(session, order_id)
    if order.status != sm.PENDING_APPROVAL:
        raise TransitionError(f"Order is {order.status}, not pending approval")
    _require(user, "approve", order, amount=order.total_amount, config=config)

    round_start = max(
        (t.created_at for t in order.transitions if t.to_status == sm.PENDING_APPROVAL), default=None
    )
    current = [a for a in order.approvals if round_start is None or a.created_at >= round_start]
    if decision == "approved" and any(a.approver_id == user.id and a.decision == "approved" for a in current):
        raise ValidationError("You have already approved this order", [Issue("approver_id", user.id, "DUPLICATE_APPROVAL")])

    threshold = evaluate_approvals(order.total_amount, []).threshold
    if decision == "approved" and user.role not in threshold.required_roles:
        raise PermissionDeniedError(f"{threshold.name} need approval from: {', '.join(threshold.required_roles)}")

    approval = POApproval(
        purchase_order_id=order.id,
        approver_id=user.id,
        approver_role=user.role,
        decision=decision,
        comments=comments,
        created_at=utcnow(),
    )
    order.approvals.append(approval)
    session.flush()

    status = evaluate_approvals(order.total_amount, current + [approval])
    if status.rejected:
        transition(session, order, sm.DRAFT, user, comments or "Rejected")
    elif status.complete:
        transition(session, order, sm.APPROVED, user, f"{threshold.name} approved")
        order.approved_by = user.id
        order.approved_at = utcnow()
        session.flush()
    return order


def send_to_supplier(session: Session, order_id: str, user: User, config: dict[str, Any]) -> PurchaseOrder:
    order = get_purchase_order(session, order_id)
    _require(user, "edit", config=config)
    transition(session, order, sm.SENT_TO_SUPPLIER, user, "Sent to supplier")
    return order


def cancel_purchase_order(
    session: Session, order_id: str, user: User, config: dict[str, Any], reason: str | None = None
) -> PurchaseOrder:
    order = get_purchase_order(session, order_id)
    _require(user, "cancel", config=config)
    transition(session, order, sm.CANCELLED, user, reason or "Cancelled")
    return order


def close_purchase_order(session: Session, order_id: str, user: User, config: dict[str, Any]) -> PurchaseOrder:
    order = get_purchase_order(session, order_id)
    _require(user, "edit", config=config)
    transition(session, order, sm.CLOSED, user, "Closed")
    return order


# ── Receiving ───────────────────────────────────────────────────────────────


def receive_items(
    session: Session, order_id: str, data: ReceiveIn, user: User, config: dict[str, Any]
) -> ReceivingRecord:
    """
    Receive a delivery against an order.

    Accepted units go into stock at their received cost (weighted average
    costing); cost differences are logged as price variances; the order
    moves to partially or fully received. A ``final`` delivery checks the
    under-receiving tolerance and closes out a short order as fully received.
    """
    order = get_purchase_order(session, order_id)
    _require(user, "receive", order, config=config)
    if order.status not in sm.RECEIVABLE_STATUSES:
        raise TransitionError(f"Order is {order.status} and cannot be received")

    items = {item.id: item for item in order.items}
    lines: list[ReceiptLine] = []
    for entry in data.items:
        item = items.get(entry.item_id)
        if item is None:
            raise NotFoundError("Purchase order item", entry.item_id)
        lines.append(
            ReceiptLine(
                item_id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                ordered_quantity=item.quantity,
                received_quantity=entry.received_quantity,
                previously_received=item.received_quantity,
                condition=entry.condition,
                expiry_date=entry.expiry_date,
                unit_cost=entry.unit_cost if entry.unit_cost is not None else item.unit_cost,
                notes=entry.notes,
            )
        )

    checked = lines
    if data.final:
        # lines left out of the last delivery are short too
        delivered = {line.item_id for line in lines}
        checked = lines + [
            ReceiptLine(
                item_id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                ordered_quantity=item.quantity,
                received_quantity=0,
                previously_received=item.received_quantity,
            )
            for item in order.items
            if item.id not in delivered and item.received_quantity < item.quantity
        ]

    cfg = _purchasing_cfg(config)
    result = validate_receiving(checked, cfg, is_partial=not data.final)
    if not result.can_proceed:
        raise ValidationError(
            "Receiving blocked", [Issue(e.field or "items", e.message, e.code) for e in result.errors]
        )
    approver_roles = set(result.required_roles or ["manager"]) | {"admin"}
    if result.requires_approval and not (data.approved and user.role in approver_roles):
        raise PermissionDeniedError(
            "Receiving needs approval from: " + ", ".join(result.required_roles or ["manager"]),
            [w.to_dict() for w in result.warnings],
        )

    threshold = config.get("inventory", {}).get("significant_variance_pct", 10)
    total_value = Decimal("0")
    received = []
    for line in lines:
        item = items[line.item_id]
        accepted = line.accepted_quantity
        if accepted:
            product = inventory.get_product(session, item.product_id)
            expected_cost = to_decimal(product.cost)
            actual_cost = to_decimal(line.unit_cost)
            if expected_cost > 0 and actual_cost != expected_cost:
                variance = cost_variance(expected_cost, actual_cost, accepted, threshold)
                session.add(
                    PriceVariance(
                        product_id=product.id,
                        purchase_order_id=order.id,
                        expected_cost=variance.expected_cost,
                        actual_cost=variance.actual_cost,
                        variance=variance.variance,
                        variance_pct=variance.variance_pct,
                        quantity=accepted,
                        total_variance=variance.total_variance,
                        significant=variance.significant,
                    )
                )
                if variance.significant:
                    logger.warning(
                        "Significant cost variance on %s: %s%%", product.sku, variance.variance_pct
                    )
            inventory.receive_into_stock(session, product, accepted, actual_cost, order.id, user.id)
            item.received_quantity += accepted
            total_value += money(accepted * actual_cost)
        received.append(
            {
                "item_id": item.id,
                "product_id": item.product_id,
                "product_name": item.product_name,
                "received_quantity": line.received_quantity,
                "accepted_quantity": accepted,
                "condition": line.condition,
                "unit_cost": str(money(line.unit_cost)),
                "expiry_date": line.expiry_date.isoformat() if line.expiry_date else None,
            }
        )

    record = ReceivingRecord(
        purchase_order_id=order.id,
        received_by=user.id,
        items=received,
        warnings=[w.to_dict() for w in result.warnings],
        total_value=money(total_value),
        notes=data.notes,
    )
    session.add(record)
    session.flush()

    new_status = sm.receiving_status(order)
    reason = f"Receiving {record.id}"
    if data.final and new_status == sm.PARTIALLY_RECEIVED:
        short = sum(max(item.quantity - item.received_quantity, 0) for item in order.items)
        new_status = sm.FULLY_RECEIVED
        reason = f"Final receipt {record.id}, {short} units short"
        logger.info("Order %s closed out %s units short", order.po_number, short)
    if new_status != order.status:
        transition(session, order, new_status, user, reason)
    if total_value > 0:
        accounting.post_inventory_receipt(session, order, total_value, user.id)
    return record


def list_receiving_records(session: Session, order_id: str) -> list[ReceivingRecord]:
    get_purchase_order(session, order_id)
    stmt = (
        select(ReceivingRecord)
        .where(ReceivingRecord.purchase_order_id == order_id)
        .order_by(ReceivingRecord.received_at)
    )
    return list(session.scalars(stmt))


def list_price_variances(
    session: Session, order_id: str | None = None, significant_only: bool = False
) -> list[PriceVariance]:
    stmt = select(PriceVariance)
    if order_id:
        stmt = stmt.where(PriceVariance.purchase_order_id == order_id)
    if significant_only:
        stmt = stmt.where(PriceVariance.significant.is_(True))
    return list(session.scalars(stmt.order_by(PriceVariance.created_at.desc())))

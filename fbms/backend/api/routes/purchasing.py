"""Suppliers, purchase orders, approvals and receiving."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fbms.backend.api.deps import current_user, get_config, get_session, require
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    ApprovalIn,
    POActionIn,
    PriceVarianceOut,
    PurchaseOrderIn,
    PurchaseOrderOut,
    ReceiveIn,
    ReceivingRecordOut,
    SupplierIn,
    SupplierOut,
)
from fbms.backend.services import purchasing

router = APIRouter()


# ── Suppliers ──────────────────────────────────────────────────────────────


@router.get("/suppliers", response_model=list[SupplierOut])
def list_suppliers(
    active_only: bool = True,
    session: Session = Depends(get_session),
    _: User = Depends(require("purchases", "read")),
):
    return purchasing.list_suppliers(session, active_only)


@router.post("/suppliers", response_model=SupplierOut, status_code=201)
def create_supplier(
    data: SupplierIn, session: Session = Depends(get_session), user: User = Depends(require("purchases", "write"))
):
    return purchasing.create_supplier(session, data, user.id)


@router.get("/suppliers/{supplier_id}", response_model=SupplierOut)
def get_supplier(
    supplier_id: str, session: Session = Depends(get_session), _: User = Depends(require("purchases", "read"))
):
    return purchasing.get_supplier(session, supplier_id)


@router.put("/suppliers/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: str,
    data: SupplierIn,
    session: Session = Depends(get_session),
    user: User = Depends(require("purchases", "write")),
):
    return purchasing.update_supplier(session, supplier_id, data, user.id)


@router.delete("/suppliers/{supplier_id}", response_model=SupplierOut)
def delete_supplier(
    supplier_id: str, session: Session = Depends(get_session), user: User = Depends(require("purchases", "write"))
):
    return purchasing.delete_supplier(session, supplier_id, user.id)


# ── Purchase orders ────────────────────────────────────────────────────────
# Role checks per order status live in the purchasing service.


@router.get("/purchase-orders", response_model=list[PurchaseOrderOut])
def list_purchase_orders(
    status: str | None = None,
    supplier_id: str | None = None,
    session: Session = Depends(get_session),
    _: User = Depends(require("purchases", "read")),
):
    return purchasing.list_purchase_orders(session, status, supplier_id)


@router.post("/purchase-orders", response_model=PurchaseOrderOut, status_code=201)
def create_purchase_order(
    data: PurchaseOrderIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.create_purchase_order(session, data, user, config)


@router.get("/purchase-orders/{order_id}", response_model=PurchaseOrderOut)
def get_purchase_order(
    order_id: str, session: Session = Depends(get_session), _: User = Depends(require("purchases", "read"))
):
    return purchasing.get_purchase_order(session, order_id)


@router.put("/purchase-orders/{order_id}", response_model=PurchaseOrderOut)
def update_purchase_order(
    order_id: str,
    data: PurchaseOrderIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.update_purchase_order(session, order_id, data, user, config)


@router.post("/purchase-orders/{order_id}/submit", response_model=PurchaseOrderOut)
def submit_purchase_order(
    order_id: str,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.submit_for_approval(session, order_id, user, config)


@router.post("/purchase-orders/{order_id}/approve", response_model=PurchaseOrderOut)
def approve_purchase_order(
    order_id: str,
    data: ApprovalIn | None = None,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    data = data or ApprovalIn()
    return purchasing.record_approval(session, order_id, user, config, data.decision, data.comments)


@router.post("/purchase-orders/{order_id}/send", response_model=PurchaseOrderOut)
def send_purchase_order(
    order_id: str,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.send_to_supplier(session, order_id, user, config)


@router.post("/purchase-orders/{order_id}/cancel", response_model=PurchaseOrderOut)
def cancel_purchase_order(
    order_id: str,
    data: POActionIn | None = None,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.cancel_purchase_order(session, order_id, user, config, data.reason if data else None)


@router.post("/purchase-orders/{order_id}/close", response_model=PurchaseOrderOut)
def close_purchase_order(
    order_id: str,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.close_purchase_order(session, order_id, user, config)


# ── Receiving ──────────────────────────────────────────────────────────────


@router.post("/purchase-orders/{order_id}/receive", response_model=ReceivingRecordOut, status_code=201)
def receive_purchase_order(
    order_id: str,
    data: ReceiveIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(current_user),
):
    return purchasing.receive_items(session, order_id, data, user, config)


@router.get("/purchase-orders/{order_id}/receipts", response_model=list[ReceivingRecordOut])
def list_receipts(
    order_id: str, session: Session = Depends(get_session), _: User = Depends(require("purchases", "read"))
):
    return purchasing.list_receiving_records(session, order_id)


@router.get("/price-variances", response_model=list[PriceVarianceOut])
def list_price_variances(
    order_id: str | None = None,
    significant_only: bool = False,
    session: Session = Depends(get_session),
    _: User = Depends(require("purchases", "read")),
):
    return purchasing.list_price_variances(session, order_id, significant_only)

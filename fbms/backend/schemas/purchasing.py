"""Schemas for suppliers, purchase orders and receiving."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from fbms.backend.schemas.base import ORMModel


class SupplierIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    tax_id: str | None = None
    payment_terms: str | None = None
    notes: str | None = None
    is_active: bool = True


class SupplierOut(ORMModel):
    id: str
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    tax_id: str | None = None
    payment_terms: str | None = None
    is_active: bool


class POItemIn(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)


class PurchaseOrderIn(BaseModel):
    supplier_id: str | None = None
    items: list[POItemIn] = []
    expected_delivery_date: date | None = None
    notes: str | None = None


class POItemOut(ORMModel):
    id: str
    product_id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    received_quantity: int


class POTransitionOut(ORMModel):
    from_status: str
    to_status: str
    performed_by: str | None = None
    reason: str | None = None
    created_at: datetime


class POApprovalOut(ORMModel):
    approver_id: str
    approver_role: str
    decision: str
    comments: str | None = None
    created_at: datetime


class PurchaseOrderOut(ORMModel):
    id: str
    po_number: str
    supplier_id: str | None = None
    supplier_name: str | None = None
    status: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    expected_delivery_date: date | None = None
    notes: str | None = None
    created_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    received_date: datetime | None = None
    created_at: datetime
    items: list[POItemOut] = []
    transitions: list[POTransitionOut] = []
    approvals: list[POApprovalOut] = []


class POActionIn(BaseModel):
    reason: str | None = None


class ApprovalIn(BaseModel):
    decision: Literal["approved", "rejected"] = "approved"
    comments: str | None = None


class ReceiveItemIn(BaseModel):
    item_id: str
    received_quantity: int = Field(ge=0)
    condition: Literal["good", "damaged", "expired", "rejected"] = "good"
    expiry_date: date | None = None
    unit_cost: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class ReceiveIn(BaseModel):
    """A delivery. ``final`` marks the last one: shortages are checked and the order stops expecting more."""

    items: list[ReceiveItemIn]
    notes: str | None = None
    approved: bool = False
    final: bool = False


class ReceivingRecordOut(ORMModel):
    id: str
    purchase_order_id: str
    received_by: str | None = None
    received_at: datetime
    items: list[dict]
    warnings: list[dict]
    total_value: Decimal
    notes: str | None = None


class PriceVarianceOut(ORMModel):
    id: str
    product_id: str
    purchase_order_id: str
    expected_cost: Decimal
    actual_cost: Decimal
    variance: Decimal
    variance_pct: Decimal
    quantity: int
    total_variance: Decimal
    significant: bool
    status: str
    created_at: datetime

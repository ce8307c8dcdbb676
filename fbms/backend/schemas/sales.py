"""Schemas for customers, the POS cart and sales."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from fbms.backend.schemas.base import ORMModel

PaymentMethod = Literal["cash", "card", "gcash", "paymaya", "bank_transfer", "check"]
CustomerType = Literal["retail", "wholesale", "vip"]


# ── Customers ───────────────────────────────────────────────────────────────


class CustomerIn(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    customer_type: CustomerType = "retail"
    credit_limit: Decimal = Decimal("0")
    tax_id: str | None = None
    notes: str | None = None


class CustomerUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    customer_type: CustomerType | None = None
    credit_limit: Decimal | None = None
    tax_id: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class CustomerOut(ORMModel):
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    customer_type: str
    credit_limit: Decimal
    current_balance: Decimal
    loyalty_points: int
    total_purchases: Decimal
    last_purchase: datetime | None = None
    is_active: bool


class CustomerStatsOut(BaseModel):
    customer_id: str
    total_purchases: Decimal
    order_count: int
    average_order_value: Decimal
    last_purchase: datetime | None = None
    loyalty_points: int
    loyalty_tier: str


class LoyaltyAdjustIn(BaseModel):
    points: int
    reason: str | None = None


# ── Cart ────────────────────────────────────────────────────────────────────


class CartItemIn(BaseModel):
    product_id: str | None = None
    barcode: str | None = None
    quantity: int = Field(default=1, gt=0)


class CartQuantityIn(BaseModel):
    quantity: int


class CartModeIn(BaseModel):
    mode: Literal["retail", "wholesale", "quote"]


class DiscountIn(BaseModel):
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(ge=0)
    reason: str | None = None


class CartCustomerIn(BaseModel):
    customer_id: str | None = None
    vat_exempt: bool = False


class RedeemPointsIn(BaseModel):
    points: int = Field(ge=0)


class HoldCartIn(BaseModel):
    name: str | None = None


class CartLineOut(BaseModel):
    product_id: str
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class DiscountOut(BaseModel):
    type: str
    value: Decimal
    reason: str | None = None


class CartOut(BaseModel):
    mode: str
    customer_id: str | None = None
    vat_exempt: bool
    discount: DiscountOut
    loyalty_points_to_redeem: int
    items: list[CartLineOut]
    subtotal: Decimal
    discount_amount: Decimal
    loyalty_discount: Decimal
    discounted_subtotal: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


class HeldCartOut(BaseModel):
    id: str
    name: str
    held_at: datetime
    item_count: int
    total: Decimal


class CheckoutIn(BaseModel):
    payment_method: PaymentMethod
    cash_received: Decimal | None = None
    notes: str | None = None


# ── Sales ───────────────────────────────────────────────────────────────────


class SaleItemOut(ORMModel):
    product_id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class SaleOut(ORMModel):
    id: str
    invoice_number: str
    or_number: str
    customer_id: str | None = None
    customer_name: str
    mode: str
    subtotal: Decimal
    discount_amount: Decimal
    discount_reason: str | None = None
    tax_amount: Decimal
    total_amount: Decimal
    vat_exempt: bool
    payment_method: str
    cash_received: Decimal | None = None
    change_amount: Decimal | None = None
    loyalty_points_earned: int
    loyalty_points_redeemed: int
    payment_status: str
    status: str
    cashier_id: str | None = None
    created_at: datetime
    voided_at: datetime | None = None
    void_reason: str | None = None
    items: list[SaleItemOut] = []


class VoidSaleIn(BaseModel):
    reason: str = Field(min_length=1)


class ReceiptOut(BaseModel):
    or_number: str
    text: str
    is_valid: bool
    errors: list[str] = []

"""
POS service – cart registers, checkout, voids and receipts.

Carts live in memory (one :class:`CartRegister` per cashier, kept by
:class:`CartStore`); checkout turns the active cart into a persisted sale in
the caller's session.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fbms.backend.core.compliance.bir import OR_NUMBER_MAX, format_or_number, validate_bir_receipt
from fbms.backend.core.errors import Issue, NotFoundError, StockError, TransitionError, ValidationError
from fbms.backend.core.inventory.stock_validation import validate_cart_stock
from fbms.backend.core.pos.cart import CartProduct, CartRegister, loyalty_points_earned
from fbms.backend.core.pos.receipt import build_receipt, render_text_receipt
from fbms.backend.core.utils.money import money, to_decimal
from fbms.backend.db.models import Customer, Product, Sale, SaleItem, User, utcnow
from fbms.backend.db.session import next_sequence
from fbms.backend.schemas.sales import CheckoutIn
from fbms.backend.services import accounting, audit, customers, inventory, settings

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "card", "gcash", "paymaya", "bank_transfer", "check")


class CartStore:
    """Cart registers keyed by user id."""

    def __init__(self, config: dict[str, Any]):
        self._config = config
        self._registers: dict[str, CartRegister] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> CartRegister:
        with self._lock:
            register = self._registers.get(user_id)
            if register is None:
                pos = self._config.get("pos", {})
                register = CartRegister(
                    vat_rate=settings.vat_rate(self._config),
                    wholesale_multiplier=Decimal(str(pos.get("wholesale_multiplier", "0.85"))),
                )
                self._registers[user_id] = register
            return register


# ── Cart helpers ────────────────────────────────────────────────────────────


def _sellable(session: Session, product_id: str | None = None, barcode: str | None = None) -> Product:
    if product_id:
        product = inventory.get_product(session, product_id)
    elif barcode:
        product = inventory.find_by_barcode(session, barcode)
    else:
        raise ValidationError("Product is required", [Issue("product_id", "Required", "REQUIRED")])
    if not product.is_active:
        raise ValidationError(
            f"{product.name} is not available for sale",
            [Issue("product_id", "Product is inactive", "INACTIVE_PRODUCT")],
        )
    return product


def add_to_cart(
    session: Session,
    register: CartRegister,
    product_id: str | None = None,
    quantity: int = 1,
    barcode: str | None = None,
):
    """Add a product to the active cart, refusing more than is in stock."""
    product = _sellable(session, product_id, barcode)
    cart = register.current
    in_cart = next((l.quantity for l in cart.lines if l.product.id == product.id), 0)
    result = validate_cart_stock([(product.id, in_cart + quantity)], {product.id: product})
    if not result.is_valid:
        raise StockError(result.errors[0].message, [e.to_dict() for e in result.errors])
    cart.add(CartProduct.from_product(product), quantity)
    return cart


def set_cart_customer(
    session: Session, register: CartRegister, customer_id: str | None, vat_exempt: bool = False
):
    cart = register.current
    if customer_id:
        customer = customers.get_customer(session, customer_id)
        if not customer.is_active:
            raise ValidationError("Customer is inactive", [Issue("customer_id", "Inactive", "INACTIVE_CUSTOMER")])
        cart.set_customer(customer.id, customer.loyalty_points)
    else:
        cart.set_customer(None)
    cart.vat_exempt = vat_exempt
    return cart


# ── Checkout ────────────────────────────────────────────────────────────────


def _invoice_number(session: Session, when: datetime) -> str:
    day = when.strftime("%y%m%d")
    seq = next_sequence(session, f"invoice-{day}")
    return f"INV{day}{seq:04d}"


def checkout(
    session: Session,
    register: CartRegister,
    data: CheckoutIn,
    user: User | None,
    config: dict[str, Any],
) -> Sale:
    """
    Persist the active cart as a completed sale.

    Raises:
        ValidationError: Empty cart, quote mode, bad payment, non-positive total
        StockError: Any line exceeds available stock (all lines reported)
    """
    cart = register.current
    if cart.is_empty():
        raise ValidationError("Cart is empty", [Issue("items", "Add at least one item", "EMPTY_CART")])
    if cart.mode == "quote":
        raise ValidationError(
            "Quotes cannot be checked out", [Issue("mode", "Switch to retail or wholesale", "QUOTE_MODE")]
        )
    if data.payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            "Unsupported payment method", [Issue("payment_method", data.payment_method, "INVALID_PAYMENT")]
        )

    lines = cart.lines
    products = {
        p.id: p for p in session.scalars(select(Product).where(Product.id.in_([l.product.id for l in lines])))
    }
    prevent_negative = bool(config.get("inventory", {}).get("prevent_negative_stock", True))
    stock_check = validate_cart_stock(
        [(l.product.id, l.quantity) for l in lines], products, prevent_negative
    )
    if not stock_check.is_valid:
        raise StockError("Insufficient stock for one or more items", [e.to_dict() for e in stock_check.errors])

    customer: Customer | None = None
    if cart.customer_id:
        customer = customers.get_customer(session, cart.customer_id)
        if cart.loyalty_points_to_redeem > customer.loyalty_points:
            raise ValidationError(
                "Customer does not have enough loyalty points",
                [Issue("loyalty_points", "Not enough points", "INSUFFICIENT_POINTS")],
            )

    totals = cart.totals()
    if totals.total <= 0:
        raise ValidationError("Sale total must be greater than zero", [Issue("total", "Must be positive", "INVALID_TOTAL")])

    cash_received = change = None
    if data.payment_method == "cash":
        cash_received = money(data.cash_received) if data.cash_received is not None else None
        if cash_received is None or cash_received < totals.total:
            raise ValidationError(
                "Cash received is less than the total",
                [Issue("cash_received", f"At least {totals.total} is required", "INSUFFICIENT_CASH")],
            )
        change = money(cash_received - totals.total)

    now = utcnow()
    redeemed = int(totals.loyalty_discount)
    earned = loyalty_points_earned(totals.total) if customer else 0
    discount_reason = cart.discount.reason
    if redeemed:
        note = f"Loyalty points redemption: {redeemed} points"
        discount_reason = f"{discount_reason}; {note}" if discount_reason else note

    sale = Sale(
        invoice_number=_invoice_number(session, now),
        or_number=format_or_number(next_sequence(session, "or_number", rollover=OR_NUMBER_MAX)),
        customer_id=customer.id if customer else None,
        customer_name=customer.full_name if customer else "Walk-in Customer",
        mode=cart.mode,
        subtotal=totals.subtotal,
        discount_amount=money(totals.discount_amount + totals.loyalty_discount),
        discount_reason=discount_reason,
        tax_amount=totals.tax,
        total_amount=totals.total,
        vat_exempt=cart.vat_exempt,
        payment_method=data.payment_method,
        cash_received=cash_received,
        change_amount=change,
        loyalty_points_earned=earned,
        loyalty_points_redeemed=redeemed,
        payment_status="paid",
        status="completed",
        cashier_id=user.id if user else None,
        notes=data.notes,
        created_at=now,
    )
    for position, line in enumerate(lines):
        product = products[line.product.id]
        sale.items.append(
            SaleItem(
                position=position,
                product_id=product.id,
                product_name=line.product.name,
                product_sku=line.product.sku,
                quantity=line.quantity,
                unit_price=cart.unit_price(line),
                unit_cost=to_decimal(product.cost),
                total_price=cart.line_total(line),
            )
        )
    session.add(sale)
    session.flush()

    user_id = user.id if user else None
    for line in lines:
        product = products[line.product.id]
        inventory.record_movement(
            session, product, "sale", line.quantity, reason=f"Sale {sale.invoice_number}",
            reference_type="sale", reference_id=sale.id, user_id=user_id, config=config,
        )
        product.sold_quantity += line.quantity

    if customer:
        customers.record_purchase(session, customer, totals.total, earned, redeemed, now)

    accounting.post_sale(session, sale, user_id)
    audit.record(
        session, user_id, "create", "sale", sale.id, None,
        {"invoice_number": sale.invoice_number, "total_amount": sale.total_amount},
    )
    register.reset()
    logger.info("Sale %s completed: %s", sale.invoice_number, sale.total_amount)
    return sale


def void_sale(
    session: Session, sale_id: str, reason: str, user: User | None, config: dict[str, Any]
) -> Sale:
    sale = get_sale(session, sale_id)
    if sale.status != "completed":
        raise TransitionError(f"Only completed sales can be voided (sale is {sale.status})")
    if not reason or not reason.strip():
        raise ValidationError("A reason is required to void a sale", [Issue("reason", "Required", "REQUIRED")])

    user_id = user.id if user else None
    for item in sale.items:
        product = inventory.get_product(session, item.product_id)
        inventory.record_movement(
            session, product, "return", item.quantity, unit_cost=item.unit_cost,
            reason=f"Void of sale {sale.invoice_number}", reference_type="sale_void",
            reference_id=sale.id, user_id=user_id, config=config,
        )
        product.sold_quantity = max(product.sold_quantity - item.quantity, 0)

    if sale.customer_id:
        customer = customers.get_customer(session, sale.customer_id)
        customer.loyalty_points = max(
            customer.loyalty_points - sale.loyalty_points_earned + sale.loyalty_points_redeemed, 0
        )
        customer.total_purchases = max(money(customer.total_purchases - sale.total_amount), money(0))

    sale.status = "voided"
    sale.payment_status = "refunded"
    sale.voided_at = utcnow()
    sale.void_reason = reason.strip()
    session.flush()

    accounting.post_sale_void(session, sale, user_id)
    audit.record(session, user_id, "void", "sale", sale.id, {"status": "completed"}, {"status": "voided", "reason": reason})
    logger.info("Sale %s voided", sale.invoice_number)
    return sale


# ── Queries & receipts ──────────────────────────────────────────────────────


def get_sale(session: Session, sale_id: str) -> Sale:
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    session: Session,
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: str | None = None,
    status: str | None = None,
    limit: int = 500,
) -> list[Sale]:
    stmt = select(Sale)
    if start:
        stmt = stmt.where(Sale.created_at >= start)
    if end:
        stmt = stmt.where(Sale.created_at <= end)
    if customer_id:
        stmt = stmt.where(Sale.customer_id == customer_id)
    if status:
        stmt = stmt.where(Sale.status == status)
    return list(session.scalars(stmt.order_by(Sale.created_at.desc()).limit(limit)))


def sale_receipt(session: Session, sale_id: str, config: dict[str, Any]) -> dict[str, Any]:
    sale = get_sale(session, sale_id)
    profile = settings.business_profile(session, config)
    cashier = session.get(User, sale.cashier_id) if sale.cashier_id else None
    receipt = build_receipt(sale, profile, cashier.full_name if cashier else None)
    check = validate_bir_receipt(receipt, rate=settings.vat_rate(config))
    text = render_text_receipt(
        receipt, footer=profile.get("receipt_footer"),
        cash_received=sale.cash_received, change=sale.change_amount,
    )
    return {"or_number": sale.or_number, "text": text, "is_valid": check.is_valid, "errors": check.errors}

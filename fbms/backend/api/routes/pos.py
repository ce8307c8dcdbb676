"""Point of sale: the cashier's cart, held carts, checkout and sales."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fbms.backend.api.deps import cart_register, get_config, get_session, require
from fbms.backend.core.errors import Issue, NotFoundError, ValidationError
from fbms.backend.core.pos.cart import CartRegister
from fbms.backend.db.models import User
from fbms.backend.schemas import (
    CartCustomerIn,
    CartItemIn,
    CartModeIn,
    CartOut,
    CartQuantityIn,
    CheckoutIn,
    DiscountIn,
    HeldCartOut,
    HoldCartIn,
    ReceiptOut,
    RedeemPointsIn,
    SaleOut,
    VoidSaleIn,
)
from fbms.backend.services import sales

router = APIRouter()


def _invalid(field: str, exc: ValueError) -> ValidationError:
    return ValidationError(str(exc), [Issue(field, str(exc), "INVALID_CART")])


def _held_out(held) -> HeldCartOut:
    totals = held.cart.totals()
    return HeldCartOut(
        id=held.id, name=held.name, held_at=held.held_at, item_count=totals.item_count, total=totals.total
    )


# ── Cart ───────────────────────────────────────────────────────────────────


@router.get("/pos/cart", response_model=CartOut)
def get_cart(register: CartRegister = Depends(cart_register)):
    return register.current.to_dict()


@router.post("/pos/cart/items", response_model=CartOut)
def add_item(
    data: CartItemIn,
    session: Session = Depends(get_session),
    register: CartRegister = Depends(cart_register),
):
    cart = sales.add_to_cart(session, register, data.product_id, data.quantity, data.barcode)
    return cart.to_dict()


@router.put("/pos/cart/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: str,
    data: CartQuantityIn,
    session: Session = Depends(get_session),
    register: CartRegister = Depends(cart_register),
):
    cart = register.current
    line = next((l for l in cart.lines if l.product.id == product_id), None)
    if line is None:
        raise NotFoundError("Cart item", product_id)
    if data.quantity > line.quantity:
        # stock is checked against the full new quantity
        sales.add_to_cart(session, register, product_id, data.quantity - line.quantity)
    else:
        cart.update(product_id, data.quantity)
    return cart.to_dict()


@router.delete("/pos/cart/items/{product_id}", response_model=CartOut)
def remove_item(product_id: str, register: CartRegister = Depends(cart_register)):
    register.current.remove(product_id)
    return register.current.to_dict()


@router.delete("/pos/cart", response_model=CartOut)
def clear_cart(register: CartRegister = Depends(cart_register)):
    register.current.clear()
    return register.current.to_dict()


@router.put("/pos/cart/mode", response_model=CartOut)
def set_mode(data: CartModeIn, register: CartRegister = Depends(cart_register)):
    try:
        register.current.set_mode(data.mode)
    except ValueError as exc:
        raise _invalid("mode", exc) from exc
    return register.current.to_dict()


@router.put("/pos/cart/discount", response_model=CartOut)
def apply_discount(data: DiscountIn, register: CartRegister = Depends(cart_register)):
    try:
        register.current.apply_discount(data.type, data.value, data.reason)
    except ValueError as exc:
        raise _invalid("discount", exc) from exc
    return register.current.to_dict()


@router.put("/pos/cart/customer", response_model=CartOut)
def set_customer(
    data: CartCustomerIn,
    session: Session = Depends(get_session),
    register: CartRegister = Depends(cart_register),
):
    return sales.set_cart_customer(session, register, data.customer_id, data.vat_exempt).to_dict()


@router.put("/pos/cart/loyalty", response_model=CartOut)
def redeem_points(data: RedeemPointsIn, register: CartRegister = Depends(cart_register)):
    try:
        register.current.redeem_points(data.points)
    except ValueError as exc:
        raise _invalid("points", exc) from exc
    return register.current.to_dict()


# ── Held carts ─────────────────────────────────────────────────────────────


@router.get("/pos/held", response_model=list[HeldCartOut])
def list_held(register: CartRegister = Depends(cart_register)):
    return [_held_out(held) for held in register.held.values()]


@router.post("/pos/held", response_model=HeldCartOut, status_code=201)
def hold_cart(data: HoldCartIn | None = None, register: CartRegister = Depends(cart_register)):
    try:
        held = register.hold(data.name if data else None)
    except ValueError as exc:
        raise _invalid("items", exc) from exc
    return _held_out(held)


@router.post("/pos/held/{hold_id}/recall", response_model=CartOut)
def recall_cart(hold_id: str, register: CartRegister = Depends(cart_register)):
    if not register.current.is_empty():
        raise ValidationError(
            "Hold or clear the current cart first",
            [Issue("items", "Current cart is not empty", "CART_NOT_EMPTY")],
        )
    try:
        cart = register.recall(hold_id)
    except KeyError as exc:
        raise NotFoundError("Held cart", hold_id) from exc
    return cart.to_dict()


# ── Checkout & sales ───────────────────────────────────────────────────────


@router.post("/pos/checkout", response_model=SaleOut, status_code=201)
def checkout(
    data: CheckoutIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    register: CartRegister = Depends(cart_register),
    user: User = Depends(require("pos", "write")),
):
    return sales.checkout(session, register, data, user, config)


@router.get("/sales", response_model=list[SaleOut])
def list_sales(
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: str | None = None,
    status: str | None = None,
    limit: int = Query(500, ge=1, le=5000),
    session: Session = Depends(get_session),
    _: User = Depends(require("pos", "read")),
):
    return sales.list_sales(session, start, end, customer_id, status, limit)


@router.get("/sales/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: str, session: Session = Depends(get_session), _: User = Depends(require("pos", "read"))):
    return sales.get_sale(session, sale_id)


@router.post("/sales/{sale_id}/void", response_model=SaleOut)
def void_sale(
    sale_id: str,
    data: VoidSaleIn,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    user: User = Depends(require("pos", "void")),
):
    return sales.void_sale(session, sale_id, data.reason, user, config)


@router.get("/sales/{sale_id}/receipt", response_model=ReceiptOut)
def sale_receipt(
    sale_id: str,
    session: Session = Depends(get_session),
    config: dict = Depends(get_config),
    _: User = Depends(require("pos", "read")),
):
    return sales.sale_receipt(session, sale_id, config)

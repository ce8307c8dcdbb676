"""
Point-of-sale cart arithmetic.

The cart is an in-memory, insertion-ordered map of product id to line. It
never touches the database; checkout in the sales service turns it into a
persisted sale.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from fbms.backend.core.utils.money import money, to_decimal

CART_MODES = {"retail": Decimal("1"), "wholesale": Decimal("0.85"), "quote": Decimal("1")}
DISCOUNT_TYPES = ("percentage", "fixed")


@dataclass(frozen=True)
class CartProduct:
    """Snapshot of the product fields the cart needs."""

    id: str
    name: str
    sku: str
    price: Decimal
    cost: Decimal = Decimal("0")
    stock: int = 0
    min_stock: int = 0
    unit: str = "piece"

    @classmethod
    def from_product(cls, product: Any) -> CartProduct:
        return cls(
            id=product.id,
            name=product.name,
            sku=product.sku,
            price=money(product.price),
            cost=to_decimal(product.cost),
            stock=int(product.stock or 0),
            min_stock=int(product.min_stock or 0),
            unit=product.unit or "piece",
        )


@dataclass
class CartLine:
    product: CartProduct
    quantity: int


@dataclass
class Discount:
    type: str = "percentage"
    value: Decimal = Decimal("0")
    reason: str | None = None


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount_amount: Decimal
    loyalty_discount: Decimal
    discounted_subtotal: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


class Cart:
    """
    POS cart.

    Args:
        mode: ``retail``, ``wholesale`` or ``quote``
        vat_rate: VAT applied to the discounted subtotal
        wholesale_multiplier: Unit price multiplier in wholesale mode
    """

    def __init__(
        self,
        mode: str = "retail",
        vat_rate=Decimal("0.12"),
        wholesale_multiplier=Decimal("0.85"),
    ):
        self._lines: dict[str, CartLine] = {}
        self.vat_rate = to_decimal(vat_rate)
        self.wholesale_multiplier = to_decimal(wholesale_multiplier)
        self.mode = "retail"
        self.set_mode(mode)
        self.discount = Discount()
        self.customer_id: str | None = None
        self.customer_points: int = 0
        self.loyalty_points_to_redeem: int = 0
        self.vat_exempt: bool = False

    # ── Lines ──────────────────────────────────────────────────────────────

    def add(self, product: CartProduct, quantity: int = 1) -> CartLine:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")
        line = self._lines.get(product.id)
        if line:
            line.quantity += quantity
            line.product = product
        else:
            line = CartLine(product=product, quantity=quantity)
            self._lines[product.id] = line
        return line

    def update(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes it."""
        if product_id not in self._lines:
            raise KeyError(product_id)
        if quantity <= 0:
            del self._lines[product_id]
        else:
            self._lines[product_id].quantity = quantity

    def remove(self, product_id: str) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self.discount = Discount()
        self.customer_id = None
        self.customer_points = 0
        self.loyalty_points_to_redeem = 0
        self.vat_exempt = False

    def is_empty(self) -> bool:
        return not self._lines

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    # ── Pricing ────────────────────────────────────────────────────────────

    def set_mode(self, mode: str) -> None:
        if mode not in CART_MODES:
            raise ValueError(f"Unknown cart mode: {mode}")
        self.mode = mode

    @property
    def price_multiplier(self) -> Decimal:
        if self.mode == "wholesale":
            return self.wholesale_multiplier
        return CART_MODES[self.mode]

    def unit_price(self, line: CartLine) -> Decimal:
        return money(line.product.price * self.price_multiplier)

    def line_total(self, line: CartLine) -> Decimal:
        return money(self.unit_price(line) * line.quantity)

    def apply_discount(self, discount_type: str, value, reason: str | None = None) -> None:
        amount = to_decimal(value)
        if discount_type not in DISCOUNT_TYPES:
            raise ValueError(f"Unknown discount type: {discount_type}")
        if amount < 0:
            raise ValueError("Discount cannot be negative")
        if discount_type == "percentage" and amount > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        self.discount = Discount(type=discount_type, value=amount, reason=reason)

    def set_customer(self, customer_id: str | None, loyalty_points: int = 0) -> None:
        self.customer_id = customer_id
        self.customer_points = loyalty_points if customer_id else 0
        self.loyalty_points_to_redeem = 0

    def redeem_points(self, points: int) -> Decimal:
        """Redeem loyalty points at ₱1 each; returns the peso value applied."""
        if not self.customer_id:
            raise ValueError("Select a customer before redeeming points")
        if points < 0:
            raise ValueError("Points cannot be negative")
        if points > self.customer_points:
            raise ValueError("Customer does not have enough loyalty points")
        self.loyalty_points_to_redeem = points
        return self.totals().loyalty_discount

    def totals(self) -> CartTotals:
        subtotal = money(sum((self.line_total(line) for line in self._lines.values()), Decimal(0)))

        if self.discount.type == "percentage":
            discount = money(subtotal * self.discount.value / 100)
        else:
            discount = money(self.discount.value)
        discount = min(discount, subtotal)

        whole_pesos = (subtotal - discount).to_integral_value(rounding=ROUND_FLOOR)
        loyalty = money(min(Decimal(self.loyalty_points_to_redeem), whole_pesos))
        discounted = max(money(subtotal - discount - loyalty), money(0))
        tax = money(0) if self.vat_exempt else money(discounted * self.vat_rate)

        return CartTotals(
            subtotal=subtotal,
            discount_amount=discount,
            loyalty_discount=loyalty,
            discounted_subtotal=discounted,
            tax=tax,
            total=money(discounted + tax),
            item_count=sum(line.quantity for line in self._lines.values()),
        )

    @property
    def points_redeemed(self) -> int:
        """Whole points actually consumed (capped by the subtotal)."""
        return int(self.totals().loyalty_discount)

    def to_dict(self) -> dict[str, Any]:
        totals = self.totals()
        return {
            "mode": self.mode,
            "customer_id": self.customer_id,
            "vat_exempt": self.vat_exempt,
            "discount": {
                "type": self.discount.type,
                "value": self.discount.value,
                "reason": self.discount.reason,
            },
            "loyalty_points_to_redeem": self.loyalty_points_to_redeem,
            "items": [
                {
                    "product_id": line.product.id,
                    "product_name": line.product.name,
                    "sku": line.product.sku,
                    "quantity": line.quantity,
                    "unit_price": self.unit_price(line),
                    "total_price": self.line_total(line),
                }
                for line in self._lines.values()
            ],
            "subtotal": totals.subtotal,
            "discount_amount": totals.discount_amount,
            "loyalty_discount": totals.loyalty_discount,
            "discounted_subtotal": totals.discounted_subtotal,
            "tax": totals.tax,
            "total": totals.total,
            "item_count": totals.item_count,
        }


def loyalty_points_earned(total) -> int:
    """One point per full ₱100 spent."""
    value = to_decimal(total)
    if value <= 0:
        return 0
    return int(value // 100)


# ── Held carts ─────────────────────────────────────────────────────────────


@dataclass
class HeldCart:
    id: str
    name: str
    cart: Cart
    held_at: datetime = field(default_factory=datetime.now)


class CartRegister:
    """One active cart plus any carts parked on hold, per cashier."""

    def __init__(self, vat_rate=Decimal("0.12"), wholesale_multiplier=Decimal("0.85")):
        self.vat_rate = to_decimal(vat_rate)
        self.wholesale_multiplier = to_decimal(wholesale_multiplier)
        self.current = self._new_cart()
        self.held: dict[str, HeldCart] = {}

    def _new_cart(self, mode: str = "retail") -> Cart:
        return Cart(mode=mode, vat_rate=self.vat_rate, wholesale_multiplier=self.wholesale_multiplier)

    def hold(self, name: str | None = None) -> HeldCart:
        if self.current.is_empty():
            raise ValueError("Cannot hold an empty cart")
        hold_id = uuid.uuid4().hex[:8]
        held = HeldCart(id=hold_id, name=name or f"Hold {len(self.held) + 1}", cart=self.current)
        self.held[hold_id] = held
        self.current = self._new_cart(self.current.mode)
        return held

    def recall(self, hold_id: str) -> Cart:
        held = self.held.pop(hold_id, None)
        if held is None:
            raise KeyError(hold_id)
        self.current = held.cart
        return self.current

    def reset(self) -> None:
        mode = self.current.mode
        self.current = self._new_cart(mode)

"""Tests for POS cart arithmetic and held carts."""

from __future__ import annotations

from decimal import Decimal

import pytest

from fbms.backend.core.pos.cart import Cart, CartProduct, CartRegister, loyalty_points_earned


@pytest.fixture
def rice() -> CartProduct:
    return CartProduct(id="p-rice", name="Dinorado Rice 5kg", sku="RIC-DINO-5", price=Decimal("100.00"), stock=20)


@pytest.fixture
def soap() -> CartProduct:
    return CartProduct(id="p-soap", name="Safeguard Soap", sku="HSH-SAFE-130", price=Decimal("52.00"), stock=36)


class TestCartLines:
    def test_add_merges_same_product(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 1)
        cart.add(rice, 2)
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_add_rejects_non_positive(self, rice: CartProduct) -> None:
        with pytest.raises(ValueError):
            Cart().add(rice, 0)

    def test_update_to_zero_removes(self, rice: CartProduct, soap: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 2)
        cart.add(soap, 1)
        cart.update(rice.id, 0)
        assert [line.product.id for line in cart.lines] == [soap.id]

    def test_update_unknown_line(self) -> None:
        with pytest.raises(KeyError):
            Cart().update("missing", 1)

    def test_clear_resets_discount_and_customer(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice)
        cart.apply_discount("fixed", 10)
        cart.set_customer("c-1", 50)
        cart.clear()
        assert cart.is_empty()
        assert cart.discount.value == Decimal("0")
        assert cart.customer_id is None


class TestCartTotals:
    def test_retail_totals(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 2)
        totals = cart.totals()
        assert totals.subtotal == Decimal("200.00")
        assert totals.tax == Decimal("24.00")
        assert totals.total == Decimal("224.00")
        assert totals.item_count == 2

    def test_wholesale_price(self, rice: CartProduct) -> None:
        cart = Cart(mode="wholesale")
        cart.add(rice, 1)
        assert cart.totals().subtotal == Decimal("85.00")

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError):
            Cart(mode="layaway")

    def test_percentage_discount(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 2)
        cart.apply_discount("percentage", 10, "Suki discount")
        totals = cart.totals()
        assert totals.discount_amount == Decimal("20.00")
        assert totals.tax == Decimal("21.60")
        assert totals.total == Decimal("201.60")

    def test_fixed_discount_capped_at_subtotal(self, soap: CartProduct) -> None:
        cart = Cart()
        cart.add(soap, 1)
        cart.apply_discount("fixed", 500)
        totals = cart.totals()
        assert totals.discount_amount == Decimal("52.00")
        assert totals.total == Decimal("0.00")

    @pytest.mark.parametrize("kind, value", [("percentage", 101), ("fixed", -1), ("bogus", 5)])
    def test_invalid_discount(self, kind: str, value: int) -> None:
        with pytest.raises(ValueError):
            Cart().apply_discount(kind, value)

    def test_vat_exempt(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 1)
        cart.vat_exempt = True
        assert cart.totals().tax == Decimal("0.00")
        assert cart.totals().total == Decimal("100.00")


class TestLoyalty:
    def test_redeem_requires_customer(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice)
        with pytest.raises(ValueError):
            cart.redeem_points(10)

    def test_redeem_reduces_taxable_amount(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice, 1)
        cart.set_customer("c-1", loyalty_points=50)
        assert cart.redeem_points(30) == Decimal("30.00")
        totals = cart.totals()
        assert totals.discounted_subtotal == Decimal("70.00")
        assert totals.tax == Decimal("8.40")
        assert cart.points_redeemed == 30

    def test_cannot_redeem_more_than_balance(self, rice: CartProduct) -> None:
        cart = Cart()
        cart.add(rice)
        cart.set_customer("c-1", loyalty_points=5)
        with pytest.raises(ValueError):
            cart.redeem_points(6)

    def test_points_earned(self) -> None:
        assert loyalty_points_earned(Decimal("250.00")) == 2
        assert loyalty_points_earned(Decimal("99.99")) == 0
        assert loyalty_points_earned(0) == 0


class TestCartRegister:
    def test_hold_and_recall(self, rice: CartProduct) -> None:
        register = CartRegister()
        register.current.add(rice, 3)
        held = register.hold("Table 1")
        assert register.current.is_empty()
        assert held.name == "Table 1"

        cart = register.recall(held.id)
        assert cart.lines[0].quantity == 3
        assert not register.held

    def test_hold_empty_cart(self) -> None:
        with pytest.raises(ValueError):
            CartRegister().hold()

    def test_recall_unknown(self) -> None:
        with pytest.raises(KeyError):
            CartRegister().recall("nope")

    def test_reset_keeps_mode(self, rice: CartProduct) -> None:
        register = CartRegister()
        register.current.set_mode("wholesale")
        register.current.add(rice)
        register.reset()
        assert register.current.is_empty()
        assert register.current.mode == "wholesale"

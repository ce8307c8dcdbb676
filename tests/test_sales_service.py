"""Tests for checkout, voids and receipts against a seeded database."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from fbms.backend.core.errors import StockError, TransitionError, ValidationError
from fbms.backend.core.pos.cart import CartRegister
from fbms.backend.db.models import AuditLog, StockMovement
from fbms.backend.schemas.sales import CheckoutIn
from fbms.backend.services import accounting, customers, sales


@pytest.fixture
def register() -> CartRegister:
    return CartRegister()


@pytest.fixture
def juan(session):
    return customers.list_customers(session, search="Juan")[0]


def _cash(amount: str = "100") -> CheckoutIn:
    return CheckoutIn(payment_method="cash", cash_received=Decimal(amount))


class TestCheckout:
    def test_cash_sale(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 2)
        sale = sales.checkout(session, register, _cash(), admin, config)

        assert sale.subtotal == Decimal("48.00")
        assert sale.tax_amount == Decimal("5.76")
        assert sale.total_amount == Decimal("53.76")
        assert sale.change_amount == Decimal("46.24")
        assert sale.or_number == "0000000001"
        assert sale.invoice_number.startswith("INV")
        assert sale.customer_name == "Walk-in Customer"
        assert product.stock == 98
        assert product.sold_quantity == 2
        assert register.current.is_empty()

    def test_posts_balanced_journal(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 2)
        sales.checkout(session, register, _cash(), admin, config)

        assert accounting.account_balance(session, accounting.CASH) == Decimal("53.76")
        assert accounting.account_balance(session, accounting.SALES_REVENUE) == Decimal("-48.00")
        assert accounting.account_balance(session, accounting.COST_OF_GOODS_SOLD) == Decimal("38.00")
        assert accounting.trial_balance(session)["balanced"]

    def test_card_settles_to_receivables(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        sales.checkout(session, register, CheckoutIn(payment_method="gcash"), admin, config)
        assert accounting.account_balance(session, accounting.CARD_RECEIVABLES) == Decimal("26.88")

    def test_sale_movements_are_logged(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 3)
        sale = sales.checkout(session, register, _cash(), admin, config)
        movement = session.scalar(select(StockMovement).where(StockMovement.reference_id == sale.id))
        assert movement.quantity == -3
        assert movement.new_stock == 97

    def test_empty_cart(self, session, register, admin, config) -> None:
        with pytest.raises(ValidationError) as exc:
            sales.checkout(session, register, _cash(), admin, config)
        assert exc.value.errors[0]["code"] == "EMPTY_CART"

    def test_insufficient_cash(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 5)
        with pytest.raises(ValidationError):
            sales.checkout(session, register, _cash("50"), admin, config)
        assert product.stock == 100

    def test_quote_mode_cannot_be_sold(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        register.current.set_mode("quote")
        with pytest.raises(ValidationError):
            sales.checkout(session, register, _cash(), admin, config)

    def test_cannot_add_more_than_stock(self, session, register, product) -> None:
        with pytest.raises(StockError):
            sales.add_to_cart(session, register, product.id, 101)

    def test_stock_rechecked_at_checkout(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 10)
        product.stock = 5
        with pytest.raises(StockError):
            sales.checkout(session, register, _cash("500"), admin, config)

    def test_add_by_barcode(self, session, register, product) -> None:
        cart = sales.add_to_cart(session, register, barcode=product.barcode)
        assert cart.lines[0].product.sku == "CAN-LIGO-155"

    def test_or_numbers_increase(self, session, register, product, admin, config) -> None:
        numbers = []
        for _ in range(2):
            sales.add_to_cart(session, register, product.id, 1)
            numbers.append(sales.checkout(session, register, _cash(), admin, config).or_number)
        assert numbers == ["0000000001", "0000000002"]


class TestCustomerSales:
    def test_loyalty_points_and_totals(self, session, register, product, admin, config, juan) -> None:
        sales.add_to_cart(session, register, product.id, 5)
        sales.set_cart_customer(session, register, juan.id)
        sale = sales.checkout(session, register, _cash("200"), admin, config)

        assert sale.total_amount == Decimal("134.40")
        assert sale.loyalty_points_earned == 1
        assert juan.loyalty_points == 1
        assert juan.total_purchases == Decimal("134.40")
        assert customers.customer_stats(session, juan.id)["order_count"] == 1

    def test_redeem_points(self, session, register, product, admin, config, juan) -> None:
        customers.adjust_loyalty_points(session, juan.id, 20, "Promo")
        sales.add_to_cart(session, register, product.id, 5)
        sales.set_cart_customer(session, register, juan.id)
        register.current.redeem_points(20)
        sale = sales.checkout(session, register, _cash("200"), admin, config)

        assert sale.loyalty_points_redeemed == 20
        assert sale.discount_amount == Decimal("20.00")
        assert juan.loyalty_points == sale.loyalty_points_earned

    def test_vat_exempt_sale(self, session, register, product, admin, config, juan) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        sales.set_cart_customer(session, register, juan.id, vat_exempt=True)
        sale = sales.checkout(session, register, _cash(), admin, config)
        assert sale.tax_amount == Decimal("0.00")
        assert sale.vat_exempt


class TestVoid:
    def test_void_restores_stock_and_reverses_books(self, session, register, product, admin, config, juan) -> None:
        sales.add_to_cart(session, register, product.id, 5)
        sales.set_cart_customer(session, register, juan.id)
        sale = sales.checkout(session, register, _cash("200"), admin, config)

        voided = sales.void_sale(session, sale.id, "Wrong item", admin, config)

        assert voided.status == "voided"
        assert voided.payment_status == "refunded"
        assert product.stock == 100
        assert juan.loyalty_points == 0
        assert accounting.account_balance(session, accounting.CASH) == Decimal("0.00")
        assert accounting.trial_balance(session)["balanced"]
        actions = session.scalars(select(AuditLog.action).where(AuditLog.entity_id == sale.id)).all()
        assert "void" in actions

    def test_void_twice(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        sale = sales.checkout(session, register, _cash(), admin, config)
        sales.void_sale(session, sale.id, "Customer changed mind", admin, config)
        with pytest.raises(TransitionError):
            sales.void_sale(session, sale.id, "Again", admin, config)

    def test_reason_required(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        sale = sales.checkout(session, register, _cash(), admin, config)
        with pytest.raises(ValidationError):
            sales.void_sale(session, sale.id, "  ", admin, config)


class TestReceipt:
    def test_receipt_text(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 2)
        sale = sales.checkout(session, register, _cash(), admin, config)
        receipt = sales.sale_receipt(session, sale.id, config)

        assert receipt["or_number"] == sale.or_number
        assert "OFFICIAL RECEIPT" in receipt["text"]
        assert "Ligo Sardines 155g" in receipt["text"]
        assert receipt["is_valid"], receipt["errors"]

    def test_list_sales_filters_status(self, session, register, product, admin, config) -> None:
        sales.add_to_cart(session, register, product.id, 1)
        sale = sales.checkout(session, register, _cash(), admin, config)
        sales.void_sale(session, sale.id, "Test", admin, config)
        assert sales.list_sales(session, status="completed") == []
        assert [s.id for s in sales.list_sales(session, status="voided")] == [sale.id]

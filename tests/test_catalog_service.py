"""Tests for products, stock movements, customers, audit and business settings."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fbms.backend.core.errors import ConflictError, NotFoundError, StockError, ValidationError
from fbms.backend.schemas.inventory import CategoryIn, ProductIn, ProductUpdate, StockAdjustmentIn
from fbms.backend.schemas.sales import CustomerIn, CustomerUpdate
from fbms.backend.schemas.system import SettingsIn
from fbms.backend.services import audit, customers, inventory, settings


class TestProducts:
    def test_create_with_opening_stock(self, session, admin) -> None:
        product = inventory.create_product(
            session,
            ProductIn(name="Bear Brand 300g", sku=" bev-bear-300 ", price=Decimal("89.5"), cost=Decimal("75"), stock=12),
            admin.id,
        )
        assert product.sku == "BEV-BEAR-300"
        assert product.price == Decimal("89.50")
        assert product.stock == 12
        (movement,) = inventory.list_movements(session, product.id)
        assert movement.movement_type == "stock_in"
        assert (movement.previous_stock, movement.new_stock) == (0, 12)
        assert movement.total_value == Decimal("900.00")

    def test_duplicate_sku_ignores_case(self, session) -> None:
        with pytest.raises(ConflictError):
            inventory.create_product(session, ProductIn(name="Copy", sku="can-ligo-155"))

    def test_duplicate_barcode(self, session, product) -> None:
        with pytest.raises(ConflictError):
            inventory.create_product(session, ProductIn(name="Copy", sku="CAN-COPY-1", barcode=product.barcode))

    def test_invalid_fields_reported_together(self, session) -> None:
        with pytest.raises(ValidationError) as exc:
            inventory.create_product(
                session, ProductIn(name="Bad", sku="-BAD", price=Decimal("-1"), min_stock=-2)
            )
        codes = [e["code"] for e in exc.value.errors]
        assert codes == ["INVALID_SKU", "NEGATIVE_VALUE", "NEGATIVE_VALUE"]

    def test_search_matches_name_sku_and_barcode(self, session, product) -> None:
        assert [p.sku for p in inventory.list_products(session, search="ligo")] == ["CAN-LIGO-155"]
        assert [p.sku for p in inventory.list_products(session, search="can-ligo")] == ["CAN-LIGO-155"]
        assert [p.id for p in inventory.list_products(session, search=product.barcode)] == [product.id]

    def test_soft_delete_hides_product(self, session, product) -> None:
        inventory.delete_product(session, product.id)
        assert product not in inventory.list_products(session)
        assert product in inventory.list_products(session, active_only=False)

    def test_missing_product(self, session) -> None:
        with pytest.raises(NotFoundError):
            inventory.get_product(session, "nope")


class TestCategories:
    def test_category_in_use_cannot_be_deleted(self, session, product) -> None:
        with pytest.raises(ConflictError):
            inventory.delete_category(session, product.category_id)

    def test_duplicate_name(self, session) -> None:
        with pytest.raises(ConflictError):
            inventory.create_category(session, CategoryIn(name="beverages"))

    def test_unused_category_is_deleted(self, session) -> None:
        category = inventory.create_category(session, CategoryIn(name="Frozen"))
        inventory.delete_category(session, category.id)
        assert "Frozen" not in [c.name for c in inventory.list_categories(session)]


class TestStockMovements:
    def test_stock_out_beyond_stock_refused(self, session, product, config) -> None:
        with pytest.raises(StockError) as exc:
            inventory.adjust_stock(
                session, product.id, StockAdjustmentIn(movement_type="stock_out", quantity=101), config=config
            )
        assert exc.value.errors[0]["code"] == "NEGATIVE_STOCK"
        assert product.stock == 100

    def test_damage_is_outbound(self, session, product, config) -> None:
        movement = inventory.adjust_stock(
            session, product.id, StockAdjustmentIn(movement_type="damage", quantity=3, reason="Dented"), config=config
        )
        assert movement.quantity == -3
        assert product.stock == 97

    def test_zero_quantity_rejected(self, session, product, config) -> None:
        with pytest.raises(ValidationError):
            inventory.adjust_stock(
                session, product.id, StockAdjustmentIn(movement_type="stock_in", quantity=0), config=config
            )

    def test_adjust_to_count(self, session, product, config) -> None:
        movement = inventory.adjust_stock_to(session, product.id, 90, config=config)
        assert movement.movement_type == "adjustment"
        assert movement.quantity == -10
        assert (movement.previous_stock, movement.new_stock) == (100, 90)
        assert inventory.adjust_stock_to(session, product.id, 90, config=config) is None

    def test_negative_count_rejected(self, session, product) -> None:
        with pytest.raises(ValidationError):
            inventory.adjust_stock_to(session, product.id, -1)


class TestAlerts:
    def test_low_out_and_near_expiry(self, session, product, config) -> None:
        inventory.adjust_stock_to(session, product.id, 20, config=config)
        corned = inventory.list_products(session, search="CAN-PURE-150")[0]
        inventory.adjust_stock_to(session, corned.id, 0, config=config)
        inventory.update_product(session, corned.id, ProductUpdate(expiry_date=date(2024, 6, 10)))

        alerts = inventory.stock_alerts(session, config, today=date(2024, 6, 1))

        assert [p.sku for p in alerts["low_stock"]] == ["CAN-LIGO-155"]
        assert [p.sku for p in alerts["out_of_stock"]] == ["CAN-PURE-150"]
        assert [p.sku for p in alerts["near_expiry"]] == ["CAN-PURE-150"]

    def test_far_expiry_not_flagged(self, session, product, config) -> None:
        inventory.update_product(session, product.id, ProductUpdate(expiry_date=date.today() + timedelta(days=365)))
        assert inventory.stock_alerts(session, config)["near_expiry"] == []


class TestCustomers:
    def test_phone_is_normalised(self, session) -> None:
        customer = customers.create_customer(
            session, CustomerIn(first_name="Jose", last_name="Rizal", phone="0917 765 4321", email="Jose@Example.PH")
        )
        assert customer.phone == "09177654321"
        assert customer.email == "jose@example.ph"

    def test_invalid_phone_and_email(self, session) -> None:
        with pytest.raises(ValidationError) as exc:
            customers.create_customer(
                session, CustomerIn(first_name="A", last_name="B", phone="12345", email="not-an-email")
            )
        assert {e["code"] for e in exc.value.errors} == {"INVALID_EMAIL", "INVALID_PHONE"}

    def test_duplicate_email(self, session) -> None:
        with pytest.raises(ConflictError):
            customers.create_customer(
                session, CustomerIn(first_name="Juan", last_name="Copy", email="JUAN.DELACRUZ@example.ph")
            )

    def test_update_keeps_own_email(self, session) -> None:
        juan = customers.list_customers(session, search="dela cruz")[0]
        customers.update_customer(session, juan.id, CustomerUpdate(email=juan.email, customer_type="vip"))
        assert juan.customer_type == "vip"

    def test_stats_without_sales(self, session) -> None:
        juan = customers.list_customers(session, search="juan")[0]
        stats = customers.customer_stats(session, juan.id)
        assert stats["order_count"] == 0
        assert stats["average_order_value"] == Decimal("0.00")
        assert stats["loyalty_tier"] == "bronze"
        assert customers.purchase_history(session, juan.id) == []

    def test_loyalty_never_negative(self, session) -> None:
        maria = customers.list_customers(session, search="santos")[0]
        customers.adjust_loyalty_points(session, maria.id, 30, reason="Promo")
        customers.adjust_loyalty_points(session, maria.id, -50)
        assert maria.loyalty_points == 0

    @pytest.mark.parametrize(
        "points, tier", [(0, "bronze"), (999, "bronze"), (1000, "silver"), (4999, "silver"), (5000, "gold")]
    )
    def test_loyalty_tiers(self, points, tier) -> None:
        assert customers.loyalty_tier(points) == tier


class TestAudit:
    def test_updates_are_logged_newest_first(self, session, product, admin) -> None:
        inventory.update_product(session, product.id, ProductUpdate(price=Decimal("25")), admin.id)

        logs = audit.list_audit_logs(session, entity="product", entity_id=product.id)
        assert logs[0].action == "update"
        assert logs[0].user_id == admin.id
        assert logs[0].old_values["price"] == "24.00"
        assert logs[0].new_values["price"] == "25.00"
        assert logs[-1].action == "create"

    def test_filter_by_user(self, session, product, make_user) -> None:
        manager = make_user("manager")
        inventory.delete_product(session, product.id, manager.id)
        logs = audit.list_audit_logs(session, user_id=manager.id)
        assert {(log.action, log.entity) for log in logs} == {("delete", "product"), ("create", "user")}


class TestSettings:
    def test_defaults_come_from_config(self, session, config) -> None:
        profile = settings.business_profile(session, config)
        assert profile["name"] == config["business"]["name"]
        assert profile["rdo_code"] == "043"
        assert profile["vat_registered"] is True

    def test_update(self, session, config) -> None:
        settings.update_settings(session, SettingsIn(name="Tindahan ni Aling Nena", vat_registered=False), config)
        profile = settings.business_profile(session, config)
        assert profile["name"] == "Tindahan ni Aling Nena"
        assert profile["vat_registered"] is False

    def test_invalid_tin(self, session, config) -> None:
        with pytest.raises(ValidationError):
            settings.update_settings(session, SettingsIn(tin="123456789"), config)

    def test_blank_name(self, session, config) -> None:
        with pytest.raises(ValidationError):
            settings.update_settings(session, SettingsIn(name=""), config)

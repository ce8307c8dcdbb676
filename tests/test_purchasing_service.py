"""Tests for the purchase order workflow: approvals, receiving and costing."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fbms.backend.core.errors import PermissionDeniedError, TransitionError, ValidationError
from fbms.backend.core.purchasing import state_machine as sm
from fbms.backend.schemas.purchasing import POItemIn, PurchaseOrderIn, ReceiveIn, ReceiveItemIn
from fbms.backend.services import accounting, inventory, purchasing


@pytest.fixture
def supplier(session):
    return next(s for s in purchasing.list_suppliers(session) if s.name.startswith("Metro Manila"))


@pytest.fixture
def new_order(session, supplier, product, admin, config):
    def factory(quantity: int = 10, unit_cost: str = "19.00", user=None):
        data = PurchaseOrderIn(
            supplier_id=supplier.id,
            items=[POItemIn(product_id=product.id, quantity=quantity, unit_cost=Decimal(unit_cost))],
        )
        return purchasing.create_purchase_order(session, data, user or admin, config)

    return factory


def _approved(session, order, admin, config):
    purchasing.submit_for_approval(session, order.id, admin, config)
    purchasing.record_approval(session, order.id, admin, config)
    return order


def _receive(order, quantity: int, **kwargs) -> ReceiveIn:
    approved = kwargs.pop("approved", False)
    final = kwargs.pop("final", False)
    item = order.items[0]
    return ReceiveIn(
        items=[ReceiveItemIn(item_id=item.id, received_quantity=quantity, **kwargs)], approved=approved, final=final
    )


class TestCreate:
    def test_totals_and_number(self, new_order, supplier) -> None:
        order = new_order()
        assert order.status == sm.DRAFT
        assert order.po_number.startswith("PO")
        assert order.subtotal == Decimal("190.00")
        assert order.tax_amount == Decimal("22.80")
        assert order.total_amount == Decimal("212.80")
        assert order.supplier_name == supplier.name

    def test_cashier_cannot_create(self, new_order, make_user) -> None:
        with pytest.raises(PermissionDeniedError):
            new_order(user=make_user("cashier"))

    def test_update_replaces_items(self, session, new_order, product, admin, config) -> None:
        order = new_order()
        data = PurchaseOrderIn(
            supplier_id=order.supplier_id,
            items=[POItemIn(product_id=product.id, quantity=2, unit_cost=Decimal("20"))],
        )
        purchasing.update_purchase_order(session, order.id, data, admin, config)
        assert len(order.items) == 1
        assert order.subtotal == Decimal("40.00")

    def test_submit_without_supplier(self, session, product, admin, config) -> None:
        data = PurchaseOrderIn(items=[POItemIn(product_id=product.id, quantity=1, unit_cost=Decimal("19"))])
        order = purchasing.create_purchase_order(session, data, admin, config)
        with pytest.raises(TransitionError) as exc:
            purchasing.submit_for_approval(session, order.id, admin, config)
        assert exc.value.errors[0]["code"] == "NO_SUPPLIER"


class TestApprovals:
    def test_small_order_needs_one_approval(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        assert order.status == sm.APPROVED
        assert order.approved_by == admin.id
        assert [t.to_status for t in order.transitions] == [sm.PENDING_APPROVAL, sm.APPROVED]

    def test_medium_order_needs_two_approvers(self, session, new_order, admin, make_user, config) -> None:
        order = new_order(quantity=500)
        purchasing.submit_for_approval(session, order.id, admin, config)
        purchasing.record_approval(session, order.id, admin, config)
        assert order.status == sm.PENDING_APPROVAL

        with pytest.raises(ValidationError):
            purchasing.record_approval(session, order.id, admin, config)

        purchasing.record_approval(session, order.id, make_user("manager"), config)
        assert order.status == sm.APPROVED

    def test_large_order_rejects_manager(self, session, new_order, admin, make_user, config) -> None:
        order = new_order(quantity=3000)
        purchasing.submit_for_approval(session, order.id, admin, config)
        with pytest.raises(PermissionDeniedError):
            purchasing.record_approval(session, order.id, make_user("manager"), config)

    def test_rejection_returns_to_draft(self, session, new_order, admin, config) -> None:
        order = new_order()
        purchasing.submit_for_approval(session, order.id, admin, config)
        purchasing.record_approval(session, order.id, admin, config, decision="rejected", comments="Too pricey")
        assert order.status == sm.DRAFT

    def test_approve_requires_pending(self, session, new_order, admin, config) -> None:
        with pytest.raises(TransitionError):
            purchasing.record_approval(session, new_order().id, admin, config)


class TestReceiving:
    def test_full_receipt(self, session, new_order, product, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        purchasing.send_to_supplier(session, order.id, admin, config)
        record = purchasing.receive_items(session, order.id, _receive(order, 10), admin, config)

        assert order.status == sm.FULLY_RECEIVED
        assert order.received_date is not None
        assert product.stock == 110
        assert record.total_value == Decimal("190.00")
        assert accounting.account_balance(session, accounting.INVENTORY) == Decimal("190.00")
        assert accounting.account_balance(session, accounting.ACCOUNTS_PAYABLE) == Decimal("-190.00")

    def test_partial_then_complete(self, session, new_order, product, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        purchasing.receive_items(session, order.id, _receive(order, 4), admin, config)
        assert order.status == sm.PARTIALLY_RECEIVED
        purchasing.receive_items(session, order.id, _receive(order, 6), admin, config)
        assert order.status == sm.FULLY_RECEIVED
        assert len(purchasing.list_receiving_records(session, order.id)) == 2
        assert product.stock == 110

    def test_cost_variance_and_average_cost(self, session, new_order, product, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        purchasing.receive_items(session, order.id, _receive(order, 10, unit_cost=Decimal("22")), admin, config)

        assert product.cost == Decimal("19.2727")
        (variance,) = purchasing.list_price_variances(session, order.id)
        assert variance.significant
        assert variance.total_variance == Decimal("30.00")

    def test_damaged_units_stay_out_of_stock(self, session, new_order, product, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        record = purchasing.receive_items(session, order.id, _receive(order, 10, condition="damaged"), admin, config)
        assert product.stock == 100
        assert record.items[0]["accepted_quantity"] == 0
        assert order.items[0].received_quantity == 0
        assert order.status == sm.PARTIALLY_RECEIVED

    def test_over_receiving_blocked(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        with pytest.raises(ValidationError):
            purchasing.receive_items(session, order.id, _receive(order, 12), admin, config)

    def test_over_tolerance_needs_approval(self, session, new_order, product, admin, config) -> None:
        order = _approved(session, new_order(quantity=100), admin, config)
        with pytest.raises(PermissionDeniedError):
            purchasing.receive_items(session, order.id, _receive(order, 107), admin, config)
        purchasing.receive_items(session, order.id, _receive(order, 107, approved=True), admin, config)
        assert product.stock == 207

    def test_expired_goods_rejected(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        expired = date.today() - timedelta(days=3)
        with pytest.raises(ValidationError):
            purchasing.receive_items(session, order.id, _receive(order, 10, expiry_date=expired), admin, config)

    def test_draft_cannot_be_received(self, session, new_order, admin, config) -> None:
        order = new_order()
        with pytest.raises(TransitionError):
            purchasing.receive_items(session, order.id, _receive(order, 10), admin, config)


class TestFinalReceipt:
    @pytest.fixture
    def strict_shortages(self, config):
        config["purchasing"]["under_receiving"].update(
            {"require_approval": True, "auto_accept": False, "tolerance_value": 5, "approval_roles": ["manager"]}
        )
        return config

    def test_short_final_delivery_needs_approval(self, session, new_order, product, admin, strict_shortages) -> None:
        order = _approved(session, new_order(), admin, strict_shortages)
        with pytest.raises(PermissionDeniedError):
            purchasing.receive_items(session, order.id, _receive(order, 5, final=True), admin, strict_shortages)
        assert product.stock == 100

        record = purchasing.receive_items(
            session, order.id, _receive(order, 5, final=True, approved=True), admin, strict_shortages
        )

        assert "UNDER_RECEIVING_APPROVAL_REQUIRED" in [w["code"] for w in record.warnings]
        assert product.stock == 105
        assert order.status == sm.FULLY_RECEIVED
        assert order.transitions[-1].reason.endswith("5 units short")

    def test_same_short_delivery_not_final_stays_partial(
        self, session, new_order, admin, strict_shortages
    ) -> None:
        order = _approved(session, new_order(), admin, strict_shortages)
        record = purchasing.receive_items(session, order.id, _receive(order, 5), admin, strict_shortages)
        assert record.warnings == []
        assert order.status == sm.PARTIALLY_RECEIVED

    def test_small_shortage_warns_with_defaults(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        record = purchasing.receive_items(session, order.id, _receive(order, 9, final=True), admin, config)
        assert [w["code"] for w in record.warnings] == ["UNDER_RECEIVING_WARNING"]
        assert order.status == sm.FULLY_RECEIVED

    def test_lines_missing_from_final_delivery_are_short(
        self, session, supplier, product, admin, strict_shortages
    ) -> None:
        corned = inventory.list_products(session, search="CAN-PURE-150")[0]
        data = PurchaseOrderIn(
            supplier_id=supplier.id,
            items=[
                POItemIn(product_id=product.id, quantity=10, unit_cost=Decimal("19.00")),
                POItemIn(product_id=corned.id, quantity=10, unit_cost=Decimal("39.00")),
            ],
        )
        order = _approved(
            session, purchasing.create_purchase_order(session, data, admin, strict_shortages), admin, strict_shortages
        )
        record = purchasing.receive_items(
            session, order.id, _receive(order, 10, final=True, approved=True), admin, strict_shortages
        )

        (warning,) = record.warnings
        assert warning["code"] == "UNDER_RECEIVING_APPROVAL_REQUIRED"
        assert order.items[1].id in warning["field"]
        assert corned.stock == 50
        assert order.status == sm.FULLY_RECEIVED


class TestCancelAndClose:
    def test_cancel_approved(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        purchasing.cancel_purchase_order(session, order.id, admin, config, "Supplier out of stock")
        assert order.status == sm.CANCELLED
        assert order.transitions[-1].reason == "Supplier out of stock"

    def test_received_order_closes_but_cannot_cancel(self, session, new_order, admin, config) -> None:
        order = _approved(session, new_order(), admin, config)
        purchasing.receive_items(session, order.id, _receive(order, 10), admin, config)
        with pytest.raises(TransitionError):
            purchasing.cancel_purchase_order(session, order.id, admin, config)
        purchasing.close_purchase_order(session, order.id, admin, config)
        assert sm.is_final(order.status)

from __future__ import annotations

import sqlite3

import pytest

from laundry_system import InvalidInputError, LaundryService, OrderStatus, RecordNotFoundError


def _levels(service):
    return {item.item_name: item.quantity for item in service.inventory.list()}


class TestCreateOrder:
    def test_wash_dry_fold_example(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 10, "wash_dry_fold")

        assert order.price == pytest.approx(362.00)
        assert order.status is OrderStatus.RECEIVED
        assert order.customer_name == "Maria Santos"
        levels = _levels(stocked_service)
        assert levels["Detergent"] == pytest.approx(9.5)
        assert levels["Bleach"] == pytest.approx(9.9)
        assert levels["Fabric Softener"] == pytest.approx(9.7)
        assert levels["Starch"] == pytest.approx(9.8)

    @pytest.mark.parametrize(
        "service_type, base, per_kg, expected_usage",
        [
            ("wash", 10.0, 25.0, {"Detergent": 0.05, "Bleach": 0.01}),
            ("dry", 10.0, 20.0, {}),
            ("fold", 5.0, 10.0, {"Starch": 0.02}),
            ("wash_dry", 12.0, 30.0, {"Detergent": 0.05, "Bleach": 0.01}),
        ],
    )
    def test_price_and_deduction_per_service(
        self, stocked_service, customer, service_type, base, per_kg, expected_usage
    ):
        weight = 4.0
        before = _levels(stocked_service)
        order = stocked_service.orders.create(customer.id, weight, service_type)

        assert order.price == pytest.approx(base + weight * per_kg)
        after = _levels(stocked_service)
        for item_name, quantity in before.items():
            expected = quantity - weight * expected_usage.get(item_name, 0.0)
            assert after[item_name] == pytest.approx(expected)

    def test_price_is_stored_not_rederived(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        rule = stocked_service.pricing.resolve("wash")
        stocked_service.pricing.update_rule(rule.id, 100, 100)

        assert stocked_service.orders.get(order.id).price == pytest.approx(60.0)

    @pytest.mark.parametrize(
        "customer_id, weight, service_type",
        [
            (None, 5, "wash"),
            ("", 5, "wash"),
            ("cust", None, "wash"),
            ("cust", 0, "wash"),
            ("cust", -1.5, "wash"),
            ("cust", 5, None),
            ("cust", 5, "   "),
        ],
    )
    def test_missing_fields_are_invalid(self, stocked_service, customer_id, weight, service_type):
        with pytest.raises(InvalidInputError):
            stocked_service.orders.create(customer_id, weight, service_type)
        assert stocked_service.orders.list() == []

    @pytest.mark.parametrize("weight", [float("inf"), float("-inf"), float("nan"), 1e308])
    def test_non_finite_or_unpriceable_weight_changes_nothing(
        self, stocked_service, customer, weight
    ):
        before = _levels(stocked_service)

        with pytest.raises(InvalidInputError):
            stocked_service.orders.create(customer.id, weight, "wash")

        assert stocked_service.orders.list() == []
        assert _levels(stocked_service) == before

    def test_unknown_customer(self, stocked_service):
        with pytest.raises(RecordNotFoundError):
            stocked_service.orders.create("missing", 5, "wash")

    def test_unknown_service_type_changes_nothing(self, stocked_service, customer):
        before = _levels(stocked_service)
        with pytest.raises(InvalidInputError, match="service type"):
            stocked_service.orders.create(customer.id, 5, "dry_clean")
        assert stocked_service.orders.list() == []
        assert _levels(stocked_service) == before

    def test_inactive_service_type_changes_nothing(self, stocked_service, customer):
        rule = stocked_service.pricing.resolve("wash")
        stocked_service.pricing.update_rule(
            rule.id, rule.base_price, rule.price_per_kg, is_active=False
        )
        before = _levels(stocked_service)
        with pytest.raises(InvalidInputError):
            stocked_service.orders.create(customer.id, 5, "wash")
        assert stocked_service.orders.list() == []
        assert _levels(stocked_service) == before

    def test_storage_failure_rolls_back_order_and_stock(
        self, stocked_service, customer, database, monkeypatch
    ):
        original = database.inventory.decrement_by_name
        calls = []

        def flaky_decrement(item_name, amount, updated_at):
            calls.append(item_name)
            if len(calls) == 2:
                raise sqlite3.OperationalError("disk I/O error")
            return original(item_name, amount, updated_at)

        monkeypatch.setattr(database.inventory, "decrement_by_name", flaky_decrement)
        before = _levels(stocked_service)

        with pytest.raises(sqlite3.OperationalError):
            stocked_service.orders.create(customer.id, 10, "wash_dry_fold")

        assert len(calls) == 2
        assert stocked_service.orders.list() == []
        assert _levels(stocked_service) == before

    def test_missing_stock_items_are_skipped(self, service, customer):
        service.inventory.create("Detergent", 1.0, 0.5)

        order = service.orders.create(customer.id, 10, "wash_dry_fold")

        assert order.status is OrderStatus.RECEIVED
        assert [item.item_name for item in service.inventory.list()] == ["Detergent"]
        assert _levels(service)["Detergent"] == pytest.approx(0.5)

    def test_stock_may_go_negative(self, service, customer):
        service.inventory.create("Detergent", 0.1, 1.0)

        service.orders.create(customer.id, 10, "wash")

        assert _levels(service)["Detergent"] == pytest.approx(-0.4)

    def test_injected_consumption_table(self, service, customer, database, clock):
        custom = LaundryService(
            database, consumption_table={"dry": {"Softener Sheets": 1.0}}, clock=clock
        )
        custom.inventory.create("Softener Sheets", 20, 5)
        custom.inventory.create("Detergent", 20, 5)

        custom.orders.create(customer.id, 3, "dry")
        custom.orders.create(customer.id, 3, "wash")

        assert _levels(custom) == {"Detergent": 20.0, "Softener Sheets": 17.0}


class TestUpdateOrder:
    def test_reprices_without_touching_stock(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        after_create = _levels(stocked_service)

        updated = stocked_service.orders.update(order.id, 4, "fold", notes="extra starch")

        assert updated.price == pytest.approx(5 + 4 * 10)
        assert updated.service_type == "fold"
        assert updated.notes == "extra starch"
        assert _levels(stocked_service) == after_create

    def test_update_requires_weight_and_service(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        with pytest.raises(InvalidInputError):
            stocked_service.orders.update(order.id, 0, "wash")
        with pytest.raises(InvalidInputError):
            stocked_service.orders.update(order.id, 3, "unknown")

    @pytest.mark.parametrize("weight", [float("inf"), float("nan"), 1e308])
    def test_update_rejects_unpriceable_weight(self, stocked_service, customer, weight):
        order = stocked_service.orders.create(customer.id, 2, "wash")

        with pytest.raises(InvalidInputError):
            stocked_service.orders.update(order.id, weight, "wash")

        stored = stocked_service.orders.get(order.id)
        assert stored.weight == pytest.approx(2)
        assert stored.price == pytest.approx(60.0)

    def test_update_missing_order(self, stocked_service):
        with pytest.raises(RecordNotFoundError):
            stocked_service.orders.update("missing", 3, "wash")


class TestStatusTransitions:
    def test_ready_and_claimed_are_stamped(self, stocked_service, customer, clock):
        order = stocked_service.orders.create(customer.id, 2, "wash")

        washing = stocked_service.orders.set_status(order.id, "washing")
        assert washing.ready_date is None

        ready_at = clock.advance(hours=3)
        ready = stocked_service.orders.set_status(order.id, "ready")
        assert ready.status is OrderStatus.READY
        assert ready.ready_date == ready_at

        claimed_at = clock.advance(hours=5)
        claimed = stocked_service.orders.set_status(order.id, OrderStatus.CLAIMED)
        assert claimed.claimed_date == claimed_at
        assert stocked_service.orders.get(order.id).status is OrderStatus.CLAIMED

    def test_any_label_from_non_terminal_state(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        stocked_service.orders.set_status(order.id, "ready")

        back = stocked_service.orders.set_status(order.id, "received")

        assert back.status is OrderStatus.RECEIVED

    @pytest.mark.parametrize("status", [None, "", "folded", "done"])
    def test_invalid_labels(self, stocked_service, customer, status):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        with pytest.raises(InvalidInputError):
            stocked_service.orders.set_status(order.id, status)

    def test_claimed_is_terminal(self, stocked_service, customer, clock):
        order = stocked_service.orders.create(customer.id, 2, "wash")
        claimed = stocked_service.orders.set_status(order.id, "claimed")

        with pytest.raises(InvalidInputError):
            stocked_service.orders.set_status(order.id, "washing")

        clock.advance(days=1)
        again = stocked_service.orders.set_status(order.id, "claimed")
        assert again.claimed_date == claimed.claimed_date

    def test_unknown_order(self, stocked_service):
        with pytest.raises(RecordNotFoundError):
            stocked_service.orders.set_status("missing", "ready")


class TestDeleteOrder:
    def test_delete_keeps_stock_deducted(self, stocked_service, customer):
        order = stocked_service.orders.create(customer.id, 10, "wash")
        after_create = _levels(stocked_service)

        stocked_service.orders.delete(order.id)

        with pytest.raises(RecordNotFoundError):
            stocked_service.orders.get(order.id)
        assert _levels(stocked_service) == after_create

    def test_delete_missing(self, stocked_service):
        with pytest.raises(RecordNotFoundError):
            stocked_service.orders.delete("missing")

    def test_list_is_newest_first(self, stocked_service, customer, clock):
        first = stocked_service.orders.create(customer.id, 1, "wash")
        clock.advance(minutes=5)
        second = stocked_service.orders.create(customer.id, 2, "dry")

        assert [order.id for order in stocked_service.orders.list()] == [second.id, first.id]

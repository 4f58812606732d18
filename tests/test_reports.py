from __future__ import annotations

from datetime import date, timedelta

import pytest

from laundry_system import InvalidInputError
from laundry_system.reports import ReportingService


@pytest.fixture
def shop(service, customer, clock):
    """Five orders spread over the last hundred days for two customers."""

    now = clock.now
    ben = service.customers.create("Ben Reyes", "0917 222 3333")
    service.customers.create("Carla Lim", "0917 444 5555")

    def place(customer_id, weight, service_type, ago, status=None):
        clock.now = now - ago
        order = service.orders.create(customer_id, weight, service_type)
        if status:
            for label in status:
                service.orders.set_status(order.id, label)
        clock.now = now
        return order

    orders = {
        "today_wash": place(customer.id, 2, "wash", timedelta(0)),
        "today_dry": place(ben.id, 3, "dry", timedelta(hours=1), ["washing"]),
        "recent_full": place(customer.id, 4, "wash_dry_fold", timedelta(days=2), ["ready"]),
        "claimed_fold": place(ben.id, 5, "fold", timedelta(days=10), ["ready", "claimed"]),
        "old_wash": place(customer.id, 1, "wash", timedelta(days=100)),
    }
    return {"customer": customer, "ben": ben, "orders": orders}


class TestSalesReport:
    @pytest.mark.parametrize(
        "period, total_orders, revenue",
        [("today", 2, 130.0), ("week", 3, 282.0), ("month", 4, 337.0), ("year", 5, 372.0), ("all", 5, 372.0)],
    )
    def test_totals_per_period(self, service, shop, period, total_orders, revenue):
        report = service.reports.sales(period)

        assert report.period == period
        assert report.total_orders == total_orders
        assert report.total_revenue == pytest.approx(revenue)
        assert report.average_order_value == pytest.approx(round(revenue / total_orders, 2))

    def test_status_buckets(self, service, shop):
        report = service.reports.sales("month")

        assert report.pending_orders == 1
        assert report.processing_orders == 1
        assert report.ready_orders == 1
        assert report.completed_orders == 1

    def test_default_period_is_today(self, service, shop):
        assert service.reports.sales().total_orders == 2
        assert service.reports.sales("").total_orders == 2

    def test_custom_range_is_inclusive(self, service, shop):
        report = service.reports.sales(start_date=date(2026, 3, 4), end_date=date(2026, 3, 12))

        assert report.period == "2026-03-04..2026-03-12"
        assert report.total_orders == 2
        assert report.total_revenue == pytest.approx(207.0)

    def test_custom_range_errors(self, service):
        with pytest.raises(InvalidInputError):
            service.reports.sales(start_date=date(2026, 3, 4))
        with pytest.raises(InvalidInputError):
            service.reports.sales(start_date=date(2026, 3, 5), end_date=date(2026, 3, 4))

    def test_empty_shop(self, service):
        report = service.reports.sales("all")

        assert report.total_orders == 0
        assert report.total_revenue == 0
        assert report.average_order_value == 0
        assert report.pending_orders == 0

    def test_unknown_period(self, service):
        with pytest.raises(InvalidInputError, match="Invalid period"):
            service.reports.sales("decade")


class TestBreakdowns:
    def test_daily_newest_first(self, service, shop):
        days = service.reports.daily()

        assert [d.date for d in days] == [date(2026, 3, 14), date(2026, 3, 12)]
        assert days[0].order_count == 2
        assert days[0].daily_revenue == pytest.approx(130.0)
        assert days[0].avg_order_value == pytest.approx(65.0)

    def test_daily_requires_positive_days(self, service):
        with pytest.raises(InvalidInputError):
            service.reports.daily(0)

    def test_daily_rejects_window_before_earliest_date(self, service):
        with pytest.raises(InvalidInputError, match="days"):
            service.reports.daily(1_000_000)

    def test_service_types_ranked_by_revenue(self, service, shop):
        rows = service.reports.service_types()

        assert [row.service_type for row in rows] == ["wash_dry_fold", "dry", "wash", "fold"]
        assert rows[0].total_weight == pytest.approx(4)

        everything = {row.service_type: row for row in service.reports.service_types("all")}
        assert everything["wash"].order_count == 2
        assert everything["wash"].total_revenue == pytest.approx(95.0)

    def test_top_customers(self, service, shop, clock):
        top = service.reports.top_customers("month")

        assert [c.name for c in top] == ["Maria Santos", "Ben Reyes"]
        assert top[0].total_orders == 2
        assert top[0].total_spent == pytest.approx(212.0)
        assert top[0].last_order_date == clock.now
        assert [c.name for c in service.reports.top_customers("today")] == [
            "Ben Reyes",
            "Maria Santos",
        ]
        assert len(service.reports.top_customers("all", limit=1)) == 1

    def test_top_customers_default_limit(self, database, clock, shop):
        reports = ReportingService(database, top_customers_limit=1, clock=clock)

        assert [c.name for c in reports.top_customers()] == ["Maria Santos"]
        with pytest.raises(InvalidInputError):
            reports.top_customers(limit=0)

    def test_order_status_in_lifecycle_order(self, service, shop):
        buckets = service.reports.order_status()

        assert [(b.status, b.count) for b in buckets] == [
            ("received", 2),
            ("washing", 1),
            ("ready", 1),
            ("claimed", 1),
        ]
        assert buckets[0].total_value == pytest.approx(95.0)

    def test_inventory_status(self, service):
        service.inventory.create("Detergent", 8, 2)
        service.inventory.create("Bleach", 1, 2)
        service.inventory.create("Starch", 2, 2)

        rows = service.reports.inventory_status()

        assert [(r.item_name, r.stock_status) for r in rows] == [
            ("Bleach", "Low Stock"),
            ("Starch", "Low Stock"),
            ("Detergent", "In Stock"),
        ]
        assert rows[2].current_stock == pytest.approx(8)

"""Read-only sales and stock reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .domain import OrderStatus, ReportPeriod
from .repository import InvalidInputError, from_db_timestamp, to_db_timestamp
from .storage import LaundryDatabase

Clock = Callable[[], datetime]


def parse_period(value: Union[str, ReportPeriod, None], default: ReportPeriod) -> ReportPeriod:
    """Translate a period label into a :class:`ReportPeriod`."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return ReportPeriod(value.strip().lower() if isinstance(value, str) else value)
    except ValueError as exc:
        choices = ", ".join(period.value for period in ReportPeriod)
        raise InvalidInputError(
            f"Invalid period {value!r}; expected one of {choices}"
        ) from exc


def _money(value: Optional[float]) -> float:
    return round(value or 0.0, 2)


@dataclass(slots=True)
class BillingSummary:
    """Aggregate over billing records within a period."""

    period: ReportPeriod
    total_orders: int
    total_revenue: float
    average_order_value: float
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


@dataclass(slots=True)
class SalesReport:
    """Order totals and status buckets within a period."""

    period: str
    total_orders: int
    total_revenue: float
    average_order_value: float
    completed_orders: int
    ready_orders: int
    processing_orders: int
    pending_orders: int


@dataclass(slots=True)
class DailySales:
    date: date
    order_count: int
    daily_revenue: float
    avg_order_value: float


@dataclass(slots=True)
class ServiceTypeSales:
    service_type: str
    order_count: int
    total_revenue: float
    avg_order_value: float
    total_weight: float


@dataclass(slots=True)
class CustomerSpend:
    id: str
    name: str
    contact: str
    total_orders: int
    total_spent: float
    avg_order_value: float
    last_order_date: Optional[datetime]


@dataclass(slots=True)
class StockStatus:
    item_name: str
    current_stock: float
    threshold: float
    stock_status: str


@dataclass(slots=True)
class StatusBucket:
    status: str
    count: int
    total_value: float


class ReportingService:
    """Aggregations over orders, billing records and inventory.

    Each method issues its own point-in-time query; nothing is cached and no
    state is modified.
    """

    def __init__(
        self,
        database: LaundryDatabase,
        *,
        top_customers_limit: int = 20,
        clock: Clock = datetime.now,
    ) -> None:
        self._database = database
        self._top_customers_limit = top_customers_limit
        self._clock = clock

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[Any]:
        return self._database.connection.execute(sql, tuple(params)).fetchall()

    def _window(self, column: str, period: ReportPeriod) -> Tuple[str, Tuple[Any, ...]]:
        since = period.window_start(self._clock())
        if since is None:
            return "1 = 1", ()
        return f"{column} >= ?", (to_db_timestamp(since),)

    def sales(
        self,
        period: Union[str, ReportPeriod, None] = ReportPeriod.TODAY,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> SalesReport:
        """Order totals for a period or an inclusive custom date range."""

        if (start_date is None) != (end_date is None):
            raise InvalidInputError("start_date and end_date must be given together")
        if start_date is not None and end_date is not None:
            if start_date > end_date:
                raise InvalidInputError("start_date must not be after end_date")
            where = "substr(order_date, 1, 10) BETWEEN ? AND ?"
            params: Tuple[Any, ...] = (start_date.isoformat(), end_date.isoformat())
            label = f"{start_date.isoformat()}..{end_date.isoformat()}"
        else:
            resolved = parse_period(period, ReportPeriod.TODAY)
            where, params = self._window("order_date", resolved)
            label = resolved.value

        row = self._fetchall(
            "SELECT COUNT(*) AS total_orders, SUM(price) AS total_revenue, "
            "AVG(price) AS average_order_value, "
            "SUM(CASE WHEN status = 'claimed' THEN 1 ELSE 0 END) AS completed_orders, "
            "SUM(CASE WHEN status = 'ready' THEN 1 ELSE 0 END) AS ready_orders, "
            "SUM(CASE WHEN status = 'washing' THEN 1 ELSE 0 END) AS processing_orders, "
            "SUM(CASE WHEN status = 'received' THEN 1 ELSE 0 END) AS pending_orders "
            f"FROM orders WHERE {where}",
            params,
        )[0]
        return SalesReport(
            period=label,
            total_orders=row["total_orders"],
            total_revenue=_money(row["total_revenue"]),
            average_order_value=_money(row["average_order_value"]),
            completed_orders=row["completed_orders"] or 0,
            ready_orders=row["ready_orders"] or 0,
            processing_orders=row["processing_orders"] or 0,
            pending_orders=row["pending_orders"] or 0,
        )

    def daily(self, days: int = 7) -> List[DailySales]:
        """Per-day totals for the trailing ``days`` days, newest first."""

        if days < 1:
            raise InvalidInputError("days must be at least 1")
        midnight = datetime.combine(self._clock().date(), time.min)
        try:
            since = midnight - timedelta(days=days)
        except OverflowError as exc:
            raise InvalidInputError(f"days {days} reaches before the earliest date") from exc
        rows = self._fetchall(
            "SELECT substr(order_date, 1, 10) AS day, COUNT(*) AS order_count, "
            "SUM(price) AS daily_revenue, AVG(price) AS avg_order_value "
            "FROM orders WHERE order_date >= ? "
            "GROUP BY substr(order_date, 1, 10) ORDER BY day DESC",
            (to_db_timestamp(since),),
        )
        return [
            DailySales(
                date=date.fromisoformat(row["day"]),
                order_count=row["order_count"],
                daily_revenue=_money(row["daily_revenue"]),
                avg_order_value=_money(row["avg_order_value"]),
            )
            for row in rows
        ]

    def service_types(
        self, period: Union[str, ReportPeriod, None] = ReportPeriod.MONTH
    ) -> List[ServiceTypeSales]:
        resolved = parse_period(period, ReportPeriod.MONTH)
        where, params = self._window("order_date", resolved)
        rows = self._fetchall(
            "SELECT service_type, COUNT(*) AS order_count, SUM(price) AS total_revenue, "
            "AVG(price) AS avg_order_value, SUM(weight) AS total_weight "
            f"FROM orders WHERE {where} "
            "GROUP BY service_type ORDER BY total_revenue DESC, service_type",
            params,
        )
        return [
            ServiceTypeSales(
                service_type=row["service_type"],
                order_count=row["order_count"],
                total_revenue=_money(row["total_revenue"]),
                avg_order_value=_money(row["avg_order_value"]),
                total_weight=round(row["total_weight"] or 0.0, 3),
            )
            for row in rows
        ]

    def top_customers(
        self,
        period: Union[str, ReportPeriod, None] = ReportPeriod.MONTH,
        *,
        limit: Optional[int] = None,
    ) -> List[CustomerSpend]:
        """Customers ranked by spend; customers without orders in the window are left out."""

        resolved = parse_period(period, ReportPeriod.MONTH)
        limit = self._top_customers_limit if limit is None else limit
        if limit < 1:
            raise InvalidInputError("limit must be at least 1")
        where, params = self._window("o.order_date", resolved)
        rows = self._fetchall(
            "SELECT c.id, c.name, c.contact, COUNT(o.id) AS total_orders, "
            "SUM(o.price) AS total_spent, AVG(o.price) AS avg_order_value, "
            "MAX(o.order_date) AS last_order_date "
            f"FROM customers c LEFT JOIN orders o ON o.customer_id = c.id AND {where} "
            "GROUP BY c.id, c.name, c.contact HAVING COUNT(o.id) > 0 "
            "ORDER BY total_spent DESC, c.name LIMIT ?",
            (*params, limit),
        )
        return [
            CustomerSpend(
                id=row["id"],
                name=row["name"],
                contact=row["contact"],
                total_orders=row["total_orders"],
                total_spent=_money(row["total_spent"]),
                avg_order_value=_money(row["avg_order_value"]),
                last_order_date=from_db_timestamp(row["last_order_date"]),
            )
            for row in rows
        ]

    def inventory_status(self) -> List[StockStatus]:
        return [
            StockStatus(
                item_name=item.item_name,
                current_stock=item.quantity,
                threshold=item.threshold,
                stock_status="Low Stock" if item.is_low_stock else "In Stock",
            )
            for item in sorted(
                self._database.inventory.list(),
                key=lambda item: (item.quantity, item.item_name),
            )
        ]

    def order_status(self) -> List[StatusBucket]:
        rows = self._fetchall(
            "SELECT status, COUNT(*) AS count, SUM(price) AS total_value "
            "FROM orders GROUP BY status"
        )
        ranks = {status.value: status.rank for status in OrderStatus}
        buckets = [
            StatusBucket(
                status=row["status"],
                count=row["count"],
                total_value=_money(row["total_value"]),
            )
            for row in rows
        ]
        buckets.sort(key=lambda bucket: ranks.get(bucket.status, len(ranks)))
        return buckets


__all__ = [
    "parse_period",
    "BillingSummary",
    "SalesReport",
    "DailySales",
    "ServiceTypeSales",
    "CustomerSpend",
    "StockStatus",
    "StatusBucket",
    "ReportingService",
]

"""Core data structures for the laundry shop management system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional


class ServiceType(str, Enum):
    """Laundry processing categories offered at the counter."""

    WASH = "wash"
    DRY = "dry"
    FOLD = "fold"
    WASH_DRY = "wash_dry"
    WASH_DRY_FOLD = "wash_dry_fold"

    @property
    def label(self) -> str:
        return {
            ServiceType.WASH: "Wash",
            ServiceType.DRY: "Dry",
            ServiceType.FOLD: "Fold",
            ServiceType.WASH_DRY: "Wash & Dry",
            ServiceType.WASH_DRY_FOLD: "Wash, Dry & Fold",
        }[self]


class OrderStatus(str, Enum):
    """Lifecycle stages for a laundry order."""

    RECEIVED = "received"
    WASHING = "washing"
    READY = "ready"
    CLAIMED = "claimed"

    @property
    def label(self) -> str:
        return {
            OrderStatus.RECEIVED: "Received",
            OrderStatus.WASHING: "Washing",
            OrderStatus.READY: "Ready",
            OrderStatus.CLAIMED: "Claimed",
        }[self]

    @property
    def rank(self) -> int:
        return list(OrderStatus).index(self)


class ReportPeriod(str, Enum):
    """Time windows used by billing summaries and reports."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"

    def window_start(self, now: datetime) -> Optional[datetime]:
        """Return the inclusive lower bound of the window, ``None`` if unbounded."""

        midnight = datetime.combine(now.date(), time.min)
        if self is ReportPeriod.TODAY:
            return midnight
        if self is ReportPeriod.WEEK:
            return midnight - timedelta(days=7)
        if self is ReportPeriod.MONTH:
            return midnight - timedelta(days=30)
        if self is ReportPeriod.YEAR:
            return datetime.combine(_one_year_before(now.date()), time.min)
        return None


def _one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year - 1, day=28)


@dataclass(slots=True)
class Customer:
    """Customer contact profile."""

    id: str
    name: str
    contact: str
    email: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True)
class PricingRule:
    """Price list entry for one service type."""

    id: str
    service_type: str
    base_price: float
    price_per_kg: float
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def quote(self, weight: float) -> float:
        return round(self.base_price + weight * self.price_per_kg, 2)


@dataclass(slots=True)
class InventoryItem:
    """Consumable stock tracked by name."""

    id: str
    item_name: str
    quantity: float
    threshold: float
    unit: str = "units"
    cost_per_unit: float = 0.0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.threshold


@dataclass(slots=True)
class Order:
    """A customer's laundry drop-off with its stored price."""

    id: str
    customer_id: str
    weight: float
    service_type: str
    price: float
    status: OrderStatus = OrderStatus.RECEIVED
    notes: Optional[str] = None
    order_date: datetime = field(default_factory=datetime.now)
    ready_date: Optional[datetime] = None
    claimed_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None


@dataclass(slots=True)
class BillingRecord:
    """Payment taken for an order at pickup."""

    id: str
    order_id: str
    total_amount: float
    payment_method: str = "cash"
    payment_date: datetime = field(default_factory=datetime.now)


@dataclass(slots=True)
class BillingHistoryEntry:
    """Billing record joined with the order and customer it belongs to."""

    id: str
    order_id: str
    total_amount: float
    payment_method: str
    payment_date: datetime
    weight: Optional[float] = None
    service_type: Optional[str] = None
    order_date: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None


__all__ = [
    "ServiceType",
    "OrderStatus",
    "ReportPeriod",
    "Customer",
    "PricingRule",
    "InventoryItem",
    "Order",
    "BillingRecord",
    "BillingHistoryEntry",
]

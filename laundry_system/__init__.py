"""Back office for a laundry shop.

This package provides data models, SQLite persistence, and services for
customer records, order intake and tracking, consumable stock, billing, and
sales reporting, plus a FastAPI web interface in ``laundry_system.web``.
"""

from .domain import (
    BillingRecord,
    Customer,
    InventoryItem,
    Order,
    OrderStatus,
    PricingRule,
    ReportPeriod,
    ServiceType,
)
from .repository import DuplicateRecordError, InvalidInputError, RecordNotFoundError
from .services import LaundryService
from .storage import LaundryDatabase

__all__ = [
    "BillingRecord",
    "Customer",
    "InventoryItem",
    "Order",
    "OrderStatus",
    "PricingRule",
    "ReportPeriod",
    "ServiceType",
    "DuplicateRecordError",
    "InvalidInputError",
    "RecordNotFoundError",
    "LaundryService",
    "LaundryDatabase",
]

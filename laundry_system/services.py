"""Service layer that implements the laundry shop use-cases."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from .config import DEFAULT_CONSUMPTION_TABLE, ConsumptionTable
from .domain import (
    BillingHistoryEntry,
    BillingRecord,
    Customer,
    InventoryItem,
    Order,
    OrderStatus,
    PricingRule,
    ReportPeriod,
)
from .reports import BillingSummary, ReportingService, parse_period
from .repository import InvalidInputError, RecordNotFoundError, from_db_timestamp
from .storage import LaundryDatabase

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Number = Union[int, float]


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _require_text(value: Optional[str], field_name: str) -> str:
    cleaned = _clean_text(value)
    if cleaned is None:
        raise InvalidInputError(f"{field_name} is required")
    return cleaned


def _require_number(
    value: Optional[Number],
    field_name: str,
    *,
    positive: bool = False,
    non_negative: bool = False,
) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field_name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field_name} must be a number") from exc
    if not math.isfinite(number):
        raise InvalidInputError(f"{field_name} must be a finite number")
    if positive and number <= 0:
        raise InvalidInputError(f"{field_name} must be greater than zero")
    if non_negative and number < 0:
        raise InvalidInputError(f"{field_name} must not be negative")
    return number


def _quote(rule: PricingRule, weight: float) -> float:
    price = rule.quote(weight)
    if not math.isfinite(price):
        raise InvalidInputError(f"weight {weight} is too large to price")
    return price


class CustomerDirectory:
    """Customer contact profiles."""

    def __init__(self, database: LaundryDatabase, *, clock: Clock = datetime.now) -> None:
        self._database = database
        self._clock = clock

    def list(self) -> List[Customer]:
        return self._database.customers.list()

    def get(self, customer_id: str) -> Customer:
        return self._database.customers.get(customer_id)

    def create(
        self,
        name: Optional[str],
        contact: Optional[str],
        *,
        email: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Customer:
        name = _require_text(name, "name")
        contact = _require_text(contact, "contact")
        now = self._clock()
        customer = Customer(
            id=str(uuid4()),
            name=name,
            contact=contact,
            email=_clean_text(email),
            address=_clean_text(address),
            created_at=now,
            updated_at=now,
        )
        with self._database.transaction():
            self._database.customers.add(customer)
        logger.info("Created customer %s (%s)", customer.id, customer.name)
        return customer

    def update(
        self,
        customer_id: str,
        name: Optional[str],
        contact: Optional[str],
        *,
        email: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Customer:
        name = _require_text(name, "name")
        contact = _require_text(contact, "contact")
        with self._database.transaction():
            customer = self._database.customers.get(customer_id)
            customer.name = name
            customer.contact = contact
            customer.email = _clean_text(email)
            customer.address = _clean_text(address)
            customer.updated_at = self._clock()
            self._database.customers.update(customer)
        return customer

    def delete(self, customer_id: str) -> None:
        # Orders are left in place; see LaundryDatabase for foreign-key handling.
        with self._database.transaction():
            self._database.customers.remove(customer_id)
        logger.info("Deleted customer %s", customer_id)

    def list_orders(self, customer_id: str) -> List[Order]:
        return self._database.orders.for_customer(customer_id)


class PricingCatalog:
    """Price list keyed by service type."""

    def __init__(self, database: LaundryDatabase, *, clock: Clock = datetime.now) -> None:
        self._database = database
        self._clock = clock

    def list_active(self) -> List[PricingRule]:
        return self._database.pricing.list_active()

    def get(self, rule_id: str) -> PricingRule:
        return self._database.pricing.get(rule_id)

    def create_rule(
        self,
        service_type: Optional[str],
        base_price: Optional[Number],
        price_per_kg: Optional[Number],
        *,
        is_active: bool = True,
    ) -> PricingRule:
        service_type = _require_text(service_type, "service_type")
        now = self._clock()
        rule = PricingRule(
            id=str(uuid4()),
            service_type=service_type,
            base_price=_require_number(base_price, "base_price", non_negative=True),
            price_per_kg=_require_number(price_per_kg, "price_per_kg", non_negative=True),
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        with self._database.transaction():
            self._database.pricing.add(rule)
        logger.info("Created pricing rule %s for %s", rule.id, rule.service_type)
        return rule

    def update_rule(
        self,
        rule_id: str,
        base_price: Optional[Number],
        price_per_kg: Optional[Number],
        *,
        is_active: Optional[bool] = None,
    ) -> PricingRule:
        base_price = _require_number(base_price, "base_price", non_negative=True)
        price_per_kg = _require_number(price_per_kg, "price_per_kg", non_negative=True)
        with self._database.transaction():
            rule = self._database.pricing.get(rule_id)
            rule.base_price = base_price
            rule.price_per_kg = price_per_kg
            if is_active is not None:
                rule.is_active = is_active
            rule.updated_at = self._clock()
            self._database.pricing.update(rule)
        logger.info(
            "Updated pricing rule %s: base %.2f, per kg %.2f",
            rule.id,
            rule.base_price,
            rule.price_per_kg,
        )
        return rule

    def resolve(self, service_type: str) -> PricingRule:
        rule = self._database.pricing.find_active(service_type)
        if rule is None:
            raise InvalidInputError(f"Invalid service type {service_type!r}")
        return rule

    def ensure_defaults(self, defaults: Mapping[str, Tuple[float, float]]) -> int:
        """Seed the price list when it is empty; returns the number of rules created."""

        if len(self._database.pricing) > 0:
            return 0
        for service_type, (base_price, price_per_kg) in defaults.items():
            self.create_rule(service_type, base_price, price_per_kg)
        return len(defaults)


class InventoryLedger:
    """Stock levels for consumables, plus the per-order deduction protocol."""

    def __init__(
        self,
        database: LaundryDatabase,
        consumption_table: Optional[ConsumptionTable] = None,
        *,
        clock: Clock = datetime.now,
    ) -> None:
        self._database = database
        self._consumption = (
            consumption_table if consumption_table is not None else DEFAULT_CONSUMPTION_TABLE
        )
        self._clock = clock

    def list(self) -> List[InventoryItem]:
        return self._database.inventory.list()

    def get(self, item_id: str) -> InventoryItem:
        return self._database.inventory.get(item_id)

    def create(
        self,
        item_name: Optional[str],
        quantity: Optional[Number],
        threshold: Optional[Number],
        *,
        unit: Optional[str] = None,
        cost_per_unit: Optional[Number] = None,
    ) -> InventoryItem:
        now = self._clock()
        item = InventoryItem(
            id=str(uuid4()),
            item_name=_require_text(item_name, "item_name"),
            quantity=_require_number(quantity, "quantity"),
            threshold=_require_number(threshold, "threshold"),
            unit=_clean_text(unit) or "units",
            cost_per_unit=0.0
            if cost_per_unit is None
            else _require_number(cost_per_unit, "cost_per_unit"),
            created_at=now,
            updated_at=now,
        )
        with self._database.transaction():
            self._database.inventory.add(item)
        logger.info("Created inventory item %s (%s)", item.id, item.item_name)
        return item

    def update(
        self,
        item_id: str,
        item_name: Optional[str],
        quantity: Optional[Number],
        threshold: Optional[Number],
        *,
        unit: Optional[str] = None,
        cost_per_unit: Optional[Number] = None,
    ) -> InventoryItem:
        item_name = _require_text(item_name, "item_name")
        quantity = _require_number(quantity, "quantity")
        threshold = _require_number(threshold, "threshold")
        cost = 0.0 if cost_per_unit is None else _require_number(cost_per_unit, "cost_per_unit")
        with self._database.transaction():
            item = self._database.inventory.get(item_id)
            item.item_name = item_name
            item.quantity = quantity
            item.threshold = threshold
            item.unit = _clean_text(unit) or "units"
            item.cost_per_unit = cost
            item.updated_at = self._clock()
            self._database.inventory.update(item)
        return item

    def add_stock(self, item_id: str, quantity: Optional[Number]) -> InventoryItem:
        amount = _require_number(quantity, "quantity", positive=True)
        with self._database.transaction():
            self._database.inventory.increment(item_id, amount, self._clock())
            item = self._database.inventory.get(item_id)
        logger.info("Added %s %s of %s", amount, item.unit, item.item_name)
        return item

    def delete(self, item_id: str) -> None:
        with self._database.transaction():
            self._database.inventory.remove(item_id)
        logger.info("Deleted inventory item %s", item_id)

    def low_stock(self) -> List[InventoryItem]:
        return self._database.inventory.low_stock()

    def usage_for(self, service_type: str, weight: float) -> Dict[str, float]:
        """Consumable quantities a service uses for the given weight."""

        rates = self._consumption.get(service_type, {})
        return {item_name: weight * rate for item_name, rate in rates.items()}

    def deduct_for_order(self, service_type: str, weight: float) -> Dict[str, float]:
        """Decrement stock for an order; returns the deductions actually applied.

        Must run inside the caller's transaction. Items that are not stocked
        are skipped and quantities may go negative.
        """

        applied: Dict[str, float] = {}
        now = self._clock()
        with self._database.transaction():
            for item_name, usage in self.usage_for(service_type, weight).items():
                if usage <= 0:
                    continue
                if self._database.inventory.decrement_by_name(item_name, usage, now):
                    applied[item_name] = usage
                else:
                    logger.debug("No inventory item named %r; skipping", item_name)
        return applied


class OrderWorkflow:
    """Order intake, repricing and status transitions."""

    def __init__(
        self,
        database: LaundryDatabase,
        pricing: PricingCatalog,
        inventory: InventoryLedger,
        *,
        clock: Clock = datetime.now,
    ) -> None:
        self._database = database
        self._pricing = pricing
        self._inventory = inventory
        self._clock = clock

    def list(self) -> List[Order]:
        return self._database.orders.list()

    def get(self, order_id: str) -> Order:
        return self._database.orders.get(order_id)

    def create(
        self,
        customer_id: Optional[str],
        weight: Optional[Number],
        service_type: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> Order:
        customer_id = _require_text(customer_id, "customer_id")
        weight = _require_number(weight, "weight", positive=True)
        service_type = _require_text(service_type, "service_type")
        if customer_id not in self._database.customers:
            raise RecordNotFoundError(f"Customer {customer_id!r} not found")
        rule = self._pricing.resolve(service_type)
        price = _quote(rule, weight)

        now = self._clock()
        order = Order(
            id=str(uuid4()),
            customer_id=customer_id,
            weight=weight,
            service_type=service_type,
            price=price,
            status=OrderStatus.RECEIVED,
            notes=_clean_text(notes),
            order_date=now,
            created_at=now,
            updated_at=now,
        )
        with self._database.transaction():
            self._database.orders.add(order)
            deducted = self._inventory.deduct_for_order(service_type, weight)
        logger.info(
            "Created order %s: %.2f kg %s for %.2f, deducted %s",
            order.id,
            weight,
            service_type,
            order.price,
            deducted or "nothing",
        )
        return self._database.orders.get(order.id)

    def update(
        self,
        order_id: str,
        weight: Optional[Number],
        service_type: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> Order:
        """Change weight/service and reprice from the current price list.

        Inventory already deducted at intake is left as it is.
        """

        weight = _require_number(weight, "weight", positive=True)
        service_type = _require_text(service_type, "service_type")
        price = _quote(self._pricing.resolve(service_type), weight)
        with self._database.transaction():
            order = self._database.orders.get(order_id)
            order.weight = weight
            order.service_type = service_type
            order.price = price
            order.notes = _clean_text(notes)
            order.updated_at = self._clock()
            self._database.orders.update(order)
        logger.info("Updated order %s: repriced to %.2f", order.id, order.price)
        return order

    def set_status(self, order_id: str, status: Union[str, OrderStatus, None]) -> Order:
        """Move an order to ``status``.

        Any label may be requested from a non-terminal state; ``claimed`` is
        terminal.
        """

        label = status.value if isinstance(status, OrderStatus) else _require_text(status, "status")
        try:
            target = OrderStatus(label.lower())
        except ValueError as exc:
            choices = ", ".join(item.value for item in OrderStatus)
            raise InvalidInputError(
                f"Invalid status {label!r}; expected one of {choices}"
            ) from exc

        with self._database.transaction():
            order = self._database.orders.get(order_id)
            if order.status is OrderStatus.CLAIMED:
                if target is OrderStatus.CLAIMED:
                    return order
                raise InvalidInputError(f"Order {order_id!r} has already been claimed")
            now = self._clock()
            previous = order.status
            order.status = target
            order.updated_at = now
            if target is OrderStatus.READY:
                order.ready_date = now
            elif target is OrderStatus.CLAIMED:
                order.claimed_date = now
            self._database.orders.update(order)
        logger.info("Order %s moved from %s to %s", order.id, previous.value, target.value)
        return order

    def delete(self, order_id: str) -> None:
        # Stock and billing records are left untouched.
        with self._database.transaction():
            self._database.orders.remove(order_id)
        logger.info("Deleted order %s", order_id)


class BillingRecorder:
    """Payments taken at pickup and their summaries."""

    def __init__(
        self,
        database: LaundryDatabase,
        *,
        default_payment_method: str = "cash",
        clock: Clock = datetime.now,
    ) -> None:
        self._database = database
        self._default_payment_method = default_payment_method
        self._clock = clock

    def record_payment(
        self, order_id: Optional[str], payment_method: Optional[str] = None
    ) -> BillingRecord:
        """Bill a ready order and mark it claimed in the same unit of work."""

        order_id = _require_text(order_id, "order_id")
        method = _clean_text(payment_method) or self._default_payment_method
        with self._database.transaction():
            order = self._database.orders.get(order_id)
            if order.status is not OrderStatus.READY:
                raise InvalidInputError(
                    f"Order {order_id!r} must be ready before billing "
                    f"(current status: {order.status.value})"
                )
            now = self._clock()
            record = BillingRecord(
                id=str(uuid4()),
                order_id=order.id,
                total_amount=order.price,
                payment_method=method,
                payment_date=now,
            )
            self._database.billing.add(record)
            order.status = OrderStatus.CLAIMED
            order.claimed_date = now
            order.updated_at = now
            self._database.orders.update(order)
        logger.info(
            "Recorded %s payment of %.2f for order %s",
            record.payment_method,
            record.total_amount,
            order.id,
        )
        return record

    def history(self) -> List[BillingHistoryEntry]:
        return self._database.billing.history()

    def summary(
        self, period: Union[str, ReportPeriod, None] = ReportPeriod.TODAY
    ) -> BillingSummary:
        resolved = parse_period(period, ReportPeriod.TODAY)
        row = self._database.billing.summarize(resolved.window_start(self._clock()))
        return BillingSummary(
            period=resolved,
            total_orders=row["total_orders"],
            total_revenue=round(row["total_revenue"] or 0.0, 2),
            average_order_value=round(row["average_order_value"] or 0.0, 2),
            period_start=from_db_timestamp(row["period_start"]),
            period_end=from_db_timestamp(row["period_end"]),
        )


class LaundryService:
    """Facade that exposes the laundry use-cases to clients."""

    def __init__(
        self,
        database: LaundryDatabase,
        *,
        consumption_table: Optional[ConsumptionTable] = None,
        default_payment_method: str = "cash",
        top_customers_limit: int = 20,
        clock: Clock = datetime.now,
    ) -> None:
        self.database = database
        self.customers = CustomerDirectory(database, clock=clock)
        self.pricing = PricingCatalog(database, clock=clock)
        self.inventory = InventoryLedger(database, consumption_table, clock=clock)
        self.orders = OrderWorkflow(database, self.pricing, self.inventory, clock=clock)
        self.billing = BillingRecorder(
            database, default_payment_method=default_payment_method, clock=clock
        )
        self.reports = ReportingService(
            database, top_customers_limit=top_customers_limit, clock=clock
        )


__all__ = [
    "CustomerDirectory",
    "PricingCatalog",
    "InventoryLedger",
    "OrderWorkflow",
    "BillingRecorder",
    "LaundryService",
]

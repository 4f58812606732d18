"""SQLite-backed persistence for the laundry management system."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from types import TracebackType
from typing import Iterator, List, Optional

from .domain import (
    BillingHistoryEntry,
    BillingRecord,
    Customer,
    InventoryItem,
    Order,
    OrderStatus,
    PricingRule,
)
from .repository import (
    DuplicateRecordError,
    SQLiteRepository,
    from_db_timestamp,
    to_db_timestamp,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS customers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    contact TEXT NOT NULL,
    email TEXT,
    address TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS pricing (
    id TEXT PRIMARY KEY,
    service_type TEXT NOT NULL,
    base_price REAL NOT NULL,
    price_per_kg REAL NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS inventory (
    id TEXT PRIMARY KEY,
    item_name TEXT NOT NULL UNIQUE,
    quantity REAL NOT NULL,
    threshold REAL NOT NULL,
    unit TEXT NOT NULL DEFAULT 'units',
    cost_per_unit REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customers (id),
    weight REAL NOT NULL,
    service_type TEXT NOT NULL,
    price REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'received',
    notes TEXT,
    order_date TEXT NOT NULL,
    ready_date TEXT,
    claimed_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS billing_history (
    id TEXT PRIMARY KEY,
    order_id TEXT NOT NULL REFERENCES orders (id),
    total_amount REAL NOT NULL,
    payment_method TEXT NOT NULL,
    payment_date TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_pricing_service_type ON pricing (service_type, is_active);
CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders (customer_id);
CREATE INDEX IF NOT EXISTS idx_orders_order_date ON orders (order_date);
CREATE INDEX IF NOT EXISTS idx_billing_payment_date ON billing_history (payment_date);
"""


class CustomerRepository(SQLiteRepository[Customer]):
    table = "customers"
    label = "Customer"
    order_by = "created_at DESC, rowid DESC"

    def _from_row(self, row: sqlite3.Row) -> Customer:
        return Customer(
            id=row["id"],
            name=row["name"],
            contact=row["contact"],
            email=row["email"],
            address=row["address"],
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )

    def add(self, customer: Customer) -> None:
        self._execute(
            "INSERT INTO customers (id, name, contact, email, address, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                customer.id,
                customer.name,
                customer.contact,
                customer.email,
                customer.address,
                to_db_timestamp(customer.created_at),
                to_db_timestamp(customer.updated_at),
            ),
        )

    def update(self, customer: Customer) -> None:
        cursor = self._execute(
            "UPDATE customers SET name = ?, contact = ?, email = ?, address = ?, updated_at = ? "
            "WHERE id = ?",
            (
                customer.name,
                customer.contact,
                customer.email,
                customer.address,
                to_db_timestamp(customer.updated_at),
                customer.id,
            ),
        )
        self._require_updated(cursor, customer.id)


class PricingRepository(SQLiteRepository[PricingRule]):
    table = "pricing"
    label = "Pricing rule"
    order_by = "service_type, updated_at DESC, created_at, rowid"

    def _from_row(self, row: sqlite3.Row) -> PricingRule:
        return PricingRule(
            id=row["id"],
            service_type=row["service_type"],
            base_price=row["base_price"],
            price_per_kg=row["price_per_kg"],
            is_active=bool(row["is_active"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )

    def add(self, rule: PricingRule) -> None:
        self._execute(
            "INSERT INTO pricing (id, service_type, base_price, price_per_kg, is_active, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                rule.id,
                rule.service_type,
                rule.base_price,
                rule.price_per_kg,
                int(rule.is_active),
                to_db_timestamp(rule.created_at),
                to_db_timestamp(rule.updated_at),
            ),
        )

    def update(self, rule: PricingRule) -> None:
        cursor = self._execute(
            "UPDATE pricing SET base_price = ?, price_per_kg = ?, is_active = ?, updated_at = ? "
            "WHERE id = ?",
            (
                rule.base_price,
                rule.price_per_kg,
                int(rule.is_active),
                to_db_timestamp(rule.updated_at),
                rule.id,
            ),
        )
        self._require_updated(cursor, rule.id)

    def list_active(self) -> List[PricingRule]:
        return self._query(
            f"{self._select()} WHERE is_active = 1 ORDER BY {self.order_by}"
        )

    def find_active(self, service_type: str) -> Optional[PricingRule]:
        """Return the rule in force for a service type.

        When several active rules exist the most recently updated one wins,
        then the oldest by creation.
        """

        rules = self._query(
            f"{self._select()} WHERE service_type = ? AND is_active = 1 "
            "ORDER BY updated_at DESC, created_at, rowid LIMIT 1",
            (service_type,),
        )
        return rules[0] if rules else None


class InventoryRepository(SQLiteRepository[InventoryItem]):
    table = "inventory"
    label = "Inventory item"
    order_by = "item_name"

    def _from_row(self, row: sqlite3.Row) -> InventoryItem:
        return InventoryItem(
            id=row["id"],
            item_name=row["item_name"],
            quantity=row["quantity"],
            threshold=row["threshold"],
            unit=row["unit"],
            cost_per_unit=row["cost_per_unit"],
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )

    def add(self, item: InventoryItem) -> None:
        try:
            self._execute(
                "INSERT INTO inventory (id, item_name, quantity, threshold, unit, "
                "cost_per_unit, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.id,
                    item.item_name,
                    item.quantity,
                    item.threshold,
                    item.unit,
                    item.cost_per_unit,
                    to_db_timestamp(item.created_at),
                    to_db_timestamp(item.updated_at),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(
                f"Inventory item {item.item_name!r} already exists"
            ) from exc

    def update(self, item: InventoryItem) -> None:
        try:
            cursor = self._execute(
                "UPDATE inventory SET item_name = ?, quantity = ?, threshold = ?, unit = ?, "
                "cost_per_unit = ?, updated_at = ? WHERE id = ?",
                (
                    item.item_name,
                    item.quantity,
                    item.threshold,
                    item.unit,
                    item.cost_per_unit,
                    to_db_timestamp(item.updated_at),
                    item.id,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(
                f"Inventory item {item.item_name!r} already exists"
            ) from exc
        self._require_updated(cursor, item.id)

    def increment(self, item_id: str, amount: float, updated_at: datetime) -> None:
        cursor = self._execute(
            "UPDATE inventory SET quantity = quantity + ?, updated_at = ? WHERE id = ?",
            (amount, to_db_timestamp(updated_at), item_id),
        )
        self._require_updated(cursor, item_id)

    def decrement_by_name(self, item_name: str, amount: float, updated_at: datetime) -> bool:
        cursor = self._execute(
            "UPDATE inventory SET quantity = quantity - ?, updated_at = ? WHERE item_name = ?",
            (amount, to_db_timestamp(updated_at), item_name),
        )
        return cursor.rowcount > 0

    def low_stock(self) -> List[InventoryItem]:
        return self._query(
            f"{self._select()} WHERE quantity <= threshold "
            "ORDER BY (quantity - threshold) ASC, item_name"
        )


class OrderRepository(SQLiteRepository[Order]):
    table = "orders"
    label = "Order"
    select_sql = (
        "SELECT o.*, c.name AS customer_name, c.contact AS customer_contact "
        "FROM orders o LEFT JOIN customers c ON c.id = o.customer_id"
    )
    id_column = "o.id"
    order_by = "o.created_at DESC, o.rowid DESC"

    def _from_row(self, row: sqlite3.Row) -> Order:
        return Order(
            id=row["id"],
            customer_id=row["customer_id"],
            weight=row["weight"],
            service_type=row["service_type"],
            price=row["price"],
            status=OrderStatus(row["status"]),
            notes=row["notes"],
            order_date=from_db_timestamp(row["order_date"]),
            ready_date=from_db_timestamp(row["ready_date"]),
            claimed_date=from_db_timestamp(row["claimed_date"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
            customer_name=row["customer_name"],
            customer_contact=row["customer_contact"],
        )

    def add(self, order: Order) -> None:
        self._execute(
            "INSERT INTO orders (id, customer_id, weight, service_type, price, status, notes, "
            "order_date, ready_date, claimed_date, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                order.id,
                order.customer_id,
                order.weight,
                order.service_type,
                order.price,
                order.status.value,
                order.notes,
                to_db_timestamp(order.order_date),
                to_db_timestamp(order.ready_date),
                to_db_timestamp(order.claimed_date),
                to_db_timestamp(order.created_at),
                to_db_timestamp(order.updated_at),
            ),
        )

    def update(self, order: Order) -> None:
        cursor = self._execute(
            "UPDATE orders SET weight = ?, service_type = ?, price = ?, status = ?, notes = ?, "
            "ready_date = ?, claimed_date = ?, updated_at = ? WHERE id = ?",
            (
                order.weight,
                order.service_type,
                order.price,
                order.status.value,
                order.notes,
                to_db_timestamp(order.ready_date),
                to_db_timestamp(order.claimed_date),
                to_db_timestamp(order.updated_at),
                order.id,
            ),
        )
        self._require_updated(cursor, order.id)

    def for_customer(self, customer_id: str) -> List[Order]:
        return self._query(
            f"{self._select()} WHERE o.customer_id = ? ORDER BY {self.order_by}",
            (customer_id,),
        )


class BillingRepository(SQLiteRepository[BillingRecord]):
    table = "billing_history"
    label = "Billing record"
    order_by = "payment_date DESC, rowid DESC"

    def _from_row(self, row: sqlite3.Row) -> BillingRecord:
        return BillingRecord(
            id=row["id"],
            order_id=row["order_id"],
            total_amount=row["total_amount"],
            payment_method=row["payment_method"],
            payment_date=from_db_timestamp(row["payment_date"]),
        )

    def add(self, record: BillingRecord) -> None:
        self._execute(
            "INSERT INTO billing_history (id, order_id, total_amount, payment_method, payment_date) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                record.id,
                record.order_id,
                record.total_amount,
                record.payment_method,
                to_db_timestamp(record.payment_date),
            ),
        )

    def for_order(self, order_id: str) -> List[BillingRecord]:
        return self._query(
            f"{self._select()} WHERE order_id = ? ORDER BY {self.order_by}", (order_id,)
        )

    def history(self) -> List[BillingHistoryEntry]:
        cursor = self._execute(
            "SELECT bh.*, o.weight, o.service_type, o.order_date, "
            "c.name AS customer_name, c.contact AS customer_contact "
            "FROM billing_history bh "
            "LEFT JOIN orders o ON o.id = bh.order_id "
            "LEFT JOIN customers c ON c.id = o.customer_id "
            "ORDER BY bh.payment_date DESC, bh.rowid DESC"
        )
        return [
            BillingHistoryEntry(
                id=row["id"],
                order_id=row["order_id"],
                total_amount=row["total_amount"],
                payment_method=row["payment_method"],
                payment_date=from_db_timestamp(row["payment_date"]),
                weight=row["weight"],
                service_type=row["service_type"],
                order_date=from_db_timestamp(row["order_date"]),
                customer_name=row["customer_name"],
                customer_contact=row["customer_contact"],
            )
            for row in cursor.fetchall()
        ]

    def summarize(self, since: Optional[datetime]) -> sqlite3.Row:
        where, params = "1 = 1", ()
        if since is not None:
            where, params = "payment_date >= ?", (to_db_timestamp(since),)
        cursor = self._execute(
            "SELECT COUNT(*) AS total_orders, SUM(total_amount) AS total_revenue, "
            "AVG(total_amount) AS average_order_value, MIN(payment_date) AS period_start, "
            f"MAX(payment_date) AS period_end FROM billing_history WHERE {where}",
            params,
        )
        return cursor.fetchone()


class LaundryDatabase:
    """Convenience facade bundling the SQLite repositories for all entities."""

    def __init__(self, path: str) -> None:
        # Autocommit mode; units of work are opened explicitly by transaction().
        connection = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        connection.row_factory = sqlite3.Row
        self._connection = connection
        self._path = path
        connection.executescript(SCHEMA)
        self.customers = CustomerRepository(connection)
        self.pricing = PricingRepository(connection)
        self.inventory = InventoryRepository(connection)
        self.orders = OrderRepository(connection)
        self.billing = BillingRepository(connection)
        logger.debug("Opened laundry database at %s", path)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one atomic unit.

        Commits when the block exits normally and rolls back on any exception,
        which is re-raised. Nested use joins the enclosing unit.
        """

        if self._connection.in_transaction:
            yield self._connection
            return
        self._connection.execute("BEGIN")
        try:
            yield self._connection
        except BaseException as exc:
            self._connection.rollback()
            logger.warning("Transaction rolled back: %s: %s", type(exc).__name__, exc)
            raise
        else:
            self._connection.commit()

    def close(self) -> None:
        self._connection.close()
        logger.debug("Closed laundry database at %s", self._path)

    def __enter__(self) -> "LaundryDatabase":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()


__all__ = [
    "CustomerRepository",
    "PricingRepository",
    "InventoryRepository",
    "OrderRepository",
    "BillingRepository",
    "LaundryDatabase",
]

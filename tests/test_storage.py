from __future__ import annotations

from datetime import datetime

import pytest

from laundry_system import Customer, LaundryDatabase, RecordNotFoundError
from laundry_system.repository import from_db_timestamp, to_db_timestamp


def _customer(customer_id: str, name: str = "Ana") -> Customer:
    stamp = datetime(2026, 3, 14, 8, 0, 0, 250)
    return Customer(id=customer_id, name=name, contact="0917", created_at=stamp, updated_at=stamp)


class TestTransactions:
    def test_commit(self, database):
        with database.transaction():
            database.customers.add(_customer("c1"))

        assert "c1" in database.customers
        assert len(database.customers) == 1

    def test_rollback_on_error(self, database):
        with pytest.raises(RuntimeError):
            with database.transaction():
                database.customers.add(_customer("c1"))
                raise RuntimeError("boom")

        assert "c1" not in database.customers
        assert not database.connection.in_transaction

    def test_nested_block_joins_outer_unit(self, database):
        with pytest.raises(RecordNotFoundError):
            with database.transaction():
                database.customers.add(_customer("c1"))
                with database.transaction():
                    database.customers.add(_customer("c2"))
                database.customers.remove("missing")

        assert len(database.customers) == 0

    def test_context_manager_closes(self, tmp_path):
        path = str(tmp_path / "shop.sqlite3")
        with LaundryDatabase(path) as db:
            with db.transaction():
                db.customers.add(_customer("c1", "Persisted"))

        with LaundryDatabase(path) as reopened:
            assert reopened.customers.get("c1").name == "Persisted"


class TestRepositories:
    def test_timestamps_round_trip_with_microseconds(self, database):
        customer = _customer("c1")
        with database.transaction():
            database.customers.add(customer)

        assert database.customers.get("c1").created_at == customer.created_at
        assert to_db_timestamp(customer.created_at) == "2026-03-14 08:00:00.000250"
        assert from_db_timestamp(None) is None

    def test_find_and_iteration(self, database):
        with database.transaction():
            database.customers.add(_customer("c1", "Ana"))
            database.customers.add(_customer("c2", "Ben"))

        assert database.customers.find("missing") is None
        assert {c.name for c in database.customers} == {"Ana", "Ben"}
        assert 42 not in database.customers

    def test_update_missing_row(self, database):
        with pytest.raises(RecordNotFoundError, match="Customer 'ghost' not found"):
            database.customers.update(_customer("ghost"))

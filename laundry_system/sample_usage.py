"""Demonstration script for the laundry management system."""

from __future__ import annotations

from pprint import pprint

from . import LaundryDatabase, LaundryService, OrderStatus, ServiceType
from .config import DEFAULT_PRICING


def main() -> None:
    with LaundryDatabase(":memory:") as database:
        laundry = LaundryService(database)
        laundry.pricing.ensure_defaults(DEFAULT_PRICING)

        # Consumables
        for item_name, quantity, threshold, unit in (
            ("Detergent", 10.0, 2.0, "kg"),
            ("Bleach", 5.0, 1.0, "liters"),
            ("Fabric Softener", 4.0, 1.0, "liters"),
            ("Starch", 1.0, 1.0, "kg"),
        ):
            laundry.inventory.create(item_name, quantity, threshold, unit=unit)

        customer = laundry.customers.create(
            name="Juan dela Cruz",
            contact="+63 917 555 0199",
            email="juan@example.com",
        )

        order = laundry.orders.create(
            customer.id,
            6.0,
            ServiceType.WASH_DRY_FOLD.value,
            notes="Handle the barong with care",
        )
        print(f"Order {order.id} priced at {order.price:.2f}")

        laundry.orders.set_status(order.id, OrderStatus.WASHING)
        laundry.orders.set_status(order.id, OrderStatus.READY)
        receipt = laundry.billing.record_payment(order.id, "gcash")
        print(f"Paid {receipt.total_amount:.2f} via {receipt.payment_method}")

        print("\nStock after the order:")
        pprint(laundry.reports.inventory_status())

        print("\nLow stock:")
        pprint([item.item_name for item in laundry.inventory.low_stock()])

        print("\nSales today:")
        pprint(laundry.reports.sales("today"))

        print("\nBilling summary:")
        pprint(laundry.billing.summary("today"))


if __name__ == "__main__":
    main()

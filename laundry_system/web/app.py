"""FastAPI-based web interface for the laundry management system."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from ..config import DEFAULT_PRICING, Settings, load_settings
from ..domain import ServiceType
from ..repository import DuplicateRecordError, InvalidInputError, RecordNotFoundError
from ..services import LaundryService
from ..storage import LaundryDatabase
from .schemas import (
    CustomerPayload,
    InventoryPayload,
    OrderPayload,
    OrderStatusPayload,
    PaymentPayload,
    PricingPayload,
    StockPayload,
)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    database = LaundryDatabase(settings.database_path)
    service = LaundryService(
        database,
        consumption_table=settings.consumption_table,
        default_payment_method=settings.default_payment_method,
        top_customers_limit=settings.top_customers_limit,
    )
    service.pricing.ensure_defaults(DEFAULT_PRICING)
    if settings.seed_demo_data:
        ensure_demo_data(service)

    app = FastAPI(title="Laundry Management System")
    app.state.laundry_service = service
    app.state.database = database
    register_error_handlers(app)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.get("/")
    async def dashboard(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "sales": service.reports.sales("today"),
                "orders": service.orders.list()[:10],
                "low_stock": service.inventory.low_stock(),
                "service_labels": {item.value: item.label for item in ServiceType},
            },
        )

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------
    @app.get("/api/customers")
    async def list_customers(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.customers.list()

    @app.get("/api/customers/{customer_id}")
    async def get_customer(customer_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.customers.get(customer_id)

    @app.post("/api/customers", status_code=201)
    async def create_customer(payload: CustomerPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.customers.create(
            payload.name,
            payload.contact,
            email=payload.email,
            address=payload.address,
        )

    @app.put("/api/customers/{customer_id}")
    async def update_customer(customer_id: str, payload: CustomerPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.customers.update(
            customer_id,
            payload.name,
            payload.contact,
            email=payload.email,
            address=payload.address,
        )

    @app.delete("/api/customers/{customer_id}")
    async def delete_customer(customer_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        service.customers.delete(customer_id)
        return {"message": "Customer deleted successfully"}

    @app.get("/api/customers/{customer_id}/orders")
    async def list_customer_orders(customer_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.customers.list_orders(customer_id)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    @app.get("/api/orders")
    async def list_orders(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.orders.list()

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.orders.get(order_id)

    @app.post("/api/orders", status_code=201)
    async def create_order(payload: OrderPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.orders.create(
            payload.customer_id,
            payload.weight,
            payload.service_type,
            notes=payload.notes,
        )

    @app.put("/api/orders/{order_id}/status")
    async def update_order_status(order_id: str, payload: OrderStatusPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.orders.set_status(order_id, payload.status)

    @app.put("/api/orders/{order_id}")
    async def update_order(order_id: str, payload: OrderPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.orders.update(
            order_id,
            payload.weight,
            payload.service_type,
            notes=payload.notes,
        )

    @app.delete("/api/orders/{order_id}")
    async def delete_order(order_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        service.orders.delete(order_id)
        return {"message": "Order deleted successfully"}

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------
    @app.get("/api/inventory")
    async def list_inventory(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.list()

    @app.get("/api/inventory/alerts/low-stock")
    async def low_stock_alerts(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.low_stock()

    @app.get("/api/inventory/{item_id}")
    async def get_inventory_item(item_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.get(item_id)

    @app.post("/api/inventory", status_code=201)
    async def create_inventory_item(payload: InventoryPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.create(
            payload.item_name,
            payload.quantity,
            payload.threshold,
            unit=payload.unit,
            cost_per_unit=payload.cost_per_unit,
        )

    @app.put("/api/inventory/{item_id}/add-stock")
    async def add_stock(item_id: str, payload: StockPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.add_stock(item_id, payload.quantity)

    @app.put("/api/inventory/{item_id}")
    async def update_inventory_item(item_id: str, payload: InventoryPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.inventory.update(
            item_id,
            payload.item_name,
            payload.quantity,
            payload.threshold,
            unit=payload.unit,
            cost_per_unit=payload.cost_per_unit,
        )

    @app.delete("/api/inventory/{item_id}")
    async def delete_inventory_item(item_id: str, request: Request):
        service: LaundryService = request.app.state.laundry_service
        service.inventory.delete(item_id)
        return {"message": "Inventory item deleted successfully"}

    # ------------------------------------------------------------------
    # Billing and pricing
    # ------------------------------------------------------------------
    @app.get("/api/billing/history")
    async def billing_history(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.billing.history()

    @app.post("/api/billing", status_code=201)
    async def record_payment(payload: PaymentPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.billing.record_payment(payload.order_id, payload.payment_method)

    @app.get("/api/billing/summary")
    async def billing_summary(request: Request, period: str = "today"):
        service: LaundryService = request.app.state.laundry_service
        return service.billing.summary(period)

    @app.get("/api/billing/pricing")
    async def list_pricing(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.pricing.list_active()

    @app.post("/api/billing/pricing", status_code=201)
    async def create_pricing_rule(payload: PricingPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.pricing.create_rule(
            payload.service_type,
            payload.base_price,
            payload.price_per_kg,
            is_active=True if payload.is_active is None else payload.is_active,
        )

    @app.put("/api/billing/pricing/{rule_id}")
    async def update_pricing_rule(rule_id: str, payload: PricingPayload, request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.pricing.update_rule(
            rule_id,
            payload.base_price,
            payload.price_per_kg,
            is_active=payload.is_active,
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    @app.get("/api/reports/sales")
    async def sales_report(
        request: Request,
        period: str = "today",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.sales(period, start_date=start_date, end_date=end_date)

    @app.get("/api/reports/daily")
    async def daily_report(request: Request, days: int = 7):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.daily(days)

    @app.get("/api/reports/service-types")
    async def service_type_report(request: Request, period: str = "month"):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.service_types(period)

    @app.get("/api/reports/customers")
    async def customer_report(request: Request, period: str = "month"):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.top_customers(period)

    @app.get("/api/reports/inventory")
    async def inventory_report(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.inventory_status()

    @app.get("/api/reports/order-status")
    async def order_status_report(request: Request):
        service: LaundryService = request.app.state.laundry_service
        return service.reports.order_status()

    return app


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "message": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError):
        return _error_response(400, "invalid_input", str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        return _error_response(400, "invalid_input", message or "Invalid request")

    @app.exception_handler(RecordNotFoundError)
    async def not_found(request: Request, exc: RecordNotFoundError):
        return _error_response(404, "not_found", str(exc))

    @app.exception_handler(DuplicateRecordError)
    async def conflict(request: Request, exc: DuplicateRecordError):
        return _error_response(409, "conflict", str(exc))

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "internal", "Internal server error")


def ensure_demo_data(service: LaundryService) -> None:
    if len(service.database.customers) > 0 or len(service.database.inventory) > 0:
        return

    for item_name, quantity, threshold, unit, cost in (
        ("Detergent", 25.0, 5.0, "kg", 85.0),
        ("Bleach", 10.0, 2.0, "liters", 60.0),
        ("Fabric Softener", 12.0, 3.0, "liters", 95.0),
        ("Starch", 8.0, 2.0, "kg", 70.0),
    ):
        service.inventory.create(item_name, quantity, threshold, unit=unit, cost_per_unit=cost)

    customer = service.customers.create(
        name="Maria Santos",
        contact="+63 917 555 0101",
        email="maria.santos@example.com",
        address="12 Mabini Street",
    )
    service.orders.create(
        customer.id,
        4.5,
        ServiceType.WASH_DRY_FOLD.value,
        notes="Separate whites",
    )
    logger.info("Seeded demo inventory and customer data")

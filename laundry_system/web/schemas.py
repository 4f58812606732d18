"""Request bodies accepted by the JSON API.

Fields are optional at this level so that missing values reach the service
layer and are reported through the regular invalid-input path.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CustomerPayload(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class OrderPayload(BaseModel):
    customer_id: Optional[str] = None
    weight: Optional[float] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusPayload(BaseModel):
    status: Optional[str] = None


class InventoryPayload(BaseModel):
    item_name: Optional[str] = None
    quantity: Optional[float] = None
    threshold: Optional[float] = None
    unit: Optional[str] = None
    cost_per_unit: Optional[float] = None


class StockPayload(BaseModel):
    quantity: Optional[float] = None


class PaymentPayload(BaseModel):
    order_id: Optional[str] = None
    payment_method: Optional[str] = None


class PricingPayload(BaseModel):
    service_type: Optional[str] = None
    base_price: Optional[float] = None
    price_per_kg: Optional[float] = None
    is_active: Optional[bool] = None

# backend/storefront/schemas/order_schema.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShippingAddress(BaseModel):
    country: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    details: Optional[str] = None


class CreateOrderIn(BaseModel):
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: int
    cart_items: List[Dict[str, Any]]
    shipping_address: Optional[ShippingAddress] = None
    tax_price: float
    shipping_price: float
    total_order_price: float
    payment_method_type: str
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime

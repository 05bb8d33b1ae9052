# backend/storefront/schemas/cart_schema.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AddItemIn(BaseModel):
    product_id: int
    color: Optional[str] = None
    count: int = Field(1, gt=0)


class UpdateItemIn(BaseModel):
    count: int = Field(..., gt=0)


class ApplyCouponIn(BaseModel):
    coupon: str


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    count: int
    color: Optional[str] = None
    price: float


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    owner_id: Optional[int] = None
    items: List[CartItemOut]
    total_cart_price: float
    total_after_discount: Optional[float] = None
    coupon: Optional[str] = None

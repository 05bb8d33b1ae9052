from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from storefront.config import Settings, settings as default_settings
from storefront.models.cart import Cart
from storefront.models.user import User
from storefront.schemas.order_schema import ShippingAddress
from storefront.services.order_service import OrderService, OrderServiceException
from storefront.utils.metadata import shipping_to_metadata


def to_minor_units(amount: float) -> int:
    """Base currency units to the provider's smallest unit (100 -> 10000)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> float:
    return float(Decimal(int(amount)) / 100)


def build_session_params(
    cart: Cart,
    user: User,
    shipping_address: Optional[ShippingAddress],
    settings: Settings = default_settings,
) -> Dict[str, Any]:
    """
    Checkout Session request for a cart: one aggregate line item for the whole
    payable amount, the cart id as client_reference_id and the shipping
    address flattened into metadata.
    """
    item_count = sum(it.count for it in cart.items)
    return {
        "line_items": [
            {
                "quantity": 1,
                "price_data": {
                    "currency": settings.CHECKOUT_CURRENCY,
                    "unit_amount": to_minor_units(cart.payable_price()),
                    "product_data": {
                        "name": user.name or "Order",
                        "description": f"{item_count} item(s) for {user.email}",
                    },
                },
            }
        ],
        "mode": "payment",
        "success_url": settings.CHECKOUT_SUCCESS_URL,
        "cancel_url": settings.CHECKOUT_CANCEL_URL,
        "customer_email": user.email,
        "client_reference_id": cart.id,
        "metadata": shipping_to_metadata(shipping_address),
    }


class CheckoutService:
    def __init__(self, db: Session, gateway, settings: Settings = default_settings):
        self.db = db
        self.gateway = gateway
        self.settings = settings
        self.order_service = OrderService(db, settings=settings)

    def create_session(
        self, cart_id: str, user: User, shipping_address: Optional[ShippingAddress] = None
    ) -> Dict[str, Any]:
        cart = self.order_service.get_cart_for(cart_id, user)
        if not cart.items:
            raise OrderServiceException(f"Cart {cart_id} is empty")
        params = build_session_params(cart, user, shipping_address, self.settings)
        return self.gateway.create_checkout_session(**params)

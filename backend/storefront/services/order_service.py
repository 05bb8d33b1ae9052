import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.config import Settings, settings as default_settings
from storefront.models.cart import Cart
from storefront.models.order import PAYMENT_CARD, PAYMENT_CASH, Order
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.idempotency_repo import IdempotencyRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order_schema import ShippingAddress
from storefront.services.inventory_service import InventoryService
from storefront.utils.locks import LockBusy, cart_lock, discard_cart_lock

log = logging.getLogger(__name__)


class OrderServiceException(Exception):
    pass


class NotFoundError(OrderServiceException):
    pass


class CartBusyError(OrderServiceException):
    pass


class AlreadyProcessed(OrderServiceException):
    pass


def order_total(cart: Cart, tax_price: float = 0, shipping_price: float = 0) -> float:
    """Discounted cart price when a coupon was applied, else the full price, plus surcharges."""
    return tax_price + shipping_price + cart.payable_price()


class OrderService:
    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.carts = CartRepository(db)
        self.orders = OrderRepository(db)
        self.idempotency = IdempotencyRepository(db)
        self.inventory = InventoryService(db)

    def get_cart_for(self, cart_id: str, user: User) -> Cart:
        cart = self.carts.get(cart_id)
        # someone else's cart is reported exactly like a missing one
        if cart is None or (
            cart.owner_id is not None and cart.owner_id != user.id and not user.is_admin
        ):
            raise NotFoundError(f"There is no cart with id {cart_id} for user {user.id}")
        return cart

    def create_cash_order(
        self, cart_id: str, user: User, shipping_address: Optional[ShippingAddress] = None
    ) -> Order:
        self.get_cart_for(cart_id, user)
        return self.fulfil_cart(
            cart_id,
            user,
            shipping_address,
            payment_method_type=PAYMENT_CASH,
        )

    def fulfil_cart(
        self,
        cart_id: str,
        user: User,
        shipping_address: Optional[ShippingAddress],
        payment_method_type: str,
        total_order_price: Optional[float] = None,
        checkout_session_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """
        Turn a cart into an order: create the order, adjust inventory, delete
        the cart.

        The three steps (plus the processed-event marker when idempotency_key
        is given) commit as one transaction while the cart lock is held, so a
        cart yields at most one order and nothing is left half done.
        Card orders are created paid; total_order_price overrides the amount
        computed from the cart (the provider's charged amount).
        """
        try:
            with cart_lock(cart_id, timeout=self.settings.CART_LOCK_TIMEOUT_SECONDS):
                order = self._fulfil_locked(
                    cart_id,
                    user,
                    shipping_address,
                    payment_method_type,
                    total_order_price,
                    checkout_session_id,
                    idempotency_key,
                )
        except LockBusy as e:
            raise CartBusyError(str(e))
        # the cart is gone, so nobody needs its lock again
        discard_cart_lock(cart_id)
        return order

    def _fulfil_locked(
        self,
        cart_id,
        user,
        shipping_address,
        payment_method_type,
        total_order_price,
        checkout_session_id,
        idempotency_key,
    ) -> Order:
        # whatever this session read before the lock may be stale now
        self.db.expire_all()

        if idempotency_key and self.idempotency.is_completed(idempotency_key):
            raise AlreadyProcessed(idempotency_key)

        cart = self.carts.get(cart_id)
        if cart is None:
            raise NotFoundError(f"There is no cart with id {cart_id}")
        if not cart.items:
            raise OrderServiceException(f"Cart {cart_id} is empty")

        tax_price = self.settings.TAX_PRICE
        shipping_price = self.settings.SHIPPING_PRICE
        if total_order_price is None:
            total_order_price = order_total(cart, tax_price, shipping_price)

        is_paid = payment_method_type == PAYMENT_CARD
        lines = [(it.product_id, it.count) for it in cart.items]

        try:
            order = self.orders.create(
                user_id=user.id,
                cart_items=[it.snapshot() for it in cart.items],
                shipping_address=shipping_address.model_dump() if shipping_address else None,
                tax_price=tax_price,
                shipping_price=shipping_price,
                total_order_price=total_order_price,
                payment_method_type=payment_method_type,
                is_paid=is_paid,
                paid_at=datetime.now(timezone.utc) if is_paid else None,
                source_cart_id=cart.id,
                checkout_session_id=checkout_session_id,
            )
            self.inventory.adjust_for_sale(lines)
            self.carts.delete(cart)
            if idempotency_key:
                self.idempotency.mark_completed(
                    idempotency_key, "checkout.session.completed", {"order_id": order.id}
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        log.info(
            "order %s created user=%s cart=%s method=%s total=%s",
            order.id,
            user.id,
            cart_id,
            payment_method_type,
            order.total_order_price,
        )
        return order

    def list_orders(self, user: User) -> List[Order]:
        return self.orders.list(user_id=None if user.is_admin else user.id)

    def get_order(self, order_id: int, user: Optional[User] = None) -> Order:
        order = self.orders.get(order_id)
        if order is None or (
            user is not None and not user.is_admin and order.user_id != user.id
        ):
            raise NotFoundError(f"There is no order for this id: {order_id}")
        return order

    def mark_paid(self, order_id: int) -> Order:
        order = self.get_order(order_id)
        self.orders.mark_paid(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def mark_delivered(self, order_id: int) -> Order:
        order = self.get_order(order_id)
        self.orders.mark_delivered(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def reconcile_leftover_carts(self) -> List[str]:
        """
        Delete carts that still exist although an order was already produced
        from them. Returns the ids of the carts removed.
        """
        repaired = []
        for cart in self.carts.consumed():
            log.warning("cart %s outlived its order; deleting", cart.id)
            repaired.append(cart.id)
            self.carts.delete(cart)
        self.db.commit()
        return repaired

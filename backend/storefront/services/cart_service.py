from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.cart import Cart
from storefront.models.coupon import Coupon
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository


class CartServiceException(Exception):
    pass


def calc_total_cart_price(cart: Cart) -> float:
    """Recompute the cart total; any discount from a previous coupon is dropped."""
    total = sum((it.price or 0) * it.count for it in cart.items)
    cart.total_cart_price = round(total, 2)
    cart.total_after_discount = None
    cart.coupon = None
    return cart.total_cart_price


class CartService:
    def __init__(self, db: Session):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)

    def get_cart(self, user: User) -> Optional[Cart]:
        return self.cart_repo.get_by_owner(user.id)

    def get_or_create_cart(self, user: User) -> Cart:
        c = self.cart_repo.get_by_owner(user.id)
        if c:
            return c
        c = self.cart_repo.create(user.id)
        self.db.commit()
        return c

    def _require_cart(self, user: User) -> Cart:
        cart = self.get_cart(user)
        if not cart:
            raise CartServiceException(f"There is no cart for this user: {user.id}")
        return cart

    def add_item(self, user: User, product_id: int, color: Optional[str] = None, count: int = 1) -> Cart:
        if count <= 0:
            raise CartServiceException("Count must be positive")
        product = self.product_repo.get(product_id)
        if not product:
            raise CartServiceException(f"There is no product with id {product_id}")
        cart = self.get_or_create_cart(user)
        item = self.cart_repo.find_item(cart, product_id, color)
        if item:
            item.count += count
        else:
            self.cart_repo.add_item(cart, product_id, color, count, product.price)
        calc_total_cart_price(cart)
        self.db.commit()
        return cart

    def update_item_count(self, user: User, item_id: int, count: int) -> Cart:
        if count <= 0:
            raise CartServiceException("Count must be positive")
        cart = self._require_cart(user)
        item = self.cart_repo.get_item(cart, item_id)
        if not item:
            raise CartServiceException(f"There is no item for this id: {item_id}")
        item.count = count
        calc_total_cart_price(cart)
        self.db.commit()
        return cart

    def remove_item(self, user: User, item_id: int) -> Cart:
        cart = self._require_cart(user)
        item = self.cart_repo.get_item(cart, item_id)
        if item:
            self.cart_repo.remove_item(cart, item)
        calc_total_cart_price(cart)
        self.db.commit()
        return cart

    def clear_cart(self, user: User):
        cart = self.get_cart(user)
        if cart:
            self.cart_repo.delete(cart)
            self.db.commit()

    def apply_coupon(self, user: User, code: str) -> Cart:
        coupon = (
            self.db.query(Coupon)
            .filter(Coupon.name == (code or "").strip().upper())
            .first()
        )
        if not coupon or coupon.is_expired():
            raise CartServiceException("Coupon is invalid or expired")
        cart = self._require_cart(user)
        total = calc_total_cart_price(cart)
        discount = min(max(coupon.discount, 0), 100)
        cart.total_after_discount = round(total - (total * discount) / 100, 2)
        cart.coupon = coupon.name
        self.db.commit()
        return cart

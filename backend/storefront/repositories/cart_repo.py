from sqlalchemy.orm import Session
from typing import List, Optional
from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem
from storefront.models.order import Order

class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, cart_id: str) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.id == cart_id).first()

    def get_by_owner(self, owner_id: int) -> Optional[Cart]:
        return (
            self.db.query(Cart)
            .filter(Cart.owner_id == owner_id)
            .order_by(Cart.created_at.desc())
            .first()
        )

    def create(self, owner_id: int) -> Cart:
        c = Cart(owner_id=owner_id)
        self.db.add(c)
        self.db.flush()
        return c

    def find_item(self, cart: Cart, product_id: int, color: Optional[str]) -> Optional[CartItem]:
        return next(
            (it for it in cart.items if it.product_id == product_id and it.color == color),
            None,
        )

    def get_item(self, cart: Cart, item_id: int) -> Optional[CartItem]:
        return next((it for it in cart.items if it.id == item_id), None)

    def add_item(self, cart: Cart, product_id: int, color: Optional[str], count: int, price: float) -> CartItem:
        item = CartItem(product_id=product_id, color=color, count=count, price=price)
        cart.items.append(item)
        self.db.flush()
        return item

    def remove_item(self, cart: Cart, item: CartItem):
        # delete-orphan cascade removes the row
        cart.items.remove(item)
        self.db.flush()

    def clear_items(self, cart: Cart):
        cart.items.clear()
        self.db.flush()

    def delete(self, cart: Cart):
        self.db.delete(cart)
        self.db.flush()

    def consumed(self) -> List[Cart]:
        """Carts that already produced an order but still exist."""
        return (
            self.db.query(Cart)
            .join(Order, Order.source_cart_id == Cart.id)
            .distinct()
            .all()
        )

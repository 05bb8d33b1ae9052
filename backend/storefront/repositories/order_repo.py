from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.order import Order


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def get_by_session(self, session_id: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.checkout_session_id == session_id)
            .first()
        )

    def list(self, user_id: Optional[int] = None) -> List[Order]:
        qry = self.db.query(Order)
        if user_id is not None:
            qry = qry.filter(Order.user_id == user_id)
        return qry.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def create(self, **fields) -> Order:
        order = Order(**fields)
        self.db.add(order)
        self.db.flush()
        return order

    def mark_paid(self, order: Order) -> Order:
        # once paid, the original paid_at is kept
        if not order.is_paid:
            order.is_paid = True
            order.paid_at = datetime.now(timezone.utc)
            self.db.flush()
        return order

    def mark_delivered(self, order: Order) -> Order:
        if not order.is_delivered:
            order.is_delivered = True
            order.delivered_at = datetime.now(timezone.utc)
            self.db.flush()
        return order

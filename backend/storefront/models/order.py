from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)

from storefront.db import Base

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # snapshot of the cart lines at order time, never rewritten
    cart_items = Column(JSON, nullable=False, default=list)
    shipping_address = Column(JSON, nullable=True)
    tax_price = Column(Float, nullable=False, default=0)
    shipping_price = Column(Float, nullable=False, default=0)
    total_order_price = Column(Float, nullable=False)
    payment_method_type = Column(String(8), nullable=False, default=PAYMENT_CASH)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime, nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime, nullable=True)
    source_cart_id = Column(String(32), nullable=True, index=True)
    checkout_session_id = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

from uuid import uuid4

from storefront.db import Base
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship


class Cart(Base):
    __tablename__ = "carts"
    # opaque id, also travels to the payment provider as client_reference_id
    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    total_cart_price = Column(Float, nullable=False, default=0)
    total_after_discount = Column(Float, nullable=True)
    coupon = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def payable_price(self) -> float:
        if self.total_after_discount is not None:
            return self.total_after_discount
        return self.total_cart_price or 0

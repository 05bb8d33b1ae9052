from sqlalchemy import Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from storefront.db import Base


class CartItem(Base):
    __tablename__ = "cart_items"
    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(
        String(32), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(Integer, nullable=False, index=True)
    count = Column(Integer, nullable=False, default=1)
    color = Column(String(32), nullable=True)
    price = Column(Float, nullable=False, default=0)  # unit price at time of add

    cart = relationship("Cart", back_populates="items")

    def snapshot(self) -> dict:
        return {
            "product": self.product_id,
            "count": self.count,
            "color": self.color,
            "price": self.price,
        }

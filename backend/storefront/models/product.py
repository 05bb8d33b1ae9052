from sqlalchemy import Column, Integer, String, Boolean, Text, Float
from storefront.db import Base

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0)
    active = Column(Boolean, default=True, nullable=False)
    # stock on hand; may go negative, nothing here guards against overselling
    quantity = Column(Integer, default=0, nullable=False)
    sold = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<Product sku={self.sku} quantity={self.quantity} sold={self.sold}>"

from typing import Optional

from storefront.models.product import Product
from sqlalchemy.orm import Session


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.active == True)
            .first()
        )

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.sku == sku).first()

    def create_or_update(
        self,
        sku: str,
        name: str,
        price: float,
        quantity: int = 0,
        description: str = None,
    ):
        p = self.get_by_sku(sku)
        if p:
            p.name = name
            p.price = price
            p.quantity = quantity
            p.description = description
        else:
            p = Product(
                sku=sku,
                name=name,
                price=price,
                quantity=quantity,
                description=description,
            )
            self.db.add(p)
        self.db.flush()
        return p

import logging
from typing import Iterable, Tuple

from sqlalchemy import bindparam
from sqlalchemy.orm import Session

from storefront.models.product import Product

log = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, db: Session):
        self.db = db

    def adjust_for_sale(self, lines: Iterable[Tuple[int, int]]) -> int:
        """
        Apply quantity -= count and sold += count for every (product_id, count).

        All lines go to the database as one executemany UPDATE in the caller's
        transaction. Both columns change in the same statement, so each row is
        updated atomically. Unknown product ids match nothing and are skipped.
        Returns the number of rows matched.
        """
        params = [
            {"_pid": pid, "_count": int(count)}
            for pid, count in lines
            if pid is not None and int(count) > 0
        ]
        if not params:
            return 0

        table = Product.__table__
        stmt = (
            table.update()
            .where(table.c.id == bindparam("_pid"))
            .values(
                quantity=table.c.quantity - bindparam("_count"),
                sold=table.c.sold + bindparam("_count"),
            )
        )
        result = self.db.execute(stmt, params)
        matched = result.rowcount if result.rowcount is not None else -1

        ids = {p["_pid"] for p in params}
        # rows were changed behind the ORM's back
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, Product) and obj.id in ids:
                self.db.expire(obj)

        oversold = (
            self.db.query(Product.id, Product.sku, Product.quantity)
            .filter(Product.id.in_(ids), Product.quantity < 0)
            .all()
        )
        for pid, sku, qty in oversold:
            log.warning("product %s (%s) oversold, quantity=%s", pid, sku, qty)

        log.info("inventory adjusted lines=%d matched=%s", len(params), matched)
        return matched

    def stock_of(self, product_id: int) -> Tuple[int, int]:
        """Return (quantity, sold) for a product, or raise LookupError."""
        row = (
            self.db.query(Product.quantity, Product.sold)
            .filter(Product.id == product_id)
            .first()
        )
        if row is None:
            raise LookupError(f"No product with id {product_id}")
        return row[0], row[1]

from datetime import datetime, timezone

from storefront.db import Base
from sqlalchemy import Column, DateTime, Float, Integer, String


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), unique=True, index=True, nullable=False)
    discount = Column(Float, nullable=False)  # percent, 0-100
    expire = Column(DateTime(timezone=True), nullable=False)

    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(timezone.utc)
        expire = self.expire
        # sqlite hands back naive datetimes
        if expire.tzinfo is None:
            expire = expire.replace(tzinfo=timezone.utc)
        return expire <= now

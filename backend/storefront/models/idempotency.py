import enum
from datetime import datetime, timezone

from storefront.db import Base
from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String


class IdempotencyStatus(enum.Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class IdempotencyRecord(Base):
    __tablename__ = "idempotency_records"
    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    operation = Column(String(64), nullable=False)
    status = Column(Enum(IdempotencyStatus), nullable=False)
    response_body = Column(JSON, nullable=True)
    last_error = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

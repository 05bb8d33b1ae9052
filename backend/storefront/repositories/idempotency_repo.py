import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.db import SessionLocal
from storefront.models.idempotency import IdempotencyRecord, IdempotencyStatus

log = logging.getLogger(__name__)


class IdempotencyRepository:
    def __init__(self, db: Session, session_factory=SessionLocal):
        # db is the caller's session; session_factory opens short-lived ones
        self.db = db
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.key == key)
            .first()
        )

    def is_completed(self, key: str) -> bool:
        rec = self.get(key)
        return bool(rec and rec.status == IdempotencyStatus.COMPLETED)

    def mark_completed(self, key: str, operation: str, response_body: dict) -> IdempotencyRecord:
        """
        Stage a COMPLETED marker in the caller's transaction.

        A FAILED marker left by an earlier attempt is flipped in place; otherwise
        a new row is added and the unique key makes a concurrent duplicate fail
        at commit time.
        """
        rec = self.get(key)
        if rec is None:
            rec = IdempotencyRecord(key=key, operation=operation)
            self.db.add(rec)
        rec.status = IdempotencyStatus.COMPLETED
        rec.response_body = response_body
        rec.last_error = None
        self.db.flush()
        log.debug("mark_completed(): key=%r response=%s", key, response_body)
        return rec

    def mark_failed(self, key: str, operation: str, error_message: str):
        """
        Record a FAILED marker in its own short-lived transaction, so it survives
        the rollback of the work that failed. Never downgrades a COMPLETED one.
        """
        with self.session_factory() as s:
            rec = s.query(IdempotencyRecord).filter(IdempotencyRecord.key == key).first()
            if rec is not None and rec.status == IdempotencyStatus.COMPLETED:
                return
            if rec is None:
                rec = IdempotencyRecord(key=key, operation=operation)
                s.add(rec)
            rec.status = IdempotencyStatus.FAILED
            rec.last_error = (error_message or "")[:1024]
            s.commit()
        log.debug("mark_failed(): key=%r error=%s", key, error_message)

    def list_failed(self, limit: int = 100):
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.status == IdempotencyStatus.FAILED)
            .order_by(IdempotencyRecord.updated_at.desc())
            .limit(limit)
            .all()
        )

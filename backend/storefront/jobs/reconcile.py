import logging

from storefront.db import SessionLocal
from storefront.services.order_service import OrderService

log = logging.getLogger(__name__)


def reconcile_job(session_factory=SessionLocal):
    """Scheduled sweep for carts that outlived the order they produced."""
    db = session_factory()
    try:
        repaired = OrderService(db).reconcile_leftover_carts()
        if repaired:
            log.warning("reconcile removed %d leftover cart(s): %s", len(repaired), repaired)
    except Exception:
        log.exception("reconcile job failed")
    finally:
        db.close()

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.db import get_db
from storefront.repositories.idempotency_repo import IdempotencyRepository
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/webhook-failures", summary="List webhook deliveries that failed processing")
def list_webhook_failures(db: Session = Depends(get_db), limit: int = 100):
    recs = IdempotencyRepository(db).list_failed(limit=limit)
    return [
        {
            "key": r.key,
            "operation": r.operation,
            "last_error": r.last_error,
            "updated_at": r.updated_at.isoformat() if r.updated_at else None,
        }
        for r in recs
    ]


@router.post("/reconcile", summary="Delete carts that outlived their order")
def reconcile(db: Session = Depends(get_db)):
    repaired = OrderService(db).reconcile_leftover_carts()
    return {"repaired": repaired}

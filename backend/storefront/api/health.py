from fastapi import APIRouter, Depends
from sqlalchemy import text

from storefront.api.deps import get_payment_gateway
from storefront.db import engine

router = APIRouter()


@router.get("/health", tags=["health"])
def health(gateway=Depends(get_payment_gateway)):
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False
    payment_ok = gateway.health_check()

    return {
        "status": "ok" if db_ok and payment_ok else "degraded",
        "db": db_ok,
        "payment_gateway": payment_ok,
    }

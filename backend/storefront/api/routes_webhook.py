from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.adapters.stripe_gateway import SignatureInvalid
from storefront.api.deps import get_payment_gateway
from storefront.db import get_db
from storefront.services.webhook_service import WebhookService

router = APIRouter(tags=["webhook"])


@router.post("/webhook-checkout", include_in_schema=False)
async def webhook_checkout(
    request: Request,
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    """
    Payment provider callback. The signature covers the raw body, so it is
    read unparsed. Every authenticated event is acknowledged with 200 so the
    provider stops retrying; only a bad signature gets a 400.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    svc = WebhookService(db, gateway)
    try:
        await run_in_threadpool(svc.handle, payload, sig_header)
    except SignatureInvalid as e:
        raise HTTPException(status_code=400, detail=f"Webhook error: {e}")
    return {"received": True}

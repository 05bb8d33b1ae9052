import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.adapters.stripe_gateway import PaymentProviderError
from storefront.api.deps import get_current_user, get_payment_gateway, require_admin
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.order_schema import CreateOrderIn, OrderOut, ShippingAddress
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import (
    CartBusyError,
    NotFoundError,
    OrderService,
    OrderServiceException,
)

log = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


def _order_out(order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def _raise_for(e: Exception):
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CartBusyError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, OrderServiceException):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, PaymentProviderError):
        raise HTTPException(status_code=502, detail=f"Payment provider error: {e}")
    log.exception("unexpected error in orders route")
    raise HTTPException(status_code=500, detail=f"Internal server error: {type(e).__name__}")


def _create_session(cart_id, shipping_address, user, db, gateway):
    svc = CheckoutService(db, gateway)
    try:
        session = svc.create_session(cart_id, user, shipping_address)
    except Exception as e:
        _raise_for(e)
    return {"status": "success", "session": session}


@router.get("/checkout-session/{cart_id}", summary="Create card checkout session")
def checkout_session_get(
    cart_id: str,
    country: Optional[str] = None,
    city: Optional[str] = None,
    street: Optional[str] = None,
    details: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    address = ShippingAddress(country=country, city=city, street=street, details=details)
    return _create_session(cart_id, address, user, db, gateway)


@router.post("/checkout-session/{cart_id}", summary="Create card checkout session")
def checkout_session_post(
    cart_id: str,
    payload: Optional[CreateOrderIn] = Body(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    address = payload.shipping_address if payload else None
    return _create_session(cart_id, address, user, db, gateway)


@router.post("/{cart_id}", status_code=201, summary="Create cash order from a cart")
def create_cash_order(
    cart_id: str,
    payload: Optional[CreateOrderIn] = Body(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    try:
        order = svc.create_cash_order(
            cart_id, user, payload.shipping_address if payload else None
        )
    except Exception as e:
        _raise_for(e)
    return {"status": "success", "data": _order_out(order)}


@router.get("", summary="List orders")
def list_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    orders = OrderService(db).list_orders(user)
    return {"results": len(orders), "data": [_order_out(o) for o in orders]}


@router.get("/{order_id}", summary="Get order")
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        order = OrderService(db).get_order(order_id, user)
    except Exception as e:
        _raise_for(e)
    return {"data": _order_out(order)}


@router.put("/{order_id}/pay", summary="Mark order paid")
def mark_paid(order_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        order = OrderService(db).mark_paid(order_id)
    except Exception as e:
        _raise_for(e)
    return {"status": "success", "data": _order_out(order)}


@router.put("/{order_id}/deliver", summary="Mark order delivered")
def mark_delivered(order_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        order = OrderService(db).mark_delivered(order_id)
    except Exception as e:
        _raise_for(e)
    return {"status": "success", "data": _order_out(order)}

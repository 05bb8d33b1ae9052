from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.cart_schema import AddItemIn, ApplyCouponIn, CartOut, UpdateItemIn
from storefront.services.cart_service import CartService, CartServiceException

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _cart_out(cart) -> dict:
    return {
        "status": "success",
        "numOfCartItems": len(cart.items),
        "data": CartOut.model_validate(cart).model_dump(),
    }


@router.get("", summary="Get cart")
def get_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cart = CartService(db).get_cart(user)
    if not cart:
        raise HTTPException(status_code=404, detail=f"There is no cart for this user id: {user.id}")
    return _cart_out(cart)


@router.post("/items", summary="Add item to cart")
def add_item(payload: AddItemIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        cart = CartService(db).add_item(user, payload.product_id, payload.color, payload.count)
    except CartServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _cart_out(cart)


@router.put("/items/{item_id}", summary="Update item count")
def update_item(
    item_id: int,
    payload: UpdateItemIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        cart = CartService(db).update_item_count(user, item_id, payload.count)
    except CartServiceException as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _cart_out(cart)


@router.delete("/items/{item_id}", summary="Remove item")
def remove_item(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        cart = CartService(db).remove_item(user, item_id)
    except CartServiceException as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _cart_out(cart)


@router.delete("", status_code=204, summary="Clear cart")
def clear_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    CartService(db).clear_cart(user)


@router.put("/coupon", summary="Apply coupon")
def apply_coupon(payload: ApplyCouponIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        cart = CartService(db).apply_coupon(user, payload.coupon)
    except CartServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _cart_out(cart)

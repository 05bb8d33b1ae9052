from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.adapters.stripe_gateway import StripeGateway
from storefront.config import settings
from storefront.db import get_db
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository


def get_payment_gateway() -> StripeGateway:
    return StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    # identity is established upstream; we only resolve it to a user row
    if not x_user_id or not x_user_id.isdigit():
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = UserRepository(db).get(int(x_user_id))
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="You are not allowed to access this route")
    return user

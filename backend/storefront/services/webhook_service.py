import enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import Settings, settings as default_settings
from storefront.models.order import PAYMENT_CARD, Order
from storefront.repositories.idempotency_repo import IdempotencyRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.user_repo import UserRepository
from storefront.services.checkout_service import from_minor_units
from storefront.services.order_service import (
    AlreadyProcessed,
    NotFoundError,
    OrderService,
    OrderServiceException,
)
from storefront.utils.metadata import metadata_to_shipping

log = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class WebhookResult(str, enum.Enum):
    COMPLETED = "completed"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class DuplicateDelivery(Exception):
    pass


def marker_key(session_id: Optional[str]) -> str:
    return f"{CHECKOUT_COMPLETED}:{session_id}"


class WebhookService:
    def __init__(self, db: Session, gateway, settings: Settings = default_settings):
        self.db = db
        self.gateway = gateway
        self.order_service = OrderService(db, settings=settings)
        self.orders = OrderRepository(db)
        self.users = UserRepository(db)
        self.idempotency = IdempotencyRepository(db)

    def handle(self, payload: bytes, sig_header: Optional[str]) -> WebhookResult:
        """
        Process one webhook delivery.

        SignatureInvalid from the gateway propagates untouched and nothing is
        written. Once the event is authenticated every outcome is returned as a
        WebhookResult; processing errors are logged and recorded, never raised.
        """
        event = self.gateway.construct_event(payload, sig_header)

        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED:
            log.info("webhook ignored event=%s type=%s", event.get("id"), event_type)
            return WebhookResult.IGNORED

        data = event.get("data")
        session = data.get("object") if isinstance(data, dict) else None
        if not isinstance(session, dict):
            session = {}
        try:
            order = self.complete_checkout(session)
        except DuplicateDelivery:
            log.info("webhook duplicate event=%s session=%s", event.get("id"), session.get("id"))
            return WebhookResult.DUPLICATE
        except Exception as e:
            log.exception(
                "webhook processing failed event=%s session=%s", event.get("id"), session.get("id")
            )
            self.db.rollback()
            self._record_failure(session.get("id"), e)
            return WebhookResult.FAILED

        log.info("webhook completed session=%s order=%s", session.get("id"), order.id)
        return WebhookResult.COMPLETED

    def complete_checkout(self, session: Dict[str, Any]) -> Order:
        session_id = session.get("id")
        if not session_id:
            raise OrderServiceException("Checkout session carries no id")
        key = marker_key(session_id)
        if self.idempotency.is_completed(key) or self.orders.get_by_session(session_id):
            raise DuplicateDelivery(session_id)

        cart_id = session.get("client_reference_id")
        if not cart_id:
            raise NotFoundError(f"Checkout session {session_id} carries no cart reference")

        email = session.get("customer_email") or (session.get("customer_details") or {}).get("email")
        user = self.users.get_by_email(email)
        if user is None:
            raise NotFoundError(f"There is no user with email {email}")

        amount_total = session.get("amount_total")
        total = from_minor_units(amount_total) if amount_total is not None else None

        try:
            return self.order_service.fulfil_cart(
                cart_id,
                user,
                metadata_to_shipping(session.get("metadata")),
                payment_method_type=PAYMENT_CARD,
                total_order_price=total,
                checkout_session_id=session_id,
                idempotency_key=key,
            )
        except AlreadyProcessed as e:
            raise DuplicateDelivery(session_id) from e
        except IntegrityError as e:
            # only a concurrent delivery of the same session counts as a duplicate
            if self.idempotency.is_completed(key) or self.orders.get_by_session(session_id):
                raise DuplicateDelivery(session_id) from e
            raise

    def _record_failure(self, session_id: Optional[str], error: Exception):
        if not session_id:
            return
        try:
            self.idempotency.mark_failed(marker_key(session_id), CHECKOUT_COMPLETED, str(error))
        except Exception:
            log.exception("could not record webhook failure session=%s", session_id)

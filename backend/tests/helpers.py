import hashlib
import hmac
import json
import time

from storefront.adapters.stripe_gateway import PaymentProviderError, StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"


class FakeGateway(StripeGateway):
    """Real webhook verification, recorded session creation."""

    def __init__(self, fail_with: str = None):
        super().__init__(api_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET)
        self.created = []
        self.fail_with = fail_with

    def create_checkout_session(self, **params):
        if self.fail_with:
            raise PaymentProviderError(self.fail_with)
        self.created.append(params)
        sid = f"cs_test_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.test/pay/{sid}", "object": "checkout.session"}


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Stripe-Signature header for payload, computed the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


def completed_event(session_id, cart_id, email, amount_total, metadata=None, event_id="evt_1"):
    return {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "client_reference_id": cart_id,
                "customer_email": email,
                "amount_total": amount_total,
                "metadata": metadata or {},
                "payment_status": "paid",
            }
        },
    }


def encode(event) -> bytes:
    return json.dumps(event).encode("utf-8")


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}

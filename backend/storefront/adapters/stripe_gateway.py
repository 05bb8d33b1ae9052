import json
import logging
from typing import Any, Dict, Optional

import stripe

log = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Raised when the payment provider rejects or fails a request."""
    pass


class SignatureInvalid(Exception):
    """Raised when a webhook payload cannot be authenticated."""
    pass


def _to_plain(obj) -> Dict[str, Any]:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


class StripeGateway:
    """
    Thin adapter over the Stripe SDK.

    Built explicitly with its credentials and handed to the services that need
    it; the SDK's module-level api_key is never touched.
    """

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        tolerance_seconds: int = 300,
        client=stripe,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance_seconds = tolerance_seconds
        self.client = client

    def health_check(self) -> bool:
        return bool(self.api_key and self.webhook_secret)

    def create_checkout_session(self, **params) -> Dict[str, Any]:
        """
        Create a Checkout Session.

        params are passed straight to checkout.Session.create (line_items, mode,
        success_url, cancel_url, customer_email, client_reference_id, metadata).
        Returns the session as a plain dict, including "id" and "url".
        """
        try:
            session = self.client.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            log.warning("checkout session create failed: %s", e)
            raise PaymentProviderError(str(e)) from e
        return _to_plain(session)

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Authenticate a webhook delivery and return the decoded event.

        payload must be the raw request body, byte for byte. Any problem with the
        header, the signature, the timestamp tolerance or the JSON body raises
        SignatureInvalid.
        """
        if not sig_header:
            raise SignatureInvalid("Missing Stripe-Signature header")
        if not self.webhook_secret:
            raise SignatureInvalid("Webhook secret is not configured")
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, sig_header, self.webhook_secret, self.tolerance_seconds
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid(str(e)) from e
        except ValueError as e:
            # undecodable body, bad JSON or a header that does not split into t=/v1= pairs
            raise SignatureInvalid(f"Malformed webhook: {e}") from e
        if not isinstance(event, dict):
            raise SignatureInvalid("Webhook payload is not an event object")
        return event

from dataclasses import dataclass
import json
import logging

import stripe

from tunebox.errors import MalformedWebhook, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    provider_id: str
    redirect_url: str
    raw: dict


class StripeService:
    """Thin adapter over the Stripe SDK for hosted checkout and webhooks"""

    def __init__(self, secret_key, webhook_secret=None, currency='rub', timeout=10):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        stripe.api_key = secret_key
        # Bounded so a hung provider call leaves the local payment pending
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config.get('STRIPE_SECRET_KEY'),
            webhook_secret=config.get('STRIPE_WEBHOOK_SECRET'),
            currency=config.get('STRIPE_CURRENCY', 'rub'),
            timeout=config.get('STRIPE_TIMEOUT_SECONDS', 10),
        )

    def create_checkout_session(self, *, amount, description, return_url, cancel_url,
                                metadata, idempotency_key, save_payment_method=False):
        params = {
            'mode': 'payment',
            'line_items': [{
                'price_data': {
                    'currency': self.currency,
                    'product_data': {'name': description},
                    'unit_amount': amount,
                },
                'quantity': 1,
            }],
            'success_url': return_url,
            'cancel_url': cancel_url,
            'metadata': metadata,
            'payment_intent_data': {'metadata': metadata},
        }
        if save_payment_method:
            params['customer_creation'] = 'always'
            params['payment_intent_data']['setup_future_usage'] = 'off_session'

        try:
            session = stripe.checkout.Session.create(idempotency_key=idempotency_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed for payment {metadata.get('payment_id')}: {str(e)}")
            raise UpstreamUnavailable() from e

        return CheckoutSession(
            provider_id=session.id,
            redirect_url=session.url,
            raw=json.loads(str(session)),
        )

    def construct_event(self, payload, signature):
        """Verify the Stripe-Signature header and return the decoded event.

        Raises ``MalformedWebhook`` when the signature cannot be checked or
        does not match. Bad JSON raises ``ValueError`` as in the SDK.
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not set, refusing webhook")
            raise MalformedWebhook('Webhook signing secret is not configured')
        if not signature:
            raise MalformedWebhook('Missing webhook signature')
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise MalformedWebhook('Invalid webhook signature') from e
        return json.loads(payload)

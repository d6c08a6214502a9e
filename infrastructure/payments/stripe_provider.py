"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe hosted checkout.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import (
    CheckoutSession,
    LineItem,
    PaymentException,
    PaymentProviderInterface,
    PaymentStatus,
    Refund,
    WebhookEvent,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STRIPE_ERRORS = (
    stripe.RateLimitError,
    stripe.APIConnectionError,
    stripe.APIError,
)

stripe_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_STRIPE_ERRORS),
    reraise=True,
)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit Decimal amount to integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
        STRIPE_WEBHOOK_SECRET: Webhook endpoint secret for signature verification
        MARKETPLACE["PROVIDER_TIMEOUT_SECONDS"]: HTTP timeout for each Stripe call
    """

    def __init__(self):
        """Initialize Stripe provider with API credentials."""
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        self.webhook_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")

        timeout = settings.MARKETPLACE.get("PROVIDER_TIMEOUT_SECONDS", 15)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @stripe_retry
    def _create_checkout_session_api(self, **kwargs):
        """Internal method to create session with retries."""
        return stripe.checkout.Session.create(**kwargs)

    def create_checkout_session(
        self,
        line_items: List[LineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a Stripe checkout session.

        Metadata values are stringified because Stripe only stores strings.

        Raises:
            PaymentException: If session creation fails
        """
        currency = currency.lower()
        stripe_metadata = {key: str(value) for key, value in (metadata or {}).items()}

        session_params = {
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": to_minor_units(item.unit_amount),
                        "product_data": {
                            "name": item.name,
                            **({"description": item.description} if item.description else {}),
                        },
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": stripe_metadata,
        }

        if customer_email:
            session_params["customer_email"] = customer_email

        try:
            session = self._create_checkout_session_api(**session_params)
        except stripe.StripeError as e:
            logger.error(f"Stripe session creation failed: {str(e)}")
            raise PaymentException(f"Failed to create checkout session: {str(e)}") from e

        logger.info(f"Created Stripe checkout session: {session.id}")

        return CheckoutSession(
            session_id=session.id,
            url=session.url,
            amount=sum(to_minor_units(item.unit_amount) * item.quantity for item in line_items),
            currency=currency,
            status=self._map_stripe_status(session.payment_status),
            metadata=stripe_metadata,
        )

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify Stripe webhook signature and parse event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Raises:
            WebhookVerificationError: If the secret is missing or verification fails
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured, rejecting webhook")
            raise WebhookVerificationError("Webhook secret not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {str(e)}")
            raise WebhookVerificationError("Invalid webhook payload") from e
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise WebhookVerificationError("Webhook signature verification failed") from e

        logger.info(f"Verified Stripe webhook event: {event['type']}")

        return WebhookEvent(
            event_id=event["id"],
            event_type=event["type"],
            data=event["data"]["object"].to_dict(),
            created_at=event["created"],
        )

    @stripe_retry
    def _create_refund_api(self, **kwargs):
        return stripe.Refund.create(**kwargs)

    def create_refund(
        self,
        payment_intent_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Refund:
        """
        Create a refund in Stripe.

        Raises:
            PaymentException: If refund creation fails
        """
        refund_params = {"payment_intent": payment_intent_id}

        if amount:
            refund_params["amount"] = to_minor_units(amount)

        # Retried attempts reuse the key so Stripe refunds at most once
        refund_params["idempotency_key"] = f"refund-{payment_intent_id}-{refund_params.get('amount', 'full')}"

        if reason:
            refund_params["reason"] = reason

        try:
            refund = self._create_refund_api(**refund_params)
        except stripe.StripeError as e:
            logger.error(f"Refund creation failed for {payment_intent_id}: {str(e)}")
            raise PaymentException(f"Refund failed: {str(e)}") from e

        logger.info(f"Created refund: {refund.id} for payment {payment_intent_id}")

        return Refund(
            refund_id=refund.id,
            payment_intent_id=payment_intent_id,
            status=refund.status,
            amount=refund.amount,
        )

    def _map_stripe_status(self, stripe_status: str) -> PaymentStatus:
        """
        Map Stripe session payment status to internal PaymentStatus.
        """
        status_mapping = {
            "unpaid": PaymentStatus.PENDING,
            "paid": PaymentStatus.SUCCEEDED,
            "no_payment_required": PaymentStatus.SUCCEEDED,
        }

        return status_mapping.get(stripe_status, PaymentStatus.PENDING)

"""
Mock Payment Provider
=====================

In-memory implementation of PaymentProviderInterface for tests and local
development. Sessions and refunds are recorded instead of sent to a processor.
"""

import hashlib
import hmac
import json
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings

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
from .stripe_provider import to_minor_units

logger = logging.getLogger(__name__)


class MockPaymentProvider(PaymentProviderInterface):
    """
    Mock payment provider.

    - Stores created sessions and refunds for verification
    - Verifies webhooks with an HMAC-SHA256 of the raw body keyed by
      STRIPE_WEBHOOK_SECRET (hex digest)
    - ``fail_next`` makes the next call raise PaymentException, to exercise
      provider-outage paths
    """

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.sessions: Dict[str, CheckoutSession] = {}
        self.refunds: List[Refund] = []
        self.fail_next = False

    def _maybe_fail(self, operation: str):
        if self.fail_next:
            self.fail_next = False
            raise PaymentException(f"[MOCK PAYMENT] {operation} failed")

    def create_checkout_session(
        self,
        line_items: List[LineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        self._maybe_fail("create_checkout_session")

        session_id = f"cs_mock_{uuid.uuid4().hex}"
        session = CheckoutSession(
            session_id=session_id,
            url=f"https://checkout.mock.local/pay/{session_id}",
            amount=sum(to_minor_units(item.unit_amount) * item.quantity for item in line_items),
            currency=currency.lower(),
            status=PaymentStatus.PENDING,
            metadata={key: str(value) for key, value in (metadata or {}).items()},
        )
        self.sessions[session_id] = session

        logger.info(f"[MOCK PAYMENT] Created session {session_id} for {session.amount} {session.currency}")
        return session

    def sign(self, payload: bytes) -> str:
        """Signature the mock expects for ``payload``."""
        return hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")

        if not signature or not hmac.compare_digest(self.sign(payload), signature):
            logger.warning("[MOCK PAYMENT] Webhook signature mismatch")
            raise WebhookVerificationError("Webhook signature verification failed")

        try:
            event = json.loads(payload)
            return WebhookEvent(
                event_id=event["id"],
                event_type=event["type"],
                data=event["data"]["object"],
                created_at=event.get("created", 0),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise WebhookVerificationError("Invalid webhook payload") from e

    def create_refund(
        self,
        payment_intent_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Refund:
        self._maybe_fail("create_refund")

        refund = Refund(
            refund_id=f"re_mock_{uuid.uuid4().hex[:12]}",
            payment_intent_id=payment_intent_id,
            status="succeeded",
            amount=to_minor_units(amount) if amount else None,
        )
        self.refunds.append(refund)

        logger.info(f"[MOCK PAYMENT] Refunded {payment_intent_id} ({reason or 'no reason'})")
        return refund

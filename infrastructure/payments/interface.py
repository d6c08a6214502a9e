"""
Payment Provider Interface
===========================

Abstract base class defining the contract the marketplace needs from a
payment processor: hosted checkout sessions, signed webhooks and refunds.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass
class LineItem:
    """
    One priced line on a checkout session.

    Attributes:
        name: Display name shown to the buyer
        unit_amount: Price per unit in major currency unit
        quantity: Number of units
        description: Optional secondary text
    """

    name: str
    unit_amount: Decimal
    quantity: int = 1
    description: str = ""


@dataclass
class CheckoutSession:
    """
    Represents a payment checkout session.

    Attributes:
        session_id: Unique session identifier
        url: Redirect URL for customer to complete payment
        amount: Payment amount in smallest currency unit (cents)
        currency: ISO currency code (e.g., 'usd')
        status: Current status of the session
        metadata: Additional custom data
    """

    session_id: str
    url: str
    amount: int
    currency: str
    status: PaymentStatus
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookEvent:
    """
    Represents a verified webhook event from the payment provider.

    Attributes:
        event_id: Unique event identifier
        event_type: Type of event (e.g., 'checkout.session.completed')
        data: Event payload object
        created_at: Event creation timestamp
    """

    event_id: str
    event_type: str
    data: Dict[str, Any]
    created_at: int


@dataclass
class Refund:
    refund_id: str
    payment_intent_id: str
    status: str
    amount: Optional[int] = None


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - StripeProvider: Stripe hosted checkout
        - MockPaymentProvider: in-memory provider for tests and local development
    """

    @abstractmethod
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
        Create a payment checkout session.

        Args:
            line_items: Priced lines (card, shipping) making up the total
            currency: ISO currency code
            success_url: Redirect URL on successful payment
            cancel_url: Redirect URL on canceled payment
            metadata: Custom data attached to the session and echoed by webhooks
            customer_email: Pre-fill customer email

        Returns:
            CheckoutSession object with session details

        Raises:
            PaymentException: If session creation fails or times out
        """
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify and parse webhook event from payment provider.

        Args:
            payload: Raw webhook payload bytes
            signature: Webhook signature header for verification

        Returns:
            Parsed and verified WebhookEvent

        Raises:
            PaymentException: If verification fails or signature is invalid
        """
        pass

    @abstractmethod
    def create_refund(
        self,
        payment_intent_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Refund:
        """
        Create a refund for a payment.

        Args:
            payment_intent_id: Payment intent to refund
            amount: Partial refund amount (None for full refund)
            reason: Refund reason

        Raises:
            PaymentException: If refund creation fails
        """
        pass


class PaymentException(Exception):
    """Base exception for payment operations."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class WebhookVerificationError(PaymentException):
    """Raised when a webhook payload or its signature cannot be trusted."""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)

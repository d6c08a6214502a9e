"""
Payment Service Abstraction Layer
==================================

Provides a unified interface for payment operations across different payment providers.
"""

from .factory import PaymentFactory
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
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

__all__ = [
    "PaymentProviderInterface",
    "CheckoutSession",
    "LineItem",
    "Refund",
    "WebhookEvent",
    "PaymentStatus",
    "PaymentException",
    "WebhookVerificationError",
    "StripeProvider",
    "MockPaymentProvider",
    "PaymentFactory",
]

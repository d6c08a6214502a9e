"""
Dependency Injection Container
================================

Simple service locator for infrastructure providers and domain services.
Services depend on provider interfaces; the container decides which concrete
provider (real or mock) is wired in, based on ``settings.INFRASTRUCTURE``.

Usage:
    from infrastructure.container import container

    payment = container.payment()
    checkout = container.checkout_service()
"""

import logging
from typing import Optional

from .payments import PaymentFactory, PaymentProviderInterface
from .shipping import ShippingFactory, ShippingProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies.

    Implements lazy initialization and caching of service instances.
    Singleton: every import of ``container`` sees the same instance.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._clear()
            self._initialized = True
            logger.info("Service container initialized")

    def _clear(self):
        self._payment: Optional[PaymentProviderInterface] = None
        self._shipping: Optional[ShippingProviderInterface] = None

        # Domain Services
        self._order_state_machine = None
        self._block_service = None
        self._reputation_service = None
        self._report_service = None
        self._listing_service = None
        self._offer_service = None
        self._refund_service = None
        self._order_service = None
        self._checkout_service = None
        self._payment_webhook_service = None
        self._shipping_service = None

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        """
        Get payment provider instance.

        Args:
            backend: Payment backend type ('stripe' or 'mock')
                    If None, uses configuration from settings

        Returns:
            PaymentProviderInterface implementation (cached)
        """
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            logger.debug(f"Created payment provider: {type(self._payment).__name__}")

        return self._payment

    def shipping(self, backend: Optional[str] = None) -> ShippingProviderInterface:
        """
        Get carrier integration instance.

        Args:
            backend: Shipping backend type ('shippo' or 'mock')
                    If None, uses configuration from settings
        """
        if self._shipping is None or backend is not None:
            self._shipping = ShippingFactory.create(backend)
            logger.debug(f"Created shipping provider: {type(self._shipping).__name__}")

        return self._shipping

    def order_state_machine(self):
        if self._order_state_machine is None:
            from marketplace.ordering.domain.services.order_state_machine import OrderStateMachine

            self._order_state_machine = OrderStateMachine()
        return self._order_state_machine

    def block_service(self):
        if self._block_service is None:
            from marketplace.trust.domain.services.block_service import BlockService

            self._block_service = BlockService()
        return self._block_service

    def reputation_service(self):
        if self._reputation_service is None:
            from marketplace.trust.domain.services.reputation_service import ReputationService

            self._reputation_service = ReputationService()
        return self._reputation_service

    def report_service(self):
        if self._report_service is None:
            from marketplace.trust.domain.services.report_service import ReportService

            self._report_service = ReportService()
        return self._report_service

    def listing_service(self):
        """Get ListingService instance."""
        if self._listing_service is None:
            from marketplace.listings.domain.services.listing_service import ListingService

            self._listing_service = ListingService()
            logger.debug("Created ListingService")
        return self._listing_service

    def offer_service(self):
        """Get OfferService instance."""
        if self._offer_service is None:
            from marketplace.offers.domain.services.offer_service import OfferService

            self._offer_service = OfferService(block_service=self.block_service())
            logger.debug("Created OfferService")
        return self._offer_service

    def refund_service(self):
        if self._refund_service is None:
            from payment_system.domain.services.refund_service import RefundService

            self._refund_service = RefundService(payment_provider=self.payment())
        return self._refund_service

    def order_service(self):
        """Get OrderService instance."""
        if self._order_service is None:
            from marketplace.ordering.domain.services.order_service import OrderService

            self._order_service = OrderService(
                state_machine=self.order_state_machine(),
                refund_service=self.refund_service(),
            )
            logger.debug("Created OrderService")
        return self._order_service

    def checkout_service(self):
        """Get CheckoutService instance."""
        if self._checkout_service is None:
            from payment_system.domain.services.checkout_service import CheckoutService

            self._checkout_service = CheckoutService(
                payment_provider=self.payment(),
                block_service=self.block_service(),
            )
            logger.debug("Created CheckoutService")
        return self._checkout_service

    def payment_webhook_service(self):
        """Get PaymentWebhookService instance."""
        if self._payment_webhook_service is None:
            from payment_system.domain.services.webhook_service import PaymentWebhookService

            self._payment_webhook_service = PaymentWebhookService(
                state_machine=self.order_state_machine(),
                refund_service=self.refund_service(),
            )
            logger.debug("Created PaymentWebhookService")
        return self._payment_webhook_service

    def shipping_service(self):
        """Get ShippingService instance."""
        if self._shipping_service is None:
            from marketplace.shipping.domain.services.shipping_service import ShippingService

            self._shipping_service = ShippingService(
                carrier=self.shipping(),
                state_machine=self.order_state_machine(),
                reputation_service=self.reputation_service(),
            )
            logger.debug("Created ShippingService")
        return self._shipping_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._clear()
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()


# Convenience functions for quick access
def get_payment() -> PaymentProviderInterface:
    """Get payment provider from global container."""
    return container.payment()


def get_shipping() -> ShippingProviderInterface:
    """Get carrier integration from global container."""
    return container.shipping()

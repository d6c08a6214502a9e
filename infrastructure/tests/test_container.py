"""
Service Container Tests
========================

Unit tests for dependency injection container.
"""

from django.test import TestCase, override_settings

from infrastructure.container import ServiceContainer, container, get_payment, get_shipping
from infrastructure.payments import MockPaymentProvider, PaymentProviderInterface, StripeProvider
from infrastructure.shipping import MockShippingProvider, ShippingProviderInterface, ShippoProvider


class ServiceContainerTest(TestCase):
    """Test ServiceContainer implementation."""

    def setUp(self):
        """Set up test fixtures."""
        # Reset container before each test
        container.reset()

    def tearDown(self):
        container.reset()

    def test_container_is_singleton(self):
        """Test that ServiceContainer is a singleton."""
        container1 = ServiceContainer()
        container2 = ServiceContainer()

        self.assertIs(container1, container2)
        self.assertIs(container1, container)

    def test_get_payment_service(self):
        """Test getting payment service from container."""
        payment = container.payment()

        self.assertIsInstance(payment, PaymentProviderInterface)
        self.assertIsInstance(payment, MockPaymentProvider)

        # Second call should return cached instance
        self.assertIs(payment, container.payment())

    @override_settings(INFRASTRUCTURE={"PAYMENT_PROVIDER": "stripe", "SHIPPING_PROVIDER": "shippo"})
    def test_providers_follow_settings(self):
        self.assertIsInstance(container.payment(), StripeProvider)
        self.assertIsInstance(container.shipping(), ShippoProvider)

    def test_explicit_backend_replaces_cached_provider(self):
        mock_payment = container.payment()
        stripe_payment = container.payment("stripe")

        self.assertIsInstance(stripe_payment, StripeProvider)
        self.assertIsNot(mock_payment, stripe_payment)
        self.assertIs(container.payment(), stripe_payment)

    def test_get_shipping_service(self):
        shipping = container.shipping()

        self.assertIsInstance(shipping, ShippingProviderInterface)
        self.assertIsInstance(shipping, MockShippingProvider)
        self.assertIs(shipping, container.shipping())

    def test_services_share_providers(self):
        """Domain services are wired to the cached providers."""
        self.assertIs(container.checkout_service().payment_provider, container.payment())
        self.assertIs(container.refund_service().payment_provider, container.payment())
        self.assertIs(container.shipping_service().carrier, container.shipping())
        self.assertIs(container.order_service().refund_service, container.refund_service())
        self.assertIs(container.offer_service().block_service, container.block_service())

    def test_reset_container(self):
        """Test resetting container clears cached instances."""
        payment1 = container.payment()
        listings1 = container.listing_service()

        container.reset()

        self.assertIsNot(payment1, container.payment())
        self.assertIsNot(listings1, container.listing_service())


class ConvenienceFunctionsTest(TestCase):
    """Test convenience functions for service access."""

    def setUp(self):
        """Set up test fixtures."""
        container.reset()

    def test_get_payment_function(self):
        self.assertIs(get_payment(), container.payment())

    def test_get_shipping_function(self):
        self.assertIs(get_shipping(), container.shipping())

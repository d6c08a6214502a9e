"""
Payment Infrastructure Tests
==============================

Unit tests for payment provider abstraction layer.
"""

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import stripe
from django.test import TestCase, override_settings

from infrastructure.payments import (
    CheckoutSession,
    LineItem,
    MockPaymentProvider,
    PaymentException,
    PaymentFactory,
    PaymentProviderInterface,
    PaymentStatus,
    StripeProvider,
    WebhookEvent,
    WebhookVerificationError,
)
from infrastructure.payments.stripe_provider import to_minor_units


class PaymentInterfaceTest(TestCase):
    """Test PaymentProviderInterface contract."""

    def test_interface_is_abstract(self):
        """PaymentProviderInterface should not be instantiable."""
        with self.assertRaises(TypeError):
            PaymentProviderInterface()

    def test_to_minor_units_rounds_half_up(self):
        self.assertEqual(to_minor_units(Decimal("13.00")), 1300)
        self.assertEqual(to_minor_units(Decimal("0.005")), 1)
        self.assertEqual(to_minor_units(Decimal("19.99")), 1999)


@override_settings(
    STRIPE_SECRET_KEY="sk_test_fake",
    STRIPE_WEBHOOK_SECRET="whsec_test_fake",
)
class StripeProviderTest(TestCase):
    """Test StripeProvider implementation."""

    def setUp(self):
        """Set up test fixtures."""
        self.provider = StripeProvider()
        self.line_items = [
            LineItem(name="Charizard - Base Set", unit_amount=Decimal("10.00"), quantity=2),
            LineItem(name="Shipping", unit_amount=Decimal("3.00")),
        ]

    @patch("stripe.checkout.Session.create")
    def test_create_checkout_session_success(self, mock_create):
        """Test successful checkout session creation."""
        mock_session = MagicMock()
        mock_session.id = "cs_test_123"
        mock_session.url = "https://checkout.stripe.com/pay/cs_test_123"
        mock_session.payment_status = "unpaid"
        mock_create.return_value = mock_session

        result = self.provider.create_checkout_session(
            line_items=self.line_items,
            currency="USD",
            success_url="https://example.com/success",
            cancel_url="https://example.com/cancel",
            metadata={"order_number": "CV-1", "quantity": 2},
            customer_email="buyer@example.com",
        )

        self.assertIsInstance(result, CheckoutSession)
        self.assertEqual(result.session_id, "cs_test_123")
        self.assertEqual(result.amount, 2300)  # In cents
        self.assertEqual(result.currency, "usd")
        self.assertEqual(result.status, PaymentStatus.PENDING)

        params = mock_create.call_args.kwargs
        self.assertEqual(params["mode"], "payment")
        self.assertEqual(params["customer_email"], "buyer@example.com")
        self.assertEqual(params["metadata"], {"order_number": "CV-1", "quantity": "2"})
        self.assertEqual(params["line_items"][0]["price_data"]["unit_amount"], 1000)
        self.assertEqual(params["line_items"][0]["quantity"], 2)
        self.assertEqual(params["line_items"][1]["price_data"]["product_data"], {"name": "Shipping"})

    @patch("stripe.checkout.Session.create")
    def test_create_checkout_session_stripe_error(self, mock_create):
        """Test checkout session creation with Stripe error."""
        mock_create.side_effect = stripe.StripeError("API error")

        with self.assertRaises(PaymentException):
            self.provider.create_checkout_session(
                line_items=self.line_items,
                currency="usd",
                success_url="https://example.com/success",
                cancel_url="https://example.com/cancel",
            )

    @patch("stripe.Webhook.construct_event")
    def test_verify_webhook_success(self, mock_construct):
        """Test successful webhook verification."""
        session_object = MagicMock()
        session_object.to_dict.return_value = {"id": "cs_test_123", "payment_status": "paid"}
        mock_construct.return_value = {
            "id": "evt_test_123",
            "type": "checkout.session.completed",
            "data": {"object": session_object},
            "created": 1234567890,
        }

        result = self.provider.verify_webhook(payload=b'{"test": "data"}', signature="test_signature")

        self.assertIsInstance(result, WebhookEvent)
        self.assertEqual(result.event_id, "evt_test_123")
        self.assertEqual(result.event_type, "checkout.session.completed")
        self.assertEqual(result.data["id"], "cs_test_123")
        mock_construct.assert_called_once_with(b'{"test": "data"}', "test_signature", "whsec_test_fake")

    @patch("stripe.Webhook.construct_event")
    def test_verify_webhook_invalid_signature(self, mock_construct):
        """Test webhook verification with invalid signature."""
        mock_construct.side_effect = stripe.SignatureVerificationError("Invalid signature", "sig_header")

        with self.assertRaises(WebhookVerificationError):
            self.provider.verify_webhook(payload=b'{"test": "data"}', signature="invalid_signature")

    @override_settings(STRIPE_WEBHOOK_SECRET="")
    @patch("stripe.Webhook.construct_event")
    def test_verify_webhook_without_secret_rejects(self, mock_construct):
        provider = StripeProvider()

        with self.assertRaises(WebhookVerificationError):
            provider.verify_webhook(payload=b"{}", signature="t=1,v1=abc")
        mock_construct.assert_not_called()

    @patch("stripe.Refund.create")
    def test_create_refund_success(self, mock_create):
        """Test successful refund creation."""
        mock_refund = MagicMock()
        mock_refund.id = "re_test_123"
        mock_refund.status = "succeeded"
        mock_refund.amount = 1300
        mock_create.return_value = mock_refund

        result = self.provider.create_refund(payment_intent_id="pi_test_123", reason="requested_by_customer")

        self.assertEqual(result.refund_id, "re_test_123")
        self.assertEqual(result.status, "succeeded")
        mock_create.assert_called_once_with(
            payment_intent="pi_test_123",
            reason="requested_by_customer",
            idempotency_key="refund-pi_test_123-full",
        )

    @patch("stripe.Refund.create")
    def test_create_refund_error(self, mock_create):
        mock_create.side_effect = stripe.StripeError("charge already refunded")

        with self.assertRaises(PaymentException):
            self.provider.create_refund(payment_intent_id="pi_test_123")

    def test_map_stripe_status(self):
        """Test Stripe status mapping."""
        self.assertEqual(self.provider._map_stripe_status("unpaid"), PaymentStatus.PENDING)
        self.assertEqual(self.provider._map_stripe_status("paid"), PaymentStatus.SUCCEEDED)
        self.assertEqual(self.provider._map_stripe_status("no_payment_required"), PaymentStatus.SUCCEEDED)


@override_settings(STRIPE_WEBHOOK_SECRET="whsec_mock")
class MockPaymentProviderTest(TestCase):
    def setUp(self):
        self.provider = MockPaymentProvider()

    def test_session_is_recorded(self):
        session = self.provider.create_checkout_session(
            line_items=[LineItem(name="Pikachu", unit_amount=Decimal("4.25"), quantity=2)],
            currency="usd",
            success_url="https://example.com/success",
            cancel_url="https://example.com/cancel",
            metadata={"order_number": "CV-1"},
        )

        self.assertEqual(session.amount, 850)
        self.assertIs(self.provider.sessions[session.session_id], session)

    def test_fail_next_fails_once(self):
        self.provider.fail_next = True

        with self.assertRaises(PaymentException):
            self.provider.create_refund("pi_1")
        self.assertEqual(self.provider.create_refund("pi_1").status, "succeeded")

    def test_verify_signed_payload(self):
        payload = json.dumps(
            {"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}
        ).encode()

        event = self.provider.verify_webhook(payload, self.provider.sign(payload))

        self.assertEqual(event.event_type, "checkout.session.completed")
        self.assertEqual(event.data, {"id": "cs_1"})

    def test_verify_rejects_tampered_payload(self):
        payload = b'{"id": "evt_1", "type": "x", "data": {"object": {}}}'
        signature = self.provider.sign(payload)

        with self.assertRaises(WebhookVerificationError):
            self.provider.verify_webhook(payload + b" ", signature)


class PaymentFactoryTest(TestCase):
    """Test PaymentFactory."""

    @override_settings(INFRASTRUCTURE={"PAYMENT_PROVIDER": "stripe"})
    def test_create_stripe_provider(self):
        """Test factory creates Stripe provider from settings."""
        provider = PaymentFactory.create()
        self.assertIsInstance(provider, StripeProvider)

    @override_settings(INFRASTRUCTURE={"PAYMENT_PROVIDER": "mock"})
    def test_create_mock_provider(self):
        provider = PaymentFactory.create()
        self.assertIsInstance(provider, MockPaymentProvider)

    def test_create_with_explicit_backend(self):
        """Test factory with explicit backend."""
        provider = PaymentFactory.create("stripe")
        self.assertIsInstance(provider, StripeProvider)

    def test_create_invalid_backend(self):
        """Test factory raises error for invalid backend."""
        with self.assertRaises(ValueError):
            PaymentFactory.create("invalid")

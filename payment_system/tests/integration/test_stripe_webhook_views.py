import json
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Listing, Order
from marketplace.tests.factories import AdminFactory, ListingFactory, OrderFactory, UserFactory


def session_event(session_id, event_type="checkout.session.completed", payment_status="paid", **extra):
    session = {
        "id": session_id,
        "payment_status": payment_status,
        "payment_intent": "pi_webhook_1",
        "metadata": {"type": "marketplace_purchase"},
    }
    session.update(extra)
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": session}, "created": 0}).encode()


class StripeWebhookViewTest(TestCase):
    def setUp(self):
        container.reset()
        self.url = reverse("payment_system:stripe_webhook")
        self.listing = ListingFactory(price=Decimal("10.00"), quantity=1, quantity_available=1)
        self.order = OrderFactory(listing=self.listing)

    def deliver(self, body, signature=None):
        if signature is None:
            signature = container.payment().sign(body)
        return self.client.post(self.url, data=body, content_type="application/json", HTTP_STRIPE_SIGNATURE=signature)

    def test_completed_session_pays_order(self):
        response = self.deliver(session_event(self.order.payment_session_id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_SUCCEEDED)
        self.assertEqual(self.order.payment_intent_id, "pi_webhook_1")
        self.assertIsNotNone(self.order.paid_at)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 0)
        self.assertEqual(self.listing.status, Listing.STATUS_SOLD)

    def test_replayed_event_is_applied_once(self):
        listing = ListingFactory(quantity=3, quantity_available=3)
        order = OrderFactory(listing=listing, quantity=2)
        body = session_event(order.payment_session_id)

        first = self.deliver(body)
        second = self.deliver(body)

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        listing.refresh_from_db()
        self.assertEqual(listing.quantity_available, 1)
        self.assertEqual(container.payment().refunds, [])

    def test_last_unit_paid_twice_refunds_second_buyer(self):
        rival = OrderFactory(listing=self.listing)

        self.deliver(session_event(self.order.payment_session_id))
        response = self.deliver(session_event(rival.payment_session_id, payment_intent="pi_rival"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        rival.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)
        self.assertEqual(rival.status, Order.STATUS_CANCELLED)
        self.assertEqual(rival.cancellation_reason, "oversold")
        self.assertEqual(rival.payment_status, Order.PAYMENT_REFUNDED)

        refunds = container.payment().refunds
        self.assertEqual(len(refunds), 1)
        self.assertEqual(refunds[0].payment_intent_id, "pi_rival")

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 0)

    def test_payment_after_cancellation_is_refunded(self):
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_CANCELLED)

        response = self.deliver(session_event(self.order.payment_session_id, payment_intent="pi_late"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_CANCELLED)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_REFUNDED)
        self.assertEqual([refund.payment_intent_id for refund in container.payment().refunds], ["pi_late"])

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 1)

    def test_withdrawn_listing_stays_cancelled_through_payment_and_order_cancel(self):
        client = APIClient()
        client.force_authenticate(user=self.listing.seller)
        client.delete(reverse("marketplace:listing-detail", args=[self.listing.pk]))

        self.deliver(session_event(self.order.payment_session_id))

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.status, Listing.STATUS_CANCELLED)
        self.assertEqual(self.listing.quantity_available, 0)

        response = client.post(reverse("marketplace:order-cancel", args=[self.order.pk]), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.status, Listing.STATUS_CANCELLED)
        self.assertEqual(self.listing.quantity_available, 1)

    def test_unpaid_completion_waits_for_async_event(self):
        response = self.deliver(session_event(self.order.payment_session_id, payment_status="unpaid"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAYMENT_PENDING)

        self.deliver(session_event(self.order.payment_session_id, event_type="checkout.session.async_payment_succeeded"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)

    def test_expired_session_marks_payment_failed(self):
        response = self.deliver(session_event(self.order.payment_session_id, event_type="checkout.session.expired"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAYMENT_PENDING)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 1)

    def test_unknown_session_asks_for_retry(self):
        response = self.deliver(session_event("cs_unknown"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_other_event_types_are_acknowledged(self):
        body = json.dumps(
            {"id": "evt_2", "type": "payment_intent.created", "data": {"object": {"id": "pi_1"}}, "created": 0}
        ).encode()

        response = self.deliver(body)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(b"not processed", response.content)

    def test_foreign_checkout_type_is_ignored(self):
        body = session_event(self.order.payment_session_id, metadata={"type": "subscription"})

        response = self.deliver(body)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAYMENT_PENDING)

    def test_bad_signature_is_rejected(self):
        response = self.deliver(session_event(self.order.payment_session_id), signature="0" * 64)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAYMENT_PENDING)

    def test_missing_signature_header(self):
        response = self.client.post(
            self.url, data=session_event(self.order.payment_session_id), content_type="application/json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_malformed_payload(self):
        response = self.deliver(b'{"type": "checkout.session.completed"}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PaymentConfirmedViewTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.url = reverse("payment_system:payment_confirmed")
        self.order = OrderFactory()

    def test_staff_can_confirm(self):
        self.client.force_authenticate(user=AdminFactory())

        response = self.client.post(
            self.url,
            {"session_id": self.order.payment_session_id, "payment_intent_id": "pi_manual"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Order.STATUS_PAID)
        self.assertEqual(response.data["outcome"], "paid")
        self.assertFalse(response.data["already_processed"])

        response = self.client.post(
            self.url,
            {"session_id": self.order.payment_session_id, "payment_intent_id": "pi_manual"},
            format="json",
        )
        self.assertTrue(response.data["already_processed"])
        self.assertIsNone(response.data["outcome"])

    def test_regular_user_is_refused(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.post(self.url, {"session_id": self.order.payment_session_id}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAYMENT_PENDING)

    def test_unknown_session(self):
        self.client.force_authenticate(user=AdminFactory())

        response = self.client.post(self.url, {"session_id": "cs_missing"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

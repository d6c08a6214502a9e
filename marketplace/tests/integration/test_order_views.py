from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Listing, Order
from marketplace.tests.factories import AdminFactory, ListingFactory, OrderFactory, PaidOrderFactory, UserFactory


class OrderViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()

        self.listing = ListingFactory(price=Decimal("10.00"), quantity=2, quantity_available=1)
        self.seller = self.listing.seller
        self.buyer = UserFactory(username="buyer", email="buyer@example.com")
        self.order = PaidOrderFactory(listing=self.listing, buyer=self.buyer)

    def cancel_url(self, order):
        return reverse("marketplace:order-cancel", args=[order.pk])

    def complete_url(self, order):
        return reverse("marketplace:order-complete", args=[order.pk])

    def test_parties_can_read_order(self):
        for user in (self.buyer, self.seller, AdminFactory()):
            self.client.force_authenticate(user=user)
            response = self.client.get(reverse("marketplace:order-detail", args=[self.order.pk]))

            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data["order_number"], self.order.order_number)
            self.assertEqual(response.data["total"], "13.00")
            self.assertEqual(response.data["seller_net"], "8.72")

    def test_outsider_cannot_read_order(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.get(reverse("marketplace:order-detail", args=[self.order.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(reverse("marketplace:order-detail", args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_purchases_and_sales(self):
        OrderFactory(listing=self.listing, buyer=self.buyer)
        OrderFactory()

        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(reverse("marketplace:order-purchases"))
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse("marketplace:order-purchases"), {"status": "paid"})
        self.assertEqual([order["id"] for order in response.data], [self.order.pk])

        self.client.force_authenticate(user=self.seller)
        response = self.client.get(reverse("marketplace:order-sales"))
        self.assertEqual(len(response.data), 2)

    def test_seller_cancels_paid_order(self):
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.cancel_url(self.order), {"reason": "Card was damaged"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Order.STATUS_CANCELLED)
        self.assertEqual(response.data["cancellation_reason"], "Card was damaged")
        self.assertIsNotNone(response.data["cancelled_at"])

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_REFUNDED)
        self.assertEqual(self.order.cancelled_by, self.seller)

        refunds = container.payment().refunds
        self.assertEqual([refund.payment_intent_id for refund in refunds], [self.order.payment_intent_id])

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 2)

    def test_cancel_restock_reopens_sold_listing(self):
        Listing.objects.filter(pk=self.listing.pk).update(quantity_available=0, status=Listing.STATUS_SOLD)
        self.client.force_authenticate(user=self.seller)

        self.client.post(self.cancel_url(self.order), {}, format="json")

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 1)
        self.assertEqual(self.listing.status, Listing.STATUS_ACTIVE)

    def test_cancel_unpaid_order_needs_no_refund(self):
        order = OrderFactory(listing=self.listing, buyer=self.buyer)
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.cancel_url(order), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(container.payment().refunds, [])
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity_available, 1)

    def test_admin_can_cancel(self):
        self.client.force_authenticate(user=AdminFactory())

        response = self.client.post(self.cancel_url(self.order), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_buyer_cannot_cancel(self):
        self.client.force_authenticate(user=self.buyer)

        response = self.client.post(self.cancel_url(self.order), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "not_order_seller")

    def test_shipped_order_cannot_be_cancelled(self):
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_SHIPPED)
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.cancel_url(self.order), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "invalid_order_state")
        self.assertEqual(container.payment().refunds, [])

    def test_cancel_twice_conflicts(self):
        self.client.force_authenticate(user=self.seller)

        self.client.post(self.cancel_url(self.order), {}, format="json")
        response = self.client.post(self.cancel_url(self.order), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(len(container.payment().refunds), 1)

    def test_refund_failure_keeps_cancellation(self):
        container.payment().fail_next = True
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.cancel_url(self.order), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_CANCELLED)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_SUCCEEDED)

    def test_buyer_completes_delivered_order(self):
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_DELIVERED)
        self.client.force_authenticate(user=self.buyer)

        response = self.client.post(self.complete_url(self.order))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Order.STATUS_COMPLETE)
        self.assertIsNotNone(response.data["completed_at"])

    def test_seller_cannot_complete(self):
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_DELIVERED)
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.complete_url(self.order))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_undelivered_order_cannot_complete(self):
        self.client.force_authenticate(user=self.buyer)

        response = self.client.post(self.complete_url(self.order))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

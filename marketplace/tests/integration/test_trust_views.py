from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Block, Order, Report, Review
from marketplace.tests.factories import AdminFactory, ListingFactory, PaidOrderFactory, SellerFactory, UserFactory


class ReviewViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()

        self.seller = SellerFactory()
        self.buyer = UserFactory()
        self.order = PaidOrderFactory(
            listing=ListingFactory(collection_item__owner=self.seller), buyer=self.buyer, status=Order.STATUS_DELIVERED
        )
        self.url = reverse("marketplace:order-review", args=[self.order.pk])

    def test_buyer_reviews_delivered_order(self):
        self.client.force_authenticate(user=self.buyer)

        response = self.client.post(self.url, {"rating": 4, "comment": "Well packed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["rating"], 4)
        self.assertEqual(response.data["reviewee"], self.seller.pk)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.seller_rating, Decimal("4.00"))
        self.assertEqual(self.seller.seller_review_count, 1)

    def test_rating_is_averaged_across_orders(self):
        other = PaidOrderFactory(listing=self.order.listing, buyer=self.buyer, status=Order.STATUS_COMPLETE)
        third = PaidOrderFactory(listing=self.order.listing, buyer=self.buyer, status=Order.STATUS_COMPLETE)
        self.client.force_authenticate(user=self.buyer)

        self.client.post(self.url, {"rating": 5}, format="json")
        self.client.post(reverse("marketplace:order-review", args=[other.pk]), {"rating": 4}, format="json")
        self.client.post(reverse("marketplace:order-review", args=[third.pk]), {"rating": 4}, format="json")

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.seller_rating, Decimal("4.33"))
        self.assertEqual(self.seller.seller_review_count, 3)

    def test_one_review_per_order(self):
        self.client.force_authenticate(user=self.buyer)

        self.client.post(self.url, {"rating": 5}, format="json")
        response = self.client.post(self.url, {"rating": 1}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "duplicate_review")
        self.assertEqual(Review.objects.count(), 1)

    def test_review_before_delivery(self):
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_SHIPPED)
        self.client.force_authenticate(user=self.buyer)

        response = self.client.post(self.url, {"rating": 5}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "invalid_order_state")

    def test_rating_out_of_range(self):
        self.client.force_authenticate(user=self.buyer)

        for rating in (0, 6):
            response = self.client.post(self.url, {"rating": rating}, format="json")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data["code"], "invalid_rating")

    def test_seller_cannot_review_own_sale(self):
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.url, {"rating": 5}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_user_reviews(self):
        Review.objects.create(order=self.order, reviewer=self.buyer, reviewee=self.seller, rating=3)
        self.client.force_authenticate(user=UserFactory())

        response = self.client.get(reverse("marketplace:user-reviews", args=[self.seller.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([review["rating"] for review in response.data], [3])


class ReportViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.url = reverse("marketplace:reports")

        self.listing = ListingFactory()
        self.target = self.listing.seller

    def report(self, reporter, **payload):
        self.client.force_authenticate(user=reporter)
        body = {"reason": "scam", **payload}
        return self.client.post(self.url, body, format="json")

    def test_report_listing_targets_seller(self):
        response = self.report(UserFactory(), listing_id=self.listing.pk, description="Fake card")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["report"]["status"], Report.STATUS_OPEN)
        self.assertEqual(response.data["report"]["target_user"]["id"], str(self.target.pk))
        self.assertFalse(response.data["target_suspended"])

    def test_third_distinct_reporter_suspends(self):
        first, second = UserFactory(), UserFactory()
        self.report(first, target_user_id=str(self.target.pk))
        # Repeat reports from the same user count once
        self.report(first, target_user_id=str(self.target.pk), reason="spam")
        response = self.report(second, target_user_id=str(self.target.pk))
        self.assertFalse(response.data["target_suspended"])

        response = self.report(UserFactory(), listing_id=self.listing.pk)
        self.assertTrue(response.data["target_suspended"])

        self.target.refresh_from_db()
        self.assertTrue(self.target.marketplace_suspended)
        self.assertIsNotNone(self.target.marketplace_suspended_at)

        # Already suspended; further reports change nothing
        response = self.report(UserFactory(), target_user_id=str(self.target.pk))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data["target_suspended"])

    def test_old_and_closed_reports_do_not_count(self):
        old = Report.objects.create(reporter=UserFactory(), target_user=self.target, reason="scam")
        Report.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=91))
        Report.objects.create(
            reporter=UserFactory(), target_user=self.target, reason="scam", status=Report.STATUS_DISMISSED
        )

        response = self.report(UserFactory(), target_user_id=str(self.target.pk))
        self.report(UserFactory(), target_user_id=str(self.target.pk))

        self.assertFalse(response.data["target_suspended"])
        self.target.refresh_from_db()
        self.assertFalse(self.target.marketplace_suspended)

    def test_report_needs_a_target(self):
        response = self.report(UserFactory())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_report_yourself(self):
        response = self.report(self.target, listing_id=self.listing.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_reason(self):
        response = self.report(UserFactory(), listing_id=self.listing.pk, reason="rude")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_parties_report_orders(self):
        order = PaidOrderFactory(listing=self.listing)

        response = self.report(UserFactory(), order_id=order.pk)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.report(order.buyer, order_id=order.pk, reason="not_received")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class BlockViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.user = UserFactory()
        self.other = UserFactory()
        self.client.force_authenticate(user=self.user)
        self.url = reverse("marketplace:blocks")

    def test_block_list_unblock(self):
        response = self.client.post(self.url, {"user_id": str(self.other.pk), "reason": "Lowballing"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["blocked_user"]["id"], str(self.other.pk))

        response = self.client.get(self.url)
        self.assertEqual(len(response.data), 1)

        response = self.client.delete(reverse("marketplace:block-detail", args=[self.other.pk]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Block.objects.exists())

        response = self.client.delete(reverse("marketplace:block-detail", args=[self.other.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_block_twice(self):
        self.client.post(self.url, {"user_id": str(self.other.pk)}, format="json")
        response = self.client.post(self.url, {"user_id": str(self.other.pk)}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "already_blocked")

    def test_block_self(self):
        response = self.client.post(self.url, {"user_id": str(self.user.pk)}, format="json")
        self.assertEqual(response.data["code"], "self_block")

    def test_block_unknown_user(self):
        response = self.client.post(self.url, {"user_id": "00000000-0000-0000-0000-000000000000"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AdminModerationIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.admin = AdminFactory()
        self.target = SellerFactory()
        self.report = Report.objects.create(reporter=UserFactory(), target_user=self.target, reason="counterfeit")

    def test_admin_lists_and_resolves_reports(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse("marketplace:admin-reports"), {"status": "open"})
        self.assertEqual([report["id"] for report in response.data], [self.report.pk])

        response = self.client.patch(
            reverse("marketplace:admin-report-detail", args=[self.report.pk]),
            {"status": "resolved", "resolution": "Listing removed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Report.STATUS_RESOLVED)
        self.assertEqual(response.data["resolved_by"], self.admin.pk)
        self.assertIsNotNone(response.data["resolved_at"])

        response = self.client.get(reverse("marketplace:admin-reports"), {"status": "open"})
        self.assertEqual(response.data, [])

    def test_unknown_status_filter(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse("marketplace:admin-reports"), {"status": "pending"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_suspends_and_reinstates(self):
        self.client.force_authenticate(user=self.admin)
        url = reverse("marketplace:admin-user-suspension", args=[self.target.pk])

        response = self.client.patch(url, {"suspended": True}, format="json")
        self.assertTrue(response.data["marketplace_suspended"])
        self.target.refresh_from_db()
        self.assertIsNotNone(self.target.marketplace_suspended_at)

        response = self.client.patch(url, {"suspended": False}, format="json")
        self.assertFalse(response.data["marketplace_suspended"])
        self.target.refresh_from_db()
        self.assertIsNone(self.target.marketplace_suspended_at)

    def test_regular_users_are_refused(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.get(reverse("marketplace:admin-reports"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.patch(
            reverse("marketplace:admin-user-suspension", args=[self.target.pk]), {"suspended": True}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.target.refresh_from_db()
        self.assertFalse(self.target.marketplace_suspended)

from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Listing
from marketplace.tests.factories import (
    CardFactory,
    CollectionItemFactory,
    FreeUserFactory,
    ListingFactory,
    OrderFactory,
    SellerFactory,
    UserFactory,
)


class ListingViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()

        self.seller = SellerFactory(username="seller", email="seller@example.com")
        self.buyer = UserFactory(username="buyer", email="buyer@example.com")
        self.card = CardFactory(name="Charizard", set_name="Base Set")
        self.item = CollectionItemFactory(owner=self.seller, card=self.card, quantity=3)

        self.list_url = reverse("marketplace:listing-list")

    def detail_url(self, listing):
        return reverse("marketplace:listing-detail", args=[listing.pk])

    def test_create_listing_success(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.post(
            self.list_url,
            {"collection_item_id": self.item.pk, "price": "25.00", "quantity": 2, "description": "Light play"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["price"], "25.00")
        self.assertEqual(response.data["quantity"], 2)
        self.assertEqual(response.data["quantity_available"], 2)
        self.assertEqual(response.data["status"], Listing.STATUS_ACTIVE)
        self.assertEqual(response.data["card_name"], "Charizard")
        self.assertEqual(response.data["condition_snapshot"], self.item.condition)
        self.assertIsNotNone(response.data["published_at"])
        self.assertEqual(response.data["images"], [self.card.front_image_url])

    def test_create_listing_clamps_quantity_to_owned(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.post(
            self.list_url, {"collection_item_id": self.item.pk, "price": "5.00", "quantity": 10}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["quantity"], 3)

    def test_create_listing_requires_entitlement(self):
        free_user = FreeUserFactory()
        item = CollectionItemFactory(owner=free_user)
        self.client.force_authenticate(user=free_user)

        response = self.client.post(
            self.list_url, {"collection_item_id": item.pk, "price": "5.00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "seller_ineligible")

    def test_suspended_seller_cannot_list(self):
        self.seller.marketplace_suspended = True
        self.seller.save()
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(
            self.list_url, {"collection_item_id": self.item.pk, "price": "5.00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_list_someone_elses_item(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post(
            self.list_url, {"collection_item_id": self.item.pk, "price": "5.00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "not_owned")

    def test_listing_needs_an_image(self):
        item = CollectionItemFactory(owner=self.seller, card=CardFactory(front_image_url=""))
        self.client.force_authenticate(user=self.seller)

        response = self.client.post(self.list_url, {"collection_item_id": item.pk, "price": "5.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "no_image")

        response = self.client.post(
            self.list_url,
            {"collection_item_id": item.pk, "price": "5.00", "custom_images": ["https://img.example.com/front.jpg"]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["images"], ["https://img.example.com/front.jpg"])

    def test_create_listing_rejects_zero_price(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.post(
            self.list_url, {"collection_item_id": self.item.pk, "price": "0.00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_amount")

    def test_unknown_collection_item(self):
        self.client.force_authenticate(user=self.seller)
        response = self.client.post(self.list_url, {"collection_item_id": 999999, "price": "5.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_requires_authentication(self):
        response = self.client.post(
            self.list_url, {"collection_item_id": self.item.pk, "price": "5.00"}, format="json"
        )
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_browse_is_public_and_filters(self):
        ListingFactory(collection_item=self.item, price=Decimal("30.00"))
        jungle = CollectionItemFactory(owner=self.seller, card=CardFactory(name="Scyther", set_name="Jungle"))
        ListingFactory(collection_item=jungle, price=Decimal("8.00"))
        ListingFactory(collection_item=self.item, status=Listing.STATUS_CANCELLED)

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)

        response = self.client.get(self.list_url, {"set": "jungle"})
        self.assertEqual([item["card_name"] for item in response.data["results"]], ["Scyther"])

        response = self.client.get(self.list_url, {"q": "chari"})
        self.assertEqual(response.data["count"], 1)

        response = self.client.get(self.list_url, {"min_price": "10", "max_price": "40"})
        self.assertEqual([item["price"] for item in response.data["results"]], ["30.00"])

        response = self.client.get(self.list_url, {"ordering": "price"})
        self.assertEqual([item["price"] for item in response.data["results"]], ["8.00", "30.00"])

    def test_browse_rejects_bad_price_filter(self):
        response = self.client.get(self.list_url, {"min_price": "cheap"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_browse_hides_suspended_sellers(self):
        ListingFactory(collection_item=self.item)
        self.seller.marketplace_suspended = True
        self.seller.save()

        response = self.client.get(self.list_url)
        self.assertEqual(response.data["count"], 0)

    def test_browse_paginates(self):
        for _ in range(3):
            ListingFactory(collection_item=self.item)

        response = self.client.get(self.list_url, {"page_size": 2, "page": 2})

        self.assertEqual(response.data["count"], 3)
        self.assertEqual(len(response.data["results"]), 1)
        self.assertTrue(response.data["has_previous"])
        self.assertFalse(response.data["has_next"])

    def test_retrieve_listing(self):
        listing = ListingFactory(collection_item=self.item)

        response = self.client.get(self.detail_url(listing))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["seller"]["username"], "seller")

        response = self.client.get(reverse("marketplace:listing-detail", args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_listing(self):
        listing = ListingFactory(collection_item=self.item)
        self.client.force_authenticate(user=self.seller)

        response = self.client.patch(
            self.detail_url(listing), {"price": "12.50", "allow_offers": False}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["price"], "12.50")
        self.assertFalse(response.data["allow_offers"])

    def test_update_listing_rejects_sold_status(self):
        listing = ListingFactory(collection_item=self.item)
        self.client.force_authenticate(user=self.seller)

        response = self.client.patch(self.detail_url(listing), {"status": "sold"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_owner_updates(self):
        listing = ListingFactory(collection_item=self.item)
        self.client.force_authenticate(user=self.buyer)

        response = self.client.patch(self.detail_url(listing), {"price": "1.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sold_listing_cannot_be_updated(self):
        listing = ListingFactory(collection_item=self.item, status=Listing.STATUS_SOLD, quantity_available=0)
        self.client.force_authenticate(user=self.seller)

        response = self.client.patch(self.detail_url(listing), {"price": "1.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_cancel_leaves_orders_untouched(self):
        listing = ListingFactory(collection_item=self.item)
        order = OrderFactory(listing=listing, buyer=self.buyer)
        self.client.force_authenticate(user=self.seller)

        response = self.client.delete(self.detail_url(listing))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Listing.STATUS_CANCELLED)

        # Cancelling twice is fine
        response = self.client.delete(self.detail_url(listing))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        order.refresh_from_db()
        self.assertEqual(order.status, "payment_pending")

    def test_mine(self):
        ListingFactory(collection_item=self.item)
        ListingFactory(collection_item=self.item, status=Listing.STATUS_CANCELLED)
        ListingFactory()
        self.client.force_authenticate(user=self.seller)

        response = self.client.get(reverse("marketplace:listing-mine"))
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse("marketplace:listing-mine"), {"status": "active"})
        self.assertEqual(len(response.data), 1)

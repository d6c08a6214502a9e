from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from marketplace.tests.factories import UserFactory


class ShippingAddressViewTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = UserFactory(shipping_address=None)
        self.client.force_authenticate(user=self.user)
        self.url = reverse("shipping_address")

    def test_save_and_read_address(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.patch(
            self.url,
            {"name": "Ash Ketchum", "street1": "1 Route Rd", "city": "Austin", "state": "TX", "zip": "78701"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["country"], "US")

        response = self.client.get(self.url)
        self.assertEqual(response.data["zip"], "78701")

    def test_partial_update_keeps_saved_fields(self):
        self.user.shipping_address = {
            "name": "Ash Ketchum",
            "street1": "1 Route Rd",
            "city": "Austin",
            "state": "TX",
            "zip": "78701",
            "country": "US",
        }
        self.user.save()

        response = self.client.patch(self.url, {"street1": "2 Route Rd"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.shipping_address["street1"], "2 Route Rd")
        self.assertEqual(self.user.shipping_address["city"], "Austin")

    def test_first_save_needs_required_fields(self):
        response = self.client.patch(self.url, {"name": "Ash Ketchum"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("street1", response.data)
        self.user.refresh_from_db()
        self.assertIsNone(self.user.shipping_address)

    def test_requires_authentication(self):
        response = APIClient().get(self.url)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

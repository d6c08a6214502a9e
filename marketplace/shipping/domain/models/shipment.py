from django.db import models

from marketplace.ordering.domain.models import Order


class Shipment(models.Model):
    """Carrier shipment for an order. Created lazily when the seller first asks for rates."""

    STATUS_PENDING = "pending"
    STATUS_RATES_FETCHED = "rates_fetched"
    STATUS_LABEL_PURCHASED = "label_purchased"
    STATUS_IN_TRANSIT = "in_transit"
    STATUS_DELIVERED = "delivered"
    STATUS_EXCEPTION = "exception"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_RATES_FETCHED, "Rates Fetched"),
        (STATUS_LABEL_PURCHASED, "Label Purchased"),
        (STATUS_IN_TRANSIT, "In Transit"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_EXCEPTION, "Exception"),
    ]

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="shipment")

    # Snapshots taken when the shipment is created
    from_address = models.JSONField()
    to_address = models.JSONField()
    parcel = models.JSONField(null=True, blank=True)

    # Carrier references
    carrier = models.CharField(max_length=50, blank=True)
    carrier_shipment_id = models.CharField(max_length=255, blank=True)
    carrier_rate_id = models.CharField(max_length=255, blank=True)
    carrier_transaction_id = models.CharField(max_length=255, blank=True)
    label_url = models.URLField(max_length=2000, blank=True)
    tracking_number = models.CharField(max_length=100, unique=True, null=True, blank=True)
    tracking_url = models.URLField(max_length=2000, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    purchased_at = models.DateTimeField(null=True, blank=True)
    last_webhook_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"

    def __str__(self):
        return f"Shipment for {self.order.order_number} ({self.status})"

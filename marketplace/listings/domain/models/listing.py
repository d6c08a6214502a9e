from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from marketplace.catalog.domain.models import Card, CollectionItem


class Listing(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_SOLD = "sold"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_SOLD, "Sold"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="listings")
    collection_item = models.ForeignKey(CollectionItem, on_delete=models.PROTECT, related_name="listings")
    card = models.ForeignKey(Card, on_delete=models.PROTECT, related_name="listings")

    # Pricing and inventory
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0.01)])
    quantity = models.PositiveIntegerField(default=1)
    quantity_available = models.PositiveIntegerField(default=1)
    allow_offers = models.BooleanField(default=True)

    # Presentation
    description = models.TextField(blank=True)
    condition_snapshot = models.CharField(max_length=20, blank=True)
    custom_images = models.JSONField(default=list, blank=True, help_text="Seller-supplied image URLs")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    # Timestamps
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["status", "-created_at"], name="listing_status_created_idx"),
            models.Index(fields=["seller", "status"], name="listing_seller_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_available__lte=models.F("quantity")),
                name="listing_available_lte_quantity",
            ),
            models.CheckConstraint(condition=models.Q(price__gt=0), name="listing_price_positive"),
        ]

    def __str__(self):
        return f"Listing {self.pk}: {self.card.name} @ {self.price}"

    @property
    def image_urls(self):
        images = list(self.custom_images or [])
        if self.card.front_image_url:
            images.insert(0, self.card.front_image_url)
        return images

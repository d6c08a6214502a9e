from django.conf import settings
from django.db import models


class Card(models.Model):
    """Catalog card. Imported and maintained outside the marketplace."""

    name = models.CharField(max_length=255)
    set_name = models.CharField(max_length=255, blank=True)
    card_number = models.CharField(max_length=50, blank=True)
    front_image_url = models.URLField(max_length=2000, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["set_name", "name"]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.name} ({self.set_name})" if self.set_name else self.name


class CollectionItem(models.Model):
    CONDITION_CHOICES = [
        ("mint", "Mint"),
        ("near_mint", "Near Mint"),
        ("lightly_played", "Lightly Played"),
        ("moderately_played", "Moderately Played"),
        ("heavily_played", "Heavily Played"),
        ("damaged", "Damaged"),
    ]

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="collection_items")
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="collection_items")
    quantity = models.PositiveIntegerField(default=1)
    condition = models.CharField(max_length=20, choices=CONDITION_CHOICES, default="near_mint")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.quantity}x {self.card.name} owned by {self.owner_id}"

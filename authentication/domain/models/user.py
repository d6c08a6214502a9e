import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ("user", "User"),
        ("seller", "Seller"),
        ("admin", "Admin"),
    ]

    PLAN_CHOICES = [
        ("free", "Free"),
        ("super_hero", "Super Hero"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    display_name = models.CharField(max_length=100, blank=True)
    photo_url = models.URLField(max_length=2000, blank=True)
    location = models.CharField(max_length=100, blank=True)

    # Role system - simple field
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="user")

    # Subscription plan; marketplace access requires super_hero
    plan = models.CharField(max_length=20, choices=PLAN_CHOICES, default="free")

    # Marketplace trust state
    marketplace_suspended = models.BooleanField(default=False)
    marketplace_suspended_at = models.DateTimeField(null=True, blank=True)

    # Seller reputation aggregate (recomputed on every review)
    seller_rating = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    seller_review_count = models.PositiveIntegerField(default=0)
    first_sale_at = models.DateTimeField(null=True, blank=True)

    # Ship-from address used when the user sells
    shipping_address = models.JSONField(null=True, blank=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        app_label = "authentication"

    def is_seller(self):
        """Check if user is a verified seller"""
        return self.role == "seller" or self.is_admin()

    def is_admin(self):
        """Check if user is an admin"""
        return self.role == "admin" or self.is_superuser

    def has_marketplace_entitlement(self):
        """Check if the user's plan grants marketplace access"""
        return self.plan == "super_hero" or self.is_admin()

    def can_sell_on_marketplace(self):
        """Entitled and not suspended"""
        return self.has_marketplace_entitlement() and not self.marketplace_suspended

    def __str__(self):
        return self.email

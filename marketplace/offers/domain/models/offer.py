from django.conf import settings
from django.db import models
from django.utils import timezone

from marketplace.listings.domain.models import Listing


class Offer(models.Model):
    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_DECLINED = "declined"
    STATUS_COUNTERED = "countered"
    STATUS_WITHDRAWN = "withdrawn"
    STATUS_EXPIRED = "expired"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ACCEPTED, "Accepted"),
        (STATUS_DECLINED, "Declined"),
        (STATUS_COUNTERED, "Countered"),
        (STATUS_WITHDRAWN, "Withdrawn"),
        (STATUS_EXPIRED, "Expired"),
    ]

    # Open offers lapse once expires_at passes; a counter restarts the clock.
    EXPIRABLE_STATUSES = (STATUS_PENDING, STATUS_COUNTERED)

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="offers")
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="offers_made")

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    message = models.TextField(blank=True)
    counter_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    expires_at = models.DateTimeField()
    responded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["status", "expires_at"], name="offer_status_expires_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "buyer"],
                condition=models.Q(status="pending"),
                name="one_pending_offer_per_listing_buyer",
            ),
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="offer_amount_positive"),
        ]

    def __str__(self):
        return f"Offer {self.pk} of {self.amount} on listing {self.listing_id} ({self.status})"

    @property
    def is_expired(self):
        return self.status in self.EXPIRABLE_STATUSES and self.expires_at <= timezone.now()

"""
Listing inventory updates.

Both operations are single conditional UPDATEs evaluated by the database, so
concurrent buyers can never drive ``quantity_available`` below zero.
"""

import logging

from django.db.models import Case, F, Value, When
from django.db.models.functions import Least
from django.utils import timezone

from marketplace.infra.observability.metrics import listing_oversell_total
from marketplace.listings.domain.models import Listing

logger = logging.getLogger(__name__)


def decrement_available(listing_id, quantity: int) -> bool:
    """
    Take ``quantity`` units off the listing.

    Returns False, changing nothing, when fewer than ``quantity`` units are
    left. An active listing that reaches zero is marked sold; a cancelled
    listing keeps its status.
    """
    now = timezone.now()
    updated = Listing.objects.filter(pk=listing_id, quantity_available__gte=quantity).update(
        quantity_available=F("quantity_available") - quantity, updated_at=now
    )
    if not updated:
        listing_oversell_total.inc()
        logger.warning(f"Listing {listing_id} has fewer than {quantity} unit(s) left")
        return False

    sold = Listing.objects.filter(pk=listing_id, quantity_available=0, status=Listing.STATUS_ACTIVE).update(
        status=Listing.STATUS_SOLD, updated_at=now
    )
    if sold:
        logger.info(f"Listing {listing_id} sold out")
    return True


def restock(listing_id, quantity: int) -> None:
    """Return ``quantity`` units to the listing; a sold-out listing becomes active again."""
    Listing.objects.filter(pk=listing_id).update(
        quantity_available=Least(F("quantity_available") + quantity, F("quantity")),
        status=Case(
            When(status=Listing.STATUS_SOLD, then=Value(Listing.STATUS_ACTIVE)),
            default=F("status"),
        ),
        updated_at=timezone.now(),
    )
    logger.info(f"Restocked {quantity} unit(s) on listing {listing_id}")

"""
OfferService - Offer Negotiation Engine

Buyers make offers on listings that allow them; sellers accept, decline or
counter; buyers may withdraw. Every response is a conditional UPDATE on
``status='pending'``, so of two racing responses exactly one wins.

Offers lapse lazily: every read and every action first moves open offers
past ``expires_at`` to ``expired``.
"""

import logging
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from marketplace import policy
from marketplace.infra.observability.metrics import offers_total
from marketplace.listings.domain.models import Listing
from marketplace.offers.domain.models import Offer
from marketplace.ordering.domain.services.fee_calculator import parse_money
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.trust.domain.services.block_service import BlockService
from utils.rbac import has_marketplace_entitlement

logger = logging.getLogger(__name__)

ACTION_ACCEPT = "accept"
ACTION_DECLINE = "decline"
ACTION_COUNTER = "counter"
ACTION_WITHDRAW = "withdraw"

ACTION_STATUS = {
    ACTION_ACCEPT: Offer.STATUS_ACCEPTED,
    ACTION_DECLINE: Offer.STATUS_DECLINED,
    ACTION_COUNTER: Offer.STATUS_COUNTERED,
    ACTION_WITHDRAW: Offer.STATUS_WITHDRAWN,
}

SELLER_ACTIONS = (ACTION_ACCEPT, ACTION_DECLINE, ACTION_COUNTER)


class OfferService(BaseService):
    """
    Service for price negotiation on listings.

    Responsibilities:
    - Submit offers (one pending offer per listing and buyer)
    - Seller responses (accept, decline, counter) and buyer withdrawal
    - Lazy expiry of open offers
    """

    def __init__(self, block_service: Optional[BlockService] = None):
        super().__init__()
        self.block_service = block_service or BlockService()

    def expire_stale_offers(self, **scope) -> int:
        """
        Move open offers past their expiry to ``expired``.

        Args:
            **scope: Extra filters limiting which offers are checked
                     (e.g. ``listing_id=...``, ``buyer=...``)

        Returns:
            Number of offers expired
        """
        expired = Offer.objects.filter(
            status__in=Offer.EXPIRABLE_STATUSES, expires_at__lte=timezone.now(), **scope
        ).update(status=Offer.STATUS_EXPIRED, updated_at=timezone.now())
        if expired:
            offers_total.labels(action="expired").inc(expired)
            self.logger.info(f"Expired {expired} stale offer(s) for {scope or 'all listings'}")
        return expired

    @BaseService.log_performance
    def submit_offer(self, buyer, listing_id, amount, quantity: int = 1, message: str = "") -> ServiceResult[Offer]:
        """
        Create a pending offer on a listing.

        Validates:
        - Buyer has marketplace entitlement
        - Listing exists, is active, allows offers and is not the buyer's own
        - Seller has not blocked the buyer
        - Amount is positive; quantity is at least 1 (clamped to availability)
        - Buyer has no other pending offer on the listing

        Returns:
            ServiceResult with the created Offer (expires after the offer window)
        """
        if not has_marketplace_entitlement(buyer):
            return service_err(ErrorCodes.NOT_ENTITLED, "Your plan does not include marketplace access")

        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")

        if listing.seller_id == buyer.pk:
            return service_err(ErrorCodes.OWN_LISTING, "You cannot make an offer on your own listing")

        if listing.status != Listing.STATUS_ACTIVE:
            return service_err(ErrorCodes.LISTING_NOT_ACTIVE, "This listing is no longer active")

        if not listing.allow_offers:
            return service_err(ErrorCodes.OFFERS_NOT_ALLOWED, "This listing does not accept offers")

        if self.block_service.is_blocked(listing.seller_id, buyer.pk):
            return service_err(ErrorCodes.BLOCKED, "The seller is not accepting offers from you")

        offer_amount = parse_money(amount)
        if offer_amount is None or offer_amount <= 0:
            return service_err(ErrorCodes.INVALID_AMOUNT, "Offer amount must be greater than zero")

        try:
            requested = int(quantity)
        except (TypeError, ValueError):
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be a whole number")
        if requested < 1:
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be at least 1")
        quantity = min(requested, listing.quantity_available)

        self.expire_stale_offers(listing_id=listing.pk, buyer=buyer)

        if Offer.objects.filter(listing=listing, buyer=buyer, status=Offer.STATUS_PENDING).exists():
            return service_err(ErrorCodes.DUPLICATE_OFFER, "You already have a pending offer on this listing")

        try:
            with transaction.atomic():
                offer = Offer.objects.create(
                    listing=listing,
                    buyer=buyer,
                    amount=offer_amount,
                    quantity=quantity,
                    message=message or "",
                    status=Offer.STATUS_PENDING,
                    expires_at=timezone.now() + policy.offer_expiry(),
                )
        except IntegrityError:
            return service_err(ErrorCodes.DUPLICATE_OFFER, "You already have a pending offer on this listing")

        offers_total.labels(action="submitted").inc()
        self.logger.info(f"Offer {offer.pk} of {offer_amount} on listing {listing.pk} by {buyer.pk}")
        return service_ok(offer)

    @BaseService.log_performance
    def respond_to_offer(self, user, offer_id, action: str, counter_amount=None) -> ServiceResult[Offer]:
        """
        Accept, decline, counter or withdraw a pending offer.

        Accept, decline and counter are for the listing's seller; withdraw is
        for the offer's buyer. A counter records ``counter_amount`` on the same
        offer and restarts its expiry window.

        Returns:
            ServiceResult with the updated Offer, or ``offer_not_pending`` when
            the offer was already answered (including by a concurrent request)
        """
        if action not in ACTION_STATUS:
            return service_err(ErrorCodes.INVALID_INPUT, f"Unknown offer action '{action}'")

        self.expire_stale_offers(pk=offer_id)

        offer = Offer.objects.select_related("listing").filter(pk=offer_id).first()
        if offer is None:
            return service_err(ErrorCodes.OFFER_NOT_FOUND, "Offer not found")

        if action in SELLER_ACTIONS and offer.listing.seller_id != user.pk:
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only the seller can accept, decline or counter")

        if action == ACTION_WITHDRAW and offer.buyer_id != user.pk:
            return service_err(ErrorCodes.PERMISSION_DENIED, "Only the buyer can withdraw this offer")

        if offer.status != Offer.STATUS_PENDING:
            return service_err(ErrorCodes.OFFER_NOT_PENDING, f"Offer is already {offer.status}")

        now = timezone.now()
        values = {"status": ACTION_STATUS[action], "responded_at": now, "updated_at": now}

        if action == ACTION_COUNTER:
            counter = parse_money(counter_amount)
            if counter is None or counter <= 0:
                return service_err(ErrorCodes.INVALID_AMOUNT, "Counter amount must be greater than zero")
            values["counter_amount"] = counter
            values["expires_at"] = now + policy.offer_expiry()

        if action == ACTION_ACCEPT and offer.listing.status != Listing.STATUS_ACTIVE:
            return service_err(ErrorCodes.LISTING_NOT_ACTIVE, "This listing is no longer active")

        updated = Offer.objects.filter(pk=offer.pk, status=Offer.STATUS_PENDING).update(**values)
        if not updated:
            offer.refresh_from_db()
            return service_err(ErrorCodes.OFFER_NOT_PENDING, f"Offer is already {offer.status}")

        offer.refresh_from_db()
        offers_total.labels(action=action).inc()
        self.logger.info(f"Offer {offer.pk} {offer.status} by {user.pk}")
        return service_ok(offer)

    # ===== Reads =====

    def get_offer(self, user, offer_id) -> ServiceResult[Offer]:
        self.expire_stale_offers(pk=offer_id)

        offer = Offer.objects.select_related("listing", "listing__card", "buyer").filter(pk=offer_id).first()
        if offer is None:
            return service_err(ErrorCodes.OFFER_NOT_FOUND, "Offer not found")

        if user.pk not in (offer.buyer_id, offer.listing.seller_id):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not part of this offer")
        return service_ok(offer)

    def list_listing_offers(self, seller, listing_id) -> ServiceResult[List[Offer]]:
        """Offers on one listing, for its seller."""
        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")
        if listing.seller_id != seller.pk:
            return service_err(ErrorCodes.NOT_OWNED, "You do not own this listing")

        self.expire_stale_offers(listing_id=listing.pk)
        return service_ok(list(Offer.objects.select_related("buyer").filter(listing=listing)))

    def list_buyer_offers(self, buyer) -> ServiceResult[List[Offer]]:
        self.expire_stale_offers(buyer=buyer)
        offers = Offer.objects.select_related("listing", "listing__card").filter(buyer=buyer)
        return service_ok(list(offers))

    def list_received_offers(self, seller) -> ServiceResult[List[Offer]]:
        self.expire_stale_offers(listing__seller=seller)
        offers = Offer.objects.select_related("listing", "listing__card", "buyer").filter(listing__seller=seller)
        return service_ok(list(offers))

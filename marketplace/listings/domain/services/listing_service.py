"""
ListingService - Listing Store

Turns a collection item into a priced marketplace listing and keeps the
listing lifecycle (active -> sold | cancelled). Inventory is decremented by
payment confirmation, never here.
"""

import logging
from typing import Any, Dict, List, Optional

from django.core.paginator import Paginator
from django.db.models import Q
from django.utils import timezone

from infrastructure.observability import get_tracer
from marketplace.catalog.domain.models import CollectionItem
from marketplace.infra.observability.metrics import listings_created_total
from marketplace.listings.domain.models import Listing
from marketplace.ordering.domain.services.fee_calculator import parse_money
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.rbac import can_sell

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

UPDATABLE_STATUSES = (Listing.STATUS_ACTIVE, Listing.STATUS_CANCELLED)
ALLOWED_ORDERINGS = ("-created_at", "created_at", "price", "-price")


class ListingService(BaseService):
    """
    Service for marketplace listings.

    Responsibilities:
    - Create listings from owned collection items (entitled, unsuspended sellers)
    - Update and cancel listings (owner only, active listings only)
    - Browse and read listings
    """

    @BaseService.log_performance
    def create_listing(
        self,
        seller,
        collection_item_id,
        price,
        quantity: int = 1,
        allow_offers: bool = True,
        description: str = "",
        custom_images: Optional[List[str]] = None,
    ) -> ServiceResult[Listing]:
        """
        Publish a collection item as an active listing.

        Validates:
        - Seller has marketplace entitlement and is not suspended
        - Collection item exists and belongs to the seller
        - Card or listing has at least one image
        - Price is positive
        - Quantity is at least 1 (clamped to the quantity owned)

        Returns:
            ServiceResult with the created Listing
        """
        if not can_sell(seller):
            return service_err(ErrorCodes.SELLER_INELIGIBLE, "Your account cannot sell on the marketplace")

        amount = parse_money(price)
        if amount is None or amount <= 0:
            return service_err(ErrorCodes.INVALID_AMOUNT, "Price must be greater than zero")

        item = CollectionItem.objects.select_related("card").filter(pk=collection_item_id).first()
        if item is None:
            return service_err(ErrorCodes.COLLECTION_ITEM_NOT_FOUND, "Collection item not found")

        if item.owner_id != seller.pk:
            return service_err(ErrorCodes.NOT_OWNED, "You do not own this collection item")

        images = [url for url in (custom_images or []) if url]
        if not item.card.front_image_url and not images:
            return service_err(ErrorCodes.NO_IMAGE, "A listing needs at least one image")

        try:
            requested = int(quantity)
        except (TypeError, ValueError):
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be a whole number")

        quantity = min(requested, item.quantity)
        if quantity < 1:
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be at least 1")

        listing = Listing.objects.create(
            seller=seller,
            collection_item=item,
            card=item.card,
            price=amount,
            quantity=quantity,
            quantity_available=quantity,
            allow_offers=bool(allow_offers),
            description=description or "",
            condition_snapshot=item.condition,
            custom_images=images,
            status=Listing.STATUS_ACTIVE,
            published_at=timezone.now(),
        )
        listings_created_total.inc()

        self.logger.info(f"Listing {listing.pk} created by {seller.pk}: {quantity}x {item.card.name} @ {amount}")
        return service_ok(listing)

    @BaseService.log_performance
    def update_listing(
        self,
        seller,
        listing_id,
        price=None,
        description: Optional[str] = None,
        allow_offers: Optional[bool] = None,
        status: Optional[str] = None,
    ) -> ServiceResult[Listing]:
        """
        Update an active listing. Only the owner may update, and status may
        only be set to ``active`` or ``cancelled``.
        """
        result = self._get_owned_listing(seller, listing_id)
        if not result.ok:
            return result
        listing = result.value

        if listing.status != Listing.STATUS_ACTIVE:
            return service_err(ErrorCodes.LISTING_NOT_ACTIVE, "Only active listings can be updated")

        update_fields = ["updated_at"]

        if price is not None:
            amount = parse_money(price)
            if amount is None or amount <= 0:
                return service_err(ErrorCodes.INVALID_AMOUNT, "Price must be greater than zero")
            listing.price = amount
            update_fields.append("price")

        if status is not None:
            if status not in UPDATABLE_STATUSES:
                return service_err(ErrorCodes.INVALID_INPUT, "Status can only be set to active or cancelled")
            listing.status = status
            update_fields.append("status")

        if description is not None:
            listing.description = description
            update_fields.append("description")

        if allow_offers is not None:
            listing.allow_offers = bool(allow_offers)
            update_fields.append("allow_offers")

        listing.save(update_fields=update_fields)
        self.logger.info(f"Listing {listing.pk} updated: {', '.join(update_fields[1:]) or 'no changes'}")
        return service_ok(listing)

    @BaseService.log_performance
    def cancel_listing(self, seller, listing_id) -> ServiceResult[Listing]:
        """
        Take a listing off the marketplace. Existing orders are left as they are.
        Cancelling an already-cancelled listing succeeds without changes.
        """
        result = self._get_owned_listing(seller, listing_id)
        if not result.ok:
            return result
        listing = result.value

        if listing.status == Listing.STATUS_CANCELLED:
            return service_ok(listing)

        updated = Listing.objects.filter(pk=listing.pk, status=Listing.STATUS_ACTIVE).update(
            status=Listing.STATUS_CANCELLED, updated_at=timezone.now()
        )
        listing.refresh_from_db()
        if not updated and listing.status != Listing.STATUS_CANCELLED:
            return service_err(ErrorCodes.LISTING_NOT_ACTIVE, f"Listing is {listing.status}")

        self.logger.info(f"Listing {listing.pk} cancelled by {seller.pk}")
        return service_ok(listing)

    def get_listing(self, listing_id) -> ServiceResult[Listing]:
        listing = Listing.objects.select_related("seller", "card").filter(pk=listing_id).first()
        if listing is None:
            return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")
        return service_ok(listing)

    @BaseService.log_performance
    def browse_listings(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        page_size: int = 20,
        ordering: str = "-created_at",
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Browse listings with filtering and pagination.

        Args:
            filters: Optional filters (status, set, q, min_price, max_price)
            page: Page number (1-indexed)
            page_size: Items per page
            ordering: Sort order (default: newest first)

        Listings of suspended sellers are hidden.

        Returns:
            ServiceResult with ``{"results", "count", "page", "page_size",
            "num_pages", "has_next", "has_previous"}``
        """
        with tracer.start_as_current_span("listings.browse") as span:
            filters = filters or {}
            span.set_attribute("filters.count", len(filters))
            span.set_attribute("page", page)

            queryset = Listing.objects.select_related("seller", "card").filter(seller__marketplace_suspended=False)
            queryset = queryset.filter(status=filters.get("status") or Listing.STATUS_ACTIVE)

            if filters.get("set"):
                queryset = queryset.filter(card__set_name__iexact=filters["set"])

            if filters.get("q"):
                term = filters["q"]
                queryset = queryset.filter(Q(card__name__icontains=term) | Q(description__icontains=term))

            if filters.get("seller"):
                queryset = queryset.filter(seller_id=filters["seller"])

            for key, lookup in (("min_price", "price__gte"), ("max_price", "price__lte")):
                if filters.get(key) is not None:
                    bound = parse_money(filters[key])
                    if bound is None:
                        return service_err(ErrorCodes.INVALID_INPUT, f"{key} must be a number")
                    queryset = queryset.filter(**{lookup: bound})

            queryset = queryset.order_by(ordering if ordering in ALLOWED_ORDERINGS else "-created_at")

            paginator = Paginator(queryset, page_size)
            page_obj = paginator.get_page(page)

            span.set_attribute("result.count", paginator.count)
            return service_ok(
                {
                    "results": list(page_obj.object_list),
                    "count": paginator.count,
                    "page": page_obj.number,
                    "page_size": page_size,
                    "num_pages": paginator.num_pages,
                    "has_next": page_obj.has_next(),
                    "has_previous": page_obj.has_previous(),
                }
            )

    def list_seller_listings(self, seller, status: Optional[str] = None) -> ServiceResult[List[Listing]]:
        listings = Listing.objects.select_related("card").filter(seller=seller)
        if status:
            listings = listings.filter(status=status)
        return service_ok(list(listings))

    def _get_owned_listing(self, seller, listing_id) -> ServiceResult[Listing]:
        listing = Listing.objects.select_related("card").filter(pk=listing_id).first()
        if listing is None:
            return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")
        if listing.seller_id != seller.pk:
            return service_err(ErrorCodes.NOT_OWNED, "You do not own this listing")
        return service_ok(listing)

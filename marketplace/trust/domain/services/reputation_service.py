"""
ReputationService - Post-sale reviews and seller reputation

Buyers review delivered orders; each review recomputes the seller's
aggregate rating and review count on the seller profile.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone

from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.trust.domain.models import Review

User = get_user_model()
logger = logging.getLogger(__name__)

REVIEWABLE_STATES = (Order.STATUS_DELIVERED, Order.STATUS_COMPLETE)


class ReputationService(BaseService):
    """
    Service for reviews and seller reputation.

    Responsibilities:
    - Create a review for a delivered order (one per order, buyer only)
    - Maintain seller_rating / seller_review_count on the seller profile
    - Stamp the seller's first completed sale
    """

    @BaseService.log_performance
    def submit_review(self, reviewer, order_id, rating, comment: str = "") -> ServiceResult[Review]:
        """
        Create a review of the order's seller.

        Validates:
        - Rating is an integer between 1 and 5
        - Reviewer is the order's buyer
        - Order is delivered or complete
        - Order has not been reviewed yet

        Returns:
            ServiceResult with the created Review
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not (1 <= rating <= 5):
            return service_err(ErrorCodes.INVALID_RATING, "Rating must be between 1 and 5")

        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")

        if order.buyer_id != reviewer.pk:
            return service_err(ErrorCodes.NOT_ORDER_BUYER, "Only the buyer can review this order")

        if order.status not in REVIEWABLE_STATES:
            return service_err(ErrorCodes.INVALID_ORDER_STATE, "Order must be delivered before it can be reviewed")

        if Review.objects.filter(order=order).exists():
            return service_err(ErrorCodes.DUPLICATE_REVIEW, "This order has already been reviewed")

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    order=order,
                    reviewer=reviewer,
                    reviewee_id=order.seller_id,
                    rating=rating,
                    comment=comment or "",
                )
                self.recompute_seller_rating(order.seller_id)
        except IntegrityError:
            return service_err(ErrorCodes.DUPLICATE_REVIEW, "This order has already been reviewed")

        self.logger.info(f"Created review {review.pk} ({rating}/5) for order {order.order_number}")
        return service_ok(review)

    def recompute_seller_rating(self, seller_id) -> None:
        """Recompute and persist the seller's mean rating (2 decimals) and review count."""
        aggregate = Review.objects.filter(reviewee_id=seller_id).aggregate(avg=Avg("rating"), count=Count("id"))

        average = aggregate["avg"]
        rating = (
            Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) if average is not None else None
        )

        User.objects.filter(pk=seller_id).update(seller_rating=rating, seller_review_count=aggregate["count"])

    def list_user_reviews(self, user_id) -> ServiceResult[List[Review]]:
        if not User.objects.filter(pk=user_id).exists():
            return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")

        reviews = Review.objects.filter(reviewee_id=user_id).select_related("reviewer", "order")
        return service_ok(list(reviews))

    @BaseService.log_performance
    def record_first_sale(self, seller_id) -> ServiceResult[bool]:
        """
        Stamp the seller's first-sale time. Only the first call has an effect.

        Returns:
            ServiceResult with True when this call stamped the time
        """
        stamped = User.objects.filter(pk=seller_id, first_sale_at__isnull=True).update(first_sale_at=timezone.now())
        if stamped:
            self.logger.info(f"Recorded first marketplace sale for seller {seller_id}")
        return service_ok(bool(stamped))

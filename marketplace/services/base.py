"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and the BaseService class shared by marketplace and payment services.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Expected business failures (validation, permission, state conflicts) are
    returned as results rather than raised, so views can map them onto HTTP
    statuses in one place.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = service_ok(listing)
        >>> if result.ok:
        ...     return Response(ListingSerializer(result.value).data, 200)

        >>> result = service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing 12 does not exist")
        >>> print(result.error)  # "listing_not_found"
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None


def service_ok(value: T = None) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> return service_ok(order)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "listing_not_found", "offer_not_pending")
        error_detail: Human-readable error message

    Example:
        >>> return service_err(ErrorCodes.OFFER_NOT_PENDING, "Offer is no longer pending")
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class ListingService(BaseService):
            @BaseService.log_performance
            def create_listing(self, seller, ...):
                self.logger.info(f"Creating listing for {seller.id}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time and the error code of failed results. Exceptions
        are logged and re-raised.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper


class ErrorCodes:
    """Standard error codes used across marketplace and payment services."""

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_RATING = "invalid_rating"

    # Authorization errors
    PERMISSION_DENIED = "permission_denied"
    NOT_OWNED = "not_owned"
    SELLER_INELIGIBLE = "seller_ineligible"
    NOT_ENTITLED = "not_entitled"
    NOT_ORDER_BUYER = "not_order_buyer"
    NOT_ORDER_SELLER = "not_order_seller"
    BLOCKED = "blocked"

    # Not found
    LISTING_NOT_FOUND = "listing_not_found"
    OFFER_NOT_FOUND = "offer_not_found"
    ORDER_NOT_FOUND = "order_not_found"
    SHIPMENT_NOT_FOUND = "shipment_not_found"
    COLLECTION_ITEM_NOT_FOUND = "collection_item_not_found"
    USER_NOT_FOUND = "user_not_found"
    REPORT_NOT_FOUND = "report_not_found"
    BLOCK_NOT_FOUND = "block_not_found"

    # State conflicts
    NO_IMAGE = "no_image"
    LISTING_NOT_ACTIVE = "listing_not_active"
    OFFERS_NOT_ALLOWED = "offers_not_allowed"
    OWN_LISTING = "own_listing"
    DUPLICATE_OFFER = "duplicate_offer"
    OFFER_NOT_PENDING = "offer_not_pending"
    INSUFFICIENT_QUANTITY = "insufficient_quantity"
    INVALID_ORDER_STATE = "invalid_order_state"
    MISSING_SHIP_FROM_ADDRESS = "missing_ship_from_address"
    DUPLICATE_REVIEW = "duplicate_review"
    ALREADY_BLOCKED = "already_blocked"
    SELF_BLOCK = "self_block"

    # External provider errors (retryable)
    PAYMENT_PROVIDER_ERROR = "payment_provider_error"
    CARRIER_ERROR = "carrier_error"

    # Webhook errors
    INVALID_SIGNATURE = "invalid_signature"

    # Internal errors
    INTERNAL_ERROR = "internal_error"

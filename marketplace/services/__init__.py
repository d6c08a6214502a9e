"""
Marketplace Service Layer

Shared foundations for the domain services under ``marketplace/<domain>/domain/services``.

Usage:
    from marketplace.services import service_ok, service_err, ErrorCodes

    result = container.listing_service().create_listing(seller, item_id, price)

    if result.ok:
        listing = result.value
    else:
        error = result.error
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Helper functions
    "service_ok",
    "service_err",
    # Error codes
    "ErrorCodes",
]

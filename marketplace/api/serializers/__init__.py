# Marketplace API Serializers

# Import response serializers for API documentation
from .response_serializers import (
    ErrorResponseSerializer,
    PaginatedListingResponseSerializer,
    RatesResponseSerializer,
    ReportCreatedResponseSerializer,
)
from .user_serializers import MinimalUserSerializer, SellerSummarySerializer


__all__ = [
    # Response serializers for documentation
    "ErrorResponseSerializer",
    "PaginatedListingResponseSerializer",
    "RatesResponseSerializer",
    "ReportCreatedResponseSerializer",
    # Shared projections
    "MinimalUserSerializer",
    "SellerSummarySerializer",
]

"""
Response Serializers for Marketplace API Documentation

These serializers define the structure of API responses for OpenAPI schema generation.
They are NOT used for data validation, only for documentation in Swagger/ReDoc.
"""

from rest_framework import serializers

# ===== Common Response Serializers =====


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Human-readable error message")
    code = serializers.CharField(help_text="Error code identifier, e.g. offer_not_pending")
    retryable = serializers.BooleanField(
        required=False, help_text="Present and true when an external provider was unavailable"
    )


class PaginatedListingResponseSerializer(serializers.Serializer):
    """Paginated listing browse response"""

    count = serializers.IntegerField(help_text="Total number of listings")
    page = serializers.IntegerField(help_text="Current page number")
    page_size = serializers.IntegerField(help_text="Items per page")
    num_pages = serializers.IntegerField(help_text="Total number of pages")
    has_next = serializers.BooleanField(help_text="Whether there is a next page")
    has_previous = serializers.BooleanField(help_text="Whether there is a previous page")
    results = serializers.ListField(child=serializers.DictField(), help_text="Listings (see ListingSerializer)")


class RatesResponseSerializer(serializers.Serializer):
    rates = serializers.ListField(child=serializers.DictField(), help_text="Quoted rates (see RateSerializer)")


class ReportCreatedResponseSerializer(serializers.Serializer):
    report = serializers.DictField(help_text="Created report")
    target_suspended = serializers.BooleanField(help_text="Whether this report suspended the reported user")

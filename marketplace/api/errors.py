"""
Mapping of service error codes onto HTTP responses.

Every view returns failures through ``result_to_response`` so the same code
always yields the same status across endpoints.
"""

from typing import Optional

from rest_framework import status
from rest_framework.response import Response

from marketplace.services.base import ErrorCodes, ServiceResult

VALIDATION_ERRORS = {
    ErrorCodes.VALIDATION_ERROR,
    ErrorCodes.INVALID_INPUT,
    ErrorCodes.INVALID_QUANTITY,
    ErrorCodes.INVALID_AMOUNT,
    ErrorCodes.INVALID_RATING,
    ErrorCodes.INVALID_SIGNATURE,
}

AUTHORIZATION_ERRORS = {
    ErrorCodes.PERMISSION_DENIED,
    ErrorCodes.NOT_OWNED,
    ErrorCodes.SELLER_INELIGIBLE,
    ErrorCodes.NOT_ENTITLED,
    ErrorCodes.NOT_ORDER_BUYER,
    ErrorCodes.NOT_ORDER_SELLER,
    ErrorCodes.BLOCKED,
}

NOT_FOUND_ERRORS = {
    ErrorCodes.LISTING_NOT_FOUND,
    ErrorCodes.OFFER_NOT_FOUND,
    ErrorCodes.ORDER_NOT_FOUND,
    ErrorCodes.SHIPMENT_NOT_FOUND,
    ErrorCodes.COLLECTION_ITEM_NOT_FOUND,
    ErrorCodes.USER_NOT_FOUND,
    ErrorCodes.REPORT_NOT_FOUND,
    ErrorCodes.BLOCK_NOT_FOUND,
}

STATE_CONFLICT_ERRORS = {
    ErrorCodes.NO_IMAGE,
    ErrorCodes.LISTING_NOT_ACTIVE,
    ErrorCodes.OFFERS_NOT_ALLOWED,
    ErrorCodes.OWN_LISTING,
    ErrorCodes.DUPLICATE_OFFER,
    ErrorCodes.OFFER_NOT_PENDING,
    ErrorCodes.INSUFFICIENT_QUANTITY,
    ErrorCodes.INVALID_ORDER_STATE,
    ErrorCodes.MISSING_SHIP_FROM_ADDRESS,
    ErrorCodes.DUPLICATE_REVIEW,
    ErrorCodes.ALREADY_BLOCKED,
    ErrorCodes.SELF_BLOCK,
}

EXTERNAL_ERRORS = {
    ErrorCodes.PAYMENT_PROVIDER_ERROR,
    ErrorCodes.CARRIER_ERROR,
}


def status_for_error(error_code: str) -> int:
    if error_code in VALIDATION_ERRORS:
        return status.HTTP_400_BAD_REQUEST
    if error_code in AUTHORIZATION_ERRORS:
        return status.HTTP_403_FORBIDDEN
    if error_code in NOT_FOUND_ERRORS:
        return status.HTTP_404_NOT_FOUND
    if error_code in STATE_CONFLICT_ERRORS:
        return status.HTTP_409_CONFLICT
    if error_code in EXTERNAL_ERRORS:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def result_to_response(result: ServiceResult) -> Response:
    """
    Build the error response for a failed ServiceResult.

    Body: ``{"detail": <message>, "code": <error code>}``; provider outages
    also carry ``"retryable": true``.
    """
    body = {"detail": result.error_detail, "code": result.error}
    if result.error in EXTERNAL_ERRORS:
        body["retryable"] = True
    return Response(body, status=status_for_error(result.error))


def validation_error_response(errors) -> Response:
    """400 for a request body that failed serializer validation."""
    return Response(
        {"detail": "Invalid request data", "code": ErrorCodes.INVALID_INPUT, "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def query_int(request, name: str, default: int, maximum: Optional[int] = None) -> int:
    """Positive integer query parameter, falling back to ``default`` when absent or malformed."""
    try:
        value = int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    return min(value, maximum) if maximum else value

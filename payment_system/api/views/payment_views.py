import logging

from django.http import HttpResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from drf_spectacular.utils import OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from infrastructure.payments import WebhookVerificationError
from marketplace.api.errors import result_to_response, status_for_error, validation_error_response
from marketplace.permissions import IsStaffOrMarketplaceAdmin
from payment_system.api.serializers.request_serializers import (
    CheckoutRequestSerializer,
    PaymentConfirmedRequestSerializer,
)
from payment_system.api.serializers.response_serializers import (
    CheckoutResponseSerializer,
    ErrorResponseSerializer,
    PaymentConfirmedResponseSerializer,
)
from payment_system.security import PaymentAuditLogger, get_client_ip

logger = logging.getLogger(__name__)


@extend_schema(
    operation_id="payment_checkout",
    summary="Start checkout for a listing",
    description="""
    **What it receives:**
    - `listing_id`, `quantity`
    - `offer_id` (optional): Accepted offer whose amount sets the unit price
    - `shipping_address`: name, street1, city, state, zip (country defaults to US)
    - `shipping_cost`: Shipping charged to the buyer

    **What it returns:**
    - Hosted checkout URL plus the payment_pending order it created
    - 503 with `retryable: true` when the payment provider is unavailable; no order is created
    """,
    request=CheckoutRequestSerializer,
    responses={
        201: OpenApiResponse(response=CheckoutResponseSerializer, description="Checkout session created"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid quantity, cost or address"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Not entitled or blocked by seller"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
        409: OpenApiResponse(response=ErrorResponseSerializer, description="Listing inactive or not enough units"),
        503: OpenApiResponse(response=ErrorResponseSerializer, description="Payment provider unavailable"),
    },
    tags=["Payments - Checkout"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def create_checkout(request):
    serializer = CheckoutRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    result = container.checkout_service().initiate_checkout(
        request.user,
        data["listing_id"],
        data["quantity"],
        dict(data["shipping_address"]),
        data["shipping_cost"],
        offer_id=data.get("offer_id"),
    )
    if not result.ok:
        return result_to_response(result)

    return Response(CheckoutResponseSerializer(result.value).data, status=status.HTTP_201_CREATED)


# Stripe delivers events at least once; anything but 2xx makes it retry.
@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(View):
    """Process Stripe webhooks - thin router that delegates to PaymentWebhookService."""

    @extend_schema(
        operation_id="payment_stripe_webhook",
        summary="Stripe Webhook Endpoint",
        description="Endpoint for receiving Stripe webhook events. Verifies signature and processes events.",
        request=OpenApiTypes.OBJECT,
        responses={
            200: OpenApiResponse(description="Webhook processed successfully"),
            400: OpenApiResponse(description="Invalid payload or signature"),
            404: OpenApiResponse(description="No order for the session yet (retried)"),
            500: OpenApiResponse(description="Processing error"),
        },
        tags=["Webhooks"],
        auth=[],
    )
    def post(self, request):
        """Process Stripe webhooks.

        Summary:
        - Verifies the signature against the raw body before parsing anything.
        - Delegates event processing to PaymentWebhookService.process_event().
        - Unhandled event types are acknowledged with 200.
        """
        payload = request.body
        sig_header = request.headers.get("stripe-signature")
        client_ip = get_client_ip(request)

        if not sig_header:
            PaymentAuditLogger.log_security_event(
                "webhook_missing_signature", client_ip, details="Webhook request without stripe-signature header"
            )
            logger.warning(f"Webhook rejected: Missing stripe-signature header from IP {client_ip}")
            return HttpResponse(status=400, content=b"Missing stripe-signature header.")

        try:
            event = container.payment().verify_webhook(payload, sig_header)
        except WebhookVerificationError as e:
            PaymentAuditLogger.log_security_event(
                "webhook_signature_failed",
                client_ip,
                details=f"Signature verification or payload parsing failed: {str(e)}",
            )
            logger.warning(f"Webhook signature or payload verification failed from IP {client_ip}: {str(e)}")
            return HttpResponse(status=400, content=f"Webhook verification failed: {str(e)}".encode("utf-8"))

        logger.info(f"Received Stripe event {event.event_id}: {event.event_type}")

        result = container.payment_webhook_service().process_event(event, client_ip)
        if not result.ok:
            logger.warning(f"Event {event.event_type} not applied: {result.error} ({result.error_detail})")
            return HttpResponse(status=status_for_error(result.error), content=result.error.encode("utf-8"))

        if result.value.get("handled"):
            return HttpResponse(status=200, content=f"{event.event_type} event successfully processed".encode("utf-8"))
        return HttpResponse(status=200, content=f"{event.event_type} event received but not processed".encode("utf-8"))


@extend_schema(
    operation_id="payment_confirmed",
    summary="Confirm a payment (internal)",
    description="""
    **What it receives:**
    - `session_id`: Checkout session the order was opened with
    - `payment_intent_id`: Captured payment

    **What it returns:**
    - Order status after confirmation; replays report `already_processed`
    - Staff or admin only; used when a webhook has to be replayed by hand
    """,
    request=PaymentConfirmedRequestSerializer,
    responses={
        200: OpenApiResponse(response=PaymentConfirmedResponseSerializer, description="Payment applied"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Staff access required"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="No order for the session"),
    },
    tags=["Payments - Internal"],
)
@api_view(["POST"])
@permission_classes([IsStaffOrMarketplaceAdmin])
def payment_confirmed(request):
    serializer = PaymentConfirmedRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    result = container.payment_webhook_service().on_payment_confirmed(data["session_id"], data["payment_intent_id"])
    if not result.ok:
        return result_to_response(result)

    order = result.value["order"]
    return Response(
        {
            "order_id": order.pk,
            "status": order.status,
            "already_processed": result.value["already_processed"],
            "outcome": result.value["outcome"],
        },
        status=status.HTTP_200_OK,
    )

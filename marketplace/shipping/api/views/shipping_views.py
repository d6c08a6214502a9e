import logging

from drf_spectacular.utils import OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import result_to_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer, RatesResponseSerializer
from marketplace.services.base import ErrorCodes
from marketplace.shipping.api.serializers.shipping_serializers import (
    LabelResponseSerializer,
    PurchaseLabelRequestSerializer,
    RateSerializer,
    RatesRequestSerializer,
    ShipmentSerializer,
)
from marketplace.shipping.domain.services.shipping_service import ShippingService
from payment_system.security import get_client_ip

logger = logging.getLogger(__name__)


class ShippingViewSet(viewsets.ViewSet):
    """Seller-side shipping for an order: quote rates, buy a label, read the shipment."""

    permission_classes = [IsAuthenticated]

    def get_service(self) -> ShippingService:
        return container.shipping_service()

    @extend_schema(
        operation_id="shipping_rates",
        summary="Quote shipping rates for an order",
        description="""
        **What it receives:**
        - `order_id` (in URL): Paid order sold by the caller
        - `parcel`: Preset key or explicit dimensions (inches, ounces)

        **What it returns:**
        - Carrier rates; the order moves to needs_shipping
        """,
        request=RatesRequestSerializer,
        responses={
            200: OpenApiResponse(response=RatesResponseSerializer, description="Rates quoted"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown preset or bad dimensions"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the order's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(
                response=ErrorResponseSerializer, description="Order not shippable or no saved ship-from address"
            ),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Carrier unavailable (retryable)"),
        },
        tags=["Marketplace - Shipping"],
    )
    def rates(self, request, order_id=None):
        serializer = RatesRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().get_rates_for_order(request.user, order_id, serializer.validated_data["parcel"])
        if not result.ok:
            return result_to_response(result)
        return Response({"rates": RateSerializer(result.value, many=True).data}, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="shipping_purchase_label",
        summary="Buy a shipping label",
        description="""
        **What it receives:**
        - `rate_id`: One of the rates quoted for this order

        **What it returns:**
        - Label URL and tracking details; the order moves to shipped
        """,
        request=PurchaseLabelRequestSerializer,
        responses={
            200: OpenApiResponse(response=LabelResponseSerializer, description="Label purchased"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the order's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order or shipment not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order not awaiting a label"),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Carrier unavailable (retryable)"),
        },
        tags=["Marketplace - Shipping"],
    )
    def purchase(self, request, order_id=None):
        serializer = PurchaseLabelRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().purchase_label(request.user, order_id, serializer.validated_data["rate_id"])
        if not result.ok:
            return result_to_response(result)
        return Response(LabelResponseSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="shipping_shipment",
        summary="Get an order's shipment",
        responses={
            200: OpenApiResponse(response=ShipmentSerializer, description="Shipment retrieved"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a party to the order"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order or shipment not found"),
        },
        tags=["Marketplace - Shipping"],
    )
    def shipment(self, request, order_id=None):
        result = self.get_service().get_shipment(request.user, order_id)
        if not result.ok:
            return result_to_response(result)
        return Response(ShipmentSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="shipping_presets",
        summary="List parcel presets",
        responses={200: OpenApiResponse(response=OpenApiTypes.OBJECT, description="Presets keyed by name")},
        tags=["Marketplace - Shipping"],
    )
    def presets(self, request):
        result = self.get_service().parcel_presets()
        return Response(result.value, status=status.HTTP_200_OK)


@extend_schema(
    operation_id="shipping_carrier_webhook",
    summary="Carrier tracking webhook",
    description="Receives carrier tracking updates. The HMAC-SHA256 signature in "
    "`X-Shippo-Signature` is verified against the raw body before parsing.",
    request=OpenApiTypes.OBJECT,
    responses={
        200: OpenApiResponse(description="Update received"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid signature or payload"),
    },
    tags=["Webhooks"],
    auth=[],
)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def carrier_webhook(request):
    client_ip = get_client_ip(request)
    signature = request.headers.get("X-Shippo-Signature")

    result = container.shipping_service().on_carrier_webhook(request.body, signature, client_ip=client_ip)
    if not result.ok:
        if result.error == ErrorCodes.INVALID_SIGNATURE:
            logger.warning(f"Carrier webhook rejected: invalid signature from IP {client_ip}")
        return result_to_response(result)
    return Response(result.value, status=status.HTTP_200_OK)

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.api.serializers import ShippingAddressSerializer

logger = logging.getLogger(__name__)


class ShippingAddressView(APIView):
    """
    The caller's saved shipping address. Sellers ship from it.
    """

    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        operation_id="shipping_address_get",
        summary="Get my shipping address",
        responses={
            200: OpenApiResponse(response=ShippingAddressSerializer, description="Saved address"),
            404: OpenApiResponse(description="No address saved yet"),
        },
        tags=["Profile"],
    )
    def get(self, request):
        address = request.user.shipping_address
        if not address:
            return Response({"detail": "No shipping address saved"}, status=status.HTTP_404_NOT_FOUND)
        return Response(address, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="shipping_address_update",
        summary="Save my shipping address",
        description="""
        **What it receives:**
        - Address fields; name, street1, city, state and zip are required on first save

        **What it returns:**
        - The saved address
        """,
        request=ShippingAddressSerializer,
        responses={
            200: OpenApiResponse(response=ShippingAddressSerializer, description="Address saved"),
            400: OpenApiResponse(description="Validation errors"),
        },
        tags=["Profile"],
    )
    def patch(self, request):
        user = request.user
        current = user.shipping_address or {}
        serializer = ShippingAddressSerializer(data={**current, **request.data})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user.shipping_address = dict(serializer.validated_data)
        user.save(update_fields=["shipping_address"])
        logger.info(f"Shipping address updated for user {user.pk}")
        return Response(user.shipping_address, status=status.HTTP_200_OK)

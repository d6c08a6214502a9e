from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import result_to_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.offers.api.serializers.offer_serializers import (
    OfferCreateRequestSerializer,
    OfferRespondRequestSerializer,
    OfferSerializer,
)
from marketplace.offers.domain.services.offer_service import OfferService


class ListingOfferViewSet(viewsets.ViewSet):
    """Offers nested under a listing: the seller reads them, buyers make them."""

    permission_classes = [IsAuthenticated]

    def get_service(self) -> OfferService:
        return container.offer_service()

    @extend_schema(
        operation_id="listing_offers_list",
        summary="List offers on my listing",
        description="""
        **What it receives:**
        - `listing_id` (in URL): Listing owned by the caller

        **What it returns:**
        - Every offer on the listing; stale open offers are reported as expired
        """,
        responses={
            200: OpenApiResponse(response=OfferSerializer(many=True), description="Offers retrieved"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the listing's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
        },
        tags=["Marketplace - Offers"],
    )
    def list(self, request, listing_id=None):
        result = self.get_service().list_listing_offers(request.user, listing_id)
        if not result.ok:
            return result_to_response(result)
        return Response(OfferSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="listing_offers_create",
        summary="Make an offer",
        description="""
        **What it receives:**
        - `amount`: Offered unit price (> 0)
        - `quantity`: Units wanted, clamped to what is available
        - `message` (optional)

        **What it returns:**
        - The pending offer with its expiry time
        """,
        request=OfferCreateRequestSerializer,
        responses={
            201: OpenApiResponse(response=OfferSerializer, description="Offer submitted"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid amount or quantity"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not entitled or blocked by seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
            409: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Own listing, listing inactive, offers disabled, or a pending offer already exists",
            ),
        },
        tags=["Marketplace - Offers"],
    )
    def create(self, request, listing_id=None):
        serializer = OfferCreateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().submit_offer(
            request.user, listing_id, data["amount"], quantity=data["quantity"], message=data["message"]
        )
        if not result.ok:
            return result_to_response(result)
        return Response(OfferSerializer(result.value).data, status=status.HTTP_201_CREATED)


class OfferViewSet(viewsets.ViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAuthenticated]

    def get_service(self) -> OfferService:
        return container.offer_service()

    @extend_schema(
        operation_id="offers_retrieve",
        summary="Get an offer",
        responses={
            200: OpenApiResponse(response=OfferSerializer, description="Offer retrieved"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the offer's buyer or seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Offer not found"),
        },
        tags=["Marketplace - Offers"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_offer(request.user, pk)
        if not result.ok:
            return result_to_response(result)
        return Response(OfferSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="offers_respond",
        summary="Respond to an offer",
        description="""
        **What it receives:**
        - `action`: accept, decline or counter (seller), withdraw (buyer)
        - `counter_amount`: Required when countering

        **What it returns:**
        - The updated offer
        - 409 `offer_not_pending` when the offer was already answered
        """,
        request=OfferRespondRequestSerializer,
        responses={
            200: OpenApiResponse(response=OfferSerializer, description="Offer updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown action or bad counter"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Action not allowed for caller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Offer not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Offer is no longer pending"),
        },
        tags=["Marketplace - Offers"],
    )
    def partial_update(self, request, pk=None):
        serializer = OfferRespondRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().respond_to_offer(
            request.user, pk, data["action"], counter_amount=data.get("counter_amount")
        )
        if not result.ok:
            return result_to_response(result)
        return Response(OfferSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="offers_mine",
        summary="List offers I made",
        responses={200: OpenApiResponse(response=OfferSerializer(many=True), description="Buyer's offers")},
        tags=["Marketplace - Offers"],
    )
    @action(detail=False, methods=["get"])
    def mine(self, request):
        result = self.get_service().list_buyer_offers(request.user)
        return Response(OfferSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="offers_received",
        summary="List offers on my listings",
        responses={200: OpenApiResponse(response=OfferSerializer(many=True), description="Offers received")},
        tags=["Marketplace - Offers"],
    )
    @action(detail=False, methods=["get"])
    def received(self, request):
        result = self.get_service().list_received_offers(request.user)
        return Response(OfferSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

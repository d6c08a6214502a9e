from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import query_int, result_to_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer, PaginatedListingResponseSerializer
from marketplace.listings.api.serializers.listing_serializers import (
    ListingCreateRequestSerializer,
    ListingSerializer,
    ListingUpdateRequestSerializer,
)
from marketplace.listings.domain.services.listing_service import ListingService

BROWSE_FILTERS = ("status", "set", "q", "seller", "min_price", "max_price")


class ListingViewSet(viewsets.ViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in ["list", "retrieve"]:
            return [AllowAny()]
        return super().get_permissions()

    def get_service(self) -> ListingService:
        return container.listing_service()

    @extend_schema(
        operation_id="listings_list",
        summary="Browse marketplace listings",
        description="""
        **What it receives:**
        - Optional filters (query params): status, set, q, seller, min_price, max_price
        - Pagination parameters (page, page_size) and ordering

        **What it returns:**
        - Paginated list of listings (active by default)
        - Listings of suspended sellers are hidden
        """,
        parameters=[
            OpenApiParameter(name="status", type=str, description="Listing status (default: active)"),
            OpenApiParameter(name="set", type=str, description="Card set name (case-insensitive)"),
            OpenApiParameter(name="q", type=str, description="Search card name and description"),
            OpenApiParameter(name="seller", type=str, description="Seller user ID"),
            OpenApiParameter(name="min_price", type=str, description="Minimum unit price"),
            OpenApiParameter(name="max_price", type=str, description="Maximum unit price"),
            OpenApiParameter(name="ordering", type=str, description="price, -price, created_at, -created_at"),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page (default: 20, max: 100)"),
        ],
        responses={
            200: OpenApiResponse(response=PaginatedListingResponseSerializer, description="Listings retrieved"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid filter value"),
        },
        tags=["Marketplace - Listings"],
    )
    def list(self, request):
        filters = {key: request.query_params.get(key) for key in BROWSE_FILTERS if request.query_params.get(key)}
        result = self.get_service().browse_listings(
            filters,
            page=query_int(request, "page", 1),
            page_size=query_int(request, "page_size", 20, maximum=100),
            ordering=request.query_params.get("ordering", "-created_at"),
        )
        if not result.ok:
            return result_to_response(result)

        response_data = dict(result.value)
        response_data["results"] = ListingSerializer(result.value["results"], many=True).data
        return Response(response_data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="listings_create",
        summary="Publish a listing",
        description="""
        **What it receives:**
        - `collection_item_id`: Owned collection item to sell
        - `price`: Unit price (> 0)
        - `quantity`: Units to list, clamped to the quantity owned
        - `allow_offers`, `description`, `custom_images` (optional)

        **What it returns:**
        - The created active listing
        """,
        request=ListingCreateRequestSerializer,
        responses={
            201: OpenApiResponse(response=ListingSerializer, description="Listing created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid price or quantity"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Seller ineligible or item not owned"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Collection item not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Card has no image"),
        },
        tags=["Marketplace - Listings"],
    )
    def create(self, request):
        serializer = ListingCreateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().create_listing(
            request.user,
            data["collection_item_id"],
            data["price"],
            quantity=data["quantity"],
            allow_offers=data["allow_offers"],
            description=data["description"],
            custom_images=data["custom_images"],
        )
        if not result.ok:
            return result_to_response(result)

        return Response(ListingSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="listings_retrieve",
        summary="Get listing details",
        responses={
            200: OpenApiResponse(response=ListingSerializer, description="Listing retrieved"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
        },
        tags=["Marketplace - Listings"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_listing(pk)
        if not result.ok:
            return result_to_response(result)
        return Response(ListingSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="listings_partial_update",
        summary="Update a listing",
        description="""
        **What it receives:**
        - Any of `price`, `description`, `allow_offers`, `status` (active or cancelled)
        - Authentication token (must be the listing's seller)

        **What it returns:**
        - The updated listing
        """,
        request=ListingUpdateRequestSerializer,
        responses={
            200: OpenApiResponse(response=ListingSerializer, description="Listing updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid field value"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the listing's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Listing is not active"),
        },
        tags=["Marketplace - Listings"],
    )
    def partial_update(self, request, pk=None):
        serializer = ListingUpdateRequestSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().update_listing(request.user, pk, **serializer.validated_data)
        if not result.ok:
            return result_to_response(result)
        return Response(ListingSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="listings_destroy",
        summary="Cancel a listing",
        description="Cancels the listing. Orders already placed against it are unaffected.",
        responses={
            200: OpenApiResponse(response=ListingSerializer, description="Listing cancelled"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the listing's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Listing already sold"),
        },
        tags=["Marketplace - Listings"],
    )
    def destroy(self, request, pk=None):
        result = self.get_service().cancel_listing(request.user, pk)
        if not result.ok:
            return result_to_response(result)
        return Response(ListingSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="listings_mine",
        summary="List my listings",
        parameters=[OpenApiParameter(name="status", type=str, description="Filter by listing status")],
        responses={200: OpenApiResponse(response=ListingSerializer(many=True), description="Seller's listings")},
        tags=["Marketplace - Listings"],
    )
    @action(detail=False, methods=["get"])
    def mine(self, request):
        result = self.get_service().list_seller_listings(request.user, request.query_params.get("status"))
        if not result.ok:
            return result_to_response(result)
        return Response(ListingSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

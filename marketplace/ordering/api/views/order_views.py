from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import result_to_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.ordering.api.serializers.order_serializers import OrderCancelRequestSerializer, OrderSerializer
from marketplace.ordering.domain.services.order_service import OrderService


class OrderViewSet(viewsets.ViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAuthenticated]

    def get_service(self) -> OrderService:
        return container.order_service()

    @extend_schema(
        operation_id="orders_purchases",
        summary="List my purchases",
        description="""
        **What it receives:**
        - Authentication token
        - Optional status filter (query param)

        **What it returns:**
        - Orders where the caller is the buyer, newest first
        """,
        parameters=[OpenApiParameter(name="status", type=str, description="Filter by order status")],
        responses={200: OpenApiResponse(response=OrderSerializer(many=True), description="Purchases retrieved")},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"])
    def purchases(self, request):
        result = self.get_service().list_purchases(request.user, request.query_params.get("status"))
        if not result.ok:
            return result_to_response(result)
        return Response(OrderSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_sales",
        summary="List my sales",
        description="""
        **What it receives:**
        - Authentication token
        - Optional status filter (query param)

        **What it returns:**
        - Orders where the caller is the seller, newest first
        """,
        parameters=[OpenApiParameter(name="status", type=str, description="Filter by order status")],
        responses={200: OpenApiResponse(response=OrderSerializer(many=True), description="Sales retrieved")},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"])
    def sales(self, request):
        result = self.get_service().list_sales(request.user, request.query_params.get("status"))
        if not result.ok:
            return result_to_response(result)
        return Response(OrderSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        description="""
        **What it receives:**
        - `order_id` (in URL)
        - Authentication token (order buyer, seller, or admin)

        **What it returns:**
        - Order with frozen money breakdown, status and payment status
        """,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order retrieved"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a party to the order"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order(request.user, pk)
        if not result.ok:
            return result_to_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_cancel",
        summary="Cancel an order",
        description="""
        **What it receives:**
        - `reason` (optional)
        - Authentication token (order seller or admin)

        **What it returns:**
        - The cancelled order
        - Paid orders are restocked and refunded
        """,
        request=OrderCancelRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order cancelled"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the order's seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order can no longer be cancelled"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = OrderCancelRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().cancel_order(request.user, pk, serializer.validated_data["reason"])
        if not result.ok:
            return result_to_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_complete",
        summary="Mark a delivered order complete",
        description="""
        **What it receives:**
        - Authentication token (order buyer or admin)

        **What it returns:**
        - The completed order
        """,
        request=None,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order completed"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the order's buyer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order is not delivered"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        result = self.get_service().complete_order(request.user, pk)
        if not result.ok:
            return result_to_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import result_to_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer, MinimalUserSerializer, ReportCreatedResponseSerializer
from marketplace.permissions import IsMarketplaceAdmin
from marketplace.trust.api.serializers.trust_serializers import (
    BlockCreateRequestSerializer,
    BlockSerializer,
    ReportCreateRequestSerializer,
    ReportSerializer,
    ReportUpdateRequestSerializer,
    ReviewCreateRequestSerializer,
    ReviewSerializer,
    SuspensionRequestSerializer,
)


class ReviewViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="reviews_create",
        summary="Review the seller of an order",
        description="""
        **What it receives:**
        - `order_id` (in URL): Delivered or complete order bought by the caller
        - `rating`: 1 to 5, `comment` (optional)

        **What it returns:**
        - The review; the seller's rating aggregate is recomputed
        """,
        request=ReviewCreateRequestSerializer,
        responses={
            201: OpenApiResponse(response=ReviewSerializer, description="Review created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Rating out of range"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the order's buyer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Not delivered yet or already reviewed"),
        },
        tags=["Marketplace - Trust"],
    )
    def create(self, request, order_id=None):
        serializer = ReviewCreateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = container.reputation_service().submit_review(
            request.user, order_id, data["rating"], comment=data["comment"]
        )
        if not result.ok:
            return result_to_response(result)
        return Response(ReviewSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="reviews_user_list",
        summary="List reviews received by a user",
        responses={
            200: OpenApiResponse(response=ReviewSerializer(many=True), description="Reviews retrieved"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User not found"),
        },
        tags=["Marketplace - Trust"],
    )
    def list(self, request, user_id=None):
        result = container.reputation_service().list_user_reviews(user_id)
        if not result.ok:
            return result_to_response(result)
        return Response(ReviewSerializer(result.value, many=True).data, status=status.HTTP_200_OK)


class ReportViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="reports_create",
        summary="Report a user, listing or order",
        description="""
        **What it receives:**
        - `reason` and optional `description`
        - At least one of `target_user_id`, `listing_id`, `order_id`

        **What it returns:**
        - The open report, and whether it suspended the reported user
        """,
        request=ReportCreateRequestSerializer,
        responses={
            201: OpenApiResponse(response=ReportCreatedResponseSerializer, description="Report created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Missing target or bad reason"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Target not found"),
        },
        tags=["Marketplace - Trust"],
    )
    def create(self, request):
        serializer = ReportCreateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = container.report_service().submit_report(
            request.user,
            data["reason"],
            description=data["description"],
            target_user_id=data.get("target_user_id"),
            listing_id=data.get("listing_id"),
            order_id=data.get("order_id"),
        )
        if not result.ok:
            return result_to_response(result)

        return Response(
            {
                "report": ReportSerializer(result.value["report"]).data,
                "target_suspended": result.value["target_suspended"],
            },
            status=status.HTTP_201_CREATED,
        )


class BlockViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_field = "user_id"

    @extend_schema(
        operation_id="blocks_list",
        summary="List users I blocked",
        responses={200: OpenApiResponse(response=BlockSerializer(many=True), description="Blocks retrieved")},
        tags=["Marketplace - Trust"],
    )
    def list(self, request):
        result = container.block_service().list_blocks(request.user)
        return Response(BlockSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="blocks_create",
        summary="Block a user",
        description="Blocked users cannot make offers on or buy the blocker's listings.",
        request=BlockCreateRequestSerializer,
        responses={
            201: OpenApiResponse(response=BlockSerializer, description="User blocked"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Already blocked or self-block"),
        },
        tags=["Marketplace - Trust"],
    )
    def create(self, request):
        serializer = BlockCreateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = container.block_service().block_user(request.user, data["user_id"], reason=data["reason"])
        if not result.ok:
            return result_to_response(result)
        return Response(BlockSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="blocks_destroy",
        summary="Unblock a user",
        responses={
            204: OpenApiResponse(description="User unblocked"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User was not blocked"),
        },
        tags=["Marketplace - Trust"],
    )
    def destroy(self, request, user_id=None):
        result = container.block_service().unblock_user(request.user, user_id)
        if not result.ok:
            return result_to_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminModerationViewSet(viewsets.ViewSet):
    """Report review and manual suspension for marketplace admins."""

    permission_classes = [IsAuthenticated, IsMarketplaceAdmin]

    @extend_schema(
        operation_id="admin_reports_list",
        summary="List reports",
        parameters=[OpenApiParameter(name="status", type=str, description="open, resolved or dismissed")],
        responses={
            200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports retrieved"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown status"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
        },
        tags=["Marketplace - Admin"],
    )
    def reports(self, request):
        result = container.report_service().list_reports(request.user, request.query_params.get("status"))
        if not result.ok:
            return result_to_response(result)
        return Response(ReportSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="admin_reports_update",
        summary="Resolve or dismiss a report",
        request=ReportUpdateRequestSerializer,
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Report updated"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Report not found"),
        },
        tags=["Marketplace - Admin"],
    )
    def update_report(self, request, report_id=None):
        serializer = ReportUpdateRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = container.report_service().update_report(
            request.user, report_id, data["status"], resolution=data["resolution"]
        )
        if not result.ok:
            return result_to_response(result)
        return Response(ReportSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="admin_user_suspension",
        summary="Suspend or reinstate a user",
        request=SuspensionRequestSerializer,
        responses={
            200: OpenApiResponse(response=MinimalUserSerializer, description="Suspension updated"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User not found"),
        },
        tags=["Marketplace - Admin"],
    )
    def suspension(self, request, user_id=None):
        serializer = SuspensionRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = container.report_service().set_suspension(
            request.user, user_id, serializer.validated_data["suspended"]
        )
        if not result.ok:
            return result_to_response(result)

        user = result.value
        response_data = MinimalUserSerializer(user).data
        response_data["marketplace_suspended"] = user.marketplace_suspended
        return Response(response_data, status=status.HTTP_200_OK)

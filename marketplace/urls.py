from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .views import (
    AdminModerationViewSet,
    BlockViewSet,
    ListingOfferViewSet,
    ListingViewSet,
    OfferViewSet,
    OrderViewSet,
    ReportViewSet,
    ReviewViewSet,
    ShippingViewSet,
    carrier_webhook,
)

# Create the main router
router = DefaultRouter()
router.register(r"listings", ListingViewSet, basename="listing")
router.register(r"offers", OfferViewSet, basename="offer")
router.register(r"orders", OrderViewSet, basename="order")

app_name = "marketplace"

urlpatterns = [
    # Main API routes
    path("", include(router.urls)),
    # Offers nested under a listing
    path(
        "listings/<int:listing_id>/offers/",
        ListingOfferViewSet.as_view({"get": "list", "post": "create"}),
        name="listing-offers",
    ),
    # Shipping for an order
    path(
        "orders/<int:order_id>/shipping/rates/",
        ShippingViewSet.as_view({"post": "rates"}),
        name="order-shipping-rates",
    ),
    path(
        "orders/<int:order_id>/shipping/purchase/",
        ShippingViewSet.as_view({"post": "purchase"}),
        name="order-shipping-purchase",
    ),
    path("orders/<int:order_id>/shipment/", ShippingViewSet.as_view({"get": "shipment"}), name="order-shipment"),
    path("shipping/presets/", ShippingViewSet.as_view({"get": "presets"}), name="shipping-presets"),
    path("shipping/webhook/", carrier_webhook, name="shipping-webhook"),
    # Trust
    path("orders/<int:order_id>/review/", ReviewViewSet.as_view({"post": "create"}), name="order-review"),
    path("users/<uuid:user_id>/reviews/", ReviewViewSet.as_view({"get": "list"}), name="user-reviews"),
    path("reports/", ReportViewSet.as_view({"post": "create"}), name="reports"),
    path("blocks/", BlockViewSet.as_view({"get": "list", "post": "create"}), name="blocks"),
    path("blocks/<uuid:user_id>/", BlockViewSet.as_view({"delete": "destroy"}), name="block-detail"),
    # Admin moderation
    path("admin/reports/", AdminModerationViewSet.as_view({"get": "reports"}), name="admin-reports"),
    path(
        "admin/reports/<int:report_id>/",
        AdminModerationViewSet.as_view({"patch": "update_report"}),
        name="admin-report-detail",
    ),
    path(
        "admin/users/<uuid:user_id>/suspension/",
        AdminModerationViewSet.as_view({"patch": "suspension"}),
        name="admin-user-suspension",
    ),
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.marketplace_prometheus_metrics, name="marketplace-metrics"),
]

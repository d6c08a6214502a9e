from marketplace.listings.api.views.listing_views import ListingViewSet
from marketplace.offers.api.views.offer_views import ListingOfferViewSet, OfferViewSet
from marketplace.ordering.api.views.order_views import OrderViewSet
from marketplace.shipping.api.views.shipping_views import ShippingViewSet, carrier_webhook
from marketplace.trust.api.views.trust_views import AdminModerationViewSet, BlockViewSet, ReportViewSet, ReviewViewSet

__all__ = [
    "ListingViewSet",
    "ListingOfferViewSet",
    "OfferViewSet",
    "OrderViewSet",
    "ShippingViewSet",
    "carrier_webhook",
    "ReviewViewSet",
    "ReportViewSet",
    "BlockViewSet",
    "AdminModerationViewSet",
]

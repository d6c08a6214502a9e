from marketplace.catalog.domain.models import Card, CollectionItem
from marketplace.listings.domain.models import Listing
from marketplace.offers.domain.models import Offer
from marketplace.ordering.domain.models import Order
from marketplace.shipping.domain.models import Shipment
from marketplace.trust.domain.models import Block, Report, Review


__all__ = [
    "Card",
    "CollectionItem",
    "Listing",
    "Offer",
    "Order",
    "Shipment",
    "Review",
    "Report",
    "Block",
]

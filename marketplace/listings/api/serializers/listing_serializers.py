from rest_framework import serializers

from marketplace.api.serializers import SellerSummarySerializer
from marketplace.listings.domain.models import Listing


class ListingSerializer(serializers.ModelSerializer):
    seller = SellerSummarySerializer(read_only=True)
    card_name = serializers.CharField(source="card.name", read_only=True)
    set_name = serializers.CharField(source="card.set_name", read_only=True)
    images = serializers.ListField(source="image_urls", child=serializers.URLField(), read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "seller",
            "collection_item",
            "card",
            "card_name",
            "set_name",
            "price",
            "quantity",
            "quantity_available",
            "allow_offers",
            "description",
            "condition_snapshot",
            "images",
            "status",
            "published_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingCreateRequestSerializer(serializers.Serializer):
    """Request body for publishing a listing"""

    collection_item_id = serializers.IntegerField(help_text="Collection item to sell")
    price = serializers.DecimalField(max_digits=10, decimal_places=2, help_text="Unit price")
    quantity = serializers.IntegerField(default=1, help_text="Units to list (clamped to the quantity owned)")
    allow_offers = serializers.BooleanField(default=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    custom_images = serializers.ListField(
        child=serializers.URLField(), required=False, default=list, help_text="Extra image URLs"
    )


class ListingUpdateRequestSerializer(serializers.Serializer):
    """Request body for updating an active listing; every field is optional"""

    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    allow_offers = serializers.BooleanField(required=False)
    status = serializers.ChoiceField(choices=[Listing.STATUS_ACTIVE, Listing.STATUS_CANCELLED], required=False)

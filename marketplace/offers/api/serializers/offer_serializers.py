from rest_framework import serializers

from marketplace.api.serializers import MinimalUserSerializer
from marketplace.offers.domain.models import Offer
from marketplace.offers.domain.services.offer_service import ACTION_STATUS


class OfferSerializer(serializers.ModelSerializer):
    buyer = MinimalUserSerializer(read_only=True)
    card_name = serializers.CharField(source="listing.card.name", read_only=True)
    listing_price = serializers.DecimalField(
        source="listing.price", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = Offer
        fields = [
            "id",
            "listing",
            "card_name",
            "listing_price",
            "buyer",
            "amount",
            "quantity",
            "message",
            "counter_amount",
            "status",
            "expires_at",
            "responded_at",
            "created_at",
        ]
        read_only_fields = fields


class OfferCreateRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, help_text="Offered unit price")
    quantity = serializers.IntegerField(default=1, help_text="Units wanted (clamped to availability)")
    message = serializers.CharField(required=False, allow_blank=True, default="")


class OfferRespondRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=sorted(ACTION_STATUS), help_text="accept, decline, counter or withdraw")
    counter_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, help_text="Required when action is counter"
    )

from rest_framework import serializers

from marketplace.api.serializers import MinimalUserSerializer
from marketplace.ordering.domain.models import Order


class OrderSerializer(serializers.ModelSerializer):
    buyer = MinimalUserSerializer(read_only=True)
    seller = MinimalUserSerializer(read_only=True)
    card_name = serializers.CharField(source="listing.card.name", read_only=True)
    shipment_status = serializers.SerializerMethodField()
    has_review = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "listing",
            "offer",
            "card_name",
            "buyer",
            "seller",
            "quantity",
            "item_price",
            "shipping_cost",
            "platform_fee",
            "processor_fee",
            "total",
            "seller_net",
            "currency",
            "shipping_address",
            "status",
            "payment_status",
            "shipment_status",
            "has_review",
            "paid_at",
            "shipped_at",
            "delivered_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_shipment_status(self, obj):
        shipment = getattr(obj, "shipment", None)
        return shipment.status if shipment else None

    def get_has_review(self, obj):
        return hasattr(obj, "review")


class OrderCancelRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", help_text="Cancellation reason")

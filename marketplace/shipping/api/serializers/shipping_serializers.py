from rest_framework import serializers

from marketplace.shipping.domain.models import Shipment


class ShipmentSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = Shipment
        fields = [
            "id",
            "order",
            "order_number",
            "from_address",
            "to_address",
            "parcel",
            "carrier",
            "label_url",
            "tracking_number",
            "tracking_url",
            "status",
            "purchased_at",
            "last_webhook_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RateSerializer(serializers.Serializer):
    rate_id = serializers.CharField()
    carrier_service_name = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    estimated_days = serializers.IntegerField(allow_null=True)


class RatesRequestSerializer(serializers.Serializer):
    parcel = serializers.JSONField(
        help_text="Preset key (e.g. 'toploader_bubble'), {'preset': key}, or "
        "{'length', 'width', 'height', 'weight'} in inches and ounces"
    )


class PurchaseLabelRequestSerializer(serializers.Serializer):
    rate_id = serializers.CharField(help_text="Rate chosen from the rates response")


class LabelResponseSerializer(serializers.Serializer):
    label_url = serializers.URLField()
    tracking_number = serializers.CharField()
    tracking_url = serializers.CharField(allow_blank=True)

from rest_framework import serializers

from authentication.api.serializers import ShippingAddressSerializer


class CheckoutRequestSerializer(serializers.Serializer):
    listing_id = serializers.IntegerField(help_text="Listing to buy")
    offer_id = serializers.IntegerField(
        required=False, allow_null=True, help_text="Accepted offer whose amount replaces the listing price"
    )
    quantity = serializers.IntegerField(default=1, help_text="Units to buy")
    shipping_address = ShippingAddressSerializer(help_text="Delivery address")
    shipping_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, default="0.00", help_text="Shipping charged to the buyer"
    )


class PaymentConfirmedRequestSerializer(serializers.Serializer):
    session_id = serializers.CharField(help_text="Checkout session the order was created with")
    payment_intent_id = serializers.CharField(required=False, allow_blank=True, default="")

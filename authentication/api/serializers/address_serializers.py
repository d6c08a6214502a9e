from rest_framework import serializers


class ShippingAddressSerializer(serializers.Serializer):
    """Postal address used as a shipment origin or destination"""

    name = serializers.CharField(max_length=100)
    street1 = serializers.CharField(max_length=200)
    street2 = serializers.CharField(max_length=200, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=50)
    zip = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=2, default="US", help_text="2-letter Country Code (ISO 3166-1 alpha-2)")
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)

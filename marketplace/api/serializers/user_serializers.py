from django.contrib.auth import get_user_model
from rest_framework import serializers


User = get_user_model()


class MinimalUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "display_name", "photo_url"]
        read_only_fields = fields


class SellerSummarySerializer(serializers.ModelSerializer):
    """Public seller card shown on listings"""

    class Meta:
        model = User
        fields = ["id", "username", "display_name", "photo_url", "seller_rating", "seller_review_count"]
        read_only_fields = fields

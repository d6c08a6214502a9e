from rest_framework import serializers

from marketplace.api.serializers import MinimalUserSerializer
from marketplace.trust.domain.models import Block, Report, Review


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Review
        fields = ["id", "order", "reviewer", "reviewee", "rating", "comment", "created_at"]
        read_only_fields = fields


class ReviewCreateRequestSerializer(serializers.Serializer):
    rating = serializers.IntegerField(help_text="1 to 5")
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReportSerializer(serializers.ModelSerializer):
    reporter = MinimalUserSerializer(read_only=True)
    target_user = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Report
        fields = [
            "id",
            "reporter",
            "target_user",
            "listing",
            "order",
            "reason",
            "description",
            "status",
            "resolution",
            "resolved_by",
            "resolved_at",
            "created_at",
        ]
        read_only_fields = fields


class ReportCreateRequestSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=Report.REASON_CHOICES)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    target_user_id = serializers.UUIDField(required=False, allow_null=True)
    listing_id = serializers.IntegerField(required=False, allow_null=True)
    order_id = serializers.IntegerField(required=False, allow_null=True)


class ReportUpdateRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Report.STATUS_CHOICES)
    resolution = serializers.CharField(required=False, allow_blank=True, default="")


class SuspensionRequestSerializer(serializers.Serializer):
    suspended = serializers.BooleanField()


class BlockSerializer(serializers.ModelSerializer):
    blocked_user = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Block
        fields = ["id", "blocked_user", "reason", "created_at"]
        read_only_fields = fields


class BlockCreateRequestSerializer(serializers.Serializer):
    user_id = serializers.UUIDField(help_text="User to block")
    reason = serializers.CharField(required=False, allow_blank=True, default="")

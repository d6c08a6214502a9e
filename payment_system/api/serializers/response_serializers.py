from rest_framework import serializers


# ==============================================================================
# Payment Flow Responses
# ==============================================================================


class CheckoutResponseSerializer(serializers.Serializer):
    """Response for opening a checkout session"""

    checkout_url = serializers.URLField(help_text="Hosted checkout page to redirect the buyer to")
    order_id = serializers.IntegerField(help_text="Order created in payment_pending")
    order_number = serializers.CharField(help_text="Human-readable order reference")


class PaymentConfirmedResponseSerializer(serializers.Serializer):
    """Response for the internal payment confirmation callback"""

    order_id = serializers.IntegerField()
    status = serializers.CharField(help_text="Order status after confirmation")
    already_processed = serializers.BooleanField(help_text="True when the confirmation was a replay")
    outcome = serializers.CharField(allow_null=True, help_text="paid, oversold or late_payment")


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField()
    code = serializers.CharField(required=False)
    retryable = serializers.BooleanField(required=False)

"""
RefundService - Refunds through the payment provider

Shared by order cancellation and payment confirmation (oversold or late
payments). A failed refund leaves the order's payment status untouched so it
can be followed up by hand.
"""

import logging
from typing import Optional

from django.utils import timezone

from infrastructure.container import container
from infrastructure.payments import PaymentException, PaymentProviderInterface, Refund
from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from payment_system.infra.observability.metrics import payment_provider_latency_seconds, refunds_total
from payment_system.security import PaymentAuditLogger

logger = logging.getLogger(__name__)

# Reason sent to the provider; the internal reason is kept for logs and metrics.
PROVIDER_REFUND_REASON = "requested_by_customer"


class RefundService(BaseService):
    def __init__(self, payment_provider: Optional[PaymentProviderInterface] = None):
        super().__init__()
        self.payment_provider = payment_provider or container.payment()

    @BaseService.log_performance
    def refund_order(self, order: Order, reason: str) -> ServiceResult[Refund]:
        """
        Refund the full amount charged for ``order``.

        On success the order's payment status becomes ``refunded``.

        Returns:
            ServiceResult with the provider Refund, ``invalid_order_state`` if
            there is no payment to refund, or ``payment_provider_error``
        """
        if not order.payment_intent_id:
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE, f"Order {order.order_number} has no captured payment to refund"
            )

        try:
            with payment_provider_latency_seconds.labels(operation="create_refund").time():
                refund = self.payment_provider.create_refund(order.payment_intent_id, reason=PROVIDER_REFUND_REASON)
        except PaymentException as e:
            refunds_total.labels(reason=reason, status="failed").inc()
            PaymentAuditLogger.log_refund(order.order_number, order.payment_intent_id, order.total, reason, False)
            return service_err(ErrorCodes.PAYMENT_PROVIDER_ERROR, f"Refund failed: {e}")

        now = timezone.now()
        Order.objects.filter(pk=order.pk).update(payment_status=Order.PAYMENT_REFUNDED, updated_at=now)
        order.payment_status = Order.PAYMENT_REFUNDED

        refunds_total.labels(reason=reason, status="succeeded").inc()
        PaymentAuditLogger.log_refund(order.order_number, order.payment_intent_id, order.total, reason, True)
        return service_ok(refund)

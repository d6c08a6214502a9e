"""
PaymentWebhookService - Payment confirmation and failure

Payment providers deliver events at least once and in any order. The Order's
current state is the idempotency guard: confirmation only acts on an order
still in ``payment_pending`` (under a row lock), so a replayed event is
acknowledged without side effects.

Units are taken off the listing here, with a conditional UPDATE. When the
last unit was already sold to someone else the order is cancelled as
oversold and the payment refunded.
"""

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from infrastructure.observability import add_span_attributes, get_tracer
from infrastructure.payments import WebhookEvent
from marketplace.listings.domain.services import inventory
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.services.order_state_machine import OrderStateMachine
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from payment_system.domain.services.refund_service import RefundService
from payment_system.infra.observability.metrics import payment_volume_total, payment_webhooks_total
from payment_system.security import PaymentAuditLogger

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

OVERSOLD_REASON = "oversold"
LATE_PAYMENT_REASON = "paid_after_cancellation"

CONFIRMATION_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
FAILURE_EVENTS = ("checkout.session.expired", "checkout.session.async_payment_failed")

# Session payment states that mean the money is captured
PAID_SESSION_STATES = ("paid", "no_payment_required")


class PaymentWebhookService(BaseService):
    """
    Applies payment outcomes to orders.

    Responsibilities:
    - Route verified provider events
    - Confirm payment: decrement inventory, move the order to paid
    - Cancel and refund oversold or late-paid orders
    - Record failed or expired checkouts
    """

    def __init__(
        self,
        state_machine: Optional[OrderStateMachine] = None,
        refund_service: Optional[RefundService] = None,
    ):
        super().__init__()
        self.state_machine = state_machine or OrderStateMachine()
        self.refund_service = refund_service or RefundService()

    def process_event(self, event: WebhookEvent, client_ip: Optional[str] = None) -> ServiceResult[Dict[str, Any]]:
        """
        Dispatch a verified webhook event to its handler.

        Events this service does not handle are acknowledged with
        ``handled=False`` so the provider stops retrying them.
        """
        event_type = event.event_type
        with tracer.start_as_current_span("PaymentWebhookService.process_event") as span:
            span.set_attribute("event.type", event_type)
            span.set_attribute("client.ip", client_ip or "")
            self.logger.info(f"Processing payment event {event.event_id} ({event_type})")

            session = event.data or {}
            metadata = session.get("metadata") or {}

            try:
                if metadata.get("type") not in (None, "marketplace_purchase"):
                    result = service_ok({"handled": False})
                elif event_type in CONFIRMATION_EVENTS:
                    if session.get("payment_status", "paid") not in PAID_SESSION_STATES:
                        # Delayed payment methods confirm later with async_payment_succeeded
                        result = service_ok({"handled": False})
                    else:
                        result = self.on_payment_confirmed(session.get("id"), session.get("payment_intent") or "")
                elif event_type in FAILURE_EVENTS:
                    result = self.on_payment_failed(session.get("id"), reason=event_type)
                else:
                    self.logger.info(f"Unhandled payment event type: {event_type}")
                    result = service_ok({"handled": False})
            except Exception as e:
                span.record_exception(e)
                payment_webhooks_total.labels(event_type=event_type, result="error").inc()
                self.logger.error(f"Error processing payment event {event_type}: {str(e)}", exc_info=True)
                PaymentAuditLogger.log_security_event(
                    "webhook_processing_error_internal",
                    client_ip,
                    details=f"Internal error for event {event_type}: {str(e)}",
                )
                raise

            if result.ok:
                result.value.setdefault("handled", True)
            payment_webhooks_total.labels(
                event_type=event_type, result="ok" if result.ok else result.error
            ).inc()
            return result

    @BaseService.log_performance
    def on_payment_confirmed(self, session_id: str, payment_intent_id: str) -> ServiceResult[Dict[str, Any]]:
        """
        Apply a successful payment to the order opened for ``session_id``.

        Returns:
            ServiceResult with ``{"order", "already_processed", "outcome"}``
            where outcome is ``paid``, ``oversold``, ``late_payment`` or
            ``None`` for replays.
        """
        if not session_id:
            return service_err(ErrorCodes.INVALID_INPUT, "session_id is required")

        with tracer.start_as_current_span("payment.confirmed") as span:
            add_span_attributes(span, session_id=session_id)

            with transaction.atomic():
                order = Order.objects.select_for_update().filter(payment_session_id=session_id).first()
                if order is None:
                    return service_err(ErrorCodes.ORDER_NOT_FOUND, f"No order for session {session_id}")

                add_span_attributes(span, order_number=order.order_number)

                if order.status == Order.STATUS_PAYMENT_PENDING:
                    outcome = self._confirm_pending(order, payment_intent_id)
                    if outcome is None:
                        transaction.set_rollback(True)
                        return service_err(
                            ErrorCodes.INVALID_ORDER_STATE, f"Order {order.order_number} could not be confirmed"
                        )
                elif order.status == Order.STATUS_CANCELLED and order.payment_status in (
                    Order.PAYMENT_PENDING,
                    Order.PAYMENT_FAILED,
                ):
                    outcome = "late_payment"
                    Order.objects.filter(pk=order.pk).update(
                        payment_status=Order.PAYMENT_SUCCEEDED,
                        payment_intent_id=payment_intent_id,
                        updated_at=timezone.now(),
                    )
                    order.refresh_from_db()
                else:
                    self.logger.info(f"Payment for order {order.order_number} already processed ({order.status})")
                    return service_ok({"order": order, "already_processed": True, "outcome": None})

            span.set_attribute("payment.outcome", outcome)
            payment_volume_total.labels(currency=order.currency, status="succeeded").inc(float(order.total))
            PaymentAuditLogger.log_payment_success(order.order_number, order.buyer_id, order.total, payment_intent_id)

            if outcome in (OVERSOLD_REASON, "late_payment"):
                reason = OVERSOLD_REASON if outcome == OVERSOLD_REASON else LATE_PAYMENT_REASON
                refund = self.refund_service.refund_order(order, reason=reason)
                if not refund.ok:
                    self.logger.error(
                        f"Refund for order {order.order_number} failed; payment stays succeeded for manual "
                        f"follow-up: {refund.error_detail}"
                    )

            return service_ok({"order": order, "already_processed": False, "outcome": outcome})

    def _confirm_pending(self, order: Order, payment_intent_id: str) -> Optional[str]:
        """Decrement stock and move a locked payment_pending order to paid or cancelled."""
        payment_fields = {"payment_status": Order.PAYMENT_SUCCEEDED, "payment_intent_id": payment_intent_id}

        if inventory.decrement_available(order.listing_id, order.quantity):
            result = self.state_machine.transition(order, Order.STATUS_PAID, **payment_fields)
            outcome = "paid"
        else:
            self.logger.warning(f"Order {order.order_number} oversold; cancelling and refunding")
            result = self.state_machine.transition(
                order,
                Order.STATUS_CANCELLED,
                cancellation_reason=OVERSOLD_REASON,
                **payment_fields,
            )
            outcome = OVERSOLD_REASON

        return outcome if result.ok else None

    @BaseService.log_performance
    def on_payment_failed(self, session_id: str, reason: str = "") -> ServiceResult[Dict[str, Any]]:
        """
        Record a failed or expired checkout. The order's status is left as is;
        only its payment status becomes ``failed``.
        """
        if not session_id:
            return service_err(ErrorCodes.INVALID_INPUT, "session_id is required")

        order = Order.objects.filter(payment_session_id=session_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, f"No order for session {session_id}")

        updated = Order.objects.filter(pk=order.pk, payment_status=Order.PAYMENT_PENDING).update(
            payment_status=Order.PAYMENT_FAILED, updated_at=timezone.now()
        )
        order.refresh_from_db()

        if updated:
            payment_volume_total.labels(currency=order.currency, status="failed").inc(float(order.total))
            PaymentAuditLogger.log_payment_failure(order.buyer_id, order.order_number, order.total, reason)

        return service_ok({"order": order, "already_processed": not updated})

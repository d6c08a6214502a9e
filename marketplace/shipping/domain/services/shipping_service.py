"""
ShippingService - Shipping Coordinator

Drives a paid order through rate quotes, label purchase and carrier tracking
updates. The Shipment and the Order move in lockstep: every carrier-driven
change to one is written in the same transaction as the other.

    rates requested   Shipment rates_fetched    Order paid -> needs_shipping
    label purchased   Shipment label_purchased  Order -> shipped
    TRANSIT           Shipment in_transit       Order -> in_transit
    DELIVERED         Shipment delivered        Order -> delivered
    FAILURE/RETURNED  Shipment exception        Order unchanged
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from infrastructure.container import container
from infrastructure.observability import add_span_attributes, get_tracer
from infrastructure.shipping import Address, CarrierException, ShippingProviderInterface
from marketplace import policy
from marketplace.infra.observability.metrics import (
    carrier_call_duration,
    carrier_calls_total,
    carrier_webhooks_total,
)
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.services.order_state_machine import OrderStateMachine, is_stale_event
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.shipping.domain.models import Shipment
from marketplace.shipping.domain.parcel_presets import PARCEL_PRESETS, resolve_parcel
from marketplace.trust.domain.services.reputation_service import ReputationService
from payment_system.security import PaymentAuditLogger

User = get_user_model()
logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

RATE_STATES = (Order.STATUS_PAID, Order.STATUS_NEEDS_SHIPPING)
LABEL_STATES = (Order.STATUS_NEEDS_SHIPPING, Order.STATUS_LABEL_CREATED)

# Carrier tracking status -> Shipment status
CARRIER_STATUS_MAP = {
    "TRANSIT": Shipment.STATUS_IN_TRANSIT,
    "DELIVERED": Shipment.STATUS_DELIVERED,
    "FAILURE": Shipment.STATUS_EXCEPTION,
    "RETURNED": Shipment.STATUS_EXCEPTION,
}

# Shipment status -> Order status it drives
ORDER_STATUS_FOR_SHIPMENT = {
    Shipment.STATUS_IN_TRANSIT: Order.STATUS_IN_TRANSIT,
    Shipment.STATUS_DELIVERED: Order.STATUS_DELIVERED,
}


class ShippingService(BaseService):
    """
    Service for shipping labels and tracking.

    Responsibilities:
    - Quote carrier rates for a paid order (seller only)
    - Buy the label and mark the order shipped
    - Apply signed carrier tracking webhooks
    """

    def __init__(
        self,
        carrier: Optional[ShippingProviderInterface] = None,
        state_machine: Optional[OrderStateMachine] = None,
        reputation_service: Optional[ReputationService] = None,
    ):
        super().__init__()
        self.carrier = carrier or container.shipping()
        self.state_machine = state_machine or OrderStateMachine()
        self.reputation_service = reputation_service or ReputationService()

    def _call_carrier(self, operation: str, func, *args):
        """Run a carrier call with timing and outcome metrics. CarrierException propagates."""
        start = time.time()
        try:
            result = func(*args)
        except CarrierException:
            carrier_calls_total.labels(operation=operation, status="failed").inc()
            raise
        finally:
            carrier_call_duration.labels(operation=operation).observe(time.time() - start)
        carrier_calls_total.labels(operation=operation, status="succeeded").inc()
        return result

    def _get_seller_order(self, seller, order_id) -> ServiceResult[Order]:
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")
        if order.seller_id != seller.pk:
            return service_err(ErrorCodes.NOT_ORDER_SELLER, "Only the seller can ship this order")
        return service_ok(order)

    @BaseService.log_performance
    def get_rates_for_order(self, seller, order_id, parcel) -> ServiceResult[List[Dict[str, Any]]]:
        """
        Quote carrier rates for shipping an order.

        Args:
            seller: Seller of the order
            order_id: Order to ship (paid or needs_shipping)
            parcel: Preset name or explicit dimensions

        Returns:
            ServiceResult with ``[{rate_id, carrier_service_name, amount, estimated_days}]``
        """
        result = self._get_seller_order(seller, order_id)
        if not result.ok:
            return result
        order = result.value

        if order.status not in RATE_STATES:
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE, f"Cannot quote shipping for an order that is {order.status}"
            )

        saved_address = User.objects.filter(pk=seller.pk).values_list("shipping_address", flat=True).first()
        from_address = Address.from_dict(saved_address or {})
        if from_address.missing_fields():
            return service_err(ErrorCodes.MISSING_SHIP_FROM_ADDRESS, "Save your shipping address before buying labels")

        resolved_parcel = resolve_parcel(parcel)
        if resolved_parcel is None:
            return service_err(ErrorCodes.INVALID_INPUT, "Parcel must be a known preset or positive dimensions")

        to_address = Address.from_dict(order.shipping_address or {})

        try:
            carrier_shipment = self._call_carrier(
                "create_shipment", self.carrier.create_shipment, from_address, to_address, resolved_parcel
            )
        except CarrierException as e:
            self.logger.error(f"Rate quote failed for order {order.order_number}: {e}")
            return service_err(ErrorCodes.CARRIER_ERROR, f"Carrier unavailable: {e}")

        with transaction.atomic():
            Shipment.objects.update_or_create(
                order=order,
                defaults={
                    "from_address": from_address.to_dict(),
                    "to_address": to_address.to_dict(),
                    "parcel": resolved_parcel.to_dict(),
                    "carrier": policy.carrier_name(),
                    "carrier_shipment_id": carrier_shipment.shipment_id,
                    "status": Shipment.STATUS_RATES_FETCHED,
                },
            )

            if order.status == Order.STATUS_PAID:
                transition = self.state_machine.transition(order, Order.STATUS_NEEDS_SHIPPING)
                if not transition.ok:
                    transaction.set_rollback(True)
                    return transition

        self.logger.info(f"Quoted {len(carrier_shipment.rates)} rate(s) for order {order.order_number}")
        return service_ok(
            [
                {
                    "rate_id": rate.rate_id,
                    "carrier_service_name": rate.service_name,
                    "amount": rate.amount,
                    "estimated_days": rate.estimated_days,
                }
                for rate in carrier_shipment.rates
            ]
        )

    @BaseService.log_performance
    def purchase_label(self, seller, order_id, rate_id: str) -> ServiceResult[Dict[str, Any]]:
        """
        Buy the label for a quoted rate and mark the order shipped.

        Nothing is written unless the carrier confirms the purchase.

        Returns:
            ServiceResult with ``{label_url, tracking_number, tracking_url}``
        """
        result = self._get_seller_order(seller, order_id)
        if not result.ok:
            return result
        order = result.value

        if order.status not in LABEL_STATES:
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE, f"Cannot buy a label for an order that is {order.status}"
            )

        if not rate_id:
            return service_err(ErrorCodes.INVALID_INPUT, "rate_id is required")

        shipment = Shipment.objects.filter(order=order).first()
        if shipment is None or not shipment.carrier_shipment_id:
            return service_err(ErrorCodes.SHIPMENT_NOT_FOUND, "Request shipping rates before buying a label")

        try:
            label = self._call_carrier("purchase_label", self.carrier.purchase_label, rate_id)
        except CarrierException as e:
            self.logger.error(f"Label purchase failed for order {order.order_number}: {e}")
            return service_err(ErrorCodes.CARRIER_ERROR, f"Carrier unavailable: {e}")

        now = timezone.now()
        with transaction.atomic():
            transition = self.state_machine.transition(order, Order.STATUS_SHIPPED, shipped_at=now)
            if not transition.ok:
                transaction.set_rollback(True)
                self.logger.error(
                    f"Label {label.transaction_id} bought for order {order.order_number} "
                    f"but the order moved on; void it with the carrier"
                )
                return transition

            shipment.carrier_rate_id = rate_id
            shipment.carrier_transaction_id = label.transaction_id
            shipment.tracking_number = label.tracking_number
            shipment.tracking_url = label.tracking_url
            shipment.label_url = label.label_url
            shipment.status = Shipment.STATUS_LABEL_PURCHASED
            shipment.purchased_at = now
            shipment.save()

        self.logger.info(f"Label {label.tracking_number} purchased for order {order.order_number}")
        return service_ok(
            {
                "label_url": label.label_url,
                "tracking_number": label.tracking_number,
                "tracking_url": label.tracking_url,
            }
        )

    @BaseService.log_performance
    def on_carrier_webhook(
        self, raw_payload: bytes, signature: Optional[str], client_ip: Optional[str] = None
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Apply a carrier tracking update.

        The signature is checked against the raw bytes before anything is
        parsed; a bad signature changes nothing. Repeated and out-of-order
        updates are acknowledged without effect.

        Returns:
            ServiceResult with ``{"applied": bool}`` (plus ``"status"`` when
            applied), or ``invalid_signature``
        """
        with tracer.start_as_current_span("carrier.webhook") as span:
            if not self.carrier.verify_webhook(raw_payload, signature):
                carrier_webhooks_total.labels(result="rejected").inc()
                PaymentAuditLogger.log_security_event(
                    "carrier_webhook_signature_invalid",
                    client_ip,
                    details={"signature_present": bool(signature)},
                )
                return service_err(ErrorCodes.INVALID_SIGNATURE, "Invalid webhook signature")

            try:
                event = json.loads(raw_payload)
            except ValueError:
                carrier_webhooks_total.labels(result="malformed").inc()
                return service_err(ErrorCodes.INVALID_INPUT, "Webhook body is not valid JSON")

            if not isinstance(event, dict) or event.get("event") != "track_updated":
                carrier_webhooks_total.labels(result="ignored").inc()
                return service_ok({"applied": False})

            data = event.get("data")
            data = data if isinstance(data, dict) else {}
            tracking_status = data.get("tracking_status")
            tracking_number = data.get("tracking_number")
            carrier_status = tracking_status.get("status") if isinstance(tracking_status, dict) else None

            if not isinstance(tracking_number, str) or not isinstance(carrier_status, str):
                carrier_webhooks_total.labels(result="ignored").inc()
                return service_ok({"applied": False})

            shipment_status = CARRIER_STATUS_MAP.get(carrier_status)
            add_span_attributes(span, tracking_number=tracking_number, carrier_status=carrier_status)

            if not tracking_number or shipment_status is None:
                carrier_webhooks_total.labels(result="ignored").inc()
                return service_ok({"applied": False})

            applied, order = self._apply_tracking_update(tracking_number, shipment_status)
            carrier_webhooks_total.labels(result="applied" if applied else "ignored").inc()

            if applied and shipment_status == Shipment.STATUS_DELIVERED:
                self.reputation_service.record_first_sale(order.seller_id)

            if not applied:
                return service_ok({"applied": False})
            return service_ok({"applied": True, "status": shipment_status})

    def _apply_tracking_update(self, tracking_number: str, shipment_status: str):
        """Returns (applied, order)."""
        with transaction.atomic():
            shipment = (
                Shipment.objects.select_for_update()
                .select_related("order")
                .filter(tracking_number=tracking_number)
                .first()
            )
            if shipment is None:
                self.logger.warning(f"Tracking update for unknown tracking number {tracking_number}")
                return False, None

            order = shipment.order
            now = timezone.now()

            if shipment_status == Shipment.STATUS_EXCEPTION:
                if shipment.status in (Shipment.STATUS_DELIVERED, Shipment.STATUS_EXCEPTION):
                    return False, order
                Shipment.objects.filter(pk=shipment.pk).update(
                    status=shipment_status, last_webhook_at=now, updated_at=now
                )
                self.logger.warning(f"Carrier reported an exception for order {order.order_number}")
                return True, order

            target = ORDER_STATUS_FOR_SHIPMENT[shipment_status]
            if is_stale_event(order.status, target):
                self.logger.info(f"Ignoring stale tracking update {shipment_status} for order {order.order_number}")
                return False, order

            transition = self.state_machine.transition(order, target)
            if not transition.ok:
                return False, order

            Shipment.objects.filter(pk=shipment.pk).update(status=shipment_status, last_webhook_at=now, updated_at=now)
            return True, transition.value

    def get_shipment(self, user, order_id) -> ServiceResult[Shipment]:
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")
        if user.pk not in (order.buyer_id, order.seller_id):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not part of this order")

        shipment = Shipment.objects.filter(order=order).first()
        if shipment is None:
            return service_err(ErrorCodes.SHIPMENT_NOT_FOUND, "No shipment for this order yet")
        return service_ok(shipment)

    def parcel_presets(self) -> ServiceResult[Dict[str, Dict[str, Any]]]:
        return service_ok(PARCEL_PRESETS)

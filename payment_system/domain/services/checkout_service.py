"""
CheckoutService - Checkout Orchestrator

Prices a purchase, opens a hosted checkout session with the payment provider
and records the Order in ``payment_pending``. Fees are computed here, once,
and stored on the Order; nothing later recomputes them.

Inventory is not touched at checkout. Units are taken when the payment is
confirmed, so abandoned sessions never hold stock.
"""

import logging
import secrets
import string
import time
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction

from infrastructure.container import container
from infrastructure.observability import add_span_attributes, get_tracer
from infrastructure.payments import LineItem, PaymentException, PaymentProviderInterface
from infrastructure.shipping import Address
from marketplace import policy
from marketplace.infra.observability.metrics import order_value, orders_placed_total
from marketplace.listings.domain.models import Listing
from marketplace.offers.domain.models import Offer
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.services.fee_calculator import compute_fees, parse_money, to_cents
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.trust.domain.services.block_service import BlockService
from payment_system.infra.observability.metrics import checkout_sessions_total, payment_provider_latency_seconds
from payment_system.security import PaymentAuditLogger
from utils.rbac import has_marketplace_entitlement

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

BASE36_DIGITS = string.digits + string.ascii_uppercase


def _base36(number: int) -> str:
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits)) or "0"


def generate_order_number() -> str:
    """``<prefix>-<base36 millisecond timestamp>-<6 random uppercase letters>``"""
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(string.ascii_uppercase) for _ in range(6))
    return f"{policy.order_number_prefix()}-{timestamp}-{suffix}"


class CheckoutService(BaseService):
    """
    Service for starting a purchase.

    Responsibilities:
    - Validate the purchase (listing state, buyer, quantity, shipping)
    - Resolve the unit price (accepted offer or listing price)
    - Open the provider checkout session and persist the Order with it

    Dependencies:
    - PaymentProviderInterface: hosted checkout sessions
    - BlockService: sellers can refuse buyers they blocked
    """

    def __init__(
        self,
        payment_provider: Optional[PaymentProviderInterface] = None,
        block_service: Optional[BlockService] = None,
    ):
        super().__init__()
        self.payment_provider = payment_provider or container.payment()
        self.block_service = block_service or BlockService()

    @BaseService.log_performance
    def initiate_checkout(
        self,
        buyer,
        listing_id,
        quantity,
        shipping_address: Dict[str, Any],
        shipping_cost,
        offer_id=None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Open a checkout session for a listing.

        Args:
            buyer: Purchasing user
            listing_id: Listing being bought
            quantity: Units to buy (1..quantity_available)
            shipping_address: Buyer's address (name, street1, city, state, zip, ...)
            shipping_cost: Shipping charged to the buyer (>= 0)
            offer_id: Accepted offer whose amount replaces the listing price

        Returns:
            ServiceResult with ``{"checkout_url", "order_id", "order_number"}``,
            or ``payment_provider_error`` (retryable) when the provider call
            fails, in which case no Order exists.
        """
        with tracer.start_as_current_span("checkout.initiate") as span:
            add_span_attributes(span, listing_id=listing_id, buyer_id=buyer.pk)

            if not has_marketplace_entitlement(buyer):
                return service_err(ErrorCodes.NOT_ENTITLED, "Your plan does not include marketplace access")

            listing = Listing.objects.select_related("card").filter(pk=listing_id).first()
            if listing is None:
                return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")

            if listing.status != Listing.STATUS_ACTIVE:
                return service_err(ErrorCodes.LISTING_NOT_ACTIVE, "This listing is no longer active")

            if listing.seller_id == buyer.pk:
                return service_err(ErrorCodes.OWN_LISTING, "You cannot purchase your own listing")

            if self.block_service.is_blocked(listing.seller_id, buyer.pk):
                return service_err(ErrorCodes.BLOCKED, "The seller is not selling to you")

            try:
                quantity = int(quantity)
            except (TypeError, ValueError):
                return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be a whole number")
            if quantity < 1:
                return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be at least 1")
            if quantity > listing.quantity_available:
                return service_err(
                    ErrorCodes.INSUFFICIENT_QUANTITY, f"Only {listing.quantity_available} unit(s) available"
                )

            shipping = parse_money(shipping_cost)
            if shipping is None or shipping < 0:
                return service_err(ErrorCodes.INVALID_AMOUNT, "Shipping cost cannot be negative")

            if not isinstance(shipping_address, dict):
                return service_err(ErrorCodes.INVALID_INPUT, "Shipping address is required")
            address = Address.from_dict(shipping_address)
            missing = address.missing_fields()
            if missing:
                return service_err(ErrorCodes.INVALID_INPUT, f"Shipping address is missing: {', '.join(missing)}")

            offer = None
            unit_price = listing.price
            if offer_id:
                offer = Offer.objects.filter(
                    pk=offer_id, listing=listing, buyer=buyer, status=Offer.STATUS_ACCEPTED
                ).first()
                if offer is not None:
                    unit_price = offer.amount
                else:
                    self.logger.info(f"Offer {offer_id} is not an accepted offer of {buyer.pk}; using listing price")

            item_subtotal = to_cents(unit_price * quantity)
            fees = compute_fees(item_subtotal, shipping)
            order_number = generate_order_number()
            currency = policy.currency()

            card_name = listing.card.name
            if listing.card.set_name:
                card_name = f"{card_name} - {listing.card.set_name}"

            line_items = [
                LineItem(
                    name=card_name,
                    unit_amount=unit_price,
                    quantity=quantity,
                    description=f"Condition: {listing.condition_snapshot}" if listing.condition_snapshot else "",
                )
            ]
            if shipping > 0:
                line_items.append(LineItem(name="Shipping", unit_amount=shipping))

            metadata = {
                "type": "marketplace_purchase",
                "order_number": order_number,
                "listing_id": listing.pk,
                "buyer_id": buyer.pk,
                "seller_id": listing.seller_id,
                "offer_id": offer.pk if offer else "",
                "quantity": quantity,
                "item_price": unit_price,
                "shipping_cost": shipping,
                "platform_fee": fees.platform_fee,
                "processor_fee": fees.processor_fee,
                "total": fees.total,
                "seller_net": fees.seller_net,
            }

            frontend_url = getattr(settings, "FRONTEND_URL", "http://localhost:5000")

            # No transaction is held open across the provider call
            try:
                with payment_provider_latency_seconds.labels(operation="create_checkout_session").time():
                    session = self.payment_provider.create_checkout_session(
                        line_items=line_items,
                        currency=currency,
                        success_url=f"{frontend_url}/activity?tab=purchases&order={order_number}",
                        cancel_url=f"{frontend_url}/marketplace/{listing.pk}",
                        metadata=metadata,
                        customer_email=buyer.email or None,
                    )
            except PaymentException as e:
                span.record_exception(e)
                checkout_sessions_total.labels(status="failed").inc()
                PaymentAuditLogger.log_payment_failure(buyer.pk, order_number, fees.total, str(e))
                return service_err(ErrorCodes.PAYMENT_PROVIDER_ERROR, f"Payment provider unavailable: {e}")

            with transaction.atomic():
                order = Order.objects.create(
                    order_number=order_number,
                    listing=listing,
                    offer=offer,
                    buyer=buyer,
                    seller_id=listing.seller_id,
                    quantity=quantity,
                    item_price=unit_price,
                    shipping_cost=shipping,
                    platform_fee=fees.platform_fee,
                    processor_fee=fees.processor_fee,
                    total=fees.total,
                    seller_net=fees.seller_net,
                    currency=currency,
                    shipping_address=address.to_dict(),
                    payment_session_id=session.session_id,
                    status=Order.STATUS_PAYMENT_PENDING,
                    payment_status=Order.PAYMENT_PENDING,
                )

            checkout_sessions_total.labels(status="created").inc()
            orders_placed_total.labels(status=Order.STATUS_PAYMENT_PENDING).inc()
            order_value.observe(float(fees.total))
            PaymentAuditLogger.log_checkout_started(buyer.pk, order_number, fees.total, session.session_id)
            add_span_attributes(span, order_number=order_number, session_id=session.session_id)

            return service_ok(
                {
                    "checkout_url": session.url,
                    "order_id": order.pk,
                    "order_number": order.order_number,
                }
            )

"""
OrderService - Order reads, cancellation and completion

Orders are created by checkout and moved forward by payment and carrier
webhooks. This service covers what buyers, sellers and admins do directly:
look orders up, cancel before shipment and confirm receipt.
"""

import logging
from typing import List, Optional

from django.db import transaction

from marketplace.listings.domain.services import inventory
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.services.order_state_machine import CANCELLABLE_STATES, OrderStateMachine
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from payment_system.domain.services.refund_service import RefundService
from utils.rbac import is_admin

logger = logging.getLogger(__name__)


class OrderService(BaseService):
    """
    Service for managing order lifecycle.
    """

    def __init__(
        self,
        state_machine: Optional[OrderStateMachine] = None,
        refund_service: Optional[RefundService] = None,
    ):
        """
        Initialize OrderService.

        Args:
            state_machine: Applies status transitions (injected)
            refund_service: Refunds paid orders on cancellation (injected)
        """
        super().__init__()
        self.state_machine = state_machine or OrderStateMachine()
        self.refund_service = refund_service or RefundService()

    def get_order(self, user, order_id) -> ServiceResult[Order]:
        """Order details for its buyer, its seller or an admin."""
        order = Order.objects.select_related("listing", "listing__card", "buyer", "seller").filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")

        if user.pk not in (order.buyer_id, order.seller_id) and not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You are not part of this order")
        return service_ok(order)

    def list_purchases(self, buyer, status: Optional[str] = None) -> ServiceResult[List[Order]]:
        orders = Order.objects.select_related("listing__card", "seller").filter(buyer=buyer)
        if status:
            orders = orders.filter(status=status)
        return service_ok(list(orders))

    def list_sales(self, seller, status: Optional[str] = None) -> ServiceResult[List[Order]]:
        orders = Order.objects.select_related("listing__card", "buyer").filter(seller=seller)
        if status:
            orders = orders.filter(status=status)
        return service_ok(list(orders))

    @BaseService.log_performance
    def cancel_order(self, user, order_id, reason: str = "") -> ServiceResult[Order]:
        """
        Cancel an order before it ships (seller or admin).

        A paid order has its units returned to the listing and is refunded
        once the cancellation is committed. A failed refund does not undo the
        cancellation; it is logged for manual follow-up.

        Args:
            user: Seller of the order, or an admin
            order_id: Order to cancel
            reason: Cancellation reason stored on the order

        Returns:
            ServiceResult with the cancelled Order
        """
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")

        if order.seller_id != user.pk and not is_admin(user):
            return service_err(ErrorCodes.NOT_ORDER_SELLER, "Only the seller or an admin can cancel this order")

        if order.status not in CANCELLABLE_STATES:
            return service_err(ErrorCodes.INVALID_ORDER_STATE, f"Cannot cancel an order that is {order.status}")

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            was_paid = order.payment_status == Order.PAYMENT_SUCCEEDED

            result = self.state_machine.transition(
                order,
                Order.STATUS_CANCELLED,
                cancelled_by=user,
                cancellation_reason=reason or "",
            )
            if not result.ok:
                return result

            if was_paid:
                inventory.restock(order.listing_id, order.quantity)

        self.logger.info(f"Cancelled order {order.order_number} by user {user.pk}: {reason}")

        if was_paid:
            refund = self.refund_service.refund_order(order, reason="cancelled")
            if not refund.ok:
                self.logger.error(
                    f"Order {order.order_number} cancelled but refund failed; needs manual follow-up: "
                    f"{refund.error_detail}"
                )

        return service_ok(order)

    @BaseService.log_performance
    def complete_order(self, user, order_id) -> ServiceResult[Order]:
        """Buyer (or an admin) confirms receipt of a delivered order."""
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")

        if order.buyer_id != user.pk and not is_admin(user):
            return service_err(ErrorCodes.NOT_ORDER_BUYER, "Only the buyer can confirm receipt")

        if order.status != Order.STATUS_DELIVERED:
            return service_err(ErrorCodes.INVALID_ORDER_STATE, "Only delivered orders can be completed")

        return self.state_machine.transition(order, Order.STATUS_COMPLETE)

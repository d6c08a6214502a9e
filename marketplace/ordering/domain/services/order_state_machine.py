"""
Order State Machine

Single authority for Order.status changes. Every transition is applied as a
conditional UPDATE on the expected current status, so a concurrent writer
that got there first makes the second attempt a no-op instead of a lost
update.

    payment_pending -> paid                      (payment webhook)
    paid            -> needs_shipping            (seller requests rates)
    needs_shipping  -> label_created | shipped   (label purchased)
    label_created   -> shipped
    shipped         -> in_transit | delivered    (carrier webhook)
    in_transit      -> delivered
    delivered       -> complete                  (buyer confirms, or admin)
    payment_pending | paid | needs_shipping | label_created -> cancelled
"""

import logging
from typing import Optional

from django.utils import timezone

from marketplace.infra.observability.metrics import order_transitions_total
from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

logger = logging.getLogger(__name__)

CANCELLABLE_STATES = frozenset(
    {
        Order.STATUS_PAYMENT_PENDING,
        Order.STATUS_PAID,
        Order.STATUS_NEEDS_SHIPPING,
        Order.STATUS_LABEL_CREATED,
    }
)

ALLOWED_TRANSITIONS = {
    Order.STATUS_PAYMENT_PENDING: {Order.STATUS_PAID, Order.STATUS_CANCELLED},
    Order.STATUS_PAID: {Order.STATUS_NEEDS_SHIPPING, Order.STATUS_CANCELLED},
    Order.STATUS_NEEDS_SHIPPING: {Order.STATUS_LABEL_CREATED, Order.STATUS_SHIPPED, Order.STATUS_CANCELLED},
    Order.STATUS_LABEL_CREATED: {Order.STATUS_SHIPPED, Order.STATUS_CANCELLED},
    Order.STATUS_SHIPPED: {Order.STATUS_IN_TRANSIT, Order.STATUS_DELIVERED},
    Order.STATUS_IN_TRANSIT: {Order.STATUS_DELIVERED},
    Order.STATUS_DELIVERED: {Order.STATUS_COMPLETE},
    Order.STATUS_COMPLETE: set(),
    Order.STATUS_CANCELLED: set(),
}

# Progress order of the forward path; cancelled sits outside it.
STATE_RANK = {
    Order.STATUS_PAYMENT_PENDING: 0,
    Order.STATUS_PAID: 1,
    Order.STATUS_NEEDS_SHIPPING: 2,
    Order.STATUS_LABEL_CREATED: 3,
    Order.STATUS_SHIPPED: 4,
    Order.STATUS_IN_TRANSIT: 5,
    Order.STATUS_DELIVERED: 6,
    Order.STATUS_COMPLETE: 7,
}

TERMINAL_STATES = frozenset({Order.STATUS_COMPLETE, Order.STATUS_CANCELLED})

# Timestamp stamped alongside a transition into the given state.
TRANSITION_TIMESTAMPS = {
    Order.STATUS_PAID: "paid_at",
    Order.STATUS_SHIPPED: "shipped_at",
    Order.STATUS_DELIVERED: "delivered_at",
    Order.STATUS_COMPLETE: "completed_at",
    Order.STATUS_CANCELLED: "cancelled_at",
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def is_stale_event(current: str, target: str) -> bool:
    """
    True when ``target`` does not move the order forward: a repeat of the
    current state, a step backwards, or anything after a terminal state.
    """
    if current in TERMINAL_STATES:
        return True
    if target == Order.STATUS_CANCELLED:
        return False
    return STATE_RANK.get(target, -1) <= STATE_RANK.get(current, -1)


class OrderStateMachine(BaseService):
    """
    Applies order status transitions.

    Usage:
        result = OrderStateMachine().transition(order, Order.STATUS_SHIPPED)
        if not result.ok:
            ...  # invalid_order_state: disallowed, stale, or lost a race
    """

    @BaseService.log_performance
    def transition(
        self,
        order: Order,
        target: str,
        expected: Optional[str] = None,
        **fields,
    ) -> ServiceResult[Order]:
        """
        Move ``order`` to ``target``.

        Args:
            order: Order instance (its status is the expected current status
                   unless ``expected`` is given)
            target: Desired status
            expected: Status the row must currently have
            **fields: Extra columns written in the same UPDATE

        Returns:
            ServiceResult with the refreshed order, or ``invalid_order_state``
            when the transition is not allowed or the row changed underneath.
        """
        current = expected or order.status

        if not can_transition(current, target):
            if is_stale_event(current, target):
                self.logger.info(f"Ignoring stale transition {current} -> {target} for order {order.order_number}")
            else:
                self.logger.warning(
                    f"Rejected transition {current} -> {target} for order {order.order_number}"
                )
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE,
                f"Order {order.order_number} cannot move from {current} to {target}",
            )

        now = timezone.now()
        values = {"status": target, "updated_at": now}
        timestamp_field = TRANSITION_TIMESTAMPS.get(target)
        if timestamp_field and timestamp_field not in fields:
            values[timestamp_field] = now
        values.update(fields)

        updated = Order.objects.filter(pk=order.pk, status=current).update(**values)
        if not updated:
            self.logger.warning(
                f"Order {order.order_number} changed concurrently; {current} -> {target} not applied"
            )
            return service_err(
                ErrorCodes.INVALID_ORDER_STATE,
                f"Order {order.order_number} is no longer {current}",
            )

        order.refresh_from_db()
        order_transitions_total.labels(to_status=target).inc()
        self.logger.info(f"Order {order.order_number}: {current} -> {target}")
        return service_ok(order)

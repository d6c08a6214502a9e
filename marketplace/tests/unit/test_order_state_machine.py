import pytest
from django.test import TestCase

from marketplace.models import Order
from marketplace.ordering.domain.services.order_state_machine import (
    ALLOWED_TRANSITIONS,
    CANCELLABLE_STATES,
    OrderStateMachine,
    can_transition,
    is_stale_event,
)
from marketplace.services.base import ErrorCodes
from marketplace.tests.factories import OrderFactory


@pytest.mark.unit
class TestOrderTransitionsUnit:
    def test_forward_path(self):
        path = [
            Order.STATUS_PAYMENT_PENDING,
            Order.STATUS_PAID,
            Order.STATUS_NEEDS_SHIPPING,
            Order.STATUS_LABEL_CREATED,
            Order.STATUS_SHIPPED,
            Order.STATUS_IN_TRANSIT,
            Order.STATUS_DELIVERED,
            Order.STATUS_COMPLETE,
        ]
        for current, target in zip(path, path[1:]):
            assert can_transition(current, target), f"{current} -> {target}"

    def test_shortcuts(self):
        assert can_transition(Order.STATUS_NEEDS_SHIPPING, Order.STATUS_SHIPPED)
        assert can_transition(Order.STATUS_SHIPPED, Order.STATUS_DELIVERED)

    def test_cancellation_only_before_shipment(self):
        for state in ALLOWED_TRANSITIONS:
            assert can_transition(state, Order.STATUS_CANCELLED) == (state in CANCELLABLE_STATES)

    def test_terminal_states_have_no_exits(self):
        for target in ALLOWED_TRANSITIONS:
            assert not can_transition(Order.STATUS_COMPLETE, target)
            assert not can_transition(Order.STATUS_CANCELLED, target)

    def test_no_skipping_payment(self):
        assert not can_transition(Order.STATUS_PAYMENT_PENDING, Order.STATUS_SHIPPED)
        assert not can_transition(Order.STATUS_PAID, Order.STATUS_DELIVERED)

    def test_stale_events(self):
        # repeats and regressions
        assert is_stale_event(Order.STATUS_IN_TRANSIT, Order.STATUS_IN_TRANSIT)
        assert is_stale_event(Order.STATUS_DELIVERED, Order.STATUS_IN_TRANSIT)
        # anything after a terminal state
        assert is_stale_event(Order.STATUS_CANCELLED, Order.STATUS_PAID)
        assert is_stale_event(Order.STATUS_COMPLETE, Order.STATUS_DELIVERED)

    def test_forward_events_are_not_stale(self):
        assert not is_stale_event(Order.STATUS_SHIPPED, Order.STATUS_IN_TRANSIT)
        assert not is_stale_event(Order.STATUS_SHIPPED, Order.STATUS_DELIVERED)
        assert not is_stale_event(Order.STATUS_PAID, Order.STATUS_CANCELLED)


class OrderStateMachineTest(TestCase):
    def setUp(self):
        self.machine = OrderStateMachine()

    def test_transition_stamps_timestamp(self):
        order = OrderFactory()
        result = self.machine.transition(order, Order.STATUS_PAID)

        self.assertTrue(result.ok)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAID)
        self.assertIsNotNone(order.paid_at)

    def test_transition_writes_extra_fields(self):
        order = OrderFactory()
        result = self.machine.transition(
            order, Order.STATUS_PAID, payment_status=Order.PAYMENT_SUCCEEDED, payment_intent_id="pi_extra"
        )

        self.assertTrue(result.ok)
        self.assertEqual(result.value.payment_intent_id, "pi_extra")
        self.assertEqual(result.value.payment_status, Order.PAYMENT_SUCCEEDED)

    def test_disallowed_transition(self):
        order = OrderFactory()
        result = self.machine.transition(order, Order.STATUS_DELIVERED)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAYMENT_PENDING)

    def test_lost_race_is_not_applied(self):
        order = OrderFactory()
        stale_copy = Order.objects.get(pk=order.pk)

        self.assertTrue(self.machine.transition(order, Order.STATUS_CANCELLED).ok)

        # stale_copy still believes the order is payment_pending
        result = self.machine.transition(stale_copy, Order.STATUS_PAID)
        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertIsNone(order.paid_at)

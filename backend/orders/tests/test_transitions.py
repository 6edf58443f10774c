"""
Order State Machine Tests

These tests verify the transition table, the creator rule for drafts, the
typed state view and the version-guarded write that turns concurrent staff
actions into StaleState instead of silently merged intents.
"""
import itertools
from unittest.mock import patch

import pytest

from orders.exceptions import InvalidTransition, NotFound, StaleState, ValidationError
from orders.models import Order
from orders.services import (
    CancellationService,
    DraftService,
    HoldService,
    OrderService,
    OrderTransitionService,
)
from orders.states import Cancelled, Completed, Confirmed, Draft, Held, Pending, Preparing, Ready

Status = Order.OrderStatus

ALLOWED = {
    (Status.CREATING, Status.PENDING),
    (Status.CREATING, Status.CONFIRMED),
    (Status.PENDING, Status.CONFIRMED),
    (Status.PENDING, Status.CANCELLED),
    (Status.CONFIRMED, Status.PREPARING),
    (Status.CONFIRMED, Status.CANCELLED),
    (Status.CONFIRMED, Status.HOLD),
    (Status.PREPARING, Status.READY),
    (Status.PREPARING, Status.CANCELLED),
    (Status.PREPARING, Status.HOLD),
    (Status.READY, Status.COMPLETED),
    (Status.READY, Status.CANCELLED),
    (Status.READY, Status.HOLD),
    (Status.HOLD, Status.PENDING),
}


@pytest.mark.django_db
class TestTransitionTable:
    """Every (source, target) pair against the table"""

    @pytest.mark.parametrize(
        "source,target", list(itertools.product(Status.values, Status.values))
    )
    def test_pair_matches_table(self, source, target):
        """
        CRITICAL: A transition succeeds exactly when the table lists it

        Drafts use the creator that makes the edge legal so the pair itself is tested.
        """
        creator = (
            Order.OrderCreator.CUSTOMER
            if (source, target) == (Status.CREATING, Status.PENDING)
            else Order.OrderCreator.STAFF
        )
        order = Order.objects.create(status=source, order_creator=creator)

        if (source, target) in ALLOWED:
            OrderTransitionService.transition(order, target)
            order.refresh_from_db()
            assert order.status == target
            assert order.version == 2
        else:
            with pytest.raises(InvalidTransition) as exc_info:
                OrderTransitionService.transition(order, target)
            assert exc_info.value.source == source
            assert exc_info.value.target == target
            order.refresh_from_db()
            assert order.status == source
            assert order.version == 1

    def test_terminal_statuses_have_no_exits(self):
        assert OrderTransitionService.VALID_STATUS_TRANSITIONS[Status.COMPLETED] == []
        assert OrderTransitionService.VALID_STATUS_TRANSITIONS[Status.CANCELLED] == []

    def test_customer_draft_cannot_skip_verification(self):
        """Scenario: a CUSTOMER draft tries to go straight to CONFIRMED"""
        order = Order.objects.create(status=Status.CREATING, order_creator=Order.OrderCreator.CUSTOMER)

        with pytest.raises(InvalidTransition):
            OrderTransitionService.transition(order, Status.CONFIRMED)

    def test_staff_draft_cannot_go_to_pending(self):
        order = Order.objects.create(status=Status.CREATING, order_creator=Order.OrderCreator.STAFF)

        with pytest.raises(InvalidTransition):
            OrderTransitionService.transition(order, Status.PENDING)


@pytest.mark.django_db
class TestGuardedWrites:
    """Optimistic concurrency on the order row"""

    def test_second_writer_with_old_snapshot_gets_stale_state(self, make_staff_order):
        """
        CRITICAL: Two terminals act on the same snapshot; only the first wins

        Scenario: terminal A moves the order to PREPARING, terminal B (still
        holding the CONFIRMED snapshot) tries to cancel it.
        Expected: B gets StaleState, the order stays PREPARING.
        """
        order = make_staff_order()
        snapshot_a = Order.objects.get(pk=order.pk)
        snapshot_b = Order.objects.get(pk=order.pk)

        OrderTransitionService.transition(snapshot_a, Status.PREPARING)

        with pytest.raises(StaleState) as exc_info:
            OrderTransitionService.transition(snapshot_b, Status.CANCELLED)

        assert exc_info.value.expected == Status.CONFIRMED
        assert exc_info.value.actual == Status.PREPARING
        order.refresh_from_db()
        assert order.status == Status.PREPARING
        assert order.cancel_reason is None

    def test_same_status_but_newer_version_is_stale(self, make_staff_order):
        """A write that kept the status still invalidates older snapshots"""
        order = make_staff_order()
        stale = Order.objects.get(pk=order.pk)

        OrderTransitionService.guarded_update(order, customer_table="7")

        with pytest.raises(StaleState):
            OrderTransitionService.transition(stale, Status.PREPARING)

    def test_vanished_row_is_not_found(self, make_staff_order):
        order = make_staff_order()
        snapshot = Order.objects.get(pk=order.pk)
        Order.objects.filter(pk=order.pk).delete()

        with pytest.raises(NotFound):
            OrderTransitionService.transition(snapshot, Status.PREPARING)

    def test_successful_write_refreshes_instance(self, make_staff_order):
        order = make_staff_order()

        OrderTransitionService.transition(order, Status.PREPARING)

        assert order.status == Status.PREPARING
        assert order.version == 2


@pytest.mark.django_db
class TestStatusProgression:
    """OrderService.update_status"""

    def test_full_kitchen_progression(self, make_staff_order, advance):
        order = make_staff_order()

        order = advance(order, Status.COMPLETED)

        assert order.status == Status.COMPLETED
        assert order.completed_at is not None

    def test_completing_unpaid_order_marks_it_paid(self, make_staff_order, advance):
        """Completing an order records the payment that must have happened at the counter"""
        order = make_staff_order()
        assert order.payment_status == Order.PaymentStatus.PENDING

        order = advance(order, Status.COMPLETED)

        assert order.payment_status == Order.PaymentStatus.SUCCESS
        assert order.paid_at is not None

    def test_completing_paid_order_keeps_paid_at(self, make_staff_order, advance):
        order = make_staff_order(payment_status="SUCCESS")
        paid_at = order.paid_at

        order = advance(order, Status.COMPLETED)

        assert order.paid_at == paid_at

    @pytest.mark.parametrize("target", [Status.HOLD, Status.CANCELLED, Status.PENDING, Status.CREATING])
    def test_non_progression_target_is_validation_error(self, make_staff_order, target):
        order = make_staff_order()

        with pytest.raises(ValidationError):
            OrderService.update_status(order.id, target)

    def test_skipping_a_step_is_invalid(self, make_staff_order):
        order = make_staff_order()

        with pytest.raises(InvalidTransition):
            OrderService.update_status(order.id, Status.READY)

    def test_draft_cannot_be_confirmed_through_progression(self, db):
        """
        CRITICAL: Drafts leave CREATING only through finalize

        Scenario: a staff terminal's empty cart is pushed to CONFIRMED with
        update_status instead of finalize_draft.
        Expected: InvalidTransition; the draft keeps its status, session and
        has no confirmation stamp.
        """
        draft = DraftService.create_or_update_draft(
            {"order_creator": "STAFF", "order_creator_name": "Alice", "items": []}
        )

        with pytest.raises(InvalidTransition) as exc_info:
            OrderService.update_status(draft.id, Status.CONFIRMED)

        assert exc_info.value.source == Status.CREATING
        draft.refresh_from_db()
        assert draft.status == Status.CREATING
        assert draft.session_key == "STAFF:Alice"
        assert draft.confirmed_at is None
        assert draft.version == 1

    def test_unknown_order_is_not_found(self, db):
        with pytest.raises(NotFound):
            OrderService.update_status("00000000-0000-0000-0000-000000000000", Status.PREPARING)

    def test_malformed_id_is_not_found(self, db):
        with pytest.raises(NotFound):
            OrderService.get_order("not-a-uuid")


@pytest.mark.django_db
class TestConflictingStaffActions:
    """Mutually exclusive service calls racing on one order"""

    def test_verify_and_reject_race(self, make_customer_order):
        """
        CRITICAL: A pending order is either verified or rejected, never both

        Scenario: two terminals read the PENDING order; the first verifies it,
        the second rejects from its earlier read.
        Expected: the reject gets StaleState, the order stays CONFIRMED.
        """
        order = make_customer_order()
        seen_by_second_terminal = OrderService.get_order(order.id)

        OrderService.verify_order(order.id, "staff-1", "Alice")

        with patch.object(OrderService, "get_order", return_value=seen_by_second_terminal):
            with pytest.raises(StaleState):
                OrderService.reject_order(order.id, "Out of milk", "staff-2")

        order.refresh_from_db()
        assert order.status == Status.CONFIRMED
        assert order.confirmed_by_name == "Alice"
        assert order.cancel_reason is None

    def test_hold_and_cancel_race(self, make_staff_order):
        """
        Scenario: one terminal holds the order while another cancels it from
        an earlier read.
        Expected: the cancel gets StaleState, the order stays on hold.
        """
        order = make_staff_order()
        seen_by_second_terminal = OrderService.get_order(order.id)

        HoldService.hold_order(order.id, "staff-1", "Table 2")

        with patch.object(OrderService, "get_order", return_value=seen_by_second_terminal):
            with pytest.raises(StaleState):
                CancellationService.cancel_order(
                    order.id, {"reason": "Walked out", "reason_type": "CUSTOMER_REQUEST"}, "staff-2"
                )

        order.refresh_from_db()
        assert order.status == Status.HOLD
        assert order.hold_name == "Table 2"
        assert order.cancelled_at is None


@pytest.mark.django_db
class TestTypedState:
    """Order.state exposes one dataclass per status"""

    def test_state_per_status(self, make_staff_order, make_customer_order, staff_draft, advance):
        assert isinstance(staff_draft.state, Draft)
        assert staff_draft.state.session_key == "STAFF:Alice"

        assert isinstance(make_customer_order().state, Pending)

        order = make_staff_order()
        assert isinstance(order.state, Confirmed)
        assert order.state.confirmed_by_name == "Alice"

        order = advance(order, Status.PREPARING)
        assert isinstance(order.state, Preparing)
        order = advance(order, Status.READY)
        assert isinstance(order.state, Ready)
        order = advance(order, Status.COMPLETED)
        assert isinstance(order.state, Completed)
        assert order.state.completed_at == order.completed_at

    def test_held_and_cancelled_states_carry_their_fields(self):
        held = Order(status=Status.HOLD, hold_name="Table 4", held_by_id="s1", held_by_name="Bob")
        assert held.state == Held(hold_name="Table 4", held_by_id="s1", held_by_name="Bob", held_at=None)

        cancelled = Order(status=Status.CANCELLED, cancel_reason="Out", cancel_reason_type="OUT_OF_STOCK")
        assert isinstance(cancelled.state, Cancelled)
        assert cancelled.state.reason_type == "OUT_OF_STOCK"
        assert cancelled.state.refund_amount is None

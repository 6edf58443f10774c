"""
Split and Merge Tests

Structural operations move items between orders. Totals are conserved and the
orders that were split or merged away are closed with a pointer to where
their items went.
"""
from decimal import Decimal
from unittest.mock import patch

import pytest

from orders.exceptions import IncompatibleMerge, InvalidTransition, NotFound, PartitionMismatch, ValidationError
from orders.models import Order, OrderItem
from orders.services import MergeService, OrderTransitionService, SplitService
from orders.services.notification_service import OrderEventKind

Status = Order.OrderStatus


def item_ids(order):
    return [str(pk) for pk in order.items.values_list("pk", flat=True)]


@pytest.mark.django_db
class TestSplitOrder:

    def test_split_moves_items_and_conserves_total(self, make_staff_order):
        """
        CRITICAL: Splitting never creates or loses money

        Scenario: 2 latte + 1 croissant (120000) split into latte / croissant.
        Expected: two CONFIRMED orders of 90000 and 30000, source closed at 0.
        """
        source = make_staff_order(customer_table="3", payment_method="CASH")
        latte_line, croissant_line = item_ids(source)

        parts = SplitService.split_order(
            source.id,
            [{"name": "Lan", "item_ids": [latte_line]}, {"item_ids": [croissant_line]}],
            "staff-1",
        )

        assert [p.total_amount for p in parts] == [Decimal("90000.00"), Decimal("30000.00")]
        assert sum(p.total_amount for p in parts) == Decimal("120000.00")
        assert all(p.status == Status.CONFIRMED for p in parts)
        assert all(p.split_from_id == source.pk for p in parts)
        assert all(p.customer_table == "3" for p in parts)
        assert item_ids(parts[0]) == [latte_line]

        source.refresh_from_db()
        assert source.status == Status.CANCELLED
        assert source.total_amount == Decimal("0.00")
        assert source.items.count() == 0
        assert source.cancel_reason == "Split into 2 orders"
        assert source.cancel_reason_type == Order.CancelReasonType.OTHER

    def test_labels_default_to_part_numbers(self, make_staff_order):
        source = make_staff_order()
        first, second = item_ids(source)

        parts = SplitService.split_order(
            source.id, [{"name": "Lan", "item_ids": [first]}, {"item_ids": [second]}], "staff-1"
        )

        assert parts[0].label == "Lan"
        assert parts[1].label == f"{source.order_number} (part 2/2)"
        assert parts[0].display_name == "Lan"

    def test_split_carries_payment_state(self, make_staff_order):
        source = make_staff_order(payment_method="CARD", payment_status="SUCCESS")
        first, second = item_ids(source)

        parts = SplitService.split_order(source.id, [{"item_ids": [first]}, {"item_ids": [second]}], "staff-1")

        assert all(p.payment_status == Order.PaymentStatus.SUCCESS for p in parts)
        assert all(p.payment_method == Order.PaymentMethod.CARD for p in parts)

    @pytest.mark.parametrize("problem", ["missing", "duplicated", "foreign"])
    def test_item_ids_must_partition_the_order(self, make_staff_order, problem):
        source = make_staff_order()
        first, second = item_ids(source)
        other = item_ids(make_staff_order())[0]
        splits = {
            "missing": [{"item_ids": [first]}, {"item_ids": [first]}],
            "duplicated": [{"item_ids": [first, second]}, {"item_ids": [second]}],
            "foreign": [{"item_ids": [first]}, {"item_ids": [second, other]}],
        }[problem]

        with pytest.raises(PartitionMismatch) as exc_info:
            SplitService.split_order(source.id, splits, "staff-1")

        assert getattr(exc_info.value, problem) == {
            "missing": [second],
            "duplicated": [second],
            "foreign": [other],
        }[problem]
        source.refresh_from_db()
        assert source.status == Status.CONFIRMED
        assert source.items.count() == 2

    def test_needs_two_non_empty_parts(self, make_staff_order):
        source = make_staff_order()
        first, second = item_ids(source)

        with pytest.raises(ValidationError):
            SplitService.split_order(source.id, [{"item_ids": [first, second]}], "staff-1")
        with pytest.raises(ValidationError):
            SplitService.split_order(source.id, [{"item_ids": [first, second]}, {"item_ids": []}], "staff-1")

    def test_pending_order_cannot_be_split(self, make_customer_order, latte, croissant):
        source = make_customer_order(items=[(latte, 1), (croissant, 1)])
        first, second = item_ids(source)

        with pytest.raises(InvalidTransition):
            SplitService.split_order(source.id, [{"item_ids": [first]}, {"item_ids": [second]}], "staff-1")

    def test_events_after_commit(self, make_staff_order, captured_events, django_capture_on_commit_callbacks):
        source = make_staff_order()
        first, second = item_ids(source)

        with django_capture_on_commit_callbacks(execute=True):
            parts = SplitService.split_order(
                source.id, [{"item_ids": [first]}, {"item_ids": [second]}], "staff-1"
            )

        created = [e.order_id for e in captured_events if e.kind == OrderEventKind.ORDER_CREATED]
        changed = [e for e in captured_events if e.kind == OrderEventKind.ORDER_STATUS_CHANGED]
        assert created == [str(p.pk) for p in parts]
        assert [e.order_id for e in changed] == [str(source.pk)]
        assert changed[0].status == Status.CANCELLED


@pytest.mark.django_db
class TestMergeOrders:

    def test_merge_sums_totals_and_moves_items(self, make_staff_order, latte, croissant):
        first = make_staff_order(items=[(latte, 1)], customer_table="2")
        second = make_staff_order(items=[(croissant, 2)], customer_table="2")

        merged = MergeService.merge_orders([first.id, second.id], "staff-1", "Table 2")

        assert merged.total_amount == Decimal("105000.00")
        assert merged.items.count() == 2
        assert merged.label == "Table 2"
        assert merged.customer_table == "2"
        for source in (first, second):
            source.refresh_from_db()
            assert source.status == Status.CANCELLED
            assert source.total_amount == Decimal("0.00")
            assert source.merged_into_id == merged.pk
            assert source.cancel_reason == f"Merged into order {merged.order_number}"

    def test_most_advanced_status_wins(self, make_staff_order, advance):
        confirmed = make_staff_order()
        ready = advance(make_staff_order(), Status.READY)
        preparing = advance(make_staff_order(), Status.PREPARING)

        merged = MergeService.merge_orders([confirmed.id, ready.id, preparing.id], "staff-1")

        assert merged.status == Status.READY

    def test_paid_only_when_every_source_is_paid(self, make_staff_order):
        paid = make_staff_order(payment_status="SUCCESS")
        unpaid = make_staff_order()
        also_paid = make_staff_order(payment_status="SUCCESS")

        mixed = MergeService.merge_orders([paid.id, unpaid.id], "staff-1")
        assert mixed.payment_status == Order.PaymentStatus.PENDING
        assert mixed.paid_at is None

        third = make_staff_order(payment_status="SUCCESS")
        all_paid = MergeService.merge_orders([also_paid.id, third.id], "staff-1")
        assert all_paid.payment_status == Order.PaymentStatus.SUCCESS
        assert all_paid.paid_at is not None

    def test_context_comes_from_first_order(self, make_staff_order, caplog):
        first = make_staff_order(customer_table="1", customer_name="Lan")
        second = make_staff_order(customer_table="8", customer_name="Minh")

        merged = MergeService.merge_orders([second.id, first.id], "staff-1")

        assert merged.customer_table == "8"
        assert merged.customer_name == "Minh"
        assert "different customer_table values" in caplog.text

    def test_incompatible_status_is_rejected(self, make_staff_order, make_customer_order):
        confirmed = make_staff_order()
        pending = make_customer_order()

        with pytest.raises(IncompatibleMerge) as exc_info:
            MergeService.merge_orders([confirmed.id, pending.id], "staff-1")

        assert exc_info.value.status == Status.PENDING
        confirmed.refresh_from_db()
        assert confirmed.status == Status.CONFIRMED

    def test_unknown_order_is_not_found(self, make_staff_order):
        order = make_staff_order()

        with pytest.raises(NotFound):
            MergeService.merge_orders([order.id, "00000000-0000-0000-0000-000000000000"], "staff-1")
        with pytest.raises(NotFound):
            MergeService.merge_orders([order.id, "garbage"], "staff-1")

    @pytest.mark.parametrize("ids", [[], ["single"]])
    def test_needs_two_orders(self, db, ids):
        with pytest.raises(ValidationError):
            MergeService.merge_orders(ids, "staff-1")

    def test_same_order_twice_is_rejected(self, make_staff_order):
        order = make_staff_order()

        with pytest.raises(ValidationError):
            MergeService.merge_orders([order.id, str(order.id).upper()], "staff-1")

    def test_failure_midway_rolls_everything_back(self, make_staff_order):
        """
        CRITICAL: A merge is all-or-nothing

        Scenario: closing the second source fails after the merged order and
        item moves were written.
        Expected: no merged order, items and sources untouched.
        """
        first = make_staff_order()
        second = make_staff_order()
        order_count = Order.objects.count()
        real_transition = OrderTransitionService.transition
        calls = []

        def flaky_transition(order, target, **fields):
            calls.append(order.pk)
            if len(calls) == 2:
                raise RuntimeError("database went away")
            return real_transition(order, target, **fields)

        with patch.object(OrderTransitionService, "transition", side_effect=flaky_transition):
            with pytest.raises(RuntimeError):
                MergeService.merge_orders([first.id, second.id], "staff-1")

        assert Order.objects.count() == order_count
        for source in (first, second):
            source.refresh_from_db()
            assert source.status == Status.CONFIRMED
            assert OrderItem.objects.filter(order=source).count() == 2

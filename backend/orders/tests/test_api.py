"""
Orders API Tests

Covers the HTTP surface: request shapes, the actor taken from headers, and
the mapping of engine errors onto {error, errorCode, details} responses.
"""
import pytest

from orders.models import Order
from orders.services import HoldService

Status = Order.OrderStatus


def items_payload(*pairs):
    return [{"product_id": product.id, "quantity": qty} for product, qty in pairs]


@pytest.mark.django_db
class TestOrderCreationAPI:

    def test_staff_order_is_created_confirmed(self, staff_client, latte, croissant):
        response = staff_client.post(
            "/api/orders/",
            {
                "order_creator": "STAFF",
                "order_creator_name": "Alice",
                "customer_table": "4",
                "items": items_payload((latte, 2), (croissant, 1)),
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["status"] == Status.CONFIRMED
        assert response.data["total_amount"] == "120000.00"
        assert len(response.data["items"]) == 2
        assert response.data["order_number"].startswith("ORD-")

    def test_missing_items_is_validation_error(self, staff_client):
        response = staff_client.post("/api/orders/", {"order_creator": "STAFF"}, format="json")

        assert response.status_code == 400
        assert response.data["errorCode"] == "VALIDATION_ERROR"
        assert "items" in response.data["details"]

    def test_unknown_product_is_404(self, staff_client, db):
        response = staff_client.post(
            "/api/orders/",
            {"order_creator": "STAFF", "items": [{"product_id": 4242, "quantity": 1}]},
            format="json",
        )

        assert response.status_code == 404
        assert response.data["errorCode"] == "NOT_FOUND"
        assert response.data["details"]["entity"] == "Product"


@pytest.mark.django_db
class TestOrderReadAPI:

    def test_retrieve_unknown_order_is_404(self, api_client):
        response = api_client.get("/api/orders/00000000-0000-0000-0000-000000000000/")

        assert response.status_code == 404
        assert response.data["errorCode"] == "NOT_FOUND"

    def test_list_filters_by_status(self, api_client, make_staff_order, make_customer_order):
        make_staff_order()
        pending = make_customer_order()

        response = api_client.get("/api/orders/", {"status": "PENDING"})

        assert response.status_code == 200
        assert [o["id"] for o in response.data] == [str(pending.pk)]

    def test_today_and_by_number(self, api_client, make_staff_order):
        order = make_staff_order()

        today = api_client.get("/api/orders/today/")
        by_number = api_client.get(f"/api/orders/by-number/{order.order_number}/")

        assert str(order.pk) in [o["id"] for o in today.data]
        assert by_number.data["id"] == str(order.pk)

    def test_held_queue(self, staff_client, make_staff_order):
        order = make_staff_order()
        HoldService.hold_order(order.id, "staff-1", "Table 9")

        response = staff_client.get("/api/orders/held/")

        assert [o["hold_name"] for o in response.data] == ["Table 9"]


@pytest.mark.django_db
class TestStatusActionsAPI:

    def test_verify_records_header_actor(self, staff_client, make_customer_order):
        order = make_customer_order()

        response = staff_client.post(f"/api/orders/{order.id}/verify/")

        assert response.status_code == 200
        assert response.data["status"] == Status.CONFIRMED
        assert response.data["confirmed_by_id"] == "staff-1"
        assert response.data["confirmed_by_name"] == "Alice"

    def test_invalid_transition_is_409(self, staff_client, make_staff_order):
        order = make_staff_order()

        response = staff_client.patch(
            f"/api/orders/{order.id}/status/", {"status": "COMPLETED"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["errorCode"] == "INVALID_TRANSITION"
        assert response.data["details"] == {"from": "CONFIRMED", "to": "COMPLETED"}

    def test_progression_through_api(self, staff_client, make_staff_order):
        order = make_staff_order()

        for target in ("PREPARING", "READY", "COMPLETED"):
            response = staff_client.patch(
                f"/api/orders/{order.id}/status/", {"status": target}, format="json"
            )
            assert response.status_code == 200
            assert response.data["status"] == target

    def test_hold_and_resume(self, staff_client, make_staff_order):
        order = make_staff_order()

        held = staff_client.post(f"/api/orders/{order.id}/hold/", {"hold_name": "Window"}, format="json")
        resumed = staff_client.post(f"/api/orders/{order.id}/resume/")

        assert held.data["status"] == Status.HOLD
        assert held.data["held_by_name"] == "Alice"
        assert resumed.data["status"] == Status.PENDING

    def test_cancel_requires_reason_type(self, staff_client, make_staff_order):
        order = make_staff_order()

        response = staff_client.post(f"/api/orders/{order.id}/cancel/", {"reason": "x"}, format="json")

        assert response.status_code == 400
        assert "reason_type" in response.data["details"]

    def test_cancel_paid_order_reports_refund(self, staff_client, make_staff_order):
        order = make_staff_order(payment_method="QR", payment_status="SUCCESS")

        response = staff_client.post(
            f"/api/orders/{order.id}/cancel/",
            {"reason": "Spilled", "reason_type": "OTHER"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["refund_amount"] == "120000.00"
        assert response.data["refund_method"] == "QR"

    def test_reject_pending_order(self, staff_client, make_customer_order):
        order = make_customer_order()

        response = staff_client.post(f"/api/orders/{order.id}/reject/", {}, format="json")

        assert response.data["status"] == Status.CANCELLED
        assert response.data["cancel_reason"] == "Rejected by staff"

    def test_verify_payment_without_verifier_is_503(self, staff_client, make_staff_order):
        order = make_staff_order()

        response = staff_client.post(f"/api/orders/{order.id}/verify-payment/")

        assert response.status_code == 503
        assert response.data["errorCode"] == "IMPROPERLY_CONFIGURED"


@pytest.mark.django_db
class TestStructureActionsAPI:

    def test_split_returns_new_orders(self, staff_client, make_staff_order):
        order = make_staff_order()
        first, second = [str(i.pk) for i in order.items.all()]

        response = staff_client.post(
            f"/api/orders/{order.id}/split/",
            {"splits": [{"item_ids": [first]}, {"name": "Guest", "item_ids": [second]}]},
            format="json",
        )

        assert response.status_code == 201
        assert [o["total_amount"] for o in response.data] == ["90000.00", "30000.00"]
        assert response.data[1]["label"] == "Guest"

    def test_split_with_one_part_is_400(self, staff_client, make_staff_order):
        order = make_staff_order()
        ids = [str(i.pk) for i in order.items.all()]

        response = staff_client.post(
            f"/api/orders/{order.id}/split/", {"splits": [{"item_ids": ids}]}, format="json"
        )

        assert response.status_code == 400

    def test_partition_mismatch_is_400(self, staff_client, make_staff_order):
        order = make_staff_order()
        first, _second = [str(i.pk) for i in order.items.all()]

        response = staff_client.post(
            f"/api/orders/{order.id}/split/",
            {"splits": [{"item_ids": [first]}, {"item_ids": [first]}]},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["errorCode"] == "PARTITION_MISMATCH"

    def test_merge_incompatible_is_409(self, staff_client, make_staff_order, make_customer_order):
        confirmed = make_staff_order()
        pending = make_customer_order()

        response = staff_client.post(
            "/api/orders/merge/",
            {"order_ids": [str(confirmed.pk), str(pending.pk)]},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["errorCode"] == "INCOMPATIBLE_MERGE"

    def test_merge_creates_order(self, staff_client, make_staff_order):
        first = make_staff_order()
        second = make_staff_order()

        response = staff_client.post(
            "/api/orders/merge/",
            {"order_ids": [str(first.pk), str(second.pk)], "merged_order_name": "Big table"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["total_amount"] == "240000.00"
        assert response.data["display_name"] == "Big table"

    def test_return_and_returnable(self, staff_client, make_staff_order, advance, cake):
        order = advance(make_staff_order(items=[(cake, 3)]), Status.COMPLETED)
        item_id = str(order.items.get().pk)

        too_much = staff_client.post(
            f"/api/orders/{order.id}/return/",
            {
                "return_type": "PARTIAL",
                "return_reason": "DEFECTIVE",
                "refund_method": "CASH",
                "items": [{"order_item_id": item_id, "quantity": 2, "refund_amount": "250.00"}],
            },
            format="json",
        )
        accepted = staff_client.post(
            f"/api/orders/{order.id}/return/",
            {
                "return_type": "PARTIAL",
                "return_reason": "DEFECTIVE",
                "refund_method": "CASH",
                "items": [{"order_item_id": item_id, "quantity": 2}],
            },
            format="json",
        )
        returnable = staff_client.get(f"/api/orders/{order.id}/returnable/")

        assert too_much.status_code == 400
        assert too_much.data["errorCode"] == "REFUND_EXCEEDS_ITEM_VALUE"
        assert accepted.status_code == 201
        assert accepted.data["total_refund_amount"] == "200.00"
        assert returnable.data == {"items": {item_id: 1}, "fully_returned": False}


@pytest.mark.django_db
class TestDraftAPI:

    def test_upsert_and_clear(self, api_client, latte):
        payload = {
            "order_creator": "CUSTOMER",
            "customer_table": "12",
            "items": items_payload((latte, 1)),
        }

        first = api_client.post("/api/drafts/", payload, format="json")
        second = api_client.post("/api/drafts/", payload, format="json")
        cleared = api_client.post("/api/drafts/clear/", {"order_creator": "CUSTOMER"}, format="json")

        assert first.data["id"] == second.data["id"]
        assert first.data["status"] == Status.CREATING
        assert cleared.data == {"deleted": 1}

    def test_session_key_issued(self, api_client, db):
        response = api_client.post("/api/drafts/session/")

        assert response.status_code == 201
        assert response.data["session_key"].startswith("draft_")

    def test_finalize_draft(self, staff_client, staff_draft):
        response = staff_client.post(
            f"/api/orders/{staff_draft.id}/finalize/", {"payment_method": "CASH"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == Status.CONFIRMED
        assert response.data["payment_method"] == "CASH"


def test_health_check(api_client):
    response = api_client.get("/api/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"

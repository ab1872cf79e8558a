"""
HTTP API tests for /api/cash-registers.

Verifies:
- Status codes per failure kind (400/404/409)
- Money travels as decimal strings
- Query-string parameters reach the reporting endpoints
"""

import pytest


BASE = "/api/cash-registers"


@pytest.fixture
def register_id(client, branch):
    resp = client.post(BASE, json={"name": "Caja 1", "branch_id": branch.id})
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]


@pytest.fixture
def session_id(client, register_id):
    resp = client.post(
        f"{BASE}/{register_id}/sessions/open",
        json={"opening_amount": "200.00", "user_id": "cashier-1"},
    )
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]


# =============================================================================
# REGISTERS
# =============================================================================


class TestRegisterRoutes:

    def test_create_and_list(self, client, branch, register_id):
        resp = client.get(f"{BASE}?branch_id={branch.id}")

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [r["name"] for r in data] == ["Caja 1"]
        assert data[0]["has_open_session"] is False

    def test_duplicate_name_conflict(self, client, branch, register_id):
        resp = client.post(BASE, json={"name": "Caja 1", "branch_id": branch.id})

        assert resp.status_code == 409
        assert resp.get_json()["error_code"] == "DUPLICATE_NAME"

    def test_missing_name_bad_request(self, client, branch):
        resp = client.post(BASE, json={"branch_id": branch.id})

        assert resp.status_code == 400
        assert resp.get_json()["error_code"] == "VALIDATION_ERROR"

    def test_list_requires_branch(self, client, db_session):
        assert client.get(BASE).status_code == 400

    def test_get_missing(self, client, db_session):
        assert client.get(f"{BASE}/999").status_code == 404

    def test_patch_rename(self, client, register_id):
        resp = client.patch(f"{BASE}/{register_id}", json={"name": "Barra"})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["name"] == "Barra"

    def test_delete_unused_register(self, client, register_id):
        resp = client.delete(f"{BASE}/{register_id}")

        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"mode": "DELETED"}
        assert client.get(f"{BASE}/{register_id}").status_code == 404

    def test_delete_with_open_session_conflict(self, client, register_id, session_id):
        resp = client.delete(f"{BASE}/{register_id}")

        assert resp.status_code == 409
        assert resp.get_json()["error_code"] == "HAS_OPEN_SESSION"


# =============================================================================
# SESSIONS AND MOVEMENTS
# =============================================================================


class TestSessionRoutes:

    def test_open_returns_decimal_strings(self, client, register_id):
        resp = client.post(
            f"{BASE}/{register_id}/sessions/open",
            json={"opening_amount": 150.5, "user_id": "cashier-1"},
        )

        assert resp.status_code == 201
        assert resp.get_json()["data"]["opening_amount"] == "150.50"

    def test_second_open_conflict(self, client, register_id, session_id):
        resp = client.post(
            f"{BASE}/{register_id}/sessions/open",
            json={"opening_amount": "10", "user_id": "cashier-2"},
        )

        assert resp.status_code == 409
        assert resp.get_json()["error_code"] == "SESSION_ALREADY_OPEN"

    def test_current_session(self, client, register_id, session_id):
        resp = client.get(f"{BASE}/{register_id}/sessions/current")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["id"] == session_id

    def test_full_flow(self, client, register_id, session_id, order):
        assert client.post(
            f"{BASE}/sessions/{session_id}/sales",
            json={"order_id": order.id, "payment_method": "CASH", "amount": "75", "user_id": "cashier-1"},
        ).status_code == 201
        assert client.post(
            f"{BASE}/sessions/{session_id}/sales",
            json={"order_id": order.id, "payment_method": "CARD_CREDIT", "amount": "40", "user_id": "cashier-1"},
        ).status_code == 201
        assert client.post(
            f"{BASE}/sessions/{session_id}/movements",
            json={"type": "EXPENSE", "payment_method": "CASH", "amount": "15", "user_id": "cashier-1"},
        ).status_code == 201

        expected = client.get(f"{BASE}/sessions/{session_id}/expected-cash").get_json()
        assert expected["data"] == "260.00"

        resp = client.post(
            f"{BASE}/sessions/{session_id}/close",
            json={"counted_cash": "255", "user_id": "cashier-1"},
        )
        assert resp.status_code == 200
        closed = resp.get_json()["data"]
        assert closed["status"] == "CLOSED"
        assert closed["expected_cash"] == "260.00"
        assert closed["variance"] == "-5.00"

        again = client.post(
            f"{BASE}/sessions/{session_id}/close",
            json={"counted_cash": "255", "user_id": "cashier-1"},
        )
        assert again.status_code == 409
        assert again.get_json()["error_code"] == "SESSION_ALREADY_CLOSED"

        late = client.post(
            f"{BASE}/sessions/{session_id}/movements",
            json={"type": "INCOME", "payment_method": "CASH", "amount": "1", "user_id": "cashier-1"},
        )
        assert late.status_code == 409
        assert late.get_json()["error_code"] == "SESSION_CLOSED"

        history = client.get(f"{BASE}/{register_id}/sessions").get_json()
        assert history["total"] == 1
        assert history["data"][0]["movement_count"] == 3

    def test_invalid_amount_bad_request(self, client, session_id):
        resp = client.post(
            f"{BASE}/sessions/{session_id}/movements",
            json={"type": "INCOME", "payment_method": "CASH", "amount": "0", "user_id": "cashier-1"},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error_code"] == "VALIDATION_ERROR"

    def test_oversized_amount_bad_request(self, client, session_id):
        resp = client.post(
            f"{BASE}/sessions/{session_id}/movements",
            json={"type": "INCOME", "payment_method": "CASH", "amount": 1e30, "user_id": "cashier-1"},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error_code"] == "VALIDATION_ERROR"

    def test_summary_missing_session(self, client, db_session):
        resp = client.get(f"{BASE}/sessions/999/summary")

        assert resp.status_code == 404
        assert resp.get_json()["error_code"] == "SESSION_NOT_FOUND"

    def test_order_payments(self, client, session_id, order):
        resp = client.post(
            f"{BASE}/sessions/{session_id}/order-payments",
            json={
                "order_id": order.id,
                "user_id": "cashier-1",
                "payments": [
                    {"payment_method": "CASH", "amount": "20.00"},
                    {"payment_method": "CARD_DEBIT", "amount": "35.50"},
                ],
            },
        )

        assert resp.status_code == 201
        assert [m["amount"] for m in resp.get_json()["data"]] == ["20.00", "35.50"]

        movements = client.get(f"{BASE}/sessions/{session_id}/movements").get_json()["data"]
        assert movements[0]["order"]["public_code"] == "A-0001"


class TestManualMovementRoutes:

    def test_filters_from_query_string(self, client, branch, register_id, session_id):
        for kind, amount in (("INCOME", "10"), ("EXPENSE", "4"), ("EXPENSE", "6")):
            client.post(
                f"{BASE}/sessions/{session_id}/movements",
                json={"type": kind, "payment_method": "CASH", "amount": amount, "user_id": "cashier-1"},
            )

        resp = client.get(f"{BASE}/movements/manual?branch_id={branch.id}&type=EXPENSE&limit=1")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total"] == 2
        assert body["has_more"] is True
        assert len(body["data"]) == 1
        assert body["data"][0]["cash_register"]["id"] == register_id

    def test_get_movement(self, client, session_id):
        created = client.post(
            f"{BASE}/sessions/{session_id}/movements",
            json={"type": "INCOME", "payment_method": "CASH", "amount": "9.99", "user_id": "cashier-1"},
        ).get_json()["data"]

        resp = client.get(f"{BASE}/movements/{created['id']}")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["amount"] == "9.99"

    def test_non_ascii_digit_id_bad_request(self, client, branch):
        assert client.get(f"{BASE}/?branch_id=\u00b2").status_code == 400
        resp = client.get(f"{BASE}/movements/manual?branch_id={branch.id}&cash_register_id=\u00b2")
        assert resp.status_code == 400

    def test_bad_type_filter(self, client, branch):
        resp = client.get(f"{BASE}/movements/manual?branch_id={branch.id}&type=SALE")
        assert resp.status_code == 400

"""
Cash register session lifecycle tests.

Verifies:
- Opening enforces register existence, activity and a single open session
- Closing computes expected cash from CASH movements only and a signed variance
- Closing twice is an error
- Current session lookup re-queries and returns movements newest first
"""

from decimal import Decimal

import pytest

from cashledger.errors import (
    RegisterInactiveError,
    RegisterNotFoundError,
    SessionAlreadyClosedError,
    SessionAlreadyOpenError,
    SessionNotFoundError,
    ValidationError,
)
from cashledger.models import CashRegisterSession
from cashledger.services import cash_session_service, movement_service, register_service


def _open_count(db_session, register_id):
    return db_session.query(CashRegisterSession).filter_by(
        cash_register_id=register_id, status="OPEN"
    ).count()


# =============================================================================
# OPEN
# =============================================================================


class TestOpenSession:

    def test_opens_with_float(self, register):
        session = cash_session_service.open_session(register.id, "200", "cashier-1")

        assert session.status == "OPEN"
        assert session.opening_amount == Decimal("200.00")
        assert session.opened_by == "cashier-1"
        assert session.opened_at is not None
        assert session.closed_at is None

    def test_zero_float_allowed(self, register):
        session = cash_session_service.open_session(register.id, 0, "cashier-1")
        assert session.opening_amount == Decimal("0")

    def test_negative_float_rejected(self, db_session, register):
        with pytest.raises(ValidationError):
            cash_session_service.open_session(register.id, "-1", "cashier-1")
        assert _open_count(db_session, register.id) == 0

    def test_missing_register(self, db_session):
        with pytest.raises(RegisterNotFoundError):
            cash_session_service.open_session(31337, 100, "cashier-1")

    def test_inactive_register(self, register):
        register_service.update_register(register.id, is_active=False)

        with pytest.raises(RegisterInactiveError):
            cash_session_service.open_session(register.id, 100, "cashier-1")

    def test_second_open_rejected(self, db_session, register, open_session):
        with pytest.raises(SessionAlreadyOpenError):
            cash_session_service.open_session(register.id, 100, "cashier-2")

        assert _open_count(db_session, register.id) == 1

    def test_can_reopen_after_close(self, db_session, register, open_session):
        cash_session_service.close_session(open_session.id, 100, "cashier-1")

        second = cash_session_service.open_session(register.id, 80, "cashier-2")

        assert second.id != open_session.id
        assert _open_count(db_session, register.id) == 1

    def test_open_sessions_are_per_register(self, branch, register, open_session):
        other = register_service.create_register("Caja 2", branch.id)

        session = cash_session_service.open_session(other.id, 100, "cashier-2")
        assert session.status == "OPEN"


# =============================================================================
# CLOSE
# =============================================================================


class TestCloseSession:

    def test_end_to_end_reconciles_to_zero_variance(self, register):
        session = cash_session_service.open_session(register.id, 200, "cashier-1")
        movement_service.add_movement(session.id, "SALE", "CASH", 75, "cashier-1")
        movement_service.add_movement(session.id, "SALE", "CARD_CREDIT", 40, "cashier-1")
        movement_service.add_movement(session.id, "EXPENSE", "CASH", 15, "cashier-1")

        closed = cash_session_service.close_session(session.id, 260, "cashier-1", "Turno tarde")

        assert closed.status == "CLOSED"
        assert closed.expected_cash == Decimal("260")
        assert closed.counted_cash == Decimal("260")
        assert closed.variance == Decimal("0")
        assert closed.closed_by == "cashier-1"
        assert closed.closed_at is not None
        assert closed.closing_notes == "Turno tarde"

    @pytest.mark.parametrize(
        "counted,expected_variance",
        [
            ("135", Decimal("-5")),  # shortage
            ("150", Decimal("10")),  # overage
            ("140", Decimal("0")),
        ],
    )
    def test_variance_sign(self, open_session, counted, expected_variance):
        movement_service.add_movement(open_session.id, "SALE", "CASH", 50, "cashier-1")
        movement_service.add_movement(open_session.id, "SALE", "CARD_DEBIT", 30, "cashier-1")
        movement_service.add_movement(open_session.id, "REFUND", "CASH", 20, "cashier-1")
        movement_service.add_movement(open_session.id, "INCOME", "CASH", 10, "cashier-1")

        closed = cash_session_service.close_session(open_session.id, counted, "cashier-1")

        assert closed.expected_cash == Decimal("140")
        assert closed.variance == expected_variance

    def test_counted_zero_is_stored(self, open_session):
        closed = cash_session_service.close_session(open_session.id, 0, "cashier-1")

        assert closed.counted_cash == Decimal("0")
        assert closed.variance == Decimal("-100")

    def test_close_twice_is_an_error(self, open_session):
        cash_session_service.close_session(open_session.id, 100, "cashier-1")

        with pytest.raises(SessionAlreadyClosedError):
            cash_session_service.close_session(open_session.id, 90, "cashier-2")

        session = cash_session_service.get_session(open_session.id)
        assert session.counted_cash == Decimal("100")
        assert session.closed_by == "cashier-1"

    def test_missing_session(self, db_session):
        with pytest.raises(SessionNotFoundError):
            cash_session_service.close_session(777, 100, "cashier-1")

    def test_negative_counted_cash_rejected(self, open_session):
        with pytest.raises(ValidationError):
            cash_session_service.close_session(open_session.id, -0.5, "cashier-1")

        assert cash_session_service.get_session(open_session.id).status == "OPEN"


# =============================================================================
# QUERIES
# =============================================================================


class TestSessionQueries:

    def test_current_session_none_without_open(self, register):
        assert cash_session_service.get_current_session(register.id) is None

    def test_current_session_returns_movements_newest_first(self, register, open_session):
        movement_service.add_movement(open_session.id, "INCOME", "CASH", 5, "cashier-1")
        movement_service.add_movement(open_session.id, "EXPENSE", "CASH", 3, "cashier-1")

        current = cash_session_service.get_current_session(register.id)

        assert current["id"] == open_session.id
        assert [m["type"] for m in current["movements"]] == ["EXPENSE", "INCOME"]

    def test_current_session_none_after_close(self, register, open_session):
        cash_session_service.close_session(open_session.id, 100, "cashier-1")
        assert cash_session_service.get_current_session(register.id) is None

    def test_history_newest_first_with_counts_and_total(self, register):
        ids = []
        for _ in range(3):
            session = cash_session_service.open_session(register.id, 10, "cashier-1")
            movement_service.add_movement(session.id, "SALE", "CASH", 1, "cashier-1")
            cash_session_service.close_session(session.id, 11, "cashier-1")
            ids.append(session.id)

        sessions, total = cash_session_service.list_session_history(register.id, limit=2, offset=0)

        assert total == 3
        assert [s["id"] for s in sessions] == [ids[2], ids[1]]
        assert all(s["movement_count"] == 1 for s in sessions)

        rest, _ = cash_session_service.list_session_history(register.id, limit=2, offset=2)
        assert [s["id"] for s in rest] == [ids[0]]

# Overview: Expected-cash and session summary aggregation over the movement ledger.

"""
Reconciliation Engine

The physical till only holds currency, so only CASH movements move the
expected balance. Card, account and transfer settlements show up in the
per-method report but never in expected cash.

The aggregation functions are pure: they take an opening amount and any
iterable of objects exposing `type`, `payment_method` and `amount`
(CashMovement rows, or plain records in tests) and touch no state.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..enums import INFLOW_TYPES, OUTFLOW_TYPES, MOVEMENT_TYPES, PAYMENT_METHODS, PaymentMethod
from ..errors import SessionNotFoundError
from ..models import CashRegisterSession, CashMovement
from ..validation import parse_id

ZERO = Decimal("0.00")
CASH = PaymentMethod.CASH.value


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def is_recognized(movement) -> bool:
    """True when both the type and the payment method belong to the closed enumerations."""
    return movement.type in MOVEMENT_TYPES and movement.payment_method in PAYMENT_METHODS


def unrecognized_movements(movements: Iterable) -> list:
    return [m for m in movements if not is_recognized(m)]


def expected_cash(opening_amount, movements: Iterable) -> Decimal:
    """
    opening + CASH (INCOME + SALE) - CASH (EXPENSE + REFUND).

    Movements with an unrecognized type or method are left out.
    """
    total = _as_decimal(opening_amount)
    for movement in movements:
        if movement.payment_method != CASH:
            continue
        if movement.type in INFLOW_TYPES:
            total += _as_decimal(movement.amount)
        elif movement.type in OUTFLOW_TYPES:
            total -= _as_decimal(movement.amount)
    return total


def compute_variance(counted_cash, expected) -> Decimal:
    """Counted minus expected: positive is an overage, negative a shortage."""
    return _as_decimal(counted_cash) - _as_decimal(expected)


@dataclass
class MethodTotals:
    income: Decimal = ZERO
    expense: Decimal = ZERO
    net: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"income": self.income, "expense": self.expense, "net": self.net}


@dataclass
class SessionSummary:
    opening_amount: Decimal
    expected_cash: Decimal
    totals_by_payment_method: dict[str, MethodTotals]
    totals_by_type: dict[str, Decimal]
    movement_count: int
    skipped_movement_count: int = 0
    counted_cash: Decimal | None = None
    variance: Decimal | None = None
    session_id: int | None = None
    status: str | None = None

    def to_dict(self) -> dict:
        data = {
            "session_id": self.session_id,
            "status": self.status,
            "opening_amount": self.opening_amount,
            "expected_cash": self.expected_cash,
            "counted_cash": self.counted_cash,
            "variance": self.variance,
            "totals_by_payment_method": {
                method: totals.to_dict() for method, totals in self.totals_by_payment_method.items()
            },
            "totals_by_type": dict(self.totals_by_type),
            "movement_count": self.movement_count,
            "skipped_movement_count": self.skipped_movement_count,
        }
        return data


def summarize_movements(
    opening_amount,
    movements: Iterable,
    *,
    counted_cash=None,
    variance=None,
) -> SessionSummary:
    """
    Aggregate a session's movements by payment method and by type.

    Per method: income (INCOME/SALE), expense (EXPENSE/REFUND) and signed
    net. Per type: raw, unsigned totals. Expected cash is the opening amount
    plus the CASH net, which equals expected_cash() for the same input.
    """
    movements = list(movements)
    opening = _as_decimal(opening_amount)

    by_method: dict[str, MethodTotals] = {}
    by_type: dict[str, Decimal] = {movement_type: ZERO for movement_type in MOVEMENT_TYPES}
    skipped = 0

    for movement in movements:
        if not is_recognized(movement):
            skipped += 1
            continue

        amount = _as_decimal(movement.amount)
        totals = by_method.setdefault(movement.payment_method, MethodTotals())

        if movement.type in INFLOW_TYPES:
            totals.income += amount
            totals.net += amount
        else:
            totals.expense += amount
            totals.net -= amount

        by_type[movement.type] += amount

    cash_net = by_method[CASH].net if CASH in by_method else ZERO

    return SessionSummary(
        opening_amount=opening,
        expected_cash=opening + cash_net,
        totals_by_payment_method=by_method,
        totals_by_type=by_type,
        movement_count=len(movements),
        skipped_movement_count=skipped,
        counted_cash=counted_cash,
        variance=variance,
    )


# =============================================================================
# SESSION-LEVEL QUERIES
# =============================================================================

def _load_session(session_id) -> CashRegisterSession:
    session_id = parse_id(session_id, "session_id")
    session = db.session.get(CashRegisterSession, session_id)
    if not session:
        raise SessionNotFoundError("Cash register session not found")
    return session


def warn_unrecognized(session_id: int, count: int) -> None:
    if count:
        current_app.logger.warning(
            "Session %s has %d movement(s) with an unrecognized type or payment method; "
            "excluded from cash totals",
            session_id,
            count,
        )


def get_session_summary(session_id: int) -> SessionSummary:
    """Totals for a session at any point of its life, open or closed."""
    session = _load_session(session_id)
    movements = db.session.query(CashMovement).filter_by(session_id=session.id).all()

    summary = summarize_movements(
        session.opening_amount,
        movements,
        counted_cash=session.counted_cash,
        variance=session.variance,
    )
    summary.session_id = session.id
    summary.status = session.status
    warn_unrecognized(session.id, summary.skipped_movement_count)
    return summary


def calculate_expected_cash(session_id: int) -> Decimal:
    """Expected drawer balance right now, without closing the session."""
    session = _load_session(session_id)
    cash_movements = db.session.query(CashMovement).filter_by(
        session_id=session.id,
        payment_method=CASH,
    ).all()
    return expected_cash(session.opening_amount, cash_movements)

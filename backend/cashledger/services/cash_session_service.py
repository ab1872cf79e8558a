"""
Cash Register Session Service

WHY: A session is the period of accountability for one till: the float it
opened with, every movement recorded against it, and the count taken when
it closed.

DESIGN PRINCIPLES:
- At most one OPEN session per register
- Check-then-act sequences run inside a single transaction
- Sessions are immutable once closed and are never deleted
- The current session is re-queried on demand, never cached
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..enums import SessionStatus
from ..errors import (
    RegisterInactiveError,
    RegisterNotFoundError,
    SessionAlreadyClosedError,
    SessionAlreadyOpenError,
    SessionNotFoundError,
)
from ..models import CashRegister, CashRegisterSession, CashMovement
from ..time_utils import utcnow
from ..validation import parse_amount, parse_id, parse_optional_text, parse_page, parse_user_id
from .concurrency import atomic, lock_for_update
from .reconciliation_service import compute_variance, expected_cash, unrecognized_movements, warn_unrecognized


def get_open_session(cash_register_id: int, *, for_update: bool = False) -> CashRegisterSession | None:
    """The OPEN session of a register, if any."""
    query = db.session.query(CashRegisterSession).filter_by(
        cash_register_id=cash_register_id,
        status=SessionStatus.OPEN.value,
    )
    if for_update:
        query = lock_for_update(query).populate_existing()
    return query.first()


def _session_movements(session_id: int) -> list[CashMovement]:
    """Movements of a session, newest first."""
    return db.session.query(CashMovement).filter_by(
        session_id=session_id
    ).order_by(
        CashMovement.created_at.desc(), CashMovement.id.desc()
    ).all()


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_session(cash_register_id: int, opening_amount, user_id) -> CashRegisterSession:
    """
    Open a session on a register with a starting float.

    The "no open session" check and the insert share one transaction with
    the register row locked, so two concurrent opens cannot both succeed.

    Raises:
        ValidationError: negative opening amount, missing ids
        RegisterNotFoundError: register does not exist
        RegisterInactiveError: register is deactivated
        SessionAlreadyOpenError: register already has an OPEN session
    """
    cash_register_id = parse_id(cash_register_id, "cash_register_id")
    opening_amount = parse_amount(opening_amount, "opening_amount", allow_zero=True)
    user_id = parse_user_id(user_id)

    with atomic():
        register = lock_for_update(
            db.session.query(CashRegister).filter_by(id=cash_register_id)
        ).populate_existing().first()

        if not register:
            raise RegisterNotFoundError("Cash register not found")

        if not register.is_active:
            raise RegisterInactiveError("This cash register is deactivated")

        existing = get_open_session(cash_register_id, for_update=True)
        if existing:
            raise SessionAlreadyOpenError(f"This cash register already has an open session (session {existing.id})")

        session = CashRegisterSession(
            cash_register_id=cash_register_id,
            status=SessionStatus.OPEN.value,
            opening_amount=opening_amount,
            opened_by=user_id,
            opened_at=utcnow(),
        )
        db.session.add(session)
        try:
            db.session.flush()
        except IntegrityError:
            # One-open-session index: a concurrent open committed first
            raise SessionAlreadyOpenError("This cash register already has an open session")

    current_app.logger.info(
        "Opened cash session %s on register %s with %s (by %s)",
        session.id, cash_register_id, opening_amount, user_id,
    )
    return session


def close_session(session_id: int, counted_cash, user_id, closing_notes: str | None = None) -> CashRegisterSession:
    """
    Close a session and freeze its reconciliation.

    Expected cash is computed from the movements read inside the closing
    transaction; variance = counted - expected (negative means shortage).
    Closing an already closed session is an error, not a no-op.

    Raises:
        ValidationError: negative counted cash, missing ids
        SessionNotFoundError: session does not exist
        SessionAlreadyClosedError: session is already CLOSED
    """
    session_id = parse_id(session_id, "session_id")
    counted_cash = parse_amount(counted_cash, "counted_cash", allow_zero=True)
    user_id = parse_user_id(user_id)
    closing_notes = parse_optional_text(closing_notes, "closing_notes")

    with atomic():
        session = lock_for_update(
            db.session.query(CashRegisterSession).filter_by(id=session_id)
        ).populate_existing().first()

        if not session:
            raise SessionNotFoundError("Cash register session not found")

        if session.status == SessionStatus.CLOSED.value:
            raise SessionAlreadyClosedError("This session is already closed")

        movements = db.session.query(CashMovement).filter_by(session_id=session.id).all()
        expected = expected_cash(session.opening_amount, movements)
        variance = compute_variance(counted_cash, expected)

        session.status = SessionStatus.CLOSED.value
        session.closed_at = utcnow()
        session.closed_by = user_id
        session.expected_cash = expected
        session.counted_cash = counted_cash
        session.variance = variance
        session.closing_notes = closing_notes

    warn_unrecognized(session_id, len(unrecognized_movements(movements)))
    current_app.logger.info(
        "Closed cash session %s: expected %s, counted %s, variance %s (by %s)",
        session_id, expected, counted_cash, variance, user_id,
    )
    return session


# =============================================================================
# QUERIES
# =============================================================================

def get_session(session_id: int) -> CashRegisterSession:
    session_id = parse_id(session_id, "session_id")
    session = db.session.get(CashRegisterSession, session_id)
    if not session:
        raise SessionNotFoundError("Cash register session not found")
    return session


def get_current_session(cash_register_id: int) -> dict | None:
    """The register's OPEN session with its movements (newest first), or None."""
    cash_register_id = parse_id(cash_register_id, "cash_register_id")
    session = get_open_session(cash_register_id)
    if not session:
        return None

    result = session.to_dict()
    result["movements"] = [m.to_dict() for m in _session_movements(session.id)]
    return result


def list_session_history(cash_register_id: int, limit: int | None = None, offset: int = 0) -> tuple[list[dict], int]:
    """
    Sessions of a register, most recently opened first.

    Returns:
        Tuple of (session dicts with movement_count, total session count)
    """
    cash_register_id = parse_id(cash_register_id, "cash_register_id")
    limit, offset = parse_page(
        limit,
        offset,
        default_limit=current_app.config["SESSION_HISTORY_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )

    query = db.session.query(CashRegisterSession).filter_by(cash_register_id=cash_register_id)
    total = query.count()

    sessions = query.order_by(
        CashRegisterSession.opened_at.desc(), CashRegisterSession.id.desc()
    ).offset(offset).limit(limit).all()

    counts = {}
    if sessions:
        counts = dict(
            db.session.query(CashMovement.session_id, func.count(CashMovement.id))
            .filter(CashMovement.session_id.in_([s.id for s in sessions]))
            .group_by(CashMovement.session_id)
            .all()
        )

    result = []
    for session in sessions:
        d = session.to_dict()
        d["movement_count"] = counts.get(session.id, 0)
        result.append(d)
    return result, total

"""
Cash Movement Ledger Service

WHY: Every event that changes what the drawer should hold (a sale settled,
a refund paid out, petty cash in or out) is recorded against the open
session so it can be reconciled at close.

DESIGN PRINCIPLES:
- Append-only: movements are never updated or deleted
- Amounts are always positive; direction is derived from the type
- Movements can only attach to an OPEN session; the status check and the
  insert run in one transaction with the session row locked
- SALE/REFUND come from order checkout; INCOME/EXPENSE are manual entries
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..enums import MANUAL_TYPES, MOVEMENT_TYPES, PAYMENT_METHODS, MovementType, SessionStatus
from ..errors import NotFoundError, SessionClosedError, SessionNotFoundError, ValidationError
from ..models import CashMovement, CashRegister, CashRegisterSession, Order
from ..time_utils import day_start, next_day_start, utcnow
from ..validation import (
    MAX_DESCRIPTION_LENGTH,
    parse_amount,
    parse_choice,
    parse_date,
    parse_id,
    parse_optional_id,
    parse_optional_text,
    parse_page,
    parse_user_id,
)
from .concurrency import atomic, lock_for_update


@dataclass
class MovementPage:
    items: list[dict]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "total": self.total,
            "has_more": self.has_more,
            "limit": self.limit,
            "offset": self.offset,
        }


def _lock_open_session(session_id: int) -> CashRegisterSession:
    session = lock_for_update(
        db.session.query(CashRegisterSession).filter_by(id=session_id)
    ).populate_existing().first()

    if not session:
        raise SessionNotFoundError("Cash register session not found")

    if session.status == SessionStatus.CLOSED.value:
        raise SessionClosedError("Cannot add movements to a closed session")

    return session


def _require_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise ValidationError("Order not found")
    return order


def _insert_movement(
    session: CashRegisterSession,
    *,
    movement_type: str,
    payment_method: str,
    amount,
    user_id: str,
    description: str | None,
    order_id: int | None,
) -> CashMovement:
    movement = CashMovement(
        session_id=session.id,
        type=movement_type,
        payment_method=payment_method,
        amount=amount,
        description=description,
        order_id=order_id,
        created_by=user_id,
        created_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


# =============================================================================
# RECORDING
# =============================================================================

def add_movement(
    session_id: int,
    type: str,
    payment_method: str,
    amount,
    user_id,
    description: str | None = None,
    order_id: int | None = None,
) -> CashMovement:
    """
    Append a movement to an open session.

    Raises:
        ValidationError: unknown type/method, amount <= 0, unknown order
        SessionNotFoundError: session does not exist
        SessionClosedError: session is CLOSED
    """
    session_id = parse_id(session_id, "session_id")
    movement_type = parse_choice(type, "type", MOVEMENT_TYPES)
    payment_method = parse_choice(payment_method, "payment_method", PAYMENT_METHODS)
    amount = parse_amount(amount, "amount")
    user_id = parse_user_id(user_id)
    description = parse_optional_text(description, "description", max_length=MAX_DESCRIPTION_LENGTH)
    order_id = parse_optional_id(order_id, "order_id")

    with atomic():
        session = _lock_open_session(session_id)
        if order_id is not None:
            _require_order(order_id)

        movement = _insert_movement(
            session,
            movement_type=movement_type,
            payment_method=payment_method,
            amount=amount,
            user_id=user_id,
            description=description,
            order_id=order_id,
        )

    current_app.logger.info(
        "Recorded %s/%s movement %s of %s on session %s",
        movement_type, payment_method, movement.id, amount, session_id,
    )
    return movement


def record_sale(session_id: int, order_id: int, payment_method: str, amount, user_id) -> CashMovement:
    """Settled order payment, as reported by checkout."""
    return add_movement(
        session_id=session_id,
        type=MovementType.SALE.value,
        payment_method=payment_method,
        amount=amount,
        user_id=user_id,
        description=f"Sale - order {order_id}" if order_id else "Sale",
        order_id=order_id,
    )


def record_refund(session_id: int, order_id: int, payment_method: str, amount, reason: str, user_id) -> CashMovement:
    """Money returned to a customer for an order."""
    return add_movement(
        session_id=session_id,
        type=MovementType.REFUND.value,
        payment_method=payment_method,
        amount=amount,
        user_id=user_id,
        description=f"Refund: {reason}" if reason else "Refund",
        order_id=order_id,
    )


def record_order_payments(session_id: int, order_id: int, payments: Iterable, user_id) -> list[CashMovement]:
    """
    Record a split-payment checkout: one SALE movement per tender.

    `payments` is an iterable of mappings with `payment_method` and `amount`.
    Either every tender is recorded or none is.
    """
    session_id = parse_id(session_id, "session_id")
    order_id = parse_id(order_id, "order_id")
    user_id = parse_user_id(user_id)

    tenders = []
    for index, payment in enumerate(payments or []):
        if not isinstance(payment, dict):
            raise ValidationError(f"payments[{index}] must be an object")
        tenders.append((
            parse_choice(payment.get("payment_method"), f"payments[{index}].payment_method", PAYMENT_METHODS),
            parse_amount(payment.get("amount"), f"payments[{index}].amount"),
        ))
    if not tenders:
        raise ValidationError("At least one payment is required")

    with atomic():
        session = _lock_open_session(session_id)
        order = _require_order(order_id)

        movements = [
            _insert_movement(
                session,
                movement_type=MovementType.SALE.value,
                payment_method=payment_method,
                amount=amount,
                user_id=user_id,
                description=f"Order {order.public_code}",
                order_id=order.id,
            )
            for payment_method, amount in tenders
        ]

    current_app.logger.info(
        "Recorded %d payment(s) for order %s on session %s", len(movements), order_id, session_id
    )
    return movements


# =============================================================================
# QUERIES
# =============================================================================

def list_movements(session_id: int) -> list[dict]:
    """All movements of a session, newest first, with the linked order summary."""
    session_id = parse_id(session_id, "session_id")
    if not db.session.get(CashRegisterSession, session_id):
        raise SessionNotFoundError("Cash register session not found")

    movements = db.session.query(CashMovement).filter_by(
        session_id=session_id
    ).order_by(
        CashMovement.created_at.desc(), CashMovement.id.desc()
    ).all()
    return [m.to_dict(include_order=True) for m in movements]


def get_movement(movement_id: int) -> dict:
    movement_id = parse_id(movement_id, "movement_id")
    movement = db.session.get(CashMovement, movement_id)
    if not movement:
        raise NotFoundError("Movement not found")
    return movement.to_dict(include_order=True, include_register=True)


def list_manual_movements(
    branch_id: int,
    date_from: date | str | None = None,
    date_to: date | str | None = None,
    cash_register_id: int | None = None,
    type: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> MovementPage:
    """
    Manual INCOME/EXPENSE movements across all sessions of a branch.

    Date bounds are whole calendar days, both inclusive. SALE/REFUND are
    excluded even without a type filter.
    """
    branch_id = parse_id(branch_id, "branch_id")
    start = parse_date(date_from, "date_from")
    end = parse_date(date_to, "date_to")
    cash_register_id = parse_optional_id(cash_register_id, "cash_register_id")
    movement_type = parse_choice(type, "type", MANUAL_TYPES) if type else None
    limit, offset = parse_page(
        limit,
        offset,
        default_limit=current_app.config["MANUAL_MOVEMENTS_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    if start and end and start > end:
        raise ValidationError("date_from cannot be after date_to")

    query = db.session.query(CashMovement).join(
        CashRegisterSession, CashRegisterSession.id == CashMovement.session_id
    ).join(
        CashRegister, CashRegister.id == CashRegisterSession.cash_register_id
    ).filter(CashRegister.branch_id == branch_id)

    if movement_type:
        query = query.filter(CashMovement.type == movement_type)
    else:
        query = query.filter(CashMovement.type.in_(MANUAL_TYPES))

    if cash_register_id:
        query = query.filter(CashRegister.id == cash_register_id)
    if start:
        query = query.filter(CashMovement.created_at >= day_start(start))
    if end:
        query = query.filter(CashMovement.created_at < next_day_start(end))

    # Get total count before pagination
    total = query.count()

    movements = query.order_by(
        CashMovement.created_at.desc(), CashMovement.id.desc()
    ).offset(offset).limit(limit).all()

    return MovementPage(
        items=[m.to_dict(include_register=True) for m in movements],
        total=total,
        limit=limit,
        offset=offset,
    )

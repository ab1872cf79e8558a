# Overview: Public cash ledger operations returning success/failure results instead of raising.

"""
Cash Ledger Actions

Entry points for callers (web routes, the order checkout flow). Every action
returns an ActionResult:

- success: data holds the serialized payload
- expected failure: error_code names the failure kind (see errors.py) and
  error holds a human-readable message
- store failure: error_code is STORE_ERROR; the exception is logged and the
  transaction has been rolled back

Programming errors are not swallowed; they propagate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import wraps
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .errors import STORE_ERROR, LedgerError, ValidationError
from .services import cash_session_service, movement_service, reconciliation_service, register_service


@dataclass(frozen=True)
class ActionResult:
    success: bool
    data: Any = None
    error_code: str | None = None
    error: str | None = None
    meta: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, **meta) -> "ActionResult":
        return cls(success=True, data=data, meta=meta)

    @classmethod
    def fail(cls, error_code: str, error: str) -> "ActionResult":
        return cls(success=False, error_code=error_code, error=error)

    def to_dict(self) -> dict:
        if self.success:
            payload = {"success": True, "data": self.data}
            payload.update(self.meta)
            return payload
        return {"success": False, "error_code": self.error_code, "error": self.error}


def ledger_action(failure_message: str):
    """
    Wrap a function returning a payload (or an ActionResult) so that ledger
    errors and store errors come back as failed results.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                outcome = f(*args, **kwargs)
            except LedgerError as e:
                db.session.rollback()
                return ActionResult.fail(e.code, str(e))
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception(failure_message)
                return ActionResult.fail(STORE_ERROR, failure_message)
            if isinstance(outcome, ActionResult):
                return outcome
            return ActionResult.ok(outcome)
        return wrapper
    return decorator


# =============================================================================
# REGISTERS
# =============================================================================

UPDATABLE_REGISTER_FIELDS = ("name", "sector_id", "is_active")


@ledger_action("Failed to create cash register")
def create_register(name, branch_id, sector_id=None):
    return register_service.create_register(name, branch_id, sector_id).to_dict()


@ledger_action("Failed to update cash register")
def update_register(register_id, changes: dict):
    if not isinstance(changes, dict):
        raise ValidationError("Invalid update payload")
    unknown = sorted(set(changes) - set(UPDATABLE_REGISTER_FIELDS))
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    return register_service.update_register(register_id, **changes).to_dict()


@ledger_action("Failed to delete cash register")
def delete_register(register_id):
    return {"mode": register_service.delete_register(register_id)}


@ledger_action("Failed to load cash register")
def get_register(register_id):
    return register_service.get_register(register_id)


@ledger_action("Failed to load cash registers")
def list_registers(branch_id):
    return register_service.list_registers(branch_id)


@ledger_action("Failed to load open cash registers")
def list_open_registers(branch_id):
    return register_service.list_open_registers(branch_id)


# =============================================================================
# SESSIONS
# =============================================================================

@ledger_action("Failed to open cash register session")
def open_session(cash_register_id, opening_amount, user_id):
    return cash_session_service.open_session(cash_register_id, opening_amount, user_id).to_dict()


@ledger_action("Failed to close cash register session")
def close_session(session_id, counted_cash, user_id, closing_notes=None):
    return cash_session_service.close_session(session_id, counted_cash, user_id, closing_notes).to_dict()


@ledger_action("Failed to load current session")
def get_current_session(cash_register_id):
    return cash_session_service.get_current_session(cash_register_id)


@ledger_action("Failed to load cash register session")
def get_session(session_id):
    return cash_session_service.get_session(session_id).to_dict()


@ledger_action("Failed to load session history")
def list_session_history(cash_register_id, limit=None, offset=0):
    sessions, total = cash_session_service.list_session_history(cash_register_id, limit, offset)
    return ActionResult.ok(sessions, total=total)


# =============================================================================
# MOVEMENTS
# =============================================================================

@ledger_action("Failed to add movement")
def add_movement(session_id, type, payment_method, amount, user_id, description=None, order_id=None):
    return movement_service.add_movement(
        session_id=session_id,
        type=type,
        payment_method=payment_method,
        amount=amount,
        user_id=user_id,
        description=description,
        order_id=order_id,
    ).to_dict()


@ledger_action("Failed to record sale")
def record_sale(session_id, order_id, payment_method, amount, user_id):
    return movement_service.record_sale(session_id, order_id, payment_method, amount, user_id).to_dict()


@ledger_action("Failed to record refund")
def record_refund(session_id, order_id, payment_method, amount, reason, user_id):
    return movement_service.record_refund(session_id, order_id, payment_method, amount, reason, user_id).to_dict()


@ledger_action("Failed to record order payments")
def record_order_payments(session_id, order_id, payments, user_id):
    movements = movement_service.record_order_payments(session_id, order_id, payments, user_id)
    return [m.to_dict() for m in movements]


@ledger_action("Failed to load movements")
def list_movements(session_id):
    return movement_service.list_movements(session_id)


@ledger_action("Failed to load movement")
def get_movement(movement_id):
    return movement_service.get_movement(movement_id)


@ledger_action("Failed to load movements")
def list_manual_movements(
    branch_id,
    date_from=None,
    date_to=None,
    cash_register_id=None,
    type=None,
    limit=None,
    offset=0,
):
    page = movement_service.list_manual_movements(
        branch_id,
        date_from=date_from,
        date_to=date_to,
        cash_register_id=cash_register_id,
        type=type,
        limit=limit,
        offset=offset,
    )
    return ActionResult.ok(page.items, total=page.total, has_more=page.has_more)


# =============================================================================
# RECONCILIATION
# =============================================================================

@ledger_action("Failed to calculate session summary")
def get_session_summary(session_id):
    return reconciliation_service.get_session_summary(session_id).to_dict()


@ledger_action("Failed to calculate expected cash")
def calculate_expected_cash(session_id):
    return reconciliation_service.calculate_expected_cash(session_id)

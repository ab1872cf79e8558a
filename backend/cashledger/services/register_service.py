"""
Cash Register Registry Service

WHY: A branch runs several tills (front counter, bar, terrace). Each one
needs a stable identity before sessions can be opened against it.

DESIGN PRINCIPLES:
- Register names are unique within a branch (not globally)
- Registers with session history are deactivated, never deleted
- Registers with an open session cannot be deleted
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Branch, Sector, CashRegister, CashRegisterSession, CashMovement
from ..enums import SessionStatus
from ..errors import DuplicateNameError, HasOpenSessionError, NotFoundError, ValidationError
from ..validation import parse_bool, parse_id, parse_name, parse_optional_id
from .concurrency import atomic
from .cash_session_service import get_open_session

# Sentinel for "field not provided" in partial updates (None clears sector_id)
UNSET = object()

DELETE_MODE_SOFT = "DEACTIVATED"
DELETE_MODE_HARD = "DELETED"

RECENT_MOVEMENTS_LIMIT = 10


def _duplicate_name_error() -> DuplicateNameError:
    return DuplicateNameError("A cash register with that name already exists in this branch")


def _require_sector_in_branch(sector_id: int, branch_id: int) -> None:
    sector = db.session.get(Sector, sector_id)
    if not sector or sector.branch_id != branch_id:
        raise ValidationError("Sector not found in this branch")


def _name_taken(branch_id: int, name: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(CashRegister.id).filter_by(branch_id=branch_id, name=name)
    if exclude_id is not None:
        query = query.filter(CashRegister.id != exclude_id)
    return query.first() is not None


# =============================================================================
# REGISTER MANAGEMENT
# =============================================================================

def create_register(name: str, branch_id: int, sector_id: int | None = None) -> CashRegister:
    """
    Create an active cash register in a branch.

    Raises:
        ValidationError: blank name, unknown branch, sector outside the branch
        DuplicateNameError: (branch_id, name) already exists
    """
    name = parse_name(name)
    branch_id = parse_id(branch_id, "branch_id")
    sector_id = parse_optional_id(sector_id, "sector_id")

    with atomic():
        if not db.session.get(Branch, branch_id):
            raise ValidationError("Branch not found")
        if sector_id is not None:
            _require_sector_in_branch(sector_id, branch_id)

        if _name_taken(branch_id, name):
            raise _duplicate_name_error()

        register = CashRegister(
            branch_id=branch_id,
            sector_id=sector_id,
            name=name,
            is_active=True,
        )
        db.session.add(register)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost a race against a concurrent create with the same name
            raise _duplicate_name_error()

    current_app.logger.info("Created cash register %s (%r) in branch %s", register.id, name, branch_id)
    return register


def update_register(register_id: int, *, name=UNSET, sector_id=UNSET, is_active=UNSET) -> CashRegister:
    """
    Partially update a register. Only the keyword arguments actually passed
    are applied; `sector_id=None` clears the sector.

    Raises:
        NotFoundError: register does not exist
        DuplicateNameError: rename collides with another register in the branch
    """
    register_id = parse_id(register_id, "register_id")
    if name is not UNSET:
        name = parse_name(name)
    if sector_id is not UNSET:
        sector_id = parse_optional_id(sector_id, "sector_id")
    if is_active is not UNSET:
        is_active = parse_bool(is_active, "is_active")

    with atomic():
        register = db.session.get(CashRegister, register_id)
        if not register:
            raise NotFoundError("Cash register not found")

        if name is not UNSET and name != register.name:
            if _name_taken(register.branch_id, name, exclude_id=register.id):
                raise _duplicate_name_error()
            register.name = name

        if sector_id is not UNSET:
            if sector_id is not None:
                _require_sector_in_branch(sector_id, register.branch_id)
            register.sector_id = sector_id

        if is_active is not UNSET:
            register.is_active = is_active

        try:
            db.session.flush()
        except IntegrityError:
            raise _duplicate_name_error()

    return register


def delete_register(register_id: int) -> str:
    """
    Delete a register, softly if it has history.

    Returns DELETE_MODE_SOFT when the register was deactivated (it has past
    sessions that must stay referentially intact) or DELETE_MODE_HARD when
    the row was removed (it was never opened).

    Raises:
        NotFoundError: register does not exist
        HasOpenSessionError: a session on this register is still OPEN
    """
    register_id = parse_id(register_id, "register_id")

    with atomic():
        register = db.session.get(CashRegister, register_id, with_for_update=True)
        if not register:
            raise NotFoundError("Cash register not found")

        if get_open_session(register_id):
            raise HasOpenSessionError("Cannot delete a cash register with an open session. Close it first.")

        session_count = db.session.query(func.count(CashRegisterSession.id)).filter_by(
            cash_register_id=register_id
        ).scalar()

        if session_count:
            register.is_active = False
            mode = DELETE_MODE_SOFT
        else:
            db.session.delete(register)
            mode = DELETE_MODE_HARD

    current_app.logger.info("Cash register %s removed (%s)", register_id, mode)
    return mode


# =============================================================================
# QUERIES
# =============================================================================

def get_register(register_id: int) -> dict:
    """
    Register details with its open session (if any) and that session's
    most recent movements.
    """
    register_id = parse_id(register_id, "register_id")
    register = db.session.get(CashRegister, register_id)
    if not register:
        raise NotFoundError("Cash register not found")

    result = register.to_dict()
    open_session = get_open_session(register_id)
    if open_session:
        recent = db.session.query(CashMovement).filter_by(
            session_id=open_session.id
        ).order_by(
            CashMovement.created_at.desc(), CashMovement.id.desc()
        ).limit(RECENT_MOVEMENTS_LIMIT).all()
        session_data = open_session.to_dict()
        session_data["recent_movements"] = [m.to_dict() for m in recent]
        result["current_session"] = session_data
    else:
        result["current_session"] = None
    return result


def list_registers(branch_id: int) -> list[dict]:
    """All registers of a branch (active and inactive) by name, with open session and session count."""
    branch_id = parse_id(branch_id, "branch_id")

    registers = db.session.query(CashRegister).filter_by(
        branch_id=branch_id
    ).order_by(CashRegister.name).all()

    counts = dict(
        db.session.query(CashRegisterSession.cash_register_id, func.count(CashRegisterSession.id))
        .join(CashRegister, CashRegister.id == CashRegisterSession.cash_register_id)
        .filter(CashRegister.branch_id == branch_id)
        .group_by(CashRegisterSession.cash_register_id)
        .all()
    )

    result = []
    for register in registers:
        d = register.to_dict()
        current_session = get_open_session(register.id)
        d["current_session"] = current_session.to_dict() if current_session else None
        d["has_open_session"] = current_session is not None
        d["session_count"] = counts.get(register.id, 0)
        result.append(d)
    return result


def list_open_registers(branch_id: int) -> list[dict]:
    """Active registers of a branch that currently have an OPEN session (checkout picker)."""
    branch_id = parse_id(branch_id, "branch_id")

    rows = db.session.query(CashRegister, CashRegisterSession).join(
        CashRegisterSession,
        CashRegisterSession.cash_register_id == CashRegister.id,
    ).filter(
        CashRegister.branch_id == branch_id,
        CashRegister.is_active.is_(True),
        CashRegisterSession.status == SessionStatus.OPEN.value,
    ).order_by(CashRegister.name).all()

    return [
        {
            "id": register.id,
            "name": register.name,
            "sector": register.sector.to_dict() if register.sector else None,
            "session": {
                "id": session.id,
                "opened_at": session.to_dict()["opened_at"],
                "opening_amount": session.opening_amount,
            },
        }
        for register, session in rows
    ]

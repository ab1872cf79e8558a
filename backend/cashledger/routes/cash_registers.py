# Overview: Flask API routes for cash registers, sessions and movements; parses input and returns JSON responses.

"""
Cash Register API Routes

DESIGN:
- Routes only parse input and translate ActionResults to HTTP
- Business rules live in the services; failures map to 400/404/409
- Store failures answer 500 with a generic message (already logged)
- No authentication here: the operator id travels in the body as user_id
"""

from flask import Blueprint, request, jsonify

from .. import actions
from ..errors import status_for_code


cash_registers_bp = Blueprint("cash_registers", __name__, url_prefix="/api/cash-registers")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _respond(result: actions.ActionResult, success_status: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), status_for_code(result.error_code)


# =============================================================================
# REGISTER MANAGEMENT
# =============================================================================

@cash_registers_bp.post("/")
@cash_registers_bp.post("")
def create_register_route():
    """
    Create a cash register.

    Request body:
    {
        "name": "Caja 1",
        "branch_id": 1,
        "sector_id": 2  (optional)
    }
    """
    data = _json_body()
    result = actions.create_register(
        name=data.get("name"),
        branch_id=data.get("branch_id"),
        sector_id=data.get("sector_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.get("/")
@cash_registers_bp.get("")
def list_registers_route():
    """List a branch's registers with their open session. Query: branch_id (required)."""
    return _respond(actions.list_registers(request.args.get("branch_id")))


@cash_registers_bp.get("/open")
def list_open_registers_route():
    """Registers of a branch that can take payments right now."""
    return _respond(actions.list_open_registers(request.args.get("branch_id")))


@cash_registers_bp.get("/<int:register_id>")
def get_register_route(register_id: int):
    return _respond(actions.get_register(register_id))


@cash_registers_bp.patch("/<int:register_id>")
def update_register_route(register_id: int):
    """Partial update: any of name, sector_id (null clears), is_active."""
    return _respond(actions.update_register(register_id, _json_body()))


@cash_registers_bp.delete("/<int:register_id>")
def delete_register_route(register_id: int):
    """Deactivates registers with history, deletes never-used ones."""
    return _respond(actions.delete_register(register_id))


# =============================================================================
# SESSIONS
# =============================================================================

@cash_registers_bp.post("/<int:register_id>/sessions/open")
def open_session_route(register_id: int):
    """
    Open a session on a register.

    Request body:
    {
        "opening_amount": "200.00",
        "user_id": "cashier-1"
    }
    """
    data = _json_body()
    result = actions.open_session(
        cash_register_id=register_id,
        opening_amount=data.get("opening_amount"),
        user_id=data.get("user_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.get("/<int:register_id>/sessions/current")
def current_session_route(register_id: int):
    return _respond(actions.get_current_session(register_id))


@cash_registers_bp.get("/<int:register_id>/sessions")
def session_history_route(register_id: int):
    """Query params: limit, offset."""
    result = actions.list_session_history(
        register_id,
        limit=request.args.get("limit"),
        offset=request.args.get("offset"),
    )
    return _respond(result)


@cash_registers_bp.get("/sessions/<int:session_id>")
def get_session_route(session_id: int):
    return _respond(actions.get_session(session_id))


@cash_registers_bp.post("/sessions/<int:session_id>/close")
def close_session_route(session_id: int):
    """
    Close a session and compute its variance.

    Request body:
    {
        "counted_cash": "260.00",
        "user_id": "cashier-1",
        "closing_notes": "All good"  (optional)
    }
    """
    data = _json_body()
    result = actions.close_session(
        session_id=session_id,
        counted_cash=data.get("counted_cash"),
        user_id=data.get("user_id"),
        closing_notes=data.get("closing_notes"),
    )
    return _respond(result)


@cash_registers_bp.get("/sessions/<int:session_id>/summary")
def session_summary_route(session_id: int):
    return _respond(actions.get_session_summary(session_id))


@cash_registers_bp.get("/sessions/<int:session_id>/expected-cash")
def expected_cash_route(session_id: int):
    return _respond(actions.calculate_expected_cash(session_id))


# =============================================================================
# MOVEMENTS
# =============================================================================

@cash_registers_bp.get("/sessions/<int:session_id>/movements")
def list_movements_route(session_id: int):
    return _respond(actions.list_movements(session_id))


@cash_registers_bp.post("/sessions/<int:session_id>/movements")
def add_movement_route(session_id: int):
    """
    Record a movement.

    Request body:
    {
        "type": "EXPENSE",
        "payment_method": "CASH",
        "amount": "15.00",
        "user_id": "cashier-1",
        "description": "Ice delivery",  (optional)
        "order_id": 7  (optional)
    }
    """
    data = _json_body()
    result = actions.add_movement(
        session_id=session_id,
        type=data.get("type"),
        payment_method=data.get("payment_method"),
        amount=data.get("amount"),
        user_id=data.get("user_id"),
        description=data.get("description"),
        order_id=data.get("order_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.post("/sessions/<int:session_id>/sales")
def record_sale_route(session_id: int):
    data = _json_body()
    result = actions.record_sale(
        session_id=session_id,
        order_id=data.get("order_id"),
        payment_method=data.get("payment_method"),
        amount=data.get("amount"),
        user_id=data.get("user_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.post("/sessions/<int:session_id>/refunds")
def record_refund_route(session_id: int):
    data = _json_body()
    result = actions.record_refund(
        session_id=session_id,
        order_id=data.get("order_id"),
        payment_method=data.get("payment_method"),
        amount=data.get("amount"),
        reason=data.get("reason"),
        user_id=data.get("user_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.post("/sessions/<int:session_id>/order-payments")
def record_order_payments_route(session_id: int):
    """
    Split-payment checkout.

    Request body:
    {
        "order_id": 7,
        "user_id": "cashier-1",
        "payments": [
            {"payment_method": "CASH", "amount": "20.00"},
            {"payment_method": "CARD_CREDIT", "amount": "35.50"}
        ]
    }
    """
    data = _json_body()
    result = actions.record_order_payments(
        session_id=session_id,
        order_id=data.get("order_id"),
        payments=data.get("payments"),
        user_id=data.get("user_id"),
    )
    return _respond(result, 201)


@cash_registers_bp.get("/movements/manual")
def manual_movements_route():
    """
    Manual INCOME/EXPENSE movements of a branch.

    Query params: branch_id (required), date_from, date_to (YYYY-MM-DD,
    inclusive), cash_register_id, type, limit, offset.
    """
    args = request.args
    result = actions.list_manual_movements(
        args.get("branch_id"),
        date_from=args.get("date_from"),
        date_to=args.get("date_to"),
        cash_register_id=args.get("cash_register_id"),
        type=args.get("type"),
        limit=args.get("limit"),
        offset=args.get("offset"),
    )
    return _respond(result)


@cash_registers_bp.get("/movements/<int:movement_id>")
def get_movement_route(movement_id: int):
    return _respond(actions.get_movement(movement_id))

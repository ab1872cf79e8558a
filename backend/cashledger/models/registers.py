from __future__ import annotations

from ..extensions import db
from cashledger.enums import SessionStatus
from cashledger.time_utils import to_utc_z


class CashRegister(db.Model):
    """
    Physical or logical till belonging to a branch.

    DESIGN: Registers with session history are never removed, only
    deactivated, so their sessions and movements stay auditable. A register
    that was never opened can be deleted outright.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "name", name="uq_cash_registers_branch_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    sector_id = db.Column(db.Integer, db.ForeignKey("sectors.id"), nullable=True, index=True)

    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("cash_registers", lazy=True))
    sector = db.relationship("Sector")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "sector_id": self.sector_id,
            "sector": self.sector.to_dict() if self.sector else None,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name}


class CashRegisterSession(db.Model):
    """
    One open/close cycle of a register.

    LIFECYCLE:
    - OPEN: accepts movements
    - CLOSED: expected cash, counted cash and variance frozen

    At most one OPEN session per register. The service checks this inside
    the opening transaction; the partial unique index below rejects a
    concurrent second insert that slips past the check.
    """
    __tablename__ = "cash_register_sessions"
    __table_args__ = (
        db.Index(
            "uq_cash_register_sessions_one_open",
            "cash_register_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cash_register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SessionStatus.OPEN.value, index=True)  # OPEN, CLOSED

    opening_amount = db.Column(db.Numeric(12, 2), nullable=False)
    opened_by = db.Column(db.String(64), nullable=False)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Set when closing
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by = db.Column(db.String(64), nullable=True)
    expected_cash = db.Column(db.Numeric(12, 2), nullable=True)
    counted_cash = db.Column(db.Numeric(12, 2), nullable=True)
    variance = db.Column(db.Numeric(12, 2), nullable=True)  # counted - expected
    closing_notes = db.Column(db.Text, nullable=True)

    cash_register = db.relationship("CashRegister", backref=db.backref("sessions", lazy="dynamic"))

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_register_id": self.cash_register_id,
            "status": self.status,
            "opening_amount": self.opening_amount,
            "opened_by": self.opened_by,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "closed_by": self.closed_by,
            "expected_cash": self.expected_cash,
            "counted_cash": self.counted_cash,
            "variance": self.variance,
            "closing_notes": self.closing_notes,
        }


class CashMovement(db.Model):
    """
    Append-only drawer ledger entry.

    `amount` is always positive; direction comes from `type`
    (INCOME/SALE in, EXPENSE/REFUND out). Rows are never updated or deleted.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_cash_movements_amount_positive"),
        db.Index("ix_cash_movements_session_created", "session_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)  # INCOME, EXPENSE, SALE, REFUND
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    description = db.Column(db.String(255), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    session = db.relationship("CashRegisterSession", backref=db.backref("movements", lazy=True))
    order = db.relationship("Order")

    def to_dict(self, *, include_order: bool = False, include_register: bool = False) -> dict:
        data = {
            "id": self.id,
            "session_id": self.session_id,
            "type": self.type,
            "payment_method": self.payment_method,
            "amount": self.amount,
            "description": self.description,
            "order_id": self.order_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
        if include_order:
            data["order"] = self.order.to_summary() if self.order else None
        if include_register:
            data["cash_register"] = self.session.cash_register.to_summary()
        return data

from __future__ import annotations

from ..extensions import db
from cashledger.time_utils import to_utc_z


class Branch(db.Model):
    """
    Restaurant branch (location) that owns cash registers.

    Only the columns the cash ledger needs; branch administration lives
    elsewhere.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Sector(db.Model):
    """Dining-room sector a register can be assigned to (bar, terrace, ...)."""
    __tablename__ = "sectors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    color = db.Column(db.String(16), nullable=True)

    branch = db.relationship("Branch", backref=db.backref("sectors", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
        }


class Order(db.Model):
    """
    Order/sale record owned by the checkout subsystem.

    Cash movements keep a weak link to it for reporting; the ledger never
    reads order contents, only the settlement amount and method it is given.
    """
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    public_code = db.Column(db.String(32), nullable=False)
    order_type = db.Column(db.String(32), nullable=False, default="DINE_IN")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "public_code": self.public_code,
            "order_type": self.order_type,
        }

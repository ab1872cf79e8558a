"""Cash ledger initial schema: registers, sessions, movements

Revision ID: 20261018_cash_ledger
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_cash_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "sectors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sectors_branch_id", "sectors", ["branch_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("public_code", sa.String(length=32), nullable=False),
        sa.Column("order_type", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_orders_branch_id", "orders", ["branch_id"])

    op.create_table(
        "cash_registers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("sector_id", sa.Integer(), sa.ForeignKey("sectors.id"), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("branch_id", "name", name="uq_cash_registers_branch_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_registers_branch_id", "cash_registers", ["branch_id"])
    op.create_index("ix_cash_registers_sector_id", "cash_registers", ["sector_id"])
    op.create_index("ix_cash_registers_is_active", "cash_registers", ["is_active"])

    op.create_table(
        "cash_register_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cash_register_id", sa.Integer(), sa.ForeignKey("cash_registers.id"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("opening_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("opened_by", sa.String(length=64), nullable=False),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(length=64), nullable=True),
        sa.Column("expected_cash", sa.Numeric(12, 2), nullable=True),
        sa.Column("counted_cash", sa.Numeric(12, 2), nullable=True),
        sa.Column("variance", sa.Numeric(12, 2), nullable=True),
        sa.Column("closing_notes", sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_register_sessions_cash_register_id", "cash_register_sessions", ["cash_register_id"])
    op.create_index("ix_cash_register_sessions_status", "cash_register_sessions", ["status"])
    op.create_index("ix_cash_register_sessions_opened_at", "cash_register_sessions", ["opened_at"])
    # At most one OPEN session per register
    op.create_index(
        "uq_cash_register_sessions_one_open",
        "cash_register_sessions",
        ["cash_register_id"],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("cash_register_sessions.id"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_cash_movements_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_movements_session_id", "cash_movements", ["session_id"])
    op.create_index("ix_cash_movements_type", "cash_movements", ["type"])
    op.create_index("ix_cash_movements_payment_method", "cash_movements", ["payment_method"])
    op.create_index("ix_cash_movements_order_id", "cash_movements", ["order_id"])
    op.create_index("ix_cash_movements_created_at", "cash_movements", ["created_at"])
    op.create_index("ix_cash_movements_session_created", "cash_movements", ["session_id", "created_at"])


def downgrade():
    op.drop_table("cash_movements")
    op.drop_index("uq_cash_register_sessions_one_open", table_name="cash_register_sessions")
    op.drop_table("cash_register_sessions")
    op.drop_table("cash_registers")
    op.drop_table("orders")
    op.drop_table("sectors")
    op.drop_table("branches")

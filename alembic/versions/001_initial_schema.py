"""Initial schema — accounts, holds, revenue_records.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("owner_id", sa.Uuid, nullable=False),
        sa.Column("balance", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )
    op.create_index("ix_accounts_owner_id", "accounts", ["owner_id"], unique=True)

    op.create_table(
        "holds",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("hold_id", sa.Uuid, nullable=False, unique=True),
        sa.Column("owner_id", sa.Uuid, nullable=False),
        sa.Column("service_id", sa.Uuid, nullable=False),
        sa.Column("order_id", sa.Uuid, nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="ck_holds_amount_positive"),
    )
    op.create_index(
        "ix_holds_settlement_key", "holds",
        ["owner_id", "service_id", "order_id", "amount"],
    )

    op.create_table(
        "revenue_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("owner_id", sa.Uuid, nullable=False),
        sa.Column("service_id", sa.Uuid, nullable=False),
        sa.Column("order_id", sa.Uuid, nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("service_id", "order_id", name="uq_revenue_records_service_order"),
    )
    op.create_index("ix_revenue_records_owner_id", "revenue_records", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_revenue_records_owner_id", table_name="revenue_records")
    op.drop_table("revenue_records")
    op.drop_index("ix_holds_settlement_key", table_name="holds")
    op.drop_table("holds")
    op.drop_index("ix_accounts_owner_id", table_name="accounts")
    op.drop_table("accounts")

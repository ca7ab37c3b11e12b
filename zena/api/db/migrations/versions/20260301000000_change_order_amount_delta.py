"""Signed amount_delta on change orders.

Deductive change orders reduce the committed contract value; amount keeps
the magnitude compared against the dual approval threshold.

Revision ID: 20260301000000
Revises: 20260101000000
Create Date: 2026-03-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260301000000'
down_revision = '20260101000000'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column('change_orders', sa.Column('amount_delta', sa.Numeric(18, 2), nullable=True))
    # Existing change orders were all additive
    op.execute("UPDATE change_orders SET amount_delta = amount")
    op.alter_column('change_orders', 'amount_delta', nullable=False)


def downgrade() -> None:
    op.drop_column('change_orders', 'amount_delta')

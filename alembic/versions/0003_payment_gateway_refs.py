"""payments: provider_payment_id -> payment_token, add gateway_transaction_id

Revision ID: 0003_payment_refs
Revises: 0002_segment_tiers
Create Date: 2026-10-20 11:00:00.000000
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0003_payment_refs"
down_revision: Union[str, Sequence[str], None] = "0002_segment_tiers"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("payments") as batch:
        batch.alter_column("provider_payment_id", new_column_name="payment_token", existing_type=sa.String(255))
        batch.add_column(sa.Column("gateway_transaction_id", sa.String(64), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("payments") as batch:
        batch.drop_column("gateway_transaction_id")
        batch.alter_column("payment_token", new_column_name="provider_payment_id", existing_type=sa.String(255))

"""segment spend tiers and user lifetime spend

Revision ID: 0002_segment_tiers
Revises: 0001_initial
Create Date: 2026-10-20 10:00:00.000000
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_segment_tiers"
down_revision: Union[str, Sequence[str], None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("segments") as batch:
        batch.add_column(sa.Column("min_spend_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")))
        batch.add_column(sa.Column("max_spend_cents", sa.BigInteger(), nullable=True))
        batch.add_column(sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()))
        batch.create_check_constraint("ck_segments_min_spend_non_negative", "min_spend_cents >= 0")

    with op.batch_alter_table("users") as batch:
        batch.add_column(
            sa.Column("lifetime_spent_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0"))
        )


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.drop_column("lifetime_spent_cents")

    with op.batch_alter_table("segments") as batch:
        batch.drop_constraint("ck_segments_min_spend_non_negative", type_="check")
        batch.drop_column("is_active")
        batch.drop_column("max_spend_cents")
        batch.drop_column("min_spend_cents")

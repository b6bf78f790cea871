"""add bom item tracking

Revision ID: 8c41e0b2d5a7
Revises: 3f2a9c1d7b40
Create Date: 2026-10-20 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c41e0b2d5a7"
down_revision: Union[str, None] = "3f2a9c1d7b40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "bom_item_tracking",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("build_number", sa.String(64), nullable=False),
        sa.Column("item_path", sa.String(1024), nullable=False),
        sa.Column("serial_number", sa.String(255), nullable=True),
        sa.Column("batch_number", sa.String(255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "order_id", "build_number", "item_path", name="uq_bom_item_tracking_item"
        ),
    )
    op.create_index(
        "ix_bom_item_tracking_order_id",
        "bom_item_tracking",
        ["order_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_bom_item_tracking_order_id", table_name="bom_item_tracking")
    op.drop_table("bom_item_tracking")

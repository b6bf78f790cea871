"""add bom catalog and order configuration schema

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. parts
    op.create_table(
        "parts",
        sa.Column("part_id", sa.String(128), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("part_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("manufacturer_name", sa.String(255), nullable=True),
        sa.Column("manufacturer_part_number", sa.String(255), nullable=True),
        sa.Column("requires_serial_tracking", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_outsourced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    # 2. assemblies
    op.create_table(
        "assemblies",
        sa.Column("assembly_id", sa.String(128), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("assembly_type", sa.String(64), nullable=False),
        sa.Column("category_code", sa.String(32), nullable=True),
        sa.Column("subcategory_code", sa.String(32), nullable=True),
        sa.Column("requires_serial_tracking", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_outsourced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    # 3. assembly_components (child ids are not foreign keys)
    op.create_table(
        "assembly_components",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "parent_assembly_id",
            sa.String(128),
            sa.ForeignKey("assemblies.assembly_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("child_part_id", sa.String(128), nullable=True),
        sa.Column("child_assembly_id", sa.String(128), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_assembly_components_parent_position",
        "assembly_components",
        ["parent_assembly_id", "position"],
    )

    # 4. order_configurations
    op.create_table(
        "order_configurations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("build_number", sa.String(64), nullable=False),
        sa.Column("customer_json", sa.JSON(), nullable=False),
        sa.Column("configuration_json", sa.JSON(), nullable=False),
        sa.Column("accessories_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("order_id", "build_number", name="uq_order_configurations_build"),
    )
    op.create_index(
        "ix_order_configurations_order_id",
        "order_configurations",
        ["order_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_order_configurations_order_id", table_name="order_configurations")
    op.drop_table("order_configurations")
    op.drop_index("ix_assembly_components_parent_position", table_name="assembly_components")
    op.drop_table("assembly_components")
    op.drop_table("assemblies")
    op.drop_table("parts")

# app/db/models/catalog.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


# =========================================================
# 1. Leaf parts
# =========================================================

class Part(Base):
    __tablename__ = "parts"

    part_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    part_type: Mapped[str] = mapped_column(String(64), nullable=False, default="COMPONENT")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ACTIVE")

    manufacturer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    manufacturer_part_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Serial/batch tracking is assigned per BOM node downstream
    requires_serial_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_outsourced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


# =========================================================
# 2. Assemblies + ordered component links
# =========================================================

class Assembly(Base):
    __tablename__ = "assemblies"

    assembly_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    assembly_type: Mapped[str] = mapped_column(String(64), nullable=False, default="SIMPLE")
    category_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    subcategory_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    requires_serial_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_outsourced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    components: Mapped[List["AssemblyComponent"]] = relationship(
        "AssemblyComponent",
        back_populates="parent",
        foreign_keys="AssemblyComponent.parent_assembly_id",
        order_by="AssemblyComponent.position",
        cascade="all, delete-orphan",
    )


class AssemblyComponent(Base):
    """
    One line of an assembly's component list.

    Exactly one of child_part_id / child_assembly_id is expected to be set.
    The columns are deliberately not foreign keys: broken links must survive
    in the table so the expander can report them by name.
    """

    __tablename__ = "assembly_components"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    parent_assembly_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("assemblies.assembly_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    child_part_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    child_assembly_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    parent: Mapped["Assembly"] = relationship(
        "Assembly",
        back_populates="components",
        foreign_keys=[parent_assembly_id],
    )

    __table_args__ = (
        Index("ix_assembly_components_parent_position", "parent_assembly_id", "position"),
    )

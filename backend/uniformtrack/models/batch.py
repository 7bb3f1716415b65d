"""Warehouse batch stock models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uniformtrack.db.base import Base, TimestampMixin, VersionMixin
from uniformtrack.models.school import new_id


class Batch(Base, TimestampMixin):
    """A delivery of uniform stock into the warehouse."""

    __tablename__ = "batches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    school_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("schools.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    items: Mapped[List["BatchItem"]] = relationship(
        "BatchItem",
        back_populates="batch",
        order_by="BatchItem.position",
        cascade="all, delete-orphan",
    )


class BatchItem(Base, VersionMixin):
    """One uniform variant (type + colour) inside a batch."""

    __tablename__ = "batch_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    batch_id: Mapped[str] = mapped_column(
        ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uniform_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    variant_type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    color: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    batch: Mapped["Batch"] = relationship("Batch", back_populates="items")
    sizes: Mapped[List["BatchItemSize"]] = relationship(
        "BatchItemSize",
        back_populates="item",
        order_by="BatchItemSize.position",
        cascade="all, delete-orphan",
    )


class BatchItemSize(Base):
    """Remaining stock of one size of a batch item.

    ``quantity`` is authoritative and never negative. ``depleted_at`` is set
    the first time quantity reaches zero and is never cleared.
    """

    __tablename__ = "batch_item_sizes"
    __table_args__ = (
        UniqueConstraint("item_id", "size", name="uq_batch_item_size"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(
        ForeignKey("batch_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    initial_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    depleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    item: Mapped["BatchItem"] = relationship("BatchItem", back_populates="sizes")

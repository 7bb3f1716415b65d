"""Durable intent records for uniform distributions."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from uniformtrack.db.base import Base, TimestampMixin


class IntentStatus(str, Enum):
    """Lifecycle of a distribution intent."""

    PENDING = "pending"  # Recorded, writes not yet applied
    COMMITTED = "committed"  # Log entry and deductions applied together
    FAILED = "failed"  # Writes rolled back; needs retry or manual reconciliation
    REJECTED = "rejected"  # Writes rolled back because stock or the record moved on; final


class DistributionIntent(Base, TimestampMixin):
    """Log-entry plus stock-deduction unit, written before it is applied."""

    __tablename__ = "distribution_intents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entry: Mapped[dict] = mapped_column(JSON, nullable=False)
    allocations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    stock_overridden: Mapped[bool] = mapped_column(default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=IntentStatus.PENDING.value, nullable=False, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

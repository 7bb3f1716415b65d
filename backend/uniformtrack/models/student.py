"""Student and uniform log models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uniformtrack.db.base import Base, TimestampMixin, VersionMixin
from uniformtrack.models.school import new_id


class Student(Base, TimestampMixin, VersionMixin):
    """A student enrolled at a school.

    Students are a top-level table keyed by school; the school row holds no
    copy of them.
    """

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    school_id: Mapped[str] = mapped_column(
        ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    form: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)

    # Relationships
    school: Mapped["School"] = relationship("School", back_populates="students")
    log_entries: Mapped[List["UniformLogEntry"]] = relationship(
        "UniformLogEntry",
        back_populates="student",
        order_by="UniformLogEntry.id",
        cascade="all, delete-orphan",
    )


class UniformLogEntry(Base):
    """Append-only receipt or size-request event for a student."""

    __tablename__ = "uniform_log_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    uniform_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    uniform_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    uniform_type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    size_received: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    size_wanted: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    logged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    logged_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    intent_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    student: Mapped["Student"] = relationship("Student", back_populates="log_entries")


# Forward references
from uniformtrack.models.school import School

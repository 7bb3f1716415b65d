"""School and embedded uniform policy models."""

from __future__ import annotations

from typing import Optional, List
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uniformtrack.db.base import Base, TimestampMixin, VersionMixin


def new_id() -> str:
    return uuid4().hex


class School(Base, TimestampMixin, VersionMixin):
    """A school and the uniform policy list it owns."""

    __tablename__ = "schools"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    # Relationships
    policies: Mapped[List["UniformPolicy"]] = relationship(
        "UniformPolicy",
        back_populates="school",
        order_by="UniformPolicy.position",
        cascade="all, delete-orphan",
    )
    students: Mapped[List["Student"]] = relationship(
        "Student",
        back_populates="school",
        cascade="all, delete-orphan",
    )


class UniformPolicy(Base):
    """One entry of a school's uniform policy list.

    ``policy_id`` is the public policy id and may be NULL for policies
    imported from records that predate ids; ``row_id`` is only the storage key.
    """

    __tablename__ = "uniform_policies"

    row_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    school_id: Mapped[str] = mapped_column(
        ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    uniform_id: Mapped[str] = mapped_column(String(64), nullable=False)
    uniform_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    uniform_type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quantity_per_student: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    school: Mapped["School"] = relationship("School", back_populates="policies")


# Forward references
from uniformtrack.models.student import Student

"""Uniform catalog model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from uniformtrack.db.base import Base, TimestampMixin
from uniformtrack.models.school import new_id


class Uniform(Base, TimestampMixin):
    """A uniform product that policies and batch items refer to."""

    __tablename__ = "uniforms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    # Free-form catalog values (e.g. "Male", "Unisex", "JUNIOR"); NULL means any
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    school_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

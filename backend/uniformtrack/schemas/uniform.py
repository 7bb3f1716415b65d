"""Uniform catalog schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from uniformtrack.schemas.base import RecordModel


class Uniform(RecordModel):
    id: str
    name: str
    type: str = ""
    gender: Optional[str] = None
    level: Optional[str] = None
    school_id: Optional[str] = None


class UniformCreate(RecordModel):
    name: str = Field(min_length=1, max_length=200)
    type: str = ""
    gender: Optional[str] = None
    level: Optional[str] = None
    school_id: Optional[str] = None

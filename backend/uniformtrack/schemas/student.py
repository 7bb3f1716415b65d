"""Student and uniform log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from uniformtrack.schemas.base import RecordModel
from uniformtrack.schemas.school import Gender, Level


class LogEntry(RecordModel):
    """One receipt or size-request event from a student's uniform log.

    A received entry carries ``size_received`` and a positive quantity; a size
    request carries ``size_wanted`` and quantity 0. Stored entries are not
    re-validated against that rule.
    """

    uniform_id: str
    uniform_name: str = ""
    uniform_type: str = ""
    quantity_received: int = 0
    size_received: Optional[str] = None
    size_wanted: Optional[str] = None
    logged_at: Optional[datetime] = None
    logged_by: Optional[str] = None
    intent_id: Optional[str] = None

    @field_validator("quantity_received", mode="before")
    @classmethod
    def missing_quantity_is_zero(cls, v):
        return 0 if v is None or v == "" else v

    @field_validator("uniform_name", "uniform_type", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def is_size_request(self) -> bool:
        return bool(self.size_wanted) and not self.size_received


class Student(RecordModel):
    id: str
    name: str
    form: str = ""
    level: str
    gender: str
    school_id: str
    uniform_log: List[LogEntry] = Field(default_factory=list)
    version: int = 1

    @field_validator("uniform_log", mode="before")
    @classmethod
    def default_log(cls, v):
        return [] if v is None else v


class StudentCreate(RecordModel):
    name: str = Field(max_length=200)
    form: str = Field(max_length=50)
    level: Level = "Junior"
    gender: Gender = "Boys"


class StudentUpdate(RecordModel):
    """Fields of the edit-student form; omitted fields are left unchanged.

    Changing level or gender changes which policies apply to the student.
    """

    name: Optional[str] = Field(default=None, max_length=200)
    form: Optional[str] = Field(default=None, max_length=50)
    level: Optional[Level] = None
    gender: Optional[Gender] = None
    expected_version: Optional[int] = None


class LogUniformRequest(RecordModel):
    """Payload of the log-uniform form.

    Exactly one of ``size_received`` (the student got the item) and
    ``size_wanted`` (the size was not available) must be given.
    """

    uniform_id: str = Field(min_length=1)
    uniform_name: str = ""
    uniform_type: str = ""
    quantity_received: int = Field(default=1, ge=0)
    size_received: Optional[str] = None
    size_wanted: Optional[str] = None
    logged_by: Optional[str] = None
    variant_type: Optional[str] = None
    color: Optional[str] = None
    allow_override: bool = False

    @model_validator(mode="after")
    def exactly_one_size(self) -> "LogUniformRequest":
        received = (self.size_received or "").strip()
        wanted = (self.size_wanted or "").strip()
        if bool(received) == bool(wanted):
            raise ValueError("Provide either sizeReceived or sizeWanted, not both")
        self.size_received = received or None
        self.size_wanted = wanted or None
        return self

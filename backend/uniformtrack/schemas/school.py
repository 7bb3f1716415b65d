"""School and uniform policy schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from uniformtrack.schemas.base import RecordModel

LEVELS = ("Junior", "Senior")
GENDERS = ("Boys", "Girls")

Level = Literal["Junior", "Senior"]
Gender = Literal["Boys", "Girls"]


class Policy(RecordModel):
    """A uniform requirement for one (level, gender) group of a school.

    Stored records are read as-is: ``id`` may be missing on legacy policies
    and level/gender keep whatever case they were saved with.
    """

    id: Optional[str] = None
    uniform_id: str
    uniform_name: str = ""
    uniform_type: str = ""
    level: str
    gender: str
    is_required: bool = False
    quantity_per_student: int = 1

    @field_validator("uniform_name", "uniform_type", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class PolicyCreate(RecordModel):
    """A policy item submitted from the add-policy form."""

    uniform_id: str = Field(min_length=1)
    uniform_name: str = ""
    uniform_type: str = ""
    level: Level
    gender: Gender
    is_required: bool = False
    quantity_per_student: int = Field(default=1, ge=1)


class PolicyAddRequest(RecordModel):
    policies: List[PolicyCreate]
    expected_version: Optional[int] = None


class PolicyRemoveRequest(RecordModel):
    """Identify a policy by id, or by composite key for legacy records."""

    policy_id: Optional[str] = None
    uniform_id: Optional[str] = None
    level: Optional[str] = None
    gender: Optional[str] = None
    expected_version: Optional[int] = None


class School(RecordModel):
    id: str
    name: str
    status: str = "active"
    uniform_policy: List[Policy] = Field(default_factory=list)
    version: int = 1

    @field_validator("uniform_policy", mode="before")
    @classmethod
    def default_policy_list(cls, v):
        return [] if v is None else v


class SchoolCreate(RecordModel):
    name: str = Field(max_length=200)
    status: Literal["active", "inactive"] = "active"


class SchoolUpdate(RecordModel):
    """Fields of the edit-school form; omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, max_length=200)
    status: Optional[Literal["active", "inactive"]] = None
    expected_version: Optional[int] = None

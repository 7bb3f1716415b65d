"""Distribution intent and result schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from uniformtrack.schemas.base import RecordModel
from uniformtrack.schemas.batch import Allocation
from uniformtrack.schemas.student import LogEntry, Student


class DistributionIntentRecord(RecordModel):
    """Durable description of one log-plus-deduct unit of work."""

    id: str
    student_id: str
    entry: LogEntry
    allocations: List[Allocation] = Field(default_factory=list)
    stock_overridden: bool = False
    status: str = "pending"
    attempts: int = 0
    error: Optional[str] = None
    created_at: Optional[datetime] = None


class DistributionResult(RecordModel):
    intent_id: str
    entry: LogEntry
    allocations: List[Allocation] = Field(default_factory=list)
    stock_overridden: bool = False
    student: Student

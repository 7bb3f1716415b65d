"""Deficit and dashboard report schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from uniformtrack.schemas.base import RecordModel
from uniformtrack.schemas.student import LogEntry


class DeficitStatus(str, Enum):
    """Fulfilment status of a student or a single requirement."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    PENDING = "pending"
    NO_POLICY = "no-policy"  # No policy applies; never reported as complete


class StudentDeficit(RecordModel):
    student_id: str
    total_required: int
    total_received: int
    total_deficit: int
    completion_rate: int
    status: DeficitStatus
    has_deficit: bool


class Requirement(RecordModel):
    """A student's progress against one applicable policy."""

    policy_id: Optional[str] = None
    uniform_id: str
    uniform_name: str
    uniform_type: str
    level: str
    gender: str
    is_required: bool
    quantity_per_student: int
    received_quantity: int
    remaining_quantity: int
    status: DeficitStatus
    log_entries: List[LogEntry] = Field(default_factory=list)
    pending_requests: List[LogEntry] = Field(default_factory=list)


class AffectedStudent(RecordModel):
    id: str
    name: str
    deficit: int


class UniformDeficit(RecordModel):
    uniform_id: str
    uniform_name: str
    uniform_type: str
    level: str
    gender: str
    total_deficit: int = 0
    students_affected: List[AffectedStudent] = Field(default_factory=list)


class RequestingStudent(RecordModel):
    id: str
    name: str
    requested_at: Optional[datetime] = None


class SizeRequest(RecordModel):
    uniform_id: str
    uniform_name: str
    size_wanted: str
    students: List[RequestingStudent] = Field(default_factory=list)


class SchoolDeficitReport(RecordModel):
    uniform_deficits: List[UniformDeficit] = Field(default_factory=list)
    size_requests: List[SizeRequest] = Field(default_factory=list)
    total_students: int = 0
    students_with_deficits: int = 0


class SchoolStudentStats(RecordModel):
    total_students: int
    students: Dict[str, StudentDeficit] = Field(default_factory=dict)
    status_counts: Dict[str, int] = Field(default_factory=dict)


class DashboardSummary(RecordModel):
    total_schools: int
    active_schools: int
    total_students: int
    total_batches: int
    active_batches: int
    total_inventory: int
    low_stock_items: int
    open_intents: int

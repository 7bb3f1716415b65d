"""School routes - schools, their policy lists, students and deficit reports."""

from typing import List, Optional

from fastapi import APIRouter, Request, Response, status

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.report import SchoolDeficitReport, SchoolStudentStats
from uniformtrack.schemas.school import (
    Policy,
    PolicyAddRequest,
    PolicyRemoveRequest,
    School,
    SchoolCreate,
    SchoolUpdate,
)
from uniformtrack.schemas.student import Student, StudentCreate
from uniformtrack.schemas.uniform import Uniform
from uniformtrack.services.policy_service import PolicyService
from uniformtrack.services.report_service import ReportService
from uniformtrack.services.school_service import SchoolService

router = APIRouter()


# ==================== SCHOOLS ====================

@router.get("/", response_model=List[School])
@limiter.limit("60/minute")
def list_schools(request: Request, store: Store):
    """List all schools with their policy lists."""
    return SchoolService(store).list_schools()


@router.post("/", response_model=School, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_school(request: Request, store: Store, data: SchoolCreate):
    """Create a school with an empty policy list."""
    return SchoolService(store).add_school(data)


@router.get("/{school_id}", response_model=School)
@limiter.limit("60/minute")
def get_school(request: Request, school_id: str, store: Store):
    return SchoolService(store).get_school(school_id)


@router.put("/{school_id}", response_model=School)
@limiter.limit("30/minute")
def update_school(request: Request, school_id: str, store: Store, data: SchoolUpdate):
    """Edit name or status; fields left out are unchanged."""
    return SchoolService(store).update_school(school_id, data)


@router.delete("/{school_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_school(request: Request, school_id: str, store: Store):
    """Delete the school and its enrolled students."""
    SchoolService(store).delete_school(school_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== POLICIES ====================

@router.get("/{school_id}/policies", response_model=List[Policy])
@limiter.limit("60/minute")
def list_policies(
    request: Request,
    school_id: str,
    store: Store,
    level: Optional[str] = None,
    gender: Optional[str] = None,
):
    """List policies, optionally filtered to one level and/or gender."""
    return PolicyService(store).list_policies(school_id, level=level, gender=gender)


@router.post("/{school_id}/policies", response_model=School, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_policies(request: Request, school_id: str, store: Store, data: PolicyAddRequest):
    """Add one or more policies; each gets a new id."""
    return PolicyService(store).add_policies(
        school_id, data.policies, expected_version=data.expected_version
    )


@router.post("/{school_id}/policies/remove", response_model=School)
@limiter.limit("30/minute")
def remove_policy(request: Request, school_id: str, store: Store, data: PolicyRemoveRequest):
    """Remove a policy by id, or every policy matching a legacy composite key."""
    return PolicyService(store).remove(school_id, data)


@router.delete("/{school_id}/policies/{policy_id}", response_model=School)
@limiter.limit("30/minute")
def delete_policy(
    request: Request,
    school_id: str,
    policy_id: str,
    store: Store,
    expected_version: Optional[int] = None,
):
    """Remove exactly the policy with this id."""
    return PolicyService(store).remove(
        school_id, PolicyRemoveRequest(policy_id=policy_id, expected_version=expected_version)
    )


@router.get("/{school_id}/eligible-uniforms", response_model=List[Uniform])
@limiter.limit("60/minute")
def eligible_uniforms(request: Request, school_id: str, level: str, gender: str, store: Store):
    """Catalog uniforms that may be added to a level/gender policy group."""
    return PolicyService(store).eligible_uniforms(school_id, level, gender)


# ==================== STUDENTS ====================

@router.get("/{school_id}/students", response_model=List[Student])
@limiter.limit("60/minute")
def list_students(request: Request, school_id: str, store: Store):
    return SchoolService(store).list_students(school_id)


@router.post("/{school_id}/students", response_model=Student, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_student(request: Request, school_id: str, store: Store, data: StudentCreate):
    """Enroll a student at the school."""
    return SchoolService(store).add_student(school_id, data)


# ==================== REPORTS ====================

@router.get("/{school_id}/deficit-report", response_model=SchoolDeficitReport)
@limiter.limit("60/minute")
def deficit_report(request: Request, school_id: str, store: Store):
    """Outstanding uniforms per policy group and open size requests."""
    return ReportService(store).school_deficit_report(school_id)


@router.get("/{school_id}/student-stats", response_model=SchoolStudentStats)
@limiter.limit("60/minute")
def student_stats(request: Request, school_id: str, store: Store):
    """Per-student completion status for the student list."""
    return ReportService(store).school_student_stats(school_id)

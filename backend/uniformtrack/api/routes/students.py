"""Student routes - details, requirements and uniform logging."""

from typing import List

from fastapi import APIRouter, Request, Response, status

from uniformtrack.api.deps import Store
from uniformtrack.core.rate_limit import limiter
from uniformtrack.schemas.distribution import DistributionResult
from uniformtrack.schemas.report import Requirement, StudentDeficit
from uniformtrack.schemas.student import LogUniformRequest, Student, StudentUpdate
from uniformtrack.services.distribution_service import DistributionService
from uniformtrack.services.report_service import ReportService
from uniformtrack.services.school_service import SchoolService

router = APIRouter()


@router.get("/{student_id}", response_model=Student)
@limiter.limit("60/minute")
def get_student(request: Request, student_id: str, store: Store):
    return SchoolService(store).get_student(student_id)


@router.put("/{student_id}", response_model=Student)
@limiter.limit("30/minute")
def update_student(request: Request, student_id: str, store: Store, data: StudentUpdate):
    """Edit a student; a new level or gender changes the applicable policies."""
    return SchoolService(store).update_student(student_id, data)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_student(request: Request, student_id: str, store: Store):
    SchoolService(store).delete_student(student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{student_id}/deficit", response_model=StudentDeficit)
@limiter.limit("60/minute")
def get_student_deficit(request: Request, student_id: str, store: Store):
    """Totals, completion rate and status badge."""
    return ReportService(store).student_deficit(student_id)


@router.get("/{student_id}/requirements", response_model=List[Requirement])
@limiter.limit("60/minute")
def get_student_requirements(request: Request, student_id: str, store: Store):
    """Progress against every policy that applies to the student."""
    return ReportService(store).student_requirements(student_id)


@router.post(
    "/{student_id}/uniform-log",
    response_model=DistributionResult,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def log_uniform(request: Request, student_id: str, store: Store, data: LogUniformRequest):
    """Log a received uniform (deducting stock) or a size request.

    Returns 409 with the available quantity when stock is short, unless
    ``allowOverride`` is set.
    """
    return DistributionService(store).log_uniform(student_id, data)

"""Deficit Calculator - per-student and per-school uniform deficits.

Combines the policy index with the log aggregator:

- Per student, every applicable policy counts (duplicates included) and the
  received total is the raw log sum, so a student can receive more than
  required. Per-policy deficit is floored at zero.
- Per school, policies are first collapsed to one per
  (uniform_id, level, gender), keeping the first one seen. Later duplicates
  are ignored for the aggregate report only.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from uniformtrack.schemas.report import (
    AffectedStudent,
    DeficitStatus,
    Requirement,
    RequestingStudent,
    SchoolDeficitReport,
    SchoolStudentStats,
    SizeRequest,
    StudentDeficit,
    UniformDeficit,
)
from uniformtrack.schemas.school import Policy
from uniformtrack.schemas.student import Student
from uniformtrack.services.reconciliation.log_aggregator import aggregate, pending_size_requests
from uniformtrack.services.reconciliation.policy_index import (
    applicable_policies,
    unique_policy_groups,
)

logger = logging.getLogger(__name__)


def policy_deficit(required: int, received: int) -> int:
    """Outstanding quantity for one policy; never negative."""
    return max(0, required - received)


def completion_rate(total_received: int, total_required: int) -> int:
    """Percentage received, rounded half up. 0 when nothing is required."""
    if total_required <= 0:
        return 0
    return (200 * total_received + total_required) // (2 * total_required)


def _status_for_rate(rate: int) -> DeficitStatus:
    if rate == 100:
        return DeficitStatus.COMPLETE
    if rate > 0:
        return DeficitStatus.PARTIAL
    return DeficitStatus.PENDING


def compute_student_deficit(student: Student, policies: Iterable[Policy]) -> StudentDeficit:
    """Totals and status badge for one student."""
    total_required = 0
    total_received = 0
    total_deficit = 0
    has_deficit = False

    for policy in applicable_policies(policies, student.level, student.gender):
        received = aggregate(student.uniform_log, policy.uniform_id).received_quantity
        total_required += policy.quantity_per_student
        total_received += received
        total_deficit += policy_deficit(policy.quantity_per_student, received)
        if received < policy.quantity_per_student:
            has_deficit = True

    if total_required == 0:
        return StudentDeficit(
            student_id=student.id,
            total_required=0,
            total_received=total_received,
            total_deficit=0,
            completion_rate=0,
            status=DeficitStatus.NO_POLICY,
            has_deficit=False,
        )

    rate = completion_rate(total_received, total_required)
    return StudentDeficit(
        student_id=student.id,
        total_required=total_required,
        total_received=total_received,
        total_deficit=total_deficit,
        completion_rate=rate,
        status=_status_for_rate(rate),
        has_deficit=has_deficit,
    )


def compute_requirements(student: Student, policies: Iterable[Policy]) -> List[Requirement]:
    """One row per applicable policy, as shown on the student details view."""
    requirements = []
    for policy in applicable_policies(policies, student.level, student.gender):
        summary = aggregate(student.uniform_log, policy.uniform_id)
        received = summary.received_quantity
        required = policy.quantity_per_student
        if received >= required:
            status = DeficitStatus.COMPLETE
        elif received > 0:
            status = DeficitStatus.PARTIAL
        else:
            status = DeficitStatus.PENDING
        requirements.append(Requirement(
            policy_id=policy.id,
            uniform_id=policy.uniform_id,
            uniform_name=policy.uniform_name,
            uniform_type=policy.uniform_type,
            level=policy.level,
            gender=policy.gender,
            is_required=policy.is_required,
            quantity_per_student=required,
            received_quantity=received,
            remaining_quantity=policy_deficit(required, received),
            status=status,
            log_entries=list(summary.entries),
            pending_requests=list(summary.pending_requests),
        ))
    return requirements


def compute_school_deficit_report(
    students: Iterable[Student],
    policies: Iterable[Policy],
) -> SchoolDeficitReport:
    """Aggregate deficits per uniform group and open size requests per size."""
    groups = unique_policy_groups(policies)
    uniform_names: Dict[str, str] = {}
    for policy in groups:
        uniform_names.setdefault(policy.uniform_id, policy.uniform_name)

    deficits: Dict[Tuple[str, str, str], UniformDeficit] = {}
    requests: Dict[Tuple[str, str], SizeRequest] = {}
    students = list(students or ())
    students_with_deficits = 0

    for student in students:
        student_has_deficit = False

        for policy in groups:
            if policy.level != student.level or policy.gender != student.gender:
                continue
            received = aggregate(student.uniform_log, policy.uniform_id).received_quantity
            deficit = policy_deficit(policy.quantity_per_student, received)
            if deficit <= 0:
                continue

            student_has_deficit = True
            key = (policy.uniform_id, policy.level, policy.gender)
            bucket = deficits.get(key)
            if bucket is None:
                bucket = UniformDeficit(
                    uniform_id=policy.uniform_id,
                    uniform_name=policy.uniform_name,
                    uniform_type=policy.uniform_type,
                    level=policy.level,
                    gender=policy.gender,
                )
                deficits[key] = bucket
            bucket.total_deficit += deficit
            bucket.students_affected.append(
                AffectedStudent(id=student.id, name=student.name, deficit=deficit)
            )

        if student_has_deficit:
            students_with_deficits += 1

        for entry in pending_size_requests(student.uniform_log):
            key = (entry.uniform_id, entry.size_wanted)
            bucket = requests.get(key)
            if bucket is None:
                bucket = SizeRequest(
                    uniform_id=entry.uniform_id,
                    uniform_name=uniform_names.get(entry.uniform_id) or entry.uniform_name,
                    size_wanted=entry.size_wanted,
                )
                requests[key] = bucket
            if not any(s.id == student.id for s in bucket.students):
                bucket.students.append(
                    RequestingStudent(id=student.id, name=student.name, requested_at=entry.logged_at)
                )

    report = SchoolDeficitReport(
        uniform_deficits=sorted(deficits.values(), key=lambda d: -d.total_deficit),
        size_requests=sorted(requests.values(), key=lambda r: r.uniform_name.casefold()),
        total_students=len(students),
        students_with_deficits=students_with_deficits,
    )
    logger.debug(
        "Deficit report: %d students, %d with deficits, %d uniform groups short, %d size requests",
        report.total_students,
        report.students_with_deficits,
        len(report.uniform_deficits),
        len(report.size_requests),
    )
    return report


def compute_school_stats(students: Iterable[Student], policies: Iterable[Policy]) -> SchoolStudentStats:
    """Per-student status badges plus a count per status."""
    policies = list(policies or ())
    stats: Dict[str, StudentDeficit] = {}
    counts: Dict[str, int] = {status.value: 0 for status in DeficitStatus}
    for student in students or ():
        result = compute_student_deficit(student, policies)
        stats[student.id] = result
        counts[result.status.value] += 1
    return SchoolStudentStats(total_students=len(stats), students=stats, status_counts=counts)

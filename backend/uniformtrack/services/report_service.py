"""Report Service - deficit reports, stock summaries and the dashboard.

Every report is recomputed from the store on each call; nothing derived is
persisted.
"""

import logging
from typing import List, Optional

from uniformtrack.core.config import settings
from uniformtrack.schemas.batch import BatchSummary, LowStockItem
from uniformtrack.schemas.report import (
    DashboardSummary,
    Requirement,
    SchoolDeficitReport,
    SchoolStudentStats,
    StudentDeficit,
)
from uniformtrack.services.distribution_service import OPEN_STATUSES
from uniformtrack.services.reconciliation.deficit_calculator import (
    compute_requirements,
    compute_school_deficit_report,
    compute_school_stats,
    compute_student_deficit,
)
from uniformtrack.services.reconciliation.stock_allocator import batch_summary, low_stock
from uniformtrack.services.store import DocumentStore

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ===== Students =====

    def student_deficit(self, student_id: str) -> StudentDeficit:
        student = self.store.get_student(student_id)
        school = self.store.get_school(student.school_id)
        return compute_student_deficit(student, school.uniform_policy)

    def student_requirements(self, student_id: str) -> List[Requirement]:
        student = self.store.get_student(student_id)
        school = self.store.get_school(student.school_id)
        return compute_requirements(student, school.uniform_policy)

    # ===== Schools =====

    def school_deficit_report(self, school_id: str) -> SchoolDeficitReport:
        school = self.store.get_school(school_id)
        students = self.store.list_students_by_school(school_id)
        return compute_school_deficit_report(students, school.uniform_policy)

    def school_student_stats(self, school_id: str) -> SchoolStudentStats:
        school = self.store.get_school(school_id)
        students = self.store.list_students_by_school(school_id)
        return compute_school_stats(students, school.uniform_policy)

    # ===== Stock =====

    def batch_summary(self, batch_id: str) -> BatchSummary:
        return batch_summary(self.store.get_batch(batch_id))

    def low_stock(self, threshold: Optional[int] = None) -> List[LowStockItem]:
        if threshold is None:
            threshold = settings.low_stock_threshold
        return low_stock(self.store.list_batches(), threshold)

    # ===== Dashboard =====

    def dashboard(self) -> DashboardSummary:
        """Headline counts for the dashboard screen."""
        schools = self.store.list_schools()
        batches = self.store.list_batches()
        total_students = sum(len(self.store.list_students_by_school(s.id)) for s in schools)
        total_inventory = sum(
            size.quantity for batch in batches for item in batch.items for size in item.sizes
        )
        summary = DashboardSummary(
            total_schools=len(schools),
            active_schools=sum(1 for s in schools if s.status == "active"),
            total_students=total_students,
            total_batches=len(batches),
            active_batches=sum(1 for b in batches if b.status == "active"),
            total_inventory=total_inventory,
            low_stock_items=len(low_stock(batches, settings.low_stock_threshold)),
            open_intents=len(self.store.list_intents(OPEN_STATUSES)),
        )
        logger.debug("Dashboard summary: %s", summary)
        return summary

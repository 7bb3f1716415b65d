"""Distribution Service - log uniforms handed to students.

A receipt deducts warehouse stock and appends to the student's log. Both
writes form one unit of work, driven by a durable intent record:

1. Validate the request and check stock (nothing is written on failure)
2. Plan allocations across batches, oldest first
3. Save the intent as ``pending``
4. Apply the deductions and the log entry in one store transaction
5. Mark the intent ``committed``

If step 4 is rolled back because stock or the student changed since step 1
(another device got there first), the intent is marked ``rejected`` and the
store error is raised as-is. Any other failure in step 4 marks the intent
``failed`` and raises ``PartialWriteFailure`` with its id.

``retry_intent`` replays a failed or pending intent; the log entry carries
the intent id, so a replay after an unrecorded success only marks the intent
committed and never counts the receipt twice. Rejected intents are final.

Size requests (the wanted size was unavailable) touch no stock.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from uniformtrack.core.config import settings
from uniformtrack.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PartialWriteFailure,
    ValidationError,
)
from uniformtrack.models.distribution import IntentStatus
from uniformtrack.models.school import new_id
from uniformtrack.schemas.distribution import DistributionIntentRecord, DistributionResult
from uniformtrack.schemas.student import LogEntry, LogUniformRequest, Student
from uniformtrack.services.reconciliation.stock_allocator import (
    VariantKey,
    check_stock,
    plan_allocation,
)
from uniformtrack.services.store import DocumentStore

logger = logging.getLogger(__name__)

OPEN_STATUSES = (IntentStatus.PENDING.value, IntentStatus.FAILED.value)

# Raised by the store before anything was written; the whole unit rolled back
REJECTING_ERRORS = (InsufficientStockError, ConflictError, NotFoundError, ValidationError)


class DistributionService:
    """Service for logging uniform receipts and size requests."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def _uniform_labels(self, student: Student, request: LogUniformRequest) -> tuple:
        """Name and type for the log entry, from the request, policy list or catalog."""
        if request.uniform_name:
            return request.uniform_name, request.uniform_type

        school = self.store.get_school(student.school_id)
        for policy in school.uniform_policy:
            if policy.uniform_id == request.uniform_id and policy.uniform_name:
                return policy.uniform_name, request.uniform_type or policy.uniform_type

        uniform = self.store.get_uniform(request.uniform_id)
        return uniform.name, request.uniform_type or uniform.type

    def build_entry(self, student: Student, request: LogUniformRequest) -> LogEntry:
        if request.size_received and request.quantity_received <= 0:
            raise ValidationError("Quantity received must be positive")

        uniform_name, uniform_type = self._uniform_labels(student, request)
        return LogEntry(
            uniform_id=request.uniform_id,
            uniform_name=uniform_name,
            uniform_type=uniform_type,
            quantity_received=request.quantity_received if request.size_received else 0,
            size_received=request.size_received,
            size_wanted=request.size_wanted,
            logged_at=datetime.now(timezone.utc),
            logged_by=request.logged_by or settings.default_logged_by,
        )

    def log_uniform(self, student_id: str, request: LogUniformRequest) -> DistributionResult:
        """Record a receipt (with stock deduction) or a size request."""
        student = self.store.get_student(student_id)
        entry = self.build_entry(student, request)

        allocations = []
        overridden = False
        if entry.size_received:
            key = VariantKey(request.uniform_id, request.variant_type, request.color)
            batches = self.store.list_batches()
            stock = check_stock(batches, key, entry.size_received, entry.quantity_received)
            if stock.available:
                allocations = plan_allocation(batches, key, entry.size_received, entry.quantity_received)
            elif request.allow_override:
                overridden = True
                logger.warning(
                    "Stock override for student %s: %s size %s requested %d, %d in stock",
                    student_id,
                    entry.uniform_name,
                    entry.size_received,
                    entry.quantity_received,
                    stock.current_stock,
                )
            else:
                raise InsufficientStockError(
                    entry.size_received,
                    entry.quantity_received,
                    stock.current_stock,
                    label=entry.uniform_name,
                )

        intent = self.store.save_intent(DistributionIntentRecord(
            id=new_id(),
            student_id=student_id,
            entry=entry,
            allocations=allocations,
            stock_overridden=overridden,
            status=IntentStatus.PENDING.value,
        ))
        logger.info("Distribution intent %s recorded for student %s", intent.id, student_id)
        return self._apply(intent)

    def _apply(self, intent: DistributionIntentRecord) -> DistributionResult:
        intent = intent.model_copy(update={"attempts": intent.attempts + 1})
        try:
            student = self.store.record_distribution(intent)
        except REJECTING_ERRORS as exc:
            self.store.save_intent(intent.model_copy(update={
                "status": IntentStatus.REJECTED.value,
                "error": str(exc),
            }))
            logger.warning(
                "Distribution intent %s rejected on attempt %d: %s",
                intent.id, intent.attempts, exc,
            )
            raise
        except Exception as exc:
            self.store.save_intent(intent.model_copy(update={
                "status": IntentStatus.FAILED.value,
                "error": str(exc),
            }))
            logger.error(
                "Distribution intent %s failed on attempt %d: %s",
                intent.id, intent.attempts, exc, exc_info=True,
            )
            raise PartialWriteFailure(
                intent.id,
                f"Logging uniform for student {intent.student_id} failed; "
                f"intent {intent.id} is recorded for retry",
            ) from exc

        return self._commit(intent, student)

    def _commit(self, intent: DistributionIntentRecord, student: Student) -> DistributionResult:
        committed = self.store.save_intent(intent.model_copy(update={
            "status": IntentStatus.COMMITTED.value,
            "error": None,
        }))
        logger.info(
            "Distribution intent %s committed (%d allocations%s)",
            committed.id,
            len(committed.allocations),
            ", stock overridden" if committed.stock_overridden else "",
        )
        return DistributionResult(
            intent_id=committed.id,
            entry=committed.entry.model_copy(update={"intent_id": committed.id}),
            allocations=committed.allocations,
            stock_overridden=committed.stock_overridden,
            student=student,
        )

    def retry_intent(self, intent_id: str) -> DistributionResult:
        """Replay an open intent with its recorded allocations."""
        intent = self.store.get_intent(intent_id)
        if intent.status == IntentStatus.REJECTED.value:
            raise ConflictError(
                f"Distribution intent {intent.id} was rejected ({intent.error}); log the uniform again"
            )
        student = self.store.get_student(intent.student_id)

        if any(e.intent_id == intent.id for e in student.uniform_log):
            if intent.status != IntentStatus.COMMITTED.value:
                logger.info("Distribution intent %s was already applied", intent.id)
            return self._commit(intent, student)

        logger.info("Retrying distribution intent %s (attempt %d)", intent.id, intent.attempts + 1)
        return self._apply(intent)

    def list_open_intents(self) -> List[DistributionIntentRecord]:
        """Intents that are pending or failed and need a retry or a manual fix."""
        return self.store.list_intents(OPEN_STATUSES)

    def get_intent(self, intent_id: str) -> DistributionIntentRecord:
        return self.store.get_intent(intent_id)

    def list_intents(self, status: Optional[str] = None) -> List[DistributionIntentRecord]:
        return self.store.list_intents([status] if status else None)

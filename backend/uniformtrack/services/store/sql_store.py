"""SQL document store - normalized tables behind the document interface.

Policies, log entries, batch items and sizes live in their own tables and are
assembled into the nested records on read. Schools and students carry a
version counter; every write to a policy list or log bumps it with a
conditional UPDATE, so two writers that read the same version cannot both
succeed. Stock is deducted with a compare-and-set on the size row quantity.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from uniformtrack import models
from uniformtrack.core.exceptions import ConflictError, NotFoundError
from uniformtrack.schemas.batch import Batch, BatchCreate, BatchItem, SizeStock
from uniformtrack.schemas.distribution import DistributionIntentRecord
from uniformtrack.schemas.school import Policy, School, SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import LogEntry, Student, StudentCreate, StudentUpdate
from uniformtrack.schemas.uniform import Uniform, UniformCreate
from uniformtrack.services.reconciliation import stock_allocator
from uniformtrack.services.store.store_base import DocumentStore

logger = logging.getLogger(__name__)


# ============== Row -> record conversion ==============

def _policy_record(row: models.UniformPolicy) -> Policy:
    return Policy(
        id=row.policy_id,
        uniform_id=row.uniform_id,
        uniform_name=row.uniform_name,
        uniform_type=row.uniform_type,
        level=row.level,
        gender=row.gender,
        is_required=row.is_required,
        quantity_per_student=row.quantity_per_student,
    )


def _school_record(row: models.School) -> School:
    return School(
        id=row.id,
        name=row.name,
        status=row.status,
        uniform_policy=[_policy_record(p) for p in row.policies],
        version=row.version,
    )


def _entry_record(row: models.UniformLogEntry) -> LogEntry:
    return LogEntry(
        uniform_id=row.uniform_id,
        uniform_name=row.uniform_name,
        uniform_type=row.uniform_type,
        quantity_received=row.quantity_received,
        size_received=row.size_received,
        size_wanted=row.size_wanted,
        logged_at=row.logged_at,
        logged_by=row.logged_by,
        intent_id=row.intent_id,
    )


def _student_record(row: models.Student) -> Student:
    return Student(
        id=row.id,
        name=row.name,
        form=row.form,
        level=row.level,
        gender=row.gender,
        school_id=row.school_id,
        uniform_log=[_entry_record(e) for e in row.log_entries],
        version=row.version,
    )


def _item_record(row: models.BatchItem) -> BatchItem:
    return BatchItem(
        id=row.id,
        uniform_id=row.uniform_id,
        variant_type=row.variant_type,
        color=row.color,
        price=row.price,
        sizes=[
            SizeStock(
                size=s.size,
                quantity=s.quantity,
                initial_quantity=s.initial_quantity,
                depleted_at=s.depleted_at,
            )
            for s in row.sizes
        ],
        version=row.version,
    )


def _batch_record(row: models.Batch) -> Batch:
    return Batch(
        id=row.id,
        name=row.name,
        school_id=row.school_id,
        status=row.status,
        created_by=row.created_by,
        created_at=row.created_at,
        items=[_item_record(i) for i in row.items],
    )


def _uniform_record(row: models.Uniform) -> Uniform:
    return Uniform(
        id=row.id,
        name=row.name,
        type=row.type,
        gender=row.gender,
        level=row.level,
        school_id=row.school_id,
    )


def _intent_record(row: models.DistributionIntent) -> DistributionIntentRecord:
    return DistributionIntentRecord(
        id=row.id,
        student_id=row.student_id,
        entry=row.entry,
        allocations=row.allocations or [],
        stock_overridden=row.stock_overridden,
        status=row.status,
        attempts=row.attempts,
        error=row.error,
        created_at=row.created_at,
    )


class SqlDocumentStore(DocumentStore):
    """Document store backed by the application's SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ===== Helpers =====

    def _school_row(self, school_id: str) -> models.School:
        row = self.db.query(models.School).filter(models.School.id == school_id).first()
        if not row:
            raise NotFoundError("School", school_id)
        return row

    def _student_row(self, student_id: str) -> models.Student:
        row = self.db.query(models.Student).filter(models.Student.id == student_id).first()
        if not row:
            raise NotFoundError("Student", student_id)
        return row

    def _batch_row(self, batch_id: str) -> models.Batch:
        row = (
            self.db.query(models.Batch)
            .options(selectinload(models.Batch.items).selectinload(models.BatchItem.sizes))
            .filter(models.Batch.id == batch_id)
            .first()
        )
        if not row:
            raise NotFoundError("Batch", batch_id)
        return row

    def _bump_version(self, model, row, expected_version: Optional[int]) -> None:
        """Check the caller's version and advance it with a conditional UPDATE."""
        row.check_version(expected_version)
        current = row.version
        result = self.db.execute(
            update(model)
            .where(model.id == row.id, model.version == current)
            .values(version=current + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"{model.__name__} '{row.id}' was modified by another writer")
        self.db.expire(row, ["version"])

    @staticmethod
    def _entry_row(student_id: str, entry: LogEntry) -> models.UniformLogEntry:
        return models.UniformLogEntry(
            student_id=student_id,
            uniform_id=entry.uniform_id,
            uniform_name=entry.uniform_name,
            uniform_type=entry.uniform_type,
            quantity_received=entry.quantity_received,
            size_received=entry.size_received,
            size_wanted=entry.size_wanted,
            logged_at=entry.logged_at or datetime.now(timezone.utc),
            logged_by=entry.logged_by,
            intent_id=entry.intent_id,
        )

    def _apply_deduction(self, batch_id: str, item_id: str, size: str, quantity: int) -> SizeStock:
        """Deduct inside the current transaction; the caller commits."""
        item_row = (
            self.db.query(models.BatchItem)
            .filter(models.BatchItem.id == item_id, models.BatchItem.batch_id == batch_id)
            .first()
        )
        if not item_row:
            raise NotFoundError("Batch item", item_id)

        item = _item_record(item_row)
        current = item.size_entry(size)
        previous = current.quantity if current else 0
        entry = stock_allocator.deduct(item, size, quantity)

        result = self.db.execute(
            update(models.BatchItemSize)
            .where(
                models.BatchItemSize.item_id == item_id,
                models.BatchItemSize.size == size,
                models.BatchItemSize.quantity == previous,
            )
            .values(quantity=entry.quantity, depleted_at=entry.depleted_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Stock for item '{item_id}' size {size} changed during deduction")

        self.db.execute(
            update(models.BatchItem)
            .where(models.BatchItem.id == item_id)
            .values(version=models.BatchItem.version + 1)
            .execution_options(synchronize_session=False)
        )
        for size_row in item_row.sizes:
            self.db.expire(size_row)
        self.db.expire(item_row)

        logger.info(
            "Deducted %d of size %s from batch %s item %s (%d left)",
            quantity, size, batch_id, item_id, entry.quantity,
        )
        return entry

    # ===== Schools =====

    def list_schools(self) -> List[School]:
        rows = (
            self.db.query(models.School)
            .options(selectinload(models.School.policies))
            .order_by(models.School.name)
            .all()
        )
        return [_school_record(r) for r in rows]

    def get_school(self, school_id: str) -> School:
        return _school_record(self._school_row(school_id))

    def add_school(self, data: SchoolCreate) -> School:
        row = models.School(name=data.name, status=data.status)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _school_record(row)

    def update_school(self, school_id: str, data: SchoolUpdate) -> School:
        row = self._school_row(school_id)
        changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})
        try:
            self._bump_version(models.School, row, data.expected_version)
            for key, value in changes.items():
                setattr(row, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _school_record(row)

    def delete_school(self, school_id: str) -> None:
        row = self._school_row(school_id)
        self.db.delete(row)
        self.db.commit()

    def update_policy_list(
        self,
        school_id: str,
        policies: List[Policy],
        expected_version: Optional[int] = None,
    ) -> School:
        row = self._school_row(school_id)
        try:
            self._bump_version(models.School, row, expected_version)
            row.policies = [
                models.UniformPolicy(
                    position=position,
                    policy_id=policy.id,
                    uniform_id=policy.uniform_id,
                    uniform_name=policy.uniform_name,
                    uniform_type=policy.uniform_type,
                    level=policy.level,
                    gender=policy.gender,
                    is_required=policy.is_required,
                    quantity_per_student=policy.quantity_per_student,
                )
                for position, policy in enumerate(policies)
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _school_record(row)

    # ===== Students =====

    def list_students_by_school(self, school_id: str) -> List[Student]:
        rows = (
            self.db.query(models.Student)
            .options(selectinload(models.Student.log_entries))
            .filter(models.Student.school_id == school_id)
            .order_by(models.Student.name)
            .all()
        )
        return [_student_record(r) for r in rows]

    def get_student(self, student_id: str) -> Student:
        return _student_record(self._student_row(student_id))

    def add_student(self, school_id: str, data: StudentCreate) -> Student:
        self._school_row(school_id)
        row = models.Student(
            school_id=school_id,
            name=data.name,
            form=data.form,
            level=data.level,
            gender=data.gender,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _student_record(row)

    def update_student(self, student_id: str, data: StudentUpdate) -> Student:
        row = self._student_row(student_id)
        changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})
        try:
            self._bump_version(models.Student, row, data.expected_version)
            for key, value in changes.items():
                setattr(row, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _student_record(row)

    def delete_student(self, student_id: str) -> None:
        row = self._student_row(student_id)
        self.db.delete(row)
        self.db.commit()

    def append_log_entry(
        self,
        student_id: str,
        entry: LogEntry,
        expected_version: Optional[int] = None,
    ) -> Student:
        row = self._student_row(student_id)
        try:
            self._bump_version(models.Student, row, expected_version)
            self.db.add(self._entry_row(row.id, entry))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _student_record(row)

    # ===== Batches =====

    def list_batches(self) -> List[Batch]:
        rows = (
            self.db.query(models.Batch)
            .options(selectinload(models.Batch.items).selectinload(models.BatchItem.sizes))
            .order_by(models.Batch.created_at, models.Batch.id)
            .all()
        )
        return [_batch_record(r) for r in rows]

    def get_batch(self, batch_id: str) -> Batch:
        return _batch_record(self._batch_row(batch_id))

    def add_batch(self, data: BatchCreate) -> Batch:
        row = models.Batch(
            name=data.name,
            school_id=data.school_id,
            created_by=data.created_by,
            status="active",
            created_at=datetime.now(timezone.utc),
        )
        row.items = [
            models.BatchItem(
                position=position,
                uniform_id=item.uniform_id,
                variant_type=item.variant_type,
                color=item.color,
                price=item.price,
                sizes=[
                    models.BatchItemSize(
                        position=size_position,
                        size=size.size,
                        quantity=size.quantity,
                        initial_quantity=size.quantity,
                    )
                    for size_position, size in enumerate(item.sizes)
                ],
            )
            for position, item in enumerate(data.items)
        ]
        self.db.add(row)
        self.db.commit()
        return self.get_batch(row.id)

    def deduct_batch_stock(self, batch_id: str, item_id: str, size: str, quantity: int) -> SizeStock:
        self._batch_row(batch_id)
        try:
            entry = self._apply_deduction(batch_id, item_id, size, quantity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return entry

    # ===== Uniform catalog =====

    def list_uniforms(self) -> List[Uniform]:
        rows = self.db.query(models.Uniform).order_by(models.Uniform.name).all()
        return [_uniform_record(r) for r in rows]

    def get_uniform(self, uniform_id: str) -> Uniform:
        row = self.db.query(models.Uniform).filter(models.Uniform.id == uniform_id).first()
        if not row:
            raise NotFoundError("Uniform", uniform_id)
        return _uniform_record(row)

    def add_uniform(self, data: UniformCreate) -> Uniform:
        row = models.Uniform(
            name=data.name,
            type=data.type,
            gender=data.gender,
            level=data.level,
            school_id=data.school_id,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _uniform_record(row)

    # ===== Distributions =====

    def record_distribution(self, intent: DistributionIntentRecord) -> Student:
        row = self._student_row(intent.student_id)
        entry = intent.entry.model_copy(update={"intent_id": intent.id})
        try:
            for allocation in intent.allocations:
                self._apply_deduction(
                    allocation.batch_id, allocation.item_id, allocation.size, allocation.quantity
                )
            self._bump_version(models.Student, row, None)
            self.db.add(self._entry_row(row.id, entry))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _student_record(row)

    def save_intent(self, intent: DistributionIntentRecord) -> DistributionIntentRecord:
        row = self.db.get(models.DistributionIntent, intent.id)
        if row is None:
            row = models.DistributionIntent(id=intent.id, student_id=intent.student_id)
            self.db.add(row)
        row.entry = intent.entry.to_document()
        row.allocations = [a.to_document() for a in intent.allocations]
        row.stock_overridden = intent.stock_overridden
        row.status = intent.status
        row.attempts = intent.attempts
        row.error = intent.error
        self.db.commit()
        self.db.refresh(row)
        return _intent_record(row)

    def get_intent(self, intent_id: str) -> DistributionIntentRecord:
        row = self.db.get(models.DistributionIntent, intent_id)
        if row is None:
            raise NotFoundError("Distribution intent", intent_id)
        return _intent_record(row)

    def list_intents(self, statuses: Optional[Iterable[str]] = None) -> List[DistributionIntentRecord]:
        query = self.db.query(models.DistributionIntent)
        if statuses is not None:
            query = query.filter(models.DistributionIntent.status.in_(list(statuses)))
        rows = query.order_by(models.DistributionIntent.created_at, models.DistributionIntent.id).all()
        return [_intent_record(r) for r in rows]

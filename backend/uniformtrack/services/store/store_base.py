"""Document Store - the persistence boundary every service talks to.

Services receive a store in their constructor and never reach for a global
client. Implementations return the pydantic records from
``uniformtrack.schemas`` with missing fields defaulted (legacy policies
without ``id``, students without ``uniformLog``).

Lookups of a single record raise ``NotFoundError`` when it does not exist.
Writes that take ``expected_version`` raise ``ConflictError`` when the
record moved on since the caller read it.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from uniformtrack.schemas.batch import Batch, BatchCreate, SizeStock
from uniformtrack.schemas.distribution import DistributionIntentRecord
from uniformtrack.schemas.school import Policy, School, SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import LogEntry, Student, StudentCreate, StudentUpdate
from uniformtrack.schemas.uniform import Uniform, UniformCreate


class DocumentStore(ABC):
    """Abstract base class for document stores."""

    # ===== Schools =====

    @abstractmethod
    def list_schools(self) -> List[School]:
        """Fetch every school with its policy list."""
        pass

    @abstractmethod
    def get_school(self, school_id: str) -> School:
        pass

    @abstractmethod
    def add_school(self, data: SchoolCreate) -> School:
        pass

    @abstractmethod
    def update_school(self, school_id: str, data: SchoolUpdate) -> School:
        """Apply the fields set on *data* and bump the school version."""
        pass

    @abstractmethod
    def delete_school(self, school_id: str) -> None:
        """Delete a school together with the students enrolled at it."""
        pass

    @abstractmethod
    def update_policy_list(
        self,
        school_id: str,
        policies: List[Policy],
        expected_version: Optional[int] = None,
    ) -> School:
        """Replace a school's policy list as one write."""
        pass

    # ===== Students =====

    @abstractmethod
    def list_students_by_school(self, school_id: str) -> List[Student]:
        pass

    @abstractmethod
    def get_student(self, student_id: str) -> Student:
        pass

    @abstractmethod
    def add_student(self, school_id: str, data: StudentCreate) -> Student:
        pass

    @abstractmethod
    def update_student(self, student_id: str, data: StudentUpdate) -> Student:
        """Apply the fields set on *data* and bump the student version."""
        pass

    @abstractmethod
    def delete_student(self, student_id: str) -> None:
        pass

    @abstractmethod
    def append_log_entry(
        self,
        student_id: str,
        entry: LogEntry,
        expected_version: Optional[int] = None,
    ) -> Student:
        """Append one entry to a student's log without rewriting the rest."""
        pass

    # ===== Batches =====

    @abstractmethod
    def list_batches(self) -> List[Batch]:
        pass

    @abstractmethod
    def get_batch(self, batch_id: str) -> Batch:
        pass

    @abstractmethod
    def add_batch(self, data: BatchCreate) -> Batch:
        pass

    @abstractmethod
    def deduct_batch_stock(self, batch_id: str, item_id: str, size: str, quantity: int) -> SizeStock:
        """Deduct stock for one size of one batch item, all or nothing."""
        pass

    # ===== Uniform catalog =====

    @abstractmethod
    def list_uniforms(self) -> List[Uniform]:
        pass

    @abstractmethod
    def get_uniform(self, uniform_id: str) -> Uniform:
        pass

    @abstractmethod
    def add_uniform(self, data: UniformCreate) -> Uniform:
        pass

    # ===== Distributions =====

    @abstractmethod
    def record_distribution(self, intent: DistributionIntentRecord) -> Student:
        """Apply an intent's deductions and log entry in a single transaction.

        Either every allocation is deducted and the entry appended, or nothing
        is written.
        """
        pass

    @abstractmethod
    def save_intent(self, intent: DistributionIntentRecord) -> DistributionIntentRecord:
        """Create or overwrite an intent record."""
        pass

    @abstractmethod
    def get_intent(self, intent_id: str) -> DistributionIntentRecord:
        pass

    @abstractmethod
    def list_intents(self, statuses: Optional[Iterable[str]] = None) -> List[DistributionIntentRecord]:
        pass

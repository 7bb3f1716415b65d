"""Firestore document store.

Keeps the mobile app's document layout: schools embed their policy list,
students are a top-level collection keyed by ``schoolId``, batches embed
their items and sizes. Array fields are never rewritten from a stale read:

- log entries are appended with ``ArrayUnion``
- policy lists and other versioned fields are replaced in a transaction that
  re-checks the version it read
- stock deductions and distributions run in a Firestore transaction
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from google.api_core import exceptions as google_exceptions

from uniformtrack.core.config import settings
from uniformtrack.core.exceptions import ConflictError, NotFoundError
from uniformtrack.schemas.batch import Batch, BatchCreate, SizeStock
from uniformtrack.schemas.distribution import DistributionIntentRecord
from uniformtrack.schemas.school import Policy, School, SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import LogEntry, Student, StudentCreate, StudentUpdate
from uniformtrack.schemas.uniform import Uniform, UniformCreate
from uniformtrack.services.reconciliation import stock_allocator
from uniformtrack.services.store.store_base import DocumentStore

logger = logging.getLogger(__name__)

SCHOOLS = "schools"
STUDENTS = "students"
BATCHES = "batches"
UNIFORMS = "uniforms"
INTENTS = "distributionIntents"


def _firestore_client(credentials_path: Optional[str], project_id: Optional[str]):
    """Initialize the default Firebase app once and return its Firestore client."""
    import firebase_admin
    from firebase_admin import credentials as fb_credentials
    from firebase_admin import firestore

    try:
        app = firebase_admin.get_app()
    except ValueError:
        cred = fb_credentials.Certificate(credentials_path) if credentials_path else None
        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin SDK initialized")
    return firestore.client(app)


def _data(snapshot) -> Dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def _batch_payload(batch: Batch) -> Dict[str, Any]:
    document = batch.to_document()
    document.pop("id", None)
    return document


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Cloud Firestore through firebase-admin."""

    def __init__(self, client=None):
        self.client = client or _firestore_client(
            settings.firebase_credentials_path, settings.firebase_project_id
        )

    def _snapshot(self, collection: str, doc_id: str, entity: str, transaction=None):
        snapshot = self.client.collection(collection).document(doc_id).get(transaction=transaction)
        if not snapshot.exists:
            raise NotFoundError(entity, doc_id)
        return snapshot

    def _create(self, collection: str, payload: Dict[str, Any]) -> str:
        ref = self.client.collection(collection).document()
        ref.set(payload)
        return ref.id

    def _versioned_update(
        self,
        collection: str,
        doc_id: str,
        entity: str,
        changes: Dict[str, Any],
        expected_version: Optional[int],
    ) -> Dict[str, Any]:
        """Check the version and write *changes* in one transaction.

        Returns the document as written, version included.
        """
        from firebase_admin import firestore

        @firestore.transactional
        def _update(transaction) -> Dict[str, Any]:
            snapshot = self._snapshot(collection, doc_id, entity, transaction=transaction)
            data = _data(snapshot)
            current = data.get("version") or 1
            if expected_version is not None and expected_version != current:
                raise ConflictError(
                    f"Version conflict: expected {expected_version}, current {current}"
                )
            written = {**changes, "version": current + 1}
            transaction.update(snapshot.reference, written)
            return {**data, **written}

        return _update(self.client.transaction())

    # ===== Schools =====

    def list_schools(self) -> List[School]:
        return [School.model_validate(_data(s)) for s in self.client.collection(SCHOOLS).stream()]

    def get_school(self, school_id: str) -> School:
        return School.model_validate(_data(self._snapshot(SCHOOLS, school_id, "School")))

    def add_school(self, data: SchoolCreate) -> School:
        payload = {
            "name": data.name,
            "status": data.status,
            "uniformPolicy": [],
            "version": 1,
            "createdAt": datetime.now(timezone.utc),
        }
        school_id = self._create(SCHOOLS, payload)
        return School.model_validate({**payload, "id": school_id})

    def update_school(self, school_id: str, data: SchoolUpdate) -> School:
        changes = data.model_dump(by_alias=True, exclude_unset=True, exclude={"expected_version"})
        written = self._versioned_update(SCHOOLS, school_id, "School", changes, data.expected_version)
        return School.model_validate(written)

    def delete_school(self, school_id: str) -> None:
        snapshot = self._snapshot(SCHOOLS, school_id, "School")
        batch = self.client.batch()
        students = self.client.collection(STUDENTS).where("schoolId", "==", school_id).stream()
        for student in students:
            batch.delete(student.reference)
        batch.delete(snapshot.reference)
        batch.commit()

    def update_policy_list(
        self,
        school_id: str,
        policies: List[Policy],
        expected_version: Optional[int] = None,
    ) -> School:
        changes = {"uniformPolicy": [p.to_document() for p in policies]}
        written = self._versioned_update(SCHOOLS, school_id, "School", changes, expected_version)
        return School.model_validate(written)

    # ===== Students =====

    def list_students_by_school(self, school_id: str) -> List[Student]:
        query = self.client.collection(STUDENTS).where("schoolId", "==", school_id)
        students = [Student.model_validate(_data(s)) for s in query.stream()]
        return sorted(students, key=lambda s: s.name)

    def get_student(self, student_id: str) -> Student:
        return Student.model_validate(_data(self._snapshot(STUDENTS, student_id, "Student")))

    def add_student(self, school_id: str, data: StudentCreate) -> Student:
        self._snapshot(SCHOOLS, school_id, "School")
        payload = {
            "name": data.name,
            "form": data.form,
            "level": data.level,
            "gender": data.gender,
            "schoolId": school_id,
            "uniformLog": [],
            "version": 1,
            "createdAt": datetime.now(timezone.utc),
        }
        student_id = self._create(STUDENTS, payload)
        return Student.model_validate({**payload, "id": student_id})

    def update_student(self, student_id: str, data: StudentUpdate) -> Student:
        changes = data.model_dump(by_alias=True, exclude_unset=True, exclude={"expected_version"})
        written = self._versioned_update(STUDENTS, student_id, "Student", changes, data.expected_version)
        return Student.model_validate(written)

    def delete_student(self, student_id: str) -> None:
        snapshot = self._snapshot(STUDENTS, student_id, "Student")
        snapshot.reference.delete()

    def append_log_entry(
        self,
        student_id: str,
        entry: LogEntry,
        expected_version: Optional[int] = None,
    ) -> Student:
        """Append with ``ArrayUnion``.

        With *expected_version* the write also carries a ``last_update_time``
        precondition, so a concurrent write after the version check is a
        conflict rather than a silent overtake.
        """
        from firebase_admin import firestore

        snapshot = self._snapshot(STUDENTS, student_id, "Student")
        student = Student.model_validate(_data(snapshot))
        if expected_version is not None and expected_version != student.version:
            raise ConflictError(
                f"Version conflict: expected {expected_version}, current {student.version}"
            )

        payload = {
            "uniformLog": firestore.ArrayUnion([entry.to_document()]),
            "version": firestore.Increment(1),
        }
        if expected_version is None:
            snapshot.reference.update(payload)
        else:
            try:
                snapshot.reference.update(
                    payload,
                    option=self.client.write_option(last_update_time=snapshot.update_time),
                )
            except google_exceptions.FailedPrecondition as exc:
                raise ConflictError(f"Student '{student_id}' was modified by another writer") from exc
        return self.get_student(student_id)

    # ===== Batches =====

    def list_batches(self) -> List[Batch]:
        batches = [Batch.model_validate(_data(s)) for s in self.client.collection(BATCHES).stream()]
        return sorted(batches, key=stock_allocator.batch_order)

    def get_batch(self, batch_id: str) -> Batch:
        return Batch.model_validate(_data(self._snapshot(BATCHES, batch_id, "Batch")))

    def add_batch(self, data: BatchCreate) -> Batch:
        ref = self.client.collection(BATCHES).document()
        batch = Batch(
            id=ref.id,
            name=data.name,
            school_id=data.school_id,
            status="active",
            created_by=data.created_by,
            created_at=datetime.now(timezone.utc),
            items=[
                {
                    "id": f"{ref.id}-{position}",
                    "uniformId": item.uniform_id,
                    "variantType": item.variant_type,
                    "color": item.color,
                    "price": item.price,
                    "sizes": [
                        {"size": s.size, "quantity": s.quantity, "initialQuantity": s.quantity}
                        for s in item.sizes
                    ],
                }
                for position, item in enumerate(data.items)
            ],
        )
        ref.set(_batch_payload(batch))
        return batch

    def deduct_batch_stock(self, batch_id: str, item_id: str, size: str, quantity: int) -> SizeStock:
        from firebase_admin import firestore

        @firestore.transactional
        def _deduct(transaction) -> SizeStock:
            snapshot = self._snapshot(BATCHES, batch_id, "Batch", transaction=transaction)
            batch = Batch.model_validate(_data(snapshot))
            item = batch.item(item_id)
            if item is None:
                raise NotFoundError("Batch item", item_id)
            entry = stock_allocator.deduct(item, size, quantity)
            transaction.update(snapshot.reference, {"items": _batch_payload(batch)["items"]})
            return entry

        entry = _deduct(self.client.transaction())
        logger.info("Deducted %d of size %s from batch %s item %s", quantity, size, batch_id, item_id)
        return entry

    # ===== Uniform catalog =====

    def list_uniforms(self) -> List[Uniform]:
        uniforms = [Uniform.model_validate(_data(s)) for s in self.client.collection(UNIFORMS).stream()]
        return sorted(uniforms, key=lambda u: u.name)

    def get_uniform(self, uniform_id: str) -> Uniform:
        return Uniform.model_validate(_data(self._snapshot(UNIFORMS, uniform_id, "Uniform")))

    def add_uniform(self, data: UniformCreate) -> Uniform:
        payload = data.to_document()
        uniform_id = self._create(UNIFORMS, payload)
        return Uniform.model_validate({**payload, "id": uniform_id})

    # ===== Distributions =====

    def record_distribution(self, intent: DistributionIntentRecord) -> Student:
        from firebase_admin import firestore

        entry = intent.entry.model_copy(update={"intent_id": intent.id})

        @firestore.transactional
        def _record(transaction) -> None:
            # Firestore transactions require every read before the first write
            student_snapshot = self._snapshot(STUDENTS, intent.student_id, "Student", transaction=transaction)
            batches: Dict[str, Any] = {}
            for allocation in intent.allocations:
                if allocation.batch_id not in batches:
                    snapshot = self._snapshot(BATCHES, allocation.batch_id, "Batch", transaction=transaction)
                    batches[allocation.batch_id] = (snapshot, Batch.model_validate(_data(snapshot)))

            for allocation in intent.allocations:
                _, batch = batches[allocation.batch_id]
                item = batch.item(allocation.item_id)
                if item is None:
                    raise NotFoundError("Batch item", allocation.item_id)
                stock_allocator.deduct(item, allocation.size, allocation.quantity)

            for snapshot, batch in batches.values():
                transaction.update(snapshot.reference, {"items": _batch_payload(batch)["items"]})
            transaction.update(student_snapshot.reference, {
                "uniformLog": firestore.ArrayUnion([entry.to_document()]),
                "version": firestore.Increment(1),
            })

        _record(self.client.transaction())
        return self.get_student(intent.student_id)

    def save_intent(self, intent: DistributionIntentRecord) -> DistributionIntentRecord:
        if intent.created_at is None:
            intent = intent.model_copy(update={"created_at": datetime.now(timezone.utc)})
        document = intent.to_document()
        document.pop("id", None)
        self.client.collection(INTENTS).document(intent.id).set(document)
        return intent

    def get_intent(self, intent_id: str) -> DistributionIntentRecord:
        snapshot = self._snapshot(INTENTS, intent_id, "Distribution intent")
        return DistributionIntentRecord.model_validate(_data(snapshot))

    def list_intents(self, statuses: Optional[Iterable[str]] = None) -> List[DistributionIntentRecord]:
        query = self.client.collection(INTENTS)
        if statuses is not None:
            query = query.where("status", "in", list(statuses))
        intents = [DistributionIntentRecord.model_validate(_data(s)) for s in query.stream()]
        return sorted(intents, key=lambda i: (i.created_at is None, i.created_at or datetime.min, i.id))

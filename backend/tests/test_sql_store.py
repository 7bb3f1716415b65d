"""Tests for the SQL document store."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import update

from uniformtrack import models
from uniformtrack.core.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from uniformtrack.schemas.batch import Allocation
from uniformtrack.schemas.distribution import DistributionIntentRecord
from uniformtrack.schemas.school import Policy, SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import LogEntry, StudentCreate, StudentUpdate


def _entry(uniform_id, quantity=1, size="M"):
    return LogEntry(
        uniform_id=uniform_id,
        uniform_name="School Shirt",
        quantity_received=quantity,
        size_received=size,
        logged_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        logged_by="tester",
    )


class TestSchools:
    def test_add_and_get_school(self, store):
        school = store.add_school(SchoolCreate(name="Lakeview"))

        fetched = store.get_school(school.id)

        assert fetched.name == "Lakeview"
        assert fetched.status == "active"
        assert fetched.uniform_policy == []
        assert fetched.version == 1

    def test_missing_school(self, store):
        with pytest.raises(NotFoundError):
            store.get_school("nope")

    def test_policy_list_round_trip_keeps_legacy_policy(self, store, test_school):
        legacy = Policy(uniform_id="tie", uniform_name="Tie", level="Senior", gender="Girls")
        policies = test_school.uniform_policy + [legacy]

        updated = store.update_policy_list(test_school.id, policies)

        assert [p.id for p in updated.uniform_policy] == ["policy-shirt-jb", None]
        assert store.get_school(test_school.id).uniform_policy == policies

    def test_update_bumps_version(self, store, test_school):
        updated = store.update_policy_list(test_school.id, [], expected_version=test_school.version)

        assert updated.version == test_school.version + 1
        assert updated.uniform_policy == []

    def test_stale_version_rejected(self, store, test_school):
        store.update_policy_list(test_school.id, [], expected_version=test_school.version)

        with pytest.raises(ConflictError):
            store.update_policy_list(
                test_school.id, test_school.uniform_policy, expected_version=test_school.version
            )

        assert store.get_school(test_school.id).uniform_policy == []

    def test_update_school_fields(self, store, test_school):
        updated = store.update_school(test_school.id, SchoolUpdate(status="inactive"))

        assert updated.status == "inactive"
        assert updated.name == "Hillside Academy"
        assert updated.version == test_school.version + 1
        assert updated.uniform_policy == test_school.uniform_policy

    def test_update_school_with_stale_version(self, store, test_school):
        store.update_school(test_school.id, SchoolUpdate(name="Hillside College"))

        with pytest.raises(ConflictError):
            store.update_school(
                test_school.id, SchoolUpdate(name="Hillside High", expected_version=test_school.version)
            )

        assert store.get_school(test_school.id).name == "Hillside College"

    def test_delete_school_removes_students(self, store, test_school, test_student):
        store.delete_school(test_school.id)

        with pytest.raises(NotFoundError):
            store.get_school(test_school.id)
        with pytest.raises(NotFoundError):
            store.get_student(test_student.id)

    def test_conditional_update_detects_concurrent_writer(self, store, db_session, test_school):
        row = db_session.get(models.School, test_school.id)
        assert row.version == test_school.version
        # Another writer bumps the row behind this session's back
        db_session.execute(
            update(models.School)
            .where(models.School.id == test_school.id)
            .values(version=models.School.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConflictError):
            store._bump_version(models.School, row, None)


class TestStudents:
    def test_new_student_has_empty_log(self, store, test_student, test_school):
        students = store.list_students_by_school(test_school.id)

        assert [s.id for s in students] == [test_student.id]
        assert students[0].uniform_log == []

    def test_add_student_to_missing_school(self, store):
        with pytest.raises(NotFoundError):
            store.add_student("nope", StudentCreate(name="X", form="1A"))

    def test_appends_are_never_lost(self, store, test_student, shirt):
        store.append_log_entry(test_student.id, _entry(shirt.id, size="M"))
        store.append_log_entry(test_student.id, _entry(shirt.id, size="L"))

        student = store.get_student(test_student.id)

        assert [e.size_received for e in student.uniform_log] == ["M", "L"]
        assert student.version == test_student.version + 2

    def test_append_with_stale_version(self, store, test_student, shirt):
        store.append_log_entry(test_student.id, _entry(shirt.id), expected_version=test_student.version)

        with pytest.raises(ConflictError):
            store.append_log_entry(test_student.id, _entry(shirt.id), expected_version=test_student.version)

        assert len(store.get_student(test_student.id).uniform_log) == 1

    def test_update_student_changes_group(self, store, test_student):
        updated = store.update_student(test_student.id, StudentUpdate(level="Senior", gender="Girls"))

        assert (updated.level, updated.gender) == ("Senior", "Girls")
        assert updated.name == "Tom Banda"
        assert updated.version == test_student.version + 1

    def test_update_student_with_stale_version(self, store, test_student, shirt):
        store.append_log_entry(test_student.id, _entry(shirt.id))

        with pytest.raises(ConflictError):
            store.update_student(
                test_student.id, StudentUpdate(level="Senior", expected_version=test_student.version)
            )

        student = store.get_student(test_student.id)
        assert student.level == "Junior"
        assert len(student.uniform_log) == 1

    def test_delete_student(self, store, test_student):
        store.delete_student(test_student.id)

        with pytest.raises(NotFoundError):
            store.get_student(test_student.id)


class TestBatchStock:
    def test_initial_quantities(self, store, test_batch):
        item = store.get_batch(test_batch.id).items[0]

        assert [(s.size, s.quantity, s.initial_quantity) for s in item.sizes] == [("M", 3, 3), ("L", 1, 1)]

    def test_deduct_to_zero_sets_depletion(self, store, test_batch):
        item_id = test_batch.items[0].id

        entry = store.deduct_batch_stock(test_batch.id, item_id, "L", 1)

        assert entry.quantity == 0
        stored = store.get_batch(test_batch.id).items[0].size_entry("L")
        assert stored.quantity == 0
        assert stored.depleted_at is not None

    def test_insufficient_deduction_changes_nothing(self, store, test_batch):
        item_id = test_batch.items[0].id

        with pytest.raises(InsufficientStockError):
            store.deduct_batch_stock(test_batch.id, item_id, "M", 5)

        assert store.get_batch(test_batch.id).items[0].size_entry("M").quantity == 3

    def test_unknown_item(self, store, test_batch):
        with pytest.raises(NotFoundError):
            store.deduct_batch_stock(test_batch.id, "missing", "M", 1)

    def test_unknown_size_rejected(self, store, test_batch):
        item_id = test_batch.items[0].id

        with pytest.raises(ValidationError):
            store.deduct_batch_stock(test_batch.id, item_id, "XXL", 1)

        assert store.get_batch(test_batch.id).items[0].size_entry("M").quantity == 3


class TestRecordDistribution:
    def _intent(self, student, batch, allocations, uniform_id):
        return DistributionIntentRecord(
            id="intent-1",
            student_id=student.id,
            entry=_entry(uniform_id),
            allocations=allocations,
        )

    def test_log_and_deduction_applied_together(self, store, test_student, test_batch, shirt):
        item_id = test_batch.items[0].id
        intent = self._intent(test_student, test_batch, [
            Allocation(batch_id=test_batch.id, item_id=item_id, size="M", quantity=1),
        ], shirt.id)

        student = store.record_distribution(intent)

        assert [e.intent_id for e in student.uniform_log] == ["intent-1"]
        assert store.get_batch(test_batch.id).items[0].size_entry("M").quantity == 2

    def test_failed_allocation_rolls_back_everything(self, store, test_student, test_batch, shirt):
        item_id = test_batch.items[0].id
        intent = self._intent(test_student, test_batch, [
            Allocation(batch_id=test_batch.id, item_id=item_id, size="M", quantity=1),
            Allocation(batch_id=test_batch.id, item_id=item_id, size="L", quantity=5),
        ], shirt.id)

        with pytest.raises(InsufficientStockError):
            store.record_distribution(intent)

        item = store.get_batch(test_batch.id).items[0]
        assert item.size_entry("M").quantity == 3
        assert item.size_entry("L").quantity == 1
        assert store.get_student(test_student.id).uniform_log == []


class TestIntents:
    def test_save_and_filter(self, store, test_student, shirt):
        store.save_intent(DistributionIntentRecord(
            id="a", student_id=test_student.id, entry=_entry(shirt.id), status="pending",
        ))
        store.save_intent(DistributionIntentRecord(
            id="b", student_id=test_student.id, entry=_entry(shirt.id), status="committed",
        ))

        open_ids = [i.id for i in store.list_intents(["pending", "failed"])]

        assert open_ids == ["a"]
        assert len(store.list_intents()) == 2
        assert store.get_intent("b").entry.uniform_id == shirt.id

    def test_save_overwrites(self, store, test_student, shirt):
        intent = DistributionIntentRecord(id="a", student_id=test_student.id, entry=_entry(shirt.id))
        store.save_intent(intent)

        store.save_intent(intent.model_copy(update={"status": "failed", "attempts": 1, "error": "boom"}))

        saved = store.get_intent("a")
        assert (saved.status, saved.attempts, saved.error) == ("failed", 1, "boom")

    def test_missing_intent(self, store):
        with pytest.raises(NotFoundError):
            store.get_intent("nope")

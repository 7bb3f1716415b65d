"""Tests for the Firestore document store against a mocked client."""

from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from uniformtrack.core.exceptions import ConflictError, NotFoundError
from uniformtrack.schemas.distribution import DistributionIntentRecord
from uniformtrack.schemas.school import Policy, PolicyCreate, SchoolUpdate
from uniformtrack.schemas.student import LogEntry, StudentCreate, StudentUpdate
from uniformtrack.services.policy_service import PolicyService
from uniformtrack.services.store.firestore_store import FirestoreDocumentStore

SCHOOL_DOC = {
    "name": "Hillside Academy",
    "status": "active",
    "version": 3,
    "uniformPolicy": [
        {"id": "p1", "uniformId": "shirt", "uniformName": "Shirt", "level": "Junior", "gender": "Boys",
         "quantityPerStudent": 2, "isRequired": True},
        # Legacy record without an id
        {"uniformId": "tie", "uniformName": "Tie", "level": "Junior", "gender": "Boys"},
    ],
}


def _snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = dict(data) if data is not None else None
    return snapshot


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return FirestoreDocumentStore(client=client)


@pytest.fixture
def transactions(monkeypatch):
    """Run transactional functions directly against the client's mocked transaction."""
    monkeypatch.setattr(firestore, "transactional", lambda fn: fn)


def _returns(client, snapshot):
    client.collection.return_value.document.return_value.get.return_value = snapshot


class TestSchools:
    def test_get_school_reads_embedded_policies(self, store, client):
        _returns(client, _snapshot("school-1", SCHOOL_DOC))

        school = store.get_school("school-1")

        client.collection.assert_called_with("schools")
        assert school.id == "school-1"
        assert [p.id for p in school.uniform_policy] == ["p1", None]
        assert school.uniform_policy[1].quantity_per_student == 1

    def test_missing_school(self, store, client):
        _returns(client, _snapshot("nope", None, exists=False))

        with pytest.raises(NotFoundError):
            store.get_school("nope")

    def test_policy_list_written_in_transaction(self, store, client, transactions):
        snapshot = _snapshot("school-1", SCHOOL_DOC)
        _returns(client, snapshot)
        policies = [Policy(id="p9", uniform_id="blazer", level="Senior", gender="Girls")]

        school = store.update_policy_list("school-1", policies, expected_version=3)

        transaction = client.transaction.return_value
        client.collection.return_value.document.return_value.get.assert_called_with(transaction=transaction)
        reference, payload = transaction.update.call_args.args
        assert reference is snapshot.reference
        assert payload["version"] == 4
        assert payload["uniformPolicy"][0]["uniformId"] == "blazer"
        snapshot.reference.update.assert_not_called()
        assert school.version == 4
        assert school.uniform_policy == policies

    def test_stale_expected_version(self, store, client, transactions):
        _returns(client, _snapshot("school-1", SCHOOL_DOC))

        with pytest.raises(ConflictError):
            store.update_policy_list("school-1", [], expected_version=2)

        client.transaction.return_value.update.assert_not_called()

    def test_policy_added_by_another_writer_is_not_overwritten(self, store, client, transactions):
        shirt = {"id": "p1", "uniformId": "shirt", "uniformName": "Shirt", "level": "Junior", "gender": "Boys"}
        tie = {"id": "p2", "uniformId": "tie", "uniformName": "Tie", "level": "Junior", "gender": "Boys"}
        # The service reads version 1; another writer adds the tie before the write
        client.collection.return_value.document.return_value.get.side_effect = [
            _snapshot("school-1", {"name": "Hillside", "version": 1, "uniformPolicy": [shirt]}),
            _snapshot("school-1", {"name": "Hillside", "version": 2, "uniformPolicy": [shirt, tie]}),
        ]
        blazer = PolicyCreate(uniform_id="blazer", uniform_name="Blazer", level="Senior", gender="Girls")

        with pytest.raises(ConflictError):
            PolicyService(store).add_policies("school-1", [blazer])

        client.transaction.return_value.update.assert_not_called()

    def test_update_school_bumps_version(self, store, client, transactions):
        _returns(client, _snapshot("school-1", SCHOOL_DOC))

        school = store.update_school("school-1", SchoolUpdate(name="Hillside College"))

        payload = client.transaction.return_value.update.call_args.args[1]
        assert payload == {"name": "Hillside College", "version": 4}
        assert school.name == "Hillside College"
        assert [p.id for p in school.uniform_policy] == ["p1", None]

    def test_delete_school_removes_its_students(self, store, client):
        school = _snapshot("school-1", SCHOOL_DOC)
        _returns(client, school)
        students = [
            _snapshot("s1", {"name": "Ann", "schoolId": "school-1"}),
            _snapshot("s2", {"name": "Ben", "schoolId": "school-1"}),
        ]
        client.collection.return_value.where.return_value.stream.return_value = students

        store.delete_school("school-1")

        batch = client.batch.return_value
        deleted = [c.args[0] for c in batch.delete.call_args_list]
        assert deleted == [students[0].reference, students[1].reference, school.reference]
        batch.commit.assert_called_once_with()


class TestStudents:
    def test_log_entry_appended_with_array_union(self, store, client):
        snapshot = _snapshot("s1", {"name": "Ann", "level": "Junior", "gender": "Boys", "schoolId": "school-1"})
        _returns(client, snapshot)
        entry = LogEntry(uniform_id="shirt", quantity_received=1, size_received="M")

        store.append_log_entry("s1", entry)

        assert snapshot.reference.update.call_args.kwargs == {}
        payload = snapshot.reference.update.call_args.args[0]
        assert isinstance(payload["uniformLog"], firestore.ArrayUnion)
        assert isinstance(payload["version"], firestore.Increment)

    def test_versioned_append_carries_precondition(self, store, client):
        snapshot = _snapshot("s1", {
            "name": "Ann", "level": "Junior", "gender": "Boys", "schoolId": "school-1", "version": 5,
        })
        _returns(client, snapshot)

        store.append_log_entry("s1", LogEntry(uniform_id="shirt", size_wanted="L"), expected_version=5)

        client.write_option.assert_called_once_with(last_update_time=snapshot.update_time)
        assert snapshot.reference.update.call_args.kwargs == {"option": client.write_option.return_value}

    def test_write_after_version_check_becomes_conflict(self, store, client):
        snapshot = _snapshot("s1", {
            "name": "Ann", "level": "Junior", "gender": "Boys", "schoolId": "school-1", "version": 5,
        })
        snapshot.reference.update.side_effect = google_exceptions.FailedPrecondition("stale")
        _returns(client, snapshot)

        with pytest.raises(ConflictError):
            store.append_log_entry("s1", LogEntry(uniform_id="shirt", size_wanted="L"), expected_version=5)

    def test_update_student_changes_group(self, store, client, transactions):
        _returns(client, _snapshot("s1", {
            "name": "Ann", "level": "Junior", "gender": "Girls", "schoolId": "school-1", "version": 2,
        }))

        student = store.update_student("s1", StudentUpdate(level="Senior", expected_version=2))

        payload = client.transaction.return_value.update.call_args.args[1]
        assert payload == {"level": "Senior", "version": 3}
        assert (student.level, student.version) == ("Senior", 3)

    def test_update_student_with_stale_version(self, store, client, transactions):
        _returns(client, _snapshot("s1", {
            "name": "Ann", "level": "Junior", "gender": "Girls", "schoolId": "school-1", "version": 2,
        }))

        with pytest.raises(ConflictError):
            store.update_student("s1", StudentUpdate(level="Senior", expected_version=1))

        client.transaction.return_value.update.assert_not_called()

    def test_append_with_stale_version(self, store, client):
        snapshot = _snapshot("s1", {
            "name": "Ann", "level": "Junior", "gender": "Boys", "schoolId": "school-1", "version": 5,
        })
        _returns(client, snapshot)

        with pytest.raises(ConflictError):
            store.append_log_entry("s1", LogEntry(uniform_id="shirt", size_wanted="L"), expected_version=4)

        snapshot.reference.update.assert_not_called()

    def test_students_queried_by_school_and_sorted(self, store, client):
        query = client.collection.return_value.where.return_value
        query.stream.return_value = [
            _snapshot("s2", {"name": "Ben", "level": "Junior", "gender": "Boys", "schoolId": "school-1"}),
            _snapshot("s1", {
                "name": "Ann", "level": "Junior", "gender": "Boys", "schoolId": "school-1", "uniformLog": None,
            }),
        ]

        students = store.list_students_by_school("school-1")

        client.collection.return_value.where.assert_called_once_with("schoolId", "==", "school-1")
        assert [s.id for s in students] == ["s1", "s2"]
        assert students[0].uniform_log == []

    def test_add_student_to_missing_school(self, store, client):
        _returns(client, _snapshot("nope", None, exists=False))

        with pytest.raises(NotFoundError):
            store.add_student("nope", StudentCreate(name="Ann", form="1A"))

        client.collection.return_value.document.return_value.set.assert_not_called()


class TestIntents:
    def test_save_intent_sets_created_at(self, store, client):
        intent = DistributionIntentRecord(
            id="intent-1",
            student_id="s1",
            entry=LogEntry(uniform_id="shirt", quantity_received=1, size_received="M"),
        )

        saved = store.save_intent(intent)

        client.collection.assert_called_with("distributionIntents")
        client.collection.return_value.document.assert_called_with("intent-1")
        document = client.collection.return_value.document.return_value.set.call_args.args[0]
        assert "id" not in document
        assert document["status"] == "pending"
        assert saved.created_at is not None

    def test_open_intents_filtered_by_status(self, store, client):
        query = client.collection.return_value.where.return_value
        query.stream.return_value = [
            _snapshot("b", {"studentId": "s1", "entry": {"uniformId": "shirt"}, "status": "failed"}),
            _snapshot("a", {"studentId": "s1", "entry": {"uniformId": "shirt"}, "status": "pending"}),
        ]

        intents = store.list_intents(["pending", "failed"])

        client.collection.return_value.where.assert_called_once_with("status", "in", ["pending", "failed"])
        assert [i.id for i in intents] == ["a", "b"]

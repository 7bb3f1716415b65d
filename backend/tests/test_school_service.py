"""Tests for school and student maintenance."""

import pytest

from uniformtrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from uniformtrack.schemas.school import SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import StudentCreate, StudentUpdate
from uniformtrack.services.report_service import ReportService
from uniformtrack.services.school_service import SchoolService


@pytest.fixture
def service(store):
    return SchoolService(store)


class TestSchools:
    def test_rename_strips_whitespace(self, service, test_school):
        school = service.update_school(test_school.id, SchoolUpdate(name="  Hillside College "))

        assert school.name == "Hillside College"
        assert school.version == test_school.version + 1
        assert [p.id for p in school.uniform_policy] == ["policy-shirt-jb"]

    def test_blank_name_rejected(self, service, test_school):
        with pytest.raises(ValidationError):
            service.update_school(test_school.id, SchoolUpdate(name="   "))

        assert service.get_school(test_school.id).version == test_school.version

    def test_update_missing_school(self, service):
        with pytest.raises(NotFoundError):
            service.update_school("nope", SchoolUpdate(status="inactive"))

    def test_delete_removes_enrolled_students(self, service, store, test_school, test_student):
        other = service.add_school(SchoolCreate(name="Lakeview"))
        kept = service.add_student(other.id, StudentCreate(name="Ann Phiri", form="2B"))

        service.delete_school(test_school.id)

        assert [s.id for s in service.list_schools()] == [other.id]
        with pytest.raises(NotFoundError):
            service.get_student(test_student.id)
        assert [s.id for s in service.list_students(other.id)] == [kept.id]


class TestStudents:
    def test_level_change_brings_student_under_policy(self, service, store, test_school):
        student = service.add_student(
            test_school.id, StudentCreate(name="Grace Mwale", form="4C", level="Senior", gender="Boys")
        )
        reports = ReportService(store)
        assert reports.student_deficit(student.id).status == "no-policy"

        updated = service.update_student(student.id, StudentUpdate(level="Junior"))

        deficit = reports.student_deficit(student.id)
        assert updated.version == student.version + 1
        assert deficit.status == "pending"
        assert deficit.total_required == 2

    def test_blank_name_rejected(self, service, test_student):
        with pytest.raises(ValidationError):
            service.update_student(test_student.id, StudentUpdate(name=" "))

        assert service.get_student(test_student.id).name == "Tom Banda"

    def test_explicit_null_group_rejected(self, service, test_student):
        with pytest.raises(ValidationError):
            service.update_student(test_student.id, StudentUpdate(gender=None))

    def test_stale_version_rejected(self, service, test_student):
        service.update_student(test_student.id, StudentUpdate(form="1B"))

        with pytest.raises(ConflictError):
            service.update_student(
                test_student.id, StudentUpdate(form="1C", expected_version=test_student.version)
            )

        assert service.get_student(test_student.id).form == "1B"

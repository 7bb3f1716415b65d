"""School Service - schools and their enrolled students."""

import logging
from typing import List

from uniformtrack.core.exceptions import ValidationError
from uniformtrack.schemas.school import GENDERS, LEVELS, School, SchoolCreate, SchoolUpdate
from uniformtrack.schemas.student import Student, StudentCreate, StudentUpdate
from uniformtrack.services.store import DocumentStore

logger = logging.getLogger(__name__)


class SchoolService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def list_schools(self) -> List[School]:
        return self.store.list_schools()

    def get_school(self, school_id: str) -> School:
        return self.store.get_school(school_id)

    def add_school(self, data: SchoolCreate) -> School:
        name = data.name.strip()
        if not name:
            raise ValidationError("School name is required")
        school = self.store.add_school(data.model_copy(update={"name": name}))
        logger.info("Created school %s (%s)", school.id, school.name)
        return school

    def update_school(self, school_id: str, data: SchoolUpdate) -> School:
        if "name" in data.model_fields_set:
            name = (data.name or "").strip()
            if not name:
                raise ValidationError("School name is required")
            data = data.model_copy(update={"name": name})
        if "status" in data.model_fields_set and data.status is None:
            raise ValidationError("School status cannot be empty")
        school = self.store.update_school(school_id, data)
        logger.info("Updated school %s (version %d)", school.id, school.version)
        return school

    def delete_school(self, school_id: str) -> None:
        """Delete a school and every student enrolled at it."""
        enrolled = len(self.list_students(school_id))
        self.store.delete_school(school_id)
        logger.info("Deleted school %s with %d students", school_id, enrolled)

    def list_students(self, school_id: str) -> List[Student]:
        self.store.get_school(school_id)
        return self.store.list_students_by_school(school_id)

    def get_student(self, student_id: str) -> Student:
        return self.store.get_student(student_id)

    def add_student(self, school_id: str, data: StudentCreate) -> Student:
        """Enroll a student with an empty uniform log."""
        name = data.name.strip()
        form = data.form.strip()
        if not name or not form:
            raise ValidationError("Student name and form are required")
        if data.level not in LEVELS or data.gender not in GENDERS:
            raise ValidationError(f"Unsupported student group {data.level}/{data.gender}")

        student = self.store.add_student(school_id, data.model_copy(update={"name": name, "form": form}))
        logger.info("Enrolled student %s at school %s", student.id, school_id)
        return student

    def update_student(self, student_id: str, data: StudentUpdate) -> Student:
        """Edit a student's details.

        A new level or gender changes which policies apply, so deficits are
        recomputed against the new group on the next report.
        """
        changes = {}
        for field in ("name", "form"):
            if field in data.model_fields_set:
                value = (getattr(data, field) or "").strip()
                if not value:
                    raise ValidationError("Student name and form are required")
                changes[field] = value
        for field in ("level", "gender"):
            if field in data.model_fields_set and getattr(data, field) is None:
                raise ValidationError(f"Student {field} cannot be empty")

        student = self.store.update_student(student_id, data.model_copy(update=changes))
        logger.info(
            "Updated student %s (%s/%s, version %d)",
            student.id, student.level, student.gender, student.version,
        )
        return student

    def delete_student(self, student_id: str) -> None:
        self.store.delete_student(student_id)
        logger.info("Deleted student %s", student_id)

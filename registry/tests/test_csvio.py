from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

import pytest

from registry import csvio
from registry.exceptions import StorageError
from registry.integrity import Entity
from registry.models import Course, Enrolment, Status, Student
from registry.services import RegistryService
from registry.store import EntityStore


def test_to_csv_quotes_only_when_needed_and_has_no_trailing_newline():
    text = csvio.to_csv(["Code", "Title"], [["CS101", 'Intro, "Basics"'], ["MA201", None]])
    assert text == 'Code,Title\nCS101,"Intro, ""Basics"""\nMA201,'


def test_to_csv_quotes_fields_with_line_breaks():
    text = csvio.to_csv(["Code", "Title"], [["CS101", "line1\nline2"], ["CS102", "a\rb"], ["CS103", "x\r\ny"]])
    assert text == 'Code,Title\nCS101,"line1\nline2"\nCS102,"a\rb"\nCS103,"x\r\ny"'


def test_exported_line_breaks_read_back_unchanged():
    text = csvio.to_csv(["Code", "Title"], [["CS101", "line1\nline2"], ["CS102", "a\rb"]])
    assert [row["title"] for _, row in csvio.read_rows(text)] == ["line1\nline2", "a\rb"]


def test_export_filename_uses_utc_minutes():
    moment = datetime(2026, 10, 19, 8, 30, 59, 123000, tzinfo=dt_timezone.utc)
    assert csvio.export_filename("courses", now=moment) == "courses-2026-10-19T08-30.csv"
    assert csvio.export_filename("courses", timestamp=False) == "courses.csv"


def test_parse_status_words():
    assert csvio.parse_status("i") == Status.INACTIVE
    assert csvio.parse_status(" false ") == Status.INACTIVE
    assert csvio.parse_status("0") == Status.INACTIVE
    assert csvio.parse_status("TRUE") == Status.ACTIVE
    assert csvio.parse_status("") == Status.ACTIVE
    assert csvio.parse_status("whatever") == Status.ACTIVE


def test_parse_credits_defaults_and_rejects_garbage():
    assert csvio.parse_credits("") == 3
    assert csvio.parse_credits(" 4 ") == 4
    with pytest.raises(csvio.RowError):
        csvio.parse_credits("four")


def test_read_rows_normalises_headers_and_skips_blank_rows():
    text = "\ufeff Name ,EMAIL\nAnn,ann@example.com\n,\nBob,bob@example.com\n"
    rows = csvio.read_rows(text)
    assert [row for _, row in rows] == [
        {"name": "Ann", "email": "ann@example.com"},
        {"name": "Bob", "email": "bob@example.com"},
    ]
    assert rows[1][0] == 4


@pytest.mark.django_db
def test_export_enrolments_joins_current_records(seeded):
    store = EntityStore()
    Enrolment.objects.create(student_email="ghost@example.com", course_code="CS101")
    text = csvio.export_entity(
        Entity.ENROLMENT,
        store.list(Entity.STUDENT),
        store.list(Entity.COURSE),
        store.list(Entity.ENROLMENT),
    )
    lines = text.split("\n")
    assert lines[0] == "Student,Email,Course,Title,StudentStatus,CourseStatus"
    assert lines[1] == "Ann Lee,ann@example.com,CS101,Intro to CS,ACTIVE,ACTIVE"
    # Missing student falls back to the e-mail
    assert lines[2] == "ghost@example.com,ghost@example.com,CS101,Intro to CS,,ACTIVE"


@pytest.mark.django_db
def test_export_courses_quotes_titles_with_commas_and_quotes(service):
    service.create_course({"code": "CS101", "title": 'Intro, "Basics"', "credits": 3})
    text = csvio.export_entity(Entity.COURSE, [], Course.objects.all(), [])
    assert text == 'Code,Title,Credits,Status\nCS101,"Intro, ""Basics""",3,ACTIVE'


@pytest.mark.django_db
def test_import_courses_counts_invalid_and_duplicate_rows(service):
    text = (
        "Code,Title,Credits,Status\n"
        "CS101,Intro,3,A\n"
        "MA201,Algebra,,I\n"
        "cs101,Duplicate,3,A\n"
        "PH100,Physics,lots,A\n"
        ",No code,3,A\n"
    )
    result = csvio.import_csv(Entity.COURSE, text, service)
    assert (result.imported, result.failed) == (2, 3)
    assert [e["line"] for e in result.errors] == [4, 5, 6]
    assert result.errors[0]["error"] == "A course with this code already exists."
    assert Course.objects.get(code="MA201").credits == 3
    assert Course.objects.get(code="MA201").status == Status.INACTIVE


@pytest.mark.django_db
def test_import_students_rejects_invalid_email(service):
    text = "name,email,status\nAnn,ann@example.com,\nBad,not-an-email,\n"
    result = csvio.import_csv(Entity.STUDENT, text, service)
    assert result.imported == 1 and result.failed == 1
    assert Student.objects.get().email == "ann@example.com"


@pytest.mark.django_db
def test_import_enrolments_accepts_header_aliases_and_normalises_keys(service, seeded):
    text = "StudentEmail,CourseCode\nBOB@Example.com,ma201\nann@example.com,CS101\nnobody@example.com,CS101\n"
    result = csvio.import_csv(Entity.ENROLMENT, text, service)
    assert result.imported == 1
    assert [e["error"] for e in result.errors] == ["Already enrolled in this course.", "Student not found."]
    assert Enrolment.objects.filter(student_email="bob@example.com", course_code="MA201").exists()


@pytest.mark.django_db
def test_import_unknown_entity_raises():
    with pytest.raises(ValueError):
        csvio.import_csv("grade", "a,b\n1,2\n", RegistryService())


@pytest.mark.django_db
def test_storage_errors_abort_the_import():
    class BrokenStore(EntityStore):
        def insert(self, entity, values):
            raise StorageError("database is locked")

    with pytest.raises(StorageError):
        csvio.import_csv(Entity.COURSE, "code,title\nCS101,Intro\n", RegistryService(store=BrokenStore()))

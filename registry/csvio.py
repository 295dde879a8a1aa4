"""CSV export and import for the registry.

Export writes a header row of labels and one row per record. Fields that
contain a comma, a quote or a newline are quoted, with inner quotes
doubled; records are joined by newlines with no trailing newline.

Import is header-driven (headers trimmed and lower-cased). Each row goes
through the registry service on its own, so an invalid or rejected row
is skipped and counted without aborting the batch.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Iterable, Sequence

from django.core.exceptions import ValidationError

from .exceptions import ConstraintError, ConstraintViolation, NotFound
from .integrity import Entity
from .models import Status

logger = logging.getLogger(__name__)

STUDENT_HEADERS = ["Name", "Email", "Status", "Course"]
COURSE_HEADERS = ["Code", "Title", "Credits", "Status"]
ENROLMENT_HEADERS = ["Student", "Email", "Course", "Title", "StudentStatus", "CourseStatus"]

DEFAULT_CREDITS = 3

_INACTIVE_WORDS = {"INACTIVE", "I", "FALSE", "0"}


def _csv_line(values: Sequence[Any]) -> str:
    # "\r\n" as terminator makes QUOTE_MINIMAL quote fields holding either character
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL).writerow(
        ["" if v is None else v for v in values]
    )
    return buf.getvalue().removesuffix("\r\n")


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    return "\n".join([_csv_line(headers), *(_csv_line(row) for row in rows)])


def export_filename(base: str, *, timestamp: bool = True, now: datetime | None = None) -> str:
    """`<base>-<YYYY-MM-DDTHH-MM>.csv` from the UTC ISO timestamp."""
    if not timestamp:
        return f"{base}.csv"
    moment = (now or datetime.now(dt_timezone.utc)).astimezone(dt_timezone.utc)
    stamp = moment.isoformat().replace(":", "-").replace(".", "-")[:16]
    return f"{base}-{stamp}.csv"


def student_rows(students: Iterable) -> list[list]:
    return [[s.name, s.email, s.status, s.course] for s in students]


def course_rows(courses: Iterable) -> list[list]:
    return [[c.code, c.title, c.credits, c.status] for c in courses]


def enrolment_rows(enrolments: Iterable, students: Iterable, courses: Iterable) -> list[list]:
    by_email = {s.email.lower(): s for s in students}
    by_code = {c.code.lower(): c for c in courses}
    rows = []
    for e in enrolments:
        s = by_email.get(e.student_email.lower())
        c = by_code.get(e.course_code.lower())
        rows.append([
            s.name if s else e.student_email,
            e.student_email,
            e.course_code,
            c.title if c else "",
            s.status if s else "",
            c.status if c else "",
        ])
    return rows


def export_entity(entity: str, students: Iterable, courses: Iterable, enrolments: Iterable) -> str:
    if entity == Entity.STUDENT:
        return to_csv(STUDENT_HEADERS, student_rows(students))
    if entity == Entity.COURSE:
        return to_csv(COURSE_HEADERS, course_rows(courses))
    if entity == Entity.ENROLMENT:
        return to_csv(ENROLMENT_HEADERS, enrolment_rows(enrolments, list(students), list(courses)))
    raise ValueError(f"Unknown entity: {entity!r}")


# Import


@dataclass
class ImportResult:
    imported: int = 0
    failed: int = 0
    errors: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"imported": self.imported, "failed": self.failed, "errors": self.errors}


class RowError(ValueError):
    """A CSV row is missing or carries an unusable value."""


def parse_status(value: str | None) -> str:
    """INACTIVE for INACTIVE/I/FALSE/0; anything else, blank included, is ACTIVE."""
    word = (value or "").strip().upper()
    if word in _INACTIVE_WORDS:
        return Status.INACTIVE
    return Status.ACTIVE


def parse_credits(value: str | None) -> int:
    raw = (value or "").strip()
    if not raw:
        return DEFAULT_CREDITS
    try:
        return int(raw)
    except ValueError:
        raise RowError(f"Invalid credits: {raw!r}") from None


def read_rows(text: str) -> list[tuple[int, dict]]:
    """Parse CSV text into `(line_number, row)` pairs with normalised headers."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if reader.fieldnames:
        reader.fieldnames = [(h or "").strip().lower() for h in reader.fieldnames]
    rows = []
    for row in reader:
        values = {k: (v or "").strip() for k, v in row.items() if k is not None and isinstance(v, str)}
        if not any(values.values()):
            continue
        rows.append((reader.line_num, values))
    return rows


def _first(row: dict, *names: str) -> str:
    for name in names:
        if row.get(name):
            return row[name]
    return ""


def _student_values(row: dict) -> dict:
    name, email = row.get("name", ""), row.get("email", "")
    if not name or not email:
        raise RowError("Name and email are required.")
    return {
        "name": name,
        "email": email,
        "status": parse_status(row.get("status")),
        "course": row.get("course") or None,
    }


def _course_values(row: dict) -> dict:
    code, title = row.get("code", ""), row.get("title", "")
    if not code or not title:
        raise RowError("Code and title are required.")
    return {
        "code": code,
        "title": title,
        "credits": parse_credits(row.get("credits")),
        "status": parse_status(row.get("status")),
    }


def _enrolment_keys(row: dict) -> tuple[str, str]:
    email = _first(row, "studentemail", "email").lower()
    code = _first(row, "coursecode", "code").upper()
    if not email or not code:
        raise RowError("Student e-mail and course code are required.")
    return email, code


def import_csv(entity: str, text: str, service) -> ImportResult:
    """Import rows for `entity` through `service` (a `RegistryService`)."""
    if entity not in (Entity.STUDENT, Entity.COURSE, Entity.ENROLMENT):
        raise ValueError(f"Unknown entity: {entity!r}")
    result = ImportResult()
    for line, row in read_rows(text):
        try:
            if entity == Entity.STUDENT:
                service.create_student(_student_values(row))
            elif entity == Entity.COURSE:
                service.create_course(_course_values(row))
            else:
                service.enrol(*_enrolment_keys(row))
        except (RowError, ValidationError, ConstraintError, ConstraintViolation, NotFound) as exc:
            result.failed += 1
            result.errors.append({"line": line, "error": _message(exc)})
            continue
        result.imported += 1
    logger.info("Imported %d %s rows, %d failed", result.imported, entity, result.failed)
    return result


def _message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc)

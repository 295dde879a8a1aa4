"""Dashboard statistics over the registry collections."""
from __future__ import annotations

from collections import Counter
from typing import Iterable

from django.utils import timezone

from .models import Status

TOP_COURSES = 8


def _status_counts(records: list) -> dict:
    active = sum(1 for r in records if r.status == Status.ACTIVE)
    return {"total": len(records), "active": active, "inactive": len(records) - active}


def dashboard(students: Iterable, courses: Iterable, enrolments: Iterable) -> dict:
    """KPIs, enrolments per course (top 8) and enrolments per day."""
    students, courses, enrolments = list(students), list(courses), list(enrolments)
    titles = {c.code.lower(): c.title for c in courses}

    per_course = Counter(e.course_code for e in enrolments)
    # most_common keeps first-seen order among equal counts
    top = [
        {"code": code, "title": titles.get(code.lower(), ""), "count": count}
        for code, count in per_course.most_common(TOP_COURSES)
    ]
    per_day = Counter(timezone.localdate(e.created_at).isoformat() for e in enrolments)
    by_day = [{"date": day, "count": per_day[day]} for day in sorted(per_day)]

    return {
        "students": _status_counts(students),
        "courses": _status_counts(courses),
        "enrolments": {"total": len(enrolments)},
        "enrolments_per_course": top,
        "enrolments_by_day": by_day,
    }

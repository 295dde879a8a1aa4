"""Exact-match list filters (case-insensitive on natural keys)."""
from __future__ import annotations

import django_filters

from registry.models import Course, Enrolment, Status, Student


class StudentFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Status.choices)
    course = django_filters.CharFilter(field_name="course", lookup_expr="iexact")

    class Meta:
        model = Student
        fields = ["status", "course"]


class CourseFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Status.choices)

    class Meta:
        model = Course
        fields = ["status"]


class EnrolmentFilter(django_filters.FilterSet):
    student = django_filters.CharFilter(field_name="student_email", lookup_expr="iexact")
    course = django_filters.CharFilter(field_name="course_code", lookup_expr="iexact")

    class Meta:
        model = Enrolment
        fields = ["student", "course"]

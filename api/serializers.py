"""Serializers for REST API v1.

Serializers validate request fields only. Writes go through
`registry.services.RegistryService`, which owns the integrity rules.
"""
from __future__ import annotations

from rest_framework import serializers

from registry.models import Course, Enrolment, Student


class StudentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Student
        fields = ("email", "name", "status", "course", "created_at", "updated_at")
        read_only_fields = ("created_at", "updated_at")


class CourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ("code", "title", "credits", "status", "created_at", "updated_at")
        read_only_fields = ("created_at", "updated_at")


class EnrolmentSerializer(serializers.ModelSerializer):
    # Joined from the referenced records by the view (see `annotate_enrolments`)
    student_name = serializers.SerializerMethodField()
    course_title = serializers.SerializerMethodField()
    student_status = serializers.SerializerMethodField()
    course_status = serializers.SerializerMethodField()

    class Meta:
        model = Enrolment
        fields = (
            "id",
            "student_email",
            "course_code",
            "created_at",
            "student_name",
            "course_title",
            "student_status",
            "course_status",
        )
        read_only_fields = ("created_at",)

    def get_student_name(self, obj) -> str | None:
        return getattr(obj, "student_name", None)

    def get_course_title(self, obj) -> str | None:
        return getattr(obj, "course_title", None)

    def get_student_status(self, obj) -> str | None:
        return getattr(obj, "student_status", None)

    def get_course_status(self, obj) -> str | None:
        return getattr(obj, "course_status", None)


class ImportResultSerializer(serializers.Serializer):
    imported = serializers.IntegerField()
    failed = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.DictField())


class CsvUploadSerializer(serializers.Serializer):
    file = serializers.FileField()

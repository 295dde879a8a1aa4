"""Registry models: students, courses and enrolments.

Enrolments reference students and courses by natural key (e-mail and
course code) rather than by foreign key. Keeping those references
consistent is the job of the integrity engine in `registry.integrity`;
the functional unique constraints below are the storage-level backstop
for case-insensitive uniqueness.
"""
from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.db.models.functions import Lower
from django.utils import timezone


class Status(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"


class Course(models.Model):
    """A course identified by its code (e.g. MATH101)."""

    code = models.CharField(max_length=32)
    title = models.CharField(max_length=200)
    credits = models.PositiveSmallIntegerField(default=3, validators=[MinValueValidator(1)])
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(Lower("code"), name="uq_course_code_ci"),
            models.CheckConstraint(condition=Q(credits__gte=1), name="ck_course_credits_min_1"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}"

    @property
    def is_active(self) -> bool:
        return self.status == Status.ACTIVE


class Student(models.Model):
    """A student identified by e-mail.

    `course` is a denormalised pointer to a single course code used by
    some views; it is cleared when that course is deleted.
    """

    email = models.EmailField(max_length=254)
    name = models.CharField(max_length=200)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    course = models.CharField(max_length=32, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(Lower("email"), name="uq_student_email_ci"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.email}"

    @property
    def is_active(self) -> bool:
        return self.status == Status.ACTIVE


class Enrolment(models.Model):
    """Link a student to a course by natural keys.

    Created only through the registry service; `created_at` is set once.
    """

    student_email = models.EmailField(max_length=254, db_index=True)
    course_code = models.CharField(max_length=32, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                Lower("student_email"), Lower("course_code"), name="uq_enrolment_pair_ci"
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.student_email}->{self.course_code}"

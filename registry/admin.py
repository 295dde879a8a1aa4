"""Read-only admin for registry records.

Writes must go through `RegistryService` so cascades are applied; the
admin is for browsing and searching only.
"""
from django.contrib import admin

from .models import Course, Enrolment, Student


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Student)
class StudentAdmin(ReadOnlyAdmin):
    list_display = ("email", "name", "status", "course", "created_at")
    list_filter = ("status",)
    search_fields = ("email", "name", "course")


@admin.register(Course)
class CourseAdmin(ReadOnlyAdmin):
    list_display = ("code", "title", "credits", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("code", "title")


@admin.register(Enrolment)
class EnrolmentAdmin(ReadOnlyAdmin):
    list_display = ("student_email", "course_code", "created_at")
    search_fields = ("student_email", "course_code")

"""REST API v1 viewsets and endpoints.

Reads go straight to the ORM; every write is delegated to
`RegistryService` so that the integrity rules and their cascades apply
no matter which client made the change.
"""
from __future__ import annotations


from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from registry import csvio, stats
from registry.integrity import Entity
from registry.models import Course, Enrolment, Student
from registry.services import RegistryService
from registry.store import EntityStore
from .filters import CourseFilter, EnrolmentFilter, StudentFilter
from .pagination import PresentPagination
from .serializers import (
    CourseSerializer,
    CsvUploadSerializer,
    EnrolmentSerializer,
    ImportResultSerializer,
    StudentSerializer,
)


_TRUE_WORDS = {"1", "true", "yes", "on"}

CONFIRM_PARAM = OpenApiParameter(
    "confirm",
    OpenApiTypes.BOOL,
    description="Acknowledge a confirmation warning (409 confirmation_required) and apply the change.",
)


def _confirmed(request) -> bool:
    raw = request.query_params.get("confirm")
    if raw is None and hasattr(request.data, "get"):
        raw = request.data.get("confirm")
    return str(raw).strip().lower() in _TRUE_WORDS


def annotate_enrolments(enrolments, students=None, courses=None):
    """Attach student/course display fields to each enrolment in place."""
    store = EntityStore()
    if students is None:
        students = store.list(Entity.STUDENT)
    if courses is None:
        courses = store.list(Entity.COURSE)
    by_email = {s.email.lower(): s for s in students}
    by_code = {c.code.lower(): c for c in courses}
    for e in enrolments:
        s = by_email.get(e.student_email.lower())
        c = by_code.get(e.course_code.lower())
        setattr(e, "student_name", s.name if s else None)
        setattr(e, "student_status", s.status if s else None)
        setattr(e, "course_title", c.title if c else None)
        setattr(e, "course_status", c.status if c else None)
    return enrolments


class RegistryViewSet(viewsets.ModelViewSet):
    """Shared CRUD, CSV export and CSV import for one registry entity.

    Subclasses set `entity`, `export_base`, `search_fields` (free-text
    filter) and `sort_fields` (sortable columns).
    """

    entity: str = ""
    export_base: str = ""
    search_fields: tuple[str, ...] = ()
    sort_fields: tuple[str, ...] = ()
    pagination_class = PresentPagination
    lookup_value_regex = "[^/]+"

    def get_service(self) -> RegistryService:
        return RegistryService()

    def get_object(self):
        key = self.kwargs[self.lookup_url_kwarg or self.lookup_field]
        obj = EntityStore().get(self.entity, key)
        self.check_object_permissions(self.request, obj)
        return obj

    @extend_schema(responses={(200, "text/csv"): OpenApiTypes.STR})
    @action(detail=False, methods=["get"])
    def export(self, request):
        store = EntityStore()
        records = {
            Entity.STUDENT: store.list(Entity.STUDENT),
            Entity.COURSE: store.list(Entity.COURSE),
            Entity.ENROLMENT: store.list(Entity.ENROLMENT),
        }
        records[self.entity] = list(self.filter_queryset(self.get_queryset()))
        text = csvio.export_entity(
            self.entity, records[Entity.STUDENT], records[Entity.COURSE], records[Entity.ENROLMENT]
        )
        filename = csvio.export_filename(self.export_base)
        resp = HttpResponse(text, content_type="text/csv; charset=utf-8")
        resp["Content-Disposition"] = f'attachment; filename="{filename}"'
        return resp

    @extend_schema(request={"multipart/form-data": CsvUploadSerializer}, responses=ImportResultSerializer)
    @action(
        detail=False,
        methods=["post"],
        url_path="import",
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_csv(self, request):
        upload = CsvUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        try:
            text = upload.validated_data["file"].read().decode("utf-8-sig")
        except UnicodeDecodeError:
            return Response(
                {"detail": "File must be UTF-8 encoded CSV.", "code": "invalid_encoding"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        result = csvio.import_csv(self.entity, text, self.get_service())
        return Response(ImportResultSerializer(result.as_dict()).data)


@extend_schema(parameters=[CONFIRM_PARAM])
class StudentViewSet(RegistryViewSet):
    queryset = Student.objects.all()
    serializer_class = StudentSerializer
    filterset_class = StudentFilter
    parser_classes = [JSONParser, FormParser, MultiPartParser]
    lookup_field = "email"
    entity = Entity.STUDENT
    export_base = "students"
    search_fields = ("name", "email", "status", "course")
    sort_fields = ("name", "email", "status", "course")

    def perform_create(self, serializer):
        serializer.instance = self.get_service().create_student(serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = self.get_service().update_student(
            serializer.instance.email,
            serializer.validated_data,
            acknowledged=_confirmed(self.request),
        )

    def perform_destroy(self, instance):
        self.get_service().delete_student(instance.email)


@extend_schema(parameters=[CONFIRM_PARAM])
class CourseViewSet(RegistryViewSet):
    queryset = Course.objects.all()
    serializer_class = CourseSerializer
    filterset_class = CourseFilter
    parser_classes = [JSONParser, FormParser, MultiPartParser]
    lookup_field = "code"
    entity = Entity.COURSE
    export_base = "courses"
    search_fields = ("code", "title", "credits", "status")
    # Credits compare as text, like every other column
    sort_fields = ("code", "title", "credits", "status")

    def perform_create(self, serializer):
        serializer.instance = self.get_service().create_course(serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = self.get_service().update_course(
            serializer.instance.code,
            serializer.validated_data,
            acknowledged=_confirmed(self.request),
        )

    def perform_destroy(self, instance):
        self.get_service().delete_course(instance.code)


class EnrolmentViewSet(RegistryViewSet):
    queryset = Enrolment.objects.all()
    serializer_class = EnrolmentSerializer
    filterset_class = EnrolmentFilter
    parser_classes = [JSONParser, FormParser, MultiPartParser]
    lookup_value_regex = "[0-9]+"
    entity = Entity.ENROLMENT
    export_base = "enrolments"
    search_fields = ("student_email", "course_code", "student_name", "course_title")
    sort_fields = ("student_name", "student_email", "course_code", "course_title", "created_at")

    def prepare_rows(self, rows):
        return annotate_enrolments(rows)

    def get_object(self):
        obj = super().get_object()
        annotate_enrolments([obj])
        return obj

    def perform_create(self, serializer):
        data = serializer.validated_data
        record = self.get_service().enrol(data["student_email"], data["course_code"])
        serializer.instance = annotate_enrolments([record])[0]

    def perform_update(self, serializer):
        current = serializer.instance
        data = serializer.validated_data
        record = self.get_service().update_enrolment(
            current.pk,
            data.get("student_email", current.student_email),
            data.get("course_code", current.course_code),
        )
        serializer.instance = annotate_enrolments([record])[0]

    def perform_destroy(self, instance):
        self.get_service().delete_enrolment(instance.pk)


@extend_schema(responses=OpenApiTypes.OBJECT)
@api_view(["GET"])
def dashboard(request):
    """Registry KPIs, top courses by enrolment and enrolments per day."""
    store = EntityStore()
    data = stats.dashboard(
        store.list(Entity.STUDENT),
        store.list(Entity.COURSE),
        store.list(Entity.ENROLMENT),
    )
    return Response(data)

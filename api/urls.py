"""API routes for Registrar.

Versioned REST endpoints under /api/v1/ plus the OpenAPI schema and
interactive documentation.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)


from .views import (
    StudentViewSet,
    CourseViewSet,
    EnrolmentViewSet,
    dashboard,
)

router = DefaultRouter()
router.register(r"api/v1/students", StudentViewSet, basename="students")
router.register(r"api/v1/courses", CourseViewSet, basename="courses")
router.register(r"api/v1/enrolments", EnrolmentViewSet, basename="enrolments")

urlpatterns = [
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("api/v1/dashboard/", dashboard, name="dashboard"),
    path("", include(router.urls)),
]

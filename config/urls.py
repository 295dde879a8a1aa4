"""URL routing for Registrar.

Admin, the change feed, and the REST API with its schema and docs.
"""
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("changes/", include("changes.urls")),
    path("", include("api.urls")),
]

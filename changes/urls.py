from django.urls import path

from .views import changes_recent

app_name = "changes"

urlpatterns = [
    path("recent/", changes_recent, name="recent"),
]

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """App configuration for the registry REST API (v1)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "api"


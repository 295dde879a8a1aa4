from django.apps import AppConfig


class RegistryConfig(AppConfig):
    """App configuration for students, courses and enrolments."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "registry"

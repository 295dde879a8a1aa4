from django.apps import AppConfig


class ChangesConfig(AppConfig):
    """App configuration for the registry change feed (HTTP and WebSocket)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "changes"

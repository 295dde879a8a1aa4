from __future__ import annotations

from django.urls import re_path
from .consumers import RegistryChangesConsumer


websocket_urlpatterns = [
    re_path(r"^ws/changes/$", RegistryChangesConsumer.as_asgi()),
]

"""Record registry mutations and push them to WebSocket subscribers."""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from .models import ChangeEvent

logger = logging.getLogger(__name__)

GROUP_NAME = "registry.changes"
REPLAY_LIMIT = 100


def current_revision() -> int:
    latest = ChangeEvent.objects.order_by("-id").values_list("id", flat=True).first()
    return latest or 0


def events_since(revision: int, limit: int = REPLAY_LIMIT) -> list[ChangeEvent]:
    return list(ChangeEvent.objects.filter(id__gt=revision).order_by("id")[:limit])


def broadcast(payload: dict) -> None:
    layer = get_channel_layer()
    if layer is None:
        return
    async_to_sync(layer.group_send)(GROUP_NAME, {"type": "registry_change", "payload": payload})


def record_change(entity: str, action: str, key, cascade_count: int = 0) -> ChangeEvent:
    """Store a change event; subscribers hear about it only after commit."""
    event = ChangeEvent.objects.create(
        entity=str(entity), action=str(action), key=str(key), cascade_count=cascade_count
    )
    payload = event.as_payload()
    transaction.on_commit(lambda: broadcast(payload), robust=True)
    logger.debug("Recorded change r%s %s %s %s", event.id, action, entity, key)
    return event

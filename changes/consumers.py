from __future__ import annotations

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .events import GROUP_NAME, current_revision, events_since


@database_sync_to_async
def _revision() -> int:
    return current_revision()


@database_sync_to_async
def _replay(since: int) -> list[dict]:
    return [event.as_payload() for event in events_since(since)]


class RegistryChangesConsumer(AsyncJsonWebsocketConsumer):
    """Push committed registry changes to connected list views.

    Clients re-fetch the affected list when a change arrives. After a
    reconnect they send `{"since": <revision>}` to replay what they missed.
    """

    async def connect(self):
        await self.channel_layer.group_add(GROUP_NAME, self.channel_name)
        await self.accept()
        await self.send_json({"type": "hello", "revision": await _revision()})

    async def receive_json(self, content, **kwargs):
        try:
            since = int(content.get("since"))
        except (AttributeError, TypeError, ValueError):
            # Anything but {"since": <int>} is ignored
            return
        for payload in await _replay(since):
            await self.send_json(payload)

    async def registry_change(self, event):
        await self.send_json(event["payload"])

    async def disconnect(self, code):
        await self.channel_layer.group_discard(GROUP_NAME, self.channel_name)

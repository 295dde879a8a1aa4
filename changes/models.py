"""Change feed model.

One row per committed registry mutation. The auto-increment id doubles
as the registry revision clients use to discard stale list responses.
"""
from __future__ import annotations

from django.db import models


class ChangeEvent(models.Model):
    entity = models.CharField(max_length=16)
    action = models.CharField(max_length=16)
    key = models.CharField(max_length=254)
    cascade_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.id}:{self.action}:{self.entity}:{self.key}"

    def as_payload(self) -> dict:
        return {
            "type": "registry.change",
            "revision": self.id,
            "entity": self.entity,
            "action": self.action,
            "key": self.key,
            "cascade_count": self.cascade_count,
            "created_at": self.created_at.isoformat(),
        }

from __future__ import annotations

from django.http import HttpRequest, JsonResponse

from .events import REPLAY_LIMIT, current_revision, events_since


def _int_param(request: HttpRequest, name: str, default: int) -> int:
    try:
        return int(request.GET.get(name, default))
    except (TypeError, ValueError):
        return default


def changes_recent(request: HttpRequest) -> JsonResponse:
    """Return change events after `since` and the current revision."""
    since = max(_int_param(request, "since", 0), 0)
    limit = min(max(_int_param(request, "limit", REPLAY_LIMIT), 1), REPLAY_LIMIT)
    data = [event.as_payload() for event in events_since(since, limit)]
    return JsonResponse({"revision": current_revision(), "results": data})

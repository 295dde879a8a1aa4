from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from changes.events import current_revision
from registry.listing import ASC, DESC, parse_sort_dir, present, toggle_sort


def _int_param(request, name: str, default: int) -> int:
    try:
        return int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default


class PresentPagination(BasePagination):
    """Search, sort and paginate a list with `registry.listing.present`.

    - `?q=` free-text filter over the view's `search_fields`
    - `?sort=<column>&dir=asc|desc` over the view's `sort_fields`
    - `?page=N` is 1-based; out-of-range pages clamp to the last page
    - `?page_size=N` defaults to REGISTRAR_PAGE_SIZE, capped at REGISTRAR_MAX_PAGE_SIZE

    The response carries the change-feed revision so clients can drop
    stale responses.
    """

    page_query_param = "page"
    page_size_query_param = "page_size"

    def get_page_size(self, request) -> int:
        default = getattr(settings, "REGISTRAR_PAGE_SIZE", 10)
        cap = getattr(settings, "REGISTRAR_MAX_PAGE_SIZE", 100)
        size = _int_param(request, self.page_size_query_param, default)
        return min(max(size, 1), cap)

    def paginate_queryset(self, queryset, request, view=None):
        # Revision is read before the rows so it never claims newer data than it shows
        self.revision = current_revision()
        rows = list(queryset)
        prepare = getattr(view, "prepare_rows", None)
        if prepare is not None:
            rows = prepare(rows)

        sort_fields = list(getattr(view, "sort_fields", ()))
        sort_key = request.query_params.get("sort") or None
        sort_dir = parse_sort_dir(request.query_params.get("dir"))
        if sort_key not in sort_fields or sort_dir is None:
            sort_key, sort_dir = None, None

        self.page_size = self.get_page_size(request)
        self.sort_key, self.sort_dir = sort_key, sort_dir
        self.sort_fields = sort_fields
        self.page = present(
            rows,
            request.query_params.get("q", ""),
            sort_key,
            sort_dir,
            _int_param(request, self.page_query_param, 1) - 1,
            self.page_size,
            fields=getattr(view, "search_fields", ()),
        )
        return self.page.rows

    def next_sort(self) -> dict:
        result = {}
        for column in self.sort_fields:
            key, direction = toggle_sort(self.sort_key, self.sort_dir, column)
            result[column] = {"sort": key, "dir": direction}
        return result

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.total,
                "page": self.page.page_index + 1,
                "page_count": self.page.page_count,
                "page_size": self.page_size,
                "sort": self.sort_key,
                "dir": self.sort_dir,
                "next_sort": self.next_sort(),
                "revision": self.revision,
                "results": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["count", "page", "page_count", "page_size", "revision", "results"],
            "properties": {
                "count": {"type": "integer", "example": 42},
                "page": {"type": "integer", "example": 1},
                "page_count": {"type": "integer", "example": 5},
                "page_size": {"type": "integer", "example": 10},
                "sort": {"type": "string", "nullable": True},
                "dir": {"type": "string", "nullable": True, "enum": [ASC, DESC, None]},
                "next_sort": {"type": "object", "additionalProperties": {"type": "object"}},
                "revision": {"type": "integer", "example": 7},
                "results": schema,
            },
        }

    def get_schema_operation_parameters(self, view):
        def param(name, description, kind="string"):
            return {
                "name": name,
                "required": False,
                "in": "query",
                "description": description,
                "schema": {"type": kind},
            }

        return [
            param("q", "Case-insensitive substring over the display fields."),
            param("sort", "Column to sort by."),
            param("dir", "Sort direction: asc or desc."),
            param(self.page_query_param, "1-based page number (clamped).", "integer"),
            param(self.page_size_query_param, "Rows per page (capped).", "integer"),
        ]

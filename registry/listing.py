"""Filter, sort and paginate a collection for display.

One contract shared by the student, course and enrolment lists so that
all three behave identically. `present` has no side effects and returns
the same page for the same inputs.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

ASC = "asc"
DESC = "desc"
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class Page:
    rows: list
    page_count: int
    page_index: int
    total: int


def _value(record, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _text(value) -> str:
    return "" if value is None else str(value)


def matches(record, query: str, fields: Sequence[str]) -> bool:
    """True if `query` occurs, case-insensitively, in the record's display fields."""
    haystack = " ".join(_text(_value(record, f)) for f in fields).lower()
    return query.lower() in haystack


def parse_sort_dir(raw: str | None) -> str | None:
    value = (raw or "").strip().lower()
    if value in (ASC, DESC):
        return value
    return None


def present(
    collection: Iterable,
    query: str = "",
    sort_key: str | None = None,
    sort_dir: str | None = None,
    page_index: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    fields: Sequence[str],
) -> Page:
    """Return the visible page of `collection`.

    - Filter: blank query keeps everything.
    - Sort: `sort_key` compared as lower-cased strings; `sort_dir=None`
      keeps the filtered order. The sort is stable in both directions.
    - Paginate: page_count is at least 1 and an out-of-range page index
      is clamped to the last page.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    rows = list(collection)
    term = (query or "").strip()
    if term:
        rows = [r for r in rows if matches(r, term, fields)]
    if sort_key and sort_dir in (ASC, DESC):
        rows = sorted(rows, key=lambda r: _text(_value(r, sort_key)).lower(), reverse=sort_dir == DESC)
    total = len(rows)
    page_count = max(1, math.ceil(total / page_size))
    index = min(max(page_index, 0), page_count - 1)
    start = index * page_size
    return Page(rows=rows[start:start + page_size], page_count=page_count, page_index=index, total=total)


def toggle_sort(sort_key: str | None, sort_dir: str | None, column: str) -> tuple[str | None, str | None]:
    """Next sort state after clicking `column`.

    A new column starts ascending; the active column cycles
    asc -> desc -> unsorted -> asc.
    """
    if column != sort_key or sort_dir is None:
        return column, ASC
    if sort_dir == ASC:
        return column, DESC
    return None, None

"""Search, sort and paginate an in-memory collection for a table page.

Everything here is a pure function of (rows, search, sort, page, size). The
filtered list is always rebuilt from the base rows and never edited in place.
"""
import functools
import math
from dataclasses import dataclass, replace
from typing import List, Optional

import config

ASCENDING = "ascending"
DESCENDING = "descending"


@dataclass(frozen=True)
class SortSpec:
    key: str
    direction: str = ASCENDING

    @property
    def indicator(self):
        return "↑" if self.direction == ASCENDING else "↓"


@dataclass(frozen=True)
class ListState:
    search: str = ""
    sort: Optional[SortSpec] = None
    page: int = 1
    size: int = config.DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ListView:
    rows: List[dict]
    filtered: List[dict]
    total_pages: int
    page: int


# --- FILTER ---
def row_text(row):
    return " ".join("" if v is None else str(v) for v in row.values()).lower()


def filter_rows(rows, search):
    if not search:
        return list(rows)
    needle = search.lower()
    return [row for row in rows if needle in row_text(row)]


# --- SORT ---
def _sort_value(row, key):
    value = row.get(key)
    if value is None: return ""
    if isinstance(value, str): return value.lower()
    return value


def _compare(a, b):
    try:
        if a < b: return -1
        if a > b: return 1
        return 0
    except TypeError:
        # e.g. a number against a missing value
        a, b = str(a), str(b)
        return (a > b) - (a < b)


def sort_rows(rows, sort):
    if sort is None:
        return list(rows)
    key = functools.cmp_to_key(lambda x, y: _compare(_sort_value(x, sort.key), _sort_value(y, sort.key)))
    return sorted(rows, key=key, reverse=sort.direction == DESCENDING)


def toggle_sort(current, key):
    if current is not None and current.key == key and current.direction == ASCENDING:
        return SortSpec(key, DESCENDING)
    return SortSpec(key, ASCENDING)


# --- PAGINATE ---
def total_pages(count, size):
    if size < 1:
        raise ValueError(f"page size must be positive, got {size}")
    return max(1, math.ceil(count / size))


def paginate(rows, page, size):
    if page < 1:
        return []
    start = (page - 1) * size
    return list(rows[start:start + size])


def clamp_page(page, pages):
    return min(max(1, page), pages)


def page_range(current, pages):
    return list(range(max(current - 2, 1), min(current + 2, pages) + 1))


def derive(rows, state):
    filtered = sort_rows(filter_rows(rows, state.search), state.sort)
    return ListView(
        rows=paginate(filtered, state.page, state.size),
        filtered=filtered,
        total_pages=total_pages(len(filtered), state.size),
        page=state.page,
    )


# --- STATE TRANSITIONS ---
def with_search(state, search):
    return replace(state, search=search)


def with_sort(state, key):
    return replace(state, sort=toggle_sort(state.sort, key))


def with_page(state, page, pages):
    return replace(state, page=clamp_page(page, pages))


def with_size(state, size, count):
    # Keep the page number but never leave it past the new last page.
    return replace(state, size=size, page=clamp_page(state.page, total_pages(count, size)))


def remove_row(rows, id_key, ident):
    return [row for row in rows if row.get(id_key) != ident]

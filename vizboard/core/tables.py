"""Client-side search, sort and pagination over the filtered rows."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Sequence

import pandas as pd

from vizboard.core.cards import format_value
from vizboard.core.schema import Record, TableColumn, TableDefinition
from vizboard.domain import SortState, TableState


@dataclass(slots=True)
class ColumnView:
    field: str
    header: str
    sortable: bool
    format: str | None = None
    sort_direction: str | None = None


@dataclass(slots=True)
class TableView:
    table_id: str
    title: str
    columns: list[ColumnView]
    rows: list[Record]
    cells: list[dict[str, str]]
    total_filtered: int
    total_pages: int
    page: int
    page_size: int
    start: int
    end: int
    search: str = ""
    search_enabled: bool = True
    search_placeholder: str | None = None
    pagination_enabled: bool = True
    sort: SortState | None = None
    total_rows: int = 0

    @property
    def summary(self) -> str:
        return f"Showing {self.start} to {self.end} of {self.total_filtered} results"


class PageSlice(NamedTuple):
    rows: list[Record]
    total_filtered: int
    total_pages: int
    page: int


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def search_rows(rows: Sequence[Record], term: str) -> list[Record]:
    """Keep rows where any value contains ``term``, ignoring case."""

    if not term:
        return list(rows)
    needle = term.lower()
    return [
        row
        for row in rows
        if any(not _missing(value) and needle in str(value).lower() for value in row.values())
    ]


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value).lower())


def sort_rows(rows: Sequence[Record], sort: SortState | None) -> list[Record]:
    """Stable sort; missing values stay at the end in both directions."""

    if sort is None:
        return list(rows)
    present = [row for row in rows if not _missing(row.get(sort.key))]
    missing = [row for row in rows if _missing(row.get(sort.key))]
    ordered = sorted(present, key=lambda row: _sort_key(row[sort.key]), reverse=sort.direction == "desc")
    return ordered + missing


def total_pages(count: int, page_size: int) -> int:
    return math.ceil(count / page_size) if page_size > 0 else 0


def clamp_page(page: int, pages: int) -> int:
    return min(max(page, 1), max(pages, 1))


def paginate(rows: Sequence[Record], page: int, page_size: int) -> list[Record]:
    start = (page - 1) * page_size
    return list(rows[start : start + page_size])


def format_cell(value: Any, fmt: str | None = None) -> str:
    if _missing(value):
        return "-"
    if fmt in ("currency", "percentage", "number"):
        number = pd.to_numeric(value, errors="coerce") if isinstance(value, (int, float, str)) else math.nan
        number = 0.0 if pd.isna(number) else float(number)
        if fmt == "currency":
            sign = "-" if number < 0 else ""
            return f"{sign}${abs(number):,.2f}"
        if fmt == "percentage":
            return f"{number:.1f}%"
        return format_value(number, "number")
    if fmt == "date":
        parsed = pd.to_datetime(str(value), errors="coerce")
        if pd.isna(parsed):
            return str(value)
        return f"{parsed.month}/{parsed.day}/{parsed.year}"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def view(
    filtered_data: Sequence[Record],
    columns: Sequence[TableColumn],
    search_term: str = "",
    sort: SortState | None = None,
    page: int = 1,
    page_size: int = 10,
    *,
    search_enabled: bool = True,
    pagination_enabled: bool = True,
) -> PageSlice:
    """search -> sort -> paginate.

    ``page`` in the result is the clamped page actually shown.  Sorting only
    applies to sortable columns.
    """

    searched = search_rows(filtered_data, search_term) if search_enabled else list(filtered_data)
    sortable = {column.field for column in columns if column.sortable}
    ordered = sort_rows(searched, sort if sort is not None and sort.key in sortable else None)
    pages = total_pages(len(ordered), page_size)
    if not pagination_enabled:
        return PageSlice(ordered, len(ordered), pages, 1)
    current = clamp_page(page, pages)
    return PageSlice(paginate(ordered, current, page_size), len(ordered), pages, current)


def render_table(
    table: TableDefinition,
    table_id: str,
    filtered_data: Sequence[Record],
    state: TableState | None = None,
) -> TableView:
    state = state or TableState()
    rows, filtered, pages, page = view(
        filtered_data,
        table.columns,
        state.search,
        state.sort,
        state.page,
        table.page_size,
        search_enabled=table.search_enabled,
        pagination_enabled=table.pagination_enabled,
    )
    state.page = page

    if table.pagination_enabled:
        start = (page - 1) * table.page_size + 1 if filtered else 0
    else:
        start = 1 if filtered else 0
    end = start + len(rows) - 1 if rows else 0

    column_views = [
        ColumnView(
            field=column.field,
            header=column.display_header,
            sortable=column.sortable,
            format=column.display_format,
            sort_direction=state.sort.direction if state.sort and state.sort.key == column.field else None,
        )
        for column in table.columns
    ]
    cells = [
        {column.field: format_cell(row.get(column.field), column.display_format) for column in table.columns}
        for row in rows
    ]
    return TableView(
        table_id=table_id,
        title=table.title or "",
        columns=column_views,
        rows=rows,
        cells=cells,
        total_filtered=filtered,
        total_pages=pages,
        page=page,
        page_size=table.page_size,
        start=start,
        end=end,
        search=state.search,
        search_enabled=table.search_enabled,
        search_placeholder=table.search.placeholder if table.search else None,
        pagination_enabled=table.pagination_enabled,
        sort=state.sort,
        total_rows=len(filtered_data),
    )


__all__ = [
    "ColumnView",
    "PageSlice",
    "TableView",
    "clamp_page",
    "format_cell",
    "paginate",
    "render_table",
    "search_rows",
    "sort_rows",
    "total_pages",
    "view",
]

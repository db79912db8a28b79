"""Apply user filter selections to the base record set.

Every recomputation starts from the base data and narrows it one definition
at a time, in definition order (logical AND).  Unknown filter types are
ignored.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from vizboard.core.schema import FILTER_TYPES, FilterDefinition, Record

logger = logging.getLogger(__name__)

ALL = "all"

_DATE_ONLY = re.compile(r"^\s*\d{4}-\d{1,2}-\d{1,2}\s*$")


def parse_timestamp(value: Any) -> pd.Timestamp | None:
    """Parse a date-like value into a naive UTC timestamp.

    Numbers are epoch milliseconds; anything pandas cannot parse is ``None``.
    """

    if value is None or isinstance(value, bool) or value == "":
        return None
    if not isinstance(value, (str, int, float, date)):
        return None
    if isinstance(value, (int, float)):
        parsed = pd.to_datetime(value, unit="ms", errors="coerce")
    else:
        parsed = pd.to_datetime(value, errors="coerce")
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed


def _is_date_only(value: Any) -> bool:
    if isinstance(value, str):
        return bool(_DATE_ONLY.match(value))
    return isinstance(value, date) and not isinstance(value, datetime)


def _bounds(selection: Any) -> tuple[Any, Any]:
    if isinstance(selection, Mapping):
        return selection.get("from"), selection.get("to")
    if isinstance(selection, (list, tuple)) and selection:
        upper = selection[1] if len(selection) > 1 else None
        return selection[0], upper
    return None, None


def _same(value: Any, wanted: Any) -> bool:
    if value == wanted:
        return True
    return value is not None and str(value) == str(wanted)


def is_active(definition: FilterDefinition, selection: Any) -> bool:
    """Whether ``selection`` constrains rows for this definition."""

    if definition.type == "dropdown":
        return selection not in (None, "", ALL)
    if definition.type == "multi-select":
        if isinstance(selection, (list, tuple, set)):
            return bool(selection)
        return selection not in (None, "")
    if definition.type == "search":
        return isinstance(selection, str) and bool(selection.strip())
    if definition.type == "date-range":
        lower, upper = _bounds(selection)
        if parse_timestamp(lower) is None:
            return False
        return upper is None or upper == "" or parse_timestamp(upper) is not None
    return False


def has_active_selection(definitions: Iterable[FilterDefinition], selection: Mapping[str, Any]) -> bool:
    return any(is_active(definition, selection.get(definition.field)) for definition in definitions)


def _date_range(
    rows: list[Record],
    field: str,
    selection: Any,
    now: pd.Timestamp | None,
) -> list[Record]:
    lower_raw, upper_raw = _bounds(selection)
    lower = parse_timestamp(lower_raw)
    upper = parse_timestamp(upper_raw)
    if upper is None:
        upper = now if now is not None else pd.Timestamp.now(tz="UTC").tz_localize(None)
    elif _is_date_only(upper_raw):
        upper = upper.normalize() + pd.Timedelta(days=1) - pd.Timedelta(1, unit="ns")

    kept = []
    for row in rows:
        stamp = parse_timestamp(row.get(field))
        if stamp is not None and lower <= stamp <= upper:
            kept.append(row)
    return kept


def apply_filter(
    rows: list[Record],
    definition: FilterDefinition,
    selection: Any,
    *,
    now: pd.Timestamp | None = None,
) -> list[Record]:
    """Narrow ``rows`` by a single definition; inactive selections pass everything."""

    if not is_active(definition, selection):
        return rows
    field = definition.field

    if definition.type == "dropdown":
        return [row for row in rows if _same(row.get(field), selection)]
    if definition.type == "multi-select":
        wanted = list(selection) if isinstance(selection, (list, tuple, set)) else [selection]
        return [row for row in rows if any(_same(row.get(field), item) for item in wanted)]
    if definition.type == "search":
        term = selection.lower()
        return [row for row in rows if row.get(field) is not None and term in str(row.get(field)).lower()]
    if definition.type == "date-range":
        return _date_range(rows, field, selection, now)
    return rows


def apply_filters(
    base_data: Sequence[Record],
    definitions: Iterable[FilterDefinition],
    selection: Mapping[str, Any],
    *,
    now: datetime | pd.Timestamp | None = None,
) -> list[Record]:
    """Return the rows of ``base_data`` that satisfy every active selection.

    ``base_data`` is never mutated; the result is a new list holding the same
    record objects.
    """

    reference = parse_timestamp(now) if now is not None else None
    rows = list(base_data)
    for definition in definitions:
        if definition.type not in FILTER_TYPES:
            logger.debug("Ignoring filter %r of unknown type %r", definition.field, definition.type)
            continue
        rows = apply_filter(rows, definition, selection.get(definition.field), now=reference)
    return rows


def filter_options(definition: FilterDefinition, data: Iterable[Record]) -> list[str]:
    """Declared options, else the sorted distinct values of the field."""

    if definition.options is not None:
        return list(definition.options)
    values = {str(row.get(definition.field)) for row in data if row.get(definition.field) not in (None, "")}
    return sorted(values)


__all__ = [
    "ALL",
    "apply_filter",
    "apply_filters",
    "filter_options",
    "has_active_selection",
    "is_active",
    "parse_timestamp",
]

"""Match specification field references against the fields a record really has."""
from __future__ import annotations

import math
from typing import Any, Mapping

from vizboard.core.heuristics import FieldHeuristics
from vizboard.core.naming import normalize


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and not math.isfinite(value))


def is_text(value: Any) -> bool:
    return isinstance(value, str)


def sample_record(rows: Any) -> dict[str, Any] | None:
    """Return ``rows[0]`` when ``rows`` is a non-empty list of mappings."""

    if isinstance(rows, list) and rows and isinstance(rows[0], dict):
        return rows[0]
    return None


def match_field(name: str, sample: Mapping[str, Any]) -> str | None:
    """Exact match first, then a case/width/separator-insensitive match."""

    if name in sample:
        return name
    wanted = normalize(name)
    for candidate in sample:
        if normalize(str(candidate)) == wanted:
            return candidate
    return None


def text_fields(sample: Mapping[str, Any]) -> list[str]:
    return [name for name, value in sample.items() if is_text(value)]


def metric_fields(sample: Mapping[str, Any], heuristics: FieldHeuristics) -> list[str]:
    """Numeric fields eligible for summary cards."""

    return [
        name
        for name, value in sample.items()
        if is_numeric(value) and not heuristics.is_metric_excluded(str(name))
    ]


def count_field(sample: Mapping[str, Any], heuristics: FieldHeuristics) -> str | None:
    fields = list(sample)
    if not fields:
        return None
    for name in fields:
        lowered = str(name).lower()
        if any(hint in lowered for hint in heuristics.count_field_hints):
            return name
    for name in fields:
        if str(name).lower() == "id":
            return name
    for name in fields:
        if is_text(sample[name]):
            return name
    return fields[0]


def resolve_category(
    name: str,
    sample: Mapping[str, Any],
    heuristics: FieldHeuristics,
    *,
    allow_numeric_axis: bool = False,
) -> str | None:
    """Resolve an axis or category reference; ``None`` when nothing qualifies."""

    matched = match_field(name, sample)
    if matched is not None:
        return matched
    strings = text_fields(sample)
    if strings:
        return strings[0]
    if allow_numeric_axis:
        for candidate, value in sample.items():
            if is_numeric(value) and str(candidate).lower() in heuristics.axis_numeric_names:
                return candidate
    return None


def resolve_value(name: str, sample: Mapping[str, Any], heuristics: FieldHeuristics) -> str | None:
    """Resolve a measure reference; ``None`` when nothing qualifies."""

    matched = match_field(name, sample)
    if matched is not None:
        return matched
    for candidate, value in sample.items():
        if is_numeric(value) and str(candidate).lower() not in heuristics.value_excluded_names:
            return candidate
    return None


__all__ = [
    "count_field",
    "is_numeric",
    "is_text",
    "match_field",
    "metric_fields",
    "resolve_category",
    "resolve_value",
    "sample_record",
    "text_fields",
]

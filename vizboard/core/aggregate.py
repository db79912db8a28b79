"""Scalar summaries over one column of a record set."""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

import pandas as pd

logger = logging.getLogger(__name__)

AGGREGATIONS = ("sum", "avg", "count", "min", "max")
AGGREGATION_ALIASES = {"average": "avg", "mean": "avg", "total": "sum", "minimum": "min", "maximum": "max"}


def canonical_aggregation(value: Any) -> str | None:
    """Map ``"Average"``, ``"total"`` and friends onto a supported kind."""

    if not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    lowered = AGGREGATION_ALIASES.get(lowered, lowered)
    return lowered if lowered in AGGREGATIONS else None


def numeric_values(records: Iterable[Mapping[str, Any]], field: str) -> pd.Series:
    """Return the numeric-coercible, non-null values of ``field``.

    Booleans count as 0/1, numeric strings are parsed, everything else
    (``None``, empty or non-numeric strings, nested objects) is dropped.
    """

    raw: list[Any] = []
    for record in records:
        value = record.get(field) if isinstance(record, Mapping) else None
        if isinstance(value, bool):
            value = int(value)
        elif isinstance(value, str):
            value = value.strip()
        elif value is not None and not isinstance(value, (int, float)):
            value = None
        raw.append(value)

    series = pd.to_numeric(pd.Series(raw, dtype="object"), errors="coerce").dropna()
    return series[series.map(math.isfinite)] if not series.empty else series


def aggregate(records: Iterable[Mapping[str, Any]], field: str, kind: str) -> float | int:
    """Reduce ``field`` over ``records``; an empty value set always yields ``0``."""

    values = numeric_values(records, field)
    if values.empty:
        return 0

    if kind == "sum":
        return float(values.sum())
    if kind == "avg":
        return float(values.sum()) / len(values)
    if kind == "count":
        return int(len(values))
    if kind == "min":
        return float(values.min())
    if kind == "max":
        return float(values.max())

    logger.warning("Unknown aggregation %r for field %r; using 0", kind, field)
    return 0


__all__ = ["AGGREGATIONS", "AGGREGATION_ALIASES", "aggregate", "canonical_aggregation", "numeric_values"]

"""Shape filtered records into the data each chart type consumes."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import pandas as pd

from vizboard.core.schema import ChartDefinition, Record

logger = logging.getLogger(__name__)

DEFAULT_HEATMAP_CEILING = 100.0


@dataclass(slots=True)
class ChartChannel:
    name: str
    field: str | None
    type: str | None = None


@dataclass(slots=True)
class ChartView:
    chart_id: str
    type: str
    title: str
    supported: bool
    data: list[Record] = field(default_factory=list)
    channels: list[ChartChannel] = field(default_factory=list)
    x_axis: str | None = None
    y_axis: str | None = None
    category_field: str | None = None
    value_field: str | None = None
    tooltip_enabled: bool = False
    local_data: bool = False


def _blank(value: Any) -> bool:
    return value is None or value == ""


def drop_sparse_rows(rows: Sequence[Record]) -> list[Record]:
    """Discard rows in which every value is null or empty."""

    return [row for row in rows if any(not _blank(value) for value in row.values())]


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        value = value.strip() or 0
    if not isinstance(value, (int, float, str)):
        return 0.0
    number = float(pd.to_numeric(value, errors="coerce"))
    return number if math.isfinite(number) else 0.0


def shape_pie(rows: Sequence[Record], category: str | None, value: str | None) -> list[Record]:
    """Sum ``value`` per ``category``; groups that do not sum above zero are dropped."""

    if not category or not value:
        return []
    totals: dict[str, float] = {}
    for row in rows:
        name, amount = row.get(category), row.get(value)
        if name is None or amount is None:
            continue
        key = str(name)
        totals[key] = totals.get(key, 0.0) + _to_number(amount)
    return [{"name": name, "value": total} for name, total in totals.items() if total > 0]


def shape_series(rows: Sequence[Record], x_axis: str | None, y_axis: str | None) -> list[Record]:
    if not x_axis or not y_axis:
        return []
    return [row for row in rows if row.get(x_axis) is not None and row.get(y_axis) is not None]


def shape_heatmap(
    rows: Sequence[Record],
    x_axis: str | None,
    y_axis: str | None,
    value_field: str | None,
    ceiling: float | str = DEFAULT_HEATMAP_CEILING,
) -> list[Record]:
    """One cell per row, intensity in ``[0, 1]`` relative to ``ceiling``.

    ``ceiling="auto"`` uses the largest cell value instead of a fixed bound.
    """

    cells = []
    for row in shape_series(rows, x_axis, y_axis):
        amount = _to_number(row.get(value_field)) if value_field else 0.0
        cells.append({"x": row.get(x_axis), "y": row.get(y_axis), "value": amount})

    if ceiling == "auto":
        bound = max((cell["value"] for cell in cells), default=0.0)
    else:
        bound = float(ceiling)
    for cell in cells:
        intensity = cell["value"] / bound if bound > 0 else 0.0
        cell["intensity"] = min(max(intensity, 0.0), 1.0)
    return cells


def shape_for_chart(
    chart: ChartDefinition,
    filtered_data: Sequence[Record],
    index: int = 0,
    *,
    heatmap_ceiling: float | str = DEFAULT_HEATMAP_CEILING,
) -> ChartView:
    """Build the renderable view of one chart.

    Chart-local ``data`` wins over ``filtered_data`` and is not filtered.
    """

    chart_id = chart.id or f"chart-{index + 1}"
    category = chart.category_field or chart.x_axis
    value = chart.field or chart.y_axis
    view = ChartView(
        chart_id=chart_id,
        type=chart.type,
        title=chart.title,
        supported=chart.supported,
        channels=[ChartChannel(name=item.name or (item.field or ""), field=item.field, type=item.type) for item in chart.series],
        x_axis=chart.x_axis,
        y_axis=chart.y_axis,
        category_field=category if chart.type == "pie" else chart.category_field,
        value_field=value if chart.type == "pie" else chart.field,
        tooltip_enabled=bool(chart.tooltip and chart.tooltip.enabled),
        local_data=bool(chart.local_data),
    )

    if not chart.supported:
        logger.warning("Chart %s has unsupported type %r; rendering it empty", chart_id, chart.type)
        return view

    if view.local_data:
        rows = chart.local_data
        if chart.type == "heatmap":
            first = chart.series[0].field if chart.series else None
            view.data = shape_heatmap(rows, chart.x_axis, chart.y_axis, first, heatmap_ceiling)
        else:
            view.data = list(rows)
        return view

    rows = drop_sparse_rows(filtered_data)
    if chart.type == "pie":
        if not category or not value:
            logger.warning("Pie chart %s is missing its category or value field", chart_id)
        view.data = shape_pie(rows, category, value)
    elif chart.type == "heatmap":
        first = chart.series[0].field if chart.series else None
        view.data = shape_heatmap(rows, chart.x_axis, chart.y_axis, first, heatmap_ceiling)
    else:
        if not chart.x_axis or not chart.y_axis:
            logger.warning("Chart %s is missing xAxis or yAxis", chart_id)
        view.data = shape_series(rows, chart.x_axis, chart.y_axis)

    if rows and not view.data:
        logger.warning("Chart %s produced no data from %d rows", chart_id, len(rows))
    return view


def shape_charts(
    charts: Sequence[ChartDefinition],
    filtered_data: Sequence[Record],
    *,
    heatmap_ceiling: float | str = DEFAULT_HEATMAP_CEILING,
) -> list[ChartView]:
    return [
        shape_for_chart(chart, filtered_data, index, heatmap_ceiling=heatmap_ceiling)
        for index, chart in enumerate(charts)
    ]


__all__ = [
    "ChartChannel",
    "ChartView",
    "DEFAULT_HEATMAP_CEILING",
    "drop_sparse_rows",
    "shape_charts",
    "shape_for_chart",
    "shape_heatmap",
    "shape_pie",
    "shape_series",
]

from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from vizboard.core.charts import shape_for_chart
from vizboard.core.schema import ChartDefinition

ROWS = [
    {"region": "North", "month": "Jan", "sales": 10, "returns": 0},
    {"region": "South", "month": "Jan", "sales": 5, "returns": 0},
    {"region": "North", "month": "Feb", "sales": "7", "returns": 0},
    {"region": "West", "month": "Feb", "sales": 0, "returns": 0},
    {"region": None, "month": "Mar", "sales": 4, "returns": 1},
    {"region": "East", "month": None, "sales": None, "returns": None},
    {"region": "", "month": None, "sales": None, "returns": None},
]


def _chart(**payload) -> ChartDefinition:
    return ChartDefinition.model_validate(payload)


def test_pie_groups_sums_and_drops_zero_groups():
    chart = _chart(id="p", type="pie", categoryField="region", field="sales")
    view = shape_for_chart(chart, ROWS)

    assert view.data == [{"name": "North", "value": 17.0}, {"name": "South", "value": 5.0}]
    assert all(slice_["name"] != "West" for slice_ in view.data)


def test_pie_falls_back_to_axes():
    chart = _chart(type="pie", xAxis="month", yAxis="returns")
    view = shape_for_chart(chart, ROWS)

    assert view.data == [{"name": "Mar", "value": 1.0}]
    assert view.category_field == "month"
    assert view.value_field == "returns"


def test_series_charts_pass_rows_with_both_axes():
    chart = _chart(id="b", type="bar", xAxis="region", yAxis="sales", series=[{"name": "Sales", "field": "sales"}])
    view = shape_for_chart(chart, ROWS)

    assert [row["region"] for row in view.data] == ["North", "South", "North", "West"]
    assert view.channels[0].name == "Sales"
    assert view.channels[0].field == "sales"


def test_series_chart_without_axis_renders_empty():
    view = shape_for_chart(_chart(type="line", xAxis="month"), ROWS)
    assert view.data == []
    assert view.supported


def test_chart_local_data_is_used_verbatim():
    local = [{"k": "a", "v": 1}, {"k": None, "v": None}]
    chart = _chart(type="bar", xAxis="k", yAxis="v", data=local)
    view = shape_for_chart(chart, ROWS[:1])

    assert view.local_data
    assert view.data == local


def test_heatmap_normalises_against_fixed_ceiling():
    rows = [{"x": "a", "y": "b", "load": 50}, {"x": "a", "y": "c", "load": 250}, {"x": "b", "y": "c", "load": None}]
    chart = _chart(type="heatmap", xAxis="x", yAxis="y", series=[{"name": "Load", "field": "load"}])
    view = shape_for_chart(chart, rows)

    assert [cell["intensity"] for cell in view.data] == [pytest.approx(0.5), 1.0, 0.0]
    assert view.data[0] == {"x": "a", "y": "b", "value": 50.0, "intensity": pytest.approx(0.5)}


def test_heatmap_auto_ceiling_uses_data_max():
    rows = [{"x": 1, "y": 1, "load": 20}, {"x": 1, "y": 2, "load": 40}]
    chart = _chart(type="heatmap", xAxis="x", yAxis="y", series=[{"name": "Load", "field": "load"}])
    view = shape_for_chart(chart, rows, heatmap_ceiling="auto")

    assert [cell["intensity"] for cell in view.data] == [pytest.approx(0.5), pytest.approx(1.0)]


def test_unsupported_chart_type_renders_empty():
    view = shape_for_chart(_chart(id="r", type="radar", xAxis="region", yAxis="sales"), ROWS)
    assert not view.supported
    assert view.data == []


def test_tooltip_flag_and_default_id():
    view = shape_for_chart(_chart(type="bar", xAxis="region", yAxis="sales", tooltip=True), ROWS, index=2)
    assert view.tooltip_enabled
    assert view.chart_id == "chart-3"

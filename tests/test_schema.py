from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from vizboard.core.schema import ChartDefinition, DashboardSpecification, TableDefinition

COLUMNS = [{"field": "region", "sortable": True}, {"field": "sales"}]


@pytest.mark.parametrize("page_size", [None, 0, -3, "ten", "", float("inf"), True])
def test_unusable_page_size_falls_back_to_ten(page_size):
    spec = DashboardSpecification.model_validate(
        {"table": {"id": "t", "columns": COLUMNS, "pagination": {"pageSize": page_size}}}
    )

    tables = spec.all_tables()
    assert len(tables) == 1
    assert tables[0].page_size == 10


def test_numeric_page_size_strings_are_accepted():
    table = TableDefinition.model_validate({"columns": COLUMNS, "pagination": {"pageSize": "25"}})
    assert table.page_size == 25


def test_null_flags_take_their_defaults():
    table = TableDefinition.model_validate(
        {
            "columns": [{"field": "region", "sortable": None}],
            "search": {"enabled": None},
            "pagination": {"enabled": None, "pageSize": 5},
        }
    )
    chart = ChartDefinition.model_validate({"type": "bar", "tooltip": {"enabled": None}})

    assert table.columns[0].sortable is False
    assert table.search_enabled is True
    assert table.pagination_enabled is True
    assert chart.tooltip.enabled is False


def test_numeric_scalars_become_strings():
    spec = DashboardSpecification.model_validate(
        {
            "title": 2024,
            "data": [{"year": 2024}],
            "cards": [{"title": 7, "valueField": "year"}],
            "table": {"title": 1, "columns": [{"field": "year", "header": 2024}]},
            "charts": [{"type": "line", "series": [{"name": None, "field": "year"}]}],
        }
    )

    assert spec.title == "2024"
    assert spec.cards[0].title == "7"
    assert spec.table.columns[0].display_header == "2024"
    assert spec.charts[0].series[0].name == ""


def test_one_broken_item_does_not_drop_its_siblings():
    spec = DashboardSpecification.model_validate(
        {"charts": [{"title": "no type"}, {"type": "bar", "xAxis": "region", "yAxis": "sales"}]}
    )
    assert [chart.type for chart in spec.charts] == ["bar"]

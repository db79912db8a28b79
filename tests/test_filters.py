from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from datetime import datetime

from vizboard.core.filters import apply_filters, filter_options, has_active_selection
from vizboard.core.schema import FilterDefinition

ROWS = [
    {"region": "North", "product": "Widget", "units": 5, "sold_on": "2024-01-05"},
    {"region": "South", "product": "Gadget", "units": 3, "sold_on": "2024-02-10T08:30:00"},
    {"region": "North", "product": "Gizmo", "units": 8, "sold_on": "2024-03-15"},
    {"region": "East", "product": "widget pro", "units": 1, "sold_on": "not a date"},
    {"region": None, "product": "Other", "units": 2, "sold_on": None},
]

REGION = FilterDefinition(field="region", type="dropdown")
PRODUCTS = FilterDefinition(field="product", type="multi-select")
SEARCH = FilterDefinition(field="product", type="search")
SOLD = FilterDefinition(field="sold_on", type="date-range")
NOW = datetime(2024, 12, 31)


def test_empty_multi_select_returns_input_unchanged():
    result = apply_filters(ROWS, [PRODUCTS], {"product": []})
    assert result == ROWS


def test_dropdown_matches_exactly_and_all_means_no_constraint():
    assert [row["product"] for row in apply_filters(ROWS, [REGION], {"region": "North"})] == ["Widget", "Gizmo"]
    assert apply_filters(ROWS, [REGION], {"region": "all"}) == ROWS
    assert apply_filters(ROWS, [REGION], {}) == ROWS


def test_dropdown_compares_string_forms():
    units = FilterDefinition(field="units", type="dropdown")
    assert apply_filters(ROWS, [units], {"units": "8"}) == [ROWS[2]]


def test_multi_select_membership():
    result = apply_filters(ROWS, [PRODUCTS], {"product": ["Gadget", "Other"]})
    assert [row["product"] for row in result] == ["Gadget", "Other"]


def test_search_is_case_insensitive_substring():
    result = apply_filters(ROWS, [SEARCH], {"product": "WIDGET"})
    assert [row["product"] for row in result] == ["Widget", "widget pro"]
    assert apply_filters(ROWS, [SEARCH], {"product": "   "}) == ROWS


def test_date_range_is_inclusive_and_skips_unparseable_dates():
    result = apply_filters(ROWS, [SOLD], {"sold_on": {"from": "2024-01-05", "to": "2024-02-10"}}, now=NOW)
    assert [row["product"] for row in result] == ["Widget", "Gadget"]


def test_date_range_without_upper_bound_runs_through_now():
    result = apply_filters(ROWS, [SOLD], {"sold_on": {"from": "2024-02-01"}}, now=datetime(2024, 3, 1))
    assert [row["product"] for row in result] == ["Gadget"]


def test_date_range_without_lower_bound_is_inactive():
    assert apply_filters(ROWS, [SOLD], {"sold_on": {"to": "2024-01-01"}}) == ROWS


def test_date_range_with_unparseable_upper_bound_is_inactive():
    selection = {"sold_on": {"from": "2024-02-01", "to": "not a date"}}

    assert apply_filters(ROWS, [SOLD], selection, now=NOW) == ROWS
    assert not has_active_selection([SOLD], selection)
    assert has_active_selection([SOLD], {"sold_on": {"from": "2024-02-01", "to": ""}})


def test_filters_compose_with_and():
    selection = {"region": "North", "product": "gi"}
    both = apply_filters(ROWS, [REGION, SEARCH], selection)
    chained = apply_filters(apply_filters(ROWS, [REGION], selection), [SEARCH], selection)
    reversed_order = apply_filters(ROWS, [SEARCH, REGION], selection)

    assert both == chained == reversed_order
    assert [row["product"] for row in both] == ["Gizmo"]


def test_recomputation_never_mutates_base_data():
    base = [dict(row) for row in ROWS]
    apply_filters(base, [REGION], {"region": "North"})
    assert base == ROWS


def test_unknown_filter_types_are_ignored():
    slider = FilterDefinition(field="units", type="slider")
    assert apply_filters(ROWS, [slider], {"units": 3}) == ROWS


def test_filter_options_and_activity():
    assert filter_options(REGION, ROWS) == ["East", "North", "South"]
    declared = FilterDefinition(field="region", type="dropdown", options=["North", 1])
    assert filter_options(declared, ROWS) == ["North", "1"]

    assert not has_active_selection([REGION, PRODUCTS], {"region": "all", "product": []})
    assert has_active_selection([REGION, PRODUCTS], {"region": "South"})

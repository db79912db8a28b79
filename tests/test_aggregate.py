from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from vizboard.core.aggregate import AGGREGATIONS, aggregate, canonical_aggregation

ROWS = [
    {"name": "A", "rating": 8.5, "votes": 100},
    {"name": "B", "rating": "7.5", "votes": None},
    {"name": "C", "rating": "n/a", "votes": 50},
    {"name": "D", "votes": "25"},
]


@pytest.mark.parametrize("kind", AGGREGATIONS)
def test_empty_record_set_yields_zero(kind):
    assert aggregate([], "rating", kind) == 0


@pytest.mark.parametrize("kind", AGGREGATIONS)
def test_field_without_numeric_values_yields_zero(kind):
    assert aggregate(ROWS, "name", kind) == 0


def test_sum_and_avg_ignore_missing_and_non_numeric_values():
    assert aggregate(ROWS, "votes", "sum") == pytest.approx(175.0)
    assert aggregate(ROWS, "rating", "sum") == pytest.approx(16.0)
    # avg divides by surviving values, not by the row count
    assert aggregate(ROWS, "rating", "avg") == pytest.approx(8.0)


def test_count_counts_coercible_values_only():
    assert aggregate(ROWS, "votes", "count") == 3
    assert aggregate(ROWS, "rating", "count") == 2
    assert aggregate(ROWS, "votes", "count") <= len(ROWS)


def test_min_and_max():
    assert aggregate(ROWS, "votes", "min") == pytest.approx(25.0)
    assert aggregate(ROWS, "votes", "max") == pytest.approx(100.0)


def test_booleans_count_as_numbers():
    rows = [{"flag": True}, {"flag": False}, {"flag": True}]
    assert aggregate(rows, "flag", "sum") == pytest.approx(2.0)


def test_unknown_kind_returns_zero():
    assert aggregate(ROWS, "votes", "median") == 0


def test_canonical_aggregation_accepts_aliases():
    assert canonical_aggregation("Average") == "avg"
    assert canonical_aggregation(" total ") == "sum"
    assert canonical_aggregation("count") == "count"
    assert canonical_aggregation("median") is None
    assert canonical_aggregation(None) is None

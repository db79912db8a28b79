"""Field-substitution policy for the configuration fixer.

The keyword lists encode guesses about typical analytics datasets (ratings,
vote counts, release years).  They are data, not code: the bundled YAML file
can be replaced through ``FIELD_HEURISTICS_PATH``.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_HEURISTICS_PATH = CONFIG_DIR / "field_heuristics.yaml"


@dataclass(frozen=True)
class MetricRule:
    keywords: tuple[str, ...]
    aggregation: str
    format: str | None = None

    def matches(self, field_name: str) -> bool:
        lowered = field_name.lower()
        return any(keyword in lowered for keyword in self.keywords)


DEFAULT_PRIORITIES = (
    MetricRule(keywords=("rating", "score"), aggregation="avg", format="decimal"),
    MetricRule(keywords=("votes", "count"), aggregation="sum", format="number"),
    MetricRule(keywords=("year",), aggregation="avg", format="number"),
)


@dataclass(frozen=True)
class FieldHeuristics:
    excluded_names: tuple[str, ...] = ("id",)
    excluded_prefixes: tuple[str, ...] = ("unnamed",)
    count_field_hints: tuple[str, ...] = ("name", "title")
    axis_numeric_names: tuple[str, ...] = ("year", "id")
    value_excluded_names: tuple[str, ...] = ("year", "id")
    numeric_priorities: tuple[MetricRule, ...] = DEFAULT_PRIORITIES
    default_metric: MetricRule = MetricRule(keywords=(), aggregation="sum", format="number")
    max_numeric_cards: int = 3
    max_filter_options: int = 20
    default_table_columns: int = 5

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "FieldHeuristics":
        defaults = cls()

        def _names(key: str) -> tuple[str, ...]:
            value = payload.get(key)
            if not isinstance(value, list):
                return getattr(defaults, key)
            return tuple(str(item).lower() for item in value)

        def _int(key: str) -> int:
            try:
                return int(payload.get(key, getattr(defaults, key)))
            except (TypeError, ValueError):
                return getattr(defaults, key)

        priorities = defaults.numeric_priorities
        raw_priorities = payload.get("numeric_priorities")
        if isinstance(raw_priorities, list):
            priorities = tuple(
                MetricRule(
                    keywords=tuple(str(keyword).lower() for keyword in item.get("keywords") or []),
                    aggregation=str(item.get("aggregation") or "sum"),
                    format=item.get("format"),
                )
                for item in raw_priorities
                if isinstance(item, dict)
            )

        default_metric = defaults.default_metric
        raw_default = payload.get("default_metric")
        if isinstance(raw_default, dict):
            default_metric = MetricRule(
                keywords=(),
                aggregation=str(raw_default.get("aggregation") or "sum"),
                format=raw_default.get("format"),
            )

        return cls(
            excluded_names=_names("excluded_names"),
            excluded_prefixes=_names("excluded_prefixes"),
            count_field_hints=_names("count_field_hints"),
            axis_numeric_names=_names("axis_numeric_names"),
            value_excluded_names=_names("value_excluded_names"),
            numeric_priorities=priorities,
            default_metric=default_metric,
            max_numeric_cards=_int("max_numeric_cards"),
            max_filter_options=_int("max_filter_options"),
            default_table_columns=_int("default_table_columns"),
        )

    def is_metric_excluded(self, field_name: str) -> bool:
        lowered = field_name.lower()
        return lowered in self.excluded_names or lowered.startswith(self.excluded_prefixes)

    def rule_for(self, field_name: str) -> MetricRule:
        for rule in self.numeric_priorities:
            if rule.matches(field_name):
                return rule
        return self.default_metric


def load_heuristics(path: Path | str | None = None) -> FieldHeuristics:
    """Load the policy from YAML, falling back to the built-in defaults."""

    target = Path(path) if path else DEFAULT_HEURISTICS_PATH
    if not target.exists():
        return FieldHeuristics()
    with target.open("r", encoding="utf-8") as fp:
        payload = yaml.safe_load(fp) or {}
    if not isinstance(payload, dict):
        return FieldHeuristics()
    return FieldHeuristics.from_mapping(payload)


__all__ = ["DEFAULT_HEURISTICS_PATH", "FieldHeuristics", "MetricRule", "load_heuristics"]

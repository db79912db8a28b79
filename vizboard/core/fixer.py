"""Repair a backend-authored dashboard specification against its own data.

The pass works on the raw JSON mapping (camelCase or snake_case keys) and
returns a corrected deep copy.  It never raises for a missing field: a
reference that cannot be resolved is logged and left alone so the renderer
degrades to an empty view for that one item.  Running it twice is a no-op.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Mapping

from vizboard.core.aggregate import canonical_aggregation
from vizboard.core.heuristics import FieldHeuristics
from vizboard.core.naming import humanize
from vizboard.core.reconcile import (
    count_field,
    is_numeric,
    match_field,
    metric_fields,
    resolve_category,
    resolve_value,
    sample_record,
    text_fields,
)

logger = logging.getLogger(__name__)


def _key(mapping: Mapping[str, Any], camel: str, snake: str) -> str:
    if camel in mapping:
        return camel
    if snake in mapping:
        return snake
    return camel


def _label(item: Mapping[str, Any], fallback: str) -> str:
    return str(item.get("id") or item.get("title") or fallback)


# ----------------------------------------------------------------------
# cards
# ----------------------------------------------------------------------
def _ranked_metrics(sample: Mapping[str, Any], heuristics: FieldHeuristics) -> list[str]:
    candidates = metric_fields(sample, heuristics)
    ranked: list[str] = []
    for rule in heuristics.numeric_priorities:
        for name in candidates:
            if name not in ranked and rule.matches(str(name)):
                ranked.append(name)
    ranked.extend(name for name in candidates if name not in ranked)
    return ranked[: heuristics.max_numeric_cards]


def default_cards(sample: Mapping[str, Any], heuristics: FieldHeuristics) -> list[dict[str, Any]]:
    """One count card plus up to ``max_numeric_cards`` metric cards.

    The count card counts numeric-coercible values of its field, so over a
    text field it shows 0; its title names the field rather than claiming a
    row total.
    """

    cards: list[dict[str, Any]] = []
    counted = count_field(sample, heuristics)
    if counted is not None:
        cards.append(
            {
                "id": "card-count",
                "title": f"{humanize(str(counted))} Count",
                "valueField": counted,
                "aggregation": "count",
                "format": "number",
            }
        )
    for name in _ranked_metrics(sample, heuristics):
        rule = heuristics.rule_for(str(name))
        card = {
            "id": f"card-{name}",
            "title": humanize(str(name)),
            "valueField": name,
            "aggregation": rule.aggregation,
        }
        if rule.format:
            card["format"] = rule.format
        cards.append(card)
    return cards


def _fix_card(card: dict[str, Any], index: int, sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    field_key = _key(card, "valueField", "value_field")
    current = card.get(field_key)
    label = _label(card, f"card-{index + 1}")

    if isinstance(current, str) and current in sample:
        resolved = current
    else:
        resolved = match_field(current, sample) if isinstance(current, str) else None
        if resolved is None:
            metrics = metric_fields(sample, heuristics)
            resolved = metrics[0] if metrics else None
        if resolved is None:
            resolved = count_field(sample, heuristics)
            card["aggregation"] = "count"
        if resolved is None:
            logger.warning("Card %s references unknown field %r and no substitute exists", label, current)
            return
        logger.info("Card %s: substituted field %r -> %r", label, current, resolved)
        card[field_key] = resolved

    if "aggregation" in card and canonical_aggregation(card["aggregation"]) is None:
        replacement = heuristics.rule_for(str(resolved)).aggregation
        logger.info("Card %s: unsupported aggregation %r -> %r", label, card["aggregation"], replacement)
        card["aggregation"] = replacement


def fix_cards(spec: dict[str, Any], sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    cards = spec.get("cards")
    if not isinstance(cards, list) or not cards:
        if cards is not None and not isinstance(cards, list):
            logger.warning("Ignoring cards of type %s", type(cards).__name__)
        spec["cards"] = default_cards(sample, heuristics)
        logger.info("Synthesised %d default cards", len(spec["cards"]))
        return
    for index, card in enumerate(cards):
        if isinstance(card, dict):
            _fix_card(card, index, sample, heuristics)


# ----------------------------------------------------------------------
# charts
# ----------------------------------------------------------------------
def _fix_reference(
    holder: dict[str, Any],
    key: str,
    resolved: str | None,
    label: str,
) -> None:
    current = holder[key]
    if resolved is None:
        logger.warning("Chart %s: field %r is not in the data and has no substitute", label, current)
        return
    if resolved != current:
        logger.info("Chart %s: substituted %s %r -> %r", label, key, current, resolved)
        holder[key] = resolved


def _fix_chart(chart: dict[str, Any], index: int, sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    space = sample_record(chart.get("data")) or sample
    label = _label(chart, f"chart-{index + 1}")

    for camel, snake, axis in (("xAxis", "x_axis", True), ("categoryField", "category_field", False)):
        key = _key(chart, camel, snake)
        if isinstance(chart.get(key), str):
            resolved = resolve_category(chart[key], space, heuristics, allow_numeric_axis=axis)
            _fix_reference(chart, key, resolved, label)

    for key in (_key(chart, "yAxis", "y_axis"), "field"):
        if isinstance(chart.get(key), str):
            _fix_reference(chart, key, resolve_value(chart[key], space, heuristics), label)

    series = chart.get("series")
    if isinstance(series, list):
        for entry in series:
            if isinstance(entry, dict) and isinstance(entry.get("field"), str):
                _fix_reference(entry, "field", resolve_value(entry["field"], space, heuristics), label)


def fix_charts(spec: dict[str, Any], sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    charts = spec.get("charts")
    if not isinstance(charts, list):
        return
    for index, chart in enumerate(charts):
        if isinstance(chart, dict):
            _fix_chart(chart, index, sample, heuristics)


# ----------------------------------------------------------------------
# tables
# ----------------------------------------------------------------------
def default_columns(sample: Mapping[str, Any], heuristics: FieldHeuristics) -> list[dict[str, Any]]:
    columns = []
    for name in list(sample)[: heuristics.default_table_columns]:
        columns.append(
            {
                "field": name,
                "header": humanize(str(name)),
                "sortable": True,
                "format": "number" if is_numeric(sample[name]) else "text",
            }
        )
    return columns


def _fix_table(table: dict[str, Any], label: str, sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    columns = table.get("columns")
    kept = []
    for column in columns if isinstance(columns, list) else []:
        if isinstance(column, dict) and isinstance(column.get("field"), str) and column["field"] in sample:
            kept.append(column)
        else:
            field = column.get("field") if isinstance(column, dict) else column
            logger.warning("Table %s: dropping column %r missing from the data", label, field)
    if not kept:
        kept = default_columns(sample, heuristics)
        logger.info("Table %s: synthesised %d default columns", label, len(kept))
    table["columns"] = kept


def fix_tables(spec: dict[str, Any], sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    if isinstance(spec.get("table"), dict):
        _fix_table(spec["table"], _label(spec["table"], "table"), sample, heuristics)
    tables = spec.get("tables")
    if isinstance(tables, list):
        for index, table in enumerate(tables):
            if isinstance(table, dict):
                _fix_table(table, _label(table, f"table-{index + 1}"), sample, heuristics)


# ----------------------------------------------------------------------
# filters
# ----------------------------------------------------------------------
def _nested_options(entries: list[Any], key: str, limit: int) -> list[str]:
    options: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        value = entry.get(key)
        if value is None or value == "":
            continue
        text = str(value)
        if text not in options:
            options.append(text)
            if len(options) >= limit:
                break
    return options


def _fix_filter(definition: dict[str, Any], sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    field = definition.get("field")
    nested = definition.get("data")
    has_nested = isinstance(nested, list) and bool(nested)

    if isinstance(field, str) and field not in sample:
        strings = text_fields(sample)
        if strings:
            if has_nested:
                definition.setdefault("target_field", field)
            logger.info("Filter %r: substituted field -> %r", field, strings[0])
            definition["field"] = strings[0]
        else:
            logger.warning("Filter %r is not in the data and no text field can stand in", field)

    if has_nested:
        key = definition.get("target_field") or definition.get("field")
        if isinstance(key, str):
            options = _nested_options(nested, key, heuristics.max_filter_options)
            if options:
                definition["options"] = options


def fix_filters(spec: dict[str, Any], sample: Mapping[str, Any], heuristics: FieldHeuristics) -> None:
    filters = spec.get("filters")
    if not isinstance(filters, list):
        return
    for definition in filters:
        if isinstance(definition, dict):
            _fix_filter(definition, sample, heuristics)


# ----------------------------------------------------------------------
# entry point
# ----------------------------------------------------------------------
def fix_specification(raw: Any, heuristics: FieldHeuristics | None = None) -> Any:
    """Return a corrected copy of ``raw``.

    Structurally invalid input (not a mapping, or ``data`` not a list) is
    logged and returned untouched.  An empty ``data`` list leaves nothing to
    validate against, so the copy is returned without reconciliation.
    """

    if not isinstance(raw, Mapping):
        logger.warning("Specification is %s, not a mapping; leaving it unmodified", type(raw).__name__)
        return raw
    data = raw.get("data")
    if data is not None and not isinstance(data, list):
        logger.warning("Specification data is %s, not a list; leaving it unmodified", type(data).__name__)
        return raw

    spec = copy.deepcopy(dict(raw))
    sample = sample_record(data)
    if sample is None:
        if data:
            logger.warning("First data row is not a record; skipping field reconciliation")
        return spec

    policy = heuristics or FieldHeuristics()
    fix_cards(spec, sample, policy)
    fix_charts(spec, sample, policy)
    fix_tables(spec, sample, policy)
    fix_filters(spec, sample, policy)
    return spec


__all__ = ["default_cards", "default_columns", "fix_specification"]

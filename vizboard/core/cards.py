"""Turn card definitions plus the filtered rows into display values."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from vizboard.core.aggregate import aggregate, canonical_aggregation
from vizboard.core.schema import CardDefinition, Record

logger = logging.getLogger(__name__)

VARIANT_ICONS = {
    "revenue": "dollar-sign",
    "currency": "dollar-sign",
    "users": "users",
    "customers": "users",
    "performance": "activity",
    "efficiency": "activity",
    "orders": "bar-chart",
    "sales": "bar-chart",
    "target": "target",
    "goal": "target",
}
TREND_ICONS = {"up": "trending-up", "down": "trending-down"}


@dataclass(slots=True)
class CardView:
    card_id: str
    title: str
    value: float | int
    display: str
    aggregation: str
    value_field: str | None
    format: str | None = None
    icon: str = "bar-chart"
    subtitle: str | None = None
    tooltip: str | None = None
    trend: str | None = None
    change: str | None = None


def _number(value: float, decimals: int = 3) -> str:
    text = f"{value:,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_value(value: float | int, fmt: str | None = None) -> str:
    """Render an aggregate the way a summary card shows it."""

    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        value = 0
    if fmt == "currency":
        rounded = round(value)
        sign = "-" if rounded < 0 else ""
        return f"{sign}${abs(rounded):,.0f}"
    if fmt == "percentage":
        return f"{value:.1f}%"
    if fmt == "decimal":
        return f"{value:,.2f}"
    return _number(value)


def card_icon(variant: str | None, trend: str | None) -> str:
    if trend in TREND_ICONS:
        return TREND_ICONS[trend]
    return VARIANT_ICONS.get(variant or "", "bar-chart")


def tooltip_text(tooltip: Any) -> str | None:
    if isinstance(tooltip, str):
        return tooltip or None
    if isinstance(tooltip, dict):
        text = tooltip.get("content") or tooltip.get("title")
        return str(text) if text else None
    return None


def render_card(card: CardDefinition, data: Sequence[Record], index: int = 0) -> CardView:
    kind = canonical_aggregation(card.aggregation) or "sum"
    field = card.value_field
    if field is None:
        logger.warning("Card %s has no value field; showing 0", card.id or index)
        value: float | int = 0
    else:
        if data and not any(field in row for row in data):
            logger.warning("Card %s: field %r is absent from the data", card.id or index, field)
        value = aggregate(data, field, kind)

    return CardView(
        card_id=card.id or f"card-{index + 1}",
        title=card.title,
        value=value,
        display=format_value(value, card.format),
        aggregation=kind,
        value_field=field,
        format=card.format,
        icon=card_icon(card.variant, card.trend),
        subtitle=f"{kind} of {field}" if card.variant and field else None,
        tooltip=tooltip_text(card.tooltip),
        trend=card.trend,
        change=card.change or card.comparison,
    )


def render_cards(cards: Iterable[CardDefinition], data: Sequence[Record]) -> list[CardView]:
    return [render_card(card, data, index) for index, card in enumerate(cards)]


__all__ = ["CardView", "card_icon", "format_value", "render_card", "render_cards", "tooltip_text"]

"""Typed view of the backend-authored dashboard specification.

The wire format is loosely typed JSON with camelCase keys.  Models accept
both the camelCase aliases and the snake_case attribute names, keep unknown
keys (``extra="allow"``) and validate collections item by item so that one
malformed chart or card never rejects the whole dashboard.
"""
from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from vizboard.core.aggregate import AGGREGATION_ALIASES

logger = logging.getLogger(__name__)

Record = dict[str, Any]

AggregationKind = Literal["sum", "avg", "count", "min", "max"]

FILTER_TYPES = ("dropdown", "multi-select", "search", "date-range")
CHART_TYPES = ("bar", "line", "pie", "scatter", "heatmap", "dual-axis-line")
CARD_FORMATS = ("currency", "percentage", "number", "decimal")
COLUMN_FORMATS = ("currency", "percentage", "number", "date", "text")
DEFAULT_PAGE_SIZE = 10


class SpecModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("title", "name", mode="before", check_fields=False)
    @classmethod
    def _default_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("sortable", "enabled", mode="before", check_fields=False)
    @classmethod
    def _default_flag(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _as_identifier(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class FilterDefinition(SpecModel):
    field: str
    type: str
    label: str | None = None
    options: list[str] | None = None
    target_field: str | None = None
    data: list[Record] | None = None

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value if item is not None]
        return value

    @property
    def display_label(self) -> str:
        return self.label or self.field


class CardDefinition(SpecModel):
    id: str | None = None
    title: str = ""
    value_field: str | None = Field(default=None, alias="valueField")
    aggregation: AggregationKind = "sum"
    format: str | None = None
    variant: str | None = None
    trend: str | None = None
    tooltip: str | dict[str, Any] | None = None
    change: str | None = None
    comparison: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        return _as_identifier(value)

    @field_validator("aggregation", mode="before")
    @classmethod
    def _normalise_aggregation(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return AGGREGATION_ALIASES.get(lowered, lowered)
        return value


class SeriesDefinition(SpecModel):
    name: str = ""
    field: str | None = None
    type: str | None = None


class ChartTooltip(SpecModel):
    enabled: bool = False


class ChartDefinition(SpecModel):
    id: str | None = None
    type: str
    title: str = ""
    x_axis: str | None = Field(default=None, alias="xAxis")
    y_axis: str | None = Field(default=None, alias="yAxis")
    category_field: str | None = Field(default=None, alias="categoryField")
    field: str | None = None
    series: list[SeriesDefinition] = Field(default_factory=list)
    data: list[Record] | None = None
    tooltip: ChartTooltip | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        return _as_identifier(value)

    @field_validator("series", mode="before")
    @classmethod
    def _default_series(cls, value: Any) -> Any:
        return value if value is not None else []

    @field_validator("tooltip", mode="before")
    @classmethod
    def _tooltip_flag(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return {"enabled": value}
        return value

    @property
    def supported(self) -> bool:
        return self.type in CHART_TYPES

    @property
    def local_data(self) -> list[Record]:
        return [row for row in self.data or [] if isinstance(row, dict)]


class TableColumn(SpecModel):
    field: str
    header: str | None = None
    label: str | None = None
    sortable: bool = False
    format: str | None = None
    type: str | None = None

    @property
    def display_header(self) -> str:
        return self.header or self.label or self.field

    @property
    def display_format(self) -> str | None:
        return self.type or self.format


class TableSearch(SpecModel):
    enabled: bool = True
    placeholder: str | None = None


class TablePagination(SpecModel):
    enabled: bool = True
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="pageSize", ge=1)

    @field_validator("page_size", mode="before")
    @classmethod
    def _page_size(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return DEFAULT_PAGE_SIZE
        try:
            size = int(value)
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_PAGE_SIZE
        return size if size >= 1 else DEFAULT_PAGE_SIZE


class TableDefinition(SpecModel):
    id: str | None = None
    title: str | None = None
    columns: list[TableColumn] = Field(default_factory=list)
    search: TableSearch | None = None
    pagination: TablePagination | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        return _as_identifier(value)

    @property
    def search_enabled(self) -> bool:
        return self.search.enabled if self.search else True

    @property
    def pagination_enabled(self) -> bool:
        return self.pagination.enabled if self.pagination else True

    @property
    def page_size(self) -> int:
        return self.pagination.page_size if self.pagination else DEFAULT_PAGE_SIZE


def _validate_items(model: type[SpecModel], value: Any, kind: str) -> list[SpecModel]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring %s: expected a list, got %s", kind, type(value).__name__)
        return []
    items: list[SpecModel] = []
    for index, item in enumerate(value):
        if isinstance(item, model):
            items.append(item)
            continue
        try:
            items.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("Dropping %s #%d: %s", kind, index, exc.errors(include_url=False))
    return items


class DashboardSpecification(SpecModel):
    title: str = ""
    description: str | None = None
    template: str | None = None
    data: list[Record] = Field(default_factory=list)
    filters: list[FilterDefinition] = Field(default_factory=list)
    cards: list[CardDefinition] = Field(default_factory=list)
    charts: list[ChartDefinition] = Field(default_factory=list)
    table: TableDefinition | None = None
    tables: list[TableDefinition] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def _records_only(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("Specification data is %s, not a list; rendering without rows", type(value).__name__)
            return []
        return [row for row in value if isinstance(row, dict)]

    @field_validator("filters", mode="before")
    @classmethod
    def _lenient_filters(cls, value: Any) -> Any:
        return _validate_items(FilterDefinition, value, "filter")

    @field_validator("cards", mode="before")
    @classmethod
    def _lenient_cards(cls, value: Any) -> Any:
        return _validate_items(CardDefinition, value, "card")

    @field_validator("charts", mode="before")
    @classmethod
    def _lenient_charts(cls, value: Any) -> Any:
        return _validate_items(ChartDefinition, value, "chart")

    @field_validator("tables", mode="before")
    @classmethod
    def _lenient_tables(cls, value: Any) -> Any:
        return _validate_items(TableDefinition, value, "table")

    @field_validator("table", mode="before")
    @classmethod
    def _lenient_table(cls, value: Any) -> Any:
        if value is None or isinstance(value, TableDefinition):
            return value
        try:
            return TableDefinition.model_validate(value)
        except ValidationError as exc:
            logger.warning("Dropping table: %s", exc.errors(include_url=False))
            return None

    def all_tables(self) -> list[TableDefinition]:
        tables = [self.table] if self.table is not None else []
        tables.extend(self.tables)
        return tables


__all__ = [
    "AggregationKind",
    "CARD_FORMATS",
    "CHART_TYPES",
    "COLUMN_FORMATS",
    "DEFAULT_PAGE_SIZE",
    "CardDefinition",
    "ChartDefinition",
    "ChartTooltip",
    "DashboardSpecification",
    "FILTER_TYPES",
    "FilterDefinition",
    "Record",
    "SeriesDefinition",
    "TableColumn",
    "TableDefinition",
    "TablePagination",
    "TableSearch",
]

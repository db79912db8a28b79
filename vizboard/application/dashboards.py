"""Dashboard controller: query submission, filter state and derived views."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping

from pydantic import ValidationError as SchemaValidationError

from vizboard.core.cards import CardView, render_cards
from vizboard.core.charts import DEFAULT_HEATMAP_CEILING, ChartView, shape_charts
from vizboard.core.errors import (
    DashboardError,
    DashboardNotReadyError,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)
from vizboard.core.filters import apply_filters, filter_options, has_active_selection, is_active
from vizboard.core.fixer import fix_specification
from vizboard.core.heuristics import FieldHeuristics
from vizboard.core.naming import humanize
from vizboard.core.schema import DashboardSpecification, Record, TableDefinition
from vizboard.core.tables import TableView, render_table
from vizboard.core.validation import parse_specification_json, validate_query
from vizboard.domain import DashboardSession, TableState
from vizboard.infrastructure import (
    DatasetStore,
    InMemoryNotificationSink,
    InMemorySessionRepository,
    Notification,
    NotificationSink,
    QueryService,
    SessionRepository,
    emit,
)

logger = logging.getLogger(__name__)

Listener = Callable[[list[Record]], None]


@dataclass(slots=True)
class FilterView:
    field: str
    type: str
    label: str
    options: list[str]
    value: Any = None
    active: bool = False


@dataclass(slots=True)
class DashboardView:
    session_id: str
    status: str
    query: str | None = None
    title: str = ""
    description: str | None = None
    template: str | None = None
    error: str | None = None
    error_title: str | None = None
    filters: list[FilterView] = field(default_factory=list)
    has_active_filters: bool = False
    filtered_count: int = 0
    total_count: int = 0
    cards: list[CardView] = field(default_factory=list)
    charts: list[ChartView] = field(default_factory=list)
    tables: list[TableView] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)

    @property
    def filter_summary(self) -> str:
        return f"Showing {self.filtered_count} of {self.total_count} records"


def table_key(table: TableDefinition, index: int) -> str:
    return str(table.id) if table.id else f"table-{index + 1}"


class DashboardController:
    """Owns one dashboard session.

    Only the controller writes the filter selection and the filtered rows;
    every view is recomputed from them on demand.
    """

    def __init__(
        self,
        session_id: str,
        query_service: QueryService,
        *,
        dataset_store: DatasetStore | None = None,
        notifier: NotificationSink | None = None,
        heuristics: FieldHeuristics | None = None,
        timeout: float = 300.0,
        heatmap_ceiling: float | str = DEFAULT_HEATMAP_CEILING,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session = DashboardSession(session_id=session_id)
        self._query_service = query_service
        self._dataset_store = dataset_store
        self._notifier = notifier if notifier is not None else InMemoryNotificationSink()
        self._heuristics = heuristics or FieldHeuristics()
        self._timeout = timeout
        self._heatmap_ceiling = heatmap_ceiling
        self._clock = clock
        self._listeners: list[Listener] = []
        self._seq = 0

    # ------------------------------------------------------------------
    # state accessors
    # ------------------------------------------------------------------
    @property
    def specification(self) -> DashboardSpecification | None:
        return self.session.specification

    @property
    def status(self) -> str:
        return self.session.status

    @property
    def notifications(self) -> list[Notification]:
        recent = getattr(self._notifier, "recent", None)
        return recent() if callable(recent) else []

    def _require_ready(self) -> DashboardSpecification:
        if self.session.specification is None:
            raise DashboardNotReadyError()
        return self.session.specification

    # ------------------------------------------------------------------
    # subscription
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the filtered rows after every recomputation."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _broadcast(self) -> None:
        rows = self.session.filtered_data
        for listener in list(self._listeners):
            try:
                listener(rows)
            except Exception:
                logger.exception("Dashboard listener failed")

    # ------------------------------------------------------------------
    # submission
    # ------------------------------------------------------------------
    async def submit(self, text: Any) -> DashboardSession:
        """Run a query and install the resulting dashboard.

        Empty input raises ``ValidationError`` without touching the session.
        Failures of the query service end in the ``error`` state; a response
        superseded by a newer submission is discarded.
        """

        try:
            query = validate_query(text)
        except ValidationError as exc:
            emit(self._notifier, exc.title, exc.detail, "error")
            raise

        self.session.query = query
        return await self._run(self._query_service.submit_query(query))

    async def regenerate(self) -> DashboardSession:
        if self.session.specification is None or not self.session.query:
            raise DashboardNotReadyError("There is no generated dashboard to regenerate.")
        return await self.submit(self.session.query)

    async def load_dataset_preview(self, dataset_id: str, *, page_size: int = 50) -> DashboardSession:
        """Build a dashboard from a raw dataset preview (no cards or charts)."""

        if self._dataset_store is None:
            raise DashboardError("No dataset store is configured.")
        return await self._run(self._preview_specification(dataset_id, page_size))

    async def _preview_specification(self, dataset_id: str, page_size: int) -> dict[str, Any]:
        preview = await self._dataset_store.get_preview(dataset_id, 1, page_size)
        rows = preview.get("data") or preview.get("rows") or []
        names = [
            item.get("name") if isinstance(item, dict) else item for item in preview.get("columns") or []
        ]
        columns = [
            {"field": name, "header": humanize(name), "sortable": True} for name in names if isinstance(name, str)
        ]
        return {
            "title": str(preview.get("name") or f"Dataset {dataset_id}"),
            "description": preview.get("description"),
            "data": rows,
            "cards": [],
            "charts": [],
            "table": {"id": "preview", "title": "Data Preview", "columns": columns},
        }

    async def _run(self, pending: Awaitable[Any]) -> DashboardSession:
        self._seq += 1
        seq = self._seq
        self.session.status = "submitting"
        self.session.error = None
        self.session.error_title = None

        try:
            raw = await asyncio.wait_for(pending, timeout=self._timeout)
            if seq != self._seq:
                logger.debug("Discarding stale response #%d (latest is #%d)", seq, self._seq)
                return self.session
            self._commit(self._validate(raw))
        except asyncio.TimeoutError:
            self._fail(seq, RequestTimeoutError())
        except DashboardError as exc:
            self._fail(seq, exc)
        except Exception as exc:
            logger.exception("Dashboard request failed")
            self._fail(seq, DashboardError(str(exc) or None))
        return self.session

    # ------------------------------------------------------------------
    # manual specifications
    # ------------------------------------------------------------------
    def load_specification_json(self, text: Any) -> DashboardSession:
        return self.load_specification(parse_specification_json(text))

    def load_specification(self, raw: Mapping[str, Any]) -> DashboardSession:
        """Install a specification supplied directly instead of by a query."""

        if not isinstance(raw, Mapping):
            raise ValidationError("Dashboard specification must be a JSON object")
        spec = self._validate(raw, error_type=ValidationError)
        self._seq += 1
        self._commit(spec)
        return self.session

    # ------------------------------------------------------------------
    # state transitions
    # ------------------------------------------------------------------
    def _validate(self, raw: Any, *, error_type: type[DashboardError] = ServerError) -> DashboardSpecification:
        """Fix and type-check ``raw`` without touching the session."""

        fixed = fix_specification(raw, self._heuristics)
        try:
            return DashboardSpecification.model_validate(fixed)
        except SchemaValidationError as exc:
            logger.warning("Rejected dashboard specification: %s", exc.errors(include_url=False))
            raise error_type("Malformed dashboard specification") from exc

    def _commit(self, spec: DashboardSpecification) -> None:
        session = self.session
        session.specification = spec
        session.status = "ready"
        session.error = None
        session.error_title = None
        session.selection = {}
        session.filtered_data = list(spec.data)
        session.tables = {table_key(table, index): TableState() for index, table in enumerate(spec.all_tables())}
        logger.info(
            "Dashboard %s ready: %d rows, %d cards, %d charts, %d tables",
            session.session_id,
            len(spec.data),
            len(spec.cards),
            len(spec.charts),
            len(session.tables),
        )
        self._broadcast()
        emit(self._notifier, "Dashboard Generated", "Your custom dashboard has been created successfully.", "success")

    def _fail(self, seq: int, error: DashboardError) -> None:
        if seq != self._seq:
            logger.debug("Discarding stale failure #%d: %s", seq, error.message)
            return
        session = self.session
        session.status = "error"
        session.specification = None
        session.selection = {}
        session.filtered_data = []
        session.tables = {}
        session.error = error.message
        session.error_title = error.title
        logger.warning("Dashboard %s failed: %s", session.session_id, error.message)
        emit(self._notifier, error.title, error.detail, "error")

    # ------------------------------------------------------------------
    # filters
    # ------------------------------------------------------------------
    def set_filter(self, field_name: str, value: Any) -> list[Record]:
        spec = self._require_ready()
        if not any(definition.field == field_name for definition in spec.filters):
            raise ValidationError(f"Unknown filter field {field_name!r}")
        if value is None or value == "" or value == [] or value == {}:
            self.session.selection.pop(field_name, None)
        else:
            self.session.selection[field_name] = value
        return self._recompute()

    def clear_filter(self, field_name: str) -> list[Record]:
        self._require_ready()
        self.session.selection.pop(field_name, None)
        return self._recompute()

    def clear_filters(self) -> list[Record]:
        self._require_ready()
        self.session.selection = {}
        return self._recompute()

    def _recompute(self) -> list[Record]:
        spec = self._require_ready()
        now = self._clock() if self._clock else None
        self.session.filtered_data = apply_filters(spec.data, spec.filters, self.session.selection, now=now)
        logger.debug(
            "Filters %s -> %d of %d rows",
            self.session.selection,
            len(self.session.filtered_data),
            len(spec.data),
        )
        self._broadcast()
        return self.session.filtered_data

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def _tables(self, spec: DashboardSpecification) -> list[tuple[str, TableDefinition]]:
        return [(table_key(table, index), table) for index, table in enumerate(spec.all_tables())]

    def table_view(
        self,
        table_id: str,
        *,
        search: str | None = None,
        sort: str | None = None,
        page: int | None = None,
    ) -> TableView:
        """Apply a table interaction and return the resulting page.

        ``sort`` behaves like a header click: the same column toggles the
        direction, a new sortable column starts ascending.
        """

        spec = self._require_ready()
        tables = dict(self._tables(spec))
        if table_id not in tables:
            raise KeyError(table_id)
        table = tables[table_id]
        state = self.session.tables.setdefault(table_id, TableState())

        if search is not None:
            state.set_search(search)
        if sort:
            column = next((item for item in table.columns if item.field == sort), None)
            if column is not None and column.sortable:
                state.toggle_sort(sort)
        if page is not None:
            state.page = page
        return render_table(table, table_id, self.session.filtered_data, state)

    def render(self) -> DashboardView:
        session = self.session
        view = DashboardView(
            session_id=session.session_id,
            status=session.status,
            query=session.query,
            error=session.error,
            error_title=session.error_title,
            notifications=self.notifications,
        )
        spec = session.specification
        if spec is None:
            return view

        rows = session.filtered_data
        view.title = spec.title
        view.description = spec.description
        view.template = spec.template
        view.filters = [
            FilterView(
                field=definition.field,
                type=definition.type,
                label=definition.display_label,
                options=filter_options(definition, spec.data),
                value=session.selection.get(definition.field),
                active=is_active(definition, session.selection.get(definition.field)),
            )
            for definition in spec.filters
        ]
        view.has_active_filters = has_active_selection(spec.filters, session.selection)
        view.filtered_count = len(rows)
        view.total_count = len(spec.data)
        view.cards = render_cards(spec.cards, rows)
        view.charts = shape_charts(spec.charts, rows, heatmap_ceiling=self._heatmap_ceiling)
        view.tables = [
            render_table(table, key, rows, session.tables.setdefault(key, TableState()))
            for key, table in self._tables(spec)
        ]
        return view


class DashboardService:
    """Registry of live dashboard sessions."""

    def __init__(
        self,
        controller_factory: Callable[[str], DashboardController],
        repository: SessionRepository[DashboardController] | None = None,
    ) -> None:
        self._factory = controller_factory
        self._repository = repository or InMemorySessionRepository()

    def create_session(self) -> DashboardController:
        session_id = self._repository.next_session_id()
        controller = self._factory(session_id)
        self._repository.add(session_id, controller)
        logger.info("Created dashboard session %s", session_id)
        return controller

    def get(self, session_id: str) -> DashboardController | None:
        return self._repository.get(session_id)

    def remove(self, session_id: str) -> bool:
        return self._repository.remove(session_id)

    def list_sessions(self) -> list[str]:
        return self._repository.list_ids()

    def reset(self) -> None:
        self._repository.reset()


__all__ = [
    "DashboardController",
    "DashboardService",
    "DashboardView",
    "FilterView",
    "Listener",
    "table_key",
]

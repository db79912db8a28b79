import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vizboard.application import DashboardController, DashboardService, DatasetService
from vizboard.core.charts import DEFAULT_HEATMAP_CEILING
from vizboard.core.heuristics import FieldHeuristics, load_heuristics
from vizboard.infrastructure import (
    DatasetStore,
    DatasetStoreClient,
    InMemoryNotificationSink,
    NotificationSink,
    QueryService,
    QueryServiceClient,
)
from vizboard.routes import dashboards, datasets, notifications

logger = logging.getLogger(__name__)

DEFAULT_QUERY_API_URL = "http://localhost:8000/api/v1"


def _heatmap_ceiling(raw: str | None) -> float | str:
    if not raw:
        return DEFAULT_HEATMAP_CEILING
    if raw.strip().lower() == "auto":
        return "auto"
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid HEATMAP_CEILING=%r", raw)
        return DEFAULT_HEATMAP_CEILING
    if value <= 0:
        logger.warning("Ignoring non-positive HEATMAP_CEILING=%r", raw)
        return DEFAULT_HEATMAP_CEILING
    return value


def _timeout(raw: str | None) -> float:
    try:
        return float(raw) if raw else 300.0
    except ValueError:
        logger.warning("Ignoring invalid QUERY_TIMEOUT_SECONDS=%r", raw)
        return 300.0


def create_app(
    *,
    query_service: QueryService | None = None,
    dataset_store: DatasetStore | None = None,
    notifier: NotificationSink | None = None,
    heuristics: FieldHeuristics | None = None,
    timeout: float | None = None,
    heatmap_ceiling: float | str | None = None,
) -> FastAPI:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    query_url = os.getenv("QUERY_API_URL") or DEFAULT_QUERY_API_URL
    token = os.getenv("QUERY_API_TOKEN") or None
    timeout = timeout if timeout is not None else _timeout(os.getenv("QUERY_TIMEOUT_SECONDS"))
    if heatmap_ceiling is None:
        heatmap_ceiling = _heatmap_ceiling(os.getenv("HEATMAP_CEILING"))
    if heuristics is None:
        heuristics = load_heuristics(os.getenv("FIELD_HEURISTICS_PATH") or None)

    owned = []
    if query_service is None:
        query_service = QueryServiceClient(query_url, token=token, timeout=timeout)
        owned.append(query_service)
    if dataset_store is None:
        dataset_store = DatasetStoreClient(os.getenv("DATASET_API_URL") or query_url, token=token)
        owned.append(dataset_store)
    notifier = notifier if notifier is not None else InMemoryNotificationSink()

    def build_controller(session_id: str) -> DashboardController:
        return DashboardController(
            session_id,
            query_service,
            dataset_store=dataset_store,
            heuristics=heuristics,
            timeout=timeout,
            heatmap_ceiling=heatmap_ceiling,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        for client in owned:
            await client.aclose()

    app = FastAPI(title="Vizboard Dashboard API", version="0.1.0", lifespan=lifespan)
    app.state.dashboards = DashboardService(build_controller)
    app.state.datasets = DatasetService(dataset_store, notifier=notifier)
    app.state.notifier = notifier

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dashboards.router, prefix="/api")
    app.include_router(datasets.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Vizboard Dashboard API",
                "docs": "/docs",
                "health": "/api/notifications",
            }
        )

    return app


app = create_app()

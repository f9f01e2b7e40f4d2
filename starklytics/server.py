"""FastAPI server for the Starklytics query and dashboard core.

Routes are organized into helper registration functions.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import get_validated_config
from .config_schema import AppConfig
from .dashboards import Dashboard, DashboardComposer, DashboardRepository, Widget, WidgetLayout
from .errors import DashboardNotFoundError, RawStoreUnavailableError
from .gateway import QueryGateway, serve_websocket
from .spellbook import (
    InMemoryEventStore,
    JSONLEventStore,
    QueryDispatcher,
    RawEventStore,
    RollupEngine,
    default_intents,
)
from .visuals import WidgetConfig, transform

logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)


class VisualizeRequest(BaseModel):
    query: str = Field(min_length=1)
    config: WidgetConfig


class CreateDashboardRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""


class AddWidgetRequest(BaseModel):
    id: str = ""
    title: str = ""
    query: str = ""
    config: WidgetConfig | None = None
    layout: WidgetLayout = Field(default_factory=WidgetLayout)


class TextBlockRequest(BaseModel):
    markdown: str
    title: str = "Markdown Block"


class StarklyticsApp:
    """Application state: stores, engine, dispatcher, gateway and composer."""

    def __init__(
        self,
        config: AppConfig,
        event_store: RawEventStore | None = None,
        repository: DashboardRepository | None = None,
    ) -> None:
        self.config = config
        self.event_store = event_store or build_event_store(config)
        self.engine = RollupEngine(self.event_store)
        self.dispatcher = QueryDispatcher(
            self.engine,
            intents=default_intents(config.spellbook.transfer_min_usd),
            default_source=config.spellbook.default_source,
        )
        self.repository = repository or DashboardRepository(config.dashboards.storage_file)
        self.composer = DashboardComposer(self.repository, self.dispatcher)
        self.gateway = QueryGateway(
            self.dispatcher,
            heartbeat_interval=config.gateway.heartbeat_interval_seconds,
            query_timeout=config.gateway.query_timeout_seconds,
        )


def build_event_store(config: AppConfig) -> RawEventStore:
    if config.spellbook.events_file:
        logger.info("Reading raw events from %s", config.spellbook.events_file)
        return JSONLEventStore(config.spellbook.events_file)
    logger.info("No events file configured, using bundled sample events")
    return InMemoryEventStore.with_samples()


def _require_dashboard(state: StarklyticsApp, dashboard_id: str) -> Dashboard:
    dashboard = state.repository.get_by_id(dashboard_id)
    if dashboard is None:
        raise HTTPException(status_code=404, detail=f"Dashboard {dashboard_id} not found")
    return dashboard


def _register_query_routes(app: FastAPI, state: StarklyticsApp) -> None:
    """Register /api/query/* endpoints.

    Query execution reads the raw event store, so it runs in a worker
    thread to keep WebSocket receive loops and the heartbeat running.
    """

    @app.post("/api/query/execute")
    async def execute_query(request: QueryRequest) -> dict[str, Any]:
        """Run a query and return its table."""
        started = time.perf_counter()
        try:
            result = await asyncio.to_thread(state.dispatcher.execute, request.query)
        except RawStoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return {**result.to_dict(), "duration": (time.perf_counter() - started) * 1000}

    @app.post("/api/query/visualize")
    async def visualize_query(request: VisualizeRequest) -> dict[str, Any]:
        """Run a query and return the render model for a widget config."""
        try:
            result = await asyncio.to_thread(state.dispatcher.execute, request.query)
        except RawStoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return transform(result, request.config).to_dict()


def _register_dashboard_routes(app: FastAPI, state: StarklyticsApp) -> None:
    """Register /api/dashboards/* endpoints."""

    @app.get("/api/dashboards")
    async def list_dashboards() -> list[dict[str, Any]]:
        return [d.model_dump(mode="json") for d in state.repository.list_dashboards()]

    @app.post("/api/dashboards", status_code=201)
    async def create_dashboard(request: CreateDashboardRequest) -> dict[str, Any]:
        return state.composer.create(request.name, request.description).model_dump(mode="json")

    @app.get("/api/dashboards/{dashboard_id}")
    async def get_dashboard(dashboard_id: str) -> dict[str, Any]:
        return _require_dashboard(state, dashboard_id).model_dump(mode="json")

    @app.put("/api/dashboards/{dashboard_id}")
    async def upsert_dashboard(dashboard_id: str, dashboard: Dashboard) -> dict[str, Any]:
        if dashboard.id != dashboard_id:
            raise HTTPException(status_code=400, detail="Dashboard id does not match path")
        return state.composer.upsert(dashboard).model_dump(mode="json")

    @app.delete("/api/dashboards/{dashboard_id}", status_code=204)
    async def delete_dashboard(dashboard_id: str) -> None:
        if not state.repository.delete(dashboard_id):
            raise HTTPException(status_code=404, detail=f"Dashboard {dashboard_id} not found")

    @app.post("/api/dashboards/{dashboard_id}/widgets", status_code=201)
    async def append_widget(dashboard_id: str, request: AddWidgetRequest) -> dict[str, Any]:
        """Append a widget, rendering it first when it has a query config."""
        widget = Widget(
            id=request.id,
            title=request.title,
            query=request.query,
            config=request.config,
            layout=request.layout,
        )
        try:
            await asyncio.to_thread(state.composer.render_widget, widget)
            dashboard = state.composer.append_widget(dashboard_id, widget)
        except DashboardNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except RawStoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return dashboard.model_dump(mode="json")

    @app.post("/api/dashboards/{dashboard_id}/text-blocks", status_code=201)
    async def add_text_block(dashboard_id: str, request: TextBlockRequest) -> dict[str, Any]:
        try:
            dashboard = state.repository.add_text_block(dashboard_id, request.markdown, request.title)
        except DashboardNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return dashboard.model_dump(mode="json")

    @app.post("/api/dashboards/{dashboard_id}/fork", status_code=201)
    async def fork_dashboard(dashboard_id: str) -> dict[str, Any]:
        source = _require_dashboard(state, dashboard_id)
        return state.composer.fork(source).model_dump(mode="json")

    @app.post("/api/dashboards/{dashboard_id}/refresh")
    async def refresh_dashboard(dashboard_id: str) -> dict[str, Any]:
        try:
            dashboard = await asyncio.to_thread(state.composer.refresh, dashboard_id)
        except DashboardNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except RawStoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        return dashboard.model_dump(mode="json")


def _register_websocket_routes(app: FastAPI, state: StarklyticsApp) -> None:
    """Register the live query WebSocket endpoint."""

    @app.websocket(state.config.gateway.websocket_path)
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await serve_websocket(state.gateway, websocket)


def create_app(
    config: AppConfig | None = None,
    event_store: RawEventStore | None = None,
    repository: DashboardRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Validated config (defaults to the loaded global config)
        event_store: Raw event store override (tests)
        repository: Dashboard repository override (tests)
    """
    config = config or get_validated_config()
    state = StarklyticsApp(config, event_store=event_store, repository=repository)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the heartbeat scheduler; shut the gateway down on exit."""
        await state.gateway.start()
        yield
        await state.gateway.shutdown()

    app = FastAPI(
        title="Starklytics",
        description="Ad hoc blockchain analytics queries and dashboards",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.starklytics = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "connections": state.gateway.connection_count}

    _register_query_routes(app, state)
    _register_dashboard_routes(app, state)
    _register_websocket_routes(app, state)
    return app


def run_server(
    config: AppConfig | None = None,
    host: str | None = None,
    port: int | None = None,
    reload: bool = False,
) -> None:
    """Run the server with uvicorn."""
    import uvicorn

    config = config or get_validated_config()
    host = host or config.server.host
    port = port or config.server.port
    logger.info("Starting Starklytics on %s:%d", host, port)
    if reload:
        # Reload requires an import string; the factory re-reads the global config
        uvicorn.run("starklytics.server:create_app", host=host, port=port, reload=True, factory=True)
        return
    uvicorn.run(create_app(config), host=host, port=port)

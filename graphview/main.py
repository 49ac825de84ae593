"""FastAPI application factory hosting a headless graph view session."""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from graphview.config import AppConfig, load_config
from graphview.filtering.view_filter import ViewFilter
from graphview.interaction.intents import parse_intent
from graphview.interaction.session import GraphViewSession, SessionSnapshot
from graphview.render.scene import build_scene
from graphview.render.svg import render_svg
from graphview.utils.fetch import DatasetClient

LOGGER = logging.getLogger(__name__)

HEADLESS_TICK_BUDGET = 1000


class GraphNodePayload(BaseModel):
    id: str
    label: str
    type: str
    color: str
    size: float
    importance_score: Optional[float] = None
    cluster_id: Optional[str] = None
    x: float
    y: float
    opacity: float
    metadata: Dict[str, Any]


class GraphEdgePayload(BaseModel):
    id: str
    source: str
    target: str
    type: str
    weight: float
    label: Optional[str] = None
    opacity: float


class GraphResponse(BaseModel):
    """Displayed graph with settled positions."""

    status: str
    message: Optional[str] = None
    nodes: List[GraphNodePayload]
    edges: List[GraphEdgePayload]
    node_count: int
    edge_count: int
    node_types: List[str]
    ticks: int


class DatasetSummary(BaseModel):
    status: str
    variant: Optional[str] = None
    node_count: int
    edge_count: int
    warnings: List[Dict[str, Optional[str]]]


class SessionResponse(BaseModel):
    """Interaction state after an intent was applied."""

    status: str
    message: Optional[str] = None
    selected_id: Optional[str] = None
    dragging: Optional[str] = None
    highlighted_nodes: List[str]
    highlighted_edges: List[str]
    transform: Dict[str, float]
    hover: Optional[Dict[str, Any]] = None
    positions: Dict[str, Dict[str, float]]


def create_app(
    config: AppConfig | None = None,
    dataset_client: Optional[DatasetClient] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The hosted session settles headlessly: each graph or SVG request runs the
    simulation to rest within ``HEADLESS_TICK_BUDGET`` ticks under the session
    lock, so no ``SimulationLoop`` is attached. Interactive hosts that animate
    the layout pass one to ``GraphViewSession`` instead.

    Args:
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        dataset_client: Optional client for the data-serving API. When omitted
            one is built from ``dataset.source_url``; without a URL the fetch
            endpoint returns ``503``.

    Returns:
        FastAPI: Configured FastAPI application.
    """

    resolved_config = config or load_config()
    app = FastAPI(title="GraphView Engine", version=resolved_config.engine.version)
    app.state.app_config = resolved_config
    app.state.session = GraphViewSession(resolved_config)
    app.state.session_lock = threading.RLock()
    if dataset_client is None and resolved_config.dataset.source_url:
        dataset_client = DatasetClient.from_config(resolved_config.dataset)
    app.state.dataset_client = dataset_client

    @app.get("/health", tags=["system"], summary="Service health probe")
    def health() -> dict[str, str]:
        """Return service health information."""

        return {"status": "ok", "version": resolved_config.engine.version}

    @app.get("/api/view/settings", tags=["view"], summary="View and layout defaults")
    def view_settings() -> Dict[str, Any]:
        """Return view defaults sourced from the configuration file."""

        return {
            "view": resolved_config.view.model_dump(),
            "layout": resolved_config.layout.model_dump(),
            "variant": resolved_config.dataset.variant,
        }

    @app.post("/api/view/dataset", tags=["view"], summary="Load a graph payload")
    def load_dataset(payload: Any = Body(...)) -> DatasetSummary:
        """Normalize the posted payload and make it the displayed model."""

        session: GraphViewSession = app.state.session
        with app.state.session_lock:
            if not session.load_payload(payload):
                raise HTTPException(status_code=422, detail=session.message)
            return _dataset_summary(session)

    @app.post("/api/view/fetch", tags=["view"], summary="Fetch the graph from the data source")
    def fetch_dataset(limit: Optional[int] = Query(None, ge=1)) -> DatasetSummary:
        """Fetch from the configured collaborator; a failure keeps the current graph."""

        client: Optional[DatasetClient] = getattr(app.state, "dataset_client", None)
        if client is None:
            raise HTTPException(status_code=503, detail="Dataset source is not configured")
        session: GraphViewSession = app.state.session
        with app.state.session_lock:
            session.begin_loading()
        result = client.fetch(limit=limit)
        with app.state.session_lock:
            if not result.ok:
                session.apply_fetch(result)
                raise HTTPException(status_code=502, detail=result.detail)
            if not session.apply_fetch(result):
                raise HTTPException(status_code=422, detail=session.message)
            return _dataset_summary(session)

    @app.post("/api/view/reset", tags=["view"], summary="Clear the displayed graph")
    def reset_view() -> dict[str, str]:
        session: GraphViewSession = app.state.session
        with app.state.session_lock:
            session.reset()
            return {"status": session.status.value}

    @app.get("/api/view/graph", tags=["view"], summary="Fetch the filtered, laid out graph")
    def graph_view(
        search: Optional[str] = Query(None, description="Case-insensitive search term"),
        types: Optional[str] = Query(None, description="Comma-separated node types or 'all'"),
        max_nodes: Optional[int] = Query(None, ge=1, le=5000),
        cluster: Optional[str] = Query(None, description="Active cluster id"),
        pathway: Optional[str] = Query(None, description="Active pathway id"),
        show_pathways: Optional[bool] = Query(None),
        fit: bool = Query(False, description="Fit the settled layout to the viewport"),
    ) -> GraphResponse:
        """Apply the filter, settle the layout and return positioned nodes and edges."""

        session: GraphViewSession = app.state.session
        view_filter = ViewFilter.build(
            search_term=search,
            node_types=_parse_csv(types) or None,
            max_nodes=max_nodes or resolved_config.view.max_nodes,
            active_cluster_id=cluster,
            active_pathway_id=pathway,
            searchable_fields=resolved_config.view.searchable_metadata_fields,
        )
        with app.state.session_lock:
            session.set_filter(view_filter)
            if show_pathways is not None:
                session.set_show_pathways(show_pathways)
            ticks = session.settle(max_ticks=HEADLESS_TICK_BUDGET)
            if fit:
                session.fit_to_view()
            return _graph_response(session, ticks)

    @app.post("/api/view/intent", tags=["view"], summary="Apply one interaction intent")
    def apply_intent(payload: Dict[str, Any] = Body(...)) -> SessionResponse:
        """Translate the posted intent and feed it to the session."""

        try:
            intent = parse_intent(payload)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        session: GraphViewSession = app.state.session
        with app.state.session_lock:
            return _session_response(session.dispatch(intent))

    @app.get("/api/view/svg", tags=["view"], summary="Render the current view as SVG")
    def view_svg() -> Response:
        session: GraphViewSession = app.state.session
        with app.state.session_lock:
            session.settle(max_ticks=HEADLESS_TICK_BUDGET)
            scene = build_scene(session.snapshot(), resolved_config.view, session.dataset)
        try:
            markup = render_svg(scene)
        except Exception as exc:  # noqa: BLE001 - surface failure without hiding details
            LOGGER.exception("Failed to render view as SVG")
            raise HTTPException(status_code=500, detail="Unable to render view") from exc
        return Response(content=markup, media_type="image/svg+xml")

    return app


def _parse_csv(raw: Optional[str]) -> List[str]:
    if raw is None:
        return []
    values = [part.strip() for part in raw.split(",")]
    return [value for value in values if value]


def _dataset_summary(session: GraphViewSession) -> DatasetSummary:
    dataset = session.dataset
    return DatasetSummary(
        status=session.status.value,
        variant=session.variant,
        node_count=len(dataset.nodes) if dataset is not None else 0,
        edge_count=len(dataset.edges) if dataset is not None else 0,
        warnings=[
            {"kind": warning.kind, "message": warning.message, "item_id": warning.item_id}
            for warning in session.warnings
        ],
    )


def _graph_response(session: GraphViewSession, ticks: int) -> GraphResponse:
    snapshot = session.snapshot()
    view = session.config.view
    positions = snapshot.state.positions_by_id() if snapshot.state is not None else {}
    highlight = snapshot.highlight
    nodes = [
        GraphNodePayload(
            id=node.id,
            label=node.label,
            type=node.type,
            color=node.color,
            size=node.size,
            importance_score=node.importance_score,
            cluster_id=node.cluster_id,
            x=positions[node.id].x,
            y=positions[node.id].y,
            opacity=1.0 if highlight.node_emphasized(node.id) else view.dimmed_node_opacity,
            metadata=dict(node.metadata),
        )
        for node in snapshot.displayed.nodes
    ]
    edges = [
        GraphEdgePayload(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            type=edge.type,
            weight=edge.weight,
            label=edge.label,
            opacity=view.edge_opacity if highlight.edge_emphasized(edge.id) else view.dimmed_edge_opacity,
        )
        for edge in snapshot.displayed.edges
    ]
    return GraphResponse(
        status=snapshot.status.value,
        message=snapshot.message,
        nodes=nodes,
        edges=edges,
        node_count=len(nodes),
        edge_count=len(edges),
        node_types=session.node_type_choices(),
        ticks=ticks,
    )


def _session_response(snapshot: SessionSnapshot) -> SessionResponse:
    hover = None
    if snapshot.hover is not None:
        hover = {
            "node_id": snapshot.hover.node_id,
            "label": snapshot.hover.label,
            "type": snapshot.hover.type,
            "fields": dict(snapshot.hover.fields),
        }
    positions: Dict[str, Dict[str, float]] = {}
    if snapshot.state is not None:
        positions = {
            node_id: {"x": point.x, "y": point.y}
            for node_id, point in snapshot.state.positions_by_id().items()
        }
    highlight = snapshot.highlight
    return SessionResponse(
        status=snapshot.status.value,
        message=snapshot.message,
        selected_id=highlight.selected_id,
        dragging=snapshot.dragging,
        highlighted_nodes=sorted(highlight.node_ids),
        highlighted_edges=sorted(highlight.edge_ids),
        transform={
            "x": snapshot.transform.x,
            "y": snapshot.transform.y,
            "scale": snapshot.transform.scale,
        },
        hover=hover,
        positions=positions,
    )

"""Drawable primitives built from a session snapshot."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from graphview.config import ViewConfig
from graphview.contracts import Edge, GraphDataset, Node
from graphview.interaction.session import HoverInfo, SessionSnapshot, ViewStatus
from graphview.interaction.transform import ViewTransform
from graphview.layout.policy import ForcePolicy
from graphview.model.palette import PATHWAY_COLOR, STRONG_EDGE_COLOR, TOPIC_HIGHLIGHT_COLOR
from graphview.render.overlay import ClusterRegion, PathwayTrail, build_cluster_regions, build_pathway_trails

EDGE_COLOR = "#6B7280"
RING_COLOR = "#FFD700"
STRONG_EDGE_WEIGHT = 5.0
EMPHASIS_RANKS = 3
RING_SCALE = 1.3
PATHWAY_EDGE_OPACITY = 0.9


@dataclass(frozen=True)
class NodeGlyph:
    node_id: str
    x: float
    y: float
    radius: float
    color: str
    opacity: float
    label: str
    full_label: str
    font_size: float
    ring_radius: Optional[float] = None
    selected: bool = False


@dataclass(frozen=True)
class EdgeGlyph:
    edge_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float
    opacity: float
    dashed: bool
    label: Optional[str] = None

    @property
    def midpoint(self) -> Tuple[float, float]:
        return (self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0


@dataclass(frozen=True)
class Scene:
    """Everything a surface needs to draw one frame.

    Coordinates are in layout space; ``transform`` maps them to the screen.
    ``message`` is set for the loading, empty, no-data and error states.
    """

    width: float
    height: float
    status: ViewStatus
    transform: ViewTransform
    nodes: Tuple[NodeGlyph, ...]
    edges: Tuple[EdgeGlyph, ...]
    regions: Tuple[ClusterRegion, ...] = ()
    trails: Tuple[PathwayTrail, ...] = ()
    message: Optional[str] = None
    tooltip: Optional[HoverInfo] = None

    @property
    def has_graph(self) -> bool:
        return bool(self.nodes)


def truncate_label(label: str, size: float) -> str:
    """Shorten ``label`` to ``max(5, size // 2)`` characters plus an ellipsis."""

    limit = max(5, int(math.floor(size / 2.0)))
    if len(label) <= limit:
        return label
    return label[:limit] + "..."


def label_font_size(size: float) -> float:
    return max(8.0, size / 3.0)


def emphasized_node_ids(nodes: Tuple[Node, ...], ranks: int = EMPHASIS_RANKS) -> set[str]:
    """Return the ids of the ``ranks`` most important nodes that carry a score."""

    scored = [node for node in nodes if node.importance_score is not None and node.importance_score > 0]
    scored.sort(key=lambda node: -node.importance)
    return {node.id for node in scored[:ranks]}


def _edge_style(edge: Edge, show_pathways: bool, base_opacity: float) -> Tuple[str, float, bool]:
    pathway = ForcePolicy.is_pathway(edge)
    if show_pathways and pathway:
        return PATHWAY_COLOR, PATHWAY_EDGE_OPACITY, False
    color = STRONG_EDGE_COLOR if edge.weight > STRONG_EDGE_WEIGHT else EDGE_COLOR
    return color, base_opacity, show_pathways


def build_scene(
    snapshot: SessionSnapshot,
    view: ViewConfig,
    dataset: Optional[GraphDataset] = None,
) -> Scene:
    """Turn a session snapshot into drawable primitives.

    Dimming follows the snapshot's highlight; cluster regions and pathway
    trails are added only when ``dataset`` carries them.
    """

    state = snapshot.state
    if state is None or snapshot.displayed.is_empty:
        return Scene(
            width=view.width,
            height=view.height,
            status=snapshot.status,
            transform=snapshot.transform,
            nodes=(),
            edges=(),
            message=snapshot.message,
        )

    positions: Dict[str, Tuple[float, float]] = {
        node_id: (float(state.positions[index, 0]), float(state.positions[index, 1]))
        for index, node_id in enumerate(state.node_ids)
    }
    highlight = snapshot.highlight
    emphasized = emphasized_node_ids(snapshot.displayed.nodes)

    edges: List[EdgeGlyph] = []
    for edge in snapshot.displayed.edges:
        color, opacity, dashed = _edge_style(edge, snapshot.show_pathways, view.edge_opacity)
        if not highlight.edge_emphasized(edge.id):
            opacity = view.dimmed_edge_opacity
        x1, y1 = positions[edge.source]
        x2, y2 = positions[edge.target]
        edges.append(
            EdgeGlyph(
                edge_id=edge.id,
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                color=color,
                width=math.sqrt(edge.weight),
                opacity=opacity,
                dashed=dashed,
                label=edge.label,
            )
        )

    nodes: List[NodeGlyph] = []
    for node in snapshot.displayed.nodes:
        x, y = positions[node.id]
        color = TOPIC_HIGHLIGHT_COLOR if node.id in snapshot.topic_node_ids else node.color
        nodes.append(
            NodeGlyph(
                node_id=node.id,
                x=x,
                y=y,
                radius=node.size,
                color=color,
                opacity=1.0 if highlight.node_emphasized(node.id) else view.dimmed_node_opacity,
                label=truncate_label(node.label, node.size),
                full_label=node.label,
                font_size=label_font_size(node.size),
                ring_radius=node.size * RING_SCALE if node.id in emphasized else None,
                selected=node.id == highlight.selected_id,
            )
        )

    regions: Tuple[ClusterRegion, ...] = ()
    trails: Tuple[PathwayTrail, ...] = ()
    if dataset is not None:
        radii = {node.id: node.size for node in snapshot.displayed.nodes}
        if snapshot.clusters_visible:
            regions = tuple(build_cluster_regions(dataset.clusters, positions, radii))
        if snapshot.show_pathways:
            trails = tuple(build_pathway_trails(dataset.pathways, positions))

    message = snapshot.message if snapshot.status is ViewStatus.ERROR else None
    return Scene(
        width=view.width,
        height=view.height,
        status=snapshot.status,
        transform=snapshot.transform,
        nodes=tuple(nodes),
        edges=tuple(edges),
        regions=regions,
        trails=trails,
        message=message,
        tooltip=snapshot.hover,
    )

"""Color resolution for nodes, clusters and pathway emphasis."""
from __future__ import annotations

import hashlib
from typing import Final, Mapping, Optional, Sequence

DEFAULT_COLOR: Final[str] = "#6B7280"
PATHWAY_COLOR: Final[str] = "#10B981"
STRONG_EDGE_COLOR: Final[str] = "#F59E0B"
TOPIC_HIGHLIGHT_COLOR: Final[str] = "#10B981"

STATUS_COLORS: Final[Mapping[str, str]] = {
    "done": "#10B981",
    "closed": "#10B981",
    "in progress": "#F59E0B",
    "in review": "#8B5CF6",
    "open": "#EF4444",
    "to do": "#EF4444",
}

TYPE_COLORS: Final[Mapping[str, str]] = {
    "project": "#4F46E5",
    "issue": "#6B7280",
    "person": "#3B82F6",
    "concept": "#0EA5E9",
    "document": "#F97316",
}

# Categorical palette used for types without a fixed color and for cluster regions.
CATEGORY_COLORS: Final[Sequence[str]] = (
    "#1F77B4",
    "#FF7F0E",
    "#2CA02C",
    "#D62728",
    "#9467BD",
    "#8C564B",
    "#E377C2",
    "#7F7F7F",
    "#BCBD22",
    "#17BECF",
)

_INFLUENCE_BANDS: Final[Sequence[tuple[float, str]]] = (
    (0.8, "#8B5CF6"),
    (0.6, "#3B82F6"),
    (0.4, "#06B6D4"),
)


def influence_color(score: float) -> str:
    """Map a continuous score in ``[0, 1]`` onto the influence color bands."""

    for threshold, color in _INFLUENCE_BANDS:
        if score > threshold:
            return color
    return DEFAULT_COLOR


def category_color(key: str) -> str:
    """Return a stable categorical color for ``key``.

    The choice depends only on the key text so the same type keeps its color
    across datasets and runs.
    """

    digest = hashlib.sha256(key.strip().lower().encode("utf-8")).digest()
    return CATEGORY_COLORS[digest[0] % len(CATEGORY_COLORS)]


def cluster_color(index: int) -> str:
    return CATEGORY_COLORS[index % len(CATEGORY_COLORS)]


def resolve_node_color(
    *,
    explicit: Optional[str],
    node_type: Optional[str],
    status: Optional[str] = None,
    importance: Optional[float] = None,
) -> str:
    """Resolve the display color for a node.

    Args:
        explicit: Color supplied by the data source, used verbatim when present.
        node_type: Category tag of the node.
        status: Optional workflow status read from the node metadata.
        importance: Optional continuous score used when nothing else applies.

    Returns:
        str: Hex color string.
    """

    if explicit and explicit.strip():
        return explicit.strip()
    if status:
        status_color = STATUS_COLORS.get(status.strip().lower())
        if status_color is not None:
            return status_color
    if node_type:
        normalized = node_type.strip().lower()
        if normalized in TYPE_COLORS:
            return TYPE_COLORS[normalized]
        if importance is None and normalized and normalized != "unknown":
            return category_color(normalized)
    if importance is not None:
        return influence_color(importance)
    return DEFAULT_COLOR

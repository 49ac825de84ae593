"""View filtering over the canonical graph model."""

from .view_filter import ALL_TYPES, DisplayedGraph, ViewFilter, apply_view_filter, available_node_types

__all__ = [
    "ALL_TYPES",
    "DisplayedGraph",
    "ViewFilter",
    "apply_view_filter",
    "available_node_types",
]

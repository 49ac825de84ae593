"""Click-to-highlight neighbor computation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from graphview.filtering.view_filter import DisplayedGraph


@dataclass(frozen=True)
class Highlight:
    """Elements drawn at full opacity; everything else is dimmed.

    ``selected_id`` is ``None`` when nothing is selected, in which case every
    element is emphasized.
    """

    selected_id: Optional[str]
    node_ids: FrozenSet[str]
    edge_ids: FrozenSet[str]

    @property
    def active(self) -> bool:
        return self.selected_id is not None

    def node_emphasized(self, node_id: str) -> bool:
        return not self.active or node_id in self.node_ids

    def edge_emphasized(self, edge_id: str) -> bool:
        return not self.active or edge_id in self.edge_ids


def compute_highlight(displayed: DisplayedGraph, selected_id: Optional[str]) -> Highlight:
    """Return the selected node, its one-hop neighbors and the edges touching it.

    Only displayed edges count, so a neighbor hidden by the filter is never
    highlighted. Selecting an id that is not displayed clears the highlight.
    """

    if selected_id is None or displayed.node_by_id(selected_id) is None:
        return Highlight(
            selected_id=None,
            node_ids=frozenset(node.id for node in displayed.nodes),
            edge_ids=frozenset(edge.id for edge in displayed.edges),
        )
    node_ids = {selected_id}
    edge_ids = set()
    for edge in displayed.edges:
        if edge.touches(selected_id):
            edge_ids.add(edge.id)
            node_ids.add(edge.source)
            node_ids.add(edge.target)
    return Highlight(selected_id=selected_id, node_ids=frozenset(node_ids), edge_ids=frozenset(edge_ids))

"""Derive the displayed node/edge subset from the canonical model."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from graphview.contracts import Edge, GraphDataset, Node

LOGGER = logging.getLogger(__name__)

ALL_TYPES = "all"


@dataclass(frozen=True)
class ViewFilter:
    """Current view settings selecting the displayed subset of a dataset."""

    search_term: str = ""
    node_types: Union[str, Tuple[str, ...]] = ALL_TYPES
    max_nodes: Optional[int] = None
    active_cluster_id: Optional[str] = None
    active_pathway_id: Optional[str] = None
    searchable_fields: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.max_nodes is not None and self.max_nodes < 0:
            raise ValueError("max_nodes must be non-negative")
        if not isinstance(self.node_types, str):
            object.__setattr__(self, "node_types", tuple(self.node_types))
        object.__setattr__(self, "searchable_fields", tuple(self.searchable_fields))

    @classmethod
    def build(
        cls,
        *,
        search_term: Optional[str] = None,
        node_types: Union[None, str, Sequence[str]] = None,
        max_nodes: Optional[int] = None,
        active_cluster_id: Optional[str] = None,
        active_pathway_id: Optional[str] = None,
        searchable_fields: Iterable[str] = (),
    ) -> "ViewFilter":
        """Create a filter from loosely typed host options.

        Blank strings are treated as absent and a type selection containing
        ``"all"`` collapses to the identity filter.
        """

        types: Union[str, Tuple[str, ...]] = ALL_TYPES
        if isinstance(node_types, str):
            cleaned = node_types.strip()
            if cleaned and cleaned.lower() != ALL_TYPES:
                types = (cleaned,)
        elif node_types is not None:
            selected = tuple(item.strip() for item in node_types if item and item.strip())
            if selected and ALL_TYPES not in {item.lower() for item in selected}:
                types = selected
        return cls(
            search_term=(search_term or "").strip(),
            node_types=types,
            max_nodes=max_nodes,
            active_cluster_id=(active_cluster_id or "").strip() or None,
            active_pathway_id=(active_pathway_id or "").strip() or None,
            searchable_fields=tuple(searchable_fields),
        )

    @property
    def matches_all_types(self) -> bool:
        return isinstance(self.node_types, str)


@dataclass(frozen=True)
class DisplayedGraph:
    """Node/edge subset currently on screen."""

    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def node_by_id(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


def _matches_search(node: Node, term: str, fields: Sequence[str]) -> bool:
    if not term:
        return True
    needle = term.lower()
    if needle in node.label.lower() or needle in node.type.lower():
        return True
    for name in fields:
        value = node.metadata.get(name)
        if value is None or isinstance(value, (list, dict)):
            continue
        if needle in str(value).lower():
            return True
    return False


def _restriction(dataset: GraphDataset, view_filter: ViewFilter) -> Optional[set[str]]:
    allowed: Optional[set[str]] = None
    if view_filter.active_cluster_id is not None:
        cluster = dataset.cluster_by_id(view_filter.active_cluster_id)
        if cluster is None:
            LOGGER.warning("Ignoring unknown cluster id %s", view_filter.active_cluster_id)
        else:
            allowed = set(cluster.node_ids)
    if view_filter.active_pathway_id is not None:
        pathway = dataset.pathway_by_id(view_filter.active_pathway_id)
        if pathway is None:
            LOGGER.warning("Ignoring unknown pathway id %s", view_filter.active_pathway_id)
        else:
            members = set(pathway.node_ids)
            allowed = members if allowed is None else allowed & members
    return allowed


def _apply_cap(nodes: List[Node], max_nodes: Optional[int]) -> List[Node]:
    if max_nodes is None or len(nodes) <= max_nodes:
        return nodes
    # sorted() is stable, so equal scores keep their original order.
    ranked = sorted(range(len(nodes)), key=lambda index: -nodes[index].importance)
    kept = set(ranked[:max_nodes])
    return [node for index, node in enumerate(nodes) if index in kept]


def apply_view_filter(dataset: GraphDataset, view_filter: ViewFilter) -> DisplayedGraph:
    """Return the displayed subset of ``dataset`` under ``view_filter``.

    Predicates run in a fixed order: cluster/pathway restriction, type,
    search, node cap. Edges are then re-derived from the surviving node ids,
    so no displayed edge ever references a hidden node. Node and edge
    objects are shared with the dataset, never copied or mutated.

    Args:
        dataset: Canonical model produced by the normalizer.
        view_filter: Current view settings.

    Returns:
        DisplayedGraph: Nodes in dataset order and the edges between them.
    """

    allowed = _restriction(dataset, view_filter)
    types = None if view_filter.matches_all_types else {item.lower() for item in view_filter.node_types}
    candidates: List[Node] = []
    for node in dataset.nodes:
        if allowed is not None and node.id not in allowed:
            continue
        if types is not None and node.type.lower() not in types:
            continue
        if not _matches_search(node, view_filter.search_term, view_filter.searchable_fields):
            continue
        candidates.append(node)
    kept = _apply_cap(candidates, view_filter.max_nodes)
    kept_ids = {node.id for node in kept}
    edges = tuple(edge for edge in dataset.edges if edge.source in kept_ids and edge.target in kept_ids)
    LOGGER.debug(
        "View filter kept %d of %d nodes and %d of %d edges",
        len(kept),
        len(dataset.nodes),
        len(edges),
        len(dataset.edges),
    )
    return DisplayedGraph(nodes=tuple(kept), edges=edges)


def available_node_types(dataset: GraphDataset) -> List[str]:
    """Return the type choices for a filter control, ``"all"`` first."""

    choices: List[str] = [ALL_TYPES]
    for node in dataset.nodes:
        if node.type not in choices:
            choices.append(node.type)
    return choices

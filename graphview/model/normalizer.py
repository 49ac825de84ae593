"""Normalize fetched graph payloads into the canonical node/edge model."""
from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from graphview.config import DatasetConfig
from graphview.contracts import Cluster, Edge, GraphDataset, Node, Pathway
from graphview.model.palette import resolve_node_color
from graphview.model.variants import PayloadVariant, get_variant

LOGGER = logging.getLogger(__name__)


class MalformedDatasetError(ValueError):
    """Raised when a payload cannot be normalized into a graph dataset."""


@dataclass(frozen=True)
class NormalizationWarning:
    """Non-fatal issue recorded while normalizing a payload."""

    kind: str
    message: str
    item_id: Optional[str] = None


@dataclass(frozen=True)
class NormalizedGraph:
    """Canonical dataset together with the warnings raised while building it."""

    dataset: GraphDataset
    warnings: tuple[NormalizationWarning, ...]
    variant: str

    @property
    def dropped_edge_count(self) -> int:
        return sum(1 for warning in self.warnings if warning.kind in _EDGE_DROP_KINDS)

    @property
    def dropped_node_count(self) -> int:
        return sum(1 for warning in self.warnings if warning.kind in _NODE_DROP_KINDS)

    def warnings_of(self, kind: str) -> List[NormalizationWarning]:
        return [warning for warning in self.warnings if warning.kind == kind]


_NODE_DROP_KINDS = frozenset({"invalid_node", "missing_node_id", "duplicate_node_id"})
_EDGE_DROP_KINDS = frozenset({"invalid_edge", "missing_endpoint", "dangling_edge", "self_loop"})


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _as_identifier(value: object) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_number(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_text(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class GraphNormalizer:
    """Validate and reshape raw payloads into :class:`GraphDataset` objects.

    Malformed entries are discarded individually with a recorded warning;
    only a payload whose overall shape is wrong aborts the load. The input
    payload is never mutated and metadata is copied rather than aliased.
    """

    def __init__(
        self,
        *,
        variant: str = "auto",
        allow_self_loops: bool = True,
        default_node_size: float = 10.0,
        default_edge_weight: float = 1.0,
    ) -> None:
        if default_node_size <= 0:
            raise ValueError("default_node_size must be positive")
        if default_edge_weight < 0:
            raise ValueError("default_edge_weight must be non-negative")
        self._variant = variant
        self._allow_self_loops = allow_self_loops
        self._default_node_size = default_node_size
        self._default_edge_weight = default_edge_weight

    @classmethod
    def from_config(cls, config: DatasetConfig) -> "GraphNormalizer":
        return cls(
            variant=config.variant,
            allow_self_loops=config.allow_self_loops,
            default_node_size=config.default_node_size,
            default_edge_weight=config.default_edge_weight,
        )

    def normalize(self, payload: object) -> NormalizedGraph:
        """Normalize ``payload`` into the canonical model.

        Args:
            payload: Parsed JSON structurally similar to ``{"nodes": [...], "edges": [...]}``.

        Returns:
            NormalizedGraph: Dataset satisfying the unique-id and no-dangling-edge
                invariants, plus any warnings recorded along the way.

        Raises:
            MalformedDatasetError: If the payload does not have the expected shape.
        """

        if not isinstance(payload, Mapping):
            raise MalformedDatasetError("Graph payload must be a JSON object")
        try:
            variant = get_variant(self._variant, payload)
        except ValueError as exc:
            raise MalformedDatasetError(str(exc)) from exc

        raw_nodes = payload.get("nodes")
        if not _is_sequence(raw_nodes):
            raise MalformedDatasetError("Graph payload requires a 'nodes' list")
        raw_edges = self._edges_section(payload, variant)

        warnings: List[NormalizationWarning] = []
        nodes = self._build_nodes(raw_nodes, variant, warnings)  # type: ignore[arg-type]
        edges = self._build_edges(raw_edges, variant, set(nodes), warnings)
        clusters = self._build_clusters(payload.get("clusters"), variant, nodes, warnings)
        pathways = self._build_pathways(payload.get("pathways"), variant, set(nodes), warnings)

        metadata = payload.get("metadata")
        dataset = GraphDataset(
            nodes=tuple(nodes.values()),
            edges=tuple(edges),
            clusters=tuple(clusters),
            pathways=tuple(pathways),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )
        dangling = sum(1 for warning in warnings if warning.kind == "dangling_edge")
        if dangling:
            LOGGER.info("Dropped %d dangling edges while normalizing dataset", dangling)
        LOGGER.debug(
            "Normalized %s payload into %d nodes and %d edges",
            variant.name,
            len(dataset.nodes),
            len(dataset.edges),
        )
        return NormalizedGraph(dataset=dataset, warnings=tuple(warnings), variant=variant.name)

    @staticmethod
    def _edges_section(payload: Mapping[str, Any], variant: PayloadVariant) -> Sequence[Any]:
        for key in variant.edges_keys:
            if key not in payload or payload[key] is None:
                continue
            value = payload[key]
            if not _is_sequence(value):
                raise MalformedDatasetError(f"Graph payload field '{key}' must be a list")
            return value
        return ()

    def _build_nodes(
        self,
        raw_nodes: Sequence[Any],
        variant: PayloadVariant,
        warnings: List[NormalizationWarning],
    ) -> "OrderedDict[str, Node]":
        nodes: "OrderedDict[str, Node]" = OrderedDict()
        for index, raw in enumerate(raw_nodes):
            if not isinstance(raw, Mapping):
                self._warn(warnings, "invalid_node", f"Node entry {index} is not an object")
                continue
            fields = variant.node_fields(raw)
            node_id = _as_identifier(fields.get("id"))
            if node_id is None:
                self._warn(warnings, "missing_node_id", f"Node entry {index} has no usable id")
                continue
            if node_id in nodes:
                self._warn(warnings, "duplicate_node_id", f"Duplicate node id {node_id!r} ignored", node_id)
                continue
            node = self._node_from_fields(node_id, fields, warnings)
            if node is not None:
                nodes[node_id] = node
        return nodes

    def _node_from_fields(
        self,
        node_id: str,
        fields: Dict[str, Any],
        warnings: List[NormalizationWarning],
    ) -> Optional[Node]:
        label = _as_text(fields.get("label"))
        if label is None:
            self._warn(warnings, "missing_label", f"Node {node_id!r} has no label; using its id", node_id)
            label = node_id
        node_type = _as_text(fields.get("type")) or "unknown"
        size = _as_number(fields.get("size"))
        if size is None or size <= 0:
            size = self._default_node_size
        importance = _as_number(fields.get("importance_score"))
        if importance is not None and not 0.0 <= importance <= 1.0:
            self._warn(
                warnings,
                "importance_clamped",
                f"Importance of node {node_id!r} outside [0, 1] was clamped",
                node_id,
            )
            importance = min(max(importance, 0.0), 1.0)
        metadata = fields.get("metadata") or {}
        status = metadata.get("status") if isinstance(metadata.get("status"), str) else None
        color = resolve_node_color(
            explicit=_as_text(fields.get("color")),
            node_type=node_type,
            status=status,
            importance=importance,
        )
        try:
            return Node(
                id=node_id,
                label=label,
                type=node_type,
                size=size,
                color=color,
                importance_score=importance,
                cluster_id=_as_identifier(fields.get("cluster_id")),
                metadata=metadata,
            )
        except ValidationError as exc:
            self._warn(warnings, "invalid_node", f"Node {node_id!r} failed validation: {exc}", node_id)
            return None

    def _build_edges(
        self,
        raw_edges: Sequence[Any],
        variant: PayloadVariant,
        node_ids: set[str],
        warnings: List[NormalizationWarning],
    ) -> List[Edge]:
        edges: List[Edge] = []
        used_ids: Dict[str, int] = {}
        for index, raw in enumerate(raw_edges):
            if not isinstance(raw, Mapping):
                self._warn(warnings, "invalid_edge", f"Edge entry {index} is not an object")
                continue
            fields = variant.edge_fields(raw)
            source = _as_identifier(fields.get("source"))
            target = _as_identifier(fields.get("target"))
            if source is None or target is None:
                self._warn(warnings, "missing_endpoint", f"Edge entry {index} lacks a source or target")
                continue
            edge_type = _as_text(fields.get("type")) or "related"
            edge_id = _as_identifier(fields.get("id")) or f"{source}->{target}:{edge_type}"
            if source not in node_ids or target not in node_ids:
                LOGGER.debug("Dropping dangling edge %s (%s -> %s)", edge_id, source, target)
                warnings.append(
                    NormalizationWarning(
                        kind="dangling_edge",
                        message=f"Edge {edge_id!r} references a missing node",
                        item_id=edge_id,
                    )
                )
                continue
            if source == target and not self._allow_self_loops:
                self._warn(warnings, "self_loop", f"Self-loop {edge_id!r} dropped", edge_id)
                continue
            if edge_id in used_ids:
                used_ids[edge_id] += 1
                unique_id = f"{edge_id}#{used_ids[edge_id]}"
                self._warn(
                    warnings,
                    "duplicate_edge_id",
                    f"Duplicate edge id {edge_id!r} renamed to {unique_id!r}",
                    edge_id,
                )
                edge_id = unique_id
            else:
                used_ids[edge_id] = 1
            weight = _as_number(fields.get("weight"))
            if weight is None or weight < 0:
                weight = self._default_edge_weight
            try:
                edges.append(
                    Edge(
                        id=edge_id,
                        source=source,
                        target=target,
                        type=edge_type,
                        weight=weight,
                        label=_as_text(fields.get("label")),
                        metadata=fields.get("metadata") or {},
                    )
                )
            except ValidationError as exc:
                self._warn(warnings, "invalid_edge", f"Edge {edge_id!r} failed validation: {exc}", edge_id)
        return edges

    def _build_clusters(
        self,
        raw_clusters: object,
        variant: PayloadVariant,
        nodes: Mapping[str, Node],
        warnings: List[NormalizationWarning],
    ) -> List[Cluster]:
        if raw_clusters is None:
            return self._derive_clusters(nodes)
        if not _is_sequence(raw_clusters):
            raise MalformedDatasetError("Graph payload field 'clusters' must be a list")
        clusters: List[Cluster] = []
        for index, raw in enumerate(raw_clusters):  # type: ignore[arg-type]
            if not isinstance(raw, Mapping):
                self._warn(warnings, "invalid_cluster", f"Cluster entry {index} is not an object")
                continue
            fields = variant.cluster_fields(raw)
            cluster_id = _as_identifier(fields.get("id"))
            if cluster_id is None:
                self._warn(warnings, "invalid_cluster", f"Cluster entry {index} has no usable id")
                continue
            members = self._member_ids(fields.get("node_ids"), set(nodes))
            center = _as_identifier(fields.get("center_node_id"))
            clusters.append(
                Cluster(
                    id=cluster_id,
                    name=_as_text(fields.get("name")) or cluster_id,
                    node_ids=members,
                    center_node_id=center if center in nodes else None,
                    cohesion_score=_as_number(fields.get("cohesion_score")),
                    metadata=fields.get("metadata") or {},
                )
            )
        return clusters

    @staticmethod
    def _derive_clusters(nodes: Mapping[str, Node]) -> List[Cluster]:
        grouped: "OrderedDict[str, List[str]]" = OrderedDict()
        for node in nodes.values():
            if node.cluster_id is not None:
                grouped.setdefault(node.cluster_id, []).append(node.id)
        return [
            Cluster(id=cluster_id, name=cluster_id, node_ids=tuple(members))
            for cluster_id, members in grouped.items()
        ]

    def _build_pathways(
        self,
        raw_pathways: object,
        variant: PayloadVariant,
        node_ids: set[str],
        warnings: List[NormalizationWarning],
    ) -> List[Pathway]:
        if raw_pathways is None:
            return []
        if not _is_sequence(raw_pathways):
            raise MalformedDatasetError("Graph payload field 'pathways' must be a list")
        pathways: List[Pathway] = []
        for index, raw in enumerate(raw_pathways):  # type: ignore[arg-type]
            if not isinstance(raw, Mapping):
                self._warn(warnings, "invalid_pathway", f"Pathway entry {index} is not an object")
                continue
            fields = variant.pathway_fields(raw)
            pathway_id = _as_identifier(fields.get("id"))
            if pathway_id is None:
                self._warn(warnings, "invalid_pathway", f"Pathway entry {index} has no usable id")
                continue
            pathways.append(
                Pathway(
                    id=pathway_id,
                    name=_as_text(fields.get("name")) or pathway_id,
                    node_ids=self._member_ids(fields.get("node_ids"), node_ids),
                    metadata=fields.get("metadata") or {},
                )
            )
        return pathways

    @staticmethod
    def _member_ids(value: object, known: set[str]) -> tuple[str, ...]:
        if not _is_sequence(value):
            return ()
        members: List[str] = []
        for item in value:  # type: ignore[union-attr]
            member = _as_identifier(item)
            if member is not None and member in known and member not in members:
                members.append(member)
        return tuple(members)

    @staticmethod
    def _warn(
        warnings: List[NormalizationWarning],
        kind: str,
        message: str,
        item_id: Optional[str] = None,
    ) -> None:
        LOGGER.warning(message)
        warnings.append(NormalizationWarning(kind=kind, message=message, item_id=item_id))

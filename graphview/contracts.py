"""Immutable data contracts for the GraphView engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Opaque display data attached to nodes, edges and groupings. The engine never
# interprets these values beyond explicit search and tooltip field lookups.
MetadataValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]
Metadata = Dict[str, MetadataValue]


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class Node(_FrozenBaseModel):
    """Graph entity such as an issue, a person, a concept or a project."""

    id: str = Field(..., min_length=1)
    label: str
    type: str = Field("unknown", min_length=1)
    size: float = Field(..., gt=0, description="Base radius used for drawing and collision.")
    color: str = Field(..., min_length=1)
    importance_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    cluster_id: Optional[str] = None
    metadata: Metadata = Field(default_factory=dict)

    @property
    def importance(self) -> float:
        """Return the importance score, treating a missing score as zero."""

        return self.importance_score if self.importance_score is not None else 0.0


class Edge(_FrozenBaseModel):
    """Relationship between two nodes."""

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: str = Field("related", min_length=1)
    weight: float = Field(1.0, ge=0.0)
    label: Optional[str] = None
    metadata: Metadata = Field(default_factory=dict)

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def touches(self, node_id: str) -> bool:
        """Return whether ``node_id`` is one of the edge endpoints."""

        return self.source == node_id or self.target == node_id


class Cluster(_FrozenBaseModel):
    """Externally computed community of nodes."""

    id: str = Field(..., min_length=1)
    name: str
    node_ids: tuple[str, ...] = Field(default_factory=tuple)
    center_node_id: Optional[str] = None
    cohesion_score: Optional[float] = None
    metadata: Metadata = Field(default_factory=dict)


class Pathway(_FrozenBaseModel):
    """Externally supplied ordered walk through a set of nodes."""

    id: str = Field(..., min_length=1)
    name: str
    node_ids: tuple[str, ...] = Field(default_factory=tuple)
    metadata: Metadata = Field(default_factory=dict)


class GraphDataset(_FrozenBaseModel):
    """Canonical node/edge model produced once per successful fetch."""

    nodes: tuple[Node, ...] = Field(default_factory=tuple)
    edges: tuple[Edge, ...] = Field(default_factory=tuple)
    clusters: tuple[Cluster, ...] = Field(default_factory=tuple)
    pathways: tuple[Pathway, ...] = Field(default_factory=tuple)
    metadata: Metadata = Field(default_factory=dict)

    @field_validator("nodes")
    @classmethod
    def _ensure_unique_ids(cls, value: tuple[Node, ...]) -> tuple[Node, ...]:
        """Validate that node identifiers are unique within the dataset.

        Args:
            value: Candidate node tuple.

        Returns:
            tuple[Node, ...]: The validated nodes.

        Raises:
            ValueError: If two nodes share an identifier.
        """
        seen: set[str] = set()
        for node in value:
            if node.id in seen:
                raise ValueError(f"duplicate node id: {node.id}")
            seen.add(node.id)
        return value

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_ids(self) -> set[str]:
        """Return the identifiers of every node in the dataset."""

        return {node.id for node in self.nodes}

    def node_by_id(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def cluster_by_id(self, cluster_id: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if cluster.id == cluster_id:
                return cluster
        return None

    def pathway_by_id(self, pathway_id: str) -> Optional[Pathway]:
        for pathway in self.pathways:
            if pathway.id == pathway_id:
                return pathway
        return None


@dataclass(frozen=True)
class Point:
    """Two-dimensional coordinate in either screen or layout space."""

    x: float
    y: float

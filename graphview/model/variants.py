"""Adapters mapping the supported payload variants onto canonical field names.

Three dataset shapes reach the engine: the generic entity-relationship graph,
the smart graph carrying communities and learning pathways, and the people
collaboration network. Each adapter rewrites one raw entry into a plain
mapping keyed by canonical field names; value validation happens later in the
normalizer.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from typing_extensions import Protocol

from graphview.model.palette import influence_color

KNOWN_VARIANTS = ("knowledge", "smart", "people")

_SMART_NODE_ANALYTICS = (
    "clustering_coefficient",
    "importance_rank",
    "learning_value",
    "expertise_level",
    "knowledge_depth",
)


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _copy_metadata(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return {str(key): copy.deepcopy(item) for key, item in value.items()}
    return {}


def _remaining(raw: Mapping[str, Any], consumed: Sequence[str]) -> Dict[str, Any]:
    return {
        str(key): copy.deepcopy(value)
        for key, value in raw.items()
        if key not in consumed
    }


class PayloadVariant(Protocol):
    """Protocol describing how a payload variant exposes nodes and edges."""

    name: str
    edges_keys: Sequence[str]

    def node_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Return canonical node fields for one raw node entry."""

    def edge_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Return canonical edge fields for one raw edge entry."""

    def cluster_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Return canonical cluster fields for one raw cluster entry."""

    def pathway_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Return canonical pathway fields for one raw pathway entry."""


class KnowledgeGraphVariant:
    """Generic entity-relationship graph (issues, projects, documents)."""

    name = "knowledge"
    edges_keys: Sequence[str] = ("edges", "links")

    def node_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "label": raw.get("label"),
            "type": _first_present(raw, "node_type", "type"),
            "size": raw.get("size"),
            "color": raw.get("color"),
            "importance_score": _first_present(raw, "importance_score", "importanceScore"),
            "cluster_id": _first_present(raw, "cluster_id", "clusterId", "community_id"),
            "metadata": _copy_metadata(raw.get("metadata")),
        }

    def edge_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": raw.get("id"),
            "source": raw.get("source"),
            "target": raw.get("target"),
            "type": _first_present(raw, "edge_type", "type"),
            "weight": raw.get("weight"),
            "label": raw.get("label"),
            "metadata": _copy_metadata(raw.get("metadata")),
        }

    def cluster_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        consumed = ("id", "name", "nodes", "node_ids", "center_node", "centerNodeId", "cohesion_score")
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "node_ids": _first_present(raw, "nodes", "node_ids"),
            "center_node_id": _first_present(raw, "center_node", "centerNodeId"),
            "cohesion_score": raw.get("cohesion_score"),
            "metadata": _remaining(raw, consumed),
        }

    def pathway_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        consumed = ("id", "name", "nodes", "node_ids")
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "node_ids": _first_present(raw, "nodes", "node_ids"),
            "metadata": _remaining(raw, consumed),
        }


class SmartGraphVariant(KnowledgeGraphVariant):
    """Graph enriched with centrality, communities and learning pathways."""

    name = "smart"

    def node_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        fields = super().node_fields(raw)
        fields["importance_score"] = _first_present(
            raw, "centrality_score", "importance_score", "importanceScore"
        )
        metadata = fields["metadata"]
        for key in _SMART_NODE_ANALYTICS:
            if key in raw and key not in metadata:
                metadata[key] = copy.deepcopy(raw[key])
        return fields

    def edge_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        fields = super().edge_fields(raw)
        fields["weight"] = _first_present(raw, "weight", "strength")
        if raw.get("learning_pathway") is True:
            fields["type"] = "pathway"
        metadata = fields["metadata"]
        for key in ("strength", "frequency"):
            if key in raw and key not in metadata:
                metadata[key] = copy.deepcopy(raw[key])
        return fields


class PeopleNetworkVariant(KnowledgeGraphVariant):
    """Collaboration network of people linked by shared work."""

    name = "people"
    edges_keys: Sequence[str] = ("links", "edges")

    def node_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        influence = raw.get("influenceMetrics")
        authority = _authority_score(influence)
        metadata = _copy_metadata(raw.get("metadata"))
        email = raw.get("email")
        if isinstance(email, str) and email:
            metadata.setdefault("email", email)
        for key in ("platforms", "collaborationPartners"):
            if key in raw:
                metadata.setdefault(key, copy.deepcopy(raw[key]))
        if isinstance(influence, Mapping):
            metadata.setdefault("influence", copy.deepcopy(dict(influence)))
        topics = _expertise_topics(raw.get("expertiseAreas"))
        if topics:
            metadata.setdefault("expertise_topics", topics)
        return {
            "id": raw.get("id"),
            "label": _person_label(raw),
            "type": raw.get("type") or "person",
            "size": raw.get("size") or min(30.0, 12.0 + authority * 15.0),
            "color": raw.get("color") or influence_color(authority),
            "importance_score": authority,
            "cluster_id": _first_present(raw, "cluster_id", "clusterId", "team"),
            "metadata": metadata,
        }

    def edge_fields(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        fields = super().edge_fields(raw)
        fields["type"] = fields["type"] or "collaboration"
        metadata = fields["metadata"]
        for key in ("platforms", "interactions", "topics"):
            if key in raw and key not in metadata:
                metadata[key] = copy.deepcopy(raw[key])
        return fields


def _authority_score(influence: Any) -> float:
    if not isinstance(influence, Mapping):
        return 0.0
    value = influence.get("authorityScore")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return min(max(float(value), 0.0), 1.0)


def _person_label(raw: Mapping[str, Any]) -> Optional[str]:
    display_name = raw.get("displayName")
    if isinstance(display_name, str) and display_name.strip():
        return display_name
    email = raw.get("email")
    if isinstance(email, str) and email.strip():
        return email.split("@", 1)[0]
    label = raw.get("label")
    if isinstance(label, str) and label.strip():
        return label
    return None


def _expertise_topics(areas: Any) -> List[str]:
    if not isinstance(areas, Sequence) or isinstance(areas, (str, bytes)):
        return []
    topics: List[str] = []
    for area in areas:
        if isinstance(area, Mapping):
            topic = area.get("topic")
            if isinstance(topic, str) and topic.strip():
                topics.append(topic.strip())
    return topics


_VARIANTS: Dict[str, PayloadVariant] = {
    "knowledge": KnowledgeGraphVariant(),
    "smart": SmartGraphVariant(),
    "people": PeopleNetworkVariant(),
}


def detect_variant(payload: Mapping[str, Any]) -> str:
    """Guess the variant of a raw payload from its top-level keys."""

    if "links" in payload and "edges" not in payload:
        return "people"
    if "clusters" in payload or "pathways" in payload:
        return "smart"
    return "knowledge"


def get_variant(name: str, payload: Optional[Mapping[str, Any]] = None) -> PayloadVariant:
    """Return the adapter for ``name``; ``"auto"`` inspects ``payload``.

    Raises:
        ValueError: If the variant name is unknown.
    """

    resolved = name.strip().lower()
    if resolved == "auto":
        resolved = detect_variant(payload or {})
    try:
        return _VARIANTS[resolved]
    except KeyError as exc:
        raise ValueError(f"Unknown payload variant: {name}") from exc

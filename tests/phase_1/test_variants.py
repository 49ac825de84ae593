from __future__ import annotations

import pytest

from graphview.model.normalizer import GraphNormalizer
from graphview.model.palette import (
    CATEGORY_COLORS,
    DEFAULT_COLOR,
    STATUS_COLORS,
    TYPE_COLORS,
    category_color,
    influence_color,
    resolve_node_color,
)
from graphview.model.variants import detect_variant, get_variant


def test_detect_variant_from_top_level_keys() -> None:
    assert detect_variant({"nodes": [], "links": []}) == "people"
    assert detect_variant({"nodes": [], "edges": [], "clusters": []}) == "smart"
    assert detect_variant({"nodes": [], "pathways": []}) == "smart"
    assert detect_variant({"nodes": [], "edges": []}) == "knowledge"


def test_get_variant_rejects_unknown_names() -> None:
    assert get_variant("People").name == "people"
    assert get_variant("auto", {"links": []}).name == "people"
    with pytest.raises(ValueError):
        get_variant("other")


def test_smart_graph_payload() -> None:
    payload = {
        "nodes": [
            {"id": "n1", "label": "Kafka", "type": "concept", "size": 18, "centrality_score": 0.9,
             "community_id": "c1", "knowledge_depth": 8},
            {"id": "n2", "label": "Streams", "type": "concept", "size": 12, "centrality_score": 0.2,
             "community_id": "c1"},
            {"id": "n3", "label": "Outsider", "type": "document", "size": 10},
        ],
        "edges": [
            {"id": "e1", "source": "n1", "target": "n2", "type": "prerequisite", "strength": 7,
             "learning_pathway": True},
            {"id": "e2", "source": "n2", "target": "n3", "strength": 2, "frequency": 4},
        ],
        "clusters": [
            {"id": "c1", "name": "Streaming", "nodes": ["n1", "n2", "ghost"], "center_node": "n1",
             "cohesion_score": 0.8, "dominant_topics": ["kafka"]},
        ],
        "pathways": [{"id": "p1", "name": "Intro", "nodes": ["n2", "n1"], "difficulty": "easy"}],
    }
    result = GraphNormalizer().normalize(payload)
    dataset = result.dataset

    assert result.variant == "smart"
    assert dataset.nodes[0].importance_score == 0.9
    assert dataset.nodes[0].cluster_id == "c1"
    assert dataset.nodes[0].metadata["knowledge_depth"] == 8
    assert dataset.nodes[2].importance_score is None
    assert dataset.edges[0].type == "pathway"
    assert dataset.edges[0].weight == 7
    assert dataset.edges[1].metadata == {"strength": 2, "frequency": 4}

    cluster = dataset.clusters[0]
    assert cluster.node_ids == ("n1", "n2")
    assert cluster.center_node_id == "n1"
    assert cluster.cohesion_score == 0.8
    assert cluster.metadata == {"dominant_topics": ["kafka"]}

    pathway = dataset.pathways[0]
    assert pathway.node_ids == ("n2", "n1")
    assert pathway.metadata == {"difficulty": "easy"}


def test_people_network_payload() -> None:
    payload = {
        "nodes": [
            {"id": "u1", "displayName": "Ada Lovelace", "email": "ada@example.com",
             "influenceMetrics": {"authorityScore": 0.9},
             "expertiseAreas": [{"topic": "Compilers"}, {"topic": "Analytics"}]},
            {"id": "u2", "email": "grace@example.com", "influenceMetrics": {"authorityScore": 0.5}},
            {"id": "u3", "influenceMetrics": {"authorityScore": 7}},
        ],
        "links": [{"source": "u1", "target": "u2", "weight": 3, "platforms": ["git"]}],
    }
    result = GraphNormalizer().normalize(payload)
    nodes = result.dataset.nodes

    assert result.variant == "people"
    assert [node.label for node in nodes] == ["Ada Lovelace", "grace", "u3"]
    assert nodes[0].type == "person"
    assert nodes[0].importance_score == 0.9
    assert nodes[0].size == pytest.approx(min(30.0, 12.0 + 0.9 * 15.0))
    assert nodes[0].color == "#8B5CF6"
    assert nodes[1].color == "#06B6D4"
    assert nodes[2].importance_score == 1.0
    assert nodes[2].size == 27.0
    assert nodes[0].metadata["email"] == "ada@example.com"
    assert nodes[0].metadata["expertise_topics"] == ["Compilers", "Analytics"]
    assert [warning.item_id for warning in result.warnings_of("missing_label")] == ["u3"]

    edge = result.dataset.edges[0]
    assert edge.type == "collaboration"
    assert edge.weight == 3
    assert edge.metadata["platforms"] == ["git"]


def test_influence_color_bands() -> None:
    assert influence_color(0.95) == "#8B5CF6"
    assert influence_color(0.7) == "#3B82F6"
    assert influence_color(0.5) == "#06B6D4"
    assert influence_color(0.4) == DEFAULT_COLOR
    assert influence_color(0.0) == DEFAULT_COLOR


def test_resolve_node_color_precedence() -> None:
    assert resolve_node_color(explicit="#123456", node_type="project", status="Done") == "#123456"
    assert resolve_node_color(explicit=None, node_type="project", status="In Review") == STATUS_COLORS["in review"]
    assert resolve_node_color(explicit=None, node_type="Project") == TYPE_COLORS["project"]
    assert resolve_node_color(explicit=None, node_type="widget") == category_color("widget")
    assert resolve_node_color(explicit=None, node_type="widget", importance=0.9) == "#8B5CF6"
    assert resolve_node_color(explicit=None, node_type="unknown") == DEFAULT_COLOR
    assert resolve_node_color(explicit="  ", node_type=None, status="Blocked") == DEFAULT_COLOR


def test_category_color_is_stable() -> None:
    assert category_color("widget") == category_color(" Widget ")
    assert category_color("widget") in CATEGORY_COLORS

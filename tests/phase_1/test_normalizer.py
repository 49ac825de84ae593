from __future__ import annotations

import copy

import pytest

from graphview.config import DatasetConfig
from graphview.model.normalizer import GraphNormalizer, MalformedDatasetError
from graphview.model.palette import STATUS_COLORS, TYPE_COLORS


def _payload() -> dict:
    return {
        "nodes": [
            {"id": "a", "label": "Auth Service", "node_type": "project", "size": 20},
            {"id": "b", "label": "Billing", "node_type": "issue", "metadata": {"status": "Done", "key": "BIL-1"}},
            {"id": 3, "label": "Numeric id"},
        ],
        "edges": [
            {"id": "e1", "source": "a", "target": "b", "weight": 2},
            {"id": "e2", "source": "b", "target": "ghost"},
            {"id": "e3", "source": "a", "target": 3},
        ],
        "metadata": {"total_nodes": 3},
    }


def test_normalize_builds_canonical_model() -> None:
    result = GraphNormalizer().normalize(_payload())
    dataset = result.dataset

    assert [node.id for node in dataset.nodes] == ["a", "b", "3"]
    assert dataset.nodes[0].type == "project"
    assert dataset.nodes[0].color == TYPE_COLORS["project"]
    assert dataset.nodes[1].color == STATUS_COLORS["done"]
    assert dataset.nodes[2].size == 10.0
    assert dataset.nodes[2].type == "unknown"
    assert dataset.metadata == {"total_nodes": 3}
    assert result.variant == "knowledge"


def test_dangling_edges_are_dropped_with_warning() -> None:
    result = GraphNormalizer().normalize(_payload())
    node_ids = result.dataset.node_ids()

    assert [edge.id for edge in result.dataset.edges] == ["e1", "e3"]
    for edge in result.dataset.edges:
        assert edge.source in node_ids and edge.target in node_ids
    dangling = result.warnings_of("dangling_edge")
    assert [warning.item_id for warning in dangling] == ["e2"]
    assert result.dropped_edge_count == 1


def test_input_payload_is_not_mutated() -> None:
    payload = _payload()
    original = copy.deepcopy(payload)
    result = GraphNormalizer().normalize(payload)
    assert payload == original
    result.dataset.nodes[1].metadata["status"] = "Changed"
    assert payload["nodes"][1]["metadata"]["status"] == "Done"


def test_malformed_entries_are_discarded_individually() -> None:
    payload = {
        "nodes": [
            "not an object",
            {"label": "no id"},
            {"id": True, "label": "bool id"},
            {"id": "ok", "label": "Ok"},
            {"id": "ok", "label": "Duplicate"},
            {"id": "nolabel"},
        ],
        "edges": [42, {"id": "e", "source": "ok"}],
    }
    result = GraphNormalizer().normalize(payload)

    assert [node.id for node in result.dataset.nodes] == ["ok", "nolabel"]
    assert result.dataset.nodes[0].label == "Ok"
    assert result.dataset.nodes[1].label == "nolabel"
    kinds = [warning.kind for warning in result.warnings]
    assert kinds.count("invalid_node") == 1
    assert kinds.count("missing_node_id") == 2
    assert "duplicate_node_id" in kinds
    assert "missing_label" in kinds
    assert "invalid_edge" in kinds
    assert "missing_endpoint" in kinds
    assert result.dropped_node_count == 4


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        "nodes",
        {"edges": []},
        {"nodes": "abc"},
        {"nodes": [], "edges": {"id": "e"}},
        {"nodes": [], "clusters": "c1"},
    ],
)
def test_malformed_payload_raises(payload) -> None:
    with pytest.raises(MalformedDatasetError):
        GraphNormalizer().normalize(payload)


def test_empty_dataset_is_valid() -> None:
    result = GraphNormalizer().normalize({"nodes": [], "edges": []})
    assert result.dataset.is_empty
    assert result.warnings == ()


def test_edges_key_is_optional() -> None:
    result = GraphNormalizer().normalize({"nodes": [{"id": "a", "label": "A"}]})
    assert result.dataset.edges == ()


def test_self_loops_respect_option() -> None:
    payload = {"nodes": [{"id": "a", "label": "A"}], "edges": [{"id": "loop", "source": "a", "target": "a"}]}
    assert len(GraphNormalizer().normalize(payload).dataset.edges) == 1
    strict = GraphNormalizer(allow_self_loops=False).normalize(payload)
    assert strict.dataset.edges == ()
    assert strict.warnings_of("self_loop")[0].item_id == "loop"


def test_edge_ids_are_synthesized_and_deduplicated() -> None:
    payload = {
        "nodes": [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}],
        "edges": [
            {"source": "a", "target": "b", "edge_type": "blocks"},
            {"id": "dup", "source": "a", "target": "b"},
            {"id": "dup", "source": "b", "target": "a"},
        ],
    }
    edges = GraphNormalizer().normalize(payload).dataset.edges
    assert [edge.id for edge in edges] == ["a->b:blocks", "dup", "dup#2"]
    assert edges[0].type == "blocks"


def test_invalid_numbers_fall_back_to_defaults() -> None:
    payload = {
        "nodes": [
            {"id": "a", "label": "A", "size": -4, "importance_score": 3},
            {"id": "b", "label": "B", "size": "big"},
        ],
        "edges": [{"id": "e", "source": "a", "target": "b", "weight": -2}],
    }
    normalizer = GraphNormalizer(default_node_size=12.0, default_edge_weight=0.5)
    result = normalizer.normalize(payload)
    assert result.dataset.nodes[0].size == 12.0
    assert result.dataset.nodes[0].importance_score == 1.0
    assert result.dataset.nodes[1].size == 12.0
    assert result.dataset.edges[0].weight == 0.5
    assert result.warnings_of("importance_clamped")


def test_clusters_derived_from_node_cluster_ids() -> None:
    payload = {
        "nodes": [
            {"id": "a", "label": "A", "cluster_id": "c1"},
            {"id": "b", "label": "B", "cluster_id": "c2"},
            {"id": "c", "label": "C", "cluster_id": "c1"},
        ]
    }
    clusters = GraphNormalizer(variant="knowledge").normalize(payload).dataset.clusters
    assert [(cluster.id, cluster.node_ids) for cluster in clusters] == [("c1", ("a", "c")), ("c2", ("b",))]


def test_from_config_uses_dataset_settings() -> None:
    normalizer = GraphNormalizer.from_config(DatasetConfig(allow_self_loops=False, default_node_size=7.0))
    result = normalizer.normalize(
        {"nodes": [{"id": "a", "label": "A"}], "edges": [{"source": "a", "target": "a"}]}
    )
    assert result.dataset.nodes[0].size == 7.0
    assert result.dataset.edges == ()


def test_unknown_variant_is_malformed() -> None:
    with pytest.raises(MalformedDatasetError):
        GraphNormalizer(variant="mystery").normalize({"nodes": []})

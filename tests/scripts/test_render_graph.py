"""Tests for the SVG rendering CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from graphview.config import load_config
from scripts.render_graph import main, parse_args


@pytest.fixture()
def dataset_file(tmp_path: Path) -> Path:
    """Write a small generic graph payload to disk."""

    payload = {
        "nodes": [
            {"id": "1", "label": "Auth Service", "node_type": "project", "importance_score": 0.8},
            {"id": "2", "label": "Billing", "node_type": "issue"},
            {"id": "3", "label": "Authorization Flow", "node_type": "issue"},
        ],
        "edges": [
            {"id": "e12", "source": "1", "target": "2"},
            {"id": "e13", "source": "1", "target": "3"},
        ],
    }
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _run(argv: list[str]) -> int:
    load_config.cache_clear()
    try:
        return main(argv)
    finally:
        load_config.cache_clear()


def test_parse_args_defaults() -> None:
    args = parse_args(["graph.json"])
    assert args.source == "graph.json"
    assert args.types == "all"
    assert args.max_ticks == 5000
    assert args.output is None
    assert not args.show_pathways


def test_renders_svg_to_file(dataset_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "graph.svg"

    assert _run([str(dataset_file), "-o", str(output), "--select", "1"]) == 0

    markup = output.read_text(encoding="utf-8")
    assert markup.startswith("<svg")
    assert markup.count('<g class="node"') == 3
    assert 'data-status="ready"' in markup


def test_search_filter_is_applied(dataset_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run([str(dataset_file), "--search", "auth"]) == 0

    markup = capsys.readouterr().out
    assert markup.count('<g class="node"') == 2
    assert "Billing" not in markup


def test_empty_result_still_renders(dataset_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run([str(dataset_file), "--types", "person"]) == 0

    captured = capsys.readouterr()
    assert "No matching nodes" in captured.out
    assert "No matching nodes" in captured.err


def test_missing_or_invalid_dataset_fails(tmp_path: Path) -> None:
    assert _run([str(tmp_path / "absent.json")]) == 1

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert _run([str(broken)]) == 1

    malformed = tmp_path / "malformed.json"
    malformed.write_text(json.dumps({"nodes": "oops"}), encoding="utf-8")
    assert _run([str(malformed)]) == 1


def test_bad_config_exits_with_code_two(dataset_file: Path, tmp_path: Path) -> None:
    assert _run([str(dataset_file), "--config", str(tmp_path / "missing.yaml")]) == 2

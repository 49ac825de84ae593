from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from graphview.config import AppConfig, ConfigError, LayoutConfig, ViewConfig, load_config


def _write_config(tmp_path: Path, mutate=None) -> Path:
    raw = yaml.safe_load(AppConfig.default_path().read_text(encoding="utf-8"))
    if mutate is not None:
        mutate(raw)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")
    return path


def test_config_loads_expected_structure() -> None:
    load_config.cache_clear()
    try:
        config = load_config()
        assert isinstance(config, AppConfig)
        assert config.engine.version == "1.0.0"
        assert config.dataset.variant == "auto"
        assert config.dataset.allow_self_loops is True
        assert config.view.max_nodes == 50
        assert config.view.min_zoom == 0.1
        assert config.view.max_zoom == 10.0
        assert config.view.searchable_metadata_fields == ["key"]
        assert config.view.tooltip_metadata_fields == ["status", "key"]
        assert config.layout.link_base_distance == 50.0
        assert config.layout.pathway_link_strength == 0.8
        assert config.layout.link_strength == 0.3
        assert config.layout.reheat_alpha_target == 0.3
        assert config.layout.collision_iterations == 1
    finally:
        load_config.cache_clear()


def test_config_yaml_matches_model_fields() -> None:
    raw = yaml.safe_load(AppConfig.default_path().read_text(encoding="utf-8"))
    assert set(raw["layout"]) == set(LayoutConfig.model_fields)
    assert set(raw["view"]) == set(ViewConfig.model_fields)


def test_config_is_frozen() -> None:
    config = AppConfig(**yaml.safe_load(AppConfig.default_path().read_text(encoding="utf-8")))
    with pytest.raises(Exception):
        config.view.max_nodes = 10  # type: ignore[misc]


def test_zoom_range_must_be_ordered() -> None:
    with pytest.raises(ValueError):
        ViewConfig(min_zoom=5.0, max_zoom=2.0)


def test_alpha_target_must_stay_below_reheat_target() -> None:
    with pytest.raises(ValueError):
        LayoutConfig(alpha_target=0.5, reheat_alpha_target=0.3)


def test_blank_source_url_becomes_none(tmp_path: Path) -> None:
    def mutate(raw):
        raw["dataset"]["source_url"] = "   "

    load_config.cache_clear()
    try:
        config = load_config(_write_config(tmp_path, mutate))
        assert config.dataset.source_url is None
    finally:
        load_config.cache_clear()


def test_environment_overrides_apply(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("GRAPHVIEW_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("GRAPHVIEW_DATASET_URL", " http://graph.example.com ")
    monkeypatch.setenv("GRAPHVIEW_MAX_NODES", "120")
    load_config.cache_clear()
    try:
        config = load_config(_write_config(tmp_path))
        assert config.dataset.source_url == "http://graph.example.com"
        assert config.view.max_nodes == 120
    finally:
        load_config.cache_clear()


def test_env_file_values_do_not_clobber_environment(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nexport GRAPHVIEW_DATASET_URL='http://from-file.example.com'\nGRAPHVIEW_MAX_NODES=75 # inline\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GRAPHVIEW_ENV_FILE", str(env_file))
    monkeypatch.delenv("GRAPHVIEW_DATASET_URL", raising=False)
    monkeypatch.setenv("GRAPHVIEW_MAX_NODES", "30")
    load_config.cache_clear()
    try:
        config = load_config(_write_config(tmp_path))
        assert config.dataset.source_url == "http://from-file.example.com"
        assert config.view.max_nodes == 30
    finally:
        load_config.cache_clear()
        monkeypatch.delenv("GRAPHVIEW_DATASET_URL", raising=False)


def test_invalid_max_nodes_override_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("GRAPHVIEW_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("GRAPHVIEW_MAX_NODES", "lots")
    load_config.cache_clear()
    try:
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path))
    finally:
        load_config.cache_clear()


def test_missing_and_invalid_files_raise(tmp_path: Path) -> None:
    load_config.cache_clear()
    try:
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.yaml")
        broken = tmp_path / "broken.yaml"
        broken.write_text("view: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(broken)
        listing = tmp_path / "list.yaml"
        listing.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(listing)
    finally:
        load_config.cache_clear()


def test_validation_failure_raises_config_error(tmp_path: Path, monkeypatch) -> None:
    def mutate(raw):
        raw["view"]["max_nodes"] = 0

    monkeypatch.setenv("GRAPHVIEW_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.delenv("GRAPHVIEW_MAX_NODES", raising=False)
    load_config.cache_clear()
    try:
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path, mutate))
    finally:
        load_config.cache_clear()

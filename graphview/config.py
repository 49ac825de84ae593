"""Configuration loader for the GraphView engine."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from typing_extensions import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

ENV_FILE_ENV = "GRAPHVIEW_ENV_FILE"
DATASET_URL_ENV = "GRAPHVIEW_DATASET_URL"
MAX_NODES_ENV = "GRAPHVIEW_MAX_NODES"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class EngineConfig(_FrozenModel):
    """Engine-level configuration."""

    version: str = Field(..., min_length=1)


class DatasetConfig(_FrozenModel):
    """Settings for the inbound dataset contract and its HTTP collaborator."""

    source_url: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(10.0, gt=0)
    variant: Literal["auto", "knowledge", "smart", "people"] = Field("auto")
    allow_self_loops: bool = True
    default_node_size: float = Field(10.0, gt=0)
    default_edge_weight: float = Field(1.0, ge=0)

    @field_validator("source_url")
    @classmethod
    def _strip_source_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class ViewConfig(_FrozenModel):
    """Defaults for the displayed view and the render surface."""

    max_nodes: int = Field(50, ge=1, le=5000)
    width: float = Field(800.0, gt=0)
    height: float = Field(600.0, gt=0)
    min_zoom: float = Field(0.1, gt=0)
    max_zoom: float = Field(10.0, gt=0)
    searchable_metadata_fields: List[str] = Field(default_factory=lambda: ["key"])
    tooltip_metadata_fields: List[str] = Field(default_factory=lambda: ["status", "key"])
    dimmed_node_opacity: float = Field(0.3, ge=0.0, le=1.0)
    dimmed_edge_opacity: float = Field(0.1, ge=0.0, le=1.0)
    edge_opacity: float = Field(0.6, ge=0.0, le=1.0)
    show_pathways: bool = False
    fit_padding_ratio: float = Field(0.8, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def _validate_zoom_range(self) -> "ViewConfig":
        if self.min_zoom >= self.max_zoom:
            msg = "view.min_zoom must be lower than view.max_zoom"
            raise ValueError(msg)
        return self


class LayoutConfig(_FrozenModel):
    """Physical parameters of the force simulation.

    The defaults were tuned for visual legibility rather than derived; only the
    qualitative behaviour (connected nodes close, no overlap) is guaranteed.
    """

    link_base_distance: float = Field(50.0, ge=0.0)
    link_distance_scale: float = Field(20.0, ge=0.0)
    pathway_distance_multiplier: float = Field(0.5, ge=0.0)
    link_strength: float = Field(0.3, ge=0.0, le=2.0)
    pathway_link_strength: float = Field(0.8, ge=0.0, le=2.0)
    charge_strength: float = Field(-200.0, le=0.0)
    importance_charge: float = Field(-300.0, le=0.0)
    charge_theta: float = Field(0.9, gt=0.0, le=2.0)
    barnes_hut_threshold: int = Field(200, ge=0)
    distance_min: float = Field(1.0, gt=0.0)
    center_strength: float = Field(1.0, ge=0.0, le=1.0)
    gravity_strength: float = Field(0.02, ge=0.0, le=1.0)
    collision_margin: float = Field(2.0, ge=0.0)
    importance_radius_scale: float = Field(0.5, ge=0.0)
    collision_strength: float = Field(1.0, ge=0.0, le=1.0)
    collision_iterations: int = Field(1, ge=1, le=10)
    alpha_min: float = Field(0.001, gt=0.0, lt=1.0)
    alpha_decay: float = Field(0.0228, gt=0.0, lt=1.0)
    alpha_target: float = Field(0.0, ge=0.0, le=1.0)
    reheat_alpha_target: float = Field(0.3, gt=0.0, le=1.0)
    velocity_decay: float = Field(0.4, ge=0.0, le=1.0)
    initial_radius: float = Field(10.0, gt=0.0)
    seed: int = 42
    reuse_positions: bool = False
    frame_interval_seconds: float = Field(1.0 / 60.0, ge=0.0)
    ticks_per_frame: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _validate_alpha(self) -> "LayoutConfig":
        if self.alpha_target >= self.reheat_alpha_target:
            msg = "layout.alpha_target must be lower than layout.reheat_alpha_target"
            raise ValueError(msg)
        return self


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    engine: EngineConfig
    dataset: DatasetConfig
    view: ViewConfig
    layout: LayoutConfig

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return REPO_ROOT / "config.yaml"


def _env_file_path() -> Optional[Path]:
    """Return the ``.env`` file to read, honouring ``GRAPHVIEW_ENV_FILE``."""

    override = os.getenv(ENV_FILE_ENV)
    if not override:
        return DEFAULT_ENV_FILE if DEFAULT_ENV_FILE.exists() else None
    candidate = Path(override).expanduser()
    if not candidate.exists():
        LOGGER.warning("%s points to a missing file: %s", ENV_FILE_ENV, candidate)
        return None
    return candidate


def _parse_env_line(raw_line: str) -> Optional[Tuple[str, str]]:
    """Split one ``KEY=value`` line; blank lines and comments yield ``None``.

    Quoted values are taken verbatim; unquoted values lose any trailing
    ``# comment``.
    """

    line = raw_line.strip()
    if line.lower().startswith("export "):
        line = line[len("export "):].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    key = key.strip()
    value = value.strip()
    if not key:
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return key, value[1:-1]
    return key, value.split("#", 1)[0].rstrip()


def _load_env_file(path: Path) -> None:
    """Copy ``.env`` entries into ``os.environ`` without replacing set variables."""

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        LOGGER.warning("Skipping unreadable environment file %s", path)
        return
    for raw_line in lines:
        entry = _parse_env_line(raw_line)
        if entry is None:
            continue
        key, value = entry
        if os.environ.get(key, "").strip():
            continue
        os.environ[key] = value


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Merge environment-based overrides into the raw configuration mapping.

    Args:
        raw_content: Parsed YAML configuration prior to Pydantic validation.

    Returns:
        Dict[str, Any]: Configuration mapping with environment overrides applied.

    Raises:
        ConfigError: If an override cannot be interpreted.
    """

    env_file_path = _env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)

    dataset_url = os.getenv(DATASET_URL_ENV)
    if dataset_url and dataset_url.strip():
        dataset_section = raw_content.setdefault("dataset", {})
        dataset_section["source_url"] = dataset_url.strip()
        LOGGER.info("Dataset source URL overridden from environment")

    max_nodes = os.getenv(MAX_NODES_ENV)
    if max_nodes and max_nodes.strip():
        try:
            parsed = int(max_nodes.strip())
        except ValueError as exc:
            LOGGER.error("Invalid %s value: %s", MAX_NODES_ENV, max_nodes)
            raise ConfigError(f"{MAX_NODES_ENV} must be an integer") from exc
        view_section = raw_content.setdefault("view", {})
        view_section["max_nodes"] = parsed
        LOGGER.info("View node cap overridden from environment (max_nodes=%d)", parsed)
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc

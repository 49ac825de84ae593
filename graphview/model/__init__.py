"""Canonical graph model construction from fetched payloads."""

from .normalizer import GraphNormalizer, MalformedDatasetError, NormalizationWarning, NormalizedGraph
from .palette import DEFAULT_COLOR, influence_color, resolve_node_color
from .variants import KNOWN_VARIANTS, detect_variant, get_variant

__all__ = [
    "DEFAULT_COLOR",
    "GraphNormalizer",
    "KNOWN_VARIANTS",
    "MalformedDatasetError",
    "NormalizationWarning",
    "NormalizedGraph",
    "detect_variant",
    "get_variant",
    "influence_color",
    "resolve_node_color",
]

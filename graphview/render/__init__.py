"""Scene construction and headless SVG output."""

from .overlay import ClusterRegion, PathwayTrail, build_cluster_regions, build_pathway_trails
from .scene import EdgeGlyph, NodeGlyph, Scene, build_scene, label_font_size, truncate_label
from .svg import render_svg

__all__ = [
    "ClusterRegion",
    "EdgeGlyph",
    "NodeGlyph",
    "PathwayTrail",
    "Scene",
    "build_cluster_regions",
    "build_pathway_trails",
    "build_scene",
    "label_font_size",
    "render_svg",
    "truncate_label",
]

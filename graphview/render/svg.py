"""Headless SVG serialization of a scene."""
from __future__ import annotations

import html
from typing import Final, List

from graphview.interaction.session import HoverInfo
from graphview.render.overlay import ClusterRegion, PathwayTrail
from graphview.render.scene import EdgeGlyph, NodeGlyph, Scene

BACKGROUND: Final[str] = "#111827"
LABEL_COLOR: Final[str] = "#E5E7EB"
MESSAGE_COLOR: Final[str] = "#9CA3AF"
ERROR_COLOR: Final[str] = "#EF4444"


def _attr(value: object) -> str:
    return html.escape(str(value), quote=True)


def _number(value: float) -> str:
    return f"{value:.2f}"


def _edge_markup(edge: EdgeGlyph) -> List[str]:
    dash = ' stroke-dasharray="3,3"' if edge.dashed else ""
    lines = [
        f'<line class="edge" data-id="{_attr(edge.edge_id)}" x1="{_number(edge.x1)}" y1="{_number(edge.y1)}" '
        f'x2="{_number(edge.x2)}" y2="{_number(edge.y2)}" stroke="{_attr(edge.color)}" '
        f'stroke-width="{_number(edge.width)}" stroke-opacity="{_number(edge.opacity)}"{dash} />'
    ]
    if edge.label:
        mx, my = edge.midpoint
        lines.append(
            f'<text class="edge-label" x="{_number(mx)}" y="{_number(my)}" text-anchor="middle" '
            f'font-size="8" fill="{LABEL_COLOR}" opacity="{_number(edge.opacity)}">{html.escape(edge.label)}</text>'
        )
    return lines


def _node_markup(node: NodeGlyph) -> List[str]:
    stroke = "#000" if node.selected else "#fff"
    stroke_width = 4 if node.selected else 2
    lines = [f'<g class="node" data-id="{_attr(node.node_id)}" opacity="{_number(node.opacity)}">']
    if node.ring_radius is not None:
        lines.append(
            f'<circle class="importance-ring" cx="{_number(node.x)}" cy="{_number(node.y)}" '
            f'r="{_number(node.ring_radius)}" fill="none" stroke="#FFD700" stroke-width="2" '
            'stroke-dasharray="2,2" />'
        )
    lines.append(
        f'<circle cx="{_number(node.x)}" cy="{_number(node.y)}" r="{_number(node.radius)}" '
        f'fill="{_attr(node.color)}" stroke="{stroke}" stroke-width="{stroke_width}">'
        f"<title>{html.escape(node.full_label)}</title></circle>"
    )
    lines.append(
        f'<text x="{_number(node.x)}" y="{_number(node.y)}" dy="0.35em" text-anchor="middle" '
        f'font-size="{_number(node.font_size)}" fill="{LABEL_COLOR}">{html.escape(node.label)}</text>'
    )
    lines.append("</g>")
    return lines


def _region_markup(region: ClusterRegion) -> List[str]:
    lx, ly = region.label_position
    return [
        f'<circle class="cluster" data-id="{_attr(region.cluster_id)}" cx="{_number(region.cx)}" '
        f'cy="{_number(region.cy)}" r="{_number(region.radius)}" fill="{_attr(region.color)}" '
        f'fill-opacity="{_number(region.fill_opacity)}" stroke="{_attr(region.color)}" '
        'stroke-width="2" stroke-dasharray="5,5" />',
        f'<text class="cluster-label" x="{_number(lx)}" y="{_number(ly)}" text-anchor="middle" '
        f'font-size="14" font-weight="bold" fill="{LABEL_COLOR}">{html.escape(region.name)}</text>',
    ]


def _trail_markup(trail: PathwayTrail) -> str:
    points = " ".join(f"{_number(x)},{_number(y)}" for x, y in trail.points)
    return (
        f'<polyline class="pathway" data-id="{_attr(trail.pathway_id)}" points="{points}" fill="none" '
        f'stroke="{_attr(trail.color)}" stroke-width="3" stroke-opacity="0.4" />'
    )


def render_svg(scene: Scene) -> str:
    """Serialize ``scene`` as a standalone SVG document.

    Scenes without nodes render their status message centered in the
    viewport, so an empty result never looks like a blank canvas.
    """

    width = _number(scene.width)
    height = _number(scene.height)
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}" data-status="{_attr(scene.status.value)}">',
        f'<rect width="100%" height="100%" fill="{BACKGROUND}" />',
    ]
    if scene.has_graph:
        lines.append(f'<g class="graph" transform="{scene.transform.as_svg()}">')
        for region in scene.regions:
            lines.extend(_region_markup(region))
        for trail in scene.trails:
            lines.append(_trail_markup(trail))
        for edge in scene.edges:
            lines.extend(_edge_markup(edge))
        for node in scene.nodes:
            lines.extend(_node_markup(node))
        lines.append("</g>")
    if scene.message:
        color = ERROR_COLOR if scene.status.value == "error" else MESSAGE_COLOR
        y = 24.0 if scene.has_graph else scene.height / 2.0
        lines.append(
            f'<text class="status-message" x="{_number(scene.width / 2.0)}" y="{_number(y)}" '
            f'text-anchor="middle" font-size="16" fill="{color}">{html.escape(scene.message)}</text>'
        )
    if scene.tooltip is not None:
        lines.extend(_tooltip_markup(scene.tooltip, scene.height))
    lines.append("</svg>")
    return "\n".join(lines)


def _tooltip_markup(tooltip: HoverInfo, height: float) -> List[str]:
    rows = [tooltip.label, f"Type: {tooltip.type}"]
    rows.extend(f"{name.capitalize()}: {value}" for name, value in tooltip.fields)
    lines = [f'<g class="tooltip" data-id="{_attr(tooltip.node_id)}">']
    for index, row in enumerate(rows):
        lines.append(
            f'<text x="12" y="{_number(height - 12 - (len(rows) - 1 - index) * 16)}" '
            f'font-size="12" fill="{LABEL_COLOR}">{html.escape(row)}</text>'
        )
    lines.append("</g>")
    return lines

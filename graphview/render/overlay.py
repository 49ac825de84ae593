"""Cluster and pathway overlays drawn behind the graph.

Overlays are derived from the current node positions only; they never feed
back into the force simulation.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Tuple

from graphview.contracts import Cluster, Pathway
from graphview.model.palette import PATHWAY_COLOR, cluster_color

REGION_PADDING = 20.0
REGION_FILL_OPACITY = 0.1
LABEL_OFFSET = 10.0


@dataclass(frozen=True)
class ClusterRegion:
    cluster_id: str
    name: str
    cx: float
    cy: float
    radius: float
    color: str
    fill_opacity: float = REGION_FILL_OPACITY

    @property
    def label_position(self) -> Tuple[float, float]:
        return self.cx, self.cy - self.radius - LABEL_OFFSET


@dataclass(frozen=True)
class PathwayTrail:
    pathway_id: str
    name: str
    points: Tuple[Tuple[float, float], ...]
    color: str = PATHWAY_COLOR


def build_cluster_regions(
    clusters: Iterable[Cluster],
    positions: Mapping[str, Tuple[float, float]],
    radii: Mapping[str, float],
    padding: float = REGION_PADDING,
) -> List[ClusterRegion]:
    """Return one circle per cluster enclosing its displayed members.

    Clusters without displayed members are skipped. Colors follow the
    cluster's position in the dataset so they stay stable across filters.
    """

    regions: List[ClusterRegion] = []
    for index, cluster in enumerate(clusters):
        members = [member for member in cluster.node_ids if member in positions]
        if not members:
            continue
        cx = sum(positions[member][0] for member in members) / len(members)
        cy = sum(positions[member][1] for member in members) / len(members)
        extent = max(
            math.hypot(positions[member][0] - cx, positions[member][1] - cy) + radii.get(member, 0.0)
            for member in members
        )
        regions.append(
            ClusterRegion(
                cluster_id=cluster.id,
                name=cluster.name,
                cx=cx,
                cy=cy,
                radius=extent + padding,
                color=cluster_color(index),
            )
        )
    return regions


def build_pathway_trails(
    pathways: Iterable[Pathway],
    positions: Mapping[str, Tuple[float, float]],
) -> List[PathwayTrail]:
    """Return the ordered walk of each pathway through its displayed members."""

    trails: List[PathwayTrail] = []
    for pathway in pathways:
        points = tuple(positions[member] for member in pathway.node_ids if member in positions)
        if len(points) < 2:
            continue
        trails.append(PathwayTrail(pathway_id=pathway.id, name=pathway.name, points=points))
    return trails

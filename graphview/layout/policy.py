"""Mapping from node/edge semantics to physical force parameters."""
from __future__ import annotations

from dataclasses import dataclass

from graphview.config import LayoutConfig
from graphview.contracts import Edge, Node

PATHWAY_EDGE_TYPE = "pathway"


@dataclass(frozen=True)
class ForcePolicy:
    """Default policy: heavier edges are longer, pathway edges shorter and stiffer,
    important nodes repel harder and claim more room."""

    link_base_distance: float = 50.0
    link_distance_scale: float = 20.0
    pathway_distance_multiplier: float = 0.5
    link_strength: float = 0.3
    pathway_link_strength: float = 0.8
    charge_strength: float = -200.0
    importance_charge: float = -300.0
    collision_margin: float = 2.0
    importance_radius_scale: float = 0.5

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "ForcePolicy":
        return cls(
            link_base_distance=config.link_base_distance,
            link_distance_scale=config.link_distance_scale,
            pathway_distance_multiplier=config.pathway_distance_multiplier,
            link_strength=config.link_strength,
            pathway_link_strength=config.pathway_link_strength,
            charge_strength=config.charge_strength,
            importance_charge=config.importance_charge,
            collision_margin=config.collision_margin,
            importance_radius_scale=config.importance_radius_scale,
        )

    @staticmethod
    def is_pathway(edge: Edge) -> bool:
        return edge.type.strip().lower() == PATHWAY_EDGE_TYPE

    def link_distance(self, edge: Edge) -> float:
        distance = self.link_base_distance + edge.weight * self.link_distance_scale
        if self.is_pathway(edge):
            distance *= self.pathway_distance_multiplier
        return distance

    def link_strength_for(self, edge: Edge) -> float:
        if self.is_pathway(edge):
            return self.pathway_link_strength
        return self.link_strength

    def charge(self, node: Node) -> float:
        return self.charge_strength + node.importance * self.importance_charge

    def collision_radius(self, node: Node) -> float:
        return node.size * (1.0 + node.importance * self.importance_radius_scale) + self.collision_margin

"""Barnes-Hut quad-tree used to approximate many-body repulsion."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

_MAX_DEPTH = 32


@dataclass
class QuadNode:
    """One square cell of the tree.

    Leaves hold the indices of the points inside them (several only when the
    points coincide or the depth limit is reached). Internal cells hold up to
    four children and the aggregated charge of their subtree.
    """

    x0: float
    y0: float
    size: float
    indices: Optional[np.ndarray] = None
    children: List["QuadNode"] = field(default_factory=list)
    strength: float = 0.0
    cx: float = 0.0
    cy: float = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.indices is not None


class QuadTree:
    """Quad-tree over a fixed set of weighted points.

    Charge centroids are weighted by the absolute node strength so mixed-sign
    charges still produce a meaningful center.
    """

    def __init__(self, positions: np.ndarray, strengths: np.ndarray) -> None:
        if positions.shape[0] != strengths.shape[0]:
            raise ValueError("positions and strengths must have the same length")
        self._positions = positions
        self._strengths = strengths
        self.root: Optional[QuadNode] = None
        if positions.shape[0]:
            self.root = self._build_root()

    def _build_root(self) -> QuadNode:
        lower = self._positions.min(axis=0)
        upper = self._positions.max(axis=0)
        size = float(max(upper[0] - lower[0], upper[1] - lower[1], 1.0))
        # Expand slightly so points on the upper edge fall inside.
        size = size * (1.0 + 1e-9) + 1e-9
        indices = np.arange(self._positions.shape[0])
        return self._build(indices, float(lower[0]), float(lower[1]), size, 0)

    def _build(self, indices: np.ndarray, x0: float, y0: float, size: float, depth: int) -> QuadNode:
        node = QuadNode(x0=x0, y0=y0, size=size)
        points = self._positions[indices]
        if indices.size == 1 or depth >= _MAX_DEPTH or np.all(points == points[0]):
            node.indices = indices
            weights = np.abs(self._strengths[indices])
            node.strength = float(self._strengths[indices].sum())
            node.cx, node.cy = float(points[0, 0]), float(points[0, 1])
            if weights.sum() > 0:
                node.cx = float(np.average(points[:, 0], weights=weights))
                node.cy = float(np.average(points[:, 1], weights=weights))
            return node

        half = size / 2.0
        xm, ym = x0 + half, y0 + half
        right = points[:, 0] >= xm
        bottom = points[:, 1] >= ym
        for mask, qx, qy in (
            (~right & ~bottom, x0, y0),
            (right & ~bottom, xm, y0),
            (~right & bottom, x0, ym),
            (right & bottom, xm, ym),
        ):
            if mask.any():
                node.children.append(self._build(indices[mask], qx, qy, half, depth + 1))

        total_weight = 0.0
        cx = cy = 0.0
        for child in node.children:
            weight = abs(child.strength)
            node.strength += child.strength
            total_weight += weight
            cx += weight * child.cx
            cy += weight * child.cy
        if total_weight > 0:
            node.cx, node.cy = cx / total_weight, cy / total_weight
        else:
            node.cx = float(np.mean([child.cx for child in node.children]))
            node.cy = float(np.mean([child.cy for child in node.children]))
        return node

    def accumulate(
        self,
        index: int,
        *,
        alpha: float,
        theta: float,
        distance_min: float,
        rng: np.random.Generator,
    ) -> tuple[float, float]:
        """Return the velocity change of point ``index`` from every other point.

        Cells whose width over distance falls below ``theta`` are treated as a
        single charge at their centroid; closer cells are opened.
        """

        if self.root is None:
            return 0.0, 0.0
        theta2 = theta * theta
        distance_min2 = distance_min * distance_min
        xi, yi = self._positions[index]
        dvx = dvy = 0.0
        stack = [self.root]
        while stack:
            cell = stack.pop()
            if cell.is_leaf and cell.strength == 0.0:
                continue
            dx = cell.cx - xi
            dy = cell.cy - yi
            distance2 = dx * dx + dy * dy
            if not cell.is_leaf and cell.size * cell.size / theta2 < distance2:
                if distance2 < distance_min2:
                    distance2 = float(np.sqrt(distance_min2 * distance2))
                scale = cell.strength * alpha / distance2
                dvx += dx * scale
                dvy += dy * scale
                continue
            if not cell.is_leaf:
                stack.extend(cell.children)
                continue
            for other in cell.indices:  # type: ignore[union-attr]
                if other == index:
                    continue
                ox = self._positions[other, 0] - xi
                oy = self._positions[other, 1] - yi
                if ox == 0.0:
                    ox = _jiggle(rng)
                if oy == 0.0:
                    oy = _jiggle(rng)
                other_distance2 = ox * ox + oy * oy
                if other_distance2 < distance_min2:
                    other_distance2 = float(np.sqrt(distance_min2 * other_distance2))
                scale = self._strengths[other] * alpha / other_distance2
                dvx += ox * scale
                dvy += oy * scale
        return dvx, dvy


def _jiggle(rng: np.random.Generator) -> float:
    return float((rng.random() - 0.5) * 1e-6)

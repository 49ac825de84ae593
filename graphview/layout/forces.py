"""Force contributions combined into each simulation tick.

Every force works on the packed ``(n, 2)`` position and velocity arrays of a
simulation state and adds its contribution to the velocities in place. The
caller owns the arrays; forces keep only their precomputed parameters.
"""
from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from typing_extensions import Protocol

from graphview.layout.quadtree import QuadTree

LOGGER = logging.getLogger(__name__)


class Force(Protocol):
    """Protocol implemented by every force."""

    name: str

    def apply(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        alpha: float,
        rng: np.random.Generator,
    ) -> None:
        """Add this force's contribution to ``velocities`` in place."""


def _jiggle(rng: np.random.Generator, shape: tuple[int, ...]) -> np.ndarray:
    return (rng.random(shape) - 0.5) * 1e-6


class LinkForce:
    """Spring pulling each edge's endpoints toward a target separation.

    The displacement is split between the endpoints in proportion to the
    other endpoint's degree, so hubs move less than leaves.
    """

    name = "link"

    def __init__(
        self,
        sources: Sequence[int],
        targets: Sequence[int],
        distances: Sequence[float],
        strengths: Sequence[float],
        node_count: int,
    ) -> None:
        self.sources = np.asarray(sources, dtype=np.intp)
        self.targets = np.asarray(targets, dtype=np.intp)
        self.distances = np.asarray(distances, dtype=float)
        self.strengths = np.asarray(strengths, dtype=float)
        counts = np.bincount(self.sources, minlength=node_count) + np.bincount(
            self.targets, minlength=node_count
        )
        if self.sources.size:
            source_counts = counts[self.sources].astype(float)
            self.bias = source_counts / (source_counts + counts[self.targets])
        else:
            self.bias = np.zeros(0)

    def apply(self, positions, velocities, alpha, rng) -> None:
        if not self.sources.size:
            return
        predicted = positions + velocities
        delta = predicted[self.targets] - predicted[self.sources]
        zero = delta == 0.0
        if zero.any():
            delta = np.where(zero, _jiggle(rng, delta.shape), delta)
        length = np.hypot(delta[:, 0], delta[:, 1])
        factor = (length - self.distances) / length * alpha * self.strengths
        delta = delta * factor[:, None]
        np.subtract.at(velocities, self.targets, delta * self.bias[:, None])
        np.add.at(velocities, self.sources, delta * (1.0 - self.bias)[:, None])


class ManyBodyForce:
    """Pairwise repulsion with per-node strengths.

    Small graphs are summed exactly with vectorized arithmetic; above
    ``barnes_hut_threshold`` nodes the quad-tree approximation is used.
    """

    name = "charge"

    def __init__(
        self,
        strengths: Sequence[float],
        *,
        theta: float = 0.9,
        distance_min: float = 1.0,
        barnes_hut_threshold: int = 200,
    ) -> None:
        self.strengths = np.asarray(strengths, dtype=float)
        self.theta = theta
        self.distance_min = distance_min
        self.barnes_hut_threshold = barnes_hut_threshold

    def uses_approximation(self, node_count: int) -> bool:
        return node_count > self.barnes_hut_threshold

    def apply(self, positions, velocities, alpha, rng) -> None:
        count = positions.shape[0]
        if count < 2:
            return
        if self.uses_approximation(count):
            velocities += self._approximate(positions, alpha, rng)
        else:
            velocities += self._exact(positions, alpha, rng)

    def _exact(self, positions: np.ndarray, alpha: float, rng: np.random.Generator) -> np.ndarray:
        count = positions.shape[0]
        dx = positions[None, :, 0] - positions[:, None, 0]
        dy = positions[None, :, 1] - positions[:, None, 1]
        off_diagonal = ~np.eye(count, dtype=bool)
        dx = np.where((dx == 0.0) & off_diagonal, _jiggle(rng, dx.shape), dx)
        dy = np.where((dy == 0.0) & off_diagonal, _jiggle(rng, dy.shape), dy)
        distance2 = dx * dx + dy * dy
        distance_min2 = self.distance_min * self.distance_min
        distance2 = np.where(distance2 < distance_min2, np.sqrt(distance_min2 * distance2), distance2)
        distance2[~off_diagonal] = 1.0
        scale = self.strengths[None, :] * alpha / distance2
        scale[~off_diagonal] = 0.0
        return np.stack([(dx * scale).sum(axis=1), (dy * scale).sum(axis=1)], axis=1)

    def _approximate(self, positions: np.ndarray, alpha: float, rng: np.random.Generator) -> np.ndarray:
        tree = QuadTree(positions, self.strengths)
        result = np.zeros_like(positions)
        for index in range(positions.shape[0]):
            result[index] = tree.accumulate(
                index,
                alpha=alpha,
                theta=self.theta,
                distance_min=self.distance_min,
                rng=rng,
            )
        return result


class CenterForce:
    """Translate the whole layout so its mean position sits on the center."""

    name = "center"

    def __init__(self, x: float, y: float, strength: float = 1.0) -> None:
        self.x = x
        self.y = y
        self.strength = strength

    def apply(self, positions, velocities, alpha, rng) -> None:
        if not positions.shape[0] or self.strength == 0.0:
            return
        mean = positions.mean(axis=0)
        shift = (mean - np.array([self.x, self.y])) * self.strength
        positions -= shift


class GravityForce:
    """Weak per-node pull toward the viewport center."""

    name = "gravity"

    def __init__(self, x: float, y: float, strength: float = 0.02) -> None:
        self.x = x
        self.y = y
        self.strength = strength

    def apply(self, positions, velocities, alpha, rng) -> None:
        if not positions.shape[0] or self.strength == 0.0:
            return
        center = np.array([self.x, self.y])
        velocities += (center - positions) * self.strength * alpha


class CollisionForce:
    """Minimum-separation constraint between node discs.

    Overlap is measured on the positions predicted for the end of the tick and
    resolved pair by pair, the smaller disc moving further. The correction
    does not depend on ``alpha`` so overlap keeps being resolved while the
    layout cools.
    """

    name = "collide"

    def __init__(self, radii: Sequence[float], *, strength: float = 1.0, iterations: int = 1) -> None:
        self.radii = np.asarray(radii, dtype=float)
        self.strength = strength
        self.iterations = iterations

    def apply(self, positions, velocities, alpha, rng) -> None:
        if positions.shape[0] < 2 or self.strength == 0.0:
            return
        for _ in range(self.iterations):
            self._resolve(positions, velocities, rng)

    def _candidate_pairs(self, predicted: np.ndarray) -> list[tuple[int, int]]:
        order = np.argsort(predicted[:, 0], kind="stable")
        xs = predicted[order, 0]
        reach = self.radii.max() * 2.0
        pairs: list[tuple[int, int]] = []
        for position, i in enumerate(order):
            limit = np.searchsorted(xs, xs[position] + reach, side="right")
            for j in order[position + 1 : limit]:
                pairs.append((int(min(i, j)), int(max(i, j))))
        return pairs

    def _resolve(self, positions: np.ndarray, velocities: np.ndarray, rng: np.random.Generator) -> None:
        predicted = positions + velocities
        for i, j in self._candidate_pairs(predicted):
            ri = self.radii[i]
            rj = self.radii[j]
            reach = ri + rj
            x = (positions[i, 0] + velocities[i, 0]) - (positions[j, 0] + velocities[j, 0])
            y = (positions[i, 1] + velocities[i, 1]) - (positions[j, 1] + velocities[j, 1])
            distance2 = x * x + y * y
            if distance2 >= reach * reach:
                continue
            if x == 0.0:
                x = float(_jiggle(rng, (1,))[0])
                distance2 += x * x
            if y == 0.0:
                y = float(_jiggle(rng, (1,))[0])
                distance2 += y * y
            distance = float(np.sqrt(distance2))
            factor = (reach - distance) / distance * self.strength
            x *= factor
            y *= factor
            rj2 = rj * rj
            share = rj2 / (ri * ri + rj2)
            velocities[i, 0] += x * share
            velocities[i, 1] += y * share
            velocities[j, 0] -= x * (1.0 - share)
            velocities[j, 1] -= y * (1.0 - share)

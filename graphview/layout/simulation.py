"""Force-directed layout simulation over the displayed node set."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from graphview.config import LayoutConfig
from graphview.contracts import Point
from graphview.filtering.view_filter import DisplayedGraph
from graphview.layout.forces import (
    CenterForce,
    CollisionForce,
    Force,
    GravityForce,
    LinkForce,
    ManyBodyForce,
)
from graphview.layout.policy import ForcePolicy

LOGGER = logging.getLogger(__name__)

_INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass(frozen=True)
class SimulationState:
    """Snapshot of every displayed node's position and velocity.

    A state is owned by exactly one view and replaced wholesale on each tick;
    arrays are never shared between two states. ``pinned`` holds the fixed
    coordinate of dragged nodes and ``NaN`` for free ones.
    """

    node_ids: Tuple[str, ...]
    positions: np.ndarray
    velocities: np.ndarray
    pinned: np.ndarray
    alpha: float
    alpha_target: float
    tick_count: int = 0

    @property
    def node_count(self) -> int:
        return len(self.node_ids)

    def index_of(self, node_id: str) -> int:
        try:
            return self.node_ids.index(node_id)
        except ValueError as exc:
            raise KeyError(node_id) from exc

    def position_of(self, node_id: str) -> Point:
        index = self.index_of(node_id)
        return Point(x=float(self.positions[index, 0]), y=float(self.positions[index, 1]))

    def is_pinned(self, node_id: str) -> bool:
        return not bool(np.isnan(self.pinned[self.index_of(node_id)]).any())

    def positions_by_id(self) -> Dict[str, Point]:
        return {
            node_id: Point(x=float(self.positions[index, 0]), y=float(self.positions[index, 1]))
            for index, node_id in enumerate(self.node_ids)
        }

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """Return ``(min_x, min_y, max_x, max_y)`` of node centers or ``None`` when empty."""

        if not self.node_ids:
            return None
        lower = self.positions.min(axis=0)
        upper = self.positions.max(axis=0)
        return float(lower[0]), float(lower[1]), float(upper[0]), float(upper[1])

    def copy(self) -> "SimulationState":
        return replace(
            self,
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            pinned=self.pinned.copy(),
        )


class ForceSimulation:
    """Forces and integration parameters for one displayed set.

    The simulation object is immutable after construction; ``step`` is a pure
    function of the state it receives. A change of the displayed set means a
    new simulation and a new initial state.
    """

    def __init__(
        self,
        displayed: DisplayedGraph,
        config: LayoutConfig,
        *,
        width: float,
        height: float,
        policy: Optional[ForcePolicy] = None,
    ) -> None:
        self._config = config
        self._policy = policy or ForcePolicy.from_config(config)
        self._node_ids: Tuple[str, ...] = tuple(node.id for node in displayed.nodes)
        self._center = (width / 2.0, height / 2.0)
        index = {node_id: position for position, node_id in enumerate(self._node_ids)}

        sources: List[int] = []
        targets: List[int] = []
        distances: List[float] = []
        strengths: List[float] = []
        for edge in displayed.edges:
            if edge.is_self_loop:
                continue
            sources.append(index[edge.source])
            targets.append(index[edge.target])
            distances.append(self._policy.link_distance(edge))
            strengths.append(self._policy.link_strength_for(edge))

        self.radii = np.array([self._policy.collision_radius(node) for node in displayed.nodes], dtype=float)
        self.charges = np.array([self._policy.charge(node) for node in displayed.nodes], dtype=float)
        count = len(self._node_ids)
        self.forces: Tuple[Force, ...] = (
            LinkForce(sources, targets, distances, strengths, count),
            ManyBodyForce(
                self.charges,
                theta=config.charge_theta,
                distance_min=config.distance_min,
                barnes_hut_threshold=config.barnes_hut_threshold,
            ),
            CenterForce(self._center[0], self._center[1], config.center_strength),
            GravityForce(self._center[0], self._center[1], config.gravity_strength),
            CollisionForce(
                self.radii,
                strength=config.collision_strength,
                iterations=config.collision_iterations,
            ),
        )

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return self._node_ids

    @property
    def config(self) -> LayoutConfig:
        return self._config

    @property
    def center(self) -> Point:
        return Point(x=self._center[0], y=self._center[1])

    def initial_state(self, previous: Optional[SimulationState] = None) -> SimulationState:
        """Create the full-temperature state for this displayed set.

        Nodes are placed on a phyllotaxis spiral around the viewport center.
        With ``previous`` given, nodes it already knows keep their last
        position; pins and velocities are never carried over.
        """

        count = len(self._node_ids)
        indices = np.arange(count, dtype=float)
        radius = self._config.initial_radius * np.sqrt(0.5 + indices)
        angle = indices * _INITIAL_ANGLE
        positions = np.empty((count, 2), dtype=float)
        positions[:, 0] = self._center[0] + radius * np.cos(angle)
        positions[:, 1] = self._center[1] + radius * np.sin(angle)
        reused = 0
        if previous is not None:
            known = {node_id: position for position, node_id in enumerate(previous.node_ids)}
            for position, node_id in enumerate(self._node_ids):
                if node_id in known:
                    positions[position] = previous.positions[known[node_id]]
                    reused += 1
        LOGGER.debug("Starting simulation with %d nodes (%d positions reused)", count, reused)
        return SimulationState(
            node_ids=self._node_ids,
            positions=positions,
            velocities=np.zeros((count, 2), dtype=float),
            pinned=np.full((count, 2), np.nan),
            alpha=1.0,
            alpha_target=self._config.alpha_target,
        )

    def is_settled(self, state: SimulationState) -> bool:
        """Return whether no further ticks should be issued for ``state``."""

        if not state.node_ids:
            return True
        return state.alpha < self._config.alpha_min

    def step(self, state: SimulationState, dt: float = 1.0) -> SimulationState:
        """Advance ``state`` by one tick and return the new state.

        Alpha decays toward its target, every force adds to the velocities,
        then free nodes integrate damped velocity while pinned nodes are held
        at their fixed coordinate with zero velocity. The input state is left
        untouched.
        """

        self._check_state(state)
        if not state.node_ids:
            return state
        alpha = state.alpha + (state.alpha_target - state.alpha) * self._config.alpha_decay
        positions = state.positions.copy()
        velocities = state.velocities.copy()
        rng = np.random.default_rng([self._config.seed, state.tick_count])
        for force in self.forces:
            force.apply(positions, velocities, alpha, rng)

        velocities *= 1.0 - self._config.velocity_decay
        positions += velocities * dt
        fixed = ~np.isnan(state.pinned)
        positions[fixed] = state.pinned[fixed]
        velocities[fixed] = 0.0
        next_state = replace(
            state,
            positions=positions,
            velocities=velocities,
            pinned=state.pinned.copy(),
            alpha=alpha,
            tick_count=state.tick_count + 1,
        )
        if self.is_settled(next_state) and not self.is_settled(state):
            LOGGER.debug("Simulation settled after %d ticks", next_state.tick_count)
        return next_state

    def run(self, state: SimulationState, max_ticks: Optional[int] = None) -> SimulationState:
        """Tick ``state`` until it settles or ``max_ticks`` have been issued."""

        ticks = 0
        while not self.is_settled(state):
            if max_ticks is not None and ticks >= max_ticks:
                break
            state = self.step(state)
            ticks += 1
        return state

    def pin(self, state: SimulationState, node_id: str, point: Point) -> SimulationState:
        """Fix ``node_id`` at ``point`` (layout coordinates) and move it there now.

        Raises:
            KeyError: If the node is not part of the displayed set.
            ValueError: If ``point`` is not finite.
        """

        if not (np.isfinite(point.x) and np.isfinite(point.y)):
            raise ValueError(f"Cannot pin {node_id} at non-finite point ({point.x}, {point.y})")
        index = state.index_of(node_id)
        next_state = state.copy()
        next_state.pinned[index] = (point.x, point.y)
        next_state.positions[index] = (point.x, point.y)
        next_state.velocities[index] = 0.0
        return next_state

    def unpin(self, state: SimulationState, node_id: str) -> SimulationState:
        index = state.index_of(node_id)
        next_state = state.copy()
        next_state.pinned[index] = np.nan
        return next_state

    def reheat(self, state: SimulationState, alpha_target: Optional[float] = None) -> SimulationState:
        """Raise the alpha target so the layout keeps moving while it is edited.

        Alpha itself is lifted to at least ``alpha_min`` so a settled state
        starts ticking again.
        """

        target = self._config.reheat_alpha_target if alpha_target is None else alpha_target
        alpha = max(state.alpha, self._config.alpha_min)
        return replace(state, alpha_target=target, alpha=alpha)

    def cool(self, state: SimulationState) -> SimulationState:
        return replace(state, alpha_target=self._config.alpha_target)

    def _check_state(self, state: SimulationState) -> None:
        if state.node_ids != self._node_ids:
            raise ValueError("Simulation state belongs to a different displayed set")


def overlapping_pairs(
    positions: np.ndarray,
    radii: Sequence[float],
    tolerance: float = 0.0,
) -> List[Tuple[int, int]]:
    """Return index pairs whose discs overlap by more than ``tolerance``."""

    radii_array = np.asarray(radii, dtype=float)
    pairs: List[Tuple[int, int]] = []
    for i in range(positions.shape[0]):
        delta = positions[i + 1 :] - positions[i]
        distance = np.hypot(delta[:, 0], delta[:, 1])
        minimum = radii_array[i] + radii_array[i + 1 :] - tolerance
        for offset in np.nonzero(distance < minimum)[0]:
            pairs.append((i, i + 1 + int(offset)))
    return pairs

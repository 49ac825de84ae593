from __future__ import annotations

import numpy as np
import pytest

from graphview.layout.forces import CenterForce, CollisionForce, GravityForce, LinkForce, ManyBodyForce
from graphview.layout.quadtree import QuadTree


def _rng() -> np.random.Generator:
    return np.random.default_rng(7)


def test_link_force_pulls_stretched_endpoints_together() -> None:
    positions = np.array([[0.0, 0.0], [200.0, 0.0]])
    velocities = np.zeros_like(positions)
    LinkForce([0], [1], [70.0], [0.3], 2).apply(positions, velocities, 1.0, _rng())

    assert velocities[0, 0] > 0
    assert velocities[1, 0] < 0
    assert velocities[0, 0] == pytest.approx(-velocities[1, 0])
    assert np.allclose(velocities[:, 1], 0.0)


def test_link_force_pushes_compressed_endpoints_apart() -> None:
    positions = np.array([[0.0, 0.0], [10.0, 0.0]])
    velocities = np.zeros_like(positions)
    LinkForce([0], [1], [70.0], [0.3], 2).apply(positions, velocities, 1.0, _rng())

    assert velocities[0, 0] < 0 < velocities[1, 0]


def test_link_force_moves_hubs_less_than_leaves() -> None:
    positions = np.array([[0.0, 0.0], [200.0, 0.0], [-200.0, 0.0], [0.0, 200.0]])
    velocities = np.zeros_like(positions)
    LinkForce([0, 0, 0], [1, 2, 3], [70.0] * 3, [0.3] * 3, 4).apply(positions, velocities, 1.0, _rng())

    hub = np.hypot(*velocities[0])
    leaf = np.hypot(*velocities[1])
    assert leaf > hub


def test_link_force_without_edges_is_noop() -> None:
    positions = np.array([[0.0, 0.0]])
    velocities = np.zeros_like(positions)
    LinkForce([], [], [], [], 1).apply(positions, velocities, 1.0, _rng())
    assert np.all(velocities == 0.0)


def test_many_body_repels_and_scales_with_alpha() -> None:
    positions = np.array([[0.0, 0.0], [10.0, 0.0]])
    force = ManyBodyForce([-200.0, -200.0])

    hot = np.zeros_like(positions)
    force.apply(positions, hot, 1.0, _rng())
    cool = np.zeros_like(positions)
    force.apply(positions, cool, 0.1, _rng())

    assert hot[0, 0] < 0 < hot[1, 0]
    assert cool[1, 0] == pytest.approx(hot[1, 0] * 0.1)


def test_many_body_separates_coincident_nodes() -> None:
    positions = np.array([[5.0, 5.0], [5.0, 5.0]])
    velocities = np.zeros_like(positions)
    ManyBodyForce([-200.0, -200.0]).apply(positions, velocities, 1.0, _rng())

    assert np.all(np.isfinite(velocities))
    assert not np.allclose(velocities[0], velocities[1])


def test_quadtree_matches_exact_sum_when_every_cell_is_opened() -> None:
    rng = np.random.default_rng(3)
    positions = rng.uniform(0.0, 1000.0, size=(120, 2))
    strengths = rng.uniform(-500.0, -200.0, size=120)

    exact = np.zeros_like(positions)
    ManyBodyForce(strengths, barnes_hut_threshold=10_000).apply(positions, exact, 1.0, _rng())
    approximate = np.zeros_like(positions)
    ManyBodyForce(strengths, theta=1e-6, barnes_hut_threshold=0).apply(positions, approximate, 1.0, _rng())

    assert np.allclose(approximate, exact, rtol=1e-9, atol=1e-12)


def test_barnes_hut_approximation_stays_close_to_exact() -> None:
    rng = np.random.default_rng(11)
    positions = rng.uniform(0.0, 1000.0, size=(300, 2))
    strengths = np.full(300, -300.0)

    exact = np.zeros_like(positions)
    ManyBodyForce(strengths, barnes_hut_threshold=10_000).apply(positions, exact, 1.0, _rng())
    approximate = np.zeros_like(positions)
    force = ManyBodyForce(strengths, theta=0.5, barnes_hut_threshold=200)
    assert force.uses_approximation(300)
    force.apply(positions, approximate, 1.0, _rng())

    error = np.linalg.norm(approximate - exact) / np.linalg.norm(exact)
    assert error < 0.05


def test_quadtree_aggregates_total_strength() -> None:
    positions = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0], [10.0, 10.0]])
    strengths = np.array([-1.0, -2.0, -3.0, -4.0])
    tree = QuadTree(positions, strengths)

    assert tree.root is not None
    assert tree.root.strength == pytest.approx(-10.0)
    with pytest.raises(ValueError):
        QuadTree(positions, strengths[:2])
    assert QuadTree(np.zeros((0, 2)), np.zeros(0)).root is None


def test_center_force_translates_mean_onto_center() -> None:
    positions = np.array([[0.0, 0.0], [20.0, 10.0]])
    velocities = np.zeros_like(positions)
    CenterForce(400.0, 300.0).apply(positions, velocities, 1.0, _rng())

    assert positions.mean(axis=0) == pytest.approx([400.0, 300.0])
    assert positions[1] - positions[0] == pytest.approx([20.0, 10.0])
    assert np.all(velocities == 0.0)


def test_gravity_pulls_toward_center() -> None:
    positions = np.array([[0.0, 0.0], [800.0, 600.0]])
    velocities = np.zeros_like(positions)
    GravityForce(400.0, 300.0, 0.02).apply(positions, velocities, 0.5, _rng())

    assert velocities[0] == pytest.approx([4.0, 3.0])
    assert velocities[1] == pytest.approx([-4.0, -3.0])


def test_collision_pushes_overlapping_discs_apart_even_when_cold() -> None:
    positions = np.array([[0.0, 0.0], [5.0, 0.0]])
    velocities = np.zeros_like(positions)
    CollisionForce([10.0, 10.0]).apply(positions, velocities, 0.0, _rng())

    predicted = positions + velocities
    assert predicted[1, 0] - predicted[0, 0] == pytest.approx(20.0)


def test_collision_moves_smaller_disc_further() -> None:
    positions = np.array([[0.0, 0.0], [10.0, 0.0]])
    velocities = np.zeros_like(positions)
    CollisionForce([5.0, 20.0]).apply(positions, velocities, 1.0, _rng())

    assert abs(velocities[0, 0]) > abs(velocities[1, 0])


def test_collision_ignores_separated_discs() -> None:
    positions = np.array([[0.0, 0.0], [50.0, 0.0], [0.0, 50.0]])
    velocities = np.zeros_like(positions)
    CollisionForce([10.0, 10.0, 10.0]).apply(positions, velocities, 1.0, _rng())
    assert np.all(velocities == 0.0)

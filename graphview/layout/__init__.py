"""Force-directed layout engine."""

from .forces import CenterForce, CollisionForce, Force, GravityForce, LinkForce, ManyBodyForce
from .policy import ForcePolicy
from .quadtree import QuadTree
from .scheduler import SimulationLoop, TickTarget, run_until_settled
from .simulation import ForceSimulation, SimulationState, overlapping_pairs

__all__ = [
    "CenterForce",
    "CollisionForce",
    "Force",
    "ForcePolicy",
    "ForceSimulation",
    "GravityForce",
    "LinkForce",
    "ManyBodyForce",
    "QuadTree",
    "SimulationLoop",
    "SimulationState",
    "TickTarget",
    "overlapping_pairs",
    "run_until_settled",
]

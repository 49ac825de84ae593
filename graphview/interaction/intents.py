"""Intent messages produced from pointer input and consumed by the session."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from graphview.contracts import Point


@dataclass(frozen=True)
class DragStart:
    node_id: str
    point: Point


@dataclass(frozen=True)
class DragMove:
    point: Point


@dataclass(frozen=True)
class DragEnd:
    pass


@dataclass(frozen=True)
class Select:
    """Select a node, or clear the selection with ``None`` (empty canvas click)."""

    node_id: Optional[str]


@dataclass(frozen=True)
class Hover:
    node_id: Optional[str]


@dataclass(frozen=True)
class Zoom:
    factor: float
    anchor: Point


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


Intent = Union[DragStart, DragMove, DragEnd, Select, Hover, Zoom, Pan]


def _number(value: Any, message: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(message) from exc
    if not math.isfinite(number):
        raise ValueError(message)
    return number


def _point(payload: Mapping[str, Any], key: str = "point") -> Point:
    raw = payload.get(key)
    if not isinstance(raw, Mapping) or "x" not in raw or "y" not in raw:
        raise ValueError(f"Intent requires a '{key}' object with x and y")
    message = f"Intent '{key}' must carry finite numeric x and y"
    return Point(x=_number(raw["x"], message), y=_number(raw["y"], message))


def _optional_id(payload: Mapping[str, Any]) -> Optional[str]:
    value = payload.get("node_id")
    if value is None:
        return None
    return str(value)


def parse_intent(payload: Mapping[str, Any]) -> Intent:
    """Build an intent from its JSON form ``{"kind": ..., ...}``.

    Raises:
        ValueError: If the kind is unknown, a required field is missing or a
            number is not finite.
    """

    kind = str(payload.get("kind", "")).strip().lower()
    if kind == "drag_start":
        node_id = _optional_id(payload)
        if node_id is None:
            raise ValueError("drag_start requires a node_id")
        return DragStart(node_id=node_id, point=_point(payload))
    if kind == "drag_move":
        return DragMove(point=_point(payload))
    if kind == "drag_end":
        return DragEnd()
    if kind == "select":
        return Select(node_id=_optional_id(payload))
    if kind == "hover":
        return Hover(node_id=_optional_id(payload))
    if kind == "zoom":
        factor = _number(payload.get("factor"), "zoom requires a finite numeric factor")
        if factor <= 0:
            raise ValueError("zoom factor must be positive")
        return Zoom(factor=factor, anchor=_point(payload, "anchor"))
    if kind == "pan":
        message = "pan requires finite numeric dx and dy"
        return Pan(dx=_number(payload.get("dx"), message), dy=_number(payload.get("dy"), message))
    raise ValueError(f"Unknown intent kind: {kind or '<missing>'}")

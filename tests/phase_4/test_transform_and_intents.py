from __future__ import annotations

import pytest

from graphview.config import ViewConfig
from graphview.contracts import Point
from graphview.interaction.intents import DragEnd, DragMove, DragStart, Pan, Select, Zoom, parse_intent
from graphview.interaction.transform import ViewTransform


def test_apply_and_invert_are_inverse() -> None:
    transform = ViewTransform(x=30.0, y=-20.0, scale=2.5)
    point = Point(x=12.0, y=7.0)

    screen = transform.apply(point)
    assert screen == Point(x=60.0, y=-2.5)
    back = transform.invert(screen)
    assert back.x == pytest.approx(point.x)
    assert back.y == pytest.approx(point.y)


def test_zoom_keeps_anchor_fixed_and_clamps_scale() -> None:
    transform = ViewTransform.identity(ViewConfig())
    anchor = Point(x=200.0, y=150.0)
    focus = transform.invert(anchor)

    zoomed = transform.zoom_at(2.0, anchor)
    assert zoomed.scale == pytest.approx(2.0)
    assert zoomed.apply(focus).x == pytest.approx(anchor.x)
    assert zoomed.apply(focus).y == pytest.approx(anchor.y)

    assert transform.zoom_at(1000.0, anchor).scale == pytest.approx(10.0)
    assert transform.zoom_at(0.0001, anchor).scale == pytest.approx(0.1)
    with pytest.raises(ValueError):
        transform.zoom_at(0.0, anchor)


def test_pan_translates_only() -> None:
    transform = ViewTransform(scale=3.0).pan(10.0, -5.0)
    assert (transform.x, transform.y, transform.scale) == (10.0, -5.0, 3.0)


def test_non_finite_pan_and_zoom_are_rejected() -> None:
    transform = ViewTransform()
    with pytest.raises(ValueError):
        transform.pan(float("nan"), 0.0)
    with pytest.raises(ValueError):
        transform.zoom_at(float("inf"), Point(x=0.0, y=0.0))
    with pytest.raises(ValueError):
        transform.zoom_at(2.0, Point(x=0.0, y=float("nan")))


def test_fit_centers_bounds_in_viewport() -> None:
    transform = ViewTransform().fit((0.0, 0.0, 400.0, 100.0), 800.0, 600.0, 0.8)

    assert transform.scale == pytest.approx(1.6)
    center = transform.apply(Point(x=200.0, y=50.0))
    assert center.x == pytest.approx(400.0)
    assert center.y == pytest.approx(300.0)
    assert ViewTransform().fit(None, 800.0, 600.0) == ViewTransform()
    assert ViewTransform().fit((5.0, 5.0, 5.0, 5.0), 800.0, 600.0).scale == pytest.approx(1.0)


def test_constructor_clamps_scale_and_validates_range() -> None:
    assert ViewTransform(scale=50.0).scale == 10.0
    with pytest.raises(ValueError):
        ViewTransform(min_scale=2.0, max_scale=1.0)


def test_as_svg_transform_attribute() -> None:
    assert ViewTransform(x=1.0, y=2.0, scale=0.5).as_svg() == "translate(1.000,2.000) scale(0.500000)"


def test_parse_intent_variants() -> None:
    assert parse_intent({"kind": "drag_start", "node_id": "n1", "point": {"x": 1, "y": 2}}) == DragStart(
        node_id="n1", point=Point(x=1.0, y=2.0)
    )
    assert parse_intent({"kind": "drag_move", "point": {"x": "3", "y": 4}}) == DragMove(point=Point(x=3.0, y=4.0))
    assert parse_intent({"kind": "DRAG_END"}) == DragEnd()
    assert parse_intent({"kind": "select", "node_id": None}) == Select(node_id=None)
    assert parse_intent({"kind": "zoom", "factor": 1.5, "anchor": {"x": 0, "y": 0}}) == Zoom(
        factor=1.5, anchor=Point(x=0.0, y=0.0)
    )
    assert parse_intent({"kind": "pan", "dx": 5, "dy": -5}) == Pan(dx=5.0, dy=-5.0)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"kind": "explode"},
        {"kind": "drag_start", "point": {"x": 0, "y": 0}},
        {"kind": "drag_move"},
        {"kind": "drag_move", "point": {"x": "left", "y": 0}},
        {"kind": "zoom", "factor": "big", "anchor": {"x": 0, "y": 0}},
        {"kind": "zoom", "factor": 0, "anchor": {"x": 0, "y": 0}},
        {"kind": "zoom", "factor": -2.0, "anchor": {"x": 0, "y": 0}},
        {"kind": "zoom", "factor": float("inf"), "anchor": {"x": 0, "y": 0}},
        {"kind": "zoom", "factor": 2.0, "anchor": {"x": float("nan"), "y": 0}},
        {"kind": "drag_start", "node_id": "n1", "point": {"x": float("nan"), "y": 1.0}},
        {"kind": "drag_move", "point": {"x": 0, "y": "-inf"}},
        {"kind": "pan", "dx": 1},
        {"kind": "pan", "dx": float("nan"), "dy": 0},
    ],
)
def test_parse_intent_rejects_malformed_payloads(payload) -> None:
    with pytest.raises(ValueError):
        parse_intent(payload)

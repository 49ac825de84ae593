"""Pointer intents, highlight and the per-view session state machine."""

from .highlight import Highlight, compute_highlight
from .intents import DragEnd, DragMove, DragStart, Hover, Intent, Pan, Select, Zoom, parse_intent
from .session import (
    EMPTY_RESULT_MESSAGE,
    GraphViewSession,
    HoverInfo,
    SessionSnapshot,
    ViewStatus,
)
from .transform import ViewTransform

__all__ = [
    "DragEnd",
    "DragMove",
    "DragStart",
    "EMPTY_RESULT_MESSAGE",
    "GraphViewSession",
    "Highlight",
    "Hover",
    "HoverInfo",
    "Intent",
    "Pan",
    "Select",
    "SessionSnapshot",
    "ViewStatus",
    "ViewTransform",
    "Zoom",
    "compute_highlight",
    "parse_intent",
]

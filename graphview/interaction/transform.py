"""Pan/zoom transform between layout space and screen space."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from graphview.config import ViewConfig
from graphview.contracts import Point


@dataclass(frozen=True)
class ViewTransform:
    """Affine transform ``screen = layout * scale + (x, y)``.

    The scale is clamped to ``[min_scale, max_scale]`` on every change. The
    transform never touches the simulation; it only maps coordinates.
    """

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    min_scale: float = 0.1
    max_scale: float = 10.0

    def __post_init__(self) -> None:
        if self.min_scale <= 0 or self.min_scale >= self.max_scale:
            raise ValueError("min_scale must be positive and lower than max_scale")
        object.__setattr__(self, "scale", self._clamp(self.scale))

    @classmethod
    def identity(cls, config: Optional[ViewConfig] = None) -> "ViewTransform":
        if config is None:
            return cls()
        return cls(min_scale=config.min_zoom, max_scale=config.max_zoom)

    def _clamp(self, scale: float) -> float:
        return min(max(scale, self.min_scale), self.max_scale)

    def apply(self, point: Point) -> Point:
        """Map a layout coordinate onto the screen."""

        return Point(x=point.x * self.scale + self.x, y=point.y * self.scale + self.y)

    def invert(self, point: Point) -> Point:
        """Map a screen coordinate back into layout space."""

        return Point(x=(point.x - self.x) / self.scale, y=(point.y - self.y) / self.scale)

    def zoom_at(self, factor: float, anchor: Point) -> "ViewTransform":
        """Scale by ``factor`` keeping the screen point ``anchor`` fixed."""

        if not math.isfinite(factor) or factor <= 0:
            raise ValueError("zoom factor must be positive")
        if not (math.isfinite(anchor.x) and math.isfinite(anchor.y)):
            raise ValueError("zoom anchor must be finite")
        scale = self._clamp(self.scale * factor)
        focus = self.invert(anchor)
        return replace(self, scale=scale, x=anchor.x - focus.x * scale, y=anchor.y - focus.y * scale)

    def pan(self, dx: float, dy: float) -> "ViewTransform":
        if not (math.isfinite(dx) and math.isfinite(dy)):
            raise ValueError("pan offsets must be finite")
        return replace(self, x=self.x + dx, y=self.y + dy)

    def fit(
        self,
        bounds: Optional[Tuple[float, float, float, float]],
        width: float,
        height: float,
        padding_ratio: float = 0.8,
    ) -> "ViewTransform":
        """Center ``bounds`` in the viewport, scaled to ``padding_ratio`` of it.

        Args:
            bounds: ``(min_x, min_y, max_x, max_y)`` in layout space; ``None``
                leaves the transform unchanged.
            width: Viewport width.
            height: Viewport height.
            padding_ratio: Share of the viewport the content may occupy.

        Returns:
            ViewTransform: New transform with the scale clamped to the zoom range.
        """

        if bounds is None:
            return self
        min_x, min_y, max_x, max_y = bounds
        extent_x = max_x - min_x
        extent_y = max_y - min_y
        if extent_x <= 0 and extent_y <= 0:
            scale = self._clamp(1.0)
        else:
            scale = self._clamp(padding_ratio / max(extent_x / width, extent_y / height))
        mid_x = (min_x + max_x) / 2.0
        mid_y = (min_y + max_y) / 2.0
        return replace(self, scale=scale, x=width / 2.0 - scale * mid_x, y=height / 2.0 - scale * mid_y)

    def as_svg(self) -> str:
        return f"translate({self.x:.3f},{self.y:.3f}) scale({self.scale:.6f})"

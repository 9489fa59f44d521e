"""
Viewport transform - screen/canvas coordinate conversion.

Rendering maps a canvas point to the screen with
    screen = canvas * zoom + pan
and screen_to_canvas is its exact inverse. Zooming is anchored at the
viewport origin, so the canvas point under the cursor drifts while zooming.
"""

from typing import Optional

from .models import Viewport


MIN_ZOOM = 0.1
MAX_ZOOM = 5.0
WHEEL_ZOOM_FACTOR = 0.001


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


class ViewportTransform:
    """Owns the single viewport state and converts between spaces."""

    def __init__(self, viewport: Optional[Viewport] = None):
        self._viewport = viewport or Viewport()
        self._viewport.zoom = clamp_zoom(self._viewport.zoom)

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def zoom(self) -> float:
        return self._viewport.zoom

    def screen_to_canvas(self, sx: float, sy: float) -> tuple[float, float]:
        """Convert a screen point to canvas space."""
        vp = self._viewport
        return ((sx - vp.pan_x) / vp.zoom, (sy - vp.pan_y) / vp.zoom)

    def canvas_to_screen(self, x: float, y: float) -> tuple[float, float]:
        """Convert a canvas point to screen space."""
        vp = self._viewport
        return (x * vp.zoom + vp.pan_x, y * vp.zoom + vp.pan_y)

    def pan(self, dx: float, dy: float):
        """Shift the view by a screen-space delta. Unbounded."""
        self._viewport.pan_x += dx
        self._viewport.pan_y += dy

    def zoom_at(self, delta: float):
        """Add delta to the zoom factor, clamped to [MIN_ZOOM, MAX_ZOOM]."""
        self._viewport.zoom = clamp_zoom(self._viewport.zoom + delta)

    def apply_wheel(self, delta_x: float, delta_y: float, zoom_modifier: bool):
        """
        Apply a wheel gesture.

        With the zoom modifier held the vertical delta zooms; otherwise both
        deltas scroll the view.
        """
        if zoom_modifier:
            self.zoom_at(-delta_y * WHEEL_ZOOM_FACTOR)
        else:
            self.pan(-delta_x, -delta_y)

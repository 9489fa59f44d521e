"""
Drag state - the single gesture in progress between pointer-down and up.

Exactly one of these values is active at a time; each carries only the
payload its gesture needs. Screen-space press points are recorded so moves
and resizes are computed as absolute deltas from the press, never
accumulated frame by frame.
"""

from dataclasses import dataclass, field
from typing import Union

from .models import ResizeEdge


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class Panning:
    """Dragging the view. Deltas come from the last pointer position."""


@dataclass(frozen=True)
class MovingNodes:
    """Dragging the selected nodes."""
    press_x: float
    press_y: float
    origins: dict[str, tuple[float, float]] = field(default_factory=dict)  # node_id -> (x, y)


@dataclass(frozen=True)
class Resizing:
    """Dragging one of a node's 8 resize handles."""
    node_id: str
    edge: ResizeEdge
    press_x: float
    press_y: float
    origin: tuple[float, float, float, float]  # x, y, width, height


@dataclass(frozen=True)
class RubberBand:
    """Drawing a selection rectangle (canvas space)."""
    anchor: tuple[float, float]
    current: tuple[float, float]
    additive: bool = False


@dataclass(frozen=True)
class Connecting:
    """Pointer held on a node with the connector tool."""
    source_node_id: str


DragState = Union[Idle, Panning, MovingNodes, Resizing, RubberBand, Connecting]

IDLE = Idle()

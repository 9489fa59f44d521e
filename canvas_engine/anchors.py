"""
Connector anchoring - where a connector touches a node's outline.

A connector is drawn as a straight segment between two node centers, clipped
at each end to the outline of its own node. Each outline has one boundary
function; the table below maps shape variants onto them so a new outline is
added in one place.

All functions are pure: they take geometry and return a point.
"""

import math
from typing import Callable, TYPE_CHECKING

from .models import ShapeVariant

if TYPE_CHECKING:
    from .models import Node, Connector


# (half_width, half_height, dx, dy) -> (offset_x, offset_y) from the center
BoundaryFunction = Callable[[float, float, float, float], tuple[float, float]]


def _box_boundary(w: float, h: float, dx: float, dy: float) -> tuple[float, float]:
    """Ray / axis-aligned box intersection."""
    scale_x = w / abs(dx) if dx != 0 else math.inf
    scale_y = h / abs(dy) if dy != 0 else math.inf
    scale = min(scale_x, scale_y)
    return (dx * scale, dy * scale)


def _circle_boundary(w: float, h: float, dx: float, dy: float) -> tuple[float, float]:
    """Circle inscribed in the box (radius = smaller half-dimension)."""
    angle = math.atan2(dy, dx)
    r = min(w, h)
    return (math.cos(angle) * r, math.sin(angle) * r)


def _diamond_boundary(w: float, h: float, dx: float, dy: float) -> tuple[float, float]:
    """Diamond |x|/w + |y|/h = 1 in node-local coordinates."""
    abs_dx = abs(dx)
    abs_dy = abs(dy)
    if abs_dx + abs_dy == 0:
        return (0.0, 0.0)
    t = 1 / (abs_dx / w + abs_dy / h)
    return (dx * t, dy * t)


BOUNDARY_FUNCTIONS: dict[ShapeVariant, BoundaryFunction] = {
    ShapeVariant.RECTANGLE: _box_boundary,
    ShapeVariant.PILL: _box_boundary,
    ShapeVariant.CIRCLE: _circle_boundary,
    ShapeVariant.DIAMOND: _diamond_boundary,
}


def boundary_point(
    cx: float,
    cy: float,
    half_width: float,
    half_height: float,
    shape: ShapeVariant,
    tx: float,
    ty: float
) -> tuple[float, float]:
    """
    Intersect the ray from a node's center towards (tx, ty) with its outline.

    Args:
        cx, cy: Node center
        half_width, half_height: Half of the node's width and height
        shape: Outline to intersect
        tx, ty: Target point the ray heads towards

    Returns:
        The boundary point, or the center itself when the target coincides
        with the center.
    """
    dx = tx - cx
    dy = ty - cy
    if dx == 0 and dy == 0:
        return (cx, cy)

    boundary = BOUNDARY_FUNCTIONS.get(shape, _box_boundary)
    ox, oy = boundary(half_width, half_height, dx, dy)
    return (cx + ox, cy + oy)


def anchor_point(node: "Node", tx: float, ty: float) -> tuple[float, float]:
    """Where a connector heading towards (tx, ty) leaves this node."""
    cx, cy = node.center()
    return boundary_point(cx, cy, node.width / 2, node.height / 2, node.outline, tx, ty)


def connector_endpoints(
    start: "Node",
    end: "Node"
) -> tuple[tuple[float, float], tuple[float, float]]:
    """
    Resolve both ends of a connector.

    Each end aims at the other node's center and hugs its own outline, so
    the result holds regardless of the two nodes' sizes or shapes.
    """
    end_center = end.center()
    start_center = start.center()
    return (anchor_point(start, *end_center), anchor_point(end, *start_center))


def route_connectors(
    nodes_by_id: dict[str, "Node"],
    connectors: list["Connector"]
) -> list[tuple["Connector", tuple[float, float], tuple[float, float]]]:
    """
    Resolve endpoints for every connector whose nodes both exist.

    Returns (connector, start_point, end_point) triples.
    """
    routed = []
    for connector in connectors:
        start = nodes_by_id.get(connector.start_node_id)
        end = nodes_by_id.get(connector.end_node_id)
        if start is None or end is None:
            continue
        start_point, end_point = connector_endpoints(start, end)
        routed.append((connector, start_point, end_point))
    return routed

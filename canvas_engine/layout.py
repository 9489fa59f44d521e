"""
Layout helpers for placing generated nodes.

Layout functions are pure: they return positions and leave node creation to
the caller.
"""

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Node


# Default layout parameters
EXPANSION_RADIUS = 250.0


def radial_positions(
    center_x: float,
    center_y: float,
    count: int,
    radius: float = EXPANSION_RADIUS,
    start_angle: float = 0.0
) -> list[tuple[float, float]]:
    """
    Spread `count` points evenly on a circle.

    Args:
        center_x, center_y: Circle center
        count: Number of points (angular step is 2*pi / count)
        radius: Circle radius
        start_angle: Angle of the first point in radians (0 = to the right)

    Returns:
        Points in angular order, starting at `start_angle`
    """
    if count <= 0:
        return []

    step = (2 * math.pi) / count
    return [
        (center_x + math.cos(start_angle + i * step) * radius,
         center_y + math.sin(start_angle + i * step) * radius)
        for i in range(count)
    ]


def expansion_origin(node: "Node") -> tuple[float, float]:
    """Right-center of a node, the hub of its expansion cluster."""
    return (node.x + node.width, node.y + node.height / 2)

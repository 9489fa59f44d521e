"""
Selection tracking and rubber-band hit testing.
"""

from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Node, Rect


def overlaps_open(node: "Node", rect: "Rect") -> bool:
    """
    Open bounding-box intersection.

    Boxes that only share an edge do not overlap.
    """
    return (node.x < rect.right and node.x + node.width > rect.left and
            node.y < rect.bottom and node.y + node.height > rect.top)


def rubber_band_select(
    rect: "Rect",
    nodes: Iterable["Node"],
    existing: Iterable[str],
    additive: bool
) -> set[str]:
    """
    Compute the selection produced by a rubber-band rectangle.

    Args:
        rect: Normalized rectangle in canvas space
        nodes: Candidate nodes
        existing: Selection in effect before the gesture
        additive: Union with `existing` instead of replacing it

    Returns:
        The new selection
    """
    hit = {node.id for node in nodes if overlaps_open(node, rect)}
    if additive:
        return set(existing) | hit
    return hit


class SelectionManager:
    """Ordered set of selected node ids."""

    def __init__(self):
        # dict keeps insertion order, values unused
        self._ids: dict[str, None] = {}

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def toggle(self, node_id: str):
        if node_id in self._ids:
            del self._ids[node_id]
        else:
            self._ids[node_id] = None

    def set_single(self, node_id: str):
        self._ids = {node_id: None}

    def set_many(self, node_ids: Iterable[str]):
        self._ids = dict.fromkeys(node_ids)

    def clear(self):
        self._ids = {}

    def select_all(self, all_ids: Iterable[str]):
        self.set_many(all_ids)

    def discard(self, node_ids: Iterable[str]):
        """Drop ids, e.g. after their nodes were deleted."""
        for node_id in node_ids:
            self._ids.pop(node_id, None)

    def single(self) -> Optional[str]:
        """The selected id when exactly one node is selected, else None."""
        if len(self._ids) != 1:
            return None
        return next(iter(self._ids))

    def rubber_band_select(self, rect: "Rect", nodes: Iterable["Node"], additive: bool):
        """Commit a rubber-band selection against the current selection."""
        self.set_many(rubber_band_select(rect, nodes, self._ids, additive))

"""
Scene Store - Owns the canvas nodes and connectors.

This module implements:
- Node/connector CRUD with O(1) lookups via index dictionaries
- Cascade deletion (removing a node removes every connector touching it)
- Undirected connector uniqueness (at most one connector per node pair)
- Minimum-size enforcement on every node update

Operations addressing ids that do not exist are no-ops and never raise.
"""

import logging
from typing import Iterable, Optional

from .models import (
    Node, Connector, NodeKind, KIND_DEFAULTS, MIN_DIMENSION,
    generate_node_id, min_height_for,
)

logger = logging.getLogger(__name__)

DUPLICATE_OFFSET = 20.0


class SceneStore:
    """
    Holds every node and connector of the canvas.

    Nodes keep creation order, which doubles as stacking order: later nodes
    are drawn (and hit) on top of earlier ones.
    """

    def __init__(self):
        self._nodes: list[Node] = []
        self._connectors: list[Connector] = []

        # O(1) lookup indexes
        self._node_index: dict[str, Node] = {}                   # node_id -> Node
        self._connector_index: dict[str, Connector] = {}         # connector_id -> Connector
        self._connectors_by_node: dict[str, set[str]] = {}       # node_id -> set of connector_ids
        self._pair_index: dict[frozenset[str], str] = {}         # {a, b} -> connector_id

    # --- Index Management ---

    def _index_connector(self, connector: Connector):
        """Add a connector to the indexes."""
        self._connector_index[connector.id] = connector
        self._pair_index[connector.pair()] = connector.id
        for node_id in (connector.start_node_id, connector.end_node_id):
            if node_id not in self._connectors_by_node:
                self._connectors_by_node[node_id] = set()
            self._connectors_by_node[node_id].add(connector.id)

    def _unindex_connector(self, connector: Connector):
        """Remove a connector from the indexes."""
        self._connector_index.pop(connector.id, None)
        self._pair_index.pop(connector.pair(), None)
        for node_id in (connector.start_node_id, connector.end_node_id):
            if node_id in self._connectors_by_node:
                self._connectors_by_node[node_id].discard(connector.id)

    # --- Properties ---

    @property
    def nodes(self) -> list[Node]:
        """All nodes, bottom-most first."""
        return list(self._nodes)

    @property
    def connectors(self) -> list[Connector]:
        return list(self._connectors)

    @property
    def node_ids(self) -> list[str]:
        return [n.id for n in self._nodes]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._node_index

    # --- Node Operations ---

    def create_node(
        self,
        kind: NodeKind,
        center_x: float,
        center_y: float,
        text: str = ""
    ) -> Node:
        """Create a node of the given kind centered at (center_x, center_y)."""
        defaults = KIND_DEFAULTS[kind]
        node = Node(
            kind=kind,
            x=center_x - defaults.width / 2,
            y=center_y - defaults.height / 2,
            width=defaults.width,
            height=defaults.height,
            text=text,
            color=defaults.color,
        )
        self.add_node(node)
        return node

    def add_node(self, node: Node) -> Node:
        """Insert a fully built node."""
        self._nodes.append(node)
        self._node_index[node.id] = node
        logger.debug("Created %s node %s", node.kind.value, node.id)
        return node

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(1) lookup)."""
        return self._node_index.get(node_id)

    def update_node(self, node_id: str, **kwargs) -> Optional[Node]:
        """
        Merge the provided fields into an existing node.

        Fields passed as None are left untouched. A width or height being
        set is clamped to the node kind's minimum; sizes not being set are
        kept as they are. Returns None if the node is gone.
        """
        node = self._node_index.get(node_id)
        if node is None:
            return None

        updates = {
            key: value for key, value in kwargs.items()
            if key != "id" and value is not None and hasattr(node, key)
        }
        if "width" in updates:
            updates["width"] = max(MIN_DIMENSION, updates["width"])
        if "height" in updates:
            kind = updates.get("kind", node.kind)
            updates["height"] = max(min_height_for(kind), updates["height"])

        for key, value in updates.items():
            setattr(node, key, value)

        return node

    def delete_nodes(self, node_ids: Iterable[str]) -> set[str]:
        """
        Delete nodes and every connector attached to them.

        Unknown ids are ignored. Returns the ids actually removed.
        """
        doomed = {nid for nid in node_ids if nid in self._node_index}
        if not doomed:
            return set()

        self._nodes = [n for n in self._nodes if n.id not in doomed]

        connected_ids: set[str] = set()
        for node_id in doomed:
            self._node_index.pop(node_id, None)
            connected_ids |= self._connectors_by_node.pop(node_id, set())

        for connector_id in connected_ids:
            connector = self._connector_index.get(connector_id)
            if connector:
                self._unindex_connector(connector)
        if connected_ids:
            self._connectors = [c for c in self._connectors if c.id not in connected_ids]

        logger.debug("Deleted %d nodes and %d connectors", len(doomed), len(connected_ids))
        return doomed

    def duplicate_nodes(self, node_ids: Iterable[str]) -> list[str]:
        """
        Clone nodes with fresh ids, offset by (+20, +20).

        Connectors are not duplicated. Returns the new ids in stacking order.
        """
        wanted = set(node_ids)
        new_ids = []
        for node in list(self._nodes):
            if node.id not in wanted:
                continue
            clone = node.model_copy(update={
                "id": generate_node_id(),
                "x": node.x + DUPLICATE_OFFSET,
                "y": node.y + DUPLICATE_OFFSET,
            })
            self.add_node(clone)
            new_ids.append(clone.id)
        return new_ids

    def node_at(self, x: float, y: float) -> Optional[Node]:
        """Find the top-most node containing the canvas point."""
        for node in reversed(self._nodes):
            if node.contains_point(x, y):
                return node
        return None

    # --- Connector Operations ---

    def create_connector(self, start_id: str, end_id: str) -> Optional[Connector]:
        """
        Connect two nodes.

        Returns None (and changes nothing) for self-connections, missing
        endpoints, or a pair that is already connected in either direction.
        """
        if start_id == end_id:
            return None
        if start_id not in self._node_index or end_id not in self._node_index:
            return None
        if frozenset((start_id, end_id)) in self._pair_index:
            return None

        connector = Connector(start_node_id=start_id, end_node_id=end_id)
        self._connectors.append(connector)
        self._index_connector(connector)
        return connector

    def get_connector(self, connector_id: str) -> Optional[Connector]:
        """Get a connector by ID (O(1) lookup)."""
        return self._connector_index.get(connector_id)

    def connectors_for_node(self, node_id: str) -> list[Connector]:
        """Get all connectors touching a node (O(1) index lookup)."""
        if node_id not in self._connectors_by_node:
            return []
        return [self._connector_index[cid] for cid in self._connectors_by_node[node_id]
                if cid in self._connector_index]

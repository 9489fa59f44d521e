"""
Interaction Controller - the pointer/keyboard state machine of the canvas.

This module implements:
- Pointer gesture disambiguation (pan, move, resize, rubber band, connect)
- Tool placement with single-use or sticky (shift) tools
- Global keyboard shortcuts (escape, delete, select-all, duplicate, tool keys)
- Asynchronous expansion of a node into a radial cluster of children
- Render snapshots for an external renderer

One event is fully processed before the next is accepted. The only
operation that suspends is the expansion request, which runs as an asyncio
task tied to the id of the node that requested it.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Optional

from .anchors import anchor_point, route_connectors
from .drag_state import (
    DragState, IDLE, Panning, MovingNodes, Resizing, RubberBand, Connecting,
)
from .events import InputBus, InputEvent, KeyEvent, PointerButton, PointerEvent, WheelEvent
from .expansion import ExpansionError, ExpansionResponse, ExpansionService
from .layout import expansion_origin, radial_positions
from .models import (
    ConnectorPath, NodeColor, NodeKind, PLACEMENT_TOOLS, MIN_DIMENSION, Point, Rect,
    RenderSnapshot, ResizeEdge, Segment, ShapeVariant, Tool, min_height_for,
)
from .scene import SceneStore
from .selection import SelectionManager
from .viewport import ViewportTransform

logger = logging.getLogger(__name__)


# Handle -> (horizontal side, vertical side); -1 = start (west/north), 1 = end
# Corners come first so they win over edge midpoints on small nodes.
RESIZE_SIDES: dict[ResizeEdge, tuple[int, int]] = {
    ResizeEdge.NW: (-1, -1),
    ResizeEdge.NE: (1, -1),
    ResizeEdge.SW: (-1, 1),
    ResizeEdge.SE: (1, 1),
    ResizeEdge.N: (0, -1),
    ResizeEdge.S: (0, 1),
    ResizeEdge.W: (-1, 0),
    ResizeEdge.E: (1, 0),
}

TOOL_HOTKEYS: dict[str, Tool] = {
    "v": Tool.SELECT,
    "h": Tool.PAN,
    "s": Tool.NOTE,
    "r": Tool.SHAPE,
    "t": Tool.TEXT,
    "c": Tool.CONNECTOR,
}

DELETE_KEYS = ("Delete", "Backspace")


class InteractionController:
    """
    Turns input events into scene, selection and viewport updates.

    Owns the active tool, the current drag gesture and the pending
    connection source. Change callbacks fire after every handled event.
    """

    # Resize handle hit radius in screen pixels
    HANDLE_RADIUS = 8.0

    def __init__(
        self,
        store: Optional[SceneStore] = None,
        viewport: Optional[ViewportTransform] = None,
        selection: Optional[SelectionManager] = None,
        expansion_service: Optional[ExpansionService] = None
    ):
        self.store = store or SceneStore()
        self.viewport = viewport or ViewportTransform()
        self.selection = selection or SelectionManager()
        self.expansion_service = expansion_service

        self.active_tool: Tool = Tool.SELECT
        self.drag: DragState = IDLE
        self.pending_connection_source: Optional[str] = None
        self.cursor: tuple[float, float] = (0.0, 0.0)  # canvas space

        self._last_screen: tuple[float, float] = (0.0, 0.0)
        self._expansion_task: Optional[asyncio.Task] = None
        self._expansion_node_id: Optional[str] = None
        self._on_change_callbacks: list[Callable] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    # --- Lifecycle ---

    def attach(self, bus: InputBus):
        """Start receiving events from a bus. Re-attaching moves the subscription."""
        self.detach()
        self._unsubscribe = bus.subscribe(self.handle_event)

    def detach(self):
        """Stop receiving events."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback invoked after every state change."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        for callback in self._on_change_callbacks:
            callback()

    # --- Event Dispatch ---

    def handle_event(self, event: InputEvent):
        """Process one input event to completion, then notify listeners."""
        if isinstance(event, PointerEvent):
            if event.type == "down":
                self.pointer_down(event)
            elif event.type == "move":
                self.pointer_move(event)
            else:
                self.pointer_up(event)
        elif isinstance(event, WheelEvent):
            self.viewport.apply_wheel(event.delta_x, event.delta_y, event.platform)
        elif isinstance(event, KeyEvent):
            self.key_down(event)
        self._notify_change()

    def _set_drag(self, state: DragState):
        if type(state) is not type(self.drag):
            logger.debug("Gesture %s -> %s", type(self.drag).__name__, type(state).__name__)
        self.drag = state

    # --- Pointer Down ---

    def pointer_down(self, event: PointerEvent):
        self._last_screen = (event.x, event.y)
        x, y = self.viewport.screen_to_canvas(event.x, event.y)
        self.cursor = (x, y)

        if event.button == PointerButton.SECONDARY:
            return

        if self.active_tool == Tool.PAN or event.button == PointerButton.MIDDLE:
            self._set_drag(Panning())
            return

        if self.active_tool == Tool.SELECT:
            handle = self.handle_at(x, y)
            if handle is not None:
                self._begin_resize(handle[0], handle[1], event.x, event.y)
                return

        node = self.store.node_at(x, y)
        if node is None:
            self._press_canvas(event, x, y)
        elif self.active_tool == Tool.CONNECTOR:
            self._press_node_connecting(event, node.id)
        else:
            self._press_node(event, node.id)

    def _press_canvas(self, event: PointerEvent, x: float, y: float):
        if self.active_tool == Tool.SELECT:
            if not event.shift:
                self.selection.clear()
            self._set_drag(RubberBand(anchor=(x, y), current=(x, y), additive=event.shift))

        elif self.active_tool in PLACEMENT_TOOLS:
            node = self.store.create_node(PLACEMENT_TOOLS[self.active_tool], x, y)
            self.selection.set_single(node.id)
            if not event.shift:
                self.active_tool = Tool.SELECT

        elif self.active_tool == Tool.CONNECTOR:
            self.selection.clear()
            self.pending_connection_source = None

    def _press_node(self, event: PointerEvent, node_id: str):
        if event.duplicate:
            sources = self.selection.ids if node_id in self.selection else [node_id]
            clones = self.store.duplicate_nodes(sources)
            self.selection.set_many(clones)
        elif event.shift:
            self.selection.toggle(node_id)
        else:
            self.selection.set_single(node_id)

        origins = {}
        for selected_id in self.selection.ids:
            node = self.store.get_node(selected_id)
            if node is not None:
                origins[selected_id] = (node.x, node.y)
        self._set_drag(MovingNodes(press_x=event.x, press_y=event.y, origins=origins))

    def _press_node_connecting(self, event: PointerEvent, node_id: str):
        source = self.pending_connection_source
        if source is None:
            self.pending_connection_source = node_id
            self.selection.set_single(node_id)
        elif source != node_id:
            self.store.create_connector(source, node_id)
            self.pending_connection_source = None
            if not event.shift:
                self.active_tool = Tool.SELECT
        self._set_drag(Connecting(source_node_id=node_id))

    def _begin_resize(self, node_id: str, edge: ResizeEdge, sx: float, sy: float):
        node = self.store.get_node(node_id)
        self._set_drag(Resizing(
            node_id=node_id,
            edge=edge,
            press_x=sx,
            press_y=sy,
            origin=(node.x, node.y, node.width, node.height),
        ))

    def handle_at(self, x: float, y: float) -> Optional[tuple[str, ResizeEdge]]:
        """Find the resize handle of a selected node under a canvas point."""
        radius = self.HANDLE_RADIUS / self.viewport.zoom
        selected = [n for n in self.store.nodes if n.id in self.selection]
        for node in reversed(selected):
            for edge, (hx, hy) in handle_positions(node.x, node.y, node.width, node.height).items():
                if abs(x - hx) <= radius and abs(y - hy) <= radius:
                    return (node.id, edge)
        return None

    # --- Pointer Move ---

    def pointer_move(self, event: PointerEvent):
        last_x, last_y = self._last_screen
        self._last_screen = (event.x, event.y)
        drag = self.drag

        if isinstance(drag, Panning):
            self.viewport.pan(event.x - last_x, event.y - last_y)

        elif isinstance(drag, MovingNodes):
            zoom = self.viewport.zoom
            dx = (event.x - drag.press_x) / zoom
            dy = (event.y - drag.press_y) / zoom
            for node_id, (ox, oy) in drag.origins.items():
                self.store.update_node(node_id, x=ox + dx, y=oy + dy)

        elif isinstance(drag, Resizing):
            self._apply_resize(drag, event.x, event.y)

        elif isinstance(drag, RubberBand):
            current = self.viewport.screen_to_canvas(event.x, event.y)
            self._set_drag(replace(drag, current=current))

        self.cursor = self.viewport.screen_to_canvas(event.x, event.y)

    def _apply_resize(self, drag: Resizing, sx: float, sy: float):
        node = self.store.get_node(drag.node_id)
        if node is None:
            self._set_drag(IDLE)
            return

        zoom = self.viewport.zoom
        dx = (sx - drag.press_x) / zoom
        dy = (sy - drag.press_y) / zoom
        x, y, width, height = drag.origin
        side_x, side_y = RESIZE_SIDES[drag.edge]
        min_height = min_height_for(node.kind)

        new_x, new_y, new_width, new_height = x, y, width, height
        if side_x == 1:
            new_width = max(MIN_DIMENSION, width + dx)
        elif side_x == -1:
            new_width = max(MIN_DIMENSION, width - dx)
            new_x = x + (width - new_width)
        if side_y == 1:
            new_height = max(min_height, height + dy)
        elif side_y == -1:
            new_height = max(min_height, height - dy)
            new_y = y + (height - new_height)

        self.store.update_node(node.id, x=new_x, y=new_y, width=new_width, height=new_height)

    # --- Pointer Up ---

    def pointer_up(self, event: PointerEvent):
        self._last_screen = (event.x, event.y)
        self.cursor = self.viewport.screen_to_canvas(event.x, event.y)
        drag = self.drag
        if isinstance(drag, RubberBand):
            rect = Rect.from_corners(*drag.anchor, *drag.current)
            self.selection.rubber_band_select(rect, self.store.nodes, additive=drag.additive)
        self._set_drag(IDLE)

    # --- Keyboard ---

    def key_down(self, event: KeyEvent):
        """Global shortcuts. Ignored while a text field has focus."""
        if event.editing_text:
            return

        key = event.key
        if key == "Escape":
            self.selection.clear()
            self.pending_connection_source = None
            self.active_tool = Tool.SELECT
        elif key in DELETE_KEYS:
            self.delete_selected()
        elif event.platform and key.lower() == "a":
            self.selection.select_all(self.store.node_ids)
        elif event.platform and key.lower() == "d":
            self.duplicate_selected()
        elif not (event.platform or event.alt) and key.lower() in TOOL_HOTKEYS:
            self.set_tool(TOOL_HOTKEYS[key.lower()])

    # --- Commands ---

    def set_tool(self, tool: Tool):
        """Activate a tool, abandoning any half-made connector."""
        self.active_tool = tool
        self.pending_connection_source = None

    def delete_nodes(self, node_ids) -> set[str]:
        """Delete nodes, keeping selection, pending source and gestures consistent."""
        removed = self.store.delete_nodes(node_ids)
        if not removed:
            return removed

        self.selection.discard(removed)
        if self.pending_connection_source in removed:
            self.pending_connection_source = None
        if isinstance(self.drag, Resizing) and self.drag.node_id in removed:
            self._set_drag(IDLE)
        elif isinstance(self.drag, MovingNodes):
            origins = {k: v for k, v in self.drag.origins.items() if k not in removed}
            self._set_drag(replace(self.drag, origins=origins))
        if self._expansion_node_id in removed:
            self.cancel_expansion()
        return removed

    def delete_selected(self) -> set[str]:
        return self.delete_nodes(self.selection.ids)

    def duplicate_selected(self) -> list[str]:
        new_ids = self.store.duplicate_nodes(self.selection.ids)
        if new_ids:
            self.selection.set_many(new_ids)
        return new_ids

    def update_node(self, node_id: str, **fields):
        """Edit a node from outside the gesture flow (text, color, shape)."""
        node = self.store.update_node(node_id, **fields)
        if node is not None:
            self._notify_change()
        return node

    def recolor_selected(self, color: NodeColor):
        node_id = self.selection.single()
        if node_id is not None:
            self.update_node(node_id, color=color)

    def set_shape_selected(self, shape: ShapeVariant):
        node_id = self.selection.single()
        if node_id is not None:
            self.update_node(node_id, shape=shape)

    def property_panel_anchor(self) -> Optional[tuple[float, float]]:
        """Screen position of the single selected node's top-center."""
        node_id = self.selection.single()
        if node_id is None:
            return None
        node = self.store.get_node(node_id)
        if node is None:
            return None
        return self.viewport.canvas_to_screen(node.x + node.width / 2, node.y)

    # --- Expansion ---

    @property
    def expanding(self) -> bool:
        """True while an expansion request is in flight."""
        return self._expansion_task is not None

    def request_expansion(self) -> Optional[asyncio.Task]:
        """
        Start expanding the single selected node.

        Must be called from a running event loop. Returns the task, or None
        when there is no single selected node with text, no service, or an
        expansion is already running.
        """
        node_id = self.selection.single()
        node = self.store.get_node(node_id) if node_id else None
        if node is None or not node.text.strip():
            return None
        if self.expansion_service is None:
            logger.info("Expansion unavailable: no expansion service configured")
            return None
        if self._expansion_task is not None:
            logger.debug("Expansion already running for %s", self._expansion_node_id)
            return None

        self._expansion_node_id = node.id
        task = asyncio.get_running_loop().create_task(
            self._run_expansion(node.id, node.text.strip())
        )
        # Runs even when the task is cancelled before it starts
        task.add_done_callback(self._expansion_finished)
        self._expansion_task = task
        self._notify_change()
        return task

    async def expand_selected(self) -> list[str]:
        """Expand the single selected node and wait for the result."""
        task = self.request_expansion()
        if task is None:
            return []
        return await task

    def cancel_expansion(self):
        if self._expansion_task is not None and not self._expansion_task.done():
            logger.info("Cancelling expansion of %s", self._expansion_node_id)
            self._expansion_task.cancel()

    async def _run_expansion(self, node_id: str, topic: str) -> list[str]:
        try:
            response = await self.expansion_service.expand(topic)
        except ExpansionError as e:
            logger.warning("Expansion of %s failed: %s", node_id, e)
            return []
        except Exception:
            logger.exception("Expansion service crashed while expanding %s", node_id)
            return []

        if response is None or not response.sub_topics:
            return []
        return self._apply_expansion(node_id, response)

    def _expansion_finished(self, task: asyncio.Task):
        if task is not self._expansion_task:
            return
        self._expansion_task = None
        self._expansion_node_id = None
        self._notify_change()

    def _apply_expansion(self, node_id: str, response: ExpansionResponse) -> list[str]:
        """Place one shape per subtopic around the source and link them."""
        source = self.store.get_node(node_id)
        if source is None:
            logger.info("Expansion source %s was deleted; discarding result", node_id)
            return []

        cx, cy = expansion_origin(source)
        positions = radial_positions(cx, cy, len(response.sub_topics))
        new_ids = []
        for sub_topic, (px, py) in zip(response.sub_topics, positions):
            child = self.store.create_node(NodeKind.SHAPE, px, py, text=sub_topic.text)
            self.store.create_connector(source.id, child.id)
            new_ids.append(child.id)
        logger.info("Expanded %s into %d nodes", node_id, len(new_ids))
        return new_ids

    # --- Rendering ---

    def snapshot(self) -> RenderSnapshot:
        """Copy of everything a renderer needs for the current frame."""
        nodes = self.store.nodes
        nodes_by_id = {n.id: n for n in nodes}
        connectors = self.store.connectors

        paths = [
            ConnectorPath(
                id=connector.id,
                start_node_id=connector.start_node_id,
                end_node_id=connector.end_node_id,
                start=Point(x=start[0], y=start[1]),
                end=Point(x=end[0], y=end[1]),
            )
            for connector, start, end in route_connectors(nodes_by_id, connectors)
        ]

        cursor = Point(x=self.cursor[0], y=self.cursor[1])
        preview = None
        source = nodes_by_id.get(self.pending_connection_source or "")
        if source is not None:
            sx, sy = anchor_point(source, *self.cursor)
            preview = Segment(start=Point(x=sx, y=sy), end=cursor)

        rubber_band = None
        if isinstance(self.drag, RubberBand):
            rubber_band = Rect.from_corners(*self.drag.anchor, *self.drag.current)

        anchor = self.property_panel_anchor()
        return RenderSnapshot(
            nodes=[n.model_copy() for n in nodes],
            connectors=[c.model_copy() for c in connectors],
            connector_paths=paths,
            viewport=self.viewport.viewport.model_copy(),
            selection=self.selection.ids,
            active_tool=self.active_tool,
            pending_connection_source=self.pending_connection_source,
            cursor=cursor,
            connection_preview=preview,
            rubber_band=rubber_band,
            property_panel_anchor=Point(x=anchor[0], y=anchor[1]) if anchor else None,
            expanding=self.expanding,
        )


def handle_positions(
    x: float,
    y: float,
    width: float,
    height: float
) -> dict[ResizeEdge, tuple[float, float]]:
    """Canvas positions of the 8 resize handles of a box."""
    return {
        edge: (x + width * (side_x + 1) / 2, y + height * (side_y + 1) / 2)
        for edge, (side_x, side_y) in RESIZE_SIDES.items()
    }

"""
Core data models for the canvas.

These models define the canonical schema shared by the engine and its host:
- Nodes placed on the canvas (notes, shapes, free text)
- Connectors linking two nodes (undirected for uniqueness purposes)
- The viewport (pan offset and zoom)
- The render snapshot handed to an external renderer after every event

Kind-dependent sizing and colors live in a single table (KIND_DEFAULTS) so
adding a node kind touches one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


class NodeKind(str, Enum):
    """What a node is on the canvas."""
    NOTE = "note"
    SHAPE = "shape"
    TEXT = "text"


class ShapeVariant(str, Enum):
    """Visual outlines for shape nodes."""
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    PILL = "pill"
    DIAMOND = "diamond"


class NodeColor(str, Enum):
    """Color tags a renderer maps onto its palette."""
    YELLOW = "yellow"
    BLUE = "blue"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    WHITE = "white"
    TRANSPARENT = "transparent"


class Tool(str, Enum):
    """Tools the user can activate from the toolbar."""
    SELECT = "select"
    PAN = "pan"
    NOTE = "note"
    SHAPE = "shape"
    TEXT = "text"
    CONNECTOR = "connector"


class ResizeEdge(str, Enum):
    """The 8 grab points around a node's bounding box."""
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"


# Placement tools create a node of the matching kind
PLACEMENT_TOOLS: dict[Tool, NodeKind] = {
    Tool.NOTE: NodeKind.NOTE,
    Tool.SHAPE: NodeKind.SHAPE,
    Tool.TEXT: NodeKind.TEXT,
}

MIN_DIMENSION = 50.0
DEFAULT_MIN_HEIGHT = 80.0


@dataclass(frozen=True)
class KindDefaults:
    """Creation size, color and minimum height for one node kind."""
    width: float
    height: float
    color: NodeColor
    min_height: float


KIND_DEFAULTS: dict[NodeKind, KindDefaults] = {
    NodeKind.NOTE: KindDefaults(width=200, height=120, color=NodeColor.YELLOW, min_height=120),
    NodeKind.SHAPE: KindDefaults(width=160, height=90, color=NodeColor.WHITE, min_height=60),
    NodeKind.TEXT: KindDefaults(width=300, height=40, color=NodeColor.TRANSPARENT, min_height=30),
}


def min_height_for(kind: NodeKind) -> float:
    """Smallest height a node of this kind may take."""
    defaults = KIND_DEFAULTS.get(kind)
    kind_min = defaults.min_height if defaults else DEFAULT_MIN_HEIGHT
    return max(MIN_DIMENSION, kind_min)


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex}"


def generate_connector_id() -> str:
    """Generate a unique connector ID."""
    return f"c{uuid.uuid4().hex}"


class Node(BaseModel):
    """A node on the canvas. (x, y) is the top-left corner in canvas space."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_node_id)
    kind: NodeKind = NodeKind.SHAPE
    shape: ShapeVariant = ShapeVariant.RECTANGLE  # only meaningful for shapes
    x: float = 0
    y: float = 0
    width: float = 160
    height: float = 90
    text: str = ""
    color: NodeColor = NodeColor.WHITE

    def center(self) -> tuple[float, float]:
        """Get the center point of the node."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def contains_point(self, px: float, py: float) -> bool:
        """Check if a canvas point is inside this node."""
        return (self.x <= px <= self.x + self.width and
                self.y <= py <= self.y + self.height)

    @property
    def outline(self) -> ShapeVariant:
        """The outline connectors route against."""
        if self.kind == NodeKind.SHAPE:
            return self.shape
        return ShapeVariant.RECTANGLE


class Connector(BaseModel):
    """
    A connector between two nodes.

    Stored directed (start -> end) but unique per unordered pair.
    """
    id: str = Field(default_factory=generate_connector_id)
    start_node_id: str
    end_node_id: str

    def pair(self) -> frozenset[str]:
        """The undirected endpoint pair."""
        return frozenset((self.start_node_id, self.end_node_id))

    def touches(self, node_id: str) -> bool:
        return node_id in (self.start_node_id, self.end_node_id)


class Viewport(BaseModel):
    """Pan offset (screen pixels) and zoom factor."""
    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = 1.0


class Point(BaseModel):
    x: float
    y: float


class Rect(BaseModel):
    """An axis-aligned rectangle in canvas space."""
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_corners(cls, ax: float, ay: float, bx: float, by: float) -> "Rect":
        """Normalize two arbitrary corners into left/top/right/bottom."""
        return cls(left=min(ax, bx), top=min(ay, by),
                   right=max(ax, bx), bottom=max(ay, by))


class Segment(BaseModel):
    """A straight line between two canvas points."""
    start: Point
    end: Point


class ConnectorPath(BaseModel):
    """A connector with its anchored endpoints resolved."""
    id: str
    start_node_id: str
    end_node_id: str
    start: Point
    end: Point


class RenderSnapshot(BaseModel):
    """
    Everything a renderer needs to draw one frame.

    The renderer reads this; it never mutates engine state directly.
    """
    nodes: list[Node]
    connectors: list[Connector]
    connector_paths: list[ConnectorPath]
    viewport: Viewport
    selection: list[str]
    active_tool: Tool
    pending_connection_source: Optional[str] = None
    cursor: Point
    connection_preview: Optional[Segment] = None
    rubber_band: Optional[Rect] = None
    property_panel_anchor: Optional[Point] = None
    expanding: bool = False


# --- API Request Models ---

class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    kind: Optional[NodeKind] = None
    shape: Optional[ShapeVariant] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    text: Optional[str] = None
    color: Optional[NodeColor] = None

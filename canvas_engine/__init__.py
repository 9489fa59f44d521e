"""
Canvas Engine - Geometry and interaction core of the diagram canvas.

This package provides the coordinate transform, the node/connector store,
shape-aware connector anchoring, selection and the pointer/keyboard state
machine. Rendering is left to whoever consumes the render snapshots.
"""

from .models import (
    # Enums
    NodeKind,
    ShapeVariant,
    NodeColor,
    Tool,
    ResizeEdge,
    # Core models
    Node,
    Connector,
    Viewport,
    Point,
    Rect,
    RenderSnapshot,
    # Request models (for API)
    UpdateNodeRequest,
    # Tables
    KIND_DEFAULTS,
)

from .viewport import ViewportTransform
from .scene import SceneStore
from .anchors import anchor_point, boundary_point, connector_endpoints
from .selection import SelectionManager, rubber_band_select
from .events import InputBus, KeyEvent, PointerButton, PointerEvent, WheelEvent
from .controller import InteractionController
from .expansion import ExpansionError, ExpansionResponse, HttpExpansionClient
from .validation import validate_scene, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "NodeKind",
    "ShapeVariant",
    "NodeColor",
    "Tool",
    "ResizeEdge",
    # Models
    "Node",
    "Connector",
    "Viewport",
    "Point",
    "Rect",
    "RenderSnapshot",
    "UpdateNodeRequest",
    "KIND_DEFAULTS",
    # Engine components
    "ViewportTransform",
    "SceneStore",
    "SelectionManager",
    "InteractionController",
    # Geometry
    "anchor_point",
    "boundary_point",
    "connector_endpoints",
    "rubber_band_select",
    # Input
    "InputBus",
    "PointerEvent",
    "PointerButton",
    "WheelEvent",
    "KeyEvent",
    # Expansion
    "HttpExpansionClient",
    "ExpansionResponse",
    "ExpansionError",
    # Validation
    "validate_scene",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]

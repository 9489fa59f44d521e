"""
Canvas Server - FastAPI Application

Hosts one canvas engine and exposes it to an external renderer:
- REST endpoints that feed pointer, wheel and keyboard events to the engine
- Property-panel endpoints (edit text/color/shape, trigger expansion)
- WebSocket endpoint pushing a render snapshot after every change

All handlers run on the single asyncio event loop, which makes it the only
writer of engine state.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from canvas_engine import (
    InputBus, InteractionController, HttpExpansionClient,
    KeyEvent, PointerEvent, WheelEvent,
    NodeColor, NodeKind, ShapeVariant, Tool, UpdateNodeRequest,
    validate_scene, validation_summary,
)
from canvas_engine.config import load_settings

from .websocket_manager import ws_manager

logger = logging.getLogger(__name__)

settings = load_settings()

input_bus = InputBus()
engine = InteractionController(expansion_service=HttpExpansionClient.from_settings(settings))
engine.attach(input_bus)


# --- Async change notification ---
# Bridge between sync engine callbacks and async WebSocket broadcasts

# Created inside the lifespan so it belongs to the serving event loop
_change_event: asyncio.Event | None = None


def on_engine_change():
    """Callback for engine changes - sets event for async handler."""
    if _change_event is not None:
        _change_event.set()


engine.on_change(on_engine_change)


async def change_broadcaster(changed: asyncio.Event):
    """Background task that broadcasts snapshots to WebSocket clients."""
    while True:
        await changed.wait()
        changed.clear()
        await ws_manager.publish(engine.snapshot())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event
    _change_event = asyncio.Event()
    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    # Cleanup
    engine.cancel_expansion()
    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass
    _change_event = None


# --- FastAPI App ---

app = FastAPI(
    title="Canvas Engine API",
    description="Interaction engine for the diagram canvas",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _snapshot() -> dict:
    return engine.snapshot().model_dump(mode="json")


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    service = engine.expansion_service
    return {
        "status": "ok",
        "connections": ws_manager.connection_count,
        "expansion_available": service is not None and getattr(service, "available", True),
    }


# --- Scene State ---

@app.get("/api/scene")
async def get_scene():
    """Get the current render snapshot."""
    return _snapshot()


@app.get("/api/scene/validate")
async def validate_current_scene():
    """
    Validate the scene for integrity issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = validate_scene(engine.store, engine.selection.ids)
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Input Events ---

@app.post("/api/events/pointer")
async def pointer_event(event: PointerEvent):
    """Feed a pointer down/move/up event to the engine."""
    input_bus.publish(event)
    return _snapshot()


@app.post("/api/events/wheel")
async def wheel_event(event: WheelEvent):
    """Feed a wheel event to the engine."""
    input_bus.publish(event)
    return _snapshot()


@app.post("/api/events/key")
async def key_event(event: KeyEvent):
    """Feed a key press to the engine."""
    input_bus.publish(event)
    return _snapshot()


# --- Toolbar ---

class ToolRequest(BaseModel):
    tool: Tool


@app.post("/api/tool")
async def set_tool(request: ToolRequest):
    """Activate a toolbar tool."""
    engine.set_tool(request.tool)
    on_engine_change()
    return _snapshot()


# --- Property Panel ---

@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest):
    """Update a node (text edits, recolor, shape change)."""
    node = engine.update_node(node_id, **request.model_dump(exclude_none=True))
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "node": node.model_dump(mode="json")}


@app.post("/api/expand")
async def expand_selected():
    """Start expanding the single selected node into subtopics."""
    task = engine.request_expansion()
    return {"started": task is not None, "expanding": engine.expanding}


# --- Enums for Frontend ---

@app.get("/api/enums")
async def get_enums():
    """Get available node kinds, shapes, colors and tools."""
    return {
        "kinds": [k.value for k in NodeKind],
        "shapes": [s.value for s in ShapeVariant],
        "colors": [c.value for c in NodeColor],
        "tools": [t.value for t in Tool],
    }


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Renderers receive the current frame on connect, then a
    scene_updated event after every change.
    """
    await ws_manager.connect(websocket, engine.snapshot())

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)


def main():
    """Run the server with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


# --- Run with uvicorn ---

if __name__ == "__main__":
    main()

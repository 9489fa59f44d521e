import pytest

from canvas_engine import (
    InputBus, InteractionController, KeyEvent, NodeColor, NodeKind, PointerButton,
    PointerEvent, Rect, ShapeVariant, Tool, WheelEvent,
)
from canvas_engine.drag_state import IDLE, MovingNodes, Panning, Resizing, RubberBand


def press(x, y, **kwargs):
    return PointerEvent(type="down", x=x, y=y, **kwargs)


def move(x, y, **kwargs):
    return PointerEvent(type="move", x=x, y=y, **kwargs)


def release(x, y, **kwargs):
    return PointerEvent(type="up", x=x, y=y, **kwargs)


def click(bus, x, y, **kwargs):
    bus.publish(press(x, y, **kwargs))
    bus.publish(release(x, y, **kwargs))


def drag(bus, start, end, **kwargs):
    bus.publish(press(*start, **kwargs))
    bus.publish(move(*end, **kwargs))
    bus.publish(release(*end, **kwargs))


def place(controller, bus, tool, x, y, **kwargs):
    controller.set_tool(tool)
    click(bus, x, y, **kwargs)
    return controller.store.nodes[-1]


# --- Placement ---

def test_placement_is_single_use(controller, bus):
    node = place(controller, bus, Tool.SHAPE, 100, 100)

    assert (node.x, node.y, node.width, node.height) == (20, 55, 160, 90)
    assert controller.selection.ids == [node.id]
    assert controller.active_tool == Tool.SELECT
    assert controller.drag is IDLE


def test_shift_keeps_placement_tool(controller, bus):
    controller.set_tool(Tool.NOTE)
    click(bus, 0, 0, shift=True)
    click(bus, 500, 500, shift=True)

    assert [n.kind for n in controller.store.nodes] == [NodeKind.NOTE, NodeKind.NOTE]
    assert controller.active_tool == Tool.NOTE
    assert controller.selection.ids == [controller.store.nodes[-1].id]


# --- Resize ---

def test_resize_south_east_handle(controller, bus):
    node = place(controller, bus, Tool.SHAPE, 100, 100)

    bus.publish(press(180, 145))
    assert isinstance(controller.drag, Resizing)
    bus.publish(move(212, 163))
    bus.publish(release(212, 163))

    assert (node.x, node.y, node.width, node.height) == (20, 55, 192, 108)
    assert controller.drag is IDLE


def test_resize_north_west_clamps_and_keeps_opposite_edge(controller, bus):
    node = place(controller, bus, Tool.SHAPE, 100, 100)

    drag(bus, (20, 55), (520, 555))

    assert (node.width, node.height) == (50, 60)
    assert node.x + node.width == 180
    assert node.y + node.height == 145


def test_resize_edge_handle_changes_one_dimension(controller, bus):
    node = place(controller, bus, Tool.SHAPE, 100, 100)

    drag(bus, (180, 100), (230, 140))

    assert (node.x, node.y, node.width, node.height) == (20, 55, 210, 90)


def test_resize_uses_canvas_delta(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.selection.set_single(node.id)
    controller.viewport.zoom_at(1.0)

    drag(bus, (360, 290), (424, 326))

    assert (node.width, node.height) == (192, 108)


def test_handles_only_on_selected_nodes(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)

    bus.publish(press(180, 145))

    assert isinstance(controller.drag, MovingNodes)
    assert controller.selection.ids == [node.id]


# --- Rubber band ---

def test_rubber_band_selects_overlapping(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    far = controller.store.create_node(NodeKind.SHAPE, 1000, 1000)

    bus.publish(press(0, 0))
    bus.publish(move(250, 250))
    assert controller.snapshot().rubber_band == Rect(left=0, top=0, right=250, bottom=250)
    bus.publish(release(250, 250))

    assert controller.selection.ids == [node.id]
    assert far.id not in controller.selection
    assert controller.snapshot().rubber_band is None


def test_rubber_band_replaces_unless_shift(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    b = controller.store.create_node(NodeKind.SHAPE, 1000, 1000)
    controller.selection.set_single(b.id)

    drag(bus, (0, 0), (250, 250), shift=True)
    assert set(controller.selection.ids) == {a.id, b.id}

    controller.selection.set_single(b.id)
    drag(bus, (0, 0), (250, 250))
    assert controller.selection.ids == [a.id]


def test_empty_click_clears_selection(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.selection.set_single(node.id)

    click(bus, -500, -500)

    assert controller.selection.ids == []


# --- Moving ---

def test_move_is_absolute_from_press(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)

    bus.publish(press(100, 100))
    bus.publish(move(130, 90))
    assert (node.x, node.y) == (50, 45)
    bus.publish(move(140, 100))
    bus.publish(release(140, 100))

    assert (node.x, node.y) == (60, 55)


def test_move_scales_by_zoom(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.viewport.zoom_at(1.0)

    drag(bus, (200, 200), (260, 240))

    assert (node.x, node.y) == (50, 75)


def test_shift_click_moves_whole_selection(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    b = controller.store.create_node(NodeKind.SHAPE, 500, 100)

    click(bus, 100, 100)
    drag(bus, (500, 100), (510, 120), shift=True)

    assert set(controller.selection.ids) == {a.id, b.id}
    assert (a.x, a.y) == (30, 75)
    assert (b.x, b.y) == (430, 75)


def test_shift_click_toggles_off(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.selection.set_single(a.id)

    click(bus, 100, 100, shift=True)

    assert controller.selection.ids == []


def test_alt_drag_duplicates_and_moves_clone(controller, bus):
    original = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.selection.set_single(original.id)

    drag(bus, (100, 100), (110, 110), alt=True)

    assert len(controller.store) == 2
    clone = controller.store.nodes[-1]
    assert (original.x, original.y) == (20, 55)
    assert (clone.x, clone.y) == (50, 85)
    assert controller.selection.ids == [clone.id]


def test_alt_drag_on_unselected_node_clones_only_it(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    b = controller.store.create_node(NodeKind.SHAPE, 500, 100)
    controller.selection.set_single(a.id)

    click(bus, 500, 100, alt=True)

    assert len(controller.store) == 3
    clone = controller.store.nodes[-1]
    assert (clone.x, clone.y) == (b.x + 20, b.y + 20)
    assert controller.selection.ids == [clone.id]


# --- Panning and wheel ---

def test_middle_button_pans_over_any_tool(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.set_tool(Tool.NOTE)

    bus.publish(press(100, 100, button=PointerButton.MIDDLE))
    assert isinstance(controller.drag, Panning)
    bus.publish(move(130, 90, button=PointerButton.MIDDLE))
    bus.publish(move(140, 95, button=PointerButton.MIDDLE))
    bus.publish(release(140, 95, button=PointerButton.MIDDLE))

    assert (controller.viewport.viewport.pan_x, controller.viewport.viewport.pan_y) == (40, -5)
    assert len(controller.store) == 1


def test_pan_tool_pans(controller, bus):
    controller.set_tool(Tool.PAN)
    drag(bus, (0, 0), (-25, 60))
    assert (controller.viewport.viewport.pan_x, controller.viewport.viewport.pan_y) == (-25, 60)


def test_secondary_button_is_ignored(controller, bus):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.selection.set_single(node.id)

    bus.publish(press(-400, -400, button=PointerButton.SECONDARY))

    assert controller.drag is IDLE
    assert controller.selection.ids == [node.id]


def test_wheel_events(controller, bus):
    bus.publish(WheelEvent(delta_x=10, delta_y=20))
    assert (controller.viewport.viewport.pan_x, controller.viewport.viewport.pan_y) == (-10, -20)

    bus.publish(WheelEvent(delta_y=-1000, ctrl=True))
    assert controller.viewport.zoom == pytest.approx(2.0)


# --- Connector tool ---

def test_connector_flow(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    b = controller.store.create_node(NodeKind.SHAPE, 400, 0)
    controller.set_tool(Tool.CONNECTOR)

    click(bus, 0, 0)
    assert controller.pending_connection_source == a.id
    assert controller.selection.ids == [a.id]

    # Same node again keeps the source pending
    click(bus, 10, 10)
    assert controller.pending_connection_source == a.id
    assert controller.store.connectors == []

    click(bus, 400, 0)
    assert controller.pending_connection_source is None
    assert controller.active_tool == Tool.SELECT
    [connector] = controller.store.connectors
    assert (connector.start_node_id, connector.end_node_id) == (a.id, b.id)


def test_connector_tool_sticky_with_shift(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.store.create_node(NodeKind.SHAPE, 400, 0)
    controller.set_tool(Tool.CONNECTOR)

    click(bus, 0, 0)
    click(bus, 400, 0, shift=True)

    assert controller.active_tool == Tool.CONNECTOR
    assert len(controller.store.connectors) == 1


def test_connector_duplicate_pair_ignored(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.store.create_node(NodeKind.SHAPE, 400, 0)

    for start, end in [((0, 0), (400, 0)), ((400, 0), (0, 0))]:
        controller.set_tool(Tool.CONNECTOR)
        click(bus, *start)
        click(bus, *end)

    assert len(controller.store.connectors) == 1


def test_connector_press_on_canvas_resets(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.set_tool(Tool.CONNECTOR)
    click(bus, 0, 0)

    click(bus, 1000, 1000)

    assert controller.pending_connection_source is None
    assert controller.selection.ids == []
    assert controller.active_tool == Tool.CONNECTOR


def test_connection_preview_follows_cursor(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.set_tool(Tool.CONNECTOR)
    click(bus, 0, 0)

    bus.publish(move(300, 0))
    preview = controller.snapshot().connection_preview

    assert (preview.start.x, preview.start.y) == (80, 0)
    assert (preview.end.x, preview.end.y) == (300, 0)


def test_changing_tool_drops_pending_source(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.set_tool(Tool.CONNECTOR)
    click(bus, 0, 0)

    controller.set_tool(Tool.SELECT)

    assert controller.pending_connection_source is None
    assert controller.snapshot().connection_preview is None


# --- Keyboard ---

def test_escape_resets(controller, bus):
    controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.set_tool(Tool.CONNECTOR)
    click(bus, 0, 0)

    bus.publish(KeyEvent(key="Escape"))

    assert controller.selection.ids == []
    assert controller.pending_connection_source is None
    assert controller.active_tool == Tool.SELECT


@pytest.mark.parametrize("key", ["Delete", "Backspace"])
def test_delete_key_cascades(controller, bus, key):
    a = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    b = controller.store.create_node(NodeKind.SHAPE, 400, 0)
    controller.store.create_connector(a.id, b.id)
    controller.selection.set_single(a.id)

    bus.publish(KeyEvent(key=key))

    assert controller.store.node_ids == [b.id]
    assert controller.store.connectors == []
    assert controller.selection.ids == []


def test_shortcuts_ignored_while_editing_text(controller, bus):
    node = controller.store.create_node(NodeKind.NOTE, 0, 0)
    controller.selection.set_single(node.id)

    for key in ["Delete", "Backspace", "Escape", "r"]:
        bus.publish(KeyEvent(key=key, editing_text=True))
    bus.publish(KeyEvent(key="a", ctrl=True, editing_text=True))

    assert node.id in controller.store
    assert controller.selection.ids == [node.id]
    assert controller.active_tool == Tool.SELECT


@pytest.mark.parametrize("modifier", ["ctrl", "meta"])
def test_select_all(controller, bus, modifier):
    ids = [controller.store.create_node(NodeKind.SHAPE, i * 300, 0).id for i in range(3)]

    bus.publish(KeyEvent(key="a", **{modifier: True}))

    assert controller.selection.ids == ids


def test_duplicate_shortcut(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.selection.set_single(a.id)

    bus.publish(KeyEvent(key="d", ctrl=True))

    assert len(controller.store) == 2
    clone = controller.store.nodes[-1]
    assert controller.selection.ids == [clone.id]
    assert (clone.x, clone.y) == (a.x + 20, a.y + 20)


@pytest.mark.parametrize("key,tool", [
    ("v", Tool.SELECT), ("h", Tool.PAN), ("s", Tool.NOTE),
    ("r", Tool.SHAPE), ("T", Tool.TEXT), ("c", Tool.CONNECTOR),
])
def test_tool_hotkeys(controller, bus, key, tool):
    controller.set_tool(Tool.PAN if tool != Tool.PAN else Tool.SELECT)
    bus.publish(KeyEvent(key=key))
    assert controller.active_tool == tool


def test_hotkeys_need_no_modifier(controller, bus):
    bus.publish(KeyEvent(key="c", ctrl=True))
    bus.publish(KeyEvent(key="r", alt=True))
    assert controller.active_tool == Tool.SELECT


# --- Deletion during gestures ---

def test_deleting_resized_node_ends_gesture(controller, bus):
    node = place(controller, bus, Tool.SHAPE, 100, 100)

    bus.publish(press(180, 145))
    bus.publish(KeyEvent(key="Delete"))
    bus.publish(move(300, 300))

    assert controller.drag is IDLE
    assert len(controller.store) == 0
    assert node.id not in controller.selection


def test_deleting_pending_source_clears_it(controller, bus):
    a = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    controller.set_tool(Tool.CONNECTOR)
    click(bus, 0, 0)

    controller.delete_nodes([a.id])

    assert controller.pending_connection_source is None


# --- Property panel ---

def test_property_panel_anchor(controller):
    node = controller.store.create_node(NodeKind.SHAPE, 100, 100)
    controller.viewport.pan(10, 20)
    controller.viewport.zoom_at(1.0)

    assert controller.property_panel_anchor() is None

    controller.selection.set_single(node.id)
    assert controller.property_panel_anchor() == (210, 130)
    assert controller.snapshot().property_panel_anchor.x == 210

    other = controller.store.create_node(NodeKind.SHAPE, 500, 500)
    controller.selection.toggle(other.id)
    assert controller.property_panel_anchor() is None


def test_recolor_and_reshape_single_selection(controller):
    node = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    calls = []
    controller.on_change(lambda: calls.append(1))

    controller.recolor_selected(NodeColor.PINK)
    assert node.color == NodeColor.WHITE

    controller.selection.set_single(node.id)
    controller.recolor_selected(NodeColor.PINK)
    controller.set_shape_selected(ShapeVariant.DIAMOND)

    assert node.color == NodeColor.PINK
    assert node.shape == ShapeVariant.DIAMOND
    assert len(calls) == 2


def test_update_node_missing_is_none(controller):
    assert controller.update_node("missing", text="x") is None


# --- Snapshot and lifecycle ---

def test_snapshot_is_a_copy(controller):
    a = controller.store.create_node(NodeKind.SHAPE, 0, 0)
    b = controller.store.create_node(NodeKind.SHAPE, 400, 0)
    controller.store.create_connector(a.id, b.id)

    snapshot = controller.snapshot()
    snapshot.nodes[0].x = 9999

    assert a.x == -80
    [path] = snapshot.connector_paths
    assert (path.start.x, path.start.y) == (80, 0)
    assert (path.end.x, path.end.y) == (320, 0)
    assert snapshot.active_tool == Tool.SELECT
    assert snapshot.expanding is False


def test_change_callbacks_fire_per_event(controller, bus):
    calls = []
    controller.on_change(lambda: calls.append(1))

    click(bus, 0, 0)
    bus.publish(KeyEvent(key="v"))

    assert len(calls) == 3


def test_detach_stops_delivery(controller, bus):
    assert bus.subscriber_count == 1
    controller.detach()
    assert bus.subscriber_count == 0
    assert not controller.attached

    controller.set_tool(Tool.SHAPE)
    click(bus, 100, 100)

    assert len(controller.store) == 0


def test_engines_do_not_share_listeners():
    first, second = InteractionController(), InteractionController()
    first_bus, second_bus = InputBus(), InputBus()
    first.attach(first_bus)
    second.attach(second_bus)

    first_bus.publish(KeyEvent(key="r"))

    assert first.active_tool == Tool.SHAPE
    assert second.active_tool == Tool.SELECT

    # Re-attaching moves the subscription
    first.attach(second_bus)
    assert first_bus.subscriber_count == 0
    assert second_bus.subscriber_count == 2


def test_rubber_band_drag_state_recorded(controller, bus):
    bus.publish(press(10, 10, shift=True))
    assert controller.drag == RubberBand(anchor=(10, 10), current=(10, 10), additive=True)


def test_moving_text_node_keeps_its_size(controller, bus):
    text = controller.store.create_node(NodeKind.TEXT, 200, 200)

    drag(bus, (200, 200), (230, 210))

    assert (text.x, text.y, text.width, text.height) == (80, 190, 300, 40)


def test_editing_text_node_keeps_its_size(controller):
    text = controller.store.create_node(NodeKind.TEXT, 200, 200)

    controller.update_node(text.id, text="hello")

    assert text.text == "hello"
    assert text.height == 40

import pytest

from creative_studio.catalog import catalog
from creative_studio.editor.drag import DragController, PointerEvents
from creative_studio.editor.geometry import GeometryEngine
from creative_studio.editor.layers import LayerStore
from creative_studio.editor.selection import SelectionModel


@pytest.fixture
def rig():
    layers = LayerStore()
    selection = SelectionModel(layers)
    geometry = GeometryEngine(catalog.lookup("facebook-feed"))
    geometry.resize(600, 300, left=100, top=50)
    events = PointerEvents()
    drag = DragController(layers, geometry, selection)
    drag.attach(events)
    yield layers, selection, geometry, events, drag
    drag.close()


def _client(geometry, nx, ny):
    f = geometry.frame
    return f.left + nx * f.rendered_width, f.top + ny * f.rendered_height


def test_drag_follows_pointer_and_clamps(rig):
    """Grab at the anchor, move to 0.9, then past the edge."""
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()

    assert drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    assert drag.session.offset_x == pytest.approx(0)
    assert drag.session.offset_y == pytest.approx(0)

    events.move(*_client(geometry, 0.9, 0.9))
    assert layers.get(layer_id).x == pytest.approx(0.9)
    assert layers.get(layer_id).y == pytest.approx(0.9)

    events.move(*_client(geometry, 1.2, 1.2))
    assert layers.get(layer_id).position == (1.0, 1.0)


def test_grab_offset_is_preserved(rig):
    """The layer keeps its distance to the pointer instead of jumping."""
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    layers.move_to(layer_id, 0.3, 0.4)

    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.35, 0.5))
    assert drag.session.offset_x == pytest.approx(0.05)
    assert drag.session.offset_y == pytest.approx(0.1)

    events.move(*_client(geometry, 0.6, 0.2))
    assert layers.get(layer_id).x == pytest.approx(0.55)
    assert layers.get(layer_id).y == pytest.approx(0.1)

    events.move(*_client(geometry, 0.01, 0.01))
    assert layers.get(layer_id).position == (0.0, 0.0)


def test_pointer_down_selects_layer(rig):
    layers, selection, geometry, events, drag = rig
    a = layers.add()
    b = layers.add()
    selection.select(b)
    drag.pointer_down_on_layer(a, *_client(geometry, 0.5, 0.5))
    assert selection.active_id == a


def test_pointer_up_anywhere_ends_session(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    events.up(-5000, -5000)
    assert not drag.is_dragging
    events.move(*_client(geometry, 0.1, 0.1))
    assert layers.get(layer_id).position == (0.5, 0.5)


def test_moves_outside_canvas_still_update(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    events.move(5000, -5000)
    assert layers.get(layer_id).position == (1.0, 0.0)


def test_canvas_pointer_down_clears_selection_without_drag(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    selection.select(layer_id)
    drag.pointer_down_on_canvas()
    assert selection.active_id is None
    assert not drag.is_dragging


def test_pointer_down_on_missing_layer_is_ignored(rig):
    layers, selection, geometry, events, drag = rig
    assert drag.pointer_down_on_layer("missing", 10, 10) is False
    assert not drag.is_dragging


def test_moves_without_session_do_nothing(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    events.move(*_client(geometry, 0.1, 0.1))
    assert layers.get(layer_id).position == (0.5, 0.5)


def test_zero_size_frame_ignores_moves(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    geometry.resize(0, 0)
    events.move(10, 10)
    assert layers.get(layer_id).position == (0.5, 0.5)


def test_close_detaches_global_listeners(rig):
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    drag.close()
    assert len(events.moves) == 0
    assert len(events.ups) == 0
    events.move(*_client(geometry, 0.9, 0.9))
    assert layers.get(layer_id).position == (0.5, 0.5)


def test_drag_survives_resize_mid_session(rig):
    """Offsets are fractions, so a resize mid-drag keeps the grab point."""
    layers, selection, geometry, events, drag = rig
    layer_id = layers.add()
    drag.pointer_down_on_layer(layer_id, *_client(geometry, 0.5, 0.5))
    geometry.resize(1200, 600, left=0, top=0)
    events.move(*_client(geometry, 0.25, 0.75))
    assert layers.get(layer_id).x == pytest.approx(0.25)
    assert layers.get(layer_id).y == pytest.approx(0.75)

"""Pure canvas geometry: viewport, z-order, resize, rotation and column moves."""

import uuid

import pytest

from aliice.db.enums import ElementType, ResizeHandle
from aliice.db.models import DanoteElement
from aliice.services import canvas


def _el(type_=ElementType.NOTE, x=0.0, y=0.0, w=100.0, h=50.0, z=1, parent_id=None, meta=None):
    return DanoteElement(
        id=uuid.uuid4(),
        board_id=uuid.uuid4(),
        type=type_.value,
        x=x,
        y=y,
        width=w,
        height=h,
        z_index=z,
        parent_id=parent_id,
        meta=meta or {},
    )


# =============================================================================
# Viewport
# =============================================================================

def test_screen_canvas_transforms_are_inverse():
    viewport = canvas.Viewport(offset_x=40, offset_y=-20, scale=2.0)
    cx, cy = canvas.screen_to_canvas(240, 180, viewport, origin_x=100, origin_y=0)
    assert (cx, cy) == (50.0, 100.0)
    assert canvas.canvas_to_screen(cx, cy, viewport, origin_x=100, origin_y=0) == (240.0, 180.0)


@pytest.mark.parametrize("scale,expected", [(0.01, 0.1), (1.5, 1.5), (10, 3.0)])
def test_clamp_zoom(scale, expected):
    assert canvas.clamp_zoom(scale) == expected


# =============================================================================
# Z-order
# =============================================================================

def test_front_and_back():
    assert canvas.bring_to_front([1, 5, 3]) == 6
    assert canvas.send_to_back([2, 5, 3]) == 1
    assert canvas.send_to_back([0, 4]) == 0
    assert canvas.next_z_index([]) == 1


def test_bring_forward_jumps_above_next_neighbour():
    a, b, c = _el(z=1), _el(z=4), _el(z=7)
    assert canvas.bring_forward([a, b, c], a) == 5
    assert canvas.bring_forward([a, b, c], c) == 7


def test_send_backward_floors_at_zero():
    a, b, c = _el(z=0), _el(z=4), _el(z=7)
    assert canvas.send_backward([a, b, c], c) == 3
    assert canvas.send_backward([a, b, c], b) == 0
    assert canvas.send_backward([a, b, c], a) == 0


def test_forward_with_ties_keeps_list_order():
    a, b = _el(z=2), _el(z=2)
    # b sorts after a, so a moves above b and b is already topmost
    assert canvas.bring_forward([a, b], a) == 3
    assert canvas.bring_forward([a, b], b) == 2


# =============================================================================
# Resize / rotate
# =============================================================================

def test_resize_east_south_grows_far_edges():
    el = _el(x=10, y=10, w=100, h=50)
    assert canvas.resize(el, ResizeHandle.SE, 30, 20) == {
        "x": 10, "y": 10, "width": 130, "height": 70,
    }


def test_resize_west_north_moves_origin():
    el = _el(x=10, y=10, w=100, h=50)
    result = canvas.resize(el, "nw", 30, 10)
    assert result == {"x": 40, "y": 20, "width": 70, "height": 40}


def test_resize_clamps_to_minimum():
    el = _el(x=0, y=0, w=100, h=50)
    result = canvas.resize(el, ResizeHandle.W, 500, 0)
    assert result["width"] == canvas.MIN_ELEMENT_SIZE
    assert result["x"] == 80
    assert canvas.resize(el, ResizeHandle.S, 0, -500)["height"] == canvas.MIN_ELEMENT_SIZE


def test_rotation_angle_relative_to_center():
    el = _el(x=0, y=0, w=100, h=100)
    # pointer directly above centre -> 0 degrees
    assert canvas.rotation_angle(el, 50, -100) == pytest.approx(0)
    # pointer to the right -> 90 degrees
    assert canvas.rotation_angle(el, 200, 50) == pytest.approx(90)


def test_creation_defaults():
    assert canvas.creation_defaults(ElementType.NOTE) == {
        "width": 240.0, "height": 160.0, "color": "#fef3c7",
    }
    assert canvas.creation_defaults(ElementType.CONTAINER) == {
        "width": 320.0, "height": 450.0, "color": "#ffffff",
    }


# =============================================================================
# Move / columns
# =============================================================================

def test_move_line_translates_endpoints():
    line = _el(ElementType.LINE, x=0, y=0, w=100, h=20,
               meta={"startX": 0, "startY": 0, "endX": 100, "endY": 20})
    patch = canvas.move([line], line, 10, 5)
    changes = patch[line.id]
    assert (changes["x"], changes["y"]) == (10, 5)
    assert changes["metadata"] == {"startX": 10, "startY": 5, "endX": 110, "endY": 25}


def test_moving_column_carries_children():
    column = _el(ElementType.COLUMN, x=0, y=0, w=300, h=600)
    child = _el(x=8, y=56, w=284, h=80, parent_id=column.id, meta={"childIndex": 0})
    patch = canvas.move([column, child], column, 100, 50)
    assert patch[column.id]["x"] == 100
    assert (patch[child.id]["x"], patch[child.id]["y"]) == (108, 106)


def test_insert_index_walks_children():
    column = _el(ElementType.COLUMN, x=0, y=0, w=300, h=800)
    first = _el(h=100, parent_id=column.id, meta={"childIndex": 0})
    second = _el(h=100, parent_id=column.id, meta={"childIndex": 1})
    children = [first, second]
    # first slot centre at 56 + 50 = 106
    assert canvas.insert_index(column, children, 100) == 0
    # second slot starts at 56 + 108 = 164, centre 214
    assert canvas.insert_index(column, children, 200) == 1
    assert canvas.insert_index(column, children, 500) == 2


def test_drop_into_column_reparents_and_shifts_siblings():
    column = _el(ElementType.COLUMN, x=0, y=0, w=300, h=800)
    sibling = _el(x=8, y=56, w=284, h=100, parent_id=column.id, meta={"childIndex": 0})
    note = _el(x=600, y=600, w=100, h=40)

    # centre lands at y=60, above the sibling's midpoint
    patch = canvas.move([column, sibling, note], note, 100, 40)

    assert patch[note.id]["parent_id"] == column.id
    assert patch[note.id]["x"] == 8
    assert patch[note.id]["y"] == 56
    assert patch[note.id]["width"] == 284
    assert patch[note.id]["metadata"]["childIndex"] == 0
    assert patch[sibling.id]["metadata"]["childIndex"] == 1


def test_drop_outside_detaches_from_column():
    column = _el(ElementType.COLUMN, x=0, y=0, w=300, h=800)
    child = _el(x=8, y=56, w=284, h=100, parent_id=column.id, meta={"childIndex": 0})
    other = _el(x=8, y=164, w=284, h=100, parent_id=column.id, meta={"childIndex": 1})

    patch = canvas.move([column, child, other], child, 1000, 1000)

    assert patch[child.id]["parent_id"] is None
    assert "childIndex" not in patch[child.id]["metadata"]
    assert patch[other.id]["metadata"]["childIndex"] == 0


def test_columns_never_nest():
    target = _el(ElementType.COLUMN, x=0, y=0, w=300, h=800)
    dragged = _el(ElementType.COLUMN, x=900, y=0, w=300, h=800)
    assert canvas.find_hovered_column([target, dragged], dragged, 10, 10) is None

"""Canvas geometry for Danote boards.

Pure functions over board elements: coordinate transforms, z-order,
resize/rotate, and column grouping. Nothing here touches the session.
Functions that affect several rows return a patch map
``{element_id: {column: value}}`` which danote_service applies row by row
(``"metadata"`` in a patch is the complete new metadata dict).

Coordinates are unscaled canvas units. The viewport (pan offset + zoom)
only matters when converting pointer positions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence
from uuid import UUID

from aliice.db.enums import ElementType, ResizeHandle, SEGMENT_TYPES
from aliice.db.models import DanoteElement

Patch = dict[UUID, dict[str, Any]]

MIN_ELEMENT_SIZE = 20
MIN_ZOOM = 0.1
MAX_ZOOM = 3.0
DUPLICATE_OFFSET = 20

# Column layout: children stack under a header, separated by padding
COLUMN_HEADER_HEIGHT = 48
COLUMN_PADDING = 8
COLUMN_FIRST_SLOT_OFFSET = COLUMN_HEADER_HEIGHT + COLUMN_PADDING

DEFAULT_SIZE = (240.0, 160.0)
DEFAULT_COLOR = "#fef3c7"
TYPE_DEFAULTS: dict[ElementType, dict[str, Any]] = {
    ElementType.CONTAINER: {"width": 320.0, "height": 450.0, "color": "#ffffff"},
}


# =============================================================================
# Viewport
# =============================================================================

@dataclass
class Viewport:
    """Pan offset (screen px) and zoom scale of a board view."""

    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = 1.0


def clamp_zoom(scale: float) -> float:
    return min(MAX_ZOOM, max(MIN_ZOOM, scale))


def screen_to_canvas(
    screen_x: float,
    screen_y: float,
    viewport: Viewport,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> tuple[float, float]:
    """Inverse-transform a pointer position. origin is the canvas element's page offset."""
    return (
        (screen_x - origin_x - viewport.offset_x) / viewport.scale,
        (screen_y - origin_y - viewport.offset_y) / viewport.scale,
    )


def canvas_to_screen(
    canvas_x: float,
    canvas_y: float,
    viewport: Viewport,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> tuple[float, float]:
    return (
        canvas_x * viewport.scale + viewport.offset_x + origin_x,
        canvas_y * viewport.scale + viewport.offset_y + origin_y,
    )


# =============================================================================
# Element helpers
# =============================================================================

def element_metadata(element: DanoteElement) -> dict[str, Any]:
    """Copy of the element's metadata bag (never None)."""
    return dict(element.meta or {})


def center_of(element: DanoteElement) -> tuple[float, float]:
    return element.x + element.width / 2, element.y + element.height / 2


def contains_point(element: DanoteElement, px: float, py: float) -> bool:
    """Axis-aligned hit test. Rotation is display-only and ignored here."""
    return (
        element.x <= px <= element.x + element.width
        and element.y <= py <= element.y + element.height
    )


def creation_defaults(element_type: ElementType) -> dict[str, Any]:
    """Width, height and color for a new element of this type."""
    width, height = DEFAULT_SIZE
    defaults = {"width": width, "height": height, "color": DEFAULT_COLOR}
    defaults.update(TYPE_DEFAULTS.get(element_type, {}))
    return defaults


def clamp_size(width: float, height: float) -> tuple[float, float]:
    return max(MIN_ELEMENT_SIZE, width), max(MIN_ELEMENT_SIZE, height)


# =============================================================================
# Z-order
# =============================================================================

def next_z_index(z_values: Iterable[int]) -> int:
    """z for a newly created element: one above everything, 1 on an empty board."""
    values = list(z_values)
    return max(values) + 1 if values else 1


def bring_to_front(z_values: Iterable[int]) -> int:
    return next_z_index(z_values)


def send_to_back(z_values: Iterable[int]) -> int:
    values = list(z_values)
    if not values:
        return 0
    return max(0, min(values) - 1)


def _z_sorted(elements: Sequence[DanoteElement]) -> list[DanoteElement]:
    # sorted() is stable: equal z keeps list (load) order
    return sorted(elements, key=lambda el: el.z_index)


def bring_forward(elements: Sequence[DanoteElement], target: DanoteElement) -> int:
    """Jump just above the next element in draw order. Topmost stays put."""
    ordered = _z_sorted(elements)
    idx = next(i for i, el in enumerate(ordered) if el.id == target.id)
    if idx >= len(ordered) - 1:
        return target.z_index
    return ordered[idx + 1].z_index + 1


def send_backward(elements: Sequence[DanoteElement], target: DanoteElement) -> int:
    """Drop just below the previous element in draw order, floored at 0."""
    ordered = _z_sorted(elements)
    idx = next(i for i, el in enumerate(ordered) if el.id == target.id)
    if idx == 0:
        return target.z_index
    return max(0, ordered[idx - 1].z_index - 1)


# =============================================================================
# Resize / rotate
# =============================================================================

def resize(
    element: DanoteElement,
    handle: ResizeHandle | str,
    dx: float,
    dy: float,
) -> dict[str, float]:
    """
    New box for dragging a compass handle by (dx, dy).

    East/south handles grow the far edge; west/north handles move the
    near edge, keeping the opposite edge anchored. Both dimensions are
    clamped to MIN_ELEMENT_SIZE.
    """
    handle = ResizeHandle(handle).value
    x, y, width, height = element.x, element.y, element.width, element.height

    if "e" in handle:
        width = max(MIN_ELEMENT_SIZE, element.width + dx)
    if "w" in handle:
        width = max(MIN_ELEMENT_SIZE, element.width - dx)
        x = element.x + (element.width - width)
    if "s" in handle:
        height = max(MIN_ELEMENT_SIZE, element.height + dy)
    if "n" in handle:
        height = max(MIN_ELEMENT_SIZE, element.height - dy)
        y = element.y + (element.height - height)

    return {"x": x, "y": y, "width": width, "height": height}


def rotation_angle(element: DanoteElement, pointer_x: float, pointer_y: float) -> float:
    """Degrees for a rotate handle dragged to the pointer (handle sits above the element)."""
    cx, cy = center_of(element)
    return math.atan2(pointer_y - cy, pointer_x - cx) * (180 / math.pi) + 90


# =============================================================================
# Move / column grouping
# =============================================================================

def column_children(
    elements: Sequence[DanoteElement],
    column_id: UUID,
    exclude_id: UUID | None = None,
) -> list[DanoteElement]:
    """Children of a column in childIndex order (missing index counts as 0)."""
    children = [
        el for el in elements
        if el.parent_id == column_id and el.id != exclude_id
    ]
    return sorted(children, key=lambda el: element_metadata(el).get("childIndex", 0))


def translate(element: DanoteElement, dx: float, dy: float) -> dict[str, Any]:
    """Columns for moving one element. Lines/arrows carry their endpoints along."""
    changes: dict[str, Any] = {"x": element.x + dx, "y": element.y + dy}
    if ElementType(element.type) in SEGMENT_TYPES:
        meta = element_metadata(element)
        meta["startX"] = meta.get("startX", element.x) + dx
        meta["startY"] = meta.get("startY", element.y) + dy
        meta["endX"] = meta.get("endX", element.x + element.width) + dx
        meta["endY"] = meta.get("endY", element.y) + dy
        changes["metadata"] = meta
    return changes


def find_hovered_column(
    elements: Sequence[DanoteElement],
    dragged: DanoteElement,
    x: float | None = None,
    y: float | None = None,
) -> DanoteElement | None:
    """
    Column under the dragged element's centre, if any.

    x/y override the dragged element's top-left (the drop position).
    Columns never nest, so a dragged column never has a target.
    """
    if dragged.type == ElementType.COLUMN.value:
        return None
    left = dragged.x if x is None else x
    top = dragged.y if y is None else y
    cx = left + dragged.width / 2
    cy = top + dragged.height / 2
    for el in elements:
        if el.type == ElementType.COLUMN.value and el.id != dragged.id:
            if contains_point(el, cx, cy):
                return el
    return None


def insert_index(
    column: DanoteElement,
    children: Sequence[DanoteElement],
    center_y: float,
) -> int:
    """Slot for a drop at center_y: before the first child whose midpoint is below it."""
    cumulative_y = column.y + COLUMN_FIRST_SLOT_OFFSET
    for i, child in enumerate(children):
        if center_y < cumulative_y + child.height / 2:
            return i
        cumulative_y += child.height + COLUMN_PADDING
    return len(children)


def slot_y(column: DanoteElement, children: Sequence[DanoteElement], index: int) -> float:
    y = column.y + COLUMN_FIRST_SLOT_OFFSET
    for child in children[:index]:
        y += child.height + COLUMN_PADDING
    return y


def reparent_into_column(
    elements: Sequence[DanoteElement],
    dragged: DanoteElement,
    column: DanoteElement,
    index: int,
) -> Patch:
    """
    Insert dragged into column at index.

    Siblings at or after index shift their childIndex by one; the dragged
    element snaps into the column's slot and takes its inner width.
    """
    children = column_children(elements, column.id, exclude_id=dragged.id)
    index = max(0, min(index, len(children)))
    patch: Patch = {}

    for position, child in enumerate(children):
        new_index = position + 1 if position >= index else position
        meta = element_metadata(child)
        if meta.get("childIndex") != new_index:
            meta["childIndex"] = new_index
            patch[child.id] = {"metadata": meta}

    meta = element_metadata(dragged)
    meta["childIndex"] = index
    patch[dragged.id] = {
        "parent_id": column.id,
        "x": column.x + COLUMN_PADDING,
        "y": slot_y(column, children, index),
        "width": column.width - COLUMN_PADDING * 2,
        "metadata": meta,
    }
    return patch


def detach_from_column(
    elements: Sequence[DanoteElement],
    element: DanoteElement,
) -> Patch:
    """Clear parent/childIndex and close the gap among former siblings."""
    patch: Patch = {}
    if element.parent_id is None:
        return patch

    siblings = column_children(elements, element.parent_id, exclude_id=element.id)
    for position, sibling in enumerate(siblings):
        meta = element_metadata(sibling)
        if meta.get("childIndex") != position:
            meta["childIndex"] = position
            patch[sibling.id] = {"metadata": meta}

    meta = element_metadata(element)
    meta.pop("childIndex", None)
    patch[element.id] = {"parent_id": None, "metadata": meta}
    return patch


def move(
    elements: Sequence[DanoteElement],
    dragged: DanoteElement,
    x: float,
    y: float,
) -> Patch:
    """
    Full drag-end for one element dropped with its top-left at (x, y).

    - a column drags its children with it
    - dropping a non-column over a column reparents it at the computed slot
    - dropping a column child outside any column detaches it
    """
    dx = x - dragged.x
    dy = y - dragged.y
    patch: Patch = {dragged.id: translate(dragged, dx, dy)}

    if dragged.type == ElementType.COLUMN.value:
        for child in column_children(elements, dragged.id):
            patch[child.id] = translate(child, dx, dy)
        return patch

    column = find_hovered_column(elements, dragged, x, y)
    if column is not None:
        children = column_children(elements, column.id, exclude_id=dragged.id)
        index = insert_index(column, children, y + dragged.height / 2)
        moved_meta = patch[dragged.id].get("metadata")
        if dragged.parent_id is not None and dragged.parent_id != column.id:
            _merge(patch, detach_from_column(elements, dragged))
        _merge(patch, reparent_into_column(elements, dragged, column, index))
        if moved_meta is not None:
            moved_meta["childIndex"] = index
            patch[dragged.id]["metadata"] = moved_meta
    elif dragged.parent_id is not None:
        _merge(patch, detach_from_column(elements, dragged))

    return patch


def _merge(target: Patch, other: Patch) -> None:
    for element_id, changes in other.items():
        target.setdefault(element_id, {}).update(changes)

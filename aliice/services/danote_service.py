"""Danote service - boards and canvas elements.

Gesture operations load the board's elements, compute a patch with the
pure functions in canvas.py and write each affected row.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from aliice.db.enums import DRAWN_SHAPE_TYPES, ElementType, ZOrderAction
from aliice.db.models import DanoteBoard, DanoteElement, Project
from aliice.schemas.danote import BoardCreate, BoardUpdate, ElementCreate, ElementRead, ElementUpdate
from aliice.services import canvas

logger = logging.getLogger(__name__)


# =============================================================================
# Boards
# =============================================================================

def list_boards(
    db: Session,
    org_id: UUID,
    include_archived: bool = False,
    parent_board_id: UUID | None = None,
) -> list[DanoteBoard]:
    query = db.query(DanoteBoard).filter(DanoteBoard.organization_id == org_id)
    if not include_archived:
        query = query.filter(DanoteBoard.is_archived.is_(False))
    if parent_board_id:
        query = query.filter(DanoteBoard.parent_board_id == parent_board_id)
    return query.order_by(DanoteBoard.updated_at.desc()).all()


def get_board(db: Session, org_id: UUID, board_id: UUID) -> DanoteBoard | None:
    return db.query(DanoteBoard).filter(
        DanoteBoard.id == board_id,
        DanoteBoard.organization_id == org_id,
    ).first()


def _check_board_links(
    db: Session,
    org_id: UUID,
    parent_board_id: UUID | None,
    project_id: UUID | None,
    board_id: UUID | None = None,
) -> None:
    if parent_board_id is not None:
        if parent_board_id == board_id:
            raise ValueError("A board cannot be its own parent")
        if not get_board(db, org_id, parent_board_id):
            raise ValueError("Parent board not found")
    if project_id is not None and not db.query(Project.id).filter(
        Project.id == project_id, Project.organization_id == org_id
    ).first():
        raise ValueError("Project not found")


def create_board(db: Session, org_id: UUID, user_id: UUID, data: BoardCreate) -> DanoteBoard:
    name = data.name.strip()
    if not name:
        raise ValueError("Board name is required")
    _check_board_links(db, org_id, data.parent_board_id, data.project_id)
    board = DanoteBoard(
        organization_id=org_id,
        created_by_user_id=user_id,
        **data.model_dump(exclude={"name"}),
        name=name,
    )
    db.add(board)
    db.commit()
    db.refresh(board)
    return board


def update_board(db: Session, org_id: UUID, board: DanoteBoard, data: BoardUpdate) -> DanoteBoard:
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        if not (updates["name"] or "").strip():
            raise ValueError("Board name is required")
        updates["name"] = updates["name"].strip()
    if updates.get("is_archived") is None:
        updates.pop("is_archived", None)
    _check_board_links(
        db, org_id, updates.get("parent_board_id"), updates.get("project_id"), board.id
    )
    for field, value in updates.items():
        setattr(board, field, value)
    db.commit()
    db.refresh(board)
    return board


def delete_board(db: Session, board: DanoteBoard) -> None:
    db.delete(board)
    db.commit()


# =============================================================================
# Elements
# =============================================================================

def to_element_read(element: DanoteElement) -> ElementRead:
    return ElementRead(
        id=element.id,
        board_id=element.board_id,
        type=ElementType(element.type),
        x=element.x,
        y=element.y,
        width=element.width,
        height=element.height,
        z_index=element.z_index,
        content=element.content,
        color=element.color,
        metadata=canvas.element_metadata(element),
        parent_id=element.parent_id,
        created_at=element.created_at,
        updated_at=element.updated_at,
    )


def list_elements(db: Session, board_id: UUID) -> list[DanoteElement]:
    """Board elements in draw order (ties keep insertion order)."""
    return db.query(DanoteElement).filter(
        DanoteElement.board_id == board_id
    ).order_by(DanoteElement.z_index.asc(), DanoteElement.created_at.asc()).all()


def get_element(db: Session, org_id: UUID, element_id: UUID) -> DanoteElement | None:
    return (
        db.query(DanoteElement)
        .join(DanoteBoard, DanoteBoard.id == DanoteElement.board_id)
        .filter(
            DanoteElement.id == element_id,
            DanoteBoard.organization_id == org_id,
        )
        .first()
    )


def _clamp_drawn(element_type: ElementType, width: float, height: float) -> tuple[float, float]:
    if element_type in DRAWN_SHAPE_TYPES:
        return canvas.clamp_size(width, height)
    return width, height


def _get_column(elements: list[DanoteElement], column_id: UUID) -> DanoteElement:
    column = next((el for el in elements if el.id == column_id), None)
    if column is None or column.type != ElementType.COLUMN.value:
        raise ValueError("Parent must be a column on the same board")
    return column


def create_element(
    db: Session,
    board: DanoteBoard,
    user_id: UUID,
    data: ElementCreate,
) -> DanoteElement:
    existing = list_elements(db, board.id)
    defaults = canvas.creation_defaults(data.type)
    width, height = _clamp_drawn(
        data.type,
        data.width or defaults["width"],
        data.height or defaults["height"],
    )
    metadata = dict(data.metadata)

    if data.parent_id is not None:
        if data.type == ElementType.COLUMN:
            raise ValueError("Columns cannot be nested")
        column = _get_column(existing, data.parent_id)
        metadata.setdefault("childIndex", len(canvas.column_children(existing, column.id)))

    element = DanoteElement(
        board_id=board.id,
        type=data.type.value,
        x=data.x,
        y=data.y,
        width=width,
        height=height,
        z_index=canvas.next_z_index(el.z_index for el in existing),
        content=data.content,
        color=data.color or defaults["color"],
        meta=metadata,
        parent_id=data.parent_id,
        created_by_user_id=user_id,
    )
    db.add(element)
    db.commit()
    db.refresh(element)
    return element


def update_element(db: Session, element: DanoteElement, data: ElementUpdate) -> DanoteElement:
    """Patch the changed columns of one gesture. metadata keys merge into the stored bag."""
    updates = data.model_dump(exclude_unset=True)
    metadata = updates.pop("metadata", None)

    for field in ("x", "y", "width", "height", "z_index"):
        if field in updates and updates[field] is None:
            updates.pop(field)

    if "width" in updates or "height" in updates:
        width, height = _clamp_drawn(
            ElementType(element.type),
            updates.get("width", element.width),
            updates.get("height", element.height),
        )
        updates["width"], updates["height"] = width, height

    for field, value in updates.items():
        setattr(element, field, value)
    if metadata:
        merged = canvas.element_metadata(element)
        merged.update(metadata)
        element.meta = merged

    db.commit()
    db.refresh(element)
    return element


def apply_patch(db: Session, elements: list[DanoteElement], patch: canvas.Patch) -> None:
    """Write a multi-row patch. Each row is saved with its own commit."""
    by_id = {el.id: el for el in elements}
    for element_id, changes in patch.items():
        element = by_id.get(element_id)
        if element is None:
            continue
        for field, value in changes.items():
            if field == "metadata":
                element.meta = value
            else:
                setattr(element, field, value)
        db.commit()


def delete_element(db: Session, element: DanoteElement) -> None:
    """Delete one element. Column children stay on the board, detached."""
    elements = list_elements(db, element.board_id)
    patch: canvas.Patch = {}
    if element.type == ElementType.COLUMN.value:
        for child in canvas.column_children(elements, element.id):
            meta = canvas.element_metadata(child)
            meta.pop("childIndex", None)
            patch[child.id] = {"parent_id": None, "metadata": meta}
    elif element.parent_id is not None:
        detached = canvas.detach_from_column(elements, element)
        detached.pop(element.id, None)
        patch.update(detached)

    apply_patch(db, elements, patch)
    db.delete(element)
    db.commit()


def duplicate_element(db: Session, element: DanoteElement, user_id: UUID) -> DanoteElement:
    """Copy offset by DUPLICATE_OFFSET on top of the board. The copy is never in a column."""
    elements = list_elements(db, element.board_id)
    meta = canvas.element_metadata(element)
    meta.pop("childIndex", None)
    changes = canvas.translate(element, canvas.DUPLICATE_OFFSET, canvas.DUPLICATE_OFFSET)
    copy = DanoteElement(
        board_id=element.board_id,
        type=element.type,
        x=changes["x"],
        y=changes["y"],
        width=element.width,
        height=element.height,
        z_index=canvas.next_z_index(el.z_index for el in elements),
        content=element.content,
        color=element.color,
        meta={**meta, **changes.get("metadata", {})},
        parent_id=None,
        created_by_user_id=user_id,
    )
    copy.meta.pop("childIndex", None)
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def change_z_order(db: Session, element: DanoteElement, action: ZOrderAction) -> DanoteElement:
    elements = list_elements(db, element.board_id)
    z_values = [el.z_index for el in elements]

    if action == ZOrderAction.FRONT:
        new_z = canvas.bring_to_front(z_values)
    elif action == ZOrderAction.BACK:
        new_z = canvas.send_to_back(z_values)
    elif action == ZOrderAction.FORWARD:
        new_z = canvas.bring_forward(elements, element)
    else:
        new_z = canvas.send_backward(elements, element)

    if new_z != element.z_index:
        element.z_index = new_z
        db.commit()
        db.refresh(element)
    return element


def resize_element(db: Session, element: DanoteElement, handle, dx: float, dy: float) -> DanoteElement:
    for field, value in canvas.resize(element, handle, dx, dy).items():
        setattr(element, field, value)
    db.commit()
    db.refresh(element)
    return element


def rotate_element(db: Session, element: DanoteElement, pointer_x: float, pointer_y: float) -> DanoteElement:
    meta = canvas.element_metadata(element)
    meta["rotation"] = canvas.rotation_angle(element, pointer_x, pointer_y)
    element.meta = meta
    db.commit()
    db.refresh(element)
    return element


def move_element(db: Session, element: DanoteElement, x: float, y: float) -> list[DanoteElement]:
    """Drop an element at (x, y). Returns every row the gesture touched."""
    elements = list_elements(db, element.board_id)
    patch = canvas.move(elements, element, x, y)
    apply_patch(db, elements, patch)

    touched = [el for el in elements if el.id in patch]
    for el in touched:
        db.refresh(el)
    logger.debug("Moved element %s, %d rows updated", element.id, len(touched))
    return touched

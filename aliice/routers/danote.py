"""Danote whiteboard endpoints: boards, elements, comments and notifications."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aliice.core.deps import get_current_session, get_db, require_csrf_header
from aliice.db.models import User
from aliice.schemas.auth import UserSession
from aliice.schemas.danote import (
    BoardCreate,
    BoardRead,
    BoardUpdate,
    CommentCreate,
    CommentRead,
    DanoteNotificationList,
    DanoteNotificationRead,
    ElementCreate,
    ElementRead,
    ElementUpdate,
    MoveRequest,
    ResizeRequest,
    RotateRequest,
    ZOrderRequest,
)
from aliice.services import danote_comment_service, danote_service

router = APIRouter(prefix="/danote", tags=["danote"])


def _get_board_or_404(db: Session, session: UserSession, board_id: UUID):
    board = danote_service.get_board(db, session.org_id, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


def _get_element_or_404(db: Session, session: UserSession, element_id: UUID):
    element = danote_service.get_element(db, session.org_id, element_id)
    if not element:
        raise HTTPException(status_code=404, detail="Element not found")
    return element


# =============================================================================
# Boards
# =============================================================================

@router.get("/boards", response_model=list[BoardRead])
def list_boards(
    include_archived: bool = False,
    parent_board_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return danote_service.list_boards(db, session.org_id, include_archived, parent_board_id)


@router.post(
    "/boards",
    response_model=BoardRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_board(
    data: BoardCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return danote_service.create_board(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/boards/{board_id}", response_model=BoardRead)
def get_board(
    board_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_board_or_404(db, session, board_id)


@router.patch(
    "/boards/{board_id}",
    response_model=BoardRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_board(
    board_id: UUID,
    data: BoardUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    try:
        return danote_service.update_board(db, session.org_id, board, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/boards/{board_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_board(
    board_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    danote_service.delete_board(db, board)


# =============================================================================
# Elements
# =============================================================================

@router.get("/boards/{board_id}/elements", response_model=list[ElementRead])
def list_elements(
    board_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    return [danote_service.to_element_read(el) for el in danote_service.list_elements(db, board.id)]


@router.post(
    "/boards/{board_id}/elements",
    response_model=ElementRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_element(
    board_id: UUID,
    data: ElementCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    try:
        element = danote_service.create_element(db, board, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return danote_service.to_element_read(element)


@router.patch(
    "/elements/{element_id}",
    response_model=ElementRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_element(
    element_id: UUID,
    data: ElementUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    element = _get_element_or_404(db, session, element_id)
    return danote_service.to_element_read(danote_service.update_element(db, element, data))


@router.delete(
    "/elements/{element_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_element(
    element_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Delete an element. A deleted column releases its children in place."""
    element = _get_element_or_404(db, session, element_id)
    danote_service.delete_element(db, element)


@router.post(
    "/elements/{element_id}/duplicate",
    response_model=ElementRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def duplicate_element(
    element_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    element = _get_element_or_404(db, session, element_id)
    copy = danote_service.duplicate_element(db, element, session.user_id)
    return danote_service.to_element_read(copy)


@router.post(
    "/elements/{element_id}/z-order",
    response_model=ElementRead,
    dependencies=[Depends(require_csrf_header)],
)
def change_z_order(
    element_id: UUID,
    data: ZOrderRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    element = _get_element_or_404(db, session, element_id)
    return danote_service.to_element_read(
        danote_service.change_z_order(db, element, data.action)
    )


@router.post(
    "/elements/{element_id}/resize",
    response_model=ElementRead,
    dependencies=[Depends(require_csrf_header)],
)
def resize_element(
    element_id: UUID,
    data: ResizeRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    element = _get_element_or_404(db, session, element_id)
    return danote_service.to_element_read(
        danote_service.resize_element(db, element, data.handle, data.dx, data.dy)
    )


@router.post(
    "/elements/{element_id}/rotate",
    response_model=ElementRead,
    dependencies=[Depends(require_csrf_header)],
)
def rotate_element(
    element_id: UUID,
    data: RotateRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    element = _get_element_or_404(db, session, element_id)
    return danote_service.to_element_read(
        danote_service.rotate_element(db, element, data.pointer_x, data.pointer_y)
    )


@router.post(
    "/elements/{element_id}/move",
    response_model=list[ElementRead],
    dependencies=[Depends(require_csrf_header)],
)
def move_element(
    element_id: UUID,
    data: MoveRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Drop gesture. Returns every element whose row changed."""
    element = _get_element_or_404(db, session, element_id)
    touched = danote_service.move_element(db, element, data.x, data.y)
    return [danote_service.to_element_read(el) for el in touched]


# =============================================================================
# Comments
# =============================================================================

@router.get("/boards/{board_id}/comments", response_model=list[CommentRead])
def list_comments(
    board_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    return [
        danote_comment_service.to_comment_read(c)
        for c in danote_comment_service.list_comments(db, board.id)
    ]


@router.post(
    "/boards/{board_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_comment(
    board_id: UUID,
    data: CommentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    board = _get_board_or_404(db, session, board_id)
    author = db.get(User, session.user_id)
    try:
        comment = danote_comment_service.create_comment(db, session.org_id, board, author, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return danote_comment_service.to_comment_read(comment)


@router.delete(
    "/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_comment(
    comment_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    comment = danote_comment_service.get_comment(db, session.org_id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.user_id != session.user_id:
        raise HTTPException(status_code=403, detail="Only the author can delete this comment")
    danote_comment_service.delete_comment(db, comment)


# =============================================================================
# Notifications
# =============================================================================

@router.get("/notifications", response_model=DanoteNotificationList)
def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    items, unread_count = danote_comment_service.list_notifications(
        db, session.user_id, unread_only, min(max(limit, 1), 100)
    )
    return DanoteNotificationList(items=items, unread_count=unread_count)


@router.post(
    "/notifications/read-all",
    dependencies=[Depends(require_csrf_header)],
)
def mark_all_notifications_read(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    count = danote_comment_service.mark_all_read(db, session.user_id)
    return {"marked_read": count}


@router.post(
    "/notifications/{notification_id}/read",
    response_model=DanoteNotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_notification_read(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    notification = danote_comment_service.mark_read(db, session.user_id, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification

"""Danote comments, @mentions and the per-user notification inbox."""

import logging
import re
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from aliice.db.enums import DanoteNotificationType
from aliice.db.models import (
    DanoteBoard,
    DanoteComment,
    DanoteMention,
    DanoteNotification,
    User,
)
from aliice.schemas.danote import CommentCreate, CommentRead
from aliice.services import user_service

logger = logging.getLogger(__name__)

# "@" then one or two space-separated words
MENTION_PATTERN = re.compile(r"@([^@\s]+(?:\s[^@\s]+)?)")


# =============================================================================
# Mention extraction
# =============================================================================

def extract_mentions(content: str, roster: Sequence[User]) -> list[UUID]:
    """
    User ids mentioned in content, in order of first appearance.

    A captured name matches a roster user when it equals their full name
    ignoring case. The first roster match wins and each user appears once.
    """
    mentioned: list[UUID] = []
    for match in MENTION_PATTERN.finditer(content):
        name = match.group(1).strip().lower()
        user = next((u for u in roster if u.full_name.lower() == name), None)
        if user and user.id not in mentioned:
            mentioned.append(user.id)
    return mentioned


# =============================================================================
# Comments
# =============================================================================

def to_comment_read(comment: DanoteComment) -> CommentRead:
    return CommentRead(
        id=comment.id,
        board_id=comment.board_id,
        user_id=comment.user_id,
        author_name=comment.author.full_name if comment.author else None,
        parent_id=comment.parent_id,
        content=comment.content,
        mentioned_user_ids=[m.mentioned_user_id for m in comment.mentions],
        created_at=comment.created_at,
    )


def list_comments(db: Session, board_id: UUID) -> list[DanoteComment]:
    return (
        db.query(DanoteComment)
        .options(joinedload(DanoteComment.author), joinedload(DanoteComment.mentions))
        .filter(DanoteComment.board_id == board_id)
        .order_by(DanoteComment.created_at.asc())
        .all()
    )


def get_comment(db: Session, org_id: UUID, comment_id: UUID) -> DanoteComment | None:
    return (
        db.query(DanoteComment)
        .join(DanoteBoard, DanoteBoard.id == DanoteComment.board_id)
        .filter(
            DanoteComment.id == comment_id,
            DanoteBoard.organization_id == org_id,
        )
        .first()
    )


def _resolve_parent(db: Session, board_id: UUID, parent_id: UUID | None) -> DanoteComment | None:
    """Parent comment on the same board. Replies to replies attach to the root."""
    if parent_id is None:
        return None
    parent = db.query(DanoteComment).filter(
        DanoteComment.id == parent_id,
        DanoteComment.board_id == board_id,
    ).first()
    if parent is None:
        raise ValueError("Parent comment not found")
    if parent.parent_id is not None:
        parent = db.query(DanoteComment).filter(DanoteComment.id == parent.parent_id).first()
    return parent


def create_comment(
    db: Session,
    org_id: UUID,
    board: DanoteBoard,
    author: User,
    data: CommentCreate,
) -> DanoteComment:
    """
    Insert a comment, then fan out mentions and notifications.

    Fan-out failures are logged and leave the comment in place.
    """
    content = data.content.strip()
    if not content:
        raise ValueError("Comment cannot be empty")
    parent = _resolve_parent(db, board.id, data.parent_id)

    comment = DanoteComment(
        board_id=board.id,
        user_id=author.id,
        parent_id=parent.id if parent else None,
        content=content,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    try:
        _fan_out(db, org_id, comment, author, parent)
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Mention fan-out failed",
            extra={"comment_id": str(comment.id), "board_id": str(board.id)},
            exc_info=True,
        )

    db.refresh(comment)
    return comment


def _fan_out(
    db: Session,
    org_id: UUID,
    comment: DanoteComment,
    author: User,
    parent: DanoteComment | None,
) -> None:
    roster = user_service.list_users(db, org_id)
    mentioned = extract_mentions(comment.content, roster)

    for user_id in mentioned:
        db.add(DanoteMention(comment_id=comment.id, mentioned_user_id=user_id))
        db.add(DanoteNotification(
            user_id=user_id,
            from_user_id=author.id,
            board_id=comment.board_id,
            comment_id=comment.id,
            type=DanoteNotificationType.MENTION.value,
            message=f"{author.full_name} mentioned you in a comment",
        ))

    if parent and parent.user_id != author.id and parent.user_id not in mentioned:
        db.add(DanoteNotification(
            user_id=parent.user_id,
            from_user_id=author.id,
            board_id=comment.board_id,
            comment_id=comment.id,
            type=DanoteNotificationType.REPLY.value,
            message=f"{author.full_name} replied to your comment",
        ))

    db.commit()


def delete_comment(db: Session, comment: DanoteComment) -> None:
    """Delete a comment with its replies and the notifications pointing at them."""
    replies = db.query(DanoteComment).filter(DanoteComment.parent_id == comment.id).all()
    comment_ids = [comment.id] + [reply.id for reply in replies]
    db.query(DanoteNotification).filter(
        DanoteNotification.comment_id.in_(comment_ids)
    ).delete(synchronize_session=False)
    for reply in replies:
        db.delete(reply)
    db.delete(comment)
    db.commit()


# =============================================================================
# Notifications
# =============================================================================

def list_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> tuple[list[DanoteNotification], int]:
    """Newest notifications and the total unread count."""
    query = db.query(DanoteNotification).filter(DanoteNotification.user_id == user_id)
    unread_count = query.filter(DanoteNotification.is_read.is_(False)).count()
    if unread_only:
        query = query.filter(DanoteNotification.is_read.is_(False))
    items = query.order_by(DanoteNotification.created_at.desc()).limit(limit).all()
    return items, unread_count


def mark_read(db: Session, user_id: UUID, notification_id: UUID) -> DanoteNotification | None:
    notification = db.query(DanoteNotification).filter(
        DanoteNotification.id == notification_id,
        DanoteNotification.user_id == user_id,
    ).first()
    if notification is None:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    count = db.query(DanoteNotification).filter(
        DanoteNotification.user_id == user_id,
        DanoteNotification.is_read.is_(False),
    ).update({DanoteNotification.is_read: True}, synchronize_session=False)
    db.commit()
    return count

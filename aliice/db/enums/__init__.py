"""Enum definitions for application constants."""

from aliice.db.enums.accounts import AdhocStatus, DocumentType, SoaFormat
from aliice.db.enums.auth import Role
from aliice.db.enums.chat import ChatRole
from aliice.db.enums.danote import (
    DRAWN_SHAPE_TYPES,
    SEGMENT_TYPES,
    DanoteNotificationType,
    ElementType,
    ResizeHandle,
    ZOrderAction,
)
from aliice.db.enums.dischat import (
    CALL_CHANNEL_TYPES,
    MESSAGEABLE_CHANNEL_TYPES,
    ChannelType,
    MemberStatus,
    MessageType,
)
from aliice.db.enums.marketing import DealStatus, ImportSource, MarketingChannel
from aliice.db.enums.patients import PatientSource
from aliice.db.enums.tasks import TaskPriority, TaskStatus, TaskType

__all__ = [
    "AdhocStatus",
    "CALL_CHANNEL_TYPES",
    "ChannelType",
    "ChatRole",
    "DRAWN_SHAPE_TYPES",
    "DanoteNotificationType",
    "DealStatus",
    "DocumentType",
    "ElementType",
    "ImportSource",
    "MESSAGEABLE_CHANNEL_TYPES",
    "MarketingChannel",
    "MemberStatus",
    "MessageType",
    "PatientSource",
    "ResizeHandle",
    "Role",
    "SEGMENT_TYPES",
    "SoaFormat",
    "TaskPriority",
    "TaskStatus",
    "TaskType",
    "ZOrderAction",
]

"""Dischat models: servers, members, roles, channels, messages, threads, DMs, invites."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aliice.core.time_utils import utcnow
from aliice.db.base import Base
from aliice.db.enums import ChannelType, MemberStatus, MessageType
from aliice.db.types import JSONType

if TYPE_CHECKING:
    from aliice.db.models import User


class DischatServer(Base):
    __tablename__ = "dischat_servers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    members: Mapped[list[DischatMember]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )
    roles: Mapped[list[DischatRole]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )
    categories: Mapped[list[DischatCategory]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )
    channels: Mapped[list[DischatChannel]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )
    invites: Mapped[list[DischatInvite]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )


class DischatMember(Base):
    """
    Server membership.

    is_admin is an ADMINISTRATOR grant that is independent of roles;
    effective permissions fold it in (see dischat_permissions).
    """

    __tablename__ = "dischat_members"
    __table_args__ = (
        UniqueConstraint("server_id", "user_id", name="uq_dischat_member"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    server_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_owner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=MemberStatus.ONLINE.value, nullable=False
    )
    # Timeout: member cannot post until this instant
    communication_disabled_until: Mapped[datetime | None] = mapped_column(nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    server: Mapped[DischatServer] = relationship(back_populates="members")
    user: Mapped[User] = relationship()
    member_roles: Mapped[list[DischatMemberRole]] = relationship(
        back_populates="member", cascade="all, delete-orphan"
    )


class DischatRole(Base):
    """Named permission bitmask. Exactly one role per server is_default (@everyone)."""

    __tablename__ = "dischat_roles"
    __table_args__ = (
        Index("idx_dischat_roles_server", "server_id", "position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    server_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    permissions: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_hoisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_mentionable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    server: Mapped[DischatServer] = relationship(back_populates="roles")


class DischatMemberRole(Base):
    __tablename__ = "dischat_member_roles"
    __table_args__ = (
        UniqueConstraint("member_id", "role_id", name="uq_dischat_member_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_members.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_roles.id", ondelete="CASCADE"), nullable=False
    )

    member: Mapped[DischatMember] = relationship(back_populates="member_roles")
    role: Mapped[DischatRole] = relationship()


class DischatCategory(Base):
    __tablename__ = "dischat_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    server_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    server: Mapped[DischatServer] = relationship(back_populates="categories")


class DischatChannel(Base):
    __tablename__ = "dischat_channels"
    __table_args__ = (
        Index("idx_dischat_channels_server", "server_id", "position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    server_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_categories.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    channel_type: Mapped[str] = mapped_column(
        String(20), default=ChannelType.TEXT.value, nullable=False
    )
    topic: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_message_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    server: Mapped[DischatServer] = relationship(back_populates="channels")


class DischatMessage(Base):
    __tablename__ = "dischat_messages"
    __table_args__ = (
        Index("idx_dischat_messages_channel", "channel_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(
        String(20), default=MessageType.DEFAULT.value, nullable=False
    )
    reply_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_messages.id", ondelete="SET NULL"), nullable=True
    )
    # Set when the message starts a thread; points at the thread channel
    thread_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="SET NULL"), nullable=True
    )
    attachments: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    mentions: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    mention_everyone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    author: Mapped[User] = relationship()


class DischatThread(Base):
    """
    Thread spun off a text channel.

    The thread's messages live in their own text channel (thread_channel_id)
    in the same server; starter_message_id is the parent-channel message it
    was opened from, if any.
    """

    __tablename__ = "dischat_threads"
    __table_args__ = (
        Index("idx_dischat_threads_parent", "parent_channel_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="CASCADE"), nullable=False
    )
    thread_channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="CASCADE"), nullable=False
    )
    starter_message_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_messages.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Minutes of inactivity before the thread archives
    auto_archive_duration: Mapped[int] = mapped_column(Integer, default=1440, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    thread_channel: Mapped[DischatChannel] = relationship(foreign_keys=[thread_channel_id])


class DischatDmChannel(Base):
    """
    Direct message conversation.

    1:1 DMs store the two participants in user1_id/user2_id (sorted, so a
    pair maps to one row). Group DMs leave both empty and list participants
    in dischat_dm_members.
    """

    __tablename__ = "dischat_dm_channels"
    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_dischat_dm_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user1_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    user2_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    is_group: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    group_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    last_message_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    members: Mapped[list[DischatDmMember]] = relationship(
        back_populates="dm_channel", cascade="all, delete-orphan"
    )


class DischatDmMember(Base):
    __tablename__ = "dischat_dm_members"
    __table_args__ = (
        UniqueConstraint("dm_channel_id", "user_id", name="uq_dischat_dm_member"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dm_channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_dm_channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    dm_channel: Mapped[DischatDmChannel] = relationship(back_populates="members")


class DischatDmMessage(Base):
    __tablename__ = "dischat_dm_messages"
    __table_args__ = (
        Index("idx_dischat_dm_messages_channel", "dm_channel_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dm_channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_dm_channels.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(
        String(20), default=MessageType.DEFAULT.value, nullable=False
    )
    reply_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_dm_messages.id", ondelete="SET NULL"), nullable=True
    )
    attachments: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    author: Mapped[User] = relationship()


class DischatInvite(Base):
    """Server invite link."""

    __tablename__ = "dischat_invites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    server_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="SET NULL"), nullable=True
    )
    inviter_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_age_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_temporary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    server: Mapped[DischatServer] = relationship(back_populates="invites")


class DischatCallInvite(Base):
    """Guest link into a single voice/video channel call."""

    __tablename__ = "dischat_call_invites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dischat_channels.id", ondelete="CASCADE"), nullable=False
    )
    server_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("dischat_servers.id", ondelete="CASCADE"), nullable=True
    )
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

"""Pydantic schemas for Dischat servers, roles, channels, DMs and calls."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from aliice.db.enums import ChannelType


# =============================================================================
# Servers & members
# =============================================================================

class ServerCreate(BaseModel):
    name: str = ""
    description: str | None = None
    icon_url: str | None = Field(None, max_length=500)


class ServerUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    icon_url: str | None = Field(None, max_length=500)


class ServerRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    icon_url: str | None
    owner_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberRead(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str | None = None
    nickname: str | None
    is_owner: bool
    is_admin: bool
    status: str
    role_ids: list[UUID] = []
    joined_at: datetime


class MemberUpdate(BaseModel):
    nickname: str | None = Field(None, max_length=100)
    is_admin: bool | None = None
    communication_disabled_until: datetime | None = None


# =============================================================================
# Roles & permissions
# =============================================================================

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)
    permissions: int = Field(0, ge=0)
    is_hoisted: bool = False
    is_mentionable: bool = False


class RoleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)
    permissions: int | None = Field(None, ge=0)
    position: int | None = Field(None, ge=0)
    is_hoisted: bool | None = None
    is_mentionable: bool | None = None


class RoleRead(BaseModel):
    id: UUID
    server_id: UUID
    name: str
    color: str | None
    permissions: int
    position: int
    is_default: bool
    is_hoisted: bool
    is_mentionable: bool

    model_config = {"from_attributes": True}


class PermissionInfo(BaseModel):
    """Row of the permission label table."""
    name: str
    value: int
    label: str
    description: str
    category: str


class EffectivePermissions(BaseModel):
    permissions: int
    granted: list[str]


# =============================================================================
# Channels & messages
# =============================================================================

class ChannelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    channel_type: ChannelType = ChannelType.TEXT
    category_id: UUID | None = None
    topic: str | None = Field(None, max_length=1024)


class ChannelRead(BaseModel):
    id: UUID
    server_id: UUID
    category_id: UUID | None
    name: str
    channel_type: ChannelType
    topic: str | None
    position: int
    last_message_at: datetime | None

    model_config = {"from_attributes": True}


class CategoryWithChannels(BaseModel):
    id: UUID | None
    name: str | None
    position: int
    channels: list[ChannelRead]


class MessageCreate(BaseModel):
    content: str = ""
    reply_to_id: UUID | None = None
    attachments: list[dict] = []


class MessageRead(BaseModel):
    id: UUID
    channel_id: UUID
    author_id: UUID
    author_name: str | None = None
    content: str
    message_type: str
    reply_to_id: UUID | None
    attachments: list
    mentions: list
    mention_everyone: bool
    thread_id: UUID | None = None
    created_at: datetime


class ThreadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    message_id: UUID | None = None
    auto_archive_duration: int = Field(1440, ge=60, le=10080)


class ThreadRead(BaseModel):
    id: UUID
    parent_channel_id: UUID
    thread_channel_id: UUID
    starter_message_id: UUID | None
    name: str
    owner_id: UUID
    auto_archive_duration: int
    is_archived: bool
    is_locked: bool
    created_at: datetime
    thread_channel: ChannelRead

    model_config = {"from_attributes": True}


# =============================================================================
# Direct messages
# =============================================================================

class DmCreate(BaseModel):
    """One recipient opens (or reuses) a 1:1 DM; several open a new group DM."""
    recipient_id: UUID | None = None
    recipient_ids: list[UUID] = []
    group_name: str | None = Field(None, max_length=100)


class DmRead(BaseModel):
    id: UUID
    is_group: bool
    group_name: str | None = None
    owner_id: UUID | None = None
    other_user_id: UUID | None = None
    other_user_name: str | None = None
    member_ids: list[UUID] = []
    last_message_at: datetime | None
    created_at: datetime


class DmList(BaseModel):
    dms: list[DmRead]
    group_dms: list[DmRead]


class DmOpenResponse(BaseModel):
    dm: DmRead
    created: bool


class DmMessageRead(BaseModel):
    id: UUID
    dm_channel_id: UUID
    author_id: UUID
    author_name: str | None = None
    content: str
    message_type: str
    reply_to_id: UUID | None
    attachments: list
    created_at: datetime


# =============================================================================
# Invites & calls
# =============================================================================

class InviteCreate(BaseModel):
    channel_id: UUID | None = None
    max_uses: int | None = Field(None, ge=1)
    max_age_seconds: int | None = Field(None, ge=0)
    is_temporary: bool = False


class InviteRead(BaseModel):
    id: UUID
    code: str
    server_id: UUID
    channel_id: UUID | None
    inviter_id: UUID | None
    max_uses: int | None
    uses: int
    expires_at: datetime | None
    is_temporary: bool

    model_config = {"from_attributes": True}


class JoinResponse(BaseModel):
    success: bool
    server: ServerRead
    member_id: UUID


class CallInviteCreate(BaseModel):
    max_uses: int | None = Field(None, ge=1)
    max_age_seconds: int | None = Field(None, ge=0)


class CallInviteRead(BaseModel):
    code: str
    channel_id: UUID
    server_id: UUID | None
    max_uses: int | None
    uses: int
    expires_at: datetime | None

    model_config = {"from_attributes": True}


class AgoraTokenRequest(BaseModel):
    channel_id: str | None = None
    server_id: str | None = None
    is_guest: bool = False
    guest_code: str | None = None
    uid: int | None = None


class AgoraTokenResponse(BaseModel):
    appId: str
    channel: str
    token: str
    uid: int
    userName: str

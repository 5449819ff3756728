"""Dischat service - servers, roles, channels, messages, threads, DMs and invites.

Every authorization check resolves the member's effective permissions
through core.permissions.compute_effective.
"""

import logging
import re
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from aliice.core.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    Permission,
    compute_effective,
    has_permission,
)
from aliice.core.security import generate_invite_code
from aliice.core.time_utils import as_utc, utcnow
from aliice.db.enums import CALL_CHANNEL_TYPES, MESSAGEABLE_CHANNEL_TYPES, ChannelType, MessageType
from aliice.db.models import (
    DischatCallInvite,
    DischatCategory,
    DischatChannel,
    DischatDmChannel,
    DischatDmMember,
    DischatDmMessage,
    DischatInvite,
    DischatMember,
    DischatMemberRole,
    DischatMessage,
    DischatRole,
    DischatServer,
    DischatThread,
    Membership,
    User,
)
from aliice.schemas.dischat import (
    CallInviteCreate,
    CategoryWithChannels,
    ChannelCreate,
    ChannelRead,
    DmCreate,
    DmMessageRead,
    DmRead,
    InviteCreate,
    MemberRead,
    MemberUpdate,
    MessageCreate,
    MessageRead,
    RoleCreate,
    RoleUpdate,
    ServerCreate,
    ServerUpdate,
    ThreadCreate,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE_NAME = "@everyone"
DEFAULT_CATEGORY_NAME = "Text Channels"
USER_MENTION_PATTERN = re.compile(r"<@([\w-]+)>")
MAX_MESSAGE_LIMIT = 100


class DischatServiceError(Exception):
    """Base exception for Dischat service errors."""

    pass


class DischatNotFoundError(DischatServiceError):
    """Server, channel, role, member, message or invite not found."""

    pass


class NotServerMemberError(DischatServiceError):
    """Caller does not belong to the server."""

    pass


class MissingPermissionError(DischatServiceError):
    """Caller's effective permissions lack the required flag."""

    pass


class TimedOutError(DischatServiceError):
    """Member is in a communication timeout."""

    pass


class InviteUnavailableError(DischatServiceError):
    """Invite expired or used up."""

    pass


class AlreadyMemberError(DischatServiceError):
    """Caller already belongs to the invite's server."""

    pass


class DmAccessError(DischatServiceError):
    """Caller is not a participant of the DM."""

    pass


# =============================================================================
# Membership & permissions
# =============================================================================

def get_member(db: Session, server_id: UUID, user_id: UUID) -> DischatMember | None:
    return db.query(DischatMember).filter(
        DischatMember.server_id == server_id,
        DischatMember.user_id == user_id,
    ).first()


def require_member(db: Session, server_id: UUID, user_id: UUID) -> DischatMember:
    member = get_member(db, server_id, user_id)
    if member is None:
        raise NotServerMemberError("Not a member of this server")
    return member


def get_default_role(db: Session, server_id: UUID) -> DischatRole | None:
    return db.query(DischatRole).filter(
        DischatRole.server_id == server_id,
        DischatRole.is_default.is_(True),
    ).first()


def effective_permissions(db: Session, member: DischatMember) -> int:
    """OR of the member's roles and @everyone, widened for owners and admins."""
    role_values = [mr.role.permissions for mr in member.member_roles if mr.role]
    default_role = get_default_role(db, member.server_id)
    if default_role is not None:
        role_values.append(default_role.permissions)
    return compute_effective(role_values, is_owner=member.is_owner, is_admin=member.is_admin)


def require_permission(
    db: Session,
    server_id: UUID,
    user_id: UUID,
    flag: Permission,
) -> DischatMember:
    member = require_member(db, server_id, user_id)
    if not has_permission(effective_permissions(db, member), flag):
        raise MissingPermissionError(f"Missing permission: {flag.name}")
    return member


def to_member_read(member: DischatMember) -> MemberRead:
    return MemberRead(
        id=member.id,
        user_id=member.user_id,
        full_name=member.user.full_name if member.user else None,
        nickname=member.nickname,
        is_owner=member.is_owner,
        is_admin=member.is_admin,
        status=member.status,
        role_ids=[mr.role_id for mr in member.member_roles],
        joined_at=member.joined_at,
    )


# =============================================================================
# Servers
# =============================================================================

def list_my_servers(db: Session, user_id: UUID) -> list[DischatServer]:
    return (
        db.query(DischatServer)
        .join(DischatMember, DischatMember.server_id == DischatServer.id)
        .filter(DischatMember.user_id == user_id)
        .order_by(DischatServer.created_at.asc())
        .all()
    )


def get_server(db: Session, server_id: UUID) -> DischatServer:
    server = db.query(DischatServer).filter(DischatServer.id == server_id).first()
    if server is None:
        raise DischatNotFoundError("Server not found")
    return server


def create_server(db: Session, owner_id: UUID, data: ServerCreate) -> DischatServer:
    """
    Create a server with its owner member, @everyone role and starter channels.

    Starter layout: a "Text Channels" category holding #general and a voice channel.
    """
    name = (data.name or "").strip()
    if not name:
        raise ValueError("Server name is required")

    server = DischatServer(
        name=name,
        description=data.description,
        icon_url=data.icon_url,
        owner_id=owner_id,
    )
    db.add(server)
    db.flush()

    default_role = DischatRole(
        server_id=server.id,
        name=DEFAULT_ROLE_NAME,
        permissions=int(DEFAULT_ROLE_PERMISSIONS),
        position=0,
        is_default=True,
    )
    owner = DischatMember(server_id=server.id, user_id=owner_id, is_owner=True)
    category = DischatCategory(server_id=server.id, name=DEFAULT_CATEGORY_NAME, position=0)
    db.add_all([default_role, owner, category])
    db.flush()

    db.add(DischatMemberRole(member_id=owner.id, role_id=default_role.id))
    db.add_all([
        DischatChannel(
            server_id=server.id,
            category_id=category.id,
            name="general",
            channel_type=ChannelType.TEXT.value,
            position=0,
        ),
        DischatChannel(
            server_id=server.id,
            category_id=category.id,
            name="voice",
            channel_type=ChannelType.VOICE.value,
            position=1,
        ),
    ])
    db.commit()
    db.refresh(server)
    logger.info("Dischat server created", extra={"server_id": str(server.id)})
    return server


def update_server(db: Session, server: DischatServer, user_id: UUID, data: ServerUpdate) -> DischatServer:
    require_permission(db, server.id, user_id, Permission.MANAGE_GUILD)
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        if not (updates["name"] or "").strip():
            raise ValueError("Server name is required")
        updates["name"] = updates["name"].strip()
    for field, value in updates.items():
        setattr(server, field, value)
    db.commit()
    db.refresh(server)
    return server


def delete_server(db: Session, server: DischatServer, user_id: UUID) -> None:
    if server.owner_id != user_id:
        raise MissingPermissionError("Only the server owner can delete the server")
    channel_ids = [c.id for c in server.channels]
    if channel_ids:
        db.query(DischatMessage).filter(
            DischatMessage.channel_id.in_(channel_ids)
        ).delete(synchronize_session=False)
        db.query(DischatCallInvite).filter(
            DischatCallInvite.channel_id.in_(channel_ids)
        ).delete(synchronize_session=False)
        db.query(DischatThread).filter(
            DischatThread.parent_channel_id.in_(channel_ids)
        ).delete(synchronize_session=False)
    db.delete(server)
    db.commit()


# =============================================================================
# Members
# =============================================================================

def list_members(db: Session, server_id: UUID) -> list[DischatMember]:
    return (
        db.query(DischatMember)
        .options(joinedload(DischatMember.user), joinedload(DischatMember.member_roles))
        .filter(DischatMember.server_id == server_id)
        .order_by(DischatMember.joined_at.asc())
        .all()
    )


def get_server_member(db: Session, server_id: UUID, member_id: UUID) -> DischatMember:
    member = db.query(DischatMember).filter(
        DischatMember.id == member_id,
        DischatMember.server_id == server_id,
    ).first()
    if member is None:
        raise DischatNotFoundError("Member not found")
    return member


def update_member(
    db: Session,
    server_id: UUID,
    actor_id: UUID,
    member: DischatMember,
    data: MemberUpdate,
) -> DischatMember:
    """Nickname: self or MANAGE_NICKNAMES. Timeout: MODERATE_MEMBERS. is_admin: owner only."""
    updates = data.model_dump(exclude_unset=True)
    actor = require_member(db, server_id, actor_id)
    perms = effective_permissions(db, actor)

    if "nickname" in updates and member.user_id != actor_id:
        if not has_permission(perms, Permission.MANAGE_NICKNAMES):
            raise MissingPermissionError("Missing permission: MANAGE_NICKNAMES")
    if "communication_disabled_until" in updates:
        if not has_permission(perms, Permission.MODERATE_MEMBERS):
            raise MissingPermissionError("Missing permission: MODERATE_MEMBERS")
        if member.is_owner:
            raise ValueError("The server owner cannot be timed out")
    if "is_admin" in updates:
        if not actor.is_owner:
            raise MissingPermissionError("Only the server owner can grant admin")
        if updates["is_admin"] is None:
            updates.pop("is_admin")

    for field, value in updates.items():
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return member


def remove_member(db: Session, server_id: UUID, actor_id: UUID, member: DischatMember) -> None:
    """Leave (self) or kick (KICK_MEMBERS). The owner can do neither."""
    if member.is_owner:
        raise ValueError("The server owner cannot leave or be removed")
    if member.user_id != actor_id:
        require_permission(db, server_id, actor_id, Permission.KICK_MEMBERS)
    db.delete(member)
    db.commit()


# =============================================================================
# Roles
# =============================================================================

def list_roles(db: Session, server_id: UUID) -> list[DischatRole]:
    return db.query(DischatRole).filter(
        DischatRole.server_id == server_id
    ).order_by(DischatRole.position.desc()).all()


def get_role(db: Session, server_id: UUID, role_id: UUID) -> DischatRole:
    role = db.query(DischatRole).filter(
        DischatRole.id == role_id,
        DischatRole.server_id == server_id,
    ).first()
    if role is None:
        raise DischatNotFoundError("Role not found")
    return role


def create_role(db: Session, server_id: UUID, user_id: UUID, data: RoleCreate) -> DischatRole:
    require_permission(db, server_id, user_id, Permission.MANAGE_ROLES)
    name = data.name.strip()
    if not name:
        raise ValueError("Role name is required")
    max_position = db.query(func.max(DischatRole.position)).filter(
        DischatRole.server_id == server_id
    ).scalar()
    role = DischatRole(
        server_id=server_id,
        name=name,
        color=data.color,
        permissions=data.permissions,
        position=(max_position or 0) + 1,
        is_hoisted=data.is_hoisted,
        is_mentionable=data.is_mentionable,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def update_role(
    db: Session,
    server_id: UUID,
    user_id: UUID,
    role: DischatRole,
    data: RoleUpdate,
) -> DischatRole:
    require_permission(db, server_id, user_id, Permission.MANAGE_ROLES)
    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "color"}
    if role.is_default:
        # @everyone keeps its name and bottom slot
        updates.pop("name", None)
        updates.pop("position", None)
    for field, value in updates.items():
        setattr(role, field, value)
    db.commit()
    db.refresh(role)
    return role


def delete_role(db: Session, server_id: UUID, user_id: UUID, role: DischatRole) -> None:
    require_permission(db, server_id, user_id, Permission.MANAGE_ROLES)
    if role.is_default:
        raise ValueError("Cannot delete the default role")
    db.query(DischatMemberRole).filter(
        DischatMemberRole.role_id == role.id
    ).delete(synchronize_session=False)
    db.delete(role)
    db.commit()


def assign_role(
    db: Session,
    server_id: UUID,
    user_id: UUID,
    member: DischatMember,
    role: DischatRole,
) -> DischatMember:
    require_permission(db, server_id, user_id, Permission.MANAGE_ROLES)
    exists = db.query(DischatMemberRole).filter(
        DischatMemberRole.member_id == member.id,
        DischatMemberRole.role_id == role.id,
    ).first()
    if not exists:
        db.add(DischatMemberRole(member_id=member.id, role_id=role.id))
        db.commit()
    db.refresh(member)
    return member


def unassign_role(
    db: Session,
    server_id: UUID,
    user_id: UUID,
    member: DischatMember,
    role: DischatRole,
) -> DischatMember:
    require_permission(db, server_id, user_id, Permission.MANAGE_ROLES)
    db.query(DischatMemberRole).filter(
        DischatMemberRole.member_id == member.id,
        DischatMemberRole.role_id == role.id,
    ).delete(synchronize_session=False)
    db.commit()
    db.refresh(member)
    return member


# =============================================================================
# Channels
# =============================================================================

def get_channel(db: Session, channel_id: UUID) -> DischatChannel:
    channel = db.query(DischatChannel).filter(DischatChannel.id == channel_id).first()
    if channel is None:
        raise DischatNotFoundError("Channel not found")
    return channel


def list_channels(db: Session, server_id: UUID) -> list[CategoryWithChannels]:
    """Channels grouped under their categories; uncategorized channels come first.

    Thread channels are listed through their parent (list_threads), not here.
    """
    categories = db.query(DischatCategory).filter(
        DischatCategory.server_id == server_id
    ).order_by(DischatCategory.position.asc()).all()
    channels = db.query(DischatChannel).filter(
        DischatChannel.server_id == server_id,
        DischatChannel.id.not_in(select(DischatThread.thread_channel_id)),
    ).order_by(DischatChannel.position.asc()).all()

    groups: list[CategoryWithChannels] = []
    loose = [ChannelRead.model_validate(c) for c in channels if c.category_id is None]
    if loose:
        groups.append(CategoryWithChannels(id=None, name=None, position=-1, channels=loose))
    for category in categories:
        groups.append(CategoryWithChannels(
            id=category.id,
            name=category.name,
            position=category.position,
            channels=[ChannelRead.model_validate(c) for c in channels if c.category_id == category.id],
        ))
    return groups


def create_channel(db: Session, server_id: UUID, user_id: UUID, data: ChannelCreate) -> DischatChannel:
    require_permission(db, server_id, user_id, Permission.MANAGE_CHANNELS)
    name = data.name.strip()
    if not name:
        raise ValueError("Channel name is required")
    if data.category_id is not None and not db.query(DischatCategory.id).filter(
        DischatCategory.id == data.category_id,
        DischatCategory.server_id == server_id,
    ).first():
        raise DischatNotFoundError("Category not found")

    max_position = db.query(func.max(DischatChannel.position)).filter(
        DischatChannel.server_id == server_id
    ).scalar()
    channel = DischatChannel(
        server_id=server_id,
        category_id=data.category_id,
        name=name,
        channel_type=data.channel_type.value,
        topic=data.topic,
        position=0 if max_position is None else max_position + 1,
    )
    db.add(channel)
    db.commit()
    db.refresh(channel)
    return channel


def delete_channel(db: Session, user_id: UUID, channel: DischatChannel) -> None:
    """Delete a channel with its messages. Threads opened from it go too."""
    require_permission(db, channel.server_id, user_id, Permission.MANAGE_CHANNELS)
    threads = db.query(DischatThread).filter(
        or_(
            DischatThread.parent_channel_id == channel.id,
            DischatThread.thread_channel_id == channel.id,
        )
    ).all()
    child_ids = [t.thread_channel_id for t in threads if t.parent_channel_id == channel.id]
    channel_ids = [channel.id, *child_ids]

    db.query(DischatMessage).filter(
        DischatMessage.thread_id.in_(channel_ids)
    ).update({DischatMessage.thread_id: None}, synchronize_session=False)
    db.query(DischatMessage).filter(
        DischatMessage.channel_id.in_(channel_ids)
    ).delete(synchronize_session=False)
    db.query(DischatCallInvite).filter(
        DischatCallInvite.channel_id.in_(channel_ids)
    ).delete(synchronize_session=False)
    db.query(DischatThread).filter(
        DischatThread.id.in_([t.id for t in threads])
    ).delete(synchronize_session=False)
    if child_ids:
        db.query(DischatChannel).filter(
            DischatChannel.id.in_(child_ids)
        ).delete(synchronize_session=False)
    db.delete(channel)
    db.commit()


# =============================================================================
# Messages
# =============================================================================

def to_message_read(message: DischatMessage) -> MessageRead:
    return MessageRead(
        id=message.id,
        channel_id=message.channel_id,
        author_id=message.author_id,
        author_name=message.author.full_name if message.author else None,
        content=message.content,
        message_type=message.message_type,
        reply_to_id=message.reply_to_id,
        attachments=message.attachments or [],
        mentions=message.mentions or [],
        mention_everyone=message.mention_everyone,
        thread_id=message.thread_id,
        created_at=message.created_at,
    )


def _cursor_time(db: Session, model, scope, message_id: UUID | None):
    if message_id is None:
        return None
    return db.query(model.created_at).filter(model.id == message_id, scope).scalar()


def _page(db: Session, model, scope, limit: int, before: UUID | None, after: UUID | None) -> list:
    """Newest `limit` rows of `model` inside the cursors, returned oldest first.

    Cursors are message ids within `scope`; an unknown id is ignored.
    """
    limit = max(1, min(limit, MAX_MESSAGE_LIMIT))
    query = (
        db.query(model)
        .options(joinedload(model.author))
        .filter(scope, model.is_deleted.is_(False))
    )
    before_at = _cursor_time(db, model, scope, before)
    if before_at is not None:
        query = query.filter(model.created_at < before_at)
    after_at = _cursor_time(db, model, scope, after)
    if after_at is not None:
        query = query.filter(model.created_at > after_at)

    rows = query.order_by(model.created_at.desc()).limit(limit).all()
    rows.reverse()
    return rows


def list_messages(
    db: Session,
    channel: DischatChannel,
    user_id: UUID,
    limit: int = 50,
    before: UUID | None = None,
    after: UUID | None = None,
) -> list[DischatMessage]:
    require_member(db, channel.server_id, user_id)
    return _page(db, DischatMessage, DischatMessage.channel_id == channel.id, limit, before, after)


def parse_mentions(content: str) -> tuple[list[str], bool]:
    """User ids from <@id> tokens (deduplicated) and whether @everyone/@here appears."""
    mentions: list[str] = []
    for match in USER_MENTION_PATTERN.finditer(content):
        if match.group(1) not in mentions:
            mentions.append(match.group(1))
    mention_everyone = "@everyone" in content or "@here" in content
    return mentions, mention_everyone


def send_message(
    db: Session,
    channel: DischatChannel,
    user_id: UUID,
    data: MessageCreate,
) -> DischatMessage:
    content = (data.content or "").strip()
    if not content:
        raise ValueError("Message content is required")
    if ChannelType(channel.channel_type) not in MESSAGEABLE_CHANNEL_TYPES:
        raise ValueError("Cannot send messages to this channel type")

    member = require_member(db, channel.server_id, user_id)
    if member.communication_disabled_until and as_utc(member.communication_disabled_until) > utcnow():
        raise TimedOutError("You are timed out from this server")
    if not has_permission(effective_permissions(db, member), Permission.SEND_MESSAGES):
        raise MissingPermissionError("Missing permission: SEND_MESSAGES")

    if data.reply_to_id is not None and not db.query(DischatMessage.id).filter(
        DischatMessage.id == data.reply_to_id,
        DischatMessage.channel_id == channel.id,
    ).first():
        raise DischatNotFoundError("Message not found")

    mentions, mention_everyone = parse_mentions(content)
    message = DischatMessage(
        channel_id=channel.id,
        author_id=user_id,
        content=content,
        message_type=(MessageType.REPLY if data.reply_to_id else MessageType.DEFAULT).value,
        reply_to_id=data.reply_to_id,
        attachments=list(data.attachments),
        mentions=mentions,
        mention_everyone=mention_everyone,
    )
    db.add(message)
    channel.last_message_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, channel: DischatChannel, user_id: UUID, message_id: UUID) -> None:
    """Soft delete by the author or a member with MANAGE_MESSAGES."""
    message = db.query(DischatMessage).filter(
        DischatMessage.id == message_id,
        DischatMessage.channel_id == channel.id,
        DischatMessage.is_deleted.is_(False),
    ).first()
    if message is None:
        raise DischatNotFoundError("Message not found")
    if message.author_id != user_id:
        require_permission(db, channel.server_id, user_id, Permission.MANAGE_MESSAGES)
    message.is_deleted = True
    db.commit()


# =============================================================================
# Threads
# =============================================================================

def thread_channel_name(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def create_thread(
    db: Session,
    channel: DischatChannel,
    user_id: UUID,
    data: ThreadCreate,
) -> DischatThread:
    """
    Open a thread off a text channel, optionally from one of its messages.

    The thread gets its own text channel in the same server. A starter
    message is flagged thread_starter and points at that channel.
    """
    name = data.name.strip()
    if not name:
        raise ValueError("Thread name is required")
    if ChannelType(channel.channel_type) not in MESSAGEABLE_CHANNEL_TYPES:
        raise ValueError("Threads can only be created in text channels")
    if db.query(DischatThread.id).filter(DischatThread.thread_channel_id == channel.id).first():
        raise ValueError("Cannot create a thread inside a thread")
    require_member(db, channel.server_id, user_id)

    starter = None
    if data.message_id is not None:
        starter = db.query(DischatMessage).filter(
            DischatMessage.id == data.message_id,
            DischatMessage.channel_id == channel.id,
            DischatMessage.is_deleted.is_(False),
        ).first()
        if starter is None:
            raise DischatNotFoundError("Message not found")
        if starter.thread_id is not None:
            raise ValueError("This message already has a thread")

    thread_channel = DischatChannel(
        server_id=channel.server_id,
        name=thread_channel_name(name),
        channel_type=ChannelType.TEXT.value,
        position=0,
    )
    db.add(thread_channel)
    db.flush()

    thread = DischatThread(
        parent_channel_id=channel.id,
        thread_channel_id=thread_channel.id,
        starter_message_id=starter.id if starter else None,
        name=name,
        owner_id=user_id,
        auto_archive_duration=data.auto_archive_duration,
    )
    db.add(thread)
    if starter is not None:
        starter.thread_id = thread_channel.id
        starter.message_type = MessageType.THREAD_STARTER.value
    db.commit()
    db.refresh(thread)
    logger.info(
        "Dischat thread created",
        extra={"channel_id": str(channel.id), "thread_id": str(thread.id)},
    )
    return thread


def list_threads(
    db: Session,
    channel: DischatChannel,
    user_id: UUID,
    include_archived: bool = False,
) -> list[DischatThread]:
    """Threads of a channel, newest first."""
    require_member(db, channel.server_id, user_id)
    query = (
        db.query(DischatThread)
        .options(joinedload(DischatThread.thread_channel))
        .filter(DischatThread.parent_channel_id == channel.id)
    )
    if not include_archived:
        query = query.filter(DischatThread.is_archived.is_(False))
    return query.order_by(DischatThread.created_at.desc()).all()


# =============================================================================
# Direct messages
# =============================================================================

def _require_org_user(db: Session, org_id: UUID, user_id: UUID) -> User:
    user = (
        db.query(User)
        .join(Membership, Membership.user_id == User.id)
        .filter(User.id == user_id, Membership.organization_id == org_id)
        .first()
    )
    if user is None:
        raise DischatNotFoundError("Recipient not found")
    return user


def get_dm(db: Session, dm_id: UUID) -> DischatDmChannel:
    dm = db.query(DischatDmChannel).filter(DischatDmChannel.id == dm_id).first()
    if dm is None:
        raise DischatNotFoundError("DM not found")
    return dm


def dm_participant_ids(dm: DischatDmChannel) -> list[UUID]:
    if dm.is_group:
        return [m.user_id for m in dm.members]
    return [uid for uid in (dm.user1_id, dm.user2_id) if uid is not None]


def require_dm_access(dm: DischatDmChannel, user_id: UUID) -> None:
    if user_id not in dm_participant_ids(dm):
        raise DmAccessError("Access denied")


def to_dm_read(db: Session, dm: DischatDmChannel, user_id: UUID) -> DmRead:
    read = DmRead(
        id=dm.id,
        is_group=dm.is_group,
        group_name=dm.group_name,
        owner_id=dm.owner_id,
        last_message_at=dm.last_message_at,
        created_at=dm.created_at,
    )
    if dm.is_group:
        read.member_ids = dm_participant_ids(dm)
    else:
        other_id = dm.user2_id if dm.user1_id == user_id else dm.user1_id
        read.other_user_id = other_id
        read.other_user_name = display_name(db, other_id) if other_id else None
    return read


def list_dms(db: Session, user_id: UUID) -> tuple[list[DischatDmChannel], list[DischatDmChannel]]:
    """(1:1 DMs, group DMs) for the user, most recently active first."""
    order = (
        DischatDmChannel.last_message_at.desc().nulls_last(),
        DischatDmChannel.created_at.desc(),
    )
    direct = db.query(DischatDmChannel).filter(
        DischatDmChannel.is_group.is_(False),
        or_(DischatDmChannel.user1_id == user_id, DischatDmChannel.user2_id == user_id),
    ).order_by(*order).all()
    groups = (
        db.query(DischatDmChannel)
        .join(DischatDmMember, DischatDmMember.dm_channel_id == DischatDmChannel.id)
        .filter(DischatDmChannel.is_group.is_(True), DischatDmMember.user_id == user_id)
        .order_by(*order)
        .all()
    )
    return direct, groups


def open_dm(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    data: DmCreate,
) -> tuple[DischatDmChannel, bool]:
    """
    Open a DM. Returns (dm, created).

    Several recipient_ids start a new group DM owned by the caller. A single
    recipient reuses the existing 1:1 DM for that pair. Recipients must
    belong to the caller's organization.
    """
    recipient_ids = list(dict.fromkeys(r for r in data.recipient_ids if r != user_id))

    if len(recipient_ids) > 1:
        for rid in recipient_ids:
            _require_org_user(db, org_id, rid)
        dm = DischatDmChannel(
            is_group=True,
            group_name=(data.group_name or "").strip() or None,
            owner_id=user_id,
        )
        dm.members = [DischatDmMember(user_id=uid) for uid in [user_id, *recipient_ids]]
        db.add(dm)
        db.commit()
        db.refresh(dm)
        logger.info("Group DM created", extra={"dm_id": str(dm.id), "members": len(dm.members)})
        return dm, True

    recipient_id = data.recipient_id or (recipient_ids[0] if recipient_ids else None)
    if recipient_id is None:
        raise ValueError("Recipient ID is required")
    if recipient_id == user_id:
        raise ValueError("Cannot create DM with yourself")
    _require_org_user(db, org_id, recipient_id)

    user1_id, user2_id = sorted([user_id, recipient_id], key=str)
    existing = db.query(DischatDmChannel).filter(
        DischatDmChannel.user1_id == user1_id,
        DischatDmChannel.user2_id == user2_id,
        DischatDmChannel.is_group.is_(False),
    ).first()
    if existing is not None:
        return existing, False

    dm = DischatDmChannel(user1_id=user1_id, user2_id=user2_id, is_group=False)
    db.add(dm)
    db.commit()
    db.refresh(dm)
    return dm, True


def to_dm_message_read(message: DischatDmMessage) -> DmMessageRead:
    return DmMessageRead(
        id=message.id,
        dm_channel_id=message.dm_channel_id,
        author_id=message.author_id,
        author_name=message.author.full_name if message.author else None,
        content=message.content,
        message_type=message.message_type,
        reply_to_id=message.reply_to_id,
        attachments=message.attachments or [],
        created_at=message.created_at,
    )


def list_dm_messages(
    db: Session,
    dm: DischatDmChannel,
    user_id: UUID,
    limit: int = 50,
    before: UUID | None = None,
    after: UUID | None = None,
) -> list[DischatDmMessage]:
    require_dm_access(dm, user_id)
    return _page(db, DischatDmMessage, DischatDmMessage.dm_channel_id == dm.id, limit, before, after)


def send_dm_message(
    db: Session,
    dm: DischatDmChannel,
    user_id: UUID,
    data: MessageCreate,
) -> DischatDmMessage:
    content = (data.content or "").strip()
    if not content:
        raise ValueError("Message content is required")
    require_dm_access(dm, user_id)

    if data.reply_to_id is not None and not db.query(DischatDmMessage.id).filter(
        DischatDmMessage.id == data.reply_to_id,
        DischatDmMessage.dm_channel_id == dm.id,
    ).first():
        raise DischatNotFoundError("Message not found")

    message = DischatDmMessage(
        dm_channel_id=dm.id,
        author_id=user_id,
        content=content,
        message_type=(MessageType.REPLY if data.reply_to_id else MessageType.DEFAULT).value,
        reply_to_id=data.reply_to_id,
        attachments=list(data.attachments),
    )
    db.add(message)
    dm.last_message_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


# =============================================================================
# Invites
# =============================================================================

def _expires_at(max_age_seconds: int | None):
    if not max_age_seconds:
        return None
    return utcnow() + timedelta(seconds=max_age_seconds)


def _unique_code(db: Session, model) -> str:
    while True:
        code = generate_invite_code()
        if not db.query(model.id).filter(model.code == code).first():
            return code


def is_invite_usable(invite) -> bool:
    """Not expired and not used up."""
    if invite.expires_at is not None and as_utc(invite.expires_at) <= utcnow():
        return False
    if invite.max_uses is not None and invite.uses >= invite.max_uses:
        return False
    return True


def list_invites(db: Session, server_id: UUID, user_id: UUID) -> list[DischatInvite]:
    require_permission(db, server_id, user_id, Permission.MANAGE_GUILD)
    return db.query(DischatInvite).filter(
        DischatInvite.server_id == server_id
    ).order_by(DischatInvite.created_at.desc()).all()


def create_invite(db: Session, server_id: UUID, user_id: UUID, data: InviteCreate) -> DischatInvite:
    require_permission(db, server_id, user_id, Permission.CREATE_INSTANT_INVITE)
    if data.channel_id is not None:
        channel = get_channel(db, data.channel_id)
        if channel.server_id != server_id:
            raise DischatNotFoundError("Channel not found")

    invite = DischatInvite(
        code=_unique_code(db, DischatInvite),
        server_id=server_id,
        channel_id=data.channel_id,
        inviter_id=user_id,
        max_uses=data.max_uses,
        max_age_seconds=data.max_age_seconds,
        expires_at=_expires_at(data.max_age_seconds),
        is_temporary=data.is_temporary,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    return invite


def get_invite(db: Session, code: str) -> DischatInvite:
    """Usable invite by code. Raises not-found (404) or unavailable (410)."""
    invite = db.query(DischatInvite).filter(DischatInvite.code == code).first()
    if invite is None:
        raise DischatNotFoundError("Invite not found")
    if not is_invite_usable(invite):
        raise InviteUnavailableError("This invite has expired or reached its use limit")
    return invite


def join_with_invite(db: Session, code: str, user_id: UUID) -> tuple[DischatServer, DischatMember]:
    invite = get_invite(db, code)
    if get_member(db, invite.server_id, user_id):
        raise AlreadyMemberError("Already a member of this server")

    member = DischatMember(server_id=invite.server_id, user_id=user_id)
    db.add(member)
    db.flush()
    default_role = get_default_role(db, invite.server_id)
    if default_role is not None:
        db.add(DischatMemberRole(member_id=member.id, role_id=default_role.id))
    invite.uses = invite.uses + 1
    db.commit()
    db.refresh(member)
    logger.info(
        "Member joined via invite",
        extra={"server_id": str(invite.server_id), "member_id": str(member.id)},
    )
    return get_server(db, invite.server_id), member


def delete_invite(db: Session, server_id: UUID, user_id: UUID, code: str) -> None:
    require_permission(db, server_id, user_id, Permission.MANAGE_GUILD)
    invite = db.query(DischatInvite).filter(
        DischatInvite.code == code,
        DischatInvite.server_id == server_id,
    ).first()
    if invite is None:
        raise DischatNotFoundError("Invite not found")
    db.delete(invite)
    db.commit()


# =============================================================================
# Call invites (guest links into one call)
# =============================================================================

def create_call_invite(
    db: Session,
    channel: DischatChannel,
    user_id: UUID,
    data: CallInviteCreate,
) -> DischatCallInvite:
    require_permission(db, channel.server_id, user_id, Permission.CREATE_INSTANT_INVITE)
    if ChannelType(channel.channel_type) not in CALL_CHANNEL_TYPES:
        raise ValueError("Call invites are only available for voice and video channels")

    invite = DischatCallInvite(
        code=_unique_code(db, DischatCallInvite),
        channel_id=channel.id,
        server_id=channel.server_id,
        created_by_user_id=user_id,
        max_uses=data.max_uses,
        expires_at=_expires_at(data.max_age_seconds),
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    return invite


def get_call_invite(db: Session, code: str) -> DischatCallInvite | None:
    return db.query(DischatCallInvite).filter(DischatCallInvite.code == code).first()


def display_name(db: Session, user_id: UUID) -> str | None:
    user = db.query(User).filter(User.id == user_id).first()
    return user.full_name if user else None

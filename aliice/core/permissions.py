"""Dischat permission bitmask with metadata for UI and validation.

Each role stores an integer; a permission is granted when its bit is set.
Bit positions follow Discord's so exported values stay interchangeable.

Precedence: owner > is_admin / ADMINISTRATOR (everything) > OR of roles
"""

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Iterable


class Permission(IntFlag):
    CREATE_INSTANT_INVITE = 1 << 0
    KICK_MEMBERS = 1 << 1
    BAN_MEMBERS = 1 << 2
    ADMINISTRATOR = 1 << 3
    MANAGE_CHANNELS = 1 << 4
    MANAGE_GUILD = 1 << 5
    ADD_REACTIONS = 1 << 6
    VIEW_AUDIT_LOG = 1 << 7
    PRIORITY_SPEAKER = 1 << 8
    STREAM = 1 << 9
    VIEW_CHANNEL = 1 << 10
    SEND_MESSAGES = 1 << 11
    SEND_TTS_MESSAGES = 1 << 12
    MANAGE_MESSAGES = 1 << 13
    EMBED_LINKS = 1 << 14
    ATTACH_FILES = 1 << 15
    READ_MESSAGE_HISTORY = 1 << 16
    MENTION_EVERYONE = 1 << 17
    USE_EXTERNAL_EMOJIS = 1 << 18
    VIEW_GUILD_INSIGHTS = 1 << 19
    CONNECT = 1 << 20
    SPEAK = 1 << 21
    MUTE_MEMBERS = 1 << 22
    DEAFEN_MEMBERS = 1 << 23
    MOVE_MEMBERS = 1 << 24
    USE_VAD = 1 << 25
    CHANGE_NICKNAME = 1 << 26
    MANAGE_NICKNAMES = 1 << 27
    MANAGE_ROLES = 1 << 28
    MANAGE_WEBHOOKS = 1 << 29
    MANAGE_EMOJIS = 1 << 30
    USE_APPLICATION_COMMANDS = 1 << 31
    REQUEST_TO_SPEAK = 1 << 32
    MANAGE_EVENTS = 1 << 33
    MANAGE_THREADS = 1 << 34
    CREATE_PUBLIC_THREADS = 1 << 35
    CREATE_PRIVATE_THREADS = 1 << 36
    USE_EXTERNAL_STICKERS = 1 << 37
    SEND_MESSAGES_IN_THREADS = 1 << 38
    USE_EMBEDDED_ACTIVITIES = 1 << 39
    MODERATE_MEMBERS = 1 << 40


ALL_PERMISSIONS = 0
for _flag in Permission:
    ALL_PERMISSIONS |= _flag.value

# @everyone on a new server
DEFAULT_ROLE_PERMISSIONS = (
    Permission.VIEW_CHANNEL
    | Permission.SEND_MESSAGES
    | Permission.READ_MESSAGE_HISTORY
    | Permission.ADD_REACTIONS
    | Permission.CONNECT
    | Permission.SPEAK
)


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    flag: Permission
    label: str
    description: str
    category: str


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    GENERAL = "General"
    MEMBERSHIP = "Membership"
    TEXT = "Text"
    VOICE = "Voice"


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: list[PermissionDef] = [
    # General
    PermissionDef(
        Permission.ADMINISTRATOR, "Administrator",
        "Full access to all permissions", PermissionCategory.GENERAL
    ),
    PermissionDef(
        Permission.VIEW_CHANNEL, "View Channels",
        "View text and voice channels", PermissionCategory.GENERAL
    ),
    PermissionDef(
        Permission.MANAGE_CHANNELS, "Manage Channels",
        "Create, edit, delete channels", PermissionCategory.GENERAL
    ),
    PermissionDef(
        Permission.MANAGE_GUILD, "Manage Server",
        "Change server settings", PermissionCategory.GENERAL
    ),
    PermissionDef(
        Permission.CREATE_INSTANT_INVITE, "Create Invite",
        "Create invites to the server", PermissionCategory.GENERAL
    ),

    # Membership
    PermissionDef(
        Permission.KICK_MEMBERS, "Kick Members",
        "Remove members from server", PermissionCategory.MEMBERSHIP
    ),
    PermissionDef(
        Permission.BAN_MEMBERS, "Ban Members",
        "Permanently ban members", PermissionCategory.MEMBERSHIP
    ),
    PermissionDef(
        Permission.MODERATE_MEMBERS, "Timeout Members",
        "Timeout members from chatting", PermissionCategory.MEMBERSHIP
    ),
    PermissionDef(
        Permission.MANAGE_NICKNAMES, "Manage Nicknames",
        "Change other members' nicknames", PermissionCategory.MEMBERSHIP
    ),
    PermissionDef(
        Permission.MANAGE_ROLES, "Manage Roles",
        "Create and edit roles below this one", PermissionCategory.MEMBERSHIP
    ),

    # Text
    PermissionDef(
        Permission.SEND_MESSAGES, "Send Messages",
        "Send messages in text channels", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.EMBED_LINKS, "Embed Links",
        "Links show rich previews", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.ATTACH_FILES, "Attach Files",
        "Upload files and images", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.ADD_REACTIONS, "Add Reactions",
        "React to messages with emoji", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.USE_EXTERNAL_EMOJIS, "Use External Emoji",
        "Use emoji from other servers", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.MENTION_EVERYONE, "Mention Everyone",
        "Use @everyone and @here", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.MANAGE_MESSAGES, "Manage Messages",
        "Delete and pin any message", PermissionCategory.TEXT
    ),
    PermissionDef(
        Permission.READ_MESSAGE_HISTORY, "Read Message History",
        "View past messages", PermissionCategory.TEXT
    ),

    # Voice
    PermissionDef(
        Permission.CONNECT, "Connect",
        "Join voice channels", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.SPEAK, "Speak",
        "Talk in voice channels", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.STREAM, "Video",
        "Share video and screen", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.MUTE_MEMBERS, "Mute Members",
        "Mute others in voice", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.DEAFEN_MEMBERS, "Deafen Members",
        "Deafen others in voice", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.MOVE_MEMBERS, "Move Members",
        "Move members between voice channels", PermissionCategory.VOICE
    ),
    PermissionDef(
        Permission.PRIORITY_SPEAKER, "Priority Speaker",
        "Be heard over others", PermissionCategory.VOICE
    ),
]


def has_permission(permissions: int, flag: Permission | int) -> bool:
    """AND-mask test: every bit of flag is set in permissions."""
    flag = int(flag)
    return (int(permissions) & flag) == flag


def compute_effective(
    role_permissions: Iterable[int],
    is_owner: bool = False,
    is_admin: bool = False,
) -> int:
    """
    Single source of truth for a member's permissions.

    role_permissions includes the default role. Owners, is_admin members
    and any role carrying ADMINISTRATOR get every bit.
    """
    if is_owner or is_admin:
        return ALL_PERMISSIONS
    combined = 0
    for value in role_permissions:
        combined |= int(value)
    if has_permission(combined, Permission.ADMINISTRATOR):
        return ALL_PERMISSIONS
    return combined


def granted_names(permissions: int) -> list[str]:
    """Names of every flag set in permissions, in bit order."""
    return [flag.name for flag in Permission if has_permission(permissions, flag)]

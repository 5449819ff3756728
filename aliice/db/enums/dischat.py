"""Dischat enums."""

from enum import Enum


class ChannelType(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    VIDEO = "video"
    STAGE = "stage"
    FORUM = "forum"
    ANNOUNCEMENT = "announcement"


# Channels that accept chat messages
MESSAGEABLE_CHANNEL_TYPES = frozenset({ChannelType.TEXT, ChannelType.ANNOUNCEMENT})
# Channels that host an RTC call
CALL_CHANNEL_TYPES = frozenset({ChannelType.VOICE, ChannelType.VIDEO, ChannelType.STAGE})


class MessageType(str, Enum):
    DEFAULT = "default"
    REPLY = "reply"
    THREAD_STARTER = "thread_starter"


class MemberStatus(str, Enum):
    ONLINE = "online"
    IDLE = "idle"
    DND = "dnd"
    OFFLINE = "offline"

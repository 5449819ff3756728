"""Assistant chat enums."""

from enum import Enum


class ChatRole(str, Enum):
    """Author of a chat message, as understood by the completion API."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

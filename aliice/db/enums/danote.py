"""Danote whiteboard enums."""

from enum import Enum


class ElementType(str, Enum):
    """Closed set of canvas element kinds."""

    NOTE = "note"
    TEXT = "text"
    TEXT_HEADER = "text-header"
    TEXT_PARAGRAPH = "text-paragraph"
    TEXT_SENTENCE = "text-sentence"
    IMAGE = "image"
    TODO = "todo"
    COLUMN = "column"
    COLOR_SWATCH = "color-swatch"
    BOARD_LINK = "board-link"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    ARROW = "arrow"
    CONTAINER = "container"
    AUDIO = "audio"


# Shapes drawn by drag; they share the minimum-size clamp
DRAWN_SHAPE_TYPES = frozenset(
    {ElementType.RECTANGLE, ElementType.CIRCLE, ElementType.LINE, ElementType.ARROW}
)
# Shapes whose geometry lives in metadata startX/startY/endX/endY
SEGMENT_TYPES = frozenset({ElementType.LINE, ElementType.ARROW})


class ZOrderAction(str, Enum):
    FRONT = "front"
    BACK = "back"
    FORWARD = "forward"
    BACKWARD = "backward"


class ResizeHandle(str, Enum):
    """Compass handles on the selection box."""

    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"


class DanoteNotificationType(str, Enum):
    MENTION = "mention"
    COMMENT = "comment"
    REPLY = "reply"

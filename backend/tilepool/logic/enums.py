"""
String enum definitions for tile pool concepts.
"""

from enum import Enum, IntEnum


class Suit(str, Enum):
    """Tile suits in notation order (man, pin, sou, honors)."""

    MAN = "m"
    PIN = "p"
    SOU = "s"
    HONOR = "z"


class PlayerCount(IntEnum):
    """Table configurations supported by the wall tracker."""

    THREE = 3
    FOUR = 4


class MeldKind(str, Enum):
    """Types of exposed (or self-declared) melds."""

    CHI = "chi"
    PON = "pon"
    OPEN_KAN = "open_kan"
    ADDED_KAN = "added_kan"
    CLOSED_KAN = "closed_kan"

    @property
    def is_kan(self) -> bool:
        return self in _KAN_KINDS


_KAN_KINDS = frozenset({MeldKind.OPEN_KAN, MeldKind.ADDED_KAN, MeldKind.CLOSED_KAN})


class HandPhase(str, Enum):
    """Where the hand stands in the draw/discard cycle."""

    EMPTY = "empty"  # nothing dealt yet
    FULL = "full"  # 3k+2 tiles, must discard or declare a self kan
    MISSING_ONE = "missing_one"  # 3k+1 tiles, may draw or call
    AWAITING_REPLACEMENT = "awaiting_replacement"  # kan declared, replacement draw pending


class SessionMode(str, Enum):
    """Top-level session states."""

    NORMAL = "normal"
    INTERACTIVE = "interactive"


class OperationType(str, Enum):
    """Discriminator values for the operation union."""

    DEAL = "deal"
    DRAW = "draw"
    DISCARD = "discard"
    CALL = "call"
    WALL_ADD = "wall_add"
    WALL_REMOVE = "wall_remove"
    CONFIG_SWITCH = "config_switch"
    MODE_SWITCH = "mode_switch"

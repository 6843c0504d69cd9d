"""Typed domain exceptions for tile pool rule violations.

All domain-level rule violations use subclasses of TilePoolError rather
than raw ValueError. The session and console layers catch TilePoolError
and report the message; every error leaves the pool state unchanged.
"""


class TilePoolError(Exception):
    """Base exception for recoverable tile pool violations."""


class OutOfBoundsError(TilePoolError):
    """Unforced wall adjustment would leave a count outside [0, 4].

    Attributes:
        tile: Notation of the tile whose count was adjusted (e.g. "5z").
        count: Wall count before the adjustment.
        delta: Requested change.

    """

    def __init__(self, *, tile: str, count: int, delta: int) -> None:
        self.tile = tile
        self.count = count
        self.delta = delta
        super().__init__(f"wall count of {tile} would become {count + delta} (currently {count})")


class InvalidHandSizeError(TilePoolError):
    """Shanten query on a hand that is not 3k+2 tiles (k in 0..4)."""


class IllegalTileForConfigError(TilePoolError):
    """Tile does not exist under the current configuration: man 2-8 in 3-player, or a fifth copy."""


class IllegalMeldShapeError(TilePoolError):
    """Malformed chi/pon/kan tile set, or the hand cannot form it."""


class EmptyHistoryError(TilePoolError):
    """Undo requested with nothing to undo."""


class ModeViolationError(TilePoolError):
    """Stateful command issued outside interactive mode."""


class InvalidDiscardError(TilePoolError):
    """Tile cannot be discarded because it is not in the concealed hand."""


class InvalidActionError(TilePoolError):
    """Operation is not valid in the current hand phase."""


class NotationError(TilePoolError, ValueError):
    """Tile string or command line cannot be tokenized."""

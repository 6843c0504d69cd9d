"""
Operation models: the only mutators of wall and hand state.

Operations form a discriminated union on `type`. Every operation carries a
`forced` flag; forced operations clamp wall counts instead of failing.
Config and mode switches are session-level and reset the log rather than
entering it.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from tilepool.logic.enums import OperationType, PlayerCount
from tilepool.logic.hand import format_tiles
from tilepool.logic.tiles import Tile


class _OperationBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    forced: bool = False

    @property
    def _prefix(self) -> str:
        return "!" if self.forced else ""


class DealOperation(_OperationBase):
    """Set up the concealed hand with 13 or 14 tiles taken from the wall."""

    type: Literal[OperationType.DEAL] = OperationType.DEAL
    tiles: tuple[Tile, ...]

    def __str__(self) -> str:
        return f"{self._prefix}{format_tiles(self.tiles)}"


class DrawOperation(_OperationBase):
    type: Literal[OperationType.DRAW] = OperationType.DRAW
    tile: Tile

    def __str__(self) -> str:
        return f"{self._prefix}+{self.tile}"


class DiscardOperation(_OperationBase):
    type: Literal[OperationType.DISCARD] = OperationType.DISCARD
    tile: Tile

    def __str__(self) -> str:
        return f"{self._prefix}-{self.tile}"


class CallOperation(_OperationBase):
    """
    Chi, pon or kan.

    The meld kind is derived from the tiles and the hand: a run is a chi,
    three of a kind a pon, four of a kind a kan whose open/added/closed
    classification depends on the hand at the moment of the call.
    called_tile defaults to the first listed tile for calls that claim one.
    replacement_tile draws the kan replacement as part of the same command.
    """

    type: Literal[OperationType.CALL] = OperationType.CALL
    tiles: tuple[Tile, ...]
    called_tile: Tile | None = None
    replacement_tile: Tile | None = None

    def __str__(self) -> str:
        called = f"{self.called_tile}" if self.called_tile is not None else ""
        rest = list(self.tiles)
        if self.called_tile in rest:
            rest.remove(self.called_tile)
        replacement = f"+{self.replacement_tile}" if self.replacement_tile is not None else ""
        return f"{self._prefix}>{called}{format_tiles(rest)}{replacement}"


class WallAddOperation(_OperationBase):
    """Return tiles to the wall (correcting an earlier mistake)."""

    type: Literal[OperationType.WALL_ADD] = OperationType.WALL_ADD
    tiles: tuple[Tile, ...]

    def __str__(self) -> str:
        return f"*{self._prefix}+{format_tiles(self.tiles)}"


class WallRemoveOperation(_OperationBase):
    """Remove tiles seen elsewhere (other players' discards and melds) from the wall."""

    type: Literal[OperationType.WALL_REMOVE] = OperationType.WALL_REMOVE
    tiles: tuple[Tile, ...]

    def __str__(self) -> str:
        return f"*{self._prefix}-{format_tiles(self.tiles)}"


class ConfigSwitchOperation(_OperationBase):
    type: Literal[OperationType.CONFIG_SWITCH] = OperationType.CONFIG_SWITCH
    player_count: PlayerCount

    def __str__(self) -> str:
        return f"{int(self.player_count)}p"


class ModeSwitchOperation(_OperationBase):
    type: Literal[OperationType.MODE_SWITCH] = OperationType.MODE_SWITCH
    interactive: bool

    def __str__(self) -> str:
        return "interactive" if self.interactive else "normal"


PoolOperation = DealOperation | DrawOperation | DiscardOperation | CallOperation | WallAddOperation | WallRemoveOperation

Operation = Annotated[
    PoolOperation | ConfigSwitchOperation | ModeSwitchOperation,
    Field(discriminator="type"),
]

"""Table configuration for the tile pool: which tile types exist and how many."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from tilepool.logic.enums import PlayerCount
from tilepool.logic.exceptions import IllegalTileForConfigError
from tilepool.logic.tiles import MAN_34_START, MAX_TILE_COPIES, NUM_TILE_TYPES, TERMINALS_AND_HONORS_34

if TYPE_CHECKING:
    from tilepool.logic.tiles import Tile

# 3-player tables play without 2m-8m
THREE_PLAYER_REMOVED_34 = frozenset(range(MAN_34_START + 1, MAN_34_START + 8))

_LEGAL_TYPES_34: dict[PlayerCount, frozenset[int]] = {
    PlayerCount.FOUR: frozenset(range(NUM_TILE_TYPES)),
    PlayerCount.THREE: frozenset(range(NUM_TILE_TYPES)) - THREE_PLAYER_REMOVED_34,
}


class PoolSettings(BaseModel):
    """
    Configuration shared by the wall tracker, hand validation and calculator.

    Thirteen orphans counts over the orphan types legal in the
    configuration; since 3-player only removes 2m-8m, that set is the full
    thirteen for both player counts.
    """

    model_config = ConfigDict(frozen=True)

    player_count: PlayerCount = PlayerCount.FOUR

    @property
    def legal_types_34(self) -> frozenset[int]:
        return _LEGAL_TYPES_34[self.player_count]

    @property
    def orphan_types_34(self) -> tuple[int, ...]:
        return tuple(i for i in TERMINALS_AND_HONORS_34 if i in self.legal_types_34)

    @property
    def initial_wall_counts(self) -> tuple[int, ...]:
        return tuple(MAX_TILE_COPIES if i in self.legal_types_34 else 0 for i in range(NUM_TILE_TYPES))

    def is_legal(self, tile_34: int) -> bool:
        return tile_34 in self.legal_types_34

    def validate_tile(self, tile: Tile) -> None:
        """Raise IllegalTileForConfigError if the tile is absent from this configuration."""
        if not self.is_legal(tile.index):
            raise IllegalTileForConfigError(f"{tile} does not exist in {int(self.player_count)}-player mahjong")

    def validate_tiles(self, tiles: list[Tile] | tuple[Tile, ...]) -> None:
        for tile in tiles:
            self.validate_tile(tile)

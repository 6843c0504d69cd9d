"""
Tile representation utilities for the tile pool.

Tiles cross component boundaries as immutable Tile values; internally the
wall, hand and calculator work on 34-format indices and count arrays.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_serializer, model_validator

from tilepool.logic.enums import Suit

# tile ranges in 34-format (each unique tile type)
MAN_34_START = 0
PIN_34_START = 9
SOU_34_START = 18
HONOR_34_START = 27

NUM_TILE_TYPES = 34
MAX_TILE_COPIES = 4
SUIT_SIZE = 9
HONOR_SIZE = 7

SUIT_START_34: dict[Suit, int] = {
    Suit.MAN: MAN_34_START,
    Suit.PIN: PIN_34_START,
    Suit.SOU: SOU_34_START,
    Suit.HONOR: HONOR_34_START,
}

# terminal tiles in 34-format (1 and 9 of each suit)
TERMINALS_34 = [0, 8, 9, 17, 18, 26]

# every terminal and honor type (thirteen orphans candidates)
TERMINALS_AND_HONORS_34 = tuple(TERMINALS_34 + list(range(HONOR_34_START, NUM_TILE_TYPES)))


def _max_rank(suit: Suit) -> int:
    return HONOR_SIZE if suit is Suit.HONOR else SUIT_SIZE


class Tile(BaseModel):
    """
    Immutable tile value.

    Serializes to its notation string ("5z") and accepts one on validation,
    so snapshots dump tiles the way a player writes them.
    """

    model_config = ConfigDict(frozen=True)

    suit: Suit
    rank: int

    @model_validator(mode="before")
    @classmethod
    def _accept_notation(cls, data: Any) -> Any:
        if isinstance(data, str):
            if len(data) != 2 or not data[0].isdigit():  # noqa: PLR2004
                raise ValueError(f"invalid tile notation: {data!r}")
            return {"suit": data[1], "rank": int(data[0])}
        return data

    @model_validator(mode="after")
    def _validate_rank(self) -> Tile:
        if not (1 <= self.rank <= _max_rank(self.suit)):
            raise ValueError(f"rank {self.rank} out of range for suit {self.suit.value}")
        return self

    @model_serializer
    def _serialize(self) -> str:
        return str(self)

    @property
    def index(self) -> int:
        """34-format index of this tile type."""
        return SUIT_START_34[self.suit] + self.rank - 1

    def __str__(self) -> str:
        return f"{self.rank}{self.suit.value}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Tile):
            return NotImplemented
        return self.index < other.index


def _build_tile(index: int) -> Tile:
    for suit in (Suit.HONOR, Suit.SOU, Suit.PIN, Suit.MAN):
        start = SUIT_START_34[suit]
        if index >= start:
            return Tile(suit=suit, rank=index - start + 1)
    raise ValueError(f"tile index must be in [0, {NUM_TILE_TYPES - 1}], got {index}")


ALL_TILES: tuple[Tile, ...] = tuple(_build_tile(i) for i in range(NUM_TILE_TYPES))


def tiles_to_34_array(tiles: list[Tile] | tuple[Tile, ...]) -> list[int]:
    """
    Convert a list of tiles to a 34-array (tile counts).

    The 34-array has 34 elements, where each index represents a tile type
    and the value is the count of that tile type.
    """
    tiles_34 = [0] * NUM_TILE_TYPES
    for tile in tiles:
        tiles_34[tile.index] += 1
    return tiles_34


def array_34_to_tiles(tiles_34: list[int] | tuple[int, ...]) -> list[Tile]:
    """Expand a 34-array into a sorted tile list."""
    return [ALL_TILES[i] for i, count in enumerate(tiles_34) for _ in range(count)]

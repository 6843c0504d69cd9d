"""
Immutable meld and hand representation.

A hand is the concealed tile multiset (34 counts), its melds in call order,
and its discards. The effective size counts every meld as one set of three
(the fourth kan tile is balanced by the replacement draw), so a hand is
3k+2 tiles after a draw and 3k+1 otherwise.
"""

from __future__ import annotations

from itertools import groupby

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tilepool.logic.enums import HandPhase, MeldKind, Suit
from tilepool.logic.exceptions import IllegalMeldShapeError
from tilepool.logic.tiles import NUM_TILE_TYPES, Tile, array_34_to_tiles

_MIN_MELD_TILES = 3
_MAX_MELD_TILES = 4
MAX_MELDS = 4
TILES_PER_SET = 3
FULL_HAND_SIZE = 14


class Meld(BaseModel):
    """
    Immutable representation of a meld.

    Tiles are stored sorted; called_tile is the tile claimed from another
    player (None for a closed kan).
    """

    model_config = ConfigDict(frozen=True)

    kind: MeldKind
    tiles: tuple[Tile, ...]
    called_tile: Tile | None = None

    @field_validator("tiles")
    @classmethod
    def _validate_tiles(cls, v: tuple[Tile, ...]) -> tuple[Tile, ...]:
        if not (_MIN_MELD_TILES <= len(v) <= _MAX_MELD_TILES):
            raise ValueError(f"meld must have {_MIN_MELD_TILES}-{_MAX_MELD_TILES} tiles, got {len(v)}")
        return tuple(sorted(v))

    @property
    def tile_34(self) -> int:
        """Lowest tile type in the meld (the whole type for pon and kan)."""
        return self.tiles[0].index

    def __str__(self) -> str:
        return f"[{format_tiles(self.tiles)}]"


def _is_identical(tiles: tuple[Tile, ...]) -> bool:
    return len(set(tiles)) == 1


def _is_run(tiles: tuple[Tile, ...]) -> bool:
    ordered = sorted(tiles)
    if ordered[0].suit is Suit.HONOR or any(t.suit is not ordered[0].suit for t in ordered):
        return False
    return [t.rank for t in ordered] == list(range(ordered[0].rank, ordered[0].rank + len(ordered)))


def infer_meld_kind(tiles: tuple[Tile, ...]) -> MeldKind:
    """
    Classify a bare tile group by shape alone: run -> chi, three of a kind ->
    pon, four of a kind -> open kan.
    """
    if len(tiles) == _MIN_MELD_TILES and _is_identical(tiles):
        return MeldKind.PON
    if len(tiles) == _MIN_MELD_TILES and _is_run(tiles):
        return MeldKind.CHI
    if len(tiles) == _MAX_MELD_TILES and _is_identical(tiles):
        return MeldKind.OPEN_KAN
    raise IllegalMeldShapeError(f"{format_tiles(tiles)} is not a chi, pon or kan")


def validate_meld_shape(kind: MeldKind, tiles: tuple[Tile, ...], called_tile: Tile | None) -> None:
    """Raise IllegalMeldShapeError if the tiles do not form a meld of this kind."""
    expected_size = _MAX_MELD_TILES if kind.is_kan else _MIN_MELD_TILES
    if len(tiles) != expected_size:
        raise IllegalMeldShapeError(f"{kind.value} needs {expected_size} tiles, got {len(tiles)}")

    if kind is MeldKind.CHI:
        if not _is_run(tiles):
            raise IllegalMeldShapeError(f"{format_tiles(tiles)} is not a run of one numbered suit")
    elif not _is_identical(tiles):
        raise IllegalMeldShapeError(f"{format_tiles(tiles)} is not {expected_size} identical tiles")

    if kind is MeldKind.CLOSED_KAN:
        if called_tile is not None:
            raise IllegalMeldShapeError("closed kan cannot include a called tile")
    elif kind is not MeldKind.ADDED_KAN:
        if called_tile is None:
            raise IllegalMeldShapeError(f"{kind.value} requires a called tile")
        if called_tile not in tiles:
            raise IllegalMeldShapeError(f"called tile {called_tile} is not part of {format_tiles(tiles)}")


def make_meld(kind: MeldKind, tiles: tuple[Tile, ...], called_tile: Tile | None = None) -> Meld:
    validate_meld_shape(kind, tiles, called_tile)
    return Meld(kind=kind, tiles=tiles, called_tile=called_tile)


class Hand(BaseModel):
    """Immutable hand state: concealed counts, melds, discards and phase."""

    model_config = ConfigDict(frozen=True)

    concealed: tuple[int, ...] = Field(default=(0,) * NUM_TILE_TYPES)
    melds: tuple[Meld, ...] = ()
    discards: tuple[Tile, ...] = ()
    phase: HandPhase = HandPhase.EMPTY

    @field_validator("concealed")
    @classmethod
    def _validate_concealed(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if len(v) != NUM_TILE_TYPES:
            raise ValueError(f"concealed counts must have {NUM_TILE_TYPES} entries, got {len(v)}")
        if any(c < 0 for c in v):
            raise ValueError("concealed counts cannot be negative")
        return v

    @field_validator("melds")
    @classmethod
    def _validate_melds(cls, v: tuple[Meld, ...]) -> tuple[Meld, ...]:
        if len(v) > MAX_MELDS:
            raise ValueError(f"a hand holds at most {MAX_MELDS} melds, got {len(v)}")
        return v

    @property
    def concealed_count(self) -> int:
        return sum(self.concealed)

    @property
    def concealed_tiles(self) -> list[Tile]:
        return array_34_to_tiles(self.concealed)

    @property
    def effective_size(self) -> int:
        return self.concealed_count + TILES_PER_SET * len(self.melds)

    @property
    def held_counts(self) -> list[int]:
        """Copies of each tile type in the hand, concealed and melded."""
        counts = list(self.concealed)
        for meld in self.melds:
            for t in meld.tiles:
                counts[t.index] += 1
        return counts

    @property
    def discarded_types(self) -> list[Tile]:
        """Distinct discarded tile types in tile order."""
        return sorted(set(self.discards))

    def count(self, tile: Tile) -> int:
        return self.concealed[tile.index]

    def find_pon(self, tile: Tile) -> int | None:
        """Index of an exposed pon of this tile type, if any."""
        for i, meld in enumerate(self.melds):
            if meld.kind is MeldKind.PON and meld.tiles[0] == tile:
                return i
        return None

    def __str__(self) -> str:
        return format_tiles(self.concealed_tiles) + "".join(str(meld) for meld in self.melds)


def phase_for_size(effective_size: int) -> HandPhase:
    """Phase a hand of this effective size is in when no replacement draw is pending."""
    if effective_size == 0:
        return HandPhase.EMPTY
    if effective_size % TILES_PER_SET == 2:  # noqa: PLR2004
        return HandPhase.FULL
    return HandPhase.MISSING_ONE


def with_tiles(concealed: tuple[int, ...], tiles: list[Tile] | tuple[Tile, ...], sign: int) -> tuple[int, ...] | None:
    """
    Return concealed counts with tiles added (sign=1) or removed (sign=-1).

    Returns None when removing a tile the hand does not hold.
    """
    counts = list(concealed)
    for tile in tiles:
        counts[tile.index] += sign
        if counts[tile.index] < 0:
            return None
    return tuple(counts)


def format_tiles(tiles: list[Tile] | tuple[Tile, ...]) -> str:
    """Compact notation: consecutive tiles of one suit share the suit letter ("123m55z")."""
    parts = []
    for suit, group in groupby(sorted(tiles), key=lambda t: t.suit):
        parts.append("".join(str(t.rank) for t in group) + suit.value)
    return "".join(parts)

"""
Wall state and operations for the tile pool.

The wall is tracked as remaining copies per tile type, not as an ordered
draw sequence. Counts live in [0, 4]; unforced adjustments that would leave
that range are rejected, forced ones are clamped to the boundary.

Every adjustment returns a WallAdjustment recording the count it started
from, so undo restores that exact count even after a lossy clamp.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tilepool.logic.exceptions import OutOfBoundsError
from tilepool.logic.settings import PoolSettings
from tilepool.logic.tiles import ALL_TILES, MAX_TILE_COPIES, Tile

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger()


class WallAdjustment(BaseModel):
    """One applied change to a single wall count."""

    model_config = ConfigDict(frozen=True)

    tile: Tile
    delta: int  # requested change
    before: int
    after: int

    @property
    def clamped(self) -> bool:
        return self.after - self.before != self.delta


class Wall(BaseModel):
    """Immutable remaining-copy counts for the 34 tile types."""

    model_config = ConfigDict(frozen=True)

    settings: PoolSettings = Field(default_factory=PoolSettings)
    counts: tuple[int, ...] = ()

    def remaining(self, tile: Tile) -> int:
        return self.counts[tile.index]

    @property
    def total(self) -> int:
        return sum(self.counts)

    def as_dict(self) -> dict[str, int]:
        """Remaining counts keyed by tile notation, legal tile types only."""
        return {str(ALL_TILES[i]): self.counts[i] for i in sorted(self.settings.legal_types_34)}


def create_wall(settings: PoolSettings | None = None) -> Wall:
    """Create a full wall: four copies of every tile type legal in the configuration."""
    settings = settings or PoolSettings()
    return Wall(settings=settings, counts=settings.initial_wall_counts)


def _next_count(tile: Tile, count: int, delta: int, *, forced: bool) -> int:
    new_count = count + delta
    if 0 <= new_count <= MAX_TILE_COPIES:
        return new_count
    if not forced:
        raise OutOfBoundsError(tile=str(tile), count=count, delta=delta)
    clamped = min(max(new_count, 0), MAX_TILE_COPIES)
    logger.debug("forced wall adjustment clamped", tile=str(tile), count=count, delta=delta, result=clamped)
    return clamped


def adjust_wall(wall: Wall, tile: Tile, delta: int, *, forced: bool = False) -> tuple[Wall, WallAdjustment]:
    """
    Change the remaining count of one tile type by delta.

    Returns (new_wall, adjustment).
    Raises IllegalTileForConfigError for tiles absent from the configuration,
    OutOfBoundsError when unforced and the count would leave [0, 4].
    """
    new_wall, adjustments = adjust_wall_many(wall, [(tile, delta)], forced=forced)
    return new_wall, adjustments[0]


def adjust_wall_many(
    wall: Wall,
    deltas: Iterable[tuple[Tile, int]],
    *,
    forced: bool = False,
) -> tuple[Wall, tuple[WallAdjustment, ...]]:
    """
    Apply several adjustments atomically.

    Deltas for the same tile are summed first; every tile is validated
    before any count changes, so a failure leaves the wall untouched.
    Adjustments are returned in tile order.
    """
    combined: Counter[Tile] = Counter()
    for tile, delta in deltas:
        wall.settings.validate_tile(tile)
        combined[tile] += delta

    counts = list(wall.counts)
    adjustments = []
    for tile in sorted(combined):
        delta = combined[tile]
        before = counts[tile.index]
        after = _next_count(tile, before, delta, forced=forced)
        counts[tile.index] = after
        adjustments.append(WallAdjustment(tile=tile, delta=delta, before=before, after=after))

    return wall.model_copy(update={"counts": tuple(counts)}), tuple(adjustments)


def restore_wall(
    wall: Wall,
    adjustments: tuple[WallAdjustment, ...],
    *,
    forced: bool = False,
) -> Wall:
    """
    Undo adjustments by driving each count back to its recorded starting value.

    The restoring delta is applied through the same bound check as any
    adjustment unless forced.
    """
    counts = list(wall.counts)
    for adjustment in reversed(adjustments):
        index = adjustment.tile.index
        counts[index] = _next_count(
            adjustment.tile,
            counts[index],
            adjustment.before - counts[index],
            forced=forced,
        )
    return wall.model_copy(update={"counts": tuple(counts)})

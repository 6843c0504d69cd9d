"""
Shanten and acceptance calculation.

Three hand shapes are evaluated independently and combined by minimum:

- standard (sets + one pair): each suit's rank-count vector is decomposed
  on its own into every achievable (sets, partials, head) combination; the
  per-suit frontiers are then merged and scored globally, since capping
  partials at the number of missing sets makes the best split across suits
  a joint choice;
- seven pairs and thirteen orphans: closed-form counts, only for fully
  concealed 13/14-tile hands.

Acceptance re-runs the evaluation for every discard candidate and every
tile that could still arrive, so results are recomputed on demand and never
cached across hands (only the per-suit decomposition is memoized, which is
a pure function of the suit's counts).
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from tilepool.logic.exceptions import IllegalTileForConfigError, InvalidHandSizeError
from tilepool.logic.hand import FULL_HAND_SIZE, MAX_MELDS, TILES_PER_SET, Hand
from tilepool.logic.settings import PoolSettings
from tilepool.logic.tiles import (
    ALL_TILES,
    HONOR_34_START,
    MAN_34_START,
    MAX_TILE_COPIES,
    NUM_TILE_TYPES,
    PIN_34_START,
    SOU_34_START,
    SUIT_SIZE,
    TERMINALS_AND_HONORS_34,
    Tile,
    tiles_to_34_array,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tilepool.logic.wall import Wall

logger = structlog.get_logger()

AGARI_STATE: int = -1

SEVEN_PAIRS_COUNT = 7
_CLOSED_SHAPE_SIZES = (FULL_HAND_SIZE - 1, FULL_HAND_SIZE)

# (start index, length, runs allowed) for each suit group in 34-format
_SUIT_GROUPS = (
    (MAN_34_START, SUIT_SIZE, True),
    (PIN_34_START, SUIT_SIZE, True),
    (SOU_34_START, SUIT_SIZE, True),
    (HONOR_34_START, NUM_TILE_TYPES - HONOR_34_START, False),
)

# (sets, partials, head)
Blocks = tuple[int, int, int]


class ShapeBreakdown(BaseModel):
    """Shanten per hand shape; None when the shape is impossible for the hand."""

    model_config = ConfigDict(frozen=True)

    standard: int
    seven_pairs: int | None = None
    thirteen_orphans: int | None = None

    @property
    def best(self) -> int:
        return min(s for s in (self.standard, self.seven_pairs, self.thirteen_orphans) if s is not None)


class DiscardOption(BaseModel):
    """Outcome of discarding one tile type from a 3k+2 hand."""

    model_config = ConfigDict(frozen=True)

    discard: Tile
    shanten: int
    improving_tiles: tuple[Tile, ...]
    improving_count: int | None = None  # remaining copies of improving tiles, when a wall is known


class ShantenResult(BaseModel):
    """Shanten of a 3k+2 hand with acceptance for each discard candidate."""

    model_config = ConfigDict(frozen=True)

    best: int
    breakdown: ShapeBreakdown
    acceptance: tuple[DiscardOption, ...]

    @property
    def is_complete(self) -> bool:
        return self.best == AGARI_STATE

    def option_for(self, tile: Tile) -> DiscardOption | None:
        for option in self.acceptance:
            if option.discard == tile:
                return option
        return None

    def best_discards(self) -> list[DiscardOption]:
        """All discards tied for the lowest resulting shanten, in tile order."""
        if not self.acceptance:
            return []
        lowest = min(option.shanten for option in self.acceptance)
        return [option for option in self.acceptance if option.shanten == lowest]


class UkeireResult(BaseModel):
    """Shanten of a 3k+1 hand and the tiles that would lower it."""

    model_config = ConfigDict(frozen=True)

    shanten: int
    breakdown: ShapeBreakdown
    improving_tiles: tuple[Tile, ...]
    improving_count: int | None = None


def _frontier(options: Iterable[Blocks]) -> frozenset[Blocks]:
    """Drop combinations beaten on both sets and partials by another with the same head."""
    options = set(options)
    return frozenset(
        (s, p, h)
        for s, p, h in options
        if not any(s2 >= s and p2 >= p and h2 == h and (s2, p2) != (s, p) for s2, p2, h2 in options)
    )


@lru_cache(maxsize=None)
def _suit_blocks(counts: tuple[int, ...], allow_runs: bool) -> frozenset[Blocks]:
    """
    Every useful (sets, partials, head) split of one suit's rank counts.

    The lowest held rank is either left isolated or starts a group: a
    triplet, a run, a pair (as head or as partial), or a two-tile partial
    run. Lower ranks are already empty, so this enumeration is complete.
    """
    first = next((i for i, c in enumerate(counts) if c), None)
    if first is None:
        return frozenset({(0, 0, 0)})

    size = len(counts)
    results: set[Blocks] = set()

    def take(ranks: tuple[int, ...], gained: Blocks) -> None:
        rest = list(counts)
        for r in ranks:
            rest[r] -= 1
        for s, p, h in _suit_blocks(tuple(rest), allow_runs):
            if h + gained[2] <= 1:
                results.add((s + gained[0], p + gained[1], h + gained[2]))

    take((first,), (0, 0, 0))
    if counts[first] >= 3:  # noqa: PLR2004
        take((first, first, first), (1, 0, 0))
    if counts[first] >= 2:  # noqa: PLR2004
        take((first, first), (0, 0, 1))
        take((first, first), (0, 1, 0))
    if allow_runs:
        if first + 2 < size and counts[first + 1] and counts[first + 2]:
            take((first, first + 1, first + 2), (1, 0, 0))
        if first + 1 < size and counts[first + 1]:
            take((first, first + 1), (0, 1, 0))
        if first + 2 < size and counts[first + 2]:
            take((first, first + 2), (0, 1, 0))

    return _frontier(results)


def _merge(left: frozenset[Blocks], right: frozenset[Blocks]) -> frozenset[Blocks]:
    return _frontier(
        (s1 + s2, p1 + p2, h1 + h2) for s1, p1, h1 in left for s2, p2, h2 in right if h1 + h2 <= 1
    )


def shanten_standard(concealed: Sequence[int]) -> int:
    """
    Shanten of the sets-plus-pair shape for the concealed tiles.

    The number of sets still needed follows from the concealed count
    (melds are already complete sets): 14 or 13 tiles need four, 11 or 10
    need three, and so on. With m sets, t partials and head h, shanten is
    2*needed - 2*m - min(needed - m, t) - h.
    """
    needed = sum(concealed) // TILES_PER_SET
    combined: frozenset[Blocks] = frozenset({(0, 0, 0)})
    for start, length, allow_runs in _SUIT_GROUPS:
        combined = _merge(combined, _suit_blocks(tuple(concealed[start : start + length]), allow_runs))

    best = 2 * needed
    for sets, partials, head in combined:
        sets = min(sets, needed)
        useful = min(needed - sets, partials)
        best = min(best, 2 * needed - 2 * sets - useful - head)
    return max(best, AGARI_STATE)


def shanten_seven_pairs(concealed: Sequence[int]) -> int:
    pairs = min(SEVEN_PAIRS_COUNT, sum(1 for c in concealed if c >= 2))  # noqa: PLR2004
    distinct = sum(1 for c in concealed if c)
    return SEVEN_PAIRS_COUNT - 1 - pairs + max(0, SEVEN_PAIRS_COUNT - distinct)


def shanten_thirteen_orphans(concealed: Sequence[int], orphan_types: Sequence[int] = TERMINALS_AND_HONORS_34) -> int:
    kinds = sum(1 for i in orphan_types if concealed[i])
    has_pair = any(concealed[i] >= 2 for i in orphan_types)  # noqa: PLR2004
    return len(orphan_types) - kinds - (1 if has_pair else 0)


def _breakdown(concealed: Sequence[int], *, has_melds: bool, settings: PoolSettings) -> ShapeBreakdown:
    standard = shanten_standard(concealed)
    if has_melds or sum(concealed) not in _CLOSED_SHAPE_SIZES:
        return ShapeBreakdown(standard=standard)
    return ShapeBreakdown(
        standard=standard,
        seven_pairs=shanten_seven_pairs(concealed),
        thirteen_orphans=shanten_thirteen_orphans(concealed, settings.orphan_types_34),
    )


def _meld_counts(hand: Hand) -> list[int]:
    """Copies of each tile type locked in melds (kans hold four)."""
    return tiles_to_34_array([t for meld in hand.melds for t in meld.tiles])


def _validate_hand(hand: Hand, settings: PoolSettings, remainder: int) -> None:
    """Check meld count, tile legality, copy counts, and that the effective size is 3k+remainder with k <= 4."""
    size = hand.effective_size
    if len(hand.melds) > MAX_MELDS or size % TILES_PER_SET != remainder or size > FULL_HAND_SIZE + remainder - 2:
        logger.warning("unexpected hand size in shanten calculation", effective_size=size, melds=len(hand.melds))
        raise InvalidHandSizeError(
            f"hand has {size} tiles counting melds as sets, expected 3k+{remainder} with k in 0..{MAX_MELDS}"
        )
    illegal = [str(ALL_TILES[i]) for i, c in enumerate(hand.concealed) if c and not settings.is_legal(i)]
    illegal += [str(t) for meld in hand.melds for t in meld.tiles if not settings.is_legal(t.index)]
    if illegal:
        raise IllegalTileForConfigError(
            f"{', '.join(sorted(set(illegal)))} not allowed in {int(settings.player_count)}-player mahjong"
        )
    overfull = [str(ALL_TILES[i]) for i, c in enumerate(hand.held_counts) if c > MAX_TILE_COPIES]
    if overfull:
        raise IllegalTileForConfigError(f"hand holds more than {MAX_TILE_COPIES} copies of {', '.join(overfull)}")


def _improving_tiles(
    concealed: list[int],
    current: int,
    *,
    in_melds: list[int],
    has_melds: bool,
    settings: PoolSettings,
    wall: Wall | None,
) -> tuple[tuple[Tile, ...], int | None]:
    """Tiles whose arrival strictly lowers the shanten of a 3k+1 hand."""
    improving = []
    for i in range(NUM_TILE_TYPES):
        if wall is not None and wall.counts[i] == 0:
            continue
        if wall is None and not settings.is_legal(i):
            continue
        # every copy is already in the hand
        if concealed[i] + in_melds[i] >= MAX_TILE_COPIES:
            continue
        concealed[i] += 1
        if _breakdown(concealed, has_melds=has_melds, settings=settings).best < current:
            improving.append(i)
        concealed[i] -= 1
    count = sum(wall.counts[i] for i in improving) if wall is not None else None
    return tuple(ALL_TILES[i] for i in improving), count


def calculate_shanten(
    hand: Hand,
    *,
    wall: Wall | None = None,
    settings: PoolSettings | None = None,
) -> ShantenResult:
    """
    Calculate the shanten of a 3k+2 hand and the acceptance of every discard.

    When a wall is supplied only tile types with copies remaining count as
    acceptance, and its configuration is used; otherwise every tile type
    legal in settings is considered.

    Raises InvalidHandSizeError or IllegalTileForConfigError.
    """
    settings = wall.settings if wall is not None else settings or PoolSettings()
    _validate_hand(hand, settings, remainder=2)

    has_melds = bool(hand.melds)
    in_melds = _meld_counts(hand)
    concealed = list(hand.concealed)
    breakdown = _breakdown(concealed, has_melds=has_melds, settings=settings)

    acceptance = []
    for i in range(NUM_TILE_TYPES):
        if not concealed[i]:
            continue
        concealed[i] -= 1
        after_discard = _breakdown(concealed, has_melds=has_melds, settings=settings).best
        improving, count = _improving_tiles(
            concealed, after_discard, in_melds=in_melds, has_melds=has_melds, settings=settings, wall=wall
        )
        concealed[i] += 1
        acceptance.append(
            DiscardOption(
                discard=ALL_TILES[i],
                shanten=after_discard,
                improving_tiles=improving,
                improving_count=count,
            )
        )

    return ShantenResult(best=breakdown.best, breakdown=breakdown, acceptance=tuple(acceptance))


def calculate_ukeire(
    hand: Hand,
    *,
    wall: Wall | None = None,
    settings: PoolSettings | None = None,
) -> UkeireResult:
    """
    Calculate the shanten of a 3k+1 hand and the tiles that would lower it.

    Raises InvalidHandSizeError or IllegalTileForConfigError.
    """
    settings = wall.settings if wall is not None else settings or PoolSettings()
    _validate_hand(hand, settings, remainder=1)

    has_melds = bool(hand.melds)
    in_melds = _meld_counts(hand)
    concealed = list(hand.concealed)
    breakdown = _breakdown(concealed, has_melds=has_melds, settings=settings)
    improving, count = _improving_tiles(
        concealed, breakdown.best, in_melds=in_melds, has_melds=has_melds, settings=settings, wall=wall
    )
    return UkeireResult(
        shanten=breakdown.best,
        breakdown=breakdown,
        improving_tiles=improving,
        improving_count=count,
    )

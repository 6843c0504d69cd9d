"""
Tile pool state transitions: applying operations and reverting them.

A TilePool pairs the wall tracker with the player's hand. Every transition
is a pure function returning a new pool, so a failed operation never leaves
a partial change behind. Applying an operation also yields a LogEntry that
records exactly what is needed to revert it: the wall adjustments with
their starting counts, the concealed tiles moved into a meld, the pon an
added kan replaced, and the hand phase before the operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tilepool.logic.enums import HandPhase, MeldKind, OperationType
from tilepool.logic.exceptions import (
    IllegalMeldShapeError,
    InvalidActionError,
    InvalidDiscardError,
    InvalidHandSizeError,
)
from tilepool.logic.hand import (
    FULL_HAND_SIZE,
    MAX_MELDS,
    Hand,
    Meld,
    format_tiles,
    infer_meld_kind,
    make_meld,
    phase_for_size,
    with_tiles,
)
from tilepool.logic.operations import (
    CallOperation,
    DealOperation,
    DiscardOperation,
    DrawOperation,
    PoolOperation,
    WallAddOperation,
    WallRemoveOperation,
)
from tilepool.logic.settings import PoolSettings
from tilepool.logic.tiles import Tile  # noqa: TC001
from tilepool.logic.wall import Wall, WallAdjustment, adjust_wall_many, create_wall, restore_wall

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()

_DEAL_SIZES = (FULL_HAND_SIZE - 1, FULL_HAND_SIZE)
_DRAW_PHASES = (HandPhase.MISSING_ONE, HandPhase.AWAITING_REPLACEMENT)


class TilePool(BaseModel):
    """Immutable wall + hand pair owned by a session."""

    model_config = ConfigDict(frozen=True)

    wall: Wall
    hand: Hand = Field(default_factory=Hand)

    @property
    def settings(self) -> PoolSettings:
        return self.wall.settings


def create_pool(settings: PoolSettings | None = None) -> TilePool:
    return TilePool(wall=create_wall(settings))


class LogEntry(BaseModel):
    """An applied operation together with the data needed to revert it."""

    model_config = ConfigDict(frozen=True)

    operation: Annotated[PoolOperation, Field(discriminator="type")]
    phase_before: HandPhase
    wall_adjustments: tuple[WallAdjustment, ...] = ()
    meld_kind: MeldKind | None = None
    concealed_used: tuple[Tile, ...] = ()  # concealed tiles moved into the meld
    replaced_meld: Meld | None = None  # pon upgraded by an added kan
    meld_index: int | None = None

    @property
    def forced(self) -> bool:
        return self.operation.forced


def _require_phase(hand: Hand, allowed: tuple[HandPhase, ...], action: str) -> None:
    if hand.phase not in allowed:
        if hand.phase is HandPhase.AWAITING_REPLACEMENT:
            raise InvalidActionError(f"cannot {action}: a replacement draw is required after kan")
        raise InvalidActionError(f"cannot {action} while the hand is {hand.phase.value}")


def _take_from_wall(pool: TilePool, tiles: list[Tile], *, forced: bool) -> tuple[Wall, tuple[WallAdjustment, ...]]:
    return adjust_wall_many(pool.wall, [(tile, -1) for tile in tiles], forced=forced)


def _apply_deal(pool: TilePool, op: DealOperation) -> tuple[TilePool, LogEntry]:
    pool.settings.validate_tiles(op.tiles)
    _require_phase(pool.hand, (HandPhase.EMPTY,), "deal")
    if len(op.tiles) not in _DEAL_SIZES:
        raise InvalidHandSizeError(f"a dealt hand has 13 or 14 tiles, got {len(op.tiles)}")

    wall, adjustments = _take_from_wall(pool, list(op.tiles), forced=op.forced)
    concealed = with_tiles(pool.hand.concealed, op.tiles, 1)
    hand = Hand(concealed=concealed, phase=phase_for_size(len(op.tiles)))
    entry = LogEntry(operation=op, phase_before=pool.hand.phase, wall_adjustments=adjustments)
    return TilePool(wall=wall, hand=hand), entry


def _apply_draw(pool: TilePool, op: DrawOperation) -> tuple[TilePool, LogEntry]:
    pool.settings.validate_tile(op.tile)
    _require_phase(pool.hand, _DRAW_PHASES, "draw")

    wall, adjustments = _take_from_wall(pool, [op.tile], forced=op.forced)
    hand = pool.hand.model_copy(
        update={"concealed": with_tiles(pool.hand.concealed, [op.tile], 1), "phase": HandPhase.FULL}
    )
    entry = LogEntry(operation=op, phase_before=pool.hand.phase, wall_adjustments=adjustments)
    return TilePool(wall=wall, hand=hand), entry


def _apply_discard(pool: TilePool, op: DiscardOperation) -> tuple[TilePool, LogEntry]:
    pool.settings.validate_tile(op.tile)
    _require_phase(pool.hand, (HandPhase.FULL,), "discard")

    concealed = with_tiles(pool.hand.concealed, [op.tile], -1)
    if concealed is None:
        raise InvalidDiscardError(f"{op.tile} is not in the concealed hand")
    hand = pool.hand.model_copy(
        update={
            "concealed": concealed,
            "discards": (*pool.hand.discards, op.tile),
            "phase": HandPhase.MISSING_ONE,
        }
    )
    entry = LogEntry(operation=op, phase_before=pool.hand.phase)
    return TilePool(wall=pool.wall, hand=hand), entry


def _classify_kan(hand: Hand, tile: Tile) -> MeldKind:
    """
    Derive the kan type from the hand at the moment of the call.

    An exposed pon of the tile makes it an added kan; otherwise a full hand
    declares a closed kan from four concealed copies, and a hand waiting for
    a tile calls an open kan on a discard.
    """
    if hand.find_pon(tile) is not None:
        return MeldKind.ADDED_KAN
    if hand.phase is HandPhase.FULL:
        return MeldKind.CLOSED_KAN
    if hand.phase is HandPhase.MISSING_ONE:
        return MeldKind.OPEN_KAN
    raise InvalidActionError(f"cannot kan while the hand is {hand.phase.value}")


def _resolve_call(hand: Hand, op: CallOperation) -> tuple[MeldKind, Tile | None, list[Tile]]:
    """Return (meld kind, claimed tile, concealed tiles the meld consumes)."""
    kind = infer_meld_kind(op.tiles)
    if kind is MeldKind.OPEN_KAN:
        kind = _classify_kan(hand, op.tiles[0])

    tiles = list(op.tiles)
    if kind is MeldKind.CLOSED_KAN:
        if op.called_tile is not None:
            raise IllegalMeldShapeError("a closed kan does not claim a tile")
        return kind, None, tiles

    if kind is MeldKind.ADDED_KAN:
        return kind, None, [tiles[0]]

    called = op.called_tile if op.called_tile is not None else tiles[0]
    if called not in tiles:
        raise IllegalMeldShapeError(f"called tile {called} is not part of {format_tiles(op.tiles)}")
    tiles.remove(called)
    return kind, called, tiles


def _apply_call(pool: TilePool, op: CallOperation) -> tuple[TilePool, LogEntry]:
    settings = pool.settings
    settings.validate_tiles(op.tiles)
    if op.called_tile is not None:
        settings.validate_tile(op.called_tile)
    if op.replacement_tile is not None:
        settings.validate_tile(op.replacement_tile)

    hand = pool.hand
    kind, called, used = _resolve_call(hand, op)

    if kind in (MeldKind.CHI, MeldKind.PON, MeldKind.OPEN_KAN):
        _require_phase(hand, (HandPhase.MISSING_ONE,), f"call {kind.value}")
    else:
        _require_phase(hand, (HandPhase.FULL,), f"declare {kind.value}")
    if not kind.is_kan and op.replacement_tile is not None:
        raise IllegalMeldShapeError(f"{kind.value} takes no replacement draw")

    concealed = with_tiles(hand.concealed, used, -1)
    if concealed is None:
        raise IllegalMeldShapeError(f"hand does not hold {format_tiles(used)} for {kind.value}")

    melds = list(hand.melds)
    replaced_meld = None
    if kind is MeldKind.ADDED_KAN:
        meld_index = hand.find_pon(op.tiles[0])
        replaced_meld = melds[meld_index]
        melds[meld_index] = make_meld(kind, op.tiles, replaced_meld.called_tile)
    else:
        if len(melds) >= MAX_MELDS:
            raise IllegalMeldShapeError(f"a hand holds at most {MAX_MELDS} melds")
        meld_index = len(melds)
        melds.append(make_meld(kind, op.tiles, called))

    from_wall = [t for t in (called, op.replacement_tile) if t is not None]
    wall, adjustments = _take_from_wall(pool, from_wall, forced=op.forced)

    if op.replacement_tile is not None:
        concealed = with_tiles(concealed, [op.replacement_tile], 1)
    if kind.is_kan and op.replacement_tile is None:
        phase = HandPhase.AWAITING_REPLACEMENT
    else:
        phase = HandPhase.FULL

    new_hand = hand.model_copy(update={"concealed": concealed, "melds": tuple(melds), "phase": phase})
    entry = LogEntry(
        operation=op,
        phase_before=hand.phase,
        wall_adjustments=adjustments,
        meld_kind=kind,
        concealed_used=tuple(used),
        replaced_meld=replaced_meld,
        meld_index=meld_index,
    )
    logger.debug("meld formed", kind=kind, meld=str(melds[meld_index]))
    return TilePool(wall=wall, hand=new_hand), entry


def _apply_wall_add(pool: TilePool, op: WallAddOperation) -> tuple[TilePool, LogEntry]:
    wall, adjustments = adjust_wall_many(pool.wall, [(tile, 1) for tile in op.tiles], forced=op.forced)
    entry = LogEntry(operation=op, phase_before=pool.hand.phase, wall_adjustments=adjustments)
    return pool.model_copy(update={"wall": wall}), entry


def _apply_wall_remove(pool: TilePool, op: WallRemoveOperation) -> tuple[TilePool, LogEntry]:
    wall, adjustments = _take_from_wall(pool, list(op.tiles), forced=op.forced)
    entry = LogEntry(operation=op, phase_before=pool.hand.phase, wall_adjustments=adjustments)
    return pool.model_copy(update={"wall": wall}), entry


_APPLIERS: dict[OperationType, Callable[[TilePool, PoolOperation], tuple[TilePool, LogEntry]]] = {
    OperationType.DEAL: _apply_deal,
    OperationType.DRAW: _apply_draw,
    OperationType.DISCARD: _apply_discard,
    OperationType.CALL: _apply_call,
    OperationType.WALL_ADD: _apply_wall_add,
    OperationType.WALL_REMOVE: _apply_wall_remove,
}


def apply_operation(pool: TilePool, op: PoolOperation) -> tuple[TilePool, LogEntry]:
    """
    Apply one operation to the pool.

    Returns (new_pool, log_entry). Raises a TilePoolError subclass, with the
    input pool untouched, when the operation is illegal.
    """
    applier = _APPLIERS.get(op.type)
    if applier is None:
        raise InvalidActionError(f"{op.type.value} is not a tile pool operation")
    return applier(pool, op)


def _revert_hand(hand: Hand, entry: LogEntry) -> Hand:
    op = entry.operation
    concealed: tuple[int, ...] | None = hand.concealed
    melds = hand.melds
    discards = hand.discards

    if isinstance(op, DealOperation):
        return Hand(phase=entry.phase_before)
    if isinstance(op, DrawOperation):
        concealed = with_tiles(hand.concealed, [op.tile], -1)
    elif isinstance(op, DiscardOperation):
        concealed = with_tiles(hand.concealed, [op.tile], 1)
        discards = discards[:-1]
    elif isinstance(op, CallOperation):
        concealed = with_tiles(hand.concealed, entry.concealed_used, 1)
        if op.replacement_tile is not None and concealed is not None:
            concealed = with_tiles(concealed, [op.replacement_tile], -1)
        if entry.replaced_meld is not None:
            melds = (*melds[: entry.meld_index], entry.replaced_meld, *melds[entry.meld_index + 1 :])
        else:
            melds = melds[:-1]

    if concealed is None:
        raise InvalidActionError(f"hand no longer matches {op}; cannot undo")
    return hand.model_copy(
        update={"concealed": concealed, "melds": melds, "discards": discards, "phase": entry.phase_before}
    )


def revert_entry(pool: TilePool, entry: LogEntry, *, ignore_bounds: bool = False) -> TilePool:
    """
    Revert an applied operation.

    Wall counts return to the exact values recorded before the operation,
    through the usual bound check unless ignore_bounds.
    """
    wall = restore_wall(pool.wall, entry.wall_adjustments, forced=ignore_bounds)
    return TilePool(wall=wall, hand=_revert_hand(pool.hand, entry))

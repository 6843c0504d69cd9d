"""
Interactive session: the command-dispatch state machine around one tile pool.

The session starts in normal mode, where only stateless hand evaluation is
available. Interactive mode owns a wall, a hand and an operation log for a
3- or 4-player configuration; switching mode or player count resets all
three. After each stateful command other than undo, the shanten calculator
runs if the hand reached a query point (14 tiles counting melds as sets,
just after a draw or call). The result goes into the returned snapshot and
is never stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tilepool.logic.enums import HandPhase, PlayerCount, SessionMode
from tilepool.logic.exceptions import InvalidHandSizeError, ModeViolationError, TilePoolError
from tilepool.logic.hand import FULL_HAND_SIZE, MAX_MELDS, TILES_PER_SET, Hand
from tilepool.logic.history import OperationLog
from tilepool.logic.operations import ConfigSwitchOperation, ModeSwitchOperation
from tilepool.logic.pool import TilePool, create_pool
from tilepool.logic.settings import PoolSettings
from tilepool.logic.shanten import ShantenResult, UkeireResult, calculate_shanten, calculate_ukeire
from tilepool.logic.tiles import MAX_TILE_COPIES, tiles_to_34_array
from tilepool.session.types import HistoryItem, SessionSnapshot

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tilepool.logic.hand import Meld
    from tilepool.logic.operations import Operation, PoolOperation
    from tilepool.logic.tiles import Tile

logger = structlog.get_logger()


class InteractiveSession:
    """Own one wall + hand + operation log and dispatch commands against them."""

    def __init__(
        self,
        player_count: PlayerCount = PlayerCount.FOUR,
        *,
        interactive: bool = False,
    ) -> None:
        self._mode = SessionMode.INTERACTIVE if interactive else SessionMode.NORMAL
        self._settings = PoolSettings(player_count=player_count)
        self._log = OperationLog()
        self._pool = create_pool(self._settings)

    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def player_count(self) -> PlayerCount:
        return self._settings.player_count

    @property
    def settings(self) -> PoolSettings:
        return self._settings

    @property
    def pool(self) -> TilePool:
        return self._pool

    def _reset(self) -> None:
        self._log.clear()
        self._pool = create_pool(self._settings)

    def _require_interactive(self, command: str) -> None:
        if self._mode is not SessionMode.INTERACTIVE:
            raise ModeViolationError(f"{command} is not available outside interactive mode")

    def switch_mode(self, interactive: bool) -> SessionSnapshot:
        """Enter or leave interactive mode; wall, hand and history start over."""
        self._mode = SessionMode.INTERACTIVE if interactive else SessionMode.NORMAL
        self._reset()
        logger.info("session mode switched", mode=self._mode, player_count=int(self.player_count))
        return self.snapshot()

    def switch_config(self, player_count: PlayerCount) -> SessionSnapshot:
        """Change the player count; wall, hand and history start over."""
        self._settings = PoolSettings(player_count=PlayerCount(player_count))
        self._reset()
        logger.info("session config switched", mode=self._mode, player_count=int(self.player_count))
        return self.snapshot()

    def apply_command(self, op: Operation) -> SessionSnapshot:
        """
        Apply an operation and return the resulting snapshot.

        Raises ModeViolationError outside interactive mode, or the domain
        error of a rejected operation; state is unchanged on any error.
        """
        if isinstance(op, ConfigSwitchOperation):
            return self.switch_config(op.player_count)
        if isinstance(op, ModeSwitchOperation):
            return self.switch_mode(op.interactive)

        self._require_interactive(op.type.value)
        self._pool = self._apply(op)
        return self.snapshot(query=True)

    def _apply(self, op: PoolOperation) -> TilePool:
        try:
            return self._log.apply(self._pool, op)
        except TilePoolError as exc:
            logger.info("operation rejected", operation=str(op), error=type(exc).__name__, reason=str(exc))
            raise

    def undo(self, *, ignore_bounds: bool = False) -> SessionSnapshot:
        """Revert the latest operation. Raises EmptyHistoryError when there is none."""
        self._require_interactive("undo")
        self._pool = self._log.undo(self._pool, ignore_bounds=ignore_bounds)
        return self.snapshot()

    def history(self) -> tuple[tuple[PoolOperation, bool], ...]:
        """Applied operations with their forced flag, oldest first."""
        return tuple((entry.operation, entry.forced) for entry in self._log.history())

    def history_items(self) -> list[HistoryItem]:
        return [
            HistoryItem(
                index=i,
                notation=str(entry.operation),
                forced=entry.forced,
                meld_kind=entry.meld_kind.value if entry.meld_kind is not None else None,
            )
            for i, entry in enumerate(self._log.history(), start=1)
        ]

    def evaluate(self, tiles: Sequence[Tile], melds: Sequence[Meld] = ()) -> ShantenResult | UkeireResult:
        """
        Stateless shanten query for a tokenized hand, checked against the
        current configuration; available in any mode.

        A 3k+2 hand gets the full per-discard acceptance, a 3k+1 hand its
        own acceptance. Raises InvalidHandSizeError for other sizes or more
        than four melds.
        """
        if len(melds) > MAX_MELDS:
            raise InvalidHandSizeError(f"a hand holds at most {MAX_MELDS} melds, got {len(melds)}")
        hand = Hand(concealed=tuple(tiles_to_34_array(list(tiles))), melds=tuple(melds))
        remainder = hand.effective_size % TILES_PER_SET
        if remainder == 2:  # noqa: PLR2004
            return calculate_shanten(hand, settings=self._settings)
        if remainder == 1:
            return calculate_ukeire(hand, settings=self._settings)
        raise InvalidHandSizeError(f"hand has {hand.effective_size} tiles counting melds as sets")

    def is_query_point(self) -> bool:
        hand = self._pool.hand
        return hand.phase is HandPhase.FULL and hand.effective_size == FULL_HAND_SIZE

    def snapshot(self, *, query: bool = False) -> SessionSnapshot:
        hand = self._pool.hand
        shanten = None
        if query and self.is_query_point():
            if max(hand.held_counts) > MAX_TILE_COPIES:
                # only forced operations get here
                logger.info("shanten skipped", reason="hand holds a fifth copy", hand=str(hand))
            else:
                shanten = calculate_shanten(hand, wall=self._pool.wall)
        return SessionSnapshot(
            mode=self._mode,
            player_count=self.player_count,
            hand=str(hand),
            concealed=tuple(hand.concealed_tiles),
            melds=hand.melds,
            discards=hand.discards,
            discarded_types=tuple(hand.discarded_types),
            phase=hand.phase,
            wall=self._pool.wall.as_dict(),
            wall_total=self._pool.wall.total,
            history_length=len(self._log),
            shanten=shanten,
        )

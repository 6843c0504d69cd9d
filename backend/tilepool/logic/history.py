"""
Linear undo log of applied tile pool operations.

Entries are appended only after an operation succeeds and popped only after
its inverse succeeds, so a failed apply or undo leaves both the log and the
pool exactly as they were. There is no redo: going forward again means
replaying operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tilepool.logic.exceptions import EmptyHistoryError
from tilepool.logic.pool import LogEntry, apply_operation, revert_entry

if TYPE_CHECKING:
    from tilepool.logic.operations import PoolOperation
    from tilepool.logic.pool import TilePool

logger = structlog.get_logger()


class OperationLog:
    """Undo stack of LogEntry records, oldest first."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def apply(self, pool: TilePool, op: PoolOperation) -> TilePool:
        """Apply op to pool and record it. Returns the new pool."""
        new_pool, entry = apply_operation(pool, op)
        self._entries.append(entry)
        logger.debug("operation applied", operation=str(op), forced=op.forced, depth=len(self._entries))
        return new_pool

    def undo(self, pool: TilePool, *, ignore_bounds: bool = False) -> TilePool:
        """
        Revert the most recent entry. Returns the restored pool.

        Raises EmptyHistoryError when there is nothing to undo.
        """
        if not self._entries:
            raise EmptyHistoryError("nothing to undo")
        entry = self._entries[-1]
        restored = revert_entry(pool, entry, ignore_bounds=ignore_bounds)
        self._entries.pop()
        logger.debug("operation undone", operation=str(entry.operation), ignore_bounds=ignore_bounds)
        return restored

    def history(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

"""
Line-oriented console around an InteractiveSession.

Each input line is parsed into a command, executed, and rendered either as
short text or as the JSON dump of the result model. Domain errors are
reported and the loop keeps going; `quit` and end of input stop it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from tilepool.console.settings import OutputFormat
from tilepool.logic.enums import SessionMode
from tilepool.logic.exceptions import InvalidActionError, TilePoolError
from tilepool.logic.operations import DealOperation
from tilepool.logic.shanten import ShantenResult, UkeireResult
from tilepool.session.commands import Command, HandCommand, HistoryCommand, UndoCommand, parse_command
from tilepool.session.types import HistoryItem, SessionSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from tilepool.logic.shanten import ShapeBreakdown
    from tilepool.session.interactive import InteractiveSession

logger = structlog.get_logger()

_QUIT_COMMANDS = frozenset({"quit", "exit", "q"})
_COMMENT_PREFIX = "#"


class CommandResult(BaseModel):
    """Whatever a command produced; exactly one field is set."""

    model_config = ConfigDict(frozen=True)

    snapshot: SessionSnapshot | None = None
    evaluation: ShantenResult | UkeireResult | None = None
    history: list[HistoryItem] | None = None


def execute(session: InteractiveSession, command: Command) -> CommandResult:
    """Run a parsed command against the session."""
    if isinstance(command, UndoCommand):
        return CommandResult(snapshot=session.undo(ignore_bounds=command.ignore_bounds))
    if isinstance(command, HistoryCommand):
        return CommandResult(history=session.history_items())
    if isinstance(command, HandCommand):
        if session.mode is SessionMode.NORMAL:
            return CommandResult(evaluation=session.evaluate(command.tiles, command.melds))
        if command.melds:
            raise InvalidActionError("melds cannot be dealt; call them after the deal")
        deal = DealOperation(tiles=command.tiles, forced=command.forced)
        return CommandResult(snapshot=session.apply_command(deal))
    return CommandResult(snapshot=session.apply_command(command))


def _format_breakdown(breakdown: ShapeBreakdown) -> str:
    parts = [f"standard {breakdown.standard}"]
    if breakdown.seven_pairs is not None:
        parts.append(f"seven pairs {breakdown.seven_pairs}")
    if breakdown.thirteen_orphans is not None:
        parts.append(f"thirteen orphans {breakdown.thirteen_orphans}")
    return ", ".join(parts)


def _format_tiles(tiles: Iterable[object]) -> str:
    return " ".join(str(t) for t in tiles) or "-"


def _render_shanten(result: ShantenResult | UkeireResult) -> list[str]:
    if isinstance(result, UkeireResult):
        count = f" ({result.improving_count} left)" if result.improving_count is not None else ""
        return [
            f"shanten: {result.shanten} ({_format_breakdown(result.breakdown)})",
            f"improving: {_format_tiles(result.improving_tiles)}{count}",
        ]
    lines = [f"shanten: {result.best} ({_format_breakdown(result.breakdown)})"]
    for option in result.best_discards():
        count = f" ({option.improving_count} left)" if option.improving_count is not None else ""
        lines.append(
            f"  discard {option.discard} -> {option.shanten}: {_format_tiles(option.improving_tiles)}{count}"
        )
    return lines


def render_text(result: CommandResult) -> str:
    if result.history is not None:
        if not result.history:
            return "history: empty"
        return "\n".join(
            f"{item.index}. {item.notation}" + (f" ({item.meld_kind})" if item.meld_kind else "")
            for item in result.history
        )
    if result.evaluation is not None:
        return "\n".join(_render_shanten(result.evaluation))

    snapshot = result.snapshot
    if snapshot is None:
        return ""
    wall_line = f"wall: {snapshot.wall_total} remaining, discards: {_format_tiles(snapshot.discards)}"
    if snapshot.discarded_types:
        wall_line += f" (types: {_format_tiles(snapshot.discarded_types)})"
    lines = [
        f"[{snapshot.mode.value} {int(snapshot.player_count)}p] hand: {snapshot.hand or '-'} ({snapshot.phase.value})",
        wall_line,
    ]
    if snapshot.shanten is not None:
        lines.extend(_render_shanten(snapshot.shanten))
    return "\n".join(lines)


def render(result: CommandResult, output_format: OutputFormat) -> str:
    if output_format is OutputFormat.JSON:
        return result.model_dump_json(exclude_none=True)
    return render_text(result)


def run_lines(
    session: InteractiveSession,
    lines: Iterable[str],
    *,
    output_format: OutputFormat = OutputFormat.TEXT,
    write: Callable[[str], object] = print,
) -> int:
    """
    Execute lines until input ends or a quit command.

    Returns the number of lines that failed.
    """
    failures = 0
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(_COMMENT_PREFIX):
            continue
        if line.lower() in _QUIT_COMMANDS:
            break
        try:
            result = execute(session, parse_command(line))
        except TilePoolError as exc:
            failures += 1
            logger.debug("command failed", line=line, error=type(exc).__name__)
            write(f"error: {exc}")
            continue
        write(render(result, output_format))
    return failures

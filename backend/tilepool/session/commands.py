"""
Command line grammar for the interactive session.

    123m456p789s1122z   hand: dealt in interactive mode, evaluated in normal mode
    +5z  -5z            draw / discard
    *+5z5z  *-123m      return tiles to / remove tiles from the wall
    >1m23m  >555z       chi (first tile is the called one) / pon
    >5555z  >5555z+3m   kan, optionally with its replacement draw
    <  <!               undo / undo ignoring wall bounds
    history             list applied operations
    interactive normal  mode switch
    3p 4p               player count switch

A `!` before the sign (`!+5z`, `*!+5z`, `!>555z`, `!123m...`) forces the
operation: wall counts are clamped instead of rejected.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from tilepool.logic.enums import PlayerCount
from tilepool.logic.exceptions import NotationError
from tilepool.logic.hand import Meld  # noqa: TC001
from tilepool.logic.notation import parse_hand, parse_tile, parse_tiles
from tilepool.logic.operations import (
    CallOperation,
    ConfigSwitchOperation,
    DiscardOperation,
    DrawOperation,
    ModeSwitchOperation,
    Operation,
    PoolOperation,
    WallAddOperation,
    WallRemoveOperation,
)
from tilepool.logic.tiles import Tile  # noqa: TC001

_WALL_PREFIX = "*"
_FORCE_PREFIX = "!"
_UNDO = "<"
_CALL = ">"

_KEYWORDS: dict[str, Operation] = {
    "interactive": ModeSwitchOperation(interactive=True),
    "normal": ModeSwitchOperation(interactive=False),
    "3p": ConfigSwitchOperation(player_count=PlayerCount.THREE),
    "4p": ConfigSwitchOperation(player_count=PlayerCount.FOUR),
}


class UndoCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore_bounds: bool = False


class HistoryCommand(BaseModel):
    model_config = ConfigDict(frozen=True)


class HandCommand(BaseModel):
    """A bare hand; its meaning depends on the session mode."""

    model_config = ConfigDict(frozen=True)

    tiles: tuple[Tile, ...]
    melds: tuple[Meld, ...] = ()
    forced: bool = False


Command = PoolOperation | ConfigSwitchOperation | ModeSwitchOperation | UndoCommand | HistoryCommand | HandCommand


def _parse_call(body: str, *, forced: bool) -> CallOperation:
    meld_text, _, replacement_text = body.partition("+")
    tiles = parse_tiles(meld_text)
    if not tiles:
        raise NotationError("call needs the meld tiles")
    replacement = parse_tile(replacement_text) if replacement_text else None
    return CallOperation(tiles=tuple(tiles), replacement_tile=replacement, forced=forced)


def parse_command(line: str) -> Command:
    """Parse one input line. Raises NotationError on syntax errors."""
    text = "".join(line.split())
    if not text:
        raise NotationError("empty command")

    lowered = text.lower()
    if lowered in _KEYWORDS:
        return _KEYWORDS[lowered]
    if lowered == "history":
        return HistoryCommand()
    if text.startswith(_UNDO):
        rest = text[len(_UNDO) :]
        if rest not in ("", _FORCE_PREFIX):
            raise NotationError(f"unexpected text after undo: {rest!r}")
        return UndoCommand(ignore_bounds=rest == _FORCE_PREFIX)

    on_wall = text.startswith(_WALL_PREFIX)
    if on_wall:
        text = text[len(_WALL_PREFIX) :]
    forced = text.startswith(_FORCE_PREFIX)
    if forced:
        text = text[len(_FORCE_PREFIX) :]
    if not text:
        raise NotationError(f"incomplete command: {line!r}")

    sign, body = text[0], text[1:]
    if on_wall:
        if sign == "+":
            return WallAddOperation(tiles=tuple(parse_tiles(body)), forced=forced)
        if sign == "-":
            return WallRemoveOperation(tiles=tuple(parse_tiles(body)), forced=forced)
        raise NotationError(f"wall commands need + or -: {line!r}")

    if sign == "+":
        return DrawOperation(tile=parse_tile(body), forced=forced)
    if sign == "-":
        return DiscardOperation(tile=parse_tile(body), forced=forced)
    if sign == _CALL:
        return _parse_call(body, forced=forced)

    parsed = parse_hand(text)
    return HandCommand(tiles=tuple(parsed.tiles), melds=tuple(parsed.melds), forced=forced)

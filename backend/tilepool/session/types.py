"""Pydantic models the session exposes to the command and rendering layers."""

from pydantic import BaseModel, ConfigDict

from tilepool.logic.enums import HandPhase, PlayerCount, SessionMode
from tilepool.logic.hand import Meld
from tilepool.logic.shanten import ShantenResult
from tilepool.logic.tiles import Tile


class SessionSnapshot(BaseModel):
    """Session state after a command; shanten is set only at a query point."""

    model_config = ConfigDict(frozen=True)

    mode: SessionMode
    player_count: PlayerCount
    hand: str
    concealed: tuple[Tile, ...]
    melds: tuple[Meld, ...]
    discards: tuple[Tile, ...]
    discarded_types: tuple[Tile, ...] = ()
    phase: HandPhase
    wall: dict[str, int]
    wall_total: int
    history_length: int
    shanten: ShantenResult | None = None


class HistoryItem(BaseModel):
    """One applied operation as listed by the history command."""

    model_config = ConfigDict(frozen=True)

    index: int
    notation: str
    forced: bool
    meld_kind: str | None = None

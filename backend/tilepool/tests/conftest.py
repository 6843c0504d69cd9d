from __future__ import annotations

from typing import TYPE_CHECKING

from mahjong.tile import TilesConverter

from tilepool.logic.enums import PlayerCount
from tilepool.logic.hand import Hand
from tilepool.logic.history import OperationLog
from tilepool.logic.notation import parse_hand, parse_tile
from tilepool.logic.operations import DealOperation
from tilepool.logic.pool import create_pool
from tilepool.logic.settings import PoolSettings
from tilepool.logic.tiles import tiles_to_34_array

if TYPE_CHECKING:
    from tilepool.logic.pool import TilePool
    from tilepool.logic.tiles import Tile


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def tile(text: str) -> Tile:
    return parse_tile(text)


def make_hand(text: str) -> Hand:
    """Build a hand from notation, bracketed groups becoming melds."""
    parsed = parse_hand(text)
    return Hand(concealed=tuple(tiles_to_34_array(parsed.tiles)), melds=tuple(parsed.melds))


def oracle_34(sou: str = "", pin: str = "", man: str = "", honors: str = "") -> list[int]:
    """Reference 34-array built by the mahjong library."""
    return TilesConverter.to_34_array(
        TilesConverter.string_to_136_array(sou=sou, pin=pin, man=man, honors=honors),
    )


def dealt_pool(
    text: str,
    player_count: PlayerCount = PlayerCount.FOUR,
    *,
    log: OperationLog | None = None,
) -> TilePool:
    """Fresh pool with the hand dealt through an operation log."""
    pool = create_pool(PoolSettings(player_count=player_count))
    log = log if log is not None else OperationLog()
    return log.apply(pool, DealOperation(tiles=tuple(parse_hand(text).tiles)))

"""Tile string notation: `123599m22p45s1z[555z]`.

Digits are followed by their suit letter (m, p, s, z); whitespace is
ignored; `0` is the red five and reads as `5` in numbered suits. Bracketed
groups are melds, classified by shape (run -> chi, triplet -> pon, quad ->
open kan) with the first written tile as the called tile.
"""

from __future__ import annotations

from typing import NamedTuple

from pydantic import ValidationError

from tilepool.logic.enums import Suit
from tilepool.logic.exceptions import NotationError
from tilepool.logic.hand import Meld, infer_meld_kind, make_meld
from tilepool.logic.tiles import Tile

_SUITS = {suit.value for suit in Suit}
_RED_FIVE = "0"


class ParsedHand(NamedTuple):
    tiles: list[Tile]
    melds: list[Meld]


def _make_tile(digit: str, suit: str) -> Tile:
    rank = 5 if digit == _RED_FIVE and suit != Suit.HONOR.value else int(digit)
    try:
        return Tile(suit=Suit(suit), rank=rank)
    except ValidationError as exc:
        raise NotationError(f"no such tile: {digit}{suit}") from exc


def _tokenize(text: str) -> list[Tile | str]:
    """Split text into tiles and bracket markers."""
    tokens: list[Tile | str] = []
    digits: list[str] = []
    for ch in "".join(text.split()).lower():
        if ch.isdigit():
            digits.append(ch)
        elif ch in _SUITS:
            if not digits:
                raise NotationError(f"suit {ch!r} without ranks in {text!r}")
            tokens.extend(_make_tile(d, ch) for d in digits)
            digits.clear()
        elif ch in "[]":
            if digits:
                raise NotationError(f"ranks {''.join(digits)!r} without a suit in {text!r}")
            tokens.append(ch)
        else:
            raise NotationError(f"unexpected character {ch!r} in {text!r}")
    if digits:
        raise NotationError(f"ranks {''.join(digits)!r} without a suit in {text!r}")
    return tokens


def _make_notation_meld(tiles: list[Tile]) -> Meld:
    """Raises IllegalMeldShapeError for groups that are not a chi, pon or kan."""
    return make_meld(infer_meld_kind(tuple(tiles)), tuple(tiles), tiles[0])


def parse_hand(text: str) -> ParsedHand:
    """Parse concealed tiles and bracketed melds."""
    concealed: list[Tile] = []
    melds: list[Meld] = []
    group: list[Tile] | None = None
    for token in _tokenize(text):
        if token == "[":
            if group is not None:
                raise NotationError(f"nested meld brackets in {text!r}")
            group = []
        elif token == "]":
            if group is None:
                raise NotationError(f"unmatched ']' in {text!r}")
            if not group:
                raise NotationError(f"empty meld in {text!r}")
            melds.append(_make_notation_meld(group))
            group = None
        elif group is not None:
            group.append(token)
        else:
            concealed.append(token)
    if group is not None:
        raise NotationError(f"unclosed meld bracket in {text!r}")
    return ParsedHand(tiles=concealed, melds=melds)


def parse_tiles(text: str) -> list[Tile]:
    """Parse a plain tile list; melds are not allowed."""
    parsed = parse_hand(text)
    if parsed.melds:
        raise NotationError(f"melds are not allowed here: {text!r}")
    return parsed.tiles


def parse_tile(text: str) -> Tile:
    tiles = parse_tiles(text)
    if len(tiles) != 1:
        raise NotationError(f"expected exactly one tile, got {len(tiles)} in {text!r}")
    return tiles[0]

"""
Unit tests for the wall tracker.

Covers creation per player count, bounded and forced adjustments,
atomic multi-tile adjustments, and restoring recorded counts.
"""

import logging

import pytest

from tilepool.logic.enums import PlayerCount
from tilepool.logic.exceptions import IllegalTileForConfigError, OutOfBoundsError
from tilepool.logic.settings import PoolSettings
from tilepool.logic.wall import (
    adjust_wall,
    adjust_wall_many,
    create_wall,
    restore_wall,
)
from tilepool.tests.conftest import tile

THREE_PLAYER = PoolSettings(player_count=PlayerCount.THREE)


class TestCreateWall:
    def test_four_player_wall_is_full(self):
        wall = create_wall()
        assert wall.total == 136
        assert all(c == 4 for c in wall.counts)

    def test_three_player_wall_has_no_inner_man(self):
        wall = create_wall(THREE_PLAYER)
        assert wall.total == 108
        assert wall.remaining(tile("1m")) == 4
        assert wall.remaining(tile("9m")) == 4
        assert all(wall.remaining(tile(f"{r}m")) == 0 for r in range(2, 9))

    def test_as_dict_lists_legal_types_only(self):
        counts = create_wall(THREE_PLAYER).as_dict()
        assert len(counts) == 27
        assert "5m" not in counts
        assert counts["1m"] == 4


class TestAdjustWall:
    def test_decrements_and_records_before_after(self):
        wall, adjustment = adjust_wall(create_wall(), tile("5z"), -1)

        assert wall.remaining(tile("5z")) == 3
        assert (adjustment.before, adjustment.after, adjustment.delta) == (4, 3, -1)
        assert not adjustment.clamped

    def test_returns_new_wall(self):
        original = create_wall()
        adjust_wall(original, tile("5z"), -1)
        assert original.remaining(tile("5z")) == 4

    def test_unforced_overflow_raises(self):
        with pytest.raises(OutOfBoundsError) as exc_info:
            adjust_wall(create_wall(), tile("1s"), 1)

        assert exc_info.value.tile == "1s"
        assert exc_info.value.count == 4
        assert exc_info.value.delta == 1

    def test_unforced_underflow_raises(self):
        wall, _ = adjust_wall(create_wall(), tile("1s"), -4)
        with pytest.raises(OutOfBoundsError):
            adjust_wall(wall, tile("1s"), -1)

    def test_forced_clamps_to_bounds(self):
        wall, adjustment = adjust_wall(create_wall(), tile("1s"), 2, forced=True)

        assert wall.remaining(tile("1s")) == 4
        assert adjustment.clamped

    def test_forced_clamp_is_idempotent_at_boundary(self):
        wall, _ = adjust_wall(create_wall(), tile("2p"), -4)
        once, _ = adjust_wall(wall, tile("2p"), -1, forced=True)
        twice, _ = adjust_wall(once, tile("2p"), -1, forced=True)

        assert once.remaining(tile("2p")) == 0
        assert twice.counts == once.counts

    def test_forced_clamp_logs_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="tilepool.logic.wall"):
            adjust_wall(create_wall(), tile("1s"), 1, forced=True)

        assert caplog.records[0].msg["event"] == "forced wall adjustment clamped"
        assert caplog.records[0].msg["result"] == 4

    def test_illegal_tile_rejected_even_when_forced(self):
        with pytest.raises(IllegalTileForConfigError):
            adjust_wall(create_wall(THREE_PLAYER), tile("5m"), -1, forced=True)


class TestAdjustWallMany:
    def test_sums_deltas_per_tile(self):
        wall, adjustments = adjust_wall_many(create_wall(), [(tile("3p"), -1), (tile("3p"), -1)])

        assert wall.remaining(tile("3p")) == 2
        assert len(adjustments) == 1
        assert adjustments[0].delta == -2

    def test_adjustments_in_tile_order(self):
        _, adjustments = adjust_wall_many(create_wall(), [(tile("7z"), -1), (tile("1m"), -1)])
        assert [str(a.tile) for a in adjustments] == ["1m", "7z"]

    def test_failure_leaves_wall_untouched(self):
        wall, _ = adjust_wall(create_wall(), tile("9s"), -4)
        with pytest.raises(OutOfBoundsError):
            adjust_wall_many(wall, [(tile("1m"), -1), (tile("9s"), -1)])

        assert wall.remaining(tile("1m")) == 4
        assert wall.remaining(tile("9s")) == 0

    def test_illegal_tile_checked_before_any_change(self):
        with pytest.raises(IllegalTileForConfigError):
            adjust_wall_many(create_wall(THREE_PLAYER), [(tile("1m"), -1), (tile("4m"), -1)])


class TestRestoreWall:
    def test_restores_exact_count_after_clamp(self):
        wall, _ = adjust_wall(create_wall(), tile("6s"), -3)
        clamped, adjustments = adjust_wall_many(wall, [(tile("6s"), -5)], forced=True)
        assert clamped.remaining(tile("6s")) == 0

        restored = restore_wall(clamped, adjustments)

        assert restored.counts == wall.counts
        assert restored.remaining(tile("6s")) == 1

    def test_restores_several_tiles(self):
        original = create_wall()
        changed, adjustments = adjust_wall_many(original, [(tile("1m"), -2), (tile("1z"), -1)])

        assert restore_wall(changed, adjustments).counts == original.counts

    def test_restores_in_reverse_order(self):
        original = create_wall()
        first, first_adjustments = adjust_wall_many(original, [(tile("4s"), -1)])
        second, second_adjustments = adjust_wall_many(first, [(tile("4s"), -2)])

        assert restore_wall(second, first_adjustments + second_adjustments).counts == original.counts

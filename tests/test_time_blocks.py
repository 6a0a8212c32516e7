"""Tests for interval merging, free time calculation and block segmentation."""

import random
from datetime import time, timedelta

from helpers.settings import SchedulingConfig
from helpers.time_blocks import (
    AFTERNOON_FILLER_SLOT,
    BlockSlot,
    Interval,
    append_afternoon_filler,
    apply_safety_buffer,
    break_down_free_time,
    calculate_free_intervals,
    day_bounds,
    merge_busy_intervals,
    slot_to_interval,
)
from tests.support import DENVER, denver


def iv(h1, m1, h2, m2):
    return Interval(denver(2026, 10, 19, h1, m1), denver(2026, 10, 19, h2, m2))


def hm(slot_time):
    return slot_time.strftime("%H:%M")


class TestMergeBusyIntervals:
    """Merging collapses overlaps into a sorted minimal cover."""

    def test_empty_input(self):
        assert merge_busy_intervals([]) == []

    def test_overlapping_intervals_merge(self):
        merged = merge_busy_intervals([iv(10, 0, 11, 0), iv(10, 30, 12, 0)])
        assert merged == [iv(10, 0, 12, 0)]

    def test_touching_intervals_merge(self):
        merged = merge_busy_intervals([iv(10, 0, 11, 0), iv(11, 0, 11, 30)])
        assert merged == [iv(10, 0, 11, 30)]

    def test_contained_interval_is_absorbed(self):
        merged = merge_busy_intervals([iv(9, 0, 12, 0), iv(10, 0, 10, 30)])
        assert merged == [iv(9, 0, 12, 0)]

    def test_disjoint_intervals_sorted(self):
        merged = merge_busy_intervals([iv(14, 0, 15, 0), iv(9, 0, 10, 0)])
        assert merged == [iv(9, 0, 10, 0), iv(14, 0, 15, 0)]

    def test_accepts_iso_string_mappings(self):
        merged = merge_busy_intervals([
            {"start": "2026-10-19T16:00:00Z", "end": "2026-10-19T17:00:00Z"},
            {"start": "2026-10-19T16:30:00Z", "end": "2026-10-19T18:00:00Z"},
        ])
        assert len(merged) == 1
        assert merged[0].start == denver(2026, 10, 19, 10, 0)
        assert merged[0].end == denver(2026, 10, 19, 12, 0)

    def test_idempotent(self):
        once = merge_busy_intervals([iv(8, 0, 9, 0), iv(8, 30, 10, 0), iv(13, 0, 14, 0)])
        assert merge_busy_intervals(once) == once

    def test_order_independent(self):
        intervals = [iv(8, 0, 9, 0), iv(8, 30, 10, 0), iv(13, 0, 14, 0), iv(12, 0, 13, 0), iv(16, 0, 16, 15)]
        expected = merge_busy_intervals(intervals)
        rng = random.Random(7)
        for _ in range(20):
            shuffled = intervals[:]
            rng.shuffle(shuffled)
            assert merge_busy_intervals(shuffled) == expected


class TestCalculateFreeIntervals:
    def test_no_busy_time_is_one_interval(self):
        now = denver(2026, 10, 19, 8, 0)
        end = denver(2026, 10, 19, 17, 0)
        assert calculate_free_intervals(now, end, []) == [Interval(now, end)]

    def test_gaps_between_busy_intervals(self):
        now = denver(2026, 10, 19, 8, 0)
        end = denver(2026, 10, 19, 17, 0)
        free = calculate_free_intervals(now, end, [iv(9, 0, 10, 0), iv(12, 0, 13, 0)], tz=DENVER)
        assert free == [iv(8, 0, 9, 0), iv(10, 0, 12, 0), iv(13, 0, 17, 0)]

    def test_busy_time_already_in_progress(self):
        now = denver(2026, 10, 19, 9, 30)
        end = denver(2026, 10, 19, 17, 0)
        free = calculate_free_intervals(now, end, [iv(9, 0, 10, 0)], tz=DENVER)
        assert free == [iv(10, 0, 17, 0)]

    def test_busy_until_end_of_day_leaves_no_tail(self):
        now = denver(2026, 10, 19, 8, 0)
        end = denver(2026, 10, 19, 17, 0)
        free = calculate_free_intervals(now, end, [iv(8, 0, 17, 0)], tz=DENVER)
        assert free == []

    def test_utc_busy_times_are_localised(self):
        now = denver(2026, 10, 19, 8, 0)
        end = denver(2026, 10, 19, 17, 0)
        busy = merge_busy_intervals([{"start": "2026-10-19T16:00:00Z", "end": "2026-10-19T17:00:00Z"}])
        free = calculate_free_intervals(now, end, busy, tz=DENVER)
        assert free[0].end == denver(2026, 10, 19, 10, 0)
        assert free[0].end.tzinfo.zone == "America/Denver"


class TestApplySafetyBuffer:
    def test_shrinks_both_ends(self):
        assert apply_safety_buffer([iv(8, 0, 9, 0)], 5) == [iv(8, 5, 8, 55)]

    def test_drops_intervals_that_vanish(self):
        assert apply_safety_buffer([iv(8, 0, 8, 10), iv(9, 0, 9, 8)], 5) == []

    def test_keeps_order(self):
        buffered = apply_safety_buffer([iv(8, 0, 9, 0), iv(10, 0, 11, 0)], 5)
        assert buffered == [iv(8, 5, 8, 55), iv(10, 5, 10, 55)]


class TestBreakDownFreeTime:
    """Segmentation into 50/25 minute blocks with 10/5 minute gaps."""

    def test_half_hour_start_gets_short_block_then_hour_aligned(self):
        slots = break_down_free_time([iv(9, 5, 12, 0)])
        assert [(hm(s.start), hm(s.end), s.length) for s in slots] == [
            ("09:30", "09:55", 25),
            ("10:00", "10:50", 50),
            ("11:00", "11:50", 50),
        ]

    def test_falls_back_to_short_block(self):
        slots = break_down_free_time([iv(13, 40, 14, 40)])
        assert [(hm(s.start), hm(s.end), s.length) for s in slots] == [("14:00", "14:25", 25)]

    def test_interval_too_small_yields_nothing(self):
        assert break_down_free_time([iv(13, 35, 13, 55)]) == []

    def test_exact_fit_short_block_comes_from_main_loop(self):
        slots = break_down_free_time([iv(13, 10, 13, 55)])
        assert [(hm(s.start), hm(s.end), s.length) for s in slots] == [("13:30", "13:55", 25)]

    def test_each_interval_segmented_independently(self):
        slots = break_down_free_time([iv(8, 35, 10, 0), iv(10, 40, 11, 55)])
        assert [(hm(s.start), hm(s.end)) for s in slots] == [
            ("09:00", "09:50"),
            ("11:00", "11:50"),
        ]

    def test_lengths_and_gaps(self):
        free = [iv(7, 3, 11, 17), iv(12, 41, 18, 2), iv(19, 0, 20, 29)]
        slots = break_down_free_time(free)
        assert slots
        assert {s.length for s in slots} <= {25, 50}
        for interval in free:
            inside = [slot_to_interval(s, interval.start.date(), DENVER) for s in slots]
            inside = [i for i in inside if interval.start <= i.start and i.end <= interval.end]
            for block, nxt in zip(inside, inside[1:]):
                length = (block.end - block.start).total_seconds() / 60
                gap = (nxt.start - block.end).total_seconds() / 60
                assert length in (25, 50)
                assert gap == (10 if length == 50 else 5)

    def test_blocks_stay_inside_their_interval(self):
        free = [iv(8, 5, 12, 55), iv(14, 55, 23, 54)]
        for slot in break_down_free_time(free):
            block = slot_to_interval(slot, free[0].start.date(), DENVER)
            assert any(i.start <= block.start and block.end <= i.end for i in free)

    def test_custom_durations_from_config(self):
        config = SchedulingConfig(long_block_minutes=45, long_gap_minutes=15)
        slots = break_down_free_time([iv(9, 55, 12, 0)], config)
        assert [(hm(s.start), hm(s.end), s.length) for s in slots] == [
            ("10:00", "10:45", 45),
            ("11:00", "11:45", 45),
        ]

    def test_fall_back_hour_keeps_both_instants(self):
        free = [Interval(denver(2026, 11, 1, 0, 55), denver(2026, 11, 1, 3, 0))]
        slots = break_down_free_time(free)
        bound = [slot_to_interval(s, free[0].start.date(), DENVER) for s in slots]

        assert [hm(s.start) for s in slots][:2] == ["01:00", "01:00"]
        assert bound[1].start - bound[0].start == timedelta(hours=1)
        for a, b in zip(bound, bound[1:]):
            assert a.end <= b.start

    def test_wall_clock_slot_binds_with_localize(self):
        bound = slot_to_interval(BlockSlot(time(15, 30), time(15, 55), 25), denver(2026, 10, 19).date(), DENVER)
        assert bound == Interval(denver(2026, 10, 19, 15, 30), denver(2026, 10, 19, 15, 55))


class TestAfternoonFiller:
    """The 15:20 one-off only applies when switched on."""

    # a 40 minute gap after long blocks makes a block end at 15:20
    FREE = [iv(12, 35, 15, 25)]

    def test_disabled_by_default(self):
        slots = break_down_free_time(self.FREE, SchedulingConfig(long_gap_minutes=40))
        assert [(hm(s.start), hm(s.end)) for s in slots] == [("13:00", "13:50"), ("14:30", "15:20")]

    def test_enabled_appends_after_1520(self):
        config = SchedulingConfig(long_gap_minutes=40, afternoon_filler_enabled=True)
        slots = break_down_free_time(self.FREE, config)
        assert [(hm(s.start), hm(s.end)) for s in slots] == [
            ("13:00", "13:50"),
            ("14:30", "15:20"),
            ("15:30", "15:55"),
        ]

    def test_helper_only_triggers_on_1520(self):
        ending_1520 = [BlockSlot(time(14, 30), time(15, 20), 50)]
        ending_1550 = [BlockSlot(time(15, 0), time(15, 50), 50)]
        assert append_afternoon_filler(ending_1520) == ending_1520 + [AFTERNOON_FILLER_SLOT]
        assert append_afternoon_filler(ending_1550) == ending_1550
        assert append_afternoon_filler([]) == []


class TestDayBounds:
    def test_local_midnight_to_end_of_day(self):
        start, end = day_bounds(denver(2026, 10, 19, 13, 7))
        assert start == denver(2026, 10, 19, 0, 0)
        assert end - denver(2026, 10, 19, 23, 59, 59) < timedelta(seconds=1)
        assert end.date() == start.date()

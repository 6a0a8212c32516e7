"""Busy/free interval arithmetic and focus block segmentation.

Everything here is pure: the functions take datetimes and return new values,
never touching the database or the network.
"""
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Union

import pytz

from helpers.round_time import normalize_tz, round_to_half_hour, round_up_to_hour
from helpers.settings import SchedulingConfig


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class BlockSlot:
    """A focus block in local wall-clock form.

    Slots cut from a free interval also carry the aware instants they were
    cut at; wall-clock times alone are ambiguous on the DST fall-back day.
    """

    start: time
    end: time
    length: int
    start_at: Optional[datetime] = field(default=None, compare=False)
    end_at: Optional[datetime] = field(default=None, compare=False)


IntervalLike = Union[Interval, tuple, dict]


def _as_datetime(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def to_interval(item: IntervalLike) -> Interval:
    if isinstance(item, Interval):
        return item
    if isinstance(item, dict):
        return Interval(_as_datetime(item["start"]), _as_datetime(item["end"]))
    start, end = item
    return Interval(_as_datetime(start), _as_datetime(end))


def merge_busy_intervals(busy: Iterable[IntervalLike]) -> List[Interval]:
    """Collapse overlapping or touching intervals into a sorted minimal cover."""
    intervals = sorted((to_interval(b) for b in busy), key=lambda i: (i.start, i.end))
    if not intervals:
        return []

    merged = []
    current = intervals[0]
    for nxt in intervals[1:]:
        if nxt.start <= current.end:
            current = Interval(current.start, max(current.end, nxt.end))
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def calculate_free_intervals(now: datetime, end_of_day: datetime, busy: Iterable[IntervalLike], tz=None) -> List[Interval]:
    """Gaps between ``now`` and ``end_of_day`` not covered by ``busy``.

    ``busy`` must already be merged and sorted. Busy times are moved into
    ``tz`` (default: the zone of ``now``) so the emitted intervals share it.
    """
    tz = tz or now.tzinfo
    free = []
    last_end = now

    for b in busy:
        b = to_interval(b)
        busy_start = b.start.astimezone(tz)
        busy_end = b.end.astimezone(tz)
        if busy_start > last_end:
            free.append(Interval(last_end, busy_start))
        if busy_end > last_end:
            last_end = busy_end

    if end_of_day > last_end:
        free.append(Interval(last_end, end_of_day))
    return free


def apply_safety_buffer(free: Iterable[Interval], minutes: int = 5) -> List[Interval]:
    margin = timedelta(minutes=minutes)
    buffered = []
    for interval in free:
        start = normalize_tz(interval.start + margin)
        end = normalize_tz(interval.end - margin)
        if end > start:
            buffered.append(Interval(start, end))
    return buffered


def _slot(start: datetime, end: datetime, length: int) -> BlockSlot:
    return BlockSlot(
        start.time().replace(second=0, microsecond=0),
        end.time().replace(second=0, microsecond=0),
        length,
        start_at=start,
        end_at=end,
    )


def break_down_free_time(free: Iterable[Interval], config: Optional[SchedulingConfig] = None) -> List[BlockSlot]:
    """Slice free intervals into long/short focus blocks separated by gaps.

    A free interval whose rounded start lands on :30 first gets one short
    block so the following blocks start on the hour.
    """
    config = config or SchedulingConfig()
    long_block = timedelta(minutes=config.long_block_minutes)
    long_gap = timedelta(minutes=config.long_gap_minutes)
    short_block = timedelta(minutes=config.short_block_minutes)
    short_gap = timedelta(minutes=config.short_gap_minutes)

    blocks = []
    for interval in free:
        pointer = round_to_half_hour(interval.start)

        if pointer.minute == 30 and pointer < interval.end:
            short_end = normalize_tz(pointer + short_block)
            if short_end < interval.end:
                blocks.append(_slot(pointer, short_end, config.short_block_minutes))
                pointer = round_up_to_hour(short_end)

        while pointer < interval.end:
            long_end = normalize_tz(pointer + long_block)
            if long_end <= interval.end:
                blocks.append(_slot(pointer, long_end, config.long_block_minutes))
                pointer = normalize_tz(long_end + long_gap)
                continue
            short_end = normalize_tz(pointer + short_block)
            if short_end <= interval.end:
                blocks.append(_slot(pointer, short_end, config.short_block_minutes))
                pointer = normalize_tz(short_end + short_gap)
                continue
            break

    if config.afternoon_filler_enabled:
        blocks = append_afternoon_filler(blocks)
    return blocks


AFTERNOON_FILLER_TRIGGER = time(15, 20)
AFTERNOON_FILLER_SLOT = BlockSlot(time(15, 30), time(15, 55), 25)


def append_afternoon_filler(blocks: List[BlockSlot]) -> List[BlockSlot]:
    """Legacy one-off: when the day's last block ends at 15:20, add 15:30-15:55.

    The filler ignores busy time entirely, so it stays behind the
    AFTERNOON_FILLER_ENABLED switch.
    """
    if blocks and blocks[-1].end == AFTERNOON_FILLER_TRIGGER:
        return blocks + [AFTERNOON_FILLER_SLOT]
    return blocks


def slot_to_interval(slot: BlockSlot, day, tz) -> Interval:
    """Bind a slot to ``day`` in ``tz``, preferring the instants it was cut at."""
    if slot.start_at is not None and slot.end_at is not None:
        return Interval(slot.start_at.astimezone(tz), slot.end_at.astimezone(tz))
    start = tz.localize(datetime.combine(day, slot.start))
    end = tz.localize(datetime.combine(day, slot.end))
    return Interval(start, end)


def day_bounds(now: datetime):
    """Start (00:00) and end (23:59:59.999999) of ``now``'s local day."""
    tz = now.tzinfo
    day = now.date()
    if hasattr(tz, "localize"):
        tz = pytz.timezone(tz.zone)
        return tz.localize(datetime.combine(day, time.min)), tz.localize(datetime.combine(day, time.max))
    return datetime.combine(day, time.min, tzinfo=tz), datetime.combine(day, time.max, tzinfo=tz)

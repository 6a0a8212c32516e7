import logging
from datetime import datetime
from typing import List, Optional

from helpers.block_store import BlockStore
from helpers.settings import SchedulingConfig
from helpers.time_blocks import (
    Interval,
    apply_safety_buffer,
    break_down_free_time,
    calculate_free_intervals,
    day_bounds,
    merge_busy_intervals,
    slot_to_interval,
)
from models.time_block import TimeBlock

logger = logging.getLogger(__name__)


def current_time(config: SchedulingConfig) -> datetime:
    return datetime.now(config.tz)


async def generate_today_blocks(
    store: BlockStore,
    gateway,
    calendar_ids: List[str],
    config: SchedulingConfig,
    now: Optional[datetime] = None,
) -> List[TimeBlock]:
    """Recompute today's auto blocks around calendar busy time and stored overrides.

    Manual, approved and excluded blocks count as busy. The user's previous
    unapproved auto blocks for today are replaced in the same transaction
    as the insert, so repeated calls never stack duplicates.
    """
    tz = config.tz
    now = (now or current_time(config)).astimezone(tz)
    day_start, end_of_day = day_bounds(now)
    if now > end_of_day:
        return []

    window = await gateway.get_busy_intervals(calendar_ids, now, end_of_day)

    overrides = await store.overrides_for_day(day_start, end_of_day)
    user_busy = [Interval(b.start_time, b.end_time) for b in overrides]

    merged = merge_busy_intervals(list(window.busy_intervals) + user_busy)
    free = calculate_free_intervals(now, end_of_day, merged, tz=tz)
    free = apply_safety_buffer(free, config.safety_buffer_minutes)
    slots = break_down_free_time(free, config)

    today = now.date()
    blocks = []
    for slot in slots:
        interval = slot_to_interval(slot, today, tz)
        blocks.append(TimeBlock.auto(interval.start, interval.end, user=store.user))

    saved = await store.replace_auto_blocks(day_start, end_of_day, blocks)
    logger.info(
        f"Generated {len(saved)} auto blocks from {len(merged)} busy and {len(free)} free intervals"
    )
    return saved

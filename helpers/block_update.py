"""Manual edits of a single block.

``plan_block_update`` decides what an edit does without touching storage;
``apply_block_update`` writes the plan. The two writes of a shortening edit
(excluded tail, then the edited block) are not wrapped in a transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from helpers.block_store import BlockStore
from helpers.errors import ConflictError, ValidationError
from helpers.round_time import round_to_nearest_minutes
from helpers.settings import SchedulingConfig
from helpers.time_blocks import Interval
from models.time_block import SourceType, TimeBlock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockUpdatePlan:
    block_id: int
    start: datetime
    end: datetime
    source_type: SourceType = SourceType.MANUAL
    excluded_tail: Optional[Interval] = None


def snap_update_times(start: Optional[datetime], end: Optional[datetime], config: SchedulingConfig) -> Tuple[datetime, datetime]:
    if start is None or end is None:
        raise ValidationError("Invalid date/time")
    tz = config.tz
    if start.tzinfo is None:
        start = tz.localize(start)
    if end.tzinfo is None:
        end = tz.localize(end)
    start = round_to_nearest_minutes(start.astimezone(tz), config.update_grid_minutes)
    end = round_to_nearest_minutes(end.astimezone(tz), config.update_grid_minutes)
    if start >= end:
        raise ValidationError("Start time must be before end time (after rounding).")
    return start, end


def plan_block_update(
    block: TimeBlock,
    start: datetime,
    end: datetime,
    others: Iterable[TimeBlock],
    config: SchedulingConfig,
) -> BlockUpdatePlan:
    start, end = snap_update_times(start, end, config)
    requested = Interval(start, end)

    for other in others:
        if other.id == block.id or other.source_type == SourceType.EXCLUDED:
            continue
        if requested.overlaps(Interval(other.start_time, other.end_time)):
            raise ConflictError("Collision: Overlaps another block (after rounding).")

    tail = None
    if end < block.end_time:
        tail = Interval(end, block.end_time)
    return BlockUpdatePlan(block_id=block.id, start=start, end=end, excluded_tail=tail)


async def apply_block_update(store: BlockStore, block: TimeBlock, plan: BlockUpdatePlan) -> TimeBlock:
    if plan.excluded_tail is not None:
        tail = TimeBlock.excluded(plan.excluded_tail.start, plan.excluded_tail.end, user=store.user)
        await store.save(tail)
        logger.info(f"Excluded leftover {plan.excluded_tail.start.isoformat()} - {plan.excluded_tail.end.isoformat()} of block {block.id}")

    block.start_time = plan.start
    block.end_time = plan.end
    block.source_type = plan.source_type
    return await store.save(block)


async def update_block(store: BlockStore, block_id: int, start: Optional[datetime], end: Optional[datetime], config: SchedulingConfig):
    """Validate, conflict-check and persist an edit. Returns ``(block, plan)``."""
    block = await store.get(block_id)
    snapped_start, snapped_end = snap_update_times(start, end, config)
    others = await store.overlapping(snapped_start, snapped_end, exclude_id=block.id)
    plan = plan_block_update(block, start, end, others, config)
    return await apply_block_update(store, block, plan), plan

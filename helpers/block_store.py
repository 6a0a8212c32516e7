import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from tortoise.transactions import in_transaction

from helpers.errors import NotFoundError
from models.time_block import SourceType, TimeBlock

logger = logging.getLogger(__name__)

OVERRIDE_TYPES = [SourceType.MANUAL, SourceType.APPROVED, SourceType.EXCLUDED]


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BlockStore:
    """Persistence for one user's freedom blocks.

    Day queries select blocks that start and end inside ``[day_start, day_end]``.
    """

    def __init__(self, user=None):
        self.user = user

    def _query(self):
        if self.user is None:
            return TimeBlock.filter(user_id__isnull=True)
        return TimeBlock.filter(user=self.user)

    def _day(self, day_start: datetime, day_end: datetime):
        return self._query().filter(start_time__gte=to_utc(day_start), end_time__lte=to_utc(day_end))

    async def for_day(self, day_start: datetime, day_end: datetime, include_excluded: bool = False) -> List[TimeBlock]:
        query = self._day(day_start, day_end)
        if not include_excluded:
            query = query.exclude(source_type=SourceType.EXCLUDED)
        return await query.order_by("start_time")

    async def overrides_for_day(self, day_start: datetime, day_end: datetime) -> List[TimeBlock]:
        return await self._day(day_start, day_end).filter(source_type__in=OVERRIDE_TYPES).order_by("start_time")

    async def stale_auto_for_day(self, day_start: datetime, day_end: datetime) -> List[TimeBlock]:
        return await self._day(day_start, day_end).filter(approved=False, source_type=SourceType.AUTO).order_by("start_time")

    async def pending_for_day(self, day_start: datetime, day_end: datetime) -> List[TimeBlock]:
        return await (
            self._day(day_start, day_end)
            .filter(approved=False)
            .exclude(source_type=SourceType.EXCLUDED)
            .order_by("start_time")
        )

    async def get(self, block_id: int) -> TimeBlock:
        """Fetch a visible block; excluded blocks are reported as missing."""
        block = await self._query().get_or_none(id=block_id)
        if block is None or block.is_excluded:
            raise NotFoundError("Block not found")
        return block

    async def overlapping(self, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[TimeBlock]:
        query = (
            self._query()
            .filter(start_time__lt=to_utc(end), end_time__gt=to_utc(start))
            .exclude(source_type=SourceType.EXCLUDED)
        )
        if exclude_id is not None:
            query = query.exclude(id=exclude_id)
        return await query.order_by("start_time")

    async def save(self, block: TimeBlock) -> TimeBlock:
        block.start_time = to_utc(block.start_time)
        block.end_time = to_utc(block.end_time)
        if self.user is not None and block.user_id is None:
            block.user = self.user
        await block.save()
        return block

    async def replace_auto_blocks(self, day_start: datetime, day_end: datetime, blocks: Iterable[TimeBlock]) -> List[TimeBlock]:
        """Drop today's unapproved auto blocks and insert ``blocks`` in one transaction."""
        saved = []
        async with in_transaction():
            deleted = await self._day(day_start, day_end).filter(approved=False, source_type=SourceType.AUTO).delete()
            for block in blocks:
                saved.append(await self.save(block))
        logger.info(f"Replaced {deleted} auto blocks with {len(saved)} new ones")
        return saved

    async def exclude(self, block: TimeBlock, at: Optional[datetime] = None) -> TimeBlock:
        """Soft delete: reclassify as excluded instead of removing the row."""
        block.source_type = SourceType.EXCLUDED
        block.deleted_at = at or datetime.now(timezone.utc)
        return await self.save(block)

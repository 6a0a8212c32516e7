import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

import httpx

from helpers.block_store import BlockStore
from helpers.errors import UpstreamError
from helpers.regeneration import current_time
from helpers.settings import SchedulingConfig
from helpers.time_blocks import day_bounds
from helpers.webhook import block_webhook_payload
from models.time_block import SourceType

logger = logging.getLogger(__name__)


@dataclass
class ApprovalReport:
    approved: int = 0
    notified: int = 0
    alarmed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Approved {self.approved} blocks and sent notifications."


async def approve_all_blocks(
    store: BlockStore,
    notifier,
    alarm,
    config: SchedulingConfig,
    now: Optional[datetime] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ApprovalReport:
    """Approve today's pending blocks one at a time, throttling side effects.

    Each block is saved as approved before its webhook and alarm calls go
    out. Side-effect failures are logged and skipped; a failed save aborts
    the run with the earlier blocks already approved.
    """
    tz = config.tz
    now = (now or current_time(config)).astimezone(tz)
    day_start, day_end = day_bounds(now)
    pending = await store.pending_for_day(day_start, day_end)
    report = ApprovalReport()

    if not notifier.configured:
        logger.warning("No approval webhook configured, skipping webhook calls.")

    for index, block in enumerate(pending):
        block.approved = True
        block.source_type = SourceType.APPROVED
        await store.save(block)
        report.approved += 1

        start = block.start_time.astimezone(tz)
        end = block.end_time.astimezone(tz)

        if notifier.configured:
            try:
                await notifier.notify(block_webhook_payload(start, end))
                report.notified += 1
            except (UpstreamError, httpx.HTTPError) as e:
                logger.error(f"Webhook error for block {block.id}: {e}")
                report.failures.append(f"webhook:{block.id}")

        try:
            await alarm.set_alarm(end.strftime("%H:%M"))
            report.alarmed += 1
        except (UpstreamError, httpx.HTTPError) as e:
            logger.error(f"Phone alarm error for block {block.id}: {e}")
            report.failures.append(f"alarm:{block.id}")

        if index < len(pending) - 1:
            await sleep(config.approval_delay_seconds)

    logger.info(f"Approved {report.approved} blocks ({report.notified} notified, {report.alarmed} alarms set)")
    return report

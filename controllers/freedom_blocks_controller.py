import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from helpers.approval import approve_all_blocks
from helpers.block_store import BlockStore, to_utc
from helpers.block_update import update_block
from helpers.calendar_gateway import GoogleCalendarGateway
from helpers.errors import SchedulingError, ValidationError, status_for
from helpers.jwt_token import get_current_user
from helpers.phone_alarm import PhoneAlarmService
from helpers.regeneration import current_time, generate_today_blocks
from helpers.settings import SchedulingConfig, get_scheduling_config
from helpers.time_blocks import day_bounds
from helpers.webhook import WebhookNotifier, block_webhook_payload
from models.user import User
from models.user_email import UserEmail, verified_calendar_ids

logger = logging.getLogger(__name__)

freedom_router = APIRouter(prefix="/freedom-blocks")

Config = Annotated[SchedulingConfig, Depends(get_scheduling_config)]
CurrentUser = Annotated[User, Depends(get_current_user)]


def get_calendar_gateway(config: Config):
    return GoogleCalendarGateway(config)


def get_alarm_service(config: Config):
    return PhoneAlarmService.from_config(config)


def get_webhook_notifier(config: Config):
    return WebhookNotifier.from_config(config)


def get_clock(config: Config) -> datetime:
    return current_time(config)


Gateway = Annotated[GoogleCalendarGateway, Depends(get_calendar_gateway)]
Alarm = Annotated[PhoneAlarmService, Depends(get_alarm_service)]
Notifier = Annotated[WebhookNotifier, Depends(get_webhook_notifier)]
Now = Annotated[datetime, Depends(get_clock)]


class UpdateBlockRequest(BaseModel):
    startTime: Optional[str] = None
    endTime: Optional[str] = None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Invalid date/time")


def _http_error(e: SchedulingError) -> HTTPException:
    return HTTPException(status_code=status_for(e), detail=str(e))


async def _user_emails(user: User):
    return await UserEmail.filter(user=user, deleted_at=None).order_by("id")


def _email_dict(e: UserEmail) -> dict:
    return {"id": e.id, "email": e.email, "isCalendarOnboarded": e.is_calendar_onboarded}


@freedom_router.post("/")
async def create_freedom_blocks(current: CurrentUser, config: Config, gateway: Gateway, now: Now):
    try:
        calendar_ids = await verified_calendar_ids(current)
        if not calendar_ids:
            emails = await _user_emails(current)
            return {
                "success": True,
                "verified": False,
                "message": "No verified calendar emails. Please verify or add one.",
                "emails": [_email_dict(e) for e in emails],
            }

        blocks = await generate_today_blocks(BlockStore(current), gateway, calendar_ids, config, now=now)
        return {
            "success": True,
            "verified": True,
            "blocks": [b.to_dict() for b in blocks],
            "message": "Time blocks created (unapproved) and stored in DB.",
        }
    except SchedulingError as e:
        logger.exception("Error generating freedom blocks")
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error generating freedom blocks")
        raise HTTPException(status_code=500, detail=f"Failed to generate blocks: {str(e)}")


@freedom_router.get("/today")
async def get_today_schedule(current: CurrentUser, config: Config, gateway: Gateway, now: Now):
    try:
        now = now.astimezone(config.tz)
        day_start, day_end = day_bounds(now)
        store = BlockStore(current)
        emails = await _user_emails(current)
        calendar_ids = [e.email for e in emails if e.is_calendar_onboarded]

        if not calendar_ids:
            return {
                "success": True,
                "verified": False,
                "message": "Please verify your calendar email(s).",
                "appointments": [],
                "timeBlocks": [],
            }

        existing = await store.for_day(day_start, day_end, include_excluded=True)
        stale = await store.stale_auto_for_day(day_start, day_end)
        if stale or not existing:
            # regeneration replaces the stale auto blocks in one transaction
            await generate_today_blocks(store, gateway, calendar_ids, config, now=now)

        blocks = await store.for_day(day_start, day_end)

        appointments = []
        for cal_id in calendar_ids:
            appointments.extend(await gateway.list_appointments(cal_id, day_start, day_end))

        return {
            "success": True,
            "verified": True,
            "message": "Fetched today's schedule with updated freedom blocks.",
            "appointments": appointments,
            "timeBlocks": [b.to_dict() for b in blocks],
            "emails": [_email_dict(e) for e in emails],
        }
    except SchedulingError as e:
        logger.exception("Error fetching today's schedule")
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error fetching today's schedule")
        raise HTTPException(status_code=500, detail=f"Failed to fetch schedule: {str(e)}")


@freedom_router.put("/{block_id}")
async def update_freedom_block(block_id: int, req: UpdateBlockRequest, current: CurrentUser, config: Config):
    try:
        start = _parse_timestamp(req.startTime)
        end = _parse_timestamp(req.endTime)
        block, plan = await update_block(BlockStore(current), block_id, start, end, config)
        return {
            "success": True,
            "block": block.to_dict(),
            "snappedStart": to_utc(plan.start).isoformat(),
            "snappedEnd": to_utc(plan.end).isoformat(),
        }
    except SchedulingError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error updating block {block_id}")
        raise HTTPException(status_code=500, detail=f"Failed to update block: {str(e)}")


@freedom_router.post("/approveAll")
async def approve_all(current: CurrentUser, config: Config, alarm: Alarm, notifier: Notifier, now: Now):
    try:
        report = await approve_all_blocks(BlockStore(current), notifier, alarm, config, now=now)
        return {"success": True, "message": report.message}
    except Exception as e:
        logger.exception("Error approving blocks")
        raise HTTPException(status_code=500, detail=f"Failed to approve blocks: {str(e)}")


@freedom_router.delete("/{block_id}")
async def delete_block(block_id: int, current: CurrentUser):
    try:
        store = BlockStore(current)
        block = await store.get(block_id)
        await store.exclude(block)
        return {"success": True, "message": "Block marked as excluded"}
    except SchedulingError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error deleting block {block_id}")
        raise HTTPException(status_code=500, detail=f"Failed to delete block: {str(e)}")


@freedom_router.post("/{block_id}/phoneAlarm")
async def set_block_alarm(block_id: int, current: CurrentUser, config: Config, alarm: Alarm):
    try:
        block = await BlockStore(current).get(block_id)
        await alarm.set_alarm(block.end_time.astimezone(config.tz).strftime("%H:%M"))
        return {"success": True, "message": f"Alarm set for block {block_id}"}
    except SchedulingError as e:
        logger.error(f"Error setting alarm for block {block_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error setting alarm for block {block_id}")
        raise HTTPException(status_code=500, detail=f"Failed to set alarm: {str(e)}")


@freedom_router.post("/{block_id}/webhook")
async def notify_block_webhook(block_id: int, current: CurrentUser, config: Config, notifier: Notifier):
    try:
        block = await BlockStore(current).get(block_id)
        payload = block_webhook_payload(block.start_time.astimezone(config.tz), block.end_time.astimezone(config.tz))
        text = await notifier.notify(payload)
        return {
            "success": True,
            "message": f"Webhook called for block {block_id}",
            "webhookResponse": text,
        }
    except SchedulingError as e:
        logger.error(f"Error calling webhook for block {block_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error calling webhook for block {block_id}")
        raise HTTPException(status_code=500, detail=f"Failed to call webhook: {str(e)}")

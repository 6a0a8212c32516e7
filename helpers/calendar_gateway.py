import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

import pytz
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from helpers.errors import UpstreamError
from helpers.settings import SchedulingConfig
from helpers.time_blocks import Interval, merge_busy_intervals

logger = logging.getLogger(__name__)

GCAL_SCOPES = ["https://www.googleapis.com/auth/calendar"]


@dataclass
class BusyWindow:
    now: datetime
    busy_intervals: List[Interval] = field(default_factory=list)


def _rfc3339(value: datetime) -> str:
    return value.astimezone(pytz.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarGateway:
    """Free/busy and event listing through a Google service account.

    The Google client is synchronous; every call is moved to a worker
    thread so request handlers stay responsive.
    """

    def __init__(self, config: SchedulingConfig):
        self.config = config
        self._service = None

    def _get_service(self):
        if self._service is None:
            try:
                creds = service_account.Credentials.from_service_account_file(
                    self.config.service_account_file, scopes=GCAL_SCOPES
                )
            except (OSError, ValueError, GoogleAuthError) as e:
                raise UpstreamError(f"Calendar credentials unavailable: {e}") from e
            self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _query_freebusy(self, calendar_ids: List[str], time_min: datetime, time_max: datetime) -> Dict[str, Any]:
        body = {
            "timeMin": _rfc3339(time_min),
            "timeMax": _rfc3339(time_max),
            "timeZone": self.config.timezone,
            "items": [{"id": cal_id} for cal_id in calendar_ids],
        }
        return self._get_service().freebusy().query(body=body).execute()

    def _list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> List[Dict[str, Any]]:
        response = self._get_service().events().list(
            calendarId=calendar_id,
            timeMin=_rfc3339(time_min),
            timeMax=_rfc3339(time_max),
            timeZone=self.config.timezone,
            singleEvents=True,
            orderBy="startTime",
        ).execute()
        return response.get("items", [])

    async def get_busy_intervals(self, calendar_ids: List[str], now: datetime, until: datetime) -> BusyWindow:
        """Merged busy cover of ``calendar_ids`` between the caller's ``now`` and ``until``."""
        try:
            response = await asyncio.to_thread(self._query_freebusy, calendar_ids, now, until)
        except (HttpError, GoogleAuthError) as e:
            raise UpstreamError(f"Calendar free/busy query failed: {e}") from e

        calendars = response.get("calendars", {})
        busy = []
        for cal_id in calendar_ids:
            entry = calendars.get(cal_id, {})
            if entry.get("errors"):
                logger.warning(f"Free/busy errors for calendar {cal_id}: {entry['errors']}")
            busy.extend(entry.get("busy", []))

        logger.info(f"Fetched {len(busy)} busy intervals from {len(calendar_ids)} calendars")
        return BusyWindow(now=now, busy_intervals=merge_busy_intervals(busy))

    async def list_appointments(self, calendar_id: str, time_min: datetime, time_max: datetime) -> List[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._list_events, calendar_id, time_min, time_max)
        except (HttpError, GoogleAuthError) as e:
            raise UpstreamError(f"Calendar event listing failed for {calendar_id}: {e}") from e

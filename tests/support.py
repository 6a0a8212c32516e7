"""Shared helpers for async and database-backed tests."""

import asyncio
import functools
from datetime import datetime

import pytz
from tortoise import Tortoise

from helpers.calendar_gateway import BusyWindow
from helpers.settings import SchedulingConfig
from helpers.time_blocks import merge_busy_intervals
from helpers.tortoise_config import build_tortoise_config

DENVER = pytz.timezone("America/Denver")


def denver(year, month, day, hour=0, minute=0, second=0):
    return DENVER.localize(datetime(year, month, day, hour, minute, second))


def async_test(coro):
    """Decorator to run async tests with asyncio.run."""

    @functools.wraps(coro)
    def wrapper(*args, **kwargs):
        return asyncio.run(coro(*args, **kwargs))

    return wrapper


def db_test(coro):
    """Like async_test, with a fresh in-memory database around the test."""

    @functools.wraps(coro)
    def wrapper(*args, **kwargs):
        async def run():
            await Tortoise.init(config=build_tortoise_config("sqlite://:memory:", with_aerich=False))
            await Tortoise.generate_schemas()
            try:
                return await coro(*args, **kwargs)
            finally:
                await Tortoise.close_connections()

        return asyncio.run(run())

    return wrapper


def make_config(**overrides) -> SchedulingConfig:
    values = {"timezone": "America/Denver", "approval_delay_seconds": 15}
    values.update(overrides)
    return SchedulingConfig(**values)


class FakeCalendarGateway:
    """Serves canned busy intervals and appointments, recording calls."""

    def __init__(self, busy=None, appointments=None, error=None):
        self.busy = busy or []
        self.appointments = appointments or {}
        self.error = error
        self.busy_calls = []

    async def get_busy_intervals(self, calendar_ids, now, until):
        self.busy_calls.append((list(calendar_ids), now, until))
        if self.error:
            raise self.error
        return BusyWindow(now=now, busy_intervals=merge_busy_intervals(self.busy))

    async def list_appointments(self, calendar_id, time_min, time_max):
        return list(self.appointments.get(calendar_id, []))


class RecordingNotifier:
    def __init__(self, events, configured=True, fail_on=()):
        self.events = events
        self._configured = configured
        self.fail_on = set(fail_on)
        self.calls = []

    @property
    def configured(self):
        return self._configured

    async def notify(self, payload):
        from helpers.errors import UpstreamError

        self.calls.append(payload)
        self.events.append(("webhook", payload))
        if len(self.calls) in self.fail_on:
            raise UpstreamError("webhook down")
        return "ok"


class RecordingAlarm:
    def __init__(self, events, fail_on=()):
        self.events = events
        self.fail_on = set(fail_on)
        self.calls = []

    async def set_alarm(self, hhmm):
        from helpers.errors import UpstreamError

        self.calls.append(hhmm)
        self.events.append(("alarm", hhmm))
        if len(self.calls) in self.fail_on:
            raise UpstreamError("all alarm endpoints failed")
        return "http://alarm.test"

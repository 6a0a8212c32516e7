import os
from functools import lru_cache
from typing import List, Optional

import pytz
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class SchedulingConfig(BaseModel):
    timezone: str = "America/Denver"
    safety_buffer_minutes: int = 5
    update_grid_minutes: int = 5
    long_block_minutes: int = 50
    long_gap_minutes: int = 10
    short_block_minutes: int = 25
    short_gap_minutes: int = 5
    approval_delay_seconds: float = 15
    afternoon_filler_enabled: bool = False
    webhook_url: Optional[str] = None
    alarm_endpoints: List[str] = Field(default_factory=list)
    service_account_file: str = "config/service-account.json"
    http_timeout_seconds: float = 10

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_scheduling_config() -> SchedulingConfig:
    return SchedulingConfig(
        timezone=os.getenv("SCHEDULER_TIMEZONE", "America/Denver"),
        safety_buffer_minutes=int(os.getenv("SAFETY_BUFFER_MINUTES", "5")),
        update_grid_minutes=int(os.getenv("UPDATE_GRID_MINUTES", "5")),
        approval_delay_seconds=float(os.getenv("APPROVAL_DELAY_SECONDS", "15")),
        afternoon_filler_enabled=_env_flag("AFTERNOON_FILLER_ENABLED"),
        webhook_url=os.getenv("FREEDOM_APP_WEBHOOK_URL") or None,
        alarm_endpoints=_env_list("PHONE_ALARM_ENDPOINTS"),
        service_account_file=os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "config/service-account.json"),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
    )


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """FastAPI dependency; the environment is read once per process."""
    return load_scheduling_config()

import logging
from typing import List, Optional

import httpx

from helpers.errors import UpstreamError
from helpers.settings import SchedulingConfig

logger = logging.getLogger(__name__)


def convert_24_to_am_pm(time24: str) -> str:
    """"13:05" -> "1_05_pm", the time format the alarm endpoints expect."""
    hh_str, mm = time24.split(":")
    hh = int(hh_str)
    suffix = "am"
    if hh == 0:
        hh = 12
    elif hh == 12:
        suffix = "pm"
    elif hh > 12:
        hh -= 12
        suffix = "pm"
    return f"{hh}_{mm}_{suffix}"


class PhoneAlarmService:
    """Sets a device alarm by trying each configured endpoint in order."""

    def __init__(self, endpoints: List[str], timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: SchedulingConfig) -> "PhoneAlarmService":
        return cls(config.alarm_endpoints, timeout=config.http_timeout_seconds)

    async def set_alarm(self, time24: str) -> str:
        """Return the endpoint that accepted the alarm; raise UpstreamError if none did."""
        if not self.endpoints:
            raise UpstreamError("No phone alarm endpoints configured")

        payload = {"time": convert_24_to_am_pm(time24)}
        last_error = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for endpoint in self.endpoints:
                try:
                    response = await client.post(endpoint, json=payload)
                except httpx.HTTPError as e:
                    last_error = f"Error calling {endpoint}: {e}"
                    logger.warning(last_error)
                    continue

                if response.status_code == 503:
                    last_error = f"503 from {endpoint}"
                    logger.warning(f"Alarm endpoint returned 503: {endpoint}. Trying next endpoint.")
                    continue
                if not response.is_success:
                    last_error = f"Status {response.status_code} from {endpoint}"
                    logger.warning(f"Alarm endpoint error {response.status_code}: {endpoint}. Trying next endpoint.")
                    continue

                logger.info(f"Alarm set for {time24} via {endpoint}")
                return endpoint

        raise UpstreamError(last_error or "All phone alarm endpoints failed.")

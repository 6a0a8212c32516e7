import logging
from datetime import datetime
from typing import Dict, Optional

import httpx

from helpers.errors import UpstreamError
from helpers.settings import SchedulingConfig

logger = logging.getLogger(__name__)


def block_webhook_payload(start: datetime, end: datetime) -> Dict[str, str]:
    """Unpadded hour/minute strings of a block, already in the display zone."""
    return {
        "startHour": str(start.hour),
        "startMin": str(start.minute),
        "endHour": str(end.hour),
        "endMin": str(end.minute),
    }


class WebhookNotifier:
    """Posts approved blocks to the focus-enforcement automation webhook."""

    def __init__(self, url: Optional[str], timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: SchedulingConfig) -> "WebhookNotifier":
        return cls(config.webhook_url, timeout=config.http_timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def notify(self, payload: Dict[str, str]) -> str:
        if not self.configured:
            raise UpstreamError("Webhook not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Webhook call failed: {e}") from e
        if not response.is_success:
            raise UpstreamError(f"Webhook returned {response.status_code}: {response.text}")
        return response.text

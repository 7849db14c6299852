"""
HTTP-backed delivery channels.

Both channels use blocking `requests` calls moved off the event loop with
asyncio.to_thread, and every request carries a timeout. The dispatcher adds
its own overall timeout on top.
"""

import asyncio
from typing import Any

import requests
import structlog

from carealert.config import EmailConfig, RealtimeConfig
from carealert.domain.ports import EmailResult

logger = structlog.get_logger(__name__)


class HttpEmailChannel:
    """
    Sends templated email through a transactional email HTTP API.

    Provider errors and network failures come back as an unsuccessful
    EmailResult; the dispatcher records them as a failed email channel.
    """

    def __init__(self, config: EmailConfig, session: requests.Session | None = None) -> None:
        if not config.api_url:
            raise ValueError("EmailConfig.api_url is required for HttpEmailChannel")
        self.config = config
        self.session = session or requests.Session()
        self.logger = logger.bind(component="http_email_channel")

    def _post(self, template: str, address: str, fields: dict[str, Any]) -> EmailResult:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        body = {"from": self.config.sender, "to": address, "template": template, "fields": fields}
        try:
            response = self.session.post(
                self.config.api_url,
                json=body,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            self.logger.warning("email_request_failed", template=template, error=str(e))
            return EmailResult(success=False, error=str(e))

        if response.status_code >= 300:
            error = f"email provider returned {response.status_code}: {response.text[:200]}"
            self.logger.warning("email_rejected", template=template, status=response.status_code)
            return EmailResult(success=False, error=error)

        self.logger.debug("email_sent", template=template)
        return EmailResult(success=True)

    async def send_email(self, template: str, address: str, fields: dict[str, Any]) -> EmailResult:
        return await asyncio.to_thread(self._post, template, address, fields)


class WebhookRealtimeChannel:
    """Forwards real-time events to a push gateway that owns the socket connections."""

    def __init__(self, config: RealtimeConfig, session: requests.Session | None = None) -> None:
        if not config.gateway_url:
            raise ValueError("RealtimeConfig.gateway_url is required for WebhookRealtimeChannel")
        self.config = config
        self.session = session or requests.Session()
        self.logger = logger.bind(component="webhook_realtime_channel")

    def _post(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        response = self.session.post(
            self.config.gateway_url,
            json={"channel": channel_key, "event": event, "payload": payload},
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()

    async def push(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        await asyncio.to_thread(self._post, channel_key, event, payload)
        self.logger.debug("realtime_event_pushed", channel_key=channel_key, event_name=event)

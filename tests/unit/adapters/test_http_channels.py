"""HTTP email and push-gateway channels, driven through a fake requests session."""

from typing import Any

import pytest
import requests

from adapters.channels.http import HttpEmailChannel, WebhookRealtimeChannel
from adapters.memory.directory import InMemoryCareDirectory
from adapters.memory.email import OutboxEmailChannel
from adapters.memory.repository import InMemoryAlertRepository, InMemoryNotificationStore
from carealert.config import AppConfig, EmailConfig, RealtimeConfig
from carealert.domain.models import EmergencyStatus, Measurement
from carealert.services.engine import AlertingEngine


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse(200)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def email_config() -> EmailConfig:
    return EmailConfig(
        api_url="https://mail.example/send",
        api_key="key-123",
        sender="care@example.com",
        timeout_seconds=3.0,
    )


class TestHttpEmailChannel:
    async def test_successful_send(self, email_config: EmailConfig) -> None:
        session = FakeSession(FakeResponse(202))
        channel = HttpEmailChannel(email_config, session=session)  # type: ignore[arg-type]

        result = await channel.send_email("health_alert", "claire@example.com", {"elder_name": "M"})

        assert result.success
        [call] = session.calls
        assert call["url"] == "https://mail.example/send"
        assert call["timeout"] == 3.0
        assert call["headers"]["Authorization"] == "Bearer key-123"
        assert call["json"]["to"] == "claire@example.com"
        assert call["json"]["from"] == "care@example.com"
        assert call["json"]["template"] == "health_alert"

    async def test_provider_rejection_is_a_failed_result(self, email_config: EmailConfig) -> None:
        session = FakeSession(FakeResponse(422, "invalid recipient"))
        channel = HttpEmailChannel(email_config, session=session)  # type: ignore[arg-type]

        result = await channel.send_email("emergency_alert", "bad@", {})

        assert not result.success
        assert "422" in (result.error or "")

    async def test_network_error_is_a_failed_result(self, email_config: EmailConfig) -> None:
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        channel = HttpEmailChannel(email_config, session=session)  # type: ignore[arg-type]

        result = await channel.send_email("emergency_alert", "a@example.com", {})

        assert not result.success
        assert "connection refused" in (result.error or "")

    def test_requires_api_url(self) -> None:
        with pytest.raises(ValueError, match="api_url"):
            HttpEmailChannel(EmailConfig())


class TestWebhookRealtimeChannel:
    async def test_push_posts_envelope(self) -> None:
        session = FakeSession()
        channel = WebhookRealtimeChannel(
            RealtimeConfig(gateway_url="https://push.example/events", timeout_seconds=1.0),
            session=session,  # type: ignore[arg-type]
        )

        await channel.push("user_nurse-1", "health_alert", {"play_sound": True})

        [call] = session.calls
        assert call["json"] == {
            "channel": "user_nurse-1",
            "event": "health_alert",
            "payload": {"play_sound": True},
        }
        assert call["timeout"] == 1.0

    async def test_gateway_error_raises(self) -> None:
        session = FakeSession(FakeResponse(503))
        channel = WebhookRealtimeChannel(
            RealtimeConfig(gateway_url="https://push.example/events"),
            session=session,  # type: ignore[arg-type]
        )

        with pytest.raises(requests.HTTPError):
            await channel.push("coordinator", "emergency_alert", {})


class TestWebhookThroughEngine:
    @pytest.fixture
    def session(self) -> FakeSession:
        return FakeSession()

    @pytest.fixture
    def webhook_engine(
        self,
        session: FakeSession,
        directory: InMemoryCareDirectory,
        repository: InMemoryAlertRepository,
        notification_store: InMemoryNotificationStore,
        outbox: OutboxEmailChannel,
    ) -> AlertingEngine:
        realtime = WebhookRealtimeChannel(
            RealtimeConfig(gateway_url="https://push.example/events"),
            session=session,  # type: ignore[arg-type]
        )
        return AlertingEngine(
            directory=directory,
            repository=repository,
            notifications=notification_store,
            realtime=realtime,
            email=outbox,
            config=AppConfig(),
        )

    async def test_health_alert_pushes_count_as_sent(
        self, webhook_engine: AlertingEngine, session: FakeSession
    ) -> None:
        submission = await webhook_engine.submit_measurement(
            Measurement(elder_id="elder-1", heart_rate=130)
        )

        [report] = submission.deliveries
        assert report.realtime_sent == 2
        assert report.failures == []
        assert sorted(c["json"]["channel"] for c in session.calls) == ["user_nurse-1", "user_nurse-2"]

    async def test_emergency_broadcast_and_pushes_succeed(
        self, webhook_engine: AlertingEngine, session: FakeSession
    ) -> None:
        submission = await webhook_engine.submit_emergency_signal({"elderId": "elder-1"})

        assert submission.broadcast_sent is True
        assert submission.delivery is not None
        assert submission.delivery.realtime_sent == 2
        assert submission.delivery.failures == []
        channels = [c["json"]["channel"] for c in session.calls]
        assert channels.count("coordinator") == 1

    async def test_status_change_is_posted_to_gateway(
        self, webhook_engine: AlertingEngine, session: FakeSession
    ) -> None:
        submission = await webhook_engine.submit_emergency_signal({"elderId": "elder-1"})
        session.calls.clear()

        await webhook_engine.update_emergency_status(
            submission.emergency_alert_id, EmergencyStatus.DISPATCHED
        )

        assert [(c["json"]["channel"], c["json"]["event"]) for c in session.calls] == [
            ("coordinator", "dispatch_status_update"),
            ("family_elder-1", "dispatch_status_update"),
        ]

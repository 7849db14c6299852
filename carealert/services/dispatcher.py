"""
Notification fan-out across in-app, real-time and email channels.

Key patterns:
- One task per (recipient, channel), all under a single asyncio.TaskGroup
- Every task settles into a Result, so one failure never cancels the others
- Each channel call is bounded by a timeout; a slow provider cannot stall
  the whole fan-out
- The aggregate DeliveryReport is returned, never raised
"""

import asyncio
import time
from collections.abc import Awaitable
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, Field, computed_field

from carealert.config import DispatchConfig
from carealert.domain.care import Recipient, RecipientRole, RecipientSet
from carealert.domain.models import (
    Alert,
    EmergencyAlert,
    NotificationKind,
    NotificationPriority,
    Severity,
)
from carealert.domain.ports import EmailChannel, NotificationStore, RealtimeChannel
from carealert.errors import ChannelDeliveryFailure
from carealert.services.result import Result

logger = structlog.get_logger(__name__)


class Channel(str, Enum):
    IN_APP = "in_app"
    REALTIME = "realtime"
    EMAIL = "email"


# Family members never get real-time pushes; email is their channel.
CHANNEL_PLANS: dict[str, dict[RecipientRole, tuple[Channel, ...]]] = {
    "health_alert": {
        RecipientRole.CAREGIVER: (Channel.IN_APP, Channel.REALTIME),
        RecipientRole.FAMILY: (Channel.IN_APP, Channel.EMAIL),
    },
    "emergency": {
        RecipientRole.CAREGIVER: (Channel.IN_APP, Channel.REALTIME, Channel.EMAIL),
        RecipientRole.FAMILY: (Channel.IN_APP, Channel.EMAIL),
    },
}


class NotificationEvent(BaseModel):
    """Everything the channels need to tell people about one alert or emergency."""

    kind: NotificationKind
    elder_id: str | None
    elder_name: str
    title: str
    message: str
    severity: Severity
    metadata: dict[str, Any] = Field(default_factory=dict)
    realtime_payload: dict[str, Any] = Field(default_factory=dict)
    email_template: str
    email_fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def play_sound(self) -> bool:
        return self.severity.plays_sound

    @classmethod
    def for_alert(cls, alert: Alert, elder_name: str) -> "NotificationEvent":
        details = {
            "alert_id": alert.id,
            "alert_type": alert.alert_type.value,
            "severity": alert.severity.value,
            "trigger_value": alert.trigger_value,
            "normal_range": alert.normal_range,
        }
        return cls(
            kind="health_alert",
            elder_id=alert.elder_id,
            elder_name=elder_name,
            title=f"Health Alert: {elder_name}",
            message=alert.message,
            severity=alert.severity,
            metadata=details,
            realtime_payload={
                **details,
                "elder_id": alert.elder_id,
                "elder_name": elder_name,
                "message": alert.message,
                "timestamp": alert.created_at.isoformat(),
            },
            email_template="health_alert",
            email_fields={
                **details,
                "elder_name": elder_name,
                "message": alert.message,
                "timestamp": alert.created_at.isoformat(),
            },
        )

    @classmethod
    def for_emergency(
        cls,
        alert: EmergencyAlert,
        elder_name: str,
        elder_phone: str,
        timestamp: str,
        additional_info: dict[str, Any] | None = None,
    ) -> "NotificationEvent":
        location = alert.location.describe()
        details = {
            "emergency_alert_id": alert.id,
            "alert_type": alert.alert_type,
            "priority": alert.priority.value,
            "location": location,
            "timestamp": timestamp,
            "elder_phone": elder_phone,
            "vitals": alert.vitals,
            "additional_info": additional_info or {},
        }
        return cls(
            kind="emergency",
            elder_id=alert.elder_id,
            elder_name=elder_name,
            title="🚨 EMERGENCY ALERT",
            message=f"🚨 {elder_name} needs immediate assistance!\n📍 {location}\n📞 {elder_phone}",
            severity=alert.priority,
            metadata=details,
            realtime_payload={**details, "elder_id": alert.elder_id, "elder_name": elder_name},
            email_template="emergency_alert",
            email_fields={**details, "elder_name": elder_name},
        )


class ChannelOutcome(BaseModel):
    channel: Channel
    success: bool
    error: str | None = None


class RecipientOutcome(BaseModel):
    recipient_id: str
    name: str
    role: RecipientRole
    channels: list[ChannelOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(c.success for c in self.channels)


class DeliveryReport(BaseModel):
    """Aggregate outcome of one fan-out."""

    kind: NotificationKind
    recipient_count: int = 0
    notifications_sent: int = 0
    emails_sent: int = 0
    realtime_sent: int = 0
    outcomes: list[RecipientOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failures(self) -> list[str]:
        return [
            f"{o.recipient_id}:{c.channel.value}:{c.error}"
            for o in self.outcomes
            for c in o.channels
            if not c.success
        ]


class NotificationDispatcher:
    """Delivers one event to every resolved recipient and reports per channel."""

    def __init__(
        self,
        notifications: NotificationStore,
        realtime: RealtimeChannel,
        email: EmailChannel,
        config: DispatchConfig | None = None,
    ) -> None:
        self.notifications = notifications
        self.realtime = realtime
        self.email = email
        self.config = config or DispatchConfig()
        self.logger = logger.bind(component="notification_dispatcher")

    async def dispatch(self, event: NotificationEvent, recipients: RecipientSet) -> DeliveryReport:
        start_time = time.perf_counter()
        plans = CHANNEL_PLANS[event.kind]
        attempts: list[tuple[Recipient, Channel, asyncio.Task[Result[Any, ChannelDeliveryFailure]]]] = []

        async with asyncio.TaskGroup() as task_group:
            for recipient in recipients.all():
                for channel in plans[recipient.role]:
                    task = task_group.create_task(
                        self._settle(recipient, channel, self._deliver(channel, event, recipient)),
                        name=f"{channel.value}:{recipient.id}",
                    )
                    attempts.append((recipient, channel, task))

        report = DeliveryReport(kind=event.kind, recipient_count=recipients.count)
        by_recipient: dict[str, RecipientOutcome] = {}

        for recipient, channel, task in attempts:
            result = task.result()
            outcome = by_recipient.get(recipient.id)
            if outcome is None:
                outcome = RecipientOutcome(
                    recipient_id=recipient.id, name=recipient.name, role=recipient.role
                )
                by_recipient[recipient.id] = outcome
                report.outcomes.append(outcome)

            if result.is_ok():
                outcome.channels.append(ChannelOutcome(channel=channel, success=True))
                if channel is Channel.IN_APP:
                    report.notifications_sent += 1
                elif channel is Channel.EMAIL:
                    report.emails_sent += 1
                else:
                    report.realtime_sent += 1
            else:
                failure = result.unwrap_err()
                outcome.channels.append(
                    ChannelOutcome(channel=channel, success=False, error=failure.reason)
                )

        self.logger.info(
            "dispatch_completed",
            kind=event.kind,
            elder_id=event.elder_id,
            recipients=recipients.count,
            notifications_sent=report.notifications_sent,
            emails_sent=report.emails_sent,
            realtime_sent=report.realtime_sent,
            failures=len(report.failures),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return report

    async def _settle(
        self, recipient: Recipient, channel: Channel, delivery: Awaitable[Any]
    ) -> Result[Any, ChannelDeliveryFailure]:
        """Run one channel call to completion and turn any failure into a value."""
        deadline = asyncio.timeout(self.config.channel_timeout_seconds)
        try:
            async with deadline:
                value = await delivery
            return Result.ok(value)
        except TimeoutError as e:
            if deadline.expired():
                reason = f"timed out after {self.config.channel_timeout_seconds}s"
            else:
                # raised by the channel itself
                reason = str(e) or type(e).__name__
            failure = ChannelDeliveryFailure(recipient.id, channel.value, reason)
        except ChannelDeliveryFailure as e:
            failure = e
        except Exception as e:
            failure = ChannelDeliveryFailure(recipient.id, channel.value, str(e) or type(e).__name__)

        self.logger.warning(
            "channel_delivery_failed",
            recipient_id=recipient.id,
            recipient_role=recipient.role.value,
            channel=channel.value,
            reason=failure.reason,
        )
        return Result.err(failure)

    async def _deliver(self, channel: Channel, event: NotificationEvent, recipient: Recipient) -> Any:
        if channel is Channel.IN_APP:
            return await self._deliver_in_app(event, recipient)
        if channel is Channel.REALTIME:
            return await self._deliver_realtime(event, recipient)
        return await self._deliver_email(event, recipient)

    async def _deliver_in_app(self, event: NotificationEvent, recipient: Recipient) -> Any:
        notification = await self.notifications.persist_notification(
            recipient.id,
            event.elder_id,
            event.kind,
            event.title,
            event.message,
            NotificationPriority.for_severity(event.severity),
            event.metadata,
        )
        if notification is None:
            raise ChannelDeliveryFailure(recipient.id, Channel.IN_APP.value, "notification not stored")
        return notification

    async def _deliver_realtime(self, event: NotificationEvent, recipient: Recipient) -> None:
        channel_key = f"{self.config.caregiver_channel_prefix}{recipient.id}"
        event_name = (
            self.config.health_alert_event
            if event.kind == "health_alert"
            else self.config.emergency_event
        )
        await self.realtime.push(
            channel_key,
            event_name,
            {
                **event.realtime_payload,
                "recipient": recipient.role.value,
                "recipient_id": recipient.id,
                "play_sound": event.play_sound,
            },
        )

    async def _deliver_email(self, event: NotificationEvent, recipient: Recipient) -> Any:
        if not recipient.email:
            raise ChannelDeliveryFailure(recipient.id, Channel.EMAIL.value, "no email address")

        result = await self.email.send_email(
            event.email_template,
            recipient.email,
            {
                **event.email_fields,
                "recipient_name": recipient.name,
                "recipient_role": recipient.user_role.value,
            },
        )
        if not result.success:
            raise ChannelDeliveryFailure(
                recipient.id, Channel.EMAIL.value, result.error or "email provider rejected message"
            )
        return result

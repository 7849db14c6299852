"""
Error taxonomy and non-fatal warnings.

Only ValidationError, NotFoundError and InvalidTransitionError abort a call.
Channel failures and degraded lookups are reported as values so that a
health or emergency signal is never dropped because one downstream channel
misbehaved.
"""

from typing import Literal

from pydantic import BaseModel, Field


class CareAlertError(Exception):
    """Base class for errors raised by the alerting engine."""


class ValidationError(CareAlertError):
    """Missing elder identity on a measurement, or out-of-range query arguments."""


class NotFoundError(CareAlertError):
    """A lifecycle transition was requested for an alert that does not exist."""

    def __init__(self, kind: str, alert_id: str) -> None:
        super().__init__(f"{kind} {alert_id} not found")
        self.kind = kind
        self.alert_id = alert_id


class InvalidTransitionError(CareAlertError):
    """An emergency alert cannot move from its current status to the requested one."""


class ChannelDeliveryFailure(CareAlertError):
    """One channel failed for one recipient. Recorded, never propagated."""

    def __init__(self, recipient_id: str, channel: str, reason: str) -> None:
        super().__init__(f"{channel} delivery to {recipient_id} failed: {reason}")
        self.recipient_id = recipient_id
        self.channel = channel
        self.reason = reason


class EngineWarning(BaseModel):
    """A condition worth surfacing to the caller that did not stop processing."""

    code: str
    message: str
    remediation: list[str] = Field(default_factory=list)


class DegradedResolutionWarning(EngineWarning):
    code: Literal["degraded_resolution"] = "degraded_resolution"
    message: str = "Elder identity could not be matched; a placeholder identity was recorded"
    remediation: list[str] = Field(
        default_factory=lambda: [
            "Check the elder or user id sent by the device",
            "Create an elder record linked to the user account",
        ]
    )


class ZeroRecipientsWarning(EngineWarning):
    code: Literal["zero_recipients"] = "zero_recipients"
    message: str = "No assigned staff or subscription family member found"
    remediation: list[str] = Field(
        default_factory=lambda: [
            "Assign staff to this elder",
            "Link a family member subscription to this elder",
        ]
    )


class NotificationStageWarning(EngineWarning):
    code: Literal["notification_failed"] = "notification_failed"

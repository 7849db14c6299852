"""
Contracts for the collaborators the engine consumes.

Storage and transport adapters (and test fakes) satisfy these structurally;
nothing inherits from them. All methods are async.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import BaseModel

from carealert.domain.care import Elder, StaffAssignment, User
from carealert.domain.models import (
    Alert,
    AlertLevel,
    AlertStatus,
    EmergencyAlert,
    Measurement,
    Notification,
    NotificationKind,
    NotificationPriority,
    Severity,
)


class CareDirectory(Protocol):
    """Read-only access to elders, accounts, assignments and subscriptions."""

    async def find_elder(self, elder_id: str) -> Elder | None: ...

    async def find_elder_by_user_id(self, user_id: str) -> Elder | None: ...

    async def find_user(self, user_id: str) -> User | None: ...

    async def find_active_assignments(self, elder_id: str) -> Sequence[StaffAssignment]: ...

    async def find_staff_assignments(self, staff_id: str) -> Sequence[StaffAssignment]:
        """Active assignments held by one staff member."""
        ...

    async def find_subscription_user(self, elder_id: str) -> User | None: ...


class AlertRepository(Protocol):
    """Persistence for measurements, alerts and emergency alerts."""

    async def save_measurement(self, measurement: Measurement) -> None: ...

    async def set_measurement_alert_level(self, measurement_id: str, level: AlertLevel) -> None: ...

    async def add_alerts(self, alerts: Sequence[Alert]) -> list[Alert]: ...

    async def get_alert(self, alert_id: str) -> Alert | None: ...

    async def save_alert(self, alert: Alert) -> Alert: ...

    async def list_alerts(self, elder_id: str) -> list[Alert]: ...

    async def query_alerts(
        self,
        elder_ids: Sequence[str] | None = None,
        statuses: Sequence[AlertStatus] | None = None,
        severity: Severity | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Alert], int]:
        """Matching alerts newest first, sliced by offset/limit, plus the unsliced count."""
        ...

    async def add_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert: ...

    async def get_emergency_alert(self, alert_id: str) -> EmergencyAlert | None: ...

    async def save_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert: ...


class NotificationStore(Protocol):
    """Persisted in-app notification records."""

    async def persist_notification(
        self,
        recipient_id: str,
        elder_id: str | None,
        type: NotificationKind,
        title: str,
        message: str,
        priority: NotificationPriority,
        metadata: dict[str, Any],
    ) -> Notification: ...


class RealtimeChannel(Protocol):
    """Real-time push transport. No delivery guarantee."""

    async def push(self, channel_key: str, event: str, payload: dict[str, Any]) -> None: ...


class EmailResult(BaseModel):
    success: bool
    error: str | None = None


class EmailChannel(Protocol):
    """Transactional email transport."""

    async def send_email(
        self, template: str, address: str, fields: dict[str, Any]
    ) -> EmailResult: ...

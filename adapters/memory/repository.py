"""In-memory alert repository and notification store."""

from collections.abc import Sequence
from typing import Any

from carealert.domain.models import (
    Alert,
    AlertLevel,
    AlertStatus,
    EmergencyAlert,
    Measurement,
    MeasurementRecord,
    Notification,
    NotificationKind,
    NotificationPriority,
    Severity,
)


class InMemoryAlertRepository:
    """Implements AlertRepository. Returns copies so callers cannot mutate stored state."""

    def __init__(self) -> None:
        self.measurements: dict[str, MeasurementRecord] = {}
        self.alerts: dict[str, Alert] = {}
        self.emergency_alerts: dict[str, EmergencyAlert] = {}

    async def save_measurement(self, measurement: Measurement) -> None:
        self.measurements[measurement.id] = MeasurementRecord(measurement=measurement)

    async def set_measurement_alert_level(self, measurement_id: str, level: AlertLevel) -> None:
        record = self.measurements.get(measurement_id)
        if record is None:
            raise KeyError(f"measurement {measurement_id} not stored")
        record.alert_level = level

    async def add_alerts(self, alerts: Sequence[Alert]) -> list[Alert]:
        for alert in alerts:
            self.alerts[alert.id] = alert.model_copy(deep=True)
        return [a.model_copy(deep=True) for a in alerts]

    async def get_alert(self, alert_id: str) -> Alert | None:
        alert = self.alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert else None

    async def save_alert(self, alert: Alert) -> Alert:
        self.alerts[alert.id] = alert.model_copy(deep=True)
        return alert

    async def list_alerts(self, elder_id: str) -> list[Alert]:
        alerts = [a for a in self.alerts.values() if a.elder_id == elder_id]
        return [a.model_copy(deep=True) for a in sorted(alerts, key=lambda a: a.created_at)]

    async def query_alerts(
        self,
        elder_ids: Sequence[str] | None = None,
        statuses: Sequence[AlertStatus] | None = None,
        severity: Severity | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Alert], int]:
        matches = [
            a
            for a in self.alerts.values()
            if (elder_ids is None or a.elder_id in elder_ids)
            and (statuses is None or a.status in statuses)
            and (severity is None or a.severity is severity)
        ]
        matches.sort(key=lambda a: a.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return [a.model_copy(deep=True) for a in matches[offset:end]], len(matches)

    async def add_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        self.emergency_alerts[alert.id] = alert.model_copy(deep=True)
        return alert

    async def get_emergency_alert(self, alert_id: str) -> EmergencyAlert | None:
        alert = self.emergency_alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert else None

    async def save_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        self.emergency_alerts[alert.id] = alert.model_copy(deep=True)
        return alert


class InMemoryNotificationStore:
    """Implements NotificationStore; keeps every in-app notification in order."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def persist_notification(
        self,
        recipient_id: str,
        elder_id: str | None,
        type: NotificationKind,
        title: str,
        message: str,
        priority: NotificationPriority,
        metadata: dict[str, Any],
    ) -> Notification:
        notification = Notification(
            user_id=recipient_id,
            elder_id=elder_id,
            type=type,
            title=title,
            message=message,
            priority=priority,
            metadata=dict(metadata),
        )
        self.notifications.append(notification)
        return notification

    def for_user(self, user_id: str) -> list[Notification]:
        return [n for n in self.notifications if n.user_id == user_id]

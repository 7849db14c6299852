"""
Alert store and lifecycle.

Wraps an AlertRepository with the rules for creating alerts and moving them
through their states:

    Alert:           active -> acknowledged -> resolved (terminal)
    EmergencyAlert:  pending -> acknowledged -> dispatched -> en_route
                     -> arrived -> completed, or cancelled from any live state

Mutations are plain read-modify-write without locking.
"""

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from carealert.domain.models import (
    Alert,
    AlertCandidate,
    AlertLevel,
    AlertPage,
    AlertStatus,
    EmergencyAlert,
    EmergencyStatus,
    Measurement,
    Severity,
    max_severity,
)
from carealert.domain.ports import AlertRepository, CareDirectory
from carealert.errors import InvalidTransitionError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class AlertStore:
    """Creates alerts and applies lifecycle transitions."""

    def __init__(self, repository: AlertRepository, directory: CareDirectory) -> None:
        self.repository = repository
        self.directory = directory
        self.logger = logger.bind(component="alert_store")

    # ---- measurements ----

    async def record_measurement(self, measurement: Measurement) -> None:
        if not measurement.elder_id:
            raise ValidationError("Elder ID is required")
        await self.repository.save_measurement(measurement)

    async def update_measurement_alert_level(
        self, measurement: Measurement, candidates: Sequence[AlertCandidate]
    ) -> AlertLevel:
        """
        Store the roll-up level for a measurement.

        Always writes, so a stale level from an earlier evaluation is replaced
        with `normal` when nothing is abnormal any more.
        """
        highest = max_severity(c.severity for c in candidates)
        level = AlertLevel.from_severity(highest)
        await self.repository.set_measurement_alert_level(measurement.id, level)
        self.logger.info(
            "measurement_alert_level_updated",
            measurement_id=measurement.id,
            alert_level=level.value,
            highest_severity=highest.value if highest else None,
        )
        return level

    # ---- threshold alerts ----

    async def create_alerts(
        self, measurement: Measurement, candidates: Sequence[AlertCandidate]
    ) -> list[Alert]:
        """Bulk-insert one alert per candidate, skipping repeated alert types."""
        if not measurement.elder_id:
            raise ValidationError("Cannot create alerts without an elder reference")
        if not candidates:
            return []

        seen: set[tuple[str, str]] = set()
        alerts: list[Alert] = []
        for candidate in candidates:
            key = (measurement.id, candidate.alert_type.value)
            if key in seen:
                self.logger.warning(
                    "duplicate_alert_candidate_skipped",
                    measurement_id=measurement.id,
                    alert_type=candidate.alert_type.value,
                )
                continue
            seen.add(key)
            alerts.append(Alert.from_candidate(candidate, measurement.elder_id, measurement.id))

        created = await self.repository.add_alerts(alerts)
        self.logger.info(
            "alerts_created",
            measurement_id=measurement.id,
            elder_id=measurement.elder_id,
            count=len(created),
            types=[a.alert_type.value for a in created],
        )
        return created

    async def get_alert(self, alert_id: str) -> Alert:
        alert = await self.repository.get_alert(alert_id)
        if alert is None:
            raise NotFoundError("Alert", alert_id)
        return alert

    async def list_active_alerts(self, elder_id: str) -> list[Alert]:
        alerts = await self.repository.list_alerts(elder_id)
        return [a for a in alerts if a.status is not AlertStatus.RESOLVED]

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        elder_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> AlertPage:
        """Filtered, paginated listing across all elders, newest first."""
        if page < 1:
            raise ValidationError("page must be at least 1")
        if limit < 1:
            raise ValidationError("limit must be at least 1")

        items, total = await self.repository.query_alerts(
            elder_ids=[elder_id] if elder_id else None,
            statuses=[status] if status else None,
            severity=severity,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return AlertPage(items=items, page=page, limit=limit, total_records=total)

    async def list_staff_alerts(self, staff_id: str) -> list[Alert]:
        """Open alerts for every elder the staff member is actively assigned to."""
        assignments = await self.directory.find_staff_assignments(staff_id)
        elder_ids = sorted({a.elder_id for a in assignments})
        if not elder_ids:
            return []

        alerts, _ = await self.repository.query_alerts(
            elder_ids=elder_ids, statuses=[AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED]
        )
        return alerts

    async def acknowledge(self, alert_id: str, actor_id: str) -> Alert:
        alert = await self.get_alert(alert_id)
        if alert.status is AlertStatus.RESOLVED:
            self.logger.info("acknowledge_ignored_on_resolved_alert", alert_id=alert_id)
            return alert

        alert.status = AlertStatus.ACKNOWLEDGED
        alert.acknowledged_at = datetime.now(UTC)
        alert.acknowledged_by = actor_id
        saved = await self.repository.save_alert(alert)
        self.logger.info("alert_acknowledged", alert_id=alert_id, actor_id=actor_id)
        return saved

    async def resolve(self, alert_id: str, actor_id: str, notes: str | None = None) -> Alert:
        alert = await self.get_alert(alert_id)
        if alert.status is AlertStatus.RESOLVED:
            self.logger.info("resolve_ignored_on_resolved_alert", alert_id=alert_id)
            return alert

        alert.status = AlertStatus.RESOLVED
        alert.resolved_at = datetime.now(UTC)
        alert.resolved_by = actor_id
        alert.resolution_notes = notes
        saved = await self.repository.save_alert(alert)
        self.logger.info("alert_resolved", alert_id=alert_id, actor_id=actor_id)
        return saved

    async def mark_emergency_contacted(self, alert_id: str) -> Alert:
        alert = await self.get_alert(alert_id)
        if alert.status is AlertStatus.RESOLVED:
            self.logger.info("flag_ignored_on_resolved_alert", alert_id=alert_id,
                             flag="emergency_contacted")
            return alert

        alert.emergency_contacted = True
        return await self.repository.save_alert(alert)

    async def mark_next_of_kin_notified(self, alert_id: str) -> Alert:
        """Set the next-of-kin flag; an active alert also becomes acknowledged."""
        alert = await self.get_alert(alert_id)
        if alert.status is AlertStatus.RESOLVED:
            self.logger.info("flag_ignored_on_resolved_alert", alert_id=alert_id,
                             flag="next_of_kin_notified")
            return alert

        alert.next_of_kin_notified = True
        if alert.status is AlertStatus.ACTIVE:
            alert.status = AlertStatus.ACKNOWLEDGED
        return await self.repository.save_alert(alert)

    # ---- emergency alerts ----

    async def create_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        created = await self.repository.add_emergency_alert(alert)
        self.logger.info(
            "emergency_alert_created",
            emergency_alert_id=created.id,
            elder_id=created.elder_id,
            priority=created.priority.value,
            degraded=created.degraded,
        )
        return created

    async def get_emergency_alert(self, alert_id: str) -> EmergencyAlert:
        alert = await self.repository.get_emergency_alert(alert_id)
        if alert is None:
            raise NotFoundError("EmergencyAlert", alert_id)
        return alert

    async def acknowledge_emergency(self, alert_id: str, coordinator_id: str) -> EmergencyAlert:
        alert = await self.get_emergency_alert(alert_id)
        previous = self._transition(alert, EmergencyStatus.ACKNOWLEDGED)
        alert.acknowledged_by = coordinator_id
        alert.acknowledged_at = datetime.now(UTC)
        saved = await self.repository.save_emergency_alert(alert)
        self.logger.info(
            "emergency_status_updated",
            emergency_alert_id=alert_id,
            previous=previous.value,
            status=saved.status.value,
            coordinator_id=coordinator_id,
        )
        return saved

    async def update_emergency_status(
        self, alert_id: str, status: EmergencyStatus
    ) -> EmergencyAlert:
        alert = await self.get_emergency_alert(alert_id)
        previous = self._transition(alert, status)
        saved = await self.repository.save_emergency_alert(alert)
        self.logger.info(
            "emergency_status_updated",
            emergency_alert_id=alert_id,
            previous=previous.value,
            status=status.value,
        )
        return saved

    def _transition(self, alert: EmergencyAlert, status: EmergencyStatus) -> EmergencyStatus:
        if not alert.status.can_move_to(status):
            raise InvalidTransitionError(
                f"Emergency alert {alert.id} cannot move from {alert.status.value} to {status.value}"
            )
        previous = alert.status
        alert.status = status
        return previous

"""
Alerting engine: the two inbound flows and the alert lifecycle.

Measurement flow:
    record -> evaluate thresholds -> create alerts -> roll up level
    -> per alert: resolve recipients -> dispatch

Emergency flow:
    normalize payload -> resolve identity -> classify priority
    -> create EmergencyAlert -> coordinator broadcast
    -> resolve recipients -> dispatch

Once a measurement or emergency is persisted, nothing downstream can make
the call fail; problems after that point are returned as warnings.

Emergency status changes (acknowledge, dispatch updates) are pushed to the
coordinator room and the elder's family room after they are stored.
"""

import time
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel, Field

from carealert.config import AppConfig, get_config
from carealert.domain.care import RecipientSet
from carealert.domain.models import (
    Alert,
    AlertLevel,
    AlertPage,
    AlertStatus,
    EmergencyAlert,
    EmergencyStatus,
    Measurement,
    Severity,
)
from carealert.domain.ports import (
    AlertRepository,
    CareDirectory,
    EmailChannel,
    NotificationStore,
    RealtimeChannel,
)
from carealert.errors import (
    DegradedResolutionWarning,
    EngineWarning,
    NotificationStageWarning,
    ValidationError,
    ZeroRecipientsWarning,
)
from carealert.services.alert_store import AlertStore
from carealert.services.coordinator import CoordinatorBroadcaster
from carealert.services.dispatcher import DeliveryReport, NotificationDispatcher, NotificationEvent
from carealert.services.emergency_intake import (
    EmergencyIntakeResolver,
    classify_priority,
    normalize_alert_type,
    parse_location,
)
from carealert.services.recipients import RecipientResolver
from carealert.services.thresholds import ThresholdEvaluator

logger = structlog.get_logger(__name__)


class MeasurementSubmission(BaseModel):
    """What happened to one submitted measurement."""

    measurement_id: str
    alerts_created: list[Alert] = Field(default_factory=list)
    measurement_alert_level: AlertLevel = AlertLevel.NORMAL
    deliveries: list[DeliveryReport] = Field(default_factory=list)
    warnings: list[EngineWarning] = Field(default_factory=list)


class EmergencySubmission(BaseModel):
    """What happened to one emergency signal. Always a success once stored."""

    emergency_alert_id: str
    elder_id: str
    priority: Severity
    recipient_count: int = 0
    notifications_sent: int = 0
    emails_sent: int = 0
    degraded: bool = False
    broadcast_sent: bool = False
    breakdown: dict[str, int] = Field(default_factory=lambda: {"staff": 0, "family": 0})
    delivery: DeliveryReport | None = None
    warnings: list[EngineWarning] = Field(default_factory=list)


def _add_warning(warnings: list[EngineWarning], warning: EngineWarning) -> None:
    if warning.code != "notification_failed" and any(w.code == warning.code for w in warnings):
        return
    warnings.append(warning)


class AlertingEngine:
    """
    Entry point for measurement submission, emergency intake and alert lifecycle.

    Collaborators are passed in as protocol implementations; the engine holds
    no state of its own beyond them.
    """

    def __init__(
        self,
        directory: CareDirectory,
        repository: AlertRepository,
        notifications: NotificationStore,
        realtime: RealtimeChannel,
        email: EmailChannel,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="alerting_engine")

        self.directory = directory
        self.evaluator = ThresholdEvaluator(self.config.thresholds)
        self.store = AlertStore(repository, directory)
        self.recipients = RecipientResolver(directory)
        self.dispatcher = NotificationDispatcher(
            notifications, realtime, email, self.config.dispatch
        )
        self.intake = EmergencyIntakeResolver(directory)
        self.coordinator = CoordinatorBroadcaster(realtime, self.config.coordinator)

    # ---- measurements ----

    async def submit_measurement(self, measurement: Measurement) -> MeasurementSubmission:
        """
        Evaluate a measurement and notify everyone responsible for the elder.

        Raises:
            ValidationError: the measurement has no elder, or the elder is unknown.
        """
        start_time = time.perf_counter()
        if not measurement.elder_id or not measurement.elder_id.strip():
            raise ValidationError("Elder ID is required")

        elder = await self.directory.find_elder(measurement.elder_id)
        if elder is None:
            raise ValidationError(f"Elder {measurement.elder_id} not found")

        await self.store.record_measurement(measurement)
        candidates = self.evaluator.evaluate(measurement)
        alerts = await self.store.create_alerts(measurement, candidates)
        level = await self.store.update_measurement_alert_level(measurement, candidates)

        submission = MeasurementSubmission(
            measurement_id=measurement.id,
            alerts_created=alerts,
            measurement_alert_level=level,
        )

        for alert in alerts:
            try:
                recipients = await self.recipients.resolve(alert.elder_id)
                if recipients.is_empty:
                    _add_warning(submission.warnings, ZeroRecipientsWarning())
                    continue
                report = await self.dispatcher.dispatch(
                    NotificationEvent.for_alert(alert, elder.full_name), recipients
                )
                submission.deliveries.append(report)
            except Exception as e:
                self.logger.error(
                    "alert_notification_failed",
                    alert_id=alert.id,
                    elder_id=alert.elder_id,
                    error=str(e),
                )
                _add_warning(
                    submission.warnings,
                    NotificationStageWarning(
                        message=f"Notifications for alert {alert.id} could not be sent: {e}"
                    ),
                )

        self.logger.info(
            "measurement_processed",
            measurement_id=measurement.id,
            elder_id=measurement.elder_id,
            alerts_created=len(alerts),
            alert_level=level.value,
            warnings=[w.code for w in submission.warnings],
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return submission

    # ---- emergencies ----

    async def submit_emergency_signal(self, raw: Mapping[str, Any]) -> EmergencySubmission:
        """
        Record an emergency and alert coordinators, staff and family.

        Never raises for an unknown elder: an unmatched signal is stored under
        a placeholder identity and flagged degraded.
        """
        start_time = time.perf_counter()
        signal = self.intake.normalize(raw)
        identity = await self.intake.resolve(signal)
        elder = identity.elder

        emergency = await self.store.create_emergency_alert(
            EmergencyAlert(
                elder_id=elder.id,
                user_id=identity.user_id,
                alert_type=normalize_alert_type(signal.alert_type),
                priority=classify_priority(signal.alert_type, signal.vitals),
                location=parse_location(signal.location),
                medical_info=identity.medical_info,
                vitals=signal.vitals,
                degraded=identity.is_degraded,
            )
        )

        submission = EmergencySubmission(
            emergency_alert_id=emergency.id,
            elder_id=elder.id,
            priority=emergency.priority,
            degraded=emergency.degraded,
        )
        if identity.is_degraded:
            _add_warning(submission.warnings, DegradedResolutionWarning())

        submission.broadcast_sent = await self.coordinator.broadcast(emergency, elder)

        aliases = [identity.user_id] if identity.user_id and identity.user_id != elder.id else []
        try:
            recipients = await self.recipients.resolve(elder.id, aliases)
        except Exception as e:
            self.logger.error(
                "emergency_recipient_lookup_failed",
                emergency_alert_id=emergency.id,
                elder_id=elder.id,
                error=str(e),
            )
            _add_warning(
                submission.warnings,
                NotificationStageWarning(message=f"Recipient lookup failed: {e}"),
            )
            recipients = RecipientSet()
        else:
            if recipients.is_empty:
                _add_warning(submission.warnings, ZeroRecipientsWarning())

        submission.recipient_count = recipients.count
        submission.breakdown = {
            "staff": len(recipients.caregivers),
            "family": 1 if recipients.family else 0,
        }

        if not recipients.is_empty:
            event = NotificationEvent.for_emergency(
                emergency,
                elder_name=signal.elder_name or elder.full_name,
                elder_phone=signal.elder_phone or elder.phone or "Not available",
                timestamp=signal.timestamp,
                additional_info=signal.additional_info,
            )
            try:
                report = await self.dispatcher.dispatch(event, recipients)
            except Exception as e:
                self.logger.error(
                    "emergency_dispatch_failed", emergency_alert_id=emergency.id, error=str(e)
                )
                _add_warning(
                    submission.warnings,
                    NotificationStageWarning(message=f"Emergency notifications failed: {e}"),
                )
            else:
                submission.delivery = report
                submission.notifications_sent = report.notifications_sent
                submission.emails_sent = report.emails_sent

        self.logger.info(
            "emergency_processed",
            emergency_alert_id=emergency.id,
            elder_id=elder.id,
            priority=emergency.priority.value,
            degraded=emergency.degraded,
            recipients=submission.recipient_count,
            notifications_sent=submission.notifications_sent,
            emails_sent=submission.emails_sent,
            broadcast_sent=submission.broadcast_sent,
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return submission

    # ---- lifecycle ----

    async def list_active_alerts(self, elder_id: str) -> list[Alert]:
        return await self.store.list_active_alerts(elder_id)

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        elder_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> AlertPage:
        return await self.store.list_alerts(status, severity, elder_id, page, limit)

    async def list_staff_alerts(self, staff_id: str) -> list[Alert]:
        return await self.store.list_staff_alerts(staff_id)

    async def acknowledge_alert(self, alert_id: str, actor_id: str) -> Alert:
        return await self.store.acknowledge(alert_id, actor_id)

    async def resolve_alert(self, alert_id: str, actor_id: str, notes: str | None = None) -> Alert:
        return await self.store.resolve(alert_id, actor_id, notes)

    async def mark_emergency_contacted(self, alert_id: str) -> Alert:
        return await self.store.mark_emergency_contacted(alert_id)

    async def mark_next_of_kin_notified(self, alert_id: str) -> Alert:
        return await self.store.mark_next_of_kin_notified(alert_id)

    async def acknowledge_emergency(self, alert_id: str, coordinator_id: str) -> EmergencyAlert:
        alert = await self.store.acknowledge_emergency(alert_id, coordinator_id)
        await self.coordinator.announce_status(alert)
        return alert

    async def update_emergency_status(
        self, alert_id: str, status: EmergencyStatus
    ) -> EmergencyAlert:
        """Apply a dispatch status change and push it to coordinators and family."""
        alert = await self.store.update_emergency_status(alert_id, status)
        await self.coordinator.announce_status(alert)
        return alert

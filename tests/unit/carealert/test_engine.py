"""
End-to-end engine behaviour over the in-memory adapters.

Testing philosophy:
- Real collaborators wherever possible, fakes only to inject failures
- Each test reads as one business scenario
"""

from typing import Any

import pytest

from adapters.memory.directory import InMemoryCareDirectory
from adapters.memory.email import OutboxEmailChannel
from adapters.memory.realtime import RealtimeHub
from adapters.memory.repository import InMemoryAlertRepository, InMemoryNotificationStore
from carealert.config import AppConfig
from carealert.domain.care import Elder
from carealert.domain.models import (
    AlertLevel,
    AlertStatus,
    EmergencyStatus,
    Measurement,
    Severity,
)
from carealert.errors import InvalidTransitionError, NotFoundError, ValidationError
from carealert.services.engine import AlertingEngine


class ExplodingDirectory(InMemoryCareDirectory):
    """Directory whose assignment lookup is down."""

    async def find_active_assignments(self, elder_id: str) -> list[Any]:
        raise ConnectionError("directory timeout")


class FailingRealtime:
    async def push(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        raise ConnectionError("socket server down")


class TestSubmitMeasurement:
    async def test_normal_reading(
        self, engine: AlertingEngine, repository: InMemoryAlertRepository
    ) -> None:
        measurement = Measurement(elder_id="elder-1", heart_rate=72, systolic=118, diastolic=76)
        submission = await engine.submit_measurement(measurement)

        assert submission.alerts_created == []
        assert submission.measurement_alert_level is AlertLevel.NORMAL
        assert submission.deliveries == []
        assert submission.warnings == []
        assert repository.measurements[measurement.id].alert_level is AlertLevel.NORMAL

    async def test_abnormal_reading_notifies_per_alert(
        self,
        engine: AlertingEngine,
        notification_store: InMemoryNotificationStore,
        hub: RealtimeHub,
        outbox: OutboxEmailChannel,
    ) -> None:
        submission = await engine.submit_measurement(
            Measurement(elder_id="elder-1", heart_rate=125, systolic=150, diastolic=95,
                        oxygen_saturation=93)
        )

        assert len(submission.alerts_created) == 3
        assert submission.measurement_alert_level is AlertLevel.CRITICAL
        assert len(submission.deliveries) == 3
        # 2 caregivers + 1 family, in-app each, per alert
        assert len(notification_store.notifications) == 9
        assert len(hub.messages_for("user_nurse-1")) == 3
        assert len(outbox.outbox) == 3
        assert all(e.address == "claire@example.com" for e in outbox.outbox)

    async def test_missing_elder_id(self, engine: AlertingEngine) -> None:
        with pytest.raises(ValidationError):
            await engine.submit_measurement(Measurement(elder_id=None, heart_rate=130))
        with pytest.raises(ValidationError):
            await engine.submit_measurement(Measurement(elder_id="  ", heart_rate=130))

    async def test_unknown_elder(
        self, engine: AlertingEngine, repository: InMemoryAlertRepository
    ) -> None:
        with pytest.raises(ValidationError, match="not found"):
            await engine.submit_measurement(Measurement(elder_id="ghost", heart_rate=130))
        assert repository.measurements == {}

    async def test_unassigned_elder_gets_zero_recipient_warning(
        self, engine: AlertingEngine, directory: InMemoryCareDirectory
    ) -> None:
        directory.add_elder(Elder(id="elder-2"))
        submission = await engine.submit_measurement(
            Measurement(elder_id="elder-2", heart_rate=130, oxygen_saturation=85)
        )

        assert len(submission.alerts_created) == 2
        assert [w.code for w in submission.warnings] == ["zero_recipients"]
        assert "Assign staff to this elder" in submission.warnings[0].remediation

    async def test_recipient_lookup_failure_keeps_alerts(
        self,
        repository: InMemoryAlertRepository,
        notification_store: InMemoryNotificationStore,
        hub: RealtimeHub,
        outbox: OutboxEmailChannel,
    ) -> None:
        directory = ExplodingDirectory()
        directory.add_elder(Elder(id="elder-1"))
        engine = AlertingEngine(
            directory, repository, notification_store, hub, outbox, config=AppConfig()
        )

        submission = await engine.submit_measurement(Measurement(elder_id="elder-1", heart_rate=30))

        assert len(submission.alerts_created) == 1
        assert len(repository.alerts) == 1
        assert submission.warnings[0].code == "notification_failed"
        assert "directory timeout" in submission.warnings[0].message


class TestSubmitEmergency:
    async def test_known_elder(
        self, engine: AlertingEngine, repository: InMemoryAlertRepository, hub: RealtimeHub
    ) -> None:
        coordinator = hub.subscribe("coordinator")

        submission = await engine.submit_emergency_signal(
            {"elderId": "elder-1", "alertType": "fall", "location": "Garden"}
        )

        assert submission.priority is Severity.HIGH
        assert not submission.degraded
        assert submission.broadcast_sent
        assert submission.recipient_count == 3
        assert submission.breakdown == {"staff": 2, "family": 1}
        assert submission.notifications_sent == 3
        assert submission.emails_sent == 3
        assert submission.warnings == []

        stored = repository.emergency_alerts[submission.emergency_alert_id]
        assert stored.status is EmergencyStatus.PENDING
        assert stored.alert_type == "fall"
        assert stored.location.address == "Garden"
        assert stored.medical_info.blood_type == "A-"

        message = coordinator.get_nowait()
        assert message.event == "emergency_alert"
        assert message.payload["id"] == submission.emergency_alert_id

    async def test_wrapped_payload_with_user_id_and_critical_vitals(
        self, engine: AlertingEngine, repository: InMemoryAlertRepository
    ) -> None:
        submission = await engine.submit_emergency_signal(
            {"body": '{"elderInfo": {"id": "user-elder-1"}, "vitals": {"oxygenLevel": 85}}'}
        )

        assert submission.priority is Severity.CRITICAL
        assert submission.elder_id == "elder-1"
        stored = repository.emergency_alerts[submission.emergency_alert_id]
        assert stored.user_id == "user-elder-1"
        assert stored.alert_type == "sos"
        assert stored.vitals == {"oxygenLevel": 85}

    async def test_unknown_identity_is_recorded_degraded(
        self, engine: AlertingEngine, repository: InMemoryAlertRepository
    ) -> None:
        submission = await engine.submit_emergency_signal(
            {"elderId": "device-77", "elderName": "Walter Price"}
        )

        assert submission.degraded
        assert submission.recipient_count == 0
        assert submission.notifications_sent == 0
        assert {w.code for w in submission.warnings} == {"degraded_resolution", "zero_recipients"}
        assert len(repository.emergency_alerts) == 1
        assert repository.emergency_alerts[submission.emergency_alert_id].degraded

    async def test_failed_email_is_reported_not_raised(
        self,
        directory: InMemoryCareDirectory,
        repository: InMemoryAlertRepository,
        notification_store: InMemoryNotificationStore,
        hub: RealtimeHub,
    ) -> None:
        email = OutboxEmailChannel(rejected_addresses={"tom@example.com"})
        engine = AlertingEngine(
            directory, repository, notification_store, hub, email, config=AppConfig()
        )

        submission = await engine.submit_emergency_signal({"elderId": "elder-1"})

        assert submission.recipient_count == 3
        assert submission.notifications_sent == 3
        assert submission.emails_sent == 2
        assert submission.delivery is not None
        assert len(submission.delivery.failures) == 1

    async def test_broadcast_failure_does_not_block_dispatch(
        self,
        directory: InMemoryCareDirectory,
        repository: InMemoryAlertRepository,
        notification_store: InMemoryNotificationStore,
        outbox: OutboxEmailChannel,
    ) -> None:
        engine = AlertingEngine(
            directory, repository, notification_store, FailingRealtime(), outbox,
            config=AppConfig(),
        )

        submission = await engine.submit_emergency_signal({"elderId": "elder-1"})

        assert not submission.broadcast_sent
        assert submission.notifications_sent == 3
        assert submission.emails_sent == 3
        assert submission.delivery is not None
        assert submission.delivery.realtime_sent == 0


class TestLifecycle:
    async def test_alert_lifecycle_through_engine(self, engine: AlertingEngine) -> None:
        submission = await engine.submit_measurement(Measurement(elder_id="elder-1", heart_rate=130))
        [alert] = submission.alerts_created

        assert (await engine.mark_emergency_contacted(alert.id)).emergency_contacted
        assert (await engine.mark_next_of_kin_notified(alert.id)).status is AlertStatus.ACKNOWLEDGED
        assert (await engine.acknowledge_alert(alert.id, "nurse-1")).acknowledged_by == "nurse-1"
        assert [a.id for a in await engine.list_active_alerts("elder-1")] == [alert.id]

        resolved = await engine.resolve_alert(alert.id, "nurse-1", "stable")
        assert resolved.status is AlertStatus.RESOLVED
        assert await engine.list_active_alerts("elder-1") == []

    async def test_emergency_lifecycle_through_engine(self, engine: AlertingEngine) -> None:
        submission = await engine.submit_emergency_signal({"elderId": "elder-1"})
        alert_id = submission.emergency_alert_id

        acked = await engine.acknowledge_emergency(alert_id, "coord-1")
        assert acked.status is EmergencyStatus.ACKNOWLEDGED
        await engine.update_emergency_status(alert_id, EmergencyStatus.DISPATCHED)
        await engine.update_emergency_status(alert_id, EmergencyStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            await engine.update_emergency_status(alert_id, EmergencyStatus.CANCELLED)

    async def test_unknown_ids(self, engine: AlertingEngine) -> None:
        with pytest.raises(NotFoundError):
            await engine.resolve_alert("missing", "nurse-1")
        with pytest.raises(NotFoundError):
            await engine.acknowledge_emergency("missing", "coord-1")

    async def test_staff_and_filtered_listings(self, engine: AlertingEngine) -> None:
        submission = await engine.submit_measurement(
            Measurement(elder_id="elder-1", heart_rate=130, oxygen_saturation=85)
        )
        assert len(submission.alerts_created) == 2

        staff_alerts = await engine.list_staff_alerts("nurse-1")
        assert {a.id for a in staff_alerts} == {a.id for a in submission.alerts_created}
        assert await engine.list_staff_alerts("nurse-3") == []

        page = await engine.list_alerts(severity=Severity.CRITICAL, elder_id="elder-1", limit=1)
        assert page.total_records == 2
        assert page.total_pages == 2
        assert len(page.items) == 1


class TestEmergencyStatusPushes:
    @pytest.fixture
    async def emergency_id(self, engine: AlertingEngine) -> str:
        submission = await engine.submit_emergency_signal({"elderId": "elder-1"})
        return submission.emergency_alert_id

    async def test_acknowledge_notifies_coordinator_and_family(
        self, engine: AlertingEngine, hub: RealtimeHub, emergency_id: str
    ) -> None:
        await engine.acknowledge_emergency(emergency_id, "coord-1")

        [coordinator_push] = [
            m for m in hub.messages_for("coordinator") if m.event == "dispatch_status_update"
        ]
        [family_push] = hub.messages_for("family_elder-1")
        assert family_push.event == "dispatch_status_update"
        assert coordinator_push.payload["status"] == "acknowledged"
        assert coordinator_push.payload["acknowledged_by"] == "coord-1"
        assert family_push.payload["id"] == emergency_id

    async def test_arrival_and_completion_events(
        self, engine: AlertingEngine, hub: RealtimeHub, emergency_id: str
    ) -> None:
        for status in (
            EmergencyStatus.DISPATCHED,
            EmergencyStatus.EN_ROUTE,
            EmergencyStatus.ARRIVED,
            EmergencyStatus.COMPLETED,
        ):
            await engine.update_emergency_status(emergency_id, status)

        assert [m.event for m in hub.messages_for("family_elder-1")] == [
            "dispatch_status_update",
            "dispatch_status_update",
            "ambulance_arrived",
            "emergency_completed",
        ]
        assert [m.payload["status"] for m in hub.messages_for("family_elder-1")] == [
            "dispatched",
            "en_route",
            "arrived",
            "completed",
        ]
        coordinator_events = [m.event for m in hub.messages_for("coordinator")]
        assert coordinator_events[0] == "emergency_alert"
        assert coordinator_events[-2:] == ["ambulance_arrived", "emergency_completed"]

    async def test_rejected_transition_pushes_nothing(
        self, engine: AlertingEngine, hub: RealtimeHub, emergency_id: str
    ) -> None:
        await engine.update_emergency_status(emergency_id, EmergencyStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            await engine.update_emergency_status(emergency_id, EmergencyStatus.ARRIVED)

        assert [m.payload["status"] for m in hub.messages_for("family_elder-1")] == ["cancelled"]

    async def test_push_failure_does_not_fail_the_transition(
        self,
        directory: InMemoryCareDirectory,
        repository: InMemoryAlertRepository,
        notification_store: InMemoryNotificationStore,
        outbox: OutboxEmailChannel,
    ) -> None:
        engine = AlertingEngine(
            directory=directory,
            repository=repository,
            notifications=notification_store,
            realtime=FailingRealtime(),
            email=outbox,
            config=AppConfig(),
        )
        submission = await engine.submit_emergency_signal({"elderId": "elder-1"})

        acked = await engine.acknowledge_emergency(submission.emergency_alert_id, "coord-1")
        arrived = await engine.update_emergency_status(
            submission.emergency_alert_id, EmergencyStatus.ARRIVED
        )

        assert acked.status is EmergencyStatus.ACKNOWLEDGED
        assert arrived.status is EmergencyStatus.ARRIVED
        stored = await engine.store.get_emergency_alert(submission.emergency_alert_id)
        assert stored.status is EmergencyStatus.ARRIVED

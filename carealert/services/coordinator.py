"""
Best-effort real-time pushes for emergencies.

New emergencies go to the operations (coordinator) room. Status changes go
to the coordinator room and to the elder's family room:

    arrived     -> ambulance_arrived
    completed   -> emergency_completed
    any other   -> dispatch_status_update
"""

from datetime import UTC, datetime
from typing import Any

import structlog

from carealert.config import CoordinatorConfig
from carealert.domain.care import Elder
from carealert.domain.models import EmergencyAlert, EmergencyStatus
from carealert.domain.ports import RealtimeChannel

logger = structlog.get_logger(__name__)


class CoordinatorBroadcaster:
    """
    Pushes emergencies to the ambulance/coordinator dashboard.

    Failures are logged and reported as False, never raised.
    """

    def __init__(self, realtime: RealtimeChannel, config: CoordinatorConfig | None = None) -> None:
        self.realtime = realtime
        self.config = config or CoordinatorConfig()
        self.logger = logger.bind(component="coordinator_broadcast", channel=self.config.channel)

    async def broadcast(self, alert: EmergencyAlert, elder: Elder) -> bool:
        payload = {
            "id": alert.id,
            "elder_id": alert.elder_id,
            "elder_name": elder.full_name,
            "elder_phone": elder.phone,
            "alert_type": alert.alert_type,
            "priority": alert.priority.value,
            "location": alert.location.model_dump(),
            "vitals": alert.vitals,
            "degraded": alert.degraded,
            "timestamp": alert.timestamp.isoformat(),
        }
        try:
            await self.realtime.push(self.config.channel, self.config.event, payload)
        except Exception as e:
            self.logger.error(
                "coordinator_broadcast_failed", emergency_alert_id=alert.id, error=str(e)
            )
            return False

        self.logger.info("coordinator_broadcast_sent", emergency_alert_id=alert.id)
        return True

    def status_event_for(self, status: EmergencyStatus) -> str:
        if status is EmergencyStatus.ARRIVED:
            return self.config.arrival_event
        if status is EmergencyStatus.COMPLETED:
            return self.config.completion_event
        return self.config.status_event

    async def announce_status(self, alert: EmergencyAlert) -> bool:
        """Tell coordinators and the elder's family about a status change."""
        event_name = self.status_event_for(alert.status)
        payload: dict[str, Any] = {
            "id": alert.id,
            "elder_id": alert.elder_id,
            "status": alert.status.value,
            "acknowledged_by": alert.acknowledged_by,
            "priority": alert.priority.value,
            "timestamp": datetime.now(UTC).isoformat(),
        }

        family_room = f"{self.config.family_channel_prefix}{alert.elder_id}"
        delivered = True
        for channel_key in (self.config.channel, family_room):
            try:
                await self.realtime.push(channel_key, event_name, payload)
            except Exception as e:
                delivered = False
                self.logger.warning(
                    "emergency_status_push_failed",
                    emergency_alert_id=alert.id,
                    channel_key=channel_key,
                    event_name=event_name,
                    error=str(e),
                )

        self.logger.info(
            "emergency_status_announced",
            emergency_alert_id=alert.id,
            status=alert.status.value,
            event_name=event_name,
            delivered=delivered,
        )
        return delivered

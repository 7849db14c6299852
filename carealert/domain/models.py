"""
Domain models for vital-sign alerting and emergency intake.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; persistence adapters map them to storage.
"""

import math
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class Severity(str, Enum):
    """Alert severity levels, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def plays_sound(self) -> bool:
        """Whether real-time clients should sound an audible alarm."""
        return self >= Severity.HIGH


def max_severity(severities: Iterable[Severity]) -> Severity | None:
    """Highest severity in the iterable, or None when it is empty."""
    return max(severities, default=None)


class AlertLevel(str, Enum):
    """Roll-up level stored on a measurement record."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def from_severity(cls, severity: Severity | None) -> "AlertLevel":
        if severity is Severity.CRITICAL:
            return cls.CRITICAL
        if severity in (Severity.HIGH, Severity.MEDIUM):
            return cls.WARNING
        return cls.NORMAL


class AlertType(str, Enum):
    """Kinds of abnormal findings."""

    HIGH_BLOOD_PRESSURE = "high_blood_pressure"
    LOW_BLOOD_PRESSURE = "low_blood_pressure"
    HIGH_HEART_RATE = "high_heart_rate"
    LOW_HEART_RATE = "low_heart_rate"
    HIGH_TEMPERATURE = "high_temperature"
    LOW_TEMPERATURE = "low_temperature"
    LOW_OXYGEN = "low_oxygen"
    VITAL_ABNORMAL = "vital_abnormal"
    SOS = "sos"
    EMERGENCY = "emergency"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class Measurement(BaseModel):
    """One vital-sign reading for one elder at one timestamp."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    elder_id: str | None = Field(description="Elder record the reading belongs to")
    timestamp: datetime = Field(default_factory=_now)

    heart_rate: float | None = None  # bpm
    systolic: int | None = None  # mmHg
    diastolic: int | None = None  # mmHg
    temperature: float | None = None  # degrees Fahrenheit
    oxygen_saturation: float | None = None  # percent

    # Recorded alongside vitals, never evaluated
    weight: float | None = None
    sleep_hours: float | None = None
    notes: str | None = None
    recorded_by: str | None = None


class MeasurementRecord(BaseModel):
    """A stored measurement together with its derived alert level."""

    measurement: Measurement
    alert_level: AlertLevel | None = None


class AlertCandidate(BaseModel):
    """An abnormal finding produced by the threshold evaluator, not yet stored."""

    model_config = ConfigDict(frozen=True)

    alert_type: AlertType
    severity: Severity
    message: str
    trigger_value: str
    normal_range: str


class Alert(BaseModel):
    """A persisted abnormal-value finding derived from one measurement."""

    id: str = Field(default_factory=_new_id)
    elder_id: str
    measurement_id: str | None = None
    alert_type: AlertType
    severity: Severity
    message: str
    trigger_value: str | None = None
    normal_range: str | None = None
    status: AlertStatus = AlertStatus.ACTIVE

    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None

    emergency_contacted: bool = False
    next_of_kin_notified: bool = False
    created_at: datetime = Field(default_factory=_now)

    @classmethod
    def from_candidate(
        cls, candidate: AlertCandidate, elder_id: str, measurement_id: str | None
    ) -> "Alert":
        return cls(
            elder_id=elder_id,
            measurement_id=measurement_id,
            alert_type=candidate.alert_type,
            severity=candidate.severity,
            message=candidate.message,
            trigger_value=candidate.trigger_value,
            normal_range=candidate.normal_range,
        )


class AlertPage(BaseModel):
    """One page of a filtered alert listing, newest first."""

    items: list[Alert] = Field(default_factory=list)
    page: int = 1
    limit: int = 20
    total_records: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_records / self.limit)


class EmergencyStatus(str, Enum):
    """Dispatch lifecycle of an emergency, in forward order."""

    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (EmergencyStatus.COMPLETED, EmergencyStatus.CANCELLED)

    def can_move_to(self, target: "EmergencyStatus") -> bool:
        if self.is_terminal:
            return False
        if target is EmergencyStatus.CANCELLED:
            return True
        order = list(EmergencyStatus)
        return order.index(target) > order.index(self)


class Location(BaseModel):
    latitude: float | None = None
    longitude: float | None = None
    address: str = "Location unavailable"

    def describe(self) -> str:
        if self.address != "Location unavailable":
            return self.address
        if self.latitude is not None and self.longitude is not None:
            return f"Lat: {self.latitude}, Long: {self.longitude}"
        return self.address


class MedicalInfo(BaseModel):
    conditions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    blood_type: str | None = None


class EmergencySignal(BaseModel):
    """Normalized form of a loosely structured emergency payload."""

    model_config = ConfigDict(frozen=True)

    provided_id: str | None = None
    elder_name: str | None = None
    elder_phone: str | None = None
    location: Any = None
    timestamp: str
    alert_type: str = "SOS"
    vitals: dict[str, Any] | None = None
    additional_info: dict[str, Any] = Field(default_factory=dict)


class EmergencyAlert(BaseModel):
    """Canonical, persisted form of a resolved emergency signal."""

    id: str = Field(default_factory=_new_id)
    elder_id: str
    user_id: str | None = None
    alert_type: str
    priority: Severity = Severity.HIGH
    status: EmergencyStatus = EmergencyStatus.PENDING
    location: Location = Field(default_factory=Location)
    medical_info: MedicalInfo = Field(default_factory=MedicalInfo)
    vitals: dict[str, Any] | None = None
    degraded: bool = False
    timestamp: datetime = Field(default_factory=_now)

    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    notes: dict[str, Any] = Field(default_factory=dict)


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def for_severity(cls, severity: Severity) -> "NotificationPriority":
        if severity is Severity.CRITICAL:
            return cls.URGENT
        if severity is Severity.HIGH:
            return cls.HIGH
        return cls.MEDIUM


NotificationKind = Literal["health_alert", "emergency"]


class Notification(BaseModel):
    """A persisted in-app notification record."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    elder_id: str | None = None
    type: NotificationKind
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = Field(default_factory=_now)

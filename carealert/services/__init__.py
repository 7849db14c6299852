"""
Services for the alerting engine.

This package contains threshold evaluation, alert lifecycle, recipient
resolution, notification dispatch and emergency intake, plus the engine
that wires them together.
"""

from .alert_store import AlertStore
from .dispatcher import DeliveryReport, NotificationDispatcher, NotificationEvent
from .emergency_intake import EmergencyIntakeResolver, classify_priority
from .engine import AlertingEngine, EmergencySubmission, MeasurementSubmission
from .recipients import RecipientResolver
from .result import Result
from .thresholds import ThresholdEvaluator

__all__ = [
    "AlertingEngine",
    "AlertStore",
    "DeliveryReport",
    "EmergencyIntakeResolver",
    "EmergencySubmission",
    "MeasurementSubmission",
    "NotificationDispatcher",
    "NotificationEvent",
    "RecipientResolver",
    "Result",
    "ThresholdEvaluator",
    "classify_priority",
]

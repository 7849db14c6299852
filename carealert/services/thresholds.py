"""
Threshold evaluator: one measurement in, zero or more alert candidates out.

Pure and deterministic. Each vital sign is checked on its own and yields at
most one candidate, the most severe band it falls in. A missing reading is
skipped, never treated as zero.
"""

from carealert.domain.models import AlertCandidate, AlertType, Measurement, Severity
from carealert.domain.thresholds import VitalThresholds


def _fmt(value: float) -> str:
    return f"{value:g}"


def _qualifier(severity: Severity) -> str:
    return "critically " if severity is Severity.CRITICAL else ""


class ThresholdEvaluator:
    """Classifies vital signs against a VitalThresholds table."""

    def __init__(self, thresholds: VitalThresholds | None = None) -> None:
        self.thresholds = thresholds or VitalThresholds()

    def evaluate(self, measurement: Measurement) -> list[AlertCandidate]:
        checks = (
            self._check_blood_pressure,
            self._check_heart_rate,
            self._check_temperature,
            self._check_oxygen,
        )
        return [c for c in (check(measurement) for check in checks) if c is not None]

    def _check_blood_pressure(self, m: Measurement) -> AlertCandidate | None:
        # Needs both numbers; a lone systolic or diastolic is not evaluated
        if m.systolic is None or m.diastolic is None:
            return None
        t = self.thresholds

        if m.systolic >= t.systolic_critical or m.diastolic >= t.diastolic_critical:
            severity, alert_type = Severity.CRITICAL, AlertType.HIGH_BLOOD_PRESSURE
        elif m.systolic >= t.systolic_high or m.diastolic >= t.diastolic_high:
            severity, alert_type = Severity.HIGH, AlertType.HIGH_BLOOD_PRESSURE
        elif m.systolic <= t.systolic_low or m.diastolic <= t.diastolic_low:
            severity, alert_type = Severity.MEDIUM, AlertType.LOW_BLOOD_PRESSURE
        else:
            return None

        reading = f"{m.systolic}/{m.diastolic}"
        direction = "high" if alert_type is AlertType.HIGH_BLOOD_PRESSURE else "low"
        return AlertCandidate(
            alert_type=alert_type,
            severity=severity,
            message=f"Blood pressure reading {_qualifier(severity)}{direction} ({reading} mmHg)",
            trigger_value=reading,
            normal_range=t.blood_pressure_range,
        )

    def _check_heart_rate(self, m: Measurement) -> AlertCandidate | None:
        if m.heart_rate is None:
            return None
        t = self.thresholds
        hr = m.heart_rate

        if hr >= t.heart_rate_critical:
            severity, alert_type = Severity.CRITICAL, AlertType.HIGH_HEART_RATE
        elif hr >= t.heart_rate_high:
            severity, alert_type = Severity.HIGH, AlertType.HIGH_HEART_RATE
        elif hr <= t.heart_rate_critical_low:
            severity, alert_type = Severity.CRITICAL, AlertType.LOW_HEART_RATE
        elif hr <= t.heart_rate_low:
            severity, alert_type = Severity.MEDIUM, AlertType.LOW_HEART_RATE
        else:
            return None

        direction = "elevated" if alert_type is AlertType.HIGH_HEART_RATE else "low"
        return AlertCandidate(
            alert_type=alert_type,
            severity=severity,
            message=f"Heart rate {_qualifier(severity)}{direction} ({_fmt(hr)} bpm)",
            trigger_value=_fmt(hr),
            normal_range=t.heart_rate_range,
        )

    def _check_temperature(self, m: Measurement) -> AlertCandidate | None:
        if m.temperature is None:
            return None
        t = self.thresholds
        temp = m.temperature

        if temp >= t.temperature_critical:
            severity, alert_type = Severity.CRITICAL, AlertType.HIGH_TEMPERATURE
        elif temp >= t.temperature_high:
            severity, alert_type = Severity.HIGH, AlertType.HIGH_TEMPERATURE
        elif temp <= t.temperature_critical_low:
            severity, alert_type = Severity.CRITICAL, AlertType.LOW_TEMPERATURE
        elif temp <= t.temperature_low:
            severity, alert_type = Severity.MEDIUM, AlertType.LOW_TEMPERATURE
        else:
            return None

        direction = "elevated" if alert_type is AlertType.HIGH_TEMPERATURE else "low"
        return AlertCandidate(
            alert_type=alert_type,
            severity=severity,
            message=f"Temperature {_qualifier(severity)}{direction} ({_fmt(temp)}°F)",
            trigger_value=_fmt(temp),
            normal_range=t.temperature_range,
        )

    def _check_oxygen(self, m: Measurement) -> AlertCandidate | None:
        if m.oxygen_saturation is None:
            return None
        t = self.thresholds
        spo2 = m.oxygen_saturation

        if spo2 <= t.oxygen_critical:
            severity = Severity.CRITICAL
        elif spo2 <= t.oxygen_low:
            severity = Severity.HIGH
        else:
            return None

        return AlertCandidate(
            alert_type=AlertType.LOW_OXYGEN,
            severity=severity,
            message=f"Oxygen saturation {_qualifier(severity)}low ({_fmt(spo2)}%)",
            trigger_value=_fmt(spo2),
            normal_range=t.oxygen_range,
        )

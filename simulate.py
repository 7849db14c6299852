"""
End-to-end scenario run over the in-memory adapters.

Scenarios:
1. Configuration loading and validation
2. Normal reading (no alerts)
3. Reading with several abnormal vitals
4. Emergency for an unknown identity (degraded, zero recipients)
5. Emergency where one recipient's email provider rejects the message

Run with: uv run python simulate.py
"""

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory.directory import InMemoryCareDirectory
from adapters.memory.email import OutboxEmailChannel
from adapters.memory.realtime import RealtimeHub
from adapters.memory.repository import InMemoryAlertRepository, InMemoryNotificationStore
from carealert.config import get_config, print_config_summary, validate_config
from carealert.domain.care import Elder, MedicalHistory, User, UserRole
from carealert.domain.models import Measurement
from carealert.observability import configure_logging
from carealert.services.engine import AlertingEngine, EmergencySubmission

console = Console()

ELDER_ID = "elder-1"


def build_engine(rejected_addresses: set[str] | None = None) -> tuple[AlertingEngine, RealtimeHub]:
    """Seed a directory with one elder, two nurses and a family subscriber."""

    directory = InMemoryCareDirectory()
    directory.add_user(
        User(id="user-elder-1", first_name="Margaret", last_name="Hale", role=UserRole.ELDER)
    )
    directory.add_user(
        User(
            id="nurse-1",
            first_name="Ana",
            last_name="Ruiz",
            email="ana.ruiz@example.com",
            role=UserRole.NURSE,
        )
    )
    directory.add_user(
        User(
            id="nurse-2",
            first_name="Tom",
            last_name="Becker",
            email="tom.becker@example.com",
            role=UserRole.CAREGIVER,
        )
    )
    directory.add_user(
        User(
            id="family-1",
            first_name="Claire",
            last_name="Hale",
            email="claire.hale@example.com",
            role=UserRole.FAMILY_MEMBER,
        )
    )
    directory.add_elder(
        Elder(
            id=ELDER_ID,
            user_id="user-elder-1",
            first_name="Margaret",
            last_name="Hale",
            phone="+1-555-0100",
            blood_type="O+",
            medical_history=MedicalHistory(conditions=["hypertension"], medications=["lisinopril"]),
            subscription_id="sub-1",
        )
    )
    directory.assign_staff("nurse-1", ELDER_ID)
    directory.assign_staff("nurse-2", ELDER_ID)
    directory.add_subscription("sub-1", "family-1")

    hub = RealtimeHub()
    engine = AlertingEngine(
        directory=directory,
        repository=InMemoryAlertRepository(),
        notifications=InMemoryNotificationStore(),
        realtime=hub,
        email=OutboxEmailChannel(rejected_addresses),
        config=get_config(),
    )
    return engine, hub


def print_emergency(submission: EmergencySubmission) -> None:
    table = Table(title="Emergency Summary")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Emergency Alert", submission.emergency_alert_id)
    table.add_row("Elder", submission.elder_id)
    table.add_row("Priority", submission.priority.value.upper())
    table.add_row("Degraded", str(submission.degraded))
    table.add_row("Recipients", str(submission.recipient_count))
    table.add_row("In-app Sent", str(submission.notifications_sent))
    table.add_row("Emails Sent", str(submission.emails_sent))
    table.add_row("Coordinators Notified", str(submission.broadcast_sent))
    console.print(table)

    for warning in submission.warnings:
        console.print(f"⚠️  {warning.code}: {warning.message}", style="yellow")
        for hint in warning.remediation:
            console.print(f"   → {hint}", style="yellow")
    if submission.delivery:
        for failure in submission.delivery.failures:
            console.print(f"❌ {failure}", style="red")


async def scenario_configuration() -> bool:
    console.print(Panel("🔧 Configuration", style="blue"))
    try:
        validate_config()
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"❌ Configuration failed: {e}", style="red")
        return False


async def scenario_normal_reading() -> bool:
    console.print(Panel("💚 Normal Reading", style="blue"))
    engine, _ = build_engine()
    submission = await engine.submit_measurement(
        Measurement(
            elder_id=ELDER_ID,
            heart_rate=72,
            systolic=118,
            diastolic=76,
            temperature=98.4,
            oxygen_saturation=98,
        )
    )
    console.print(
        f"Alert level: {submission.measurement_alert_level.value}, "
        f"alerts: {len(submission.alerts_created)}"
    )
    return not submission.alerts_created and submission.measurement_alert_level.value == "normal"


async def scenario_abnormal_reading() -> bool:
    console.print(Panel("🩺 Multiple Abnormal Vitals", style="blue"))
    engine, hub = build_engine()
    submission = await engine.submit_measurement(
        Measurement(
            elder_id=ELDER_ID,
            heart_rate=128,
            systolic=185,
            diastolic=95,
            temperature=101.2,
            oxygen_saturation=93,
        )
    )

    table = Table(title="Alerts Created")
    table.add_column("Type", style="cyan")
    table.add_column("Severity", style="magenta")
    table.add_column("Value", style="green")
    table.add_column("Normal Range", style="yellow")
    table.add_column("Message", style="white")
    for alert in submission.alerts_created:
        table.add_row(
            alert.alert_type.value,
            alert.severity.value,
            alert.trigger_value or "",
            alert.normal_range or "",
            alert.message,
        )
    console.print(table)
    console.print(f"Measurement alert level: {submission.measurement_alert_level.value.upper()}")

    pushes = hub.messages_for("user_nurse-1")
    console.print(f"Real-time pushes to nurse-1: {len(pushes)}")
    return submission.measurement_alert_level.value == "critical" and len(pushes) == len(
        submission.alerts_created
    )


async def scenario_unknown_emergency() -> bool:
    console.print(Panel("🚨 Emergency From Unknown Device", style="blue"))
    engine, hub = build_engine()
    coordinator = hub.subscribe("coordinator")

    submission = await engine.submit_emergency_signal(
        {
            "body": '{"elderId": "device-77", "elderName": "Walter Price", '
            '"elderPhone": "+1-555-0177", "alertType": "fall"}'
        }
    )
    print_emergency(submission)

    message = coordinator.get_nowait()
    console.print(f"Coordinator room received: {message.event}", style="green")
    return submission.degraded and submission.recipient_count == 0


async def scenario_partial_email_failure() -> bool:
    console.print(Panel("📧 Emergency With Failing Email Provider", style="blue"))
    engine, _ = build_engine(rejected_addresses={"tom.becker@example.com"})

    submission = await engine.submit_emergency_signal(
        {
            "elderInfo": {"id": "user-elder-1", "name": "Margaret Hale"},
            "location": {
                "latitude": 40.71,
                "longitude": -74.0,
                "address": {"city": "New York", "country": "US"},
            },
            "emergency": {"type": "heart_attack"},
            "vitals": {"heartRate": 134, "oxygenLevel": 88},
        }
    )
    print_emergency(submission)
    return submission.recipient_count == 3 and submission.emails_sent == 2


async def run_all_scenarios() -> None:
    configure_logging(get_config().logging)
    console.print(Panel("🧪 CareAlert - Scenario Run", style="bold blue"))

    scenarios = [
        ("Configuration", scenario_configuration),
        ("Normal Reading", scenario_normal_reading),
        ("Abnormal Reading", scenario_abnormal_reading),
        ("Unknown Emergency", scenario_unknown_emergency),
        ("Partial Email Failure", scenario_partial_email_failure),
    ]

    results = []
    for name, scenario in scenarios:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, await scenario()))
        except Exception as e:
            console.print(f"❌ {name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="📋 Scenario Results")
    summary_table.add_column("Scenario", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for name, ok in results:
        summary_table.add_row(name, "✅ PASSED" if ok else "❌ FAILED")
        passed += ok

    console.print(summary_table)
    console.print(f"\n🎯 Results: {passed}/{len(results)} scenarios passed")


if __name__ == "__main__":
    try:
        asyncio.run(run_all_scenarios())
    except KeyboardInterrupt:
        console.print("\n👋 Stopped by user", style="yellow")

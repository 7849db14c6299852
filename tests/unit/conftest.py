"""Shared fixtures: a seeded care directory and the in-memory collaborators."""

from collections.abc import Iterator

import pytest

from adapters.memory.directory import InMemoryCareDirectory
from adapters.memory.email import OutboxEmailChannel
from adapters.memory.realtime import RealtimeHub
from adapters.memory.repository import InMemoryAlertRepository, InMemoryNotificationStore
from carealert.config import AppConfig, get_config
from carealert.domain.care import Elder, MedicalHistory, User, UserRole
from carealert.services.engine import AlertingEngine

ELDER_ID = "elder-1"
ELDER_USER_ID = "user-elder-1"


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def directory() -> InMemoryCareDirectory:
    """One elder with two active nurses, one inactive assignment and a family subscriber."""
    d = InMemoryCareDirectory()
    d.add_user(User(id=ELDER_USER_ID, first_name="Margaret", last_name="Hale", role=UserRole.ELDER))
    d.add_user(
        User(id="nurse-1", first_name="Ana", last_name="Ruiz", email="ana@example.com",
             role=UserRole.NURSE)
    )
    d.add_user(
        User(id="nurse-2", first_name="Tom", last_name="Becker", email="tom@example.com",
             role=UserRole.CAREGIVER)
    )
    d.add_user(
        User(id="nurse-3", first_name="Off", last_name="Duty", email="off@example.com",
             role=UserRole.NURSE)
    )
    d.add_user(
        User(id="family-1", first_name="Claire", last_name="Hale", email="claire@example.com",
             role=UserRole.FAMILY_MEMBER)
    )
    d.add_elder(
        Elder(
            id=ELDER_ID,
            user_id=ELDER_USER_ID,
            first_name="Margaret",
            last_name="Hale",
            phone="+1-555-0100",
            blood_type="A-",
            medical_history=MedicalHistory(conditions=["diabetes"], allergies=["penicillin"]),
            subscription_id="sub-1",
        )
    )
    d.assign_staff("nurse-1", ELDER_ID)
    d.assign_staff("nurse-2", ELDER_ID)
    d.assign_staff("nurse-3", ELDER_ID, is_active=False)
    d.add_subscription("sub-1", "family-1")
    return d


@pytest.fixture
def repository() -> InMemoryAlertRepository:
    return InMemoryAlertRepository()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def hub() -> RealtimeHub:
    return RealtimeHub()


@pytest.fixture
def outbox() -> OutboxEmailChannel:
    return OutboxEmailChannel()


@pytest.fixture
def engine(
    directory: InMemoryCareDirectory,
    repository: InMemoryAlertRepository,
    notification_store: InMemoryNotificationStore,
    hub: RealtimeHub,
    outbox: OutboxEmailChannel,
) -> AlertingEngine:
    return AlertingEngine(
        directory=directory,
        repository=repository,
        notifications=notification_store,
        realtime=hub,
        email=outbox,
        config=AppConfig(),
    )

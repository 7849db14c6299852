"""
Emergency intake: turn a loosely structured SOS payload into a canonical identity.

Producers (the mobile app, a message queue relay, wearables) disagree on
field names and sometimes wrap the payload one level deep, and may send
either an elder record id or the elder's user account id. Both the field
extraction and the identity lookup are ordered lists of strategies, tried
in sequence until one yields a value, so the fallback order stays explicit
and each step can be tested on its own.

An emergency is never dropped: if no strategy matches, a placeholder
identity is built from whatever the payload carried and the result is
marked degraded.
"""

import json
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from pydantic import BaseModel

from carealert.domain.care import Elder, User, UserRole
from carealert.domain.models import EmergencySignal, Location, MedicalInfo, Severity
from carealert.domain.ports import CareDirectory

logger = structlog.get_logger(__name__)

WRAPPER_KEY = "body"

# Key paths per field, most specific first
FIELD_PATHS: dict[str, tuple[tuple[str, ...], ...]] = {
    "provided_id": (("elderId",), ("elderInfo", "id"), ("id",)),
    "elder_name": (("elderName",), ("elderInfo", "name")),
    "elder_phone": (("elderPhone",), ("elderInfo", "phone")),
    "location": (("location",), ("emergency", "location")),
    "timestamp": (("timestamp",), ("emergency", "timestamp")),
    "alert_type": (("alertType",), ("emergency", "type")),
    "vitals": (("vitals",),),
    "additional_info": (("additionalInfo",),),
}

CRITICAL_ALERT_TYPES = frozenset({"heart_attack", "stroke"})
HEART_RATE_KEYS = ("heartRate", "heart_rate")
OXYGEN_KEYS = ("oxygenLevel", "oxygenSaturation", "oxygen_saturation", "spo2")


def unwrap_payload(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Unwrap one level of `body` nesting, which may be a JSON string or an object."""
    wrapped = raw.get(WRAPPER_KEY)
    if isinstance(wrapped, Mapping):
        return dict(wrapped)
    if isinstance(wrapped, str):
        try:
            decoded = json.loads(wrapped)
        except json.JSONDecodeError:
            logger.warning("emergency_body_not_json", length=len(wrapped))
            return dict(raw)
        if isinstance(decoded, dict):
            return decoded
    return dict(raw)


def _dig(payload: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def extract_field(payload: Mapping[str, Any], field: str) -> Any:
    """First non-empty value among the known key paths for `field`."""
    for path in FIELD_PATHS[field]:
        value = _dig(payload, path)
        if value not in (None, ""):
            return value
    return None


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _coordinate(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_alert_type(alert_type: str | None) -> str:
    if not alert_type:
        return "sos"
    return str(alert_type).strip().lower().replace("-", "_").replace(" ", "_")


def _number(vitals: Mapping[str, Any], keys: tuple[str, ...]) -> float | None:
    for key in keys:
        value = vitals.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def classify_priority(alert_type: str | None, vitals: Mapping[str, Any] | None) -> Severity:
    """
    Coarse triage for an emergency.

    `high` by default; `critical` for cardiac or stroke events, or when the
    attached vitals show heart rate above 120 or below 50, or oxygen below 90.
    """
    if normalize_alert_type(alert_type) in CRITICAL_ALERT_TYPES:
        return Severity.CRITICAL
    if vitals:
        heart_rate = _number(vitals, HEART_RATE_KEYS)
        oxygen = _number(vitals, OXYGEN_KEYS)
        if heart_rate is not None and (heart_rate > 120 or heart_rate < 50):
            return Severity.CRITICAL
        if oxygen is not None and oxygen < 90:
            return Severity.CRITICAL
    return Severity.HIGH


def parse_location(raw: Any) -> Location:
    if isinstance(raw, str) and raw.strip():
        return Location(address=raw.strip())
    if not isinstance(raw, Mapping):
        return Location()

    location = Location(
        latitude=_coordinate(raw.get("latitude")), longitude=_coordinate(raw.get("longitude"))
    )
    address = raw.get("address")
    if isinstance(address, str) and address.strip():
        location.address = address.strip()
    elif isinstance(address, Mapping):
        formatted = address.get("formattedAddress")
        parts = [address.get(k) for k in ("city", "region", "country")]
        text = formatted or ", ".join(p for p in parts if p)
        if text:
            location.address = text
    return location


class ResolvedIdentity(BaseModel):
    """The elder an emergency belongs to, and how we found them."""

    elder: Elder
    user_id: str | None = None
    is_degraded: bool = False
    strategy: str

    @property
    def medical_info(self) -> MedicalInfo:
        history = self.elder.medical_history
        return MedicalInfo(
            conditions=list(history.conditions),
            allergies=list(history.allergies),
            medications=list(history.medications),
            blood_type=self.elder.blood_type,
        )


IdentityStrategy = Callable[[CareDirectory, str], Awaitable[Elder | None]]


async def by_elder_id(directory: CareDirectory, identifier: str) -> Elder | None:
    return await directory.find_elder(identifier)


async def by_linked_user_id(directory: CareDirectory, identifier: str) -> Elder | None:
    return await directory.find_elder_by_user_id(identifier)


async def by_elder_account(directory: CareDirectory, identifier: str) -> Elder | None:
    user = await directory.find_user(identifier)
    if user is None or user.role is not UserRole.ELDER:
        return None
    return await directory.find_elder_by_user_id(user.id)


IDENTITY_STRATEGIES: tuple[tuple[str, IdentityStrategy], ...] = (
    ("elder_id", by_elder_id),
    ("linked_user_id", by_linked_user_id),
    ("elder_account", by_elder_account),
)


class EmergencyIntakeResolver:
    """Normalizes raw emergency payloads and resolves them to an elder."""

    def __init__(
        self,
        directory: CareDirectory,
        strategies: tuple[tuple[str, IdentityStrategy], ...] = IDENTITY_STRATEGIES,
    ) -> None:
        self.directory = directory
        self.strategies = strategies
        self.logger = logger.bind(component="emergency_intake")

    def normalize(self, raw: Mapping[str, Any]) -> EmergencySignal:
        payload = unwrap_payload(raw)
        provided_id = extract_field(payload, "provided_id")
        vitals = extract_field(payload, "vitals")
        additional_info = extract_field(payload, "additional_info")

        signal = EmergencySignal(
            provided_id=str(provided_id) if provided_id is not None else None,
            elder_name=_text(extract_field(payload, "elder_name")),
            elder_phone=_text(extract_field(payload, "elder_phone")),
            location=extract_field(payload, "location"),
            timestamp=str(extract_field(payload, "timestamp") or datetime.now(UTC).isoformat()),
            alert_type=str(extract_field(payload, "alert_type") or "SOS"),
            vitals=vitals if isinstance(vitals, dict) else None,
            additional_info=additional_info if isinstance(additional_info, dict) else {},
        )
        self.logger.info(
            "emergency_signal_normalized",
            provided_id=signal.provided_id,
            alert_type=signal.alert_type,
            has_vitals=signal.vitals is not None,
            wrapped=WRAPPER_KEY in raw,
        )
        return signal

    async def resolve(self, signal: EmergencySignal) -> ResolvedIdentity:
        identifier = signal.provided_id
        if identifier:
            for name, strategy in self.strategies:
                elder = await strategy(self.directory, identifier)
                if elder is not None:
                    self.logger.info(
                        "emergency_identity_resolved",
                        strategy=name,
                        provided_id=identifier,
                        elder_id=elder.id,
                    )
                    return ResolvedIdentity(
                        elder=elder, user_id=elder.user_id or identifier, strategy=name
                    )

        return await self._placeholder(signal)

    async def _placeholder(self, signal: EmergencySignal) -> ResolvedIdentity:
        identifier = signal.provided_id
        account: User | None = None
        if identifier:
            user = await self.directory.find_user(identifier)
            if user is not None and user.role is UserRole.ELDER:
                account = user

        if account is not None:
            elder = Elder(
                id=account.id,
                user_id=account.id,
                first_name=account.first_name or "Unknown",
                last_name=account.last_name,
                phone=account.phone,
            )
            strategy = "placeholder_from_account"
        else:
            first, _, rest = (signal.elder_name or "").strip().partition(" ")
            elder = Elder(
                id=identifier or f"unresolved-{uuid4().hex[:12]}",
                user_id=identifier,
                first_name=first or "Unknown",
                last_name=rest if signal.elder_name else "Elder",
                phone=signal.elder_phone,
            )
            strategy = "placeholder_from_signal"

        self.logger.warning(
            "emergency_identity_degraded",
            provided_id=identifier,
            placeholder_id=elder.id,
            strategy=strategy,
        )
        return ResolvedIdentity(
            elder=elder, user_id=elder.user_id, is_degraded=True, strategy=strategy
        )

"""
Care-directory models: who the elder is and who looks after them.

Records here are owned by the surrounding platform and read through the
CareDirectory port; the engine never writes them.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    ELDER = "elder"
    FAMILY_MEMBER = "family_member"
    CAREGIVER = "caregiver"
    NURSE = "nurse"
    DOCTOR = "doctor"
    COORDINATOR = "coordinator"
    ADMIN = "admin"


class User(BaseModel):
    """A platform account."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    role: UserRole
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class MedicalHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    conditions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)


class Elder(BaseModel):
    """The care recipient. `user_id` links the elder's own login account, if any."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str | None = None
    first_name: str = "Unknown"
    last_name: str = "Elder"
    phone: str | None = None
    blood_type: str | None = None
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    subscription_id: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class StaffAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    staff_id: str
    elder_id: str
    is_active: bool = True


class RecipientRole(str, Enum):
    CAREGIVER = "caregiver"
    FAMILY = "family"


class Recipient(BaseModel):
    """A resolved delivery target. Derived per dispatch, never cached."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    role: RecipientRole
    user_role: UserRole

    @classmethod
    def from_user(cls, user: User, role: RecipientRole) -> "Recipient":
        return cls(
            id=user.id,
            name=user.full_name,
            email=user.email,
            phone=user.phone,
            role=role,
            user_role=user.role,
        )


class RecipientSet(BaseModel):
    """Caregivers (any number) and at most one family member for one elder."""

    caregivers: list[Recipient] = Field(default_factory=list)
    family: Recipient | None = None

    def all(self) -> list[Recipient]:
        return [*self.caregivers, *([self.family] if self.family else [])]

    @property
    def count(self) -> int:
        return len(self.caregivers) + (1 if self.family else 0)

    @property
    def is_empty(self) -> bool:
        return self.count == 0

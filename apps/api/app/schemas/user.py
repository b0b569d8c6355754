"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import validate_password_strength
from app.db.enums import Role


class Address(BaseModel):
    street: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)


class EmergencyContact(BaseModel):
    name: str | None = Field(None, max_length=200)
    relationship: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=30)


class MedicalInfo(BaseModel):
    blood_type: str | None = Field(None, max_length=10)
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)


class UserRead(BaseModel):
    """Response schema for reading a user."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    display_name: str
    role: Role
    phone: str | None = None
    address: dict | None = None
    emergency_contact: dict | None = None
    medical_info: dict | None = None
    employer_id: UUID | None = None
    team: str | None = None
    team_leader_id: UUID | None = None
    default_team: str | None = None
    managed_teams: list[str] = Field(default_factory=list)
    package: str | None = None
    specialty: str | None = None
    license_number: str | None = None
    is_available: bool = True
    availability_reason: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""

    id: UUID
    display_name: str
    email: str
    role: Role

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Admin-created account (any role)."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: Role
    phone: str | None = Field(None, max_length=30)
    employer_id: UUID | None = None
    team: str | None = Field(None, max_length=100)
    team_leader_id: UUID | None = None
    specialty: str | None = Field(None, max_length=100)
    license_number: str | None = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserUpdate(BaseModel):
    """
    Profile update (partial).

    role, is_active and employer_id are admin-only; the router rejects
    them for anyone else.
    """

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    medical_info: MedicalInfo | None = None
    specialty: str | None = Field(None, max_length=100)
    license_number: str | None = Field(None, max_length=100)
    team: str | None = Field(None, max_length=100)

    # Admin-only
    role: Role | None = None
    is_active: bool | None = None
    employer_id: UUID | None = None


ADMIN_ONLY_USER_FIELDS = frozenset({"role", "is_active", "employer_id"})


class AdminUserUpdate(BaseModel):
    """Admin override: role, activation and password reset."""

    role: Role | None = None
    is_active: bool | None = None
    password: str | None = None

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_password_strength(v)


class AssignEmployerRequest(BaseModel):
    employer_id: UUID

"""User/session records and authentication request schemas."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from ..storage.mapping import Record

Plan = Literal["free", "pro", "enterprise"]
PaidPlan = Literal["pro", "enterprise"]


class UserRecord(Record):
    id: UUID
    email: str
    name: str | None = None
    plan: Plan = "free"
    plan_expires_at: datetime | None = None
    phone: str | None = None
    location: str | None = None
    linkedin: str | None = None
    portfolio: str | None = None
    preferences: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    password_hash: str = Field(default="", exclude=True, repr=False)


class SessionRecord(Record):
    id: UUID
    user_id: UUID
    token: str = Field(repr=False)
    created_at: datetime
    expires_at: datetime


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class SignupRequest(_Request):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class LoginRequest(_Request):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class ProfileUpdate(_Request):
    name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    location: str | None = Field(None, max_length=255)
    linkedin: str | None = Field(None, max_length=500)
    portfolio: str | None = Field(None, max_length=500)
    preferences: dict[str, Any] | None = None


class PlanUpgradeRequest(_Request):
    plan: PaidPlan


class AuthResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user: UserRecord
    token: str

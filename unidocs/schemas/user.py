from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    email: EmailStr
    role: str = "sub_admin"
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    designation: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, min_length=10, max_length=10)
    university_body_id: UUID | None = None


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    role: str | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    designation: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, min_length=10, max_length=10)
    university_body_id: UUID | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
    designation: str | None = None
    phone: str | None = None
    university_body_id: UUID | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime

    @field_validator("role", mode="before")
    @classmethod
    def enum_value(cls, value):
        return getattr(value, "value", value)

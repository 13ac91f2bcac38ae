from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from unidocs.schemas.document import UserSummary


class UniversityBodyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = "Other"
    description: str | None = None
    admin_id: UUID | None = None
    is_active: bool = True


class UniversityBodyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = None
    description: str | None = None
    admin_id: UUID | None = None
    is_active: bool | None = None


class UniversityBodyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: str
    description: str | None = None
    admin_id: UUID | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    admin: UserSummary | None = None

    @field_validator("type", mode="before")
    @classmethod
    def enum_value(cls, value):
        return getattr(value, "value", value)

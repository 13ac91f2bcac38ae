from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DOCUMENT_TYPES = ("minutes", "circular", "notice", "other")


def _check_document_type(value: str | None) -> str | None:
    if value is not None and value not in _DOCUMENT_TYPES:
        raise ValueError(
            "Document type must be minutes, circular, notice, or other"
        )
    return value


# ---------------------------------------------------------------------------
# Write models
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    document_type: str | None = None
    university_body_id: UUID | None = None
    is_public: bool = False

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("document_type")
    @classmethod
    def check_document_type(cls, value):
        return _check_document_type(value)


class DocumentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    document_type: str | None = None
    university_body_id: UUID | None = None
    is_public: bool | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("document_type")
    @classmethod
    def check_document_type(cls, value):
        return _check_document_type(value)


class DocumentReject(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class UploadedFile(BaseModel):
    """Single file handed over by the upload layer."""

    buffer: bytes
    original_filename: str = Field(min_length=1, max_length=255)
    mime_type: str = Field(min_length=1, max_length=100)
    size_bytes: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class UniversityBodySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: str

    @field_validator("type", mode="before")
    @classmethod
    def enum_value(cls, value):
        return getattr(value, "value", value)


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    document_type: str | None = None
    file_name: str
    mime_type: str
    file_size: int
    uploaded_by_id: UUID
    university_body_id: UUID | None = None
    is_public: bool
    approval_status: str
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    requested_at: datetime | None = None
    rejection_reason: str | None = None
    download_count: int
    created_at: datetime
    updated_at: datetime
    university_body: UniversityBodySummary | None = None
    uploaded_by: UserSummary | None = None

    @field_validator("document_type", "approval_status", mode="before")
    @classmethod
    def enum_value(cls, value):
        return getattr(value, "value", value)

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unidocs.db import Base


class UniversityBodyType(enum.Enum):
    board = "Board"
    committee = "Committee"
    council = "Council"
    department = "Department"
    office = "Office"
    other = "Other"


class UniversityBody(Base):
    __tablename__ = "university_bodies"
    __table_args__ = (
        Index("ix_university_bodies_type", "type"),
        Index("ix_university_bodies_is_active", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[UniversityBodyType] = mapped_column(
        Enum(UniversityBodyType), nullable=False, default=UniversityBodyType.other
    )
    description: Mapped[str | None] = mapped_column(Text)
    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    admin = relationship("User", foreign_keys=[admin_id])
    members = relationship(
        "User",
        foreign_keys="User.university_body_id",
        back_populates="university_body",
    )
    documents = relationship("Document", back_populates="university_body")

"""Eligibility rules for every document action.

Each ``ensure_*`` helper either returns quietly or raises the typed client
error describing why the caller may not act. Role checks go through the
ordered ``UserRole`` enum, never through string comparison.
"""

import enum
import uuid
from datetime import datetime, timedelta

from unidocs.config import settings
from unidocs.errors import (
    ConflictError,
    ForbiddenError,
    UnauthenticatedError,
    ValidationFailedError,
)
from unidocs.models.document import ApprovalStatus, Document
from unidocs.models.user import User, UserRole
from unidocs.services.clock import as_utc

EDIT_WINDOW = timedelta(hours=settings.edit_window_hours)

_ROLE_LABELS = {
    UserRole.super_admin: "Super admin",
    UserRole.admin: "Admin",
    UserRole.sub_admin: "Sub-admin",
}


class ReviewMode(enum.Enum):
    # Admin acting on the pending queue of their own unit.
    unit = "unit"
    # Super admin re-reviewing any document in any state.
    global_ = "global"


def role_label(role: UserRole) -> str:
    return _ROLE_LABELS[role]


def ensure_active(principal: User | None) -> User:
    if principal is None:
        raise UnauthenticatedError("Authentication required", reason="no_token")
    if not principal.is_active:
        raise UnauthenticatedError(
            "Invalid or inactive user", reason="account_deactivated"
        )
    return principal


def ensure_role(principal: User | None, minimum: UserRole) -> User:
    principal = ensure_active(principal)
    if not principal.role.at_least(minimum):
        raise ForbiddenError("Insufficient permissions")
    return principal


def is_super_admin(principal: User | None) -> bool:
    return principal is not None and principal.role is UserRole.super_admin


def resolve_upload_unit(
    principal: User, requested_unit_id: uuid.UUID | None
) -> uuid.UUID | None:
    """Return the unit that will own a new upload."""
    ensure_role(principal, UserRole.sub_admin)
    if not is_super_admin(principal) and principal.university_body_id is None:
        raise ValidationFailedError(
            f"{role_label(principal.role)} must be associated with a "
            "university body to upload documents"
        )
    if requested_unit_id is not None and principal.role.at_least(UserRole.admin):
        return requested_unit_id
    return principal.university_body_id


def review_mode(principal: User) -> ReviewMode:
    ensure_active(principal)
    if principal.role is UserRole.super_admin:
        return ReviewMode.global_
    if principal.role is UserRole.admin:
        return ReviewMode.unit
    raise ForbiddenError("Insufficient permissions")


def ensure_can_review(principal: User, document: Document, action: str) -> ReviewMode:
    mode = review_mode(principal)
    if mode is ReviewMode.global_:
        return mode
    if document.approval_status is not ApprovalStatus.pending:
        raise ConflictError("Document is not pending approval")
    if (
        principal.university_body_id is None
        or principal.university_body_id != document.university_body_id
    ):
        raise ForbiddenError(
            f"You can only {action} documents from your university body"
        )
    return mode


def within_edit_window(document: Document, now: datetime) -> bool:
    return as_utc(now) - as_utc(document.created_at) <= EDIT_WINDOW


def _ensure_owner(principal: User, document: Document, action: str) -> None:
    if document.uploaded_by_id != principal.id:
        raise ForbiddenError(f"You can only {action} your own documents")


def ensure_can_update(principal: User, document: Document, now: datetime) -> None:
    ensure_role(principal, UserRole.sub_admin)
    if not is_super_admin(principal):
        _ensure_owner(principal, document, "update")
    if document.approval_status is ApprovalStatus.approved and not within_edit_window(
        document, now
    ):
        raise ForbiddenError(
            f"Cannot update document after {settings.edit_window_hours} hours "
            "of upload once approved"
        )


def ensure_can_move(principal: User) -> None:
    if not principal.role.at_least(UserRole.admin):
        raise ForbiddenError(
            "Only admins can move documents between university bodies"
        )


def ensure_can_delete(principal: User, document: Document, now: datetime) -> None:
    ensure_role(principal, UserRole.sub_admin)
    if is_super_admin(principal):
        return
    _ensure_owner(principal, document, "delete")
    if not within_edit_window(document, now):
        raise ForbiddenError(
            f"Cannot delete document after {settings.edit_window_hours} hours "
            "of upload"
        )


def ensure_publicly_available(document: Document, action: str) -> None:
    if not (
        document.is_public and document.approval_status is ApprovalStatus.approved
    ):
        raise ForbiddenError(f"Document is not available for {action}")


def ensure_public_requires_approval(is_public: bool, status: ApprovalStatus) -> None:
    if is_public and status is not ApprovalStatus.approved:
        raise ValidationFailedError(
            "Only approved documents can be made public",
            errors=[{"field": "is_public", "message": "Document is not approved"}],
        )

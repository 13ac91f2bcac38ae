"""Filter predicates deciding which rows a caller may see.

One resolver serves every role: the caller's role and unit are inputs, and
explicit query filters are AND-ed onto the role predicate.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import and_, false, or_, true

from unidocs.models.document import ApprovalStatus, Document, DocumentType
from unidocs.models.user import User, UserRole
from unidocs.services.common import coerce_enum, search_clause


@dataclass(frozen=True)
class DocumentFilters:
    search: str | None = None
    university_body_id: uuid.UUID | None = None
    approval_status: str | None = None
    document_type: str | None = None
    only_university_body: bool = False
    only_mine: bool = False


@dataclass(frozen=True)
class UserFilters:
    search: str | None = None
    role: str | None = None
    is_active: bool | None = None
    only_university_body: bool = False


def public_documents_clause():
    return and_(
        Document.is_public.is_(True),
        Document.approval_status == ApprovalStatus.approved,
    )


def _own_unit_clause(principal: User):
    if principal.university_body_id is None:
        return false()
    return Document.university_body_id == principal.university_body_id


def document_role_clause(principal: User | None, filters: DocumentFilters):
    if principal is None:
        return public_documents_clause()
    if principal.role is UserRole.super_admin:
        return true()
    if filters.only_university_body:
        return _own_unit_clause(principal)
    return or_(_own_unit_clause(principal), public_documents_clause())


def document_conditions(
    principal: User | None, filters: DocumentFilters | None = None
) -> list:
    filters = filters or DocumentFilters()
    conditions = [document_role_clause(principal, filters)]
    if filters.only_mine and principal is not None:
        conditions.append(Document.uploaded_by_id == principal.id)
    search = search_clause(filters.search, Document.title, Document.description)
    if search is not None:
        conditions.append(search)
    if filters.university_body_id is not None:
        conditions.append(Document.university_body_id == filters.university_body_id)
    if filters.approval_status:
        conditions.append(
            Document.approval_status
            == coerce_enum(ApprovalStatus, filters.approval_status, "approval_status")
        )
    if filters.document_type:
        conditions.append(
            Document.document_type
            == coerce_enum(DocumentType, filters.document_type, "document_type")
        )
    return conditions


def user_conditions(principal: User, filters: UserFilters | None = None) -> list:
    filters = filters or UserFilters()
    if principal.role is UserRole.super_admin:
        conditions = []
        if filters.role:
            conditions.append(User.role == coerce_enum(UserRole, filters.role, "role"))
        if filters.is_active is not None:
            conditions.append(User.is_active.is_(filters.is_active))
    elif principal.role is UserRole.admin:
        conditions = [
            User.role.in_([UserRole.admin, UserRole.sub_admin]),
            User.is_active.is_(True),
        ]
        if filters.role:
            conditions.append(User.role == coerce_enum(UserRole, filters.role, "role"))
    else:
        conditions = [
            User.role == UserRole.sub_admin,
            User.is_active.is_(True),
            User.id != principal.id,
        ]
    if filters.only_university_body and principal.role is not UserRole.super_admin:
        if principal.university_body_id is None:
            conditions.append(false())
        else:
            conditions.append(User.university_body_id == principal.university_body_id)
    search = search_clause(filters.search, User.first_name, User.last_name, User.email)
    if search is not None:
        conditions.append(search)
    return conditions

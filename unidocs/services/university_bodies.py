import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from unidocs.config import settings
from unidocs.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from unidocs.models.document import Document
from unidocs.models.university_body import UniversityBody, UniversityBodyType
from unidocs.models.user import User, UserRole
from unidocs.schemas.university_body import UniversityBodyCreate, UniversityBodyUpdate
from unidocs.services import access
from unidocs.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_enum,
    coerce_uuid,
    search_clause,
)
from unidocs.services.pagination import page_offset, page_window, paginated

logger = logging.getLogger(__name__)

# Fields an admin may edit on their own unit.
ADMIN_EDITABLE_FIELDS = {"description"}


def _validate_admin(db: Session, admin_id) -> None:
    if admin_id is None:
        return
    admin = db.get(User, admin_id)
    if not admin:
        raise NotFoundError("Admin not found")
    if not admin.role.at_least(UserRole.admin):
        raise ValidationFailedError("Selected user must be an admin or super admin")


def _ensure_unique_name(db: Session, name: str, exclude_id=None) -> None:
    stmt = select(UniversityBody.id).where(UniversityBody.name == name)
    if exclude_id is not None:
        stmt = stmt.where(UniversityBody.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("University body with this name already exists")


class UniversityBodies:
    @staticmethod
    def types() -> list[str]:
        return [member.value for member in UniversityBodyType]

    @staticmethod
    def create(
        db: Session, principal: User, payload: UniversityBodyCreate
    ) -> UniversityBody:
        access.ensure_role(principal, UserRole.super_admin)
        _ensure_unique_name(db, payload.name)
        _validate_admin(db, payload.admin_id)

        data = payload.model_dump()
        data["type"] = coerce_enum(UniversityBodyType, data["type"], "type")
        body = UniversityBody(**data)
        db.add(body)
        db.commit()
        db.refresh(body)
        logger.info("Created university body %s by %s", body.id, principal.id)
        return body

    @staticmethod
    def get(
        db: Session, body_id: str, principal: User | None = None
    ) -> UniversityBody:
        body = db.get(UniversityBody, coerce_uuid(body_id, "University body"))
        if not body or (not body.is_active and not access.is_super_admin(principal)):
            raise NotFoundError("University body not found")
        return body

    @staticmethod
    def list(
        db: Session,
        principal: User | None,
        search: str | None = None,
        body_type: str | None = None,
        is_active: bool | None = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        page: int = 1,
        page_size: int = settings.default_page_size,
    ) -> dict:
        conditions = []
        if access.is_super_admin(principal):
            if is_active is not None:
                conditions.append(UniversityBody.is_active.is_(is_active))
        else:
            conditions.append(UniversityBody.is_active.is_(True))
        if body_type:
            conditions.append(
                UniversityBody.type == coerce_enum(UniversityBodyType, body_type, "type")
            )
        matches = search_clause(search, UniversityBody.name, UniversityBody.description)
        if matches is not None:
            conditions.append(matches)

        total = db.scalar(
            select(func.count()).select_from(UniversityBody).where(*conditions)
        )
        stmt = (
            select(UniversityBody)
            .where(*conditions)
            .options(selectinload(UniversityBody.admin))
        )
        stmt = apply_ordering(
            stmt,
            sort_by,
            sort_order,
            {
                "name": UniversityBody.name,
                "type": UniversityBody.type,
                "created_at": UniversityBody.created_at,
            },
            tiebreaker=UniversityBody.id,
        )
        stmt = apply_pagination(stmt, page_size, page_offset(page, page_size))
        return paginated(db.scalars(stmt).all(), page_window(total or 0, page, page_size))

    @staticmethod
    def update(
        db: Session, principal: User, body_id: str, payload: UniversityBodyUpdate
    ) -> UniversityBody:
        access.ensure_role(principal, UserRole.admin)
        body = UniversityBodies.get(db, body_id, principal)
        data = payload.model_dump(exclude_unset=True)

        if not access.is_super_admin(principal):
            if principal.university_body_id != body.id:
                raise ForbiddenError(
                    "You can only update your own university body"
                )
            data = {k: v for k, v in data.items() if k in ADMIN_EDITABLE_FIELDS}
        else:
            if data.get("name") is not None and data["name"] != body.name:
                _ensure_unique_name(db, data["name"], exclude_id=body.id)
            if "admin_id" in data:
                _validate_admin(db, data["admin_id"])
            if data.get("type") is not None:
                data["type"] = coerce_enum(UniversityBodyType, data["type"], "type")
            for field in ("name", "type", "is_active"):
                if field in data and data[field] is None:
                    data.pop(field)

        for key, value in data.items():
            setattr(body, key, value)
        db.commit()
        db.refresh(body)
        logger.info(
            "Updated university body %s fields=%s by %s",
            body.id,
            sorted(data),
            principal.id,
        )
        return body

    @staticmethod
    def delete(db: Session, principal: User, body_id: str) -> None:
        access.ensure_role(principal, UserRole.super_admin)
        body = UniversityBodies.get(db, body_id, principal)
        # Members and documents outlive their unit.
        db.execute(
            update(User)
            .where(User.university_body_id == body.id)
            .values(university_body_id=None)
            .execution_options(synchronize_session="fetch")
        )
        db.execute(
            update(Document)
            .where(Document.university_body_id == body.id)
            .values(university_body_id=None)
            .execution_options(synchronize_session="fetch")
        )
        db.delete(body)
        db.commit()
        logger.info("Deleted university body %s by %s", body_id, principal.id)


university_bodies = UniversityBodies()

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from unidocs.config import settings
from unidocs.errors import ConflictError, ForbiddenError, NotFoundError
from unidocs.models.document import Document
from unidocs.models.user import User, UserRole
from unidocs.schemas.user import UserCreate, UserUpdate
from unidocs.services import access
from unidocs.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_enum,
    coerce_uuid,
    ensure_unit_exists,
)
from unidocs.services.pagination import page_offset, page_window, paginated
from unidocs.services.visibility import UserFilters, user_conditions

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"first_name", "last_name", "email", "designation", "phone"}


def _ensure_unique_email(db: Session, email: str, exclude_id=None) -> None:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("User with this email already exists")


class Users:
    @staticmethod
    def list(
        db: Session,
        principal: User,
        filters: UserFilters,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = settings.default_page_size,
    ) -> dict:
        access.ensure_role(principal, UserRole.sub_admin)
        conditions = user_conditions(principal, filters)
        total = db.scalar(select(func.count()).select_from(User).where(*conditions))
        stmt = apply_ordering(
            select(User).where(*conditions),
            sort_by,
            sort_order,
            {
                "created_at": User.created_at,
                "email": User.email,
                "last_name": User.last_name,
            },
            tiebreaker=User.id,
        )
        stmt = apply_pagination(stmt, page_size, page_offset(page, page_size))
        return paginated(db.scalars(stmt).all(), page_window(total or 0, page, page_size))

    @staticmethod
    def get(db: Session, principal: User, user_id: str) -> User:
        access.ensure_role(principal, UserRole.sub_admin)
        stmt = select(User).where(
            User.id == coerce_uuid(user_id, "User"),
            *user_conditions(principal),
        )
        user = db.scalars(stmt).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def create(db: Session, principal: User, payload: UserCreate) -> User:
        access.ensure_role(principal, UserRole.admin)
        _ensure_unique_email(db, payload.email)
        data = payload.model_dump()
        if access.is_super_admin(principal):
            data["role"] = coerce_enum(UserRole, data["role"], "role")
            ensure_unit_exists(db, data["university_body_id"])
        else:
            # Admins only recruit sub-admins into their own unit.
            data["role"] = UserRole.sub_admin
            data["university_body_id"] = principal.university_body_id

        user = User(**data, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(
            "Created %s user %s by %s", user.role.value, user.id, principal.id
        )
        return user

    @staticmethod
    def update(
        db: Session, principal: User, user_id: str, payload: UserUpdate
    ) -> User:
        access.ensure_role(principal, UserRole.sub_admin)
        if principal.role is UserRole.sub_admin:
            if str(coerce_uuid(user_id, "User")) != str(principal.id):
                raise ForbiddenError("You can only update your own profile")
            user = principal
        else:
            user = Users.get(db, principal, user_id)

        data = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "university_body_id"
        }
        if access.is_super_admin(principal):
            if "role" in data:
                data["role"] = coerce_enum(UserRole, data["role"], "role")
                if user.id == principal.id and data["role"] is not principal.role:
                    raise ForbiddenError("Cannot change your own role")
            if "university_body_id" in data:
                ensure_unit_exists(db, data["university_body_id"])
            if data.get("is_active") is False and user.id == principal.id:
                raise ForbiddenError("You cannot deactivate your own account")
        else:
            if (
                principal.role is UserRole.admin
                and user.role is not UserRole.sub_admin
                and user.id != principal.id
            ):
                raise ForbiddenError(
                    "You can only update sub-admin users or your own profile"
                )
            data = {k: v for k, v in data.items() if k in PROFILE_FIELDS}

        if data.get("email") and data["email"].lower() != user.email.lower():
            _ensure_unique_email(db, data["email"], exclude_id=user.id)

        for key, value in data.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        logger.info(
            "Updated user %s fields=%s by %s", user.id, sorted(data), principal.id
        )
        return user

    @staticmethod
    def delete(db: Session, principal: User, user_id: str) -> None:
        access.ensure_role(principal, UserRole.super_admin)
        user = Users.get(db, principal, user_id)
        if user.id == principal.id:
            raise ForbiddenError("You cannot delete your own account")
        uploads = db.scalar(
            select(func.count())
            .select_from(Document)
            .where(Document.uploaded_by_id == user.id)
        )
        if uploads:
            raise ConflictError("User has uploaded documents and cannot be deleted")
        db.delete(user)
        db.commit()
        logger.info("Deleted user %s by %s", user_id, principal.id)

    @staticmethod
    def toggle_status(db: Session, principal: User, user_id: str) -> User:
        access.ensure_role(principal, UserRole.super_admin)
        user = Users.get(db, principal, user_id)
        if user.id == principal.id:
            raise ForbiddenError("You cannot deactivate your own account")
        user.is_active = not user.is_active
        db.commit()
        db.refresh(user)
        logger.info(
            "%s user %s by %s",
            "Activated" if user.is_active else "Deactivated",
            user.id,
            principal.id,
        )
        return user


users = Users()

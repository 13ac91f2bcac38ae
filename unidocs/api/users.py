from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from unidocs.api.deps import get_db, require_role, require_user_auth
from unidocs.config import settings
from unidocs.models.user import User
from unidocs.schemas.common import Envelope, MessageResponse, Page
from unidocs.schemas.user import UserCreate, UserRead, UserUpdate
from unidocs.services import users as user_service
from unidocs.services.visibility import UserFilters

router = APIRouter(prefix="/manage/users", tags=["manage-users"])


@router.get("", response_model=Envelope[Page[UserRead]])
def list_users(
    search: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    only_university_body: bool = False,
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="(?i)^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    filters = UserFilters(
        search=search,
        role=role,
        is_active=is_active,
        only_university_body=only_university_body,
    )
    data = user_service.users.list(
        db, principal, filters, sort_by, sort_order, page, limit
    )
    return {"data": data}


@router.get("/me", response_model=Envelope[UserRead])
def get_profile(principal: User = Depends(require_user_auth)):
    return {"data": principal}


@router.put("/me", response_model=Envelope[UserRead])
def update_profile(
    payload: UserUpdate,
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    user = user_service.users.update(db, principal, str(principal.id), payload)
    return {"message": "Profile updated successfully", "data": user}


@router.get("/{user_id}", response_model=Envelope[UserRead])
def get_user(
    user_id: str,
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return {"data": user_service.users.get(db, principal, user_id)}


@router.post(
    "",
    response_model=Envelope[UserRead],
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: UserCreate,
    principal: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    user = user_service.users.create(db, principal, payload)
    return {"message": "User created successfully", "data": user}


@router.put("/{user_id}", response_model=Envelope[UserRead])
def update_user(
    user_id: str,
    payload: UserUpdate,
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    user = user_service.users.update(db, principal, user_id, payload)
    return {"message": "User updated successfully", "data": user}


@router.put("/{user_id}/toggle-status", response_model=Envelope[UserRead])
def toggle_user_status(
    user_id: str,
    principal: User = Depends(require_role("super_admin")),
    db: Session = Depends(get_db),
):
    user = user_service.users.toggle_status(db, principal, user_id)
    state = "activated" if user.is_active else "deactivated"
    return {"message": f"User {state} successfully", "data": user}


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    principal: User = Depends(require_role("super_admin")),
    db: Session = Depends(get_db),
):
    user_service.users.delete(db, principal, user_id)
    return {"message": "User deleted successfully"}

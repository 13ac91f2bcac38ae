from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from unidocs.api.deps import get_db, optional_principal, require_role
from unidocs.config import settings
from unidocs.models.user import User
from unidocs.schemas.common import Envelope, MessageResponse, Page
from unidocs.schemas.university_body import (
    UniversityBodyCreate,
    UniversityBodyRead,
    UniversityBodyUpdate,
)
from unidocs.services import university_bodies as body_service

router = APIRouter(prefix="/university-bodies", tags=["university-bodies"])
manage_router = APIRouter(
    prefix="/manage/university-bodies", tags=["manage-university-bodies"]
)


@router.get("/types", response_model=Envelope[list[str]])
def list_university_body_types():
    return {"data": body_service.university_bodies.types()}


@router.get("", response_model=Envelope[Page[UniversityBodyRead]])
def list_university_bodies(
    search: str | None = None,
    type: str | None = None,
    is_active: bool | None = None,
    sort_by: str = Query(default="name"),
    sort_order: str = Query(default="asc", pattern="(?i)^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    principal: User | None = Depends(optional_principal),
    db: Session = Depends(get_db),
):
    data = body_service.university_bodies.list(
        db, principal, search, type, is_active, sort_by, sort_order, page, limit
    )
    return {"data": data}


@router.get("/{body_id}", response_model=Envelope[UniversityBodyRead])
def get_university_body(
    body_id: str,
    principal: User | None = Depends(optional_principal),
    db: Session = Depends(get_db),
):
    return {"data": body_service.university_bodies.get(db, body_id, principal)}


@manage_router.post(
    "",
    response_model=Envelope[UniversityBodyRead],
    status_code=status.HTTP_201_CREATED,
)
def create_university_body(
    payload: UniversityBodyCreate,
    principal: User = Depends(require_role("super_admin")),
    db: Session = Depends(get_db),
):
    body = body_service.university_bodies.create(db, principal, payload)
    return {"message": "University body created successfully", "data": body}


@manage_router.put("/{body_id}", response_model=Envelope[UniversityBodyRead])
def update_university_body(
    body_id: str,
    payload: UniversityBodyUpdate,
    principal: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    body = body_service.university_bodies.update(db, principal, body_id, payload)
    return {"message": "University body updated successfully", "data": body}


@manage_router.delete("/{body_id}", response_model=MessageResponse)
def delete_university_body(
    body_id: str,
    principal: User = Depends(require_role("super_admin")),
    db: Session = Depends(get_db),
):
    body_service.university_bodies.delete(db, principal, body_id)
    return {"message": "University body deleted successfully"}

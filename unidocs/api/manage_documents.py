from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from unidocs.api.deps import get_clock, get_db, require_role, require_user_auth
from unidocs.config import settings
from unidocs.errors import ValidationFailedError
from unidocs.models.user import User
from unidocs.schemas.common import Envelope, MessageResponse, Page
from unidocs.schemas.document import (
    DocumentCreate,
    DocumentRead,
    DocumentReject,
    DocumentUpdate,
    UploadedFile,
)
from unidocs.services import documents as doc_service
from unidocs.services.clock import Clock
from unidocs.services.visibility import DocumentFilters

router = APIRouter(prefix="/manage/documents", tags=["manage-documents"])


def _validation_errors(exc: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]


async def _read_upload(file: UploadFile | None) -> UploadedFile | None:
    if file is None or not file.filename:
        return None
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise ValidationFailedError(
            f"File exceeds the maximum size of {settings.max_upload_bytes} bytes"
        )
    buffer = await file.read()
    return UploadedFile(
        buffer=buffer,
        original_filename=file.filename,
        mime_type=file.content_type or "application/octet-stream",
        size_bytes=len(buffer),
    )


@router.get("", response_model=Envelope[Page[DocumentRead]])
def list_documents(
    search: str | None = None,
    university_body_id: UUID | None = None,
    approval_status: str | None = None,
    document_type: str | None = None,
    only_university_body: bool = False,
    only_mine: bool = False,
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="(?i)^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    filters = DocumentFilters(
        search=search,
        university_body_id=university_body_id,
        approval_status=approval_status,
        document_type=document_type,
        only_university_body=only_university_body,
        only_mine=only_mine,
    )
    data = doc_service.documents.list(
        db, principal, filters, sort_by, sort_order, page, limit
    )
    return {"data": data}


@router.get("/pending", response_model=Envelope[Page[DocumentRead]])
def list_pending_documents(
    search: str | None = None,
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="(?i)^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    principal: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    data = doc_service.documents.list_pending(
        db, principal, search, sort_by, sort_order, page, limit
    )
    return {"data": data}


@router.get("/{document_id}", response_model=Envelope[DocumentRead])
def get_document(
    document_id: str,
    principal: User = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return {"data": doc_service.documents.get_visible(db, principal, document_id)}


@router.post(
    "",
    response_model=Envelope[DocumentRead],
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    title: str = Form(...),
    description: str | None = Form(default=None),
    document_type: str | None = Form(default=None),
    university_body_id: UUID | None = Form(default=None),
    is_public: bool = Form(default=False),
    file: UploadFile | None = File(default=None),
    principal: User = Depends(require_role("sub_admin")),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        payload = DocumentCreate(
            title=title,
            description=description,
            document_type=document_type,
            university_body_id=university_body_id,
            is_public=is_public,
        )
    except ValidationError as exc:
        raise ValidationFailedError(
            "Validation failed", errors=_validation_errors(exc)
        ) from exc
    upload = await _read_upload(file)
    document = doc_service.documents.create(db, principal, payload, upload, clock)
    message = (
        "Document uploaded successfully. Pending approval from your "
        "university body admin."
        if document.requested_at is not None
        else "Document uploaded and approved successfully"
    )
    return {"message": message, "data": document}


@router.put("/{document_id}", response_model=Envelope[DocumentRead])
def update_document(
    document_id: str,
    payload: DocumentUpdate,
    principal: User = Depends(require_role("sub_admin")),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    document = doc_service.documents.update(db, principal, document_id, payload, clock)
    return {"message": "Document updated successfully", "data": document}


@router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: str,
    principal: User = Depends(require_role("sub_admin")),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    doc_service.documents.delete(db, principal, document_id, clock)
    return {"message": "Document deleted successfully"}


@router.post("/{document_id}/approve", response_model=Envelope[DocumentRead])
def approve_document(
    document_id: str,
    principal: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    document = doc_service.documents.approve(db, principal, document_id, clock)
    return {"message": "Document approved successfully", "data": document}


@router.post("/{document_id}/reject", response_model=Envelope[DocumentRead])
def reject_document(
    document_id: str,
    payload: DocumentReject | None = None,
    principal: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    reason = payload.reason if payload else None
    document = doc_service.documents.reject(db, principal, document_id, reason, clock)
    return {"message": "Document rejected", "data": document}

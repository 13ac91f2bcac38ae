from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from unidocs.api.deps import get_db
from unidocs.config import settings
from unidocs.schemas.common import Envelope, Page
from unidocs.schemas.document import DocumentRead
from unidocs.services import documents as doc_service
from unidocs.services.visibility import DocumentFilters

router = APIRouter(prefix="/documents", tags=["documents"])


def content_disposition(disposition: str, filename: str) -> str:
    # Header values go out as latin-1; non-ASCII names travel in filename*.
    quoted = quote(filename)
    if quoted == filename:
        return f'{disposition}; filename="{filename}"'
    fallback = (
        "".join(ch for ch in filename if " " <= ch <= "~" and ch not in '"\\').strip()
        or "download"
    )
    return f"{disposition}; filename=\"{fallback}\"; filename*=utf-8''{quoted}"


def file_response(document, disposition: str) -> Response:
    return Response(
        content=document.file_data,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": content_disposition(
                disposition, document.file_name
            )
        },
    )


@router.get("", response_model=Envelope[Page[DocumentRead]])
def list_public_documents(
    search: str | None = None,
    university_body_id: UUID | None = None,
    document_type: str | None = None,
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="(?i)^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    filters = DocumentFilters(
        search=search,
        university_body_id=university_body_id,
        document_type=document_type,
    )
    data = doc_service.documents.list(
        db, None, filters, sort_by, sort_order, page, limit
    )
    return {"data": data}


@router.get("/{document_id}", response_model=Envelope[DocumentRead])
def get_public_document(document_id: str, db: Session = Depends(get_db)):
    return {"data": doc_service.documents.get_visible(db, None, document_id)}


@router.get("/{document_id}/download")
def download_document(document_id: str, db: Session = Depends(get_db)):
    document = doc_service.documents.download(db, document_id)
    return file_response(document, "attachment")


@router.get("/{document_id}/preview")
def preview_document(document_id: str, db: Session = Depends(get_db)):
    document = doc_service.documents.preview(db, document_id)
    return file_response(document, "inline")

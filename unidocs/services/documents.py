from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload, undefer

from unidocs.config import settings
from unidocs.errors import ConflictError, NotFoundError, ValidationFailedError
from unidocs.metrics import DOCUMENT_DOWNLOADS, DOCUMENT_REVIEWS, DOCUMENT_UPLOADS
from unidocs.models.document import ApprovalStatus, Document, DocumentType
from unidocs.models.user import User, UserRole
from unidocs.schemas.document import DocumentCreate, DocumentUpdate, UploadedFile
from unidocs.services import access
from unidocs.services.clock import Clock, system_clock
from unidocs.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_enum,
    coerce_uuid,
    ensure_unit_exists,
)
from unidocs.services.pagination import page_offset, page_window, paginated
from unidocs.services.visibility import DocumentFilters, document_conditions

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"

SORTABLE_COLUMNS = {
    "created_at": Document.created_at,
    "updated_at": Document.updated_at,
    "title": Document.title,
    "file_size": Document.file_size,
    "download_count": Document.download_count,
    "approved_at": Document.approved_at,
}


def _with_relations(stmt):
    return stmt.options(
        selectinload(Document.university_body),
        selectinload(Document.uploaded_by),
    )


def _page(db: Session, conditions: list, sort_by, sort_order, page, page_size):
    total = db.scalar(select(func.count()).select_from(Document).where(*conditions))
    stmt = _with_relations(select(Document).where(*conditions))
    stmt = apply_ordering(
        stmt, sort_by, sort_order, SORTABLE_COLUMNS, tiebreaker=Document.id
    )
    stmt = apply_pagination(stmt, page_size, page_offset(page, page_size))
    items = db.scalars(stmt).all()
    return paginated(items, page_window(total or 0, page, page_size))


class Documents:
    @staticmethod
    def list(
        db: Session,
        principal: User | None,
        filters: DocumentFilters,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = settings.default_page_size,
    ) -> dict:
        if principal is not None:
            access.ensure_active(principal)
        conditions = document_conditions(principal, filters)
        return _page(db, conditions, sort_by, sort_order, page, page_size)

    @staticmethod
    def list_pending(
        db: Session,
        principal: User,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = settings.default_page_size,
    ) -> dict:
        access.ensure_role(principal, UserRole.admin)
        filters = DocumentFilters(search=search, approval_status="pending")
        conditions = document_conditions(principal, filters)
        if not access.is_super_admin(principal):
            if principal.university_body_id is None:
                raise ValidationFailedError(
                    "Admin must be associated with a university body to "
                    "approve documents"
                )
            conditions.append(
                Document.university_body_id == principal.university_body_id
            )
        return _page(db, conditions, sort_by, sort_order, page, page_size)

    @staticmethod
    def get(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id, "Document"))
        if not document:
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def get_visible(db: Session, principal: User | None, document_id: str) -> Document:
        """Fetch metadata, reporting documents outside the caller's view as missing."""
        if principal is not None:
            access.ensure_active(principal)
        stmt = _with_relations(
            select(Document).where(
                Document.id == coerce_uuid(document_id, "Document"),
                *document_conditions(principal),
            )
        )
        document = db.scalars(stmt).first()
        if not document:
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def create(
        db: Session,
        principal: User,
        payload: DocumentCreate,
        upload: UploadedFile | None,
        clock: Clock = system_clock,
    ) -> Document:
        if upload is None:
            raise ValidationFailedError(
                "File is required",
                errors=[{"field": "file", "message": "File is required"}],
            )
        if upload.size_bytes > settings.max_upload_bytes:
            raise ValidationFailedError(
                f"File exceeds the maximum size of {settings.max_upload_bytes} bytes"
            )
        unit_id = access.resolve_upload_unit(principal, payload.university_body_id)
        ensure_unit_exists(db, unit_id)

        now = clock.now()
        document = Document(
            title=payload.title,
            description=payload.description,
            document_type=coerce_enum(
                DocumentType, payload.document_type, "document_type"
            ),
            file_data=upload.buffer,
            file_name=upload.original_filename,
            mime_type=upload.mime_type,
            file_size=upload.size_bytes,
            uploaded_by_id=principal.id,
            university_body_id=unit_id,
            created_at=now,
            updated_at=now,
        )
        if principal.role is UserRole.sub_admin:
            # Client-supplied visibility is ignored until an admin approves.
            document.approval_status = ApprovalStatus.pending
            document.is_public = False
            document.requested_at = now
        else:
            document.approval_status = ApprovalStatus.approved
            document.approved_by_id = principal.id
            document.approved_at = now
            document.is_public = payload.is_public
        db.add(document)
        db.commit()
        db.refresh(document)
        DOCUMENT_UPLOADS.labels(role=principal.role.value).inc()
        logger.info(
            "Created document %s (%s) by %s",
            document.id,
            document.approval_status.value,
            principal.id,
        )
        return document

    @staticmethod
    def update(
        db: Session,
        principal: User,
        document_id: str,
        payload: DocumentUpdate,
        clock: Clock = system_clock,
    ) -> Document:
        document = Documents.get(db, document_id)
        access.ensure_can_update(principal, document, clock.now())

        data = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if "university_body_id" in data:
            if data["university_body_id"] != document.university_body_id:
                access.ensure_can_move(principal)
                ensure_unit_exists(db, data["university_body_id"])
        if "document_type" in data:
            data["document_type"] = coerce_enum(
                DocumentType, data["document_type"], "document_type"
            )
        access.ensure_public_requires_approval(
            data.get("is_public", document.is_public), document.approval_status
        )

        for key, value in data.items():
            setattr(document, key, value)
        db.commit()
        db.refresh(document)
        logger.info(
            "Updated document %s fields=%s by %s",
            document.id,
            sorted(data),
            principal.id,
        )
        return document

    @staticmethod
    def delete(
        db: Session,
        principal: User,
        document_id: str,
        clock: Clock = system_clock,
    ) -> None:
        document = Documents.get(db, document_id)
        access.ensure_can_delete(principal, document, clock.now())
        db.delete(document)
        db.commit()
        logger.info("Deleted document %s by %s", document_id, principal.id)

    @staticmethod
    def approve(
        db: Session,
        principal: User,
        document_id: str,
        clock: Clock = system_clock,
    ) -> Document:
        document = Documents.get(db, document_id)
        mode = access.ensure_can_review(principal, document, "approve")
        changes = {
            "approval_status": ApprovalStatus.approved,
            "is_public": True,
            "approved_by_id": principal.id,
            "approved_at": clock.now(),
            "rejection_reason": None,
        }
        document = _apply_review(db, document, mode, changes)
        DOCUMENT_REVIEWS.labels(decision="approved").inc()
        logger.info(
            "Approved document %s by %s (%s review)",
            document.id,
            principal.id,
            mode.value,
        )
        return document

    @staticmethod
    def reject(
        db: Session,
        principal: User,
        document_id: str,
        reason: str | None = None,
        clock: Clock = system_clock,
    ) -> Document:
        document = Documents.get(db, document_id)
        mode = access.ensure_can_review(principal, document, "reject")
        changes = {
            "approval_status": ApprovalStatus.rejected,
            "is_public": False,
            "approved_by_id": principal.id,
            "approved_at": clock.now(),
            "rejection_reason": (reason or "").strip() or DEFAULT_REJECTION_REASON,
        }
        document = _apply_review(db, document, mode, changes)
        DOCUMENT_REVIEWS.labels(decision="rejected").inc()
        logger.info(
            "Rejected document %s by %s (%s review)",
            document.id,
            principal.id,
            mode.value,
        )
        return document

    @staticmethod
    def download(db: Session, document_id: str) -> Document:
        document = _get_with_payload(db, document_id)
        access.ensure_publicly_available(document, "download")
        db.execute(
            update(Document)
            .where(Document.id == document.id)
            .values(download_count=Document.download_count + 1)
        )
        db.commit()
        db.refresh(document)
        DOCUMENT_DOWNLOADS.inc()
        logger.info(
            "Downloaded document %s (count=%d)", document.id, document.download_count
        )
        return document

    @staticmethod
    def preview(db: Session, document_id: str) -> Document:
        document = _get_with_payload(db, document_id)
        access.ensure_publicly_available(document, "preview")
        return document


def _get_with_payload(db: Session, document_id: str) -> Document:
    document = db.get(
        Document,
        coerce_uuid(document_id, "Document"),
        options=[undefer(Document.file_data)],
    )
    if not document:
        raise NotFoundError("Document not found")
    return document


def _apply_review(db: Session, document: Document, mode, changes: dict) -> Document:
    if mode is access.ReviewMode.unit:
        # Compare-and-swap so two admins cannot both process the same request.
        result = db.execute(
            update(Document)
            .where(
                Document.id == document.id,
                Document.approval_status == ApprovalStatus.pending,
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ConflictError("Document is not pending approval")
    else:
        for key, value in changes.items():
            setattr(document, key, value)
    db.commit()
    db.refresh(document)
    return document


documents = Documents()

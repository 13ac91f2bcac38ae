import pytest
from fastapi import HTTPException
from sqlalchemy import update

from unidocs.models import ApprovalStatus, Document, DocumentType, UserRole
from unidocs.schemas.document import DocumentCreate, DocumentUpdate, UploadedFile
from unidocs.services import access
from unidocs.services import documents as doc_service
from unidocs.services.documents import _apply_review
from unidocs.services.visibility import DocumentFilters


def _upload(name="notice.pdf", data=b"%PDF-1.4 notice"):
    return UploadedFile(
        buffer=data,
        original_filename=name,
        mime_type="application/pdf",
        size_bytes=len(data),
    )


def _ids(page):
    return {doc.id for doc in page["items"]}


class TestCreateDocument:
    def test_sub_admin_upload_is_pending(self, db_session, make_unit, make_user, clock):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = doc_service.documents.create(
            db_session,
            sub,
            DocumentCreate(title="  Exam notice ", is_public=True),
            _upload(),
            clock,
        )
        assert doc.title == "Exam notice"
        assert doc.approval_status == ApprovalStatus.pending
        assert doc.is_public is False
        assert doc.university_body_id == unit.id
        assert doc.requested_at is not None
        assert doc.approved_by_id is None

    def test_admin_upload_is_auto_approved(
        self, db_session, make_unit, make_user, clock
    ):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        doc = doc_service.documents.create(
            db_session,
            admin,
            DocumentCreate(title="Circular", document_type="circular", is_public=True),
            _upload(),
            clock,
        )
        assert doc.approval_status == ApprovalStatus.approved
        assert doc.approved_by_id == admin.id
        assert doc.is_public is True
        assert doc.document_type == DocumentType.circular
        assert doc.requested_at is None

    def test_admin_may_target_another_unit(
        self, db_session, make_unit, make_user, clock
    ):
        own, other = make_unit(), make_unit()
        admin = make_user(UserRole.admin, own)
        doc = doc_service.documents.create(
            db_session,
            admin,
            DocumentCreate(title="Joint notice", university_body_id=other.id),
            _upload(),
            clock,
        )
        assert doc.university_body_id == other.id

    def test_missing_file(self, db_session, make_unit, make_user, clock):
        admin = make_user(UserRole.admin, make_unit())
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.create(
                db_session, admin, DocumentCreate(title="No file"), None, clock
            )
        assert exc.value.status_code == 400
        assert exc.value.detail == "File is required"

    def test_sub_admin_without_unit(self, db_session, make_user, clock):
        sub = make_user(UserRole.sub_admin)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.create(
                db_session, sub, DocumentCreate(title="Orphan"), _upload(), clock
            )
        assert exc.value.status_code == 400
        assert db_session.query(Document).count() == 0

    def test_unknown_target_unit(self, db_session, make_user, clock):
        import uuid

        root = make_user(UserRole.super_admin)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.create(
                db_session,
                root,
                DocumentCreate(title="Lost", university_body_id=uuid.uuid4()),
                _upload(),
                clock,
            )
        assert exc.value.status_code == 404


class TestUpdateDocument:
    def test_edit_window(self, db_session, make_unit, make_user, make_document, clock):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        doc = make_document(
            admin, unit, approval_status=ApprovalStatus.approved, is_public=True
        )
        clock.advance(hours=23, minutes=59, seconds=59)
        updated = doc_service.documents.update(
            db_session, admin, str(doc.id), DocumentUpdate(title="Revised"), clock
        )
        assert updated.title == "Revised"

        clock.advance(seconds=2)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.update(
                db_session, admin, str(doc.id), DocumentUpdate(title="Late"), clock
            )
        assert exc.value.status_code == 403
        db_session.refresh(doc)
        assert doc.title == "Revised"

    def test_cannot_publish_pending(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = make_document(sub, unit)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.update(
                db_session, sub, str(doc.id), DocumentUpdate(is_public=True), clock
            )
        assert exc.value.status_code == 400

    def test_sub_admin_cannot_move(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit, other = make_unit(), make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = make_document(sub, unit)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.update(
                db_session,
                sub,
                str(doc.id),
                DocumentUpdate(university_body_id=other.id),
                clock,
            )
        assert exc.value.status_code == 403

    def test_other_users_document(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        owner = make_user(UserRole.sub_admin, unit)
        peer = make_user(UserRole.sub_admin, unit)
        doc = make_document(owner, unit)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.update(
                db_session, peer, str(doc.id), DocumentUpdate(title="Mine"), clock
            )
        assert exc.value.status_code == 403


class TestDeleteDocument:
    def test_owner_within_window(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = make_document(sub, unit)
        doc_service.documents.delete(db_session, sub, str(doc.id), clock)
        assert db_session.get(Document, doc.id) is None

    def test_owner_after_window(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = make_document(sub, unit)
        clock.advance(days=2)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.delete(db_session, sub, str(doc.id), clock)
        assert exc.value.status_code == 403

    def test_super_admin_any_time(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        root = make_user(UserRole.super_admin)
        doc = make_document(sub, unit)
        clock.advance(days=400)
        doc_service.documents.delete(db_session, root, str(doc.id), clock)
        assert db_session.get(Document, doc.id) is None

    def test_malformed_id_is_not_found(self, db_session, make_user, clock):
        root = make_user(UserRole.super_admin)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.delete(db_session, root, "not-a-uuid", clock)
        assert exc.value.status_code == 404


class TestReview:
    def test_unit_admin_approves(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        admin = make_user(UserRole.admin, unit)
        doc = make_document(sub, unit, rejection_reason="stale")
        approved = doc_service.documents.approve(db_session, admin, str(doc.id), clock)
        assert approved.approval_status == ApprovalStatus.approved
        assert approved.is_public is True
        assert approved.approved_by_id == admin.id
        assert approved.rejection_reason is None

        with pytest.raises(HTTPException) as exc:
            doc_service.documents.approve(db_session, admin, str(doc.id), clock)
        assert exc.value.status_code == 409

    def test_other_unit_admin_forbidden(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit, other = make_unit(), make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        admin = make_user(UserRole.admin, other)
        doc = make_document(sub, unit)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.approve(db_session, admin, str(doc.id), clock)
        assert exc.value.status_code == 403
        db_session.refresh(doc)
        assert doc.approval_status == ApprovalStatus.pending

    def test_reject_without_reason(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        admin = make_user(UserRole.admin, unit)
        doc = make_document(sub, unit)
        rejected = doc_service.documents.reject(
            db_session, admin, str(doc.id), "   ", clock
        )
        assert rejected.approval_status == ApprovalStatus.rejected
        assert rejected.rejection_reason == "No reason provided"
        assert rejected.is_public is False

    def test_super_admin_re_review(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        root = make_user(UserRole.super_admin)
        doc = make_document(
            sub, unit, approval_status=ApprovalStatus.approved, is_public=True
        )
        rejected = doc_service.documents.reject(
            db_session, root, str(doc.id), "Outdated", clock
        )
        assert rejected.approval_status == ApprovalStatus.rejected
        assert rejected.is_public is False
        assert rejected.rejection_reason == "Outdated"

        approved = doc_service.documents.approve(db_session, root, str(doc.id), clock)
        assert approved.approval_status == ApprovalStatus.approved
        assert approved.rejection_reason is None
        again = doc_service.documents.approve(db_session, root, str(doc.id), clock)
        assert again.approval_status == ApprovalStatus.approved

    def test_lost_race_is_conflict(
        self, db_session, make_unit, make_user, make_document, clock
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        admin = make_user(UserRole.admin, unit)
        doc = make_document(sub, unit)
        mode = access.ensure_can_review(admin, doc, "approve")
        # A second reviewer commits first.
        db_session.execute(
            update(Document)
            .where(Document.id == doc.id)
            .values(approval_status=ApprovalStatus.rejected)
            .execution_options(synchronize_session=False)
        )
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            _apply_review(
                db_session,
                doc,
                mode,
                {"approval_status": ApprovalStatus.approved, "is_public": True},
            )
        assert exc.value.status_code == 409
        db_session.refresh(doc)
        assert doc.approval_status == ApprovalStatus.rejected


class TestDownloadPreview:
    def test_download_counts(
        self, db_session, make_unit, make_user, make_document
    ):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        doc = make_document(
            admin, unit, approval_status=ApprovalStatus.approved, is_public=True
        )
        served = doc_service.documents.download(db_session, str(doc.id))
        assert served.file_data == b"%PDF-1.4 test"
        assert served.download_count == 1
        doc_service.documents.download(db_session, str(doc.id))
        db_session.refresh(doc)
        assert doc.download_count == 2

    def test_pending_download_forbidden_and_uncounted(
        self, db_session, make_unit, make_user, make_document
    ):
        unit = make_unit()
        sub = make_user(UserRole.sub_admin, unit)
        doc = make_document(sub, unit)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.download(db_session, str(doc.id))
        assert exc.value.status_code == 403
        db_session.refresh(doc)
        assert doc.download_count == 0

    def test_preview_does_not_count(
        self, db_session, make_unit, make_user, make_document
    ):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        doc = make_document(
            admin, unit, approval_status=ApprovalStatus.approved, is_public=True
        )
        doc_service.documents.preview(db_session, str(doc.id))
        db_session.refresh(doc)
        assert doc.download_count == 0

    def test_missing_document(self, db_session):
        import uuid

        with pytest.raises(HTTPException) as exc:
            doc_service.documents.preview(db_session, str(uuid.uuid4()))
        assert exc.value.status_code == 404


class TestListDocuments:
    @pytest.fixture()
    def corpus(self, make_unit, make_user, make_document):
        unit_a, unit_b = make_unit(), make_unit()
        sub_a = make_user(UserRole.sub_admin, unit_a)
        sub_b = make_user(UserRole.sub_admin, unit_b)
        admin_a = make_user(UserRole.admin, unit_a)
        return {
            "unit_a": unit_a,
            "unit_b": unit_b,
            "sub_a": sub_a,
            "admin_a": admin_a,
            "a_pending": make_document(sub_a, unit_a, title="A pending"),
            "a_public": make_document(
                admin_a,
                unit_a,
                title="A public",
                approval_status=ApprovalStatus.approved,
                is_public=True,
            ),
            "b_pending": make_document(sub_b, unit_b, title="B pending"),
            "b_private": make_document(
                sub_b,
                unit_b,
                title="B private",
                approval_status=ApprovalStatus.approved,
            ),
            "b_public": make_document(
                sub_b,
                unit_b,
                title="B public",
                approval_status=ApprovalStatus.approved,
                is_public=True,
                document_type=DocumentType.minutes,
            ),
        }

    def test_anonymous_sees_public_only(self, db_session, corpus):
        page = doc_service.documents.list(db_session, None, DocumentFilters())
        assert _ids(page) == {corpus["a_public"].id, corpus["b_public"].id}

    def test_sub_admin_default_view(self, db_session, corpus):
        page = doc_service.documents.list(db_session, corpus["sub_a"], DocumentFilters())
        assert _ids(page) == {
            corpus["a_pending"].id,
            corpus["a_public"].id,
            corpus["b_public"].id,
        }

    def test_only_university_body(self, db_session, corpus):
        page = doc_service.documents.list(
            db_session, corpus["admin_a"], DocumentFilters(only_university_body=True)
        )
        assert _ids(page) == {corpus["a_pending"].id, corpus["a_public"].id}

    def test_only_mine(self, db_session, corpus):
        page = doc_service.documents.list(
            db_session, corpus["sub_a"], DocumentFilters(only_mine=True)
        )
        assert _ids(page) == {corpus["a_pending"].id}

    def test_super_admin_sees_everything(self, db_session, corpus, make_user):
        root = make_user(UserRole.super_admin)
        page = doc_service.documents.list(db_session, root, DocumentFilters())
        assert page["pagination"]["total_items"] == 5

    def test_admin_without_unit(self, db_session, corpus, make_user):
        admin = make_user(UserRole.admin)
        page = doc_service.documents.list(db_session, admin, DocumentFilters())
        assert _ids(page) == {corpus["a_public"].id, corpus["b_public"].id}

    def test_filters_and_search(self, db_session, corpus):
        page = doc_service.documents.list(
            db_session, None, DocumentFilters(document_type="minutes")
        )
        assert _ids(page) == {corpus["b_public"].id}
        page = doc_service.documents.list(
            db_session, corpus["sub_a"], DocumentFilters(search="pending")
        )
        assert _ids(page) == {corpus["a_pending"].id}

    def test_invalid_sort_field(self, db_session, corpus):
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.list(
                db_session, None, DocumentFilters(), sort_by="file_data"
            )
        assert exc.value.status_code == 400

    def test_sort_by_title(self, db_session, corpus):
        page = doc_service.documents.list(
            db_session, None, DocumentFilters(), sort_by="title", sort_order="ASC"
        )
        assert [doc.title for doc in page["items"]] == ["A public", "B public"]

    def test_pending_queue_is_unit_scoped(self, db_session, corpus):
        page = doc_service.documents.list_pending(db_session, corpus["admin_a"])
        assert _ids(page) == {corpus["a_pending"].id}

    def test_pending_queue_requires_unit(self, db_session, corpus, make_user):
        admin = make_user(UserRole.admin)
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.list_pending(db_session, admin)
        assert exc.value.status_code == 400

    def test_hidden_document_is_not_found(self, db_session, corpus):
        with pytest.raises(HTTPException) as exc:
            doc_service.documents.get_visible(
                db_session, corpus["admin_a"], str(corpus["b_pending"].id)
            )
        assert exc.value.status_code == 404

    def test_pages(self, db_session, make_unit, make_user, make_document):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        for i in range(25):
            make_document(
                admin,
                unit,
                title=f"Doc {i:02d}",
                approval_status=ApprovalStatus.approved,
                is_public=True,
            )
        page = doc_service.documents.list(
            db_session, None, DocumentFilters(), "title", "asc", page=3, page_size=10
        )
        assert len(page["items"]) == 5
        assert page["pagination"]["total_pages"] == 3
        assert page["pagination"]["has_next_page"] is False
        assert page["pagination"]["has_prev_page"] is True


class TestSearchAndOrdering:
    def test_wildcards_match_literally(
        self, db_session, make_unit, make_user, make_document
    ):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        public = dict(approval_status=ApprovalStatus.approved, is_public=True)
        make_document(admin, unit, title="Fee notice", **public)
        percent = make_document(admin, unit, title="100% attendance", **public)
        underscore = make_document(admin, unit, title="exam_schedule", **public)

        page = doc_service.documents.list(db_session, None, DocumentFilters(search="_"))
        assert _ids(page) == {underscore.id}
        page = doc_service.documents.list(db_session, None, DocumentFilters(search="%"))
        assert _ids(page) == {percent.id}
        page = doc_service.documents.list(
            db_session, None, DocumentFilters(search="100%")
        )
        assert _ids(page) == {percent.id}

    def test_ties_are_broken_by_id(
        self, db_session, make_unit, make_user, make_document
    ):
        unit = make_unit()
        admin = make_user(UserRole.admin, unit)
        created = {
            make_document(
                admin, unit, approval_status=ApprovalStatus.approved, is_public=True
            ).id
            for _ in range(25)
        }
        seen = []
        for number in (1, 2, 3):
            page = doc_service.documents.list(
                db_session,
                None,
                DocumentFilters(),
                "created_at",
                "desc",
                page=number,
                page_size=10,
            )
            seen.extend(doc.id for doc in page["items"])
        assert len(seen) == 25
        assert set(seen) == created
        assert seen == sorted(seen, reverse=True)

"""initial schema

Revision ID: 3f1c2a9e7b10
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f1c2a9e7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Enums ---
    userrole = sa.Enum("sub_admin", "admin", "super_admin", name="userrole")
    universitybodytype = sa.Enum(
        "board",
        "committee",
        "council",
        "department",
        "office",
        "other",
        name="universitybodytype",
    )
    approvalstatus = sa.Enum("pending", "approved", "rejected", name="approvalstatus")
    documenttype = sa.Enum(
        "minutes", "circular", "notice", "other", name="documenttype"
    )
    userrole.create(op.get_bind(), checkfirst=True)
    universitybodytype.create(op.get_bind(), checkfirst=True)
    approvalstatus.create(op.get_bind(), checkfirst=True)
    documenttype.create(op.get_bind(), checkfirst=True)

    # --- Users (unit FK added once university_bodies exists) ---
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "role",
            sa.Enum(
                "sub_admin",
                "admin",
                "super_admin",
                name="userrole",
                create_type=False,
            ),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("designation", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("university_body_id", sa.UUID(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_university_body_id", "users", ["university_body_id"])

    op.create_table(
        "university_bodies",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "board",
                "committee",
                "council",
                "department",
                "office",
                "other",
                name="universitybodytype",
                create_type=False,
            ),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("admin_id", sa.UUID(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["admin_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_university_bodies_name"),
    )
    op.create_index("ix_university_bodies_type", "university_bodies", ["type"])
    op.create_index(
        "ix_university_bodies_is_active", "university_bodies", ["is_active"]
    )

    op.create_foreign_key(
        "fk_users_university_body_id",
        "users",
        "university_bodies",
        ["university_body_id"],
        ["id"],
        ondelete="SET NULL",
    )

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "document_type",
            sa.Enum(
                "minutes",
                "circular",
                "notice",
                "other",
                name="documenttype",
                create_type=False,
            ),
            nullable=True,
        ),
        sa.Column("file_data", sa.LargeBinary(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("uploaded_by_id", sa.UUID(), nullable=False),
        sa.Column("university_body_id", sa.UUID(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column(
            "approval_status",
            sa.Enum(
                "pending",
                "approved",
                "rejected",
                name="approvalstatus",
                create_type=False,
            ),
            nullable=False,
        ),
        sa.Column("approved_by_id", sa.UUID(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["uploaded_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(
            ["university_body_id"], ["university_bodies.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["approved_by_id"], ["users.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_uploaded_by_id", "documents", ["uploaded_by_id"])
    op.create_index(
        "ix_documents_university_body_id", "documents", ["university_body_id"]
    )
    op.create_index("ix_documents_approval_status", "documents", ["approval_status"])
    op.create_index("ix_documents_title", "documents", ["title"])
    op.create_index("ix_documents_created_at", "documents", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_documents_created_at", table_name="documents")
    op.drop_index("ix_documents_title", table_name="documents")
    op.drop_index("ix_documents_approval_status", table_name="documents")
    op.drop_index("ix_documents_university_body_id", table_name="documents")
    op.drop_index("ix_documents_uploaded_by_id", table_name="documents")
    op.drop_table("documents")

    op.drop_constraint("fk_users_university_body_id", "users", type_="foreignkey")

    op.drop_index("ix_university_bodies_is_active", table_name="university_bodies")
    op.drop_index("ix_university_bodies_type", table_name="university_bodies")
    op.drop_table("university_bodies")

    op.drop_index("ix_users_university_body_id", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")

    for enum_name in [
        "documenttype",
        "approvalstatus",
        "universitybodytype",
        "userrole",
    ]:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)

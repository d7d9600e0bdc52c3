"""Initial schema: users, meeting records and their versions

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # create only what is missing (idempotent)
    if not insp.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("email", sa.String(255), nullable=False, unique=True),
            sa.Column("display_name", sa.String(120)),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        )

    if not insp.has_table("meeting_records"):
        op.create_table(
            "meeting_records",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("raw_transcript", sa.Text, nullable=False),
            sa.Column("meeting_metadata", sa.JSON, nullable=False),
            sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        )
        op.create_index("ix_meeting_records_owner_id", "meeting_records", ["owner_id"])

    if not insp.has_table("transcript_versions"):
        op.create_table(
            "transcript_versions",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("record_id", sa.Integer, sa.ForeignKey("meeting_records.id", ondelete="CASCADE"), nullable=False),
            sa.Column("version_number", sa.Integer, nullable=False),
            sa.Column("corrected_transcript", sa.Text, nullable=False),
            sa.Column("correction_log", sa.Text),
            sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("record_id", "version_number", name="uq_transcript_versions_record_number"),
        )
        op.create_index("ix_transcript_versions_record_id", "transcript_versions", ["record_id"])

    if not insp.has_table("module_versions"):
        op.create_table(
            "module_versions",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("record_id", sa.Integer, sa.ForeignKey("meeting_records.id", ondelete="CASCADE"), nullable=False),
            sa.Column("module_id", sa.String(1), nullable=False),
            sa.Column("version_number", sa.Integer, nullable=False),
            sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("record_id", "module_id", "version_number", name="uq_module_versions_record_module_number"),
        )
        op.create_index("ix_module_versions_record_id", "module_versions", ["record_id"])

    if not insp.has_table("chat_messages"):
        op.create_table(
            "chat_messages",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("module_version_id", sa.Integer, sa.ForeignKey("module_versions.id", ondelete="CASCADE"), nullable=False),
            sa.Column("role", sa.String(10), nullable=False),
            sa.Column("content", sa.Text, nullable=False),
            sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
            sa.CheckConstraint("role IN ('user', 'model')", name="ck_chat_messages_role"),
        )
        op.create_index("ix_chat_messages_module_version_id", "chat_messages", ["module_version_id"])


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    # children first
    for name in ("chat_messages", "module_versions", "transcript_versions", "meeting_records", "users"):
        if insp.has_table(name):
            op.drop_table(name)

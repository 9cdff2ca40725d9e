"""Initial schema for Salon Conversation Insights.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create audio_uploads table
    op.create_table(
        "audio_uploads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("duration_sec", sa.Float, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime,
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audio_uploads_user_id", "audio_uploads", ["user_id"])

    # Create insight_reports table
    op.create_table(
        "insight_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "audio_id",
            sa.String(36),
            sa.ForeignKey("audio_uploads.id"),
            nullable=False,
        ),
        sa.Column("report_md", sa.Text, nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime,
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_insight_reports_audio_id", "insight_reports", ["audio_id"])

    # Create system_prompts table
    op.create_table(
        "system_prompts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("prompt_type", sa.String(50), nullable=False, unique=True),
        sa.Column("prompt_text", sa.Text, nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime,
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # Create api_keys table
    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("key_hash", sa.Text, nullable=False),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.UniqueConstraint("created_by", "provider", name="uq_api_keys_owner_provider"),
    )
    op.create_index("ix_api_keys_created_by", "api_keys", ["created_by"])


def downgrade() -> None:
    op.drop_index("ix_api_keys_created_by", table_name="api_keys")
    op.drop_table("api_keys")

    op.drop_table("system_prompts")

    op.drop_index("ix_insight_reports_audio_id", table_name="insight_reports")
    op.drop_table("insight_reports")

    op.drop_index("ix_audio_uploads_user_id", table_name="audio_uploads")
    op.drop_table("audio_uploads")

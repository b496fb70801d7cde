"""Create catalog tables

Revision ID: 001_create_catalog_tables
Revises:
Create Date: 2026-10-17

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_create_catalog_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "collections",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_email", sa.String(320), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("color", sa.String(16), nullable=False),
        sa.Column("icon", sa.String(64), nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("share_token", sa.String(64), nullable=True, unique=True),
        sa.Column("share_settings", sa.JSON, nullable=True),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_email", "slug", name="uq_collections_owner_slug"),
    )

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("name", "user_email", name="uq_tags_name_owner"),
    )

    op.create_table(
        "artifacts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_email", sa.String(320), nullable=False, index=True),
        sa.Column("name", sa.String(512), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("artifact_type", sa.String(32), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("published_url", sa.String(2000), nullable=True),
        sa.Column("artifact_id", sa.String(255), nullable=True),
        sa.Column("file_name", sa.String(1024), nullable=True),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("file_content", sa.Text, nullable=True),
        sa.Column("language", sa.String(64), nullable=True),
        sa.Column("framework", sa.String(64), nullable=True),
        sa.Column("claude_model", sa.String(128), nullable=True),
        sa.Column("conversation_url", sa.String(2000), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "collection_id",
            sa.Integer,
            sa.ForeignKey("collections.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("is_favorite", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("share_token", sa.String(32), nullable=True, unique=True),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("artifact_created_at", sa.String(64), nullable=True),
    )
    op.create_index("ix_artifacts_owner_name", "artifacts", ["user_email", "name"])
    op.create_index(
        "ix_artifacts_owner_favorite", "artifacts", ["user_email", "is_favorite"]
    )

    op.create_table(
        "artifact_tags",
        sa.Column(
            "artifact_id",
            sa.Integer,
            sa.ForeignKey("artifacts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_artifact_tags_tag_id", "artifact_tags", ["tag_id"])


def downgrade() -> None:
    op.drop_index("ix_artifact_tags_tag_id", table_name="artifact_tags")
    op.drop_table("artifact_tags")
    op.drop_index("ix_artifacts_owner_favorite", table_name="artifacts")
    op.drop_index("ix_artifacts_owner_name", table_name="artifacts")
    op.drop_table("artifacts")
    op.drop_table("tags")
    op.drop_table("collections")

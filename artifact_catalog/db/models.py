"""
SQLAlchemy models for Artifact Catalog.

Every row is owned by exactly one ``user_email``; queries must always
filter on it. Share tokens are the only columns looked up without an
owner and are therefore unique across the whole table.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


ARTIFACT_TYPES = ("file", "image", "document", "code", "html", "data", "other")
SOURCE_TYPES = ("published", "downloaded")


# Artifact <-> Tag (at most one row per pair)
artifact_tags = Table(
    "artifact_tags",
    Base.metadata,
    Column(
        "artifact_id",
        Integer,
        ForeignKey("artifacts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_artifact_tags_tag_id", "tag_id"),
)


class CollectionModel(Base):
    """A named, slug-addressed folder of artifacts."""

    __tablename__ = "collections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(320), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(16), nullable=False, default="#6366f1")
    icon = Column(String(64), nullable=False, default="folder")

    # Sharing
    is_public = Column(Boolean, nullable=False, default=False)
    share_token = Column(String(64), nullable=True, unique=True)
    share_settings = Column(JSON, nullable=True)
    shared_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    artifacts = relationship("ArtifactModel", back_populates="collection")

    __table_args__ = (
        UniqueConstraint("user_email", "slug", name="uq_collections_owner_slug"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "is_public": bool(self.is_public),
            "share_token": self.share_token,
            "share_settings": self.share_settings,
            "shared_at": _iso(self.shared_at),
            "created_at": _iso(self.created_at),
        }


class TagModel(Base):
    """A free-form label, unique per (name, owner)."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    user_email = Column(String(320), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    artifacts = relationship(
        "ArtifactModel", secondary=artifact_tags, back_populates="tags"
    )

    __table_args__ = (
        UniqueConstraint("name", "user_email", name="uq_tags_name_owner"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": _iso(self.created_at),
        }


class ArtifactModel(Base):
    """A saved unit of content: code, document, image, page, etc."""

    __tablename__ = "artifacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(320), nullable=False, index=True)
    name = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    artifact_type = Column(String(32), nullable=False, default="code")
    source_type = Column(String(32), nullable=False, default="published")

    # Published artifacts
    published_url = Column(String(2000), nullable=True)
    artifact_id = Column(String(255), nullable=True)

    # Downloaded artifacts
    file_name = Column(String(1024), nullable=True)
    file_size = Column(Integer, nullable=True)
    file_content = Column(Text, nullable=True)

    # Metadata
    language = Column(String(64), nullable=True)
    framework = Column(String(64), nullable=True)
    claude_model = Column(String(128), nullable=True)
    conversation_url = Column(String(2000), nullable=True)
    notes = Column(Text, nullable=True)

    collection_id = Column(
        Integer,
        ForeignKey("collections.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_favorite = Column(Boolean, nullable=False, default=False)

    # Sharing
    share_token = Column(String(32), nullable=True, unique=True)
    shared_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
    artifact_created_at = Column(String(64), nullable=True)

    collection = relationship("CollectionModel", back_populates="artifacts")
    tags = relationship("TagModel", secondary=artifact_tags, back_populates="artifacts")

    __table_args__ = (
        Index("ix_artifacts_owner_name", "user_email", "name"),
        Index("ix_artifacts_owner_favorite", "user_email", "is_favorite"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary (without joined collection/tag fields)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "artifact_type": self.artifact_type,
            "source_type": self.source_type,
            "published_url": self.published_url,
            "artifact_id": self.artifact_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "file_content": self.file_content,
            "language": self.language,
            "framework": self.framework,
            "claude_model": self.claude_model,
            "conversation_url": self.conversation_url,
            "notes": self.notes,
            "collection_id": self.collection_id,
            "is_favorite": bool(self.is_favorite),
            "share_token": self.share_token,
            "shared_at": _iso(self.shared_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "artifact_created_at": self.artifact_created_at,
        }

"""
Portable catalog document used by export and import.

Collections are referenced by slug and tags by name, never by id, so a
document can be merged into any store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EXPORT_FORMAT_VERSION = 1


class ExportCollection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class ExportArtifact(BaseModel):
    """One artifact row in a catalog document."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    artifact_type: Optional[str] = "code"
    source_type: Optional[str] = "published"
    published_url: Optional[str] = None
    artifact_id: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    file_content: Optional[str] = None
    language: Optional[str] = None
    framework: Optional[str] = None
    claude_model: Optional[str] = None
    conversation_url: Optional[str] = None
    notes: Optional[str] = None
    collection_slug: Optional[str] = None
    is_favorite: bool = False
    artifact_created_at: Optional[str] = None
    created_at: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_joined_tags(cls, value: Any) -> Any:
        # Older exports carried the internal comma-joined string
        if value is None:
            return []
        if isinstance(value, str):
            return [t for t in value.split(",") if t.strip()]
        return value

    @field_validator("is_favorite", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        return False if value is None else value


class CatalogDocument(BaseModel):
    """A full export of one owner's catalog."""

    version: int = EXPORT_FORMAT_VERSION
    exported_at: datetime
    collections: List[ExportCollection] = Field(default_factory=list)
    artifacts: List[ExportArtifact] = Field(default_factory=list)


class ImportDocument(BaseModel):
    """Incoming catalog document.

    Rows are kept raw so that a malformed row is skipped on its own
    instead of rejecting the whole document.
    """

    model_config = ConfigDict(extra="ignore")

    version: int = EXPORT_FORMAT_VERSION
    exported_at: Optional[str] = None
    collections: List[Any] = Field(default_factory=list)
    artifacts: List[Any] = Field(default_factory=list)

    @field_validator("collections", "artifacts", mode="before")
    @classmethod
    def _null_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ImportResult(BaseModel):
    imported: int = 0
    skipped: int = 0

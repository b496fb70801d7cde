"""
Artifact request schemas.

Create/update payloads come from untrusted clients (including the browser
extension's page scraper), so unknown keys are ignored and names are left
raw here; sanitization happens in the service layer.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class ArtifactType(str, Enum):
    """Kind of content an artifact holds."""

    FILE = "file"
    IMAGE = "image"
    DOCUMENT = "document"
    CODE = "code"
    HTML = "html"
    DATA = "data"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Optional[str], default: "ArtifactType") -> "ArtifactType":
        """Map free-form input ("Code", "HTML", None) onto a member."""
        if not value:
            return default
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class SourceType(str, Enum):
    """Where the artifact came from."""

    PUBLISHED = "published"
    DOWNLOADED = "downloaded"


class _ArtifactFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    published_url: Optional[constr(max_length=2000)] = None
    artifact_id: Optional[constr(max_length=255)] = None
    file_name: Optional[constr(max_length=1024)] = None
    file_size: Optional[int] = Field(None, ge=0)
    file_content: Optional[str] = None
    language: Optional[constr(max_length=64)] = None
    framework: Optional[constr(max_length=64)] = None
    claude_model: Optional[constr(max_length=128)] = None
    conversation_url: Optional[constr(max_length=2000)] = None
    notes: Optional[str] = None
    collection_id: Optional[int] = None


class ArtifactCreate(_ArtifactFields):
    """Schema for creating a new artifact.

    ``name`` is optional at the schema level so that a missing name is
    reported by the service as a validation error with a stable message.
    """

    name: Optional[str] = None
    artifact_type: ArtifactType = ArtifactType.CODE
    source_type: SourceType = SourceType.PUBLISHED
    is_favorite: bool = False
    artifact_created_at: Optional[constr(max_length=64)] = None
    tags: List[str] = Field(default_factory=list)


class ArtifactUpdate(_ArtifactFields):
    """Patch schema: only fields present in the request are applied.

    ``tags``, when present, replaces the artifact's whole tag set.
    """

    name: Optional[str] = None
    artifact_type: Optional[ArtifactType] = None
    source_type: Optional[SourceType] = None
    is_favorite: Optional[bool] = None
    tags: Optional[List[str]] = None

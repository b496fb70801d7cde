"""
Collection request schemas and typed share settings.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$"


class CollectionCreate(BaseModel):
    """Schema for creating a new collection."""

    model_config = ConfigDict(extra="ignore")

    name: constr(min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[constr(pattern=HEX_COLOR_PATTERN)] = None
    icon: Optional[constr(min_length=1, max_length=64)] = None


class CollectionUpdate(BaseModel):
    """Patch schema for a collection. Renaming recomputes the slug."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[constr(min_length=1, max_length=255)] = None
    description: Optional[str] = None
    color: Optional[constr(pattern=HEX_COLOR_PATTERN)] = None
    icon: Optional[constr(min_length=1, max_length=64)] = None


class ShareLayout(str, Enum):
    GROUPED = "grouped"
    GRID = "grid"
    LIST = "list"


class ShareSettings(BaseModel):
    """Display preferences for a shared collection page.

    Stored as JSON on the collection. Unknown keys written by older or
    newer clients are dropped on read.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    show_thumbnails: bool = Field(default=True, alias="showThumbnails")
    layout: ShareLayout = ShareLayout.GROUPED

    @classmethod
    def from_stored(cls, raw: Optional[dict]) -> "ShareSettings":
        """Parse a stored blob, falling back to defaults for unusable values."""
        if not isinstance(raw, dict):
            return cls()
        try:
            return cls.model_validate(raw)
        except ValueError:
            return cls()

    def to_stored(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CollectionShareRequest(BaseModel):
    """Body of ``POST /api/collections/{slug}/share``."""

    model_config = ConfigDict(extra="ignore")

    settings: Optional[ShareSettings] = None

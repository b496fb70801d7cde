"""
Request/response schemas for Artifact Catalog.
"""

from .artifact import ArtifactCreate, ArtifactType, ArtifactUpdate, SourceType
from .collection import (
    CollectionCreate,
    CollectionShareRequest,
    CollectionUpdate,
    ShareLayout,
    ShareSettings,
)
from .transfer import (
    EXPORT_FORMAT_VERSION,
    CatalogDocument,
    ExportArtifact,
    ExportCollection,
    ImportDocument,
    ImportResult,
)

__all__ = [
    "ArtifactCreate",
    "ArtifactType",
    "ArtifactUpdate",
    "SourceType",
    "CollectionCreate",
    "CollectionShareRequest",
    "CollectionUpdate",
    "ShareLayout",
    "ShareSettings",
    "EXPORT_FORMAT_VERSION",
    "CatalogDocument",
    "ExportArtifact",
    "ExportCollection",
    "ImportDocument",
    "ImportResult",
]

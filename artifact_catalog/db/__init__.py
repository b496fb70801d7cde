"""
Database package for Artifact Catalog.
"""

from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import ArtifactModel, CollectionModel, TagModel, artifact_tags

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "ArtifactModel",
    "CollectionModel",
    "TagModel",
    "artifact_tags",
]

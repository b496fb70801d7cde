"""
Artifact Catalog

A personal catalog for AI-generated artifacts: collections, tags,
favorites, full-text search and token-based public sharing.
"""

import importlib.metadata

__version__ = importlib.metadata.version("artifact-catalog")

from .errors import CatalogError, CatalogValidationError, ConflictError, NotFoundError
from .naming import generate_unique_name, is_placeholder, sanitize, slugify

__all__ = [
    "CatalogError",
    "CatalogValidationError",
    "ConflictError",
    "NotFoundError",
    "generate_unique_name",
    "is_placeholder",
    "sanitize",
    "slugify",
]

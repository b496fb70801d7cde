"""
Catalog export and merge-import.

Export writes collections by slug and tags by name so the document can be
merged into any store. Import is deliberately not all-or-nothing: each
row succeeds or is skipped on its own and the returned counts say exactly
which happened.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db.models import SOURCE_TYPES, ArtifactModel, CollectionModel, utc_now
from .db.query import ArtifactQuery, SortOrder
from .db.services import (
    DEFAULT_COLLECTION_COLOR,
    DEFAULT_COLLECTION_ICON,
    ArtifactService,
    CollectionService,
    TagService,
)
from .naming import sanitize, slugify
from .schemas.artifact import ArtifactType
from .schemas.transfer import (
    CatalogDocument,
    ExportArtifact,
    ExportCollection,
    ImportDocument,
    ImportResult,
)

logger = structlog.get_logger()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def export_filename(exported_at: datetime) -> str:
    return f"artifacts-export-{exported_at.date().isoformat()}.json"


class TransferService:
    """Serializes an owner's catalog and merges documents back in."""

    def __init__(self, db: Session):
        self.db = db
        self.tags = TagService(db)
        self.artifacts = ArtifactService(db, self.tags)
        self.collections = CollectionService(db)

    def export_catalog(self, owner: str) -> CatalogDocument:
        """Export every collection and artifact the owner has."""
        collections = (
            self.db.query(CollectionModel)
            .filter(CollectionModel.user_email == owner)
            .order_by(CollectionModel.name.asc())
            .all()
        )
        rows = ArtifactQuery(self.db).list(owner, sort=SortOrder.OLDEST)

        document = CatalogDocument(
            exported_at=utc_now(),
            collections=[
                ExportCollection(
                    name=c.name,
                    slug=c.slug,
                    description=c.description,
                    color=c.color,
                    icon=c.icon,
                )
                for c in collections
            ],
            artifacts=[ExportArtifact.model_validate(row) for row in rows],
        )
        logger.info(
            "Catalog exported",
            owner=owner,
            collections=len(document.collections),
            artifacts=len(document.artifacts),
        )
        return document

    def _import_collections(self, owner: str, doc: ImportDocument) -> Dict[str, int]:
        """Insert new collections; map every document slug to a local id.

        A slug the owner already has is skipped and the existing collection
        is reused for artifact linking.
        """
        local = self.collections.slug_map(owner)
        lookup: Dict[str, int] = {}

        for raw in doc.collections:
            try:
                incoming = ExportCollection.model_validate(raw)
            except ValidationError:
                logger.warning("Skipping malformed collection row", owner=owner)
                continue

            doc_slug = incoming.slug or slugify(incoming.name)
            slug = slugify(doc_slug)
            if not slug:
                continue

            if slug not in local:
                collection = CollectionModel(
                    user_email=owner,
                    name=incoming.name.strip(),
                    slug=slug,
                    description=incoming.description,
                    color=incoming.color or DEFAULT_COLLECTION_COLOR,
                    icon=incoming.icon or DEFAULT_COLLECTION_ICON,
                    is_public=False,
                    created_at=utc_now(),
                )
                self.db.add(collection)
                try:
                    self.db.commit()
                    local[slug] = collection.id
                except SQLAlchemyError:
                    self.db.rollback()
                    local = self.collections.slug_map(owner)
                    if slug not in local:
                        continue

            lookup[doc_slug] = local[slug]
            lookup[slug] = local[slug]

        # Artifacts may point at collections the owner already had
        for slug, collection_id in local.items():
            lookup.setdefault(slug, collection_id)
        return lookup

    def import_catalog(self, owner: str, doc: ImportDocument) -> ImportResult:
        """Merge a catalog document into the owner's store.

        Artifacts whose (sanitized) name matches one the owner already has
        are skipped as duplicates, as are malformed rows.
        """
        result = ImportResult()
        collection_ids = self._import_collections(owner, doc)
        names = set(self.artifacts.existing_names(owner))

        for raw in doc.artifacts:
            try:
                incoming = ExportArtifact.model_validate(raw)
            except ValidationError:
                result.skipped += 1
                continue

            name = sanitize(incoming.name)
            if name in names:
                result.skipped += 1
                continue

            created_at = _parse_timestamp(incoming.created_at) or utc_now()
            artifact = ArtifactModel(
                user_email=owner,
                name=name,
                description=incoming.description,
                artifact_type=ArtifactType.coerce(
                    incoming.artifact_type, ArtifactType.CODE
                ).value,
                source_type=incoming.source_type
                if incoming.source_type in SOURCE_TYPES
                else "published",
                published_url=incoming.published_url,
                artifact_id=incoming.artifact_id,
                file_name=incoming.file_name,
                file_size=incoming.file_size,
                file_content=incoming.file_content,
                language=incoming.language,
                framework=incoming.framework,
                claude_model=incoming.claude_model,
                conversation_url=incoming.conversation_url,
                notes=incoming.notes,
                collection_id=collection_ids.get(incoming.collection_slug)
                if incoming.collection_slug
                else None,
                is_favorite=incoming.is_favorite,
                artifact_created_at=incoming.artifact_created_at,
                created_at=created_at,
                updated_at=utc_now(),
            )
            self.db.add(artifact)
            try:
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                result.skipped += 1
                continue

            if incoming.tags:
                self.tags.replace_tags(owner, artifact.id, incoming.tags)

            names.add(name)
            result.imported += 1

        logger.info(
            "Catalog imported",
            owner=owner,
            imported=result.imported,
            skipped=result.skipped,
        )
        return result

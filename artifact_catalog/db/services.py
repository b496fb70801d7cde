"""
Database services for Artifact Catalog.

Every method takes the owner explicitly and filters on it alongside the
primary key. An id or slug that belongs to another owner behaves exactly
like one that does not exist: the method returns ``None``/``False`` and
touches no rows.
"""

from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import delete as sql_delete
from sqlalchemy import func, not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import CatalogValidationError, ConflictError, NotFoundError
from ..naming import generate_unique_name, is_placeholder, sanitize, slugify
from ..schemas.artifact import ArtifactCreate, ArtifactUpdate
from ..schemas.collection import CollectionCreate, CollectionUpdate
from .models import ArtifactModel, CollectionModel, TagModel, artifact_tags, utc_now

logger = structlog.get_logger()

DEFAULT_COLLECTION_COLOR = "#6366f1"
DEFAULT_COLLECTION_ICON = "folder"

# Seeded by POST /api/init for owners without any collection
DEFAULT_COLLECTIONS = (
    {"name": "Code Snippets", "slug": "code-snippets", "color": "#10b981", "icon": "code"},
    {"name": "Web Apps", "slug": "web-apps", "color": "#6366f1", "icon": "globe"},
    {"name": "Documents", "slug": "documents", "color": "#f59e0b", "icon": "file-text"},
    {"name": "Data & Analysis", "slug": "data-analysis", "color": "#ec4899", "icon": "bar-chart"},
    {"name": "Experiments", "slug": "experiments", "color": "#8b5cf6", "icon": "flask"},
)

# Columns that may never be set to NULL through a patch
_NON_NULLABLE_PATCH_FIELDS = ("name", "artifact_type", "source_type", "is_favorite")


class TagService:
    """Get-or-create resolution and linking of per-owner tags."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_name(self, owner: str, name: str) -> Optional[TagModel]:
        return (
            self.db.query(TagModel)
            .filter(TagModel.name == name, TagModel.user_email == owner)
            .first()
        )

    def resolve(self, owner: str, name: str) -> int:
        """Return the id of the owner's tag called ``name``, creating it if needed.

        The (name, owner) unique constraint settles concurrent creators: the
        loser rolls back its insert and reads the winner's row.
        """
        name = (name or "").strip()
        if not name:
            raise CatalogValidationError("Tag name is required")

        existing = self.get_by_name(owner, name)
        if existing is not None:
            return existing.id

        tag = TagModel(name=name, user_email=owner, created_at=utc_now())
        self.db.add(tag)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_by_name(owner, name)
            if existing is None:
                raise
            return existing.id

        return tag.id

    def link(self, artifact_id: int, tag_id: int) -> bool:
        """Attach a tag to an artifact. Relinking an existing pair is a no-op."""
        exists = self.db.execute(
            select(artifact_tags.c.artifact_id).where(
                artifact_tags.c.artifact_id == artifact_id,
                artifact_tags.c.tag_id == tag_id,
            )
        ).first()
        if exists:
            return False

        self.db.execute(
            artifact_tags.insert().values(artifact_id=artifact_id, tag_id=tag_id)
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def replace_tags(
        self, owner: str, artifact_id: int, names: Iterable[str]
    ) -> List[str]:
        """Replace the artifact's full tag set with ``names``.

        Implemented as delete-all-then-relink. The caller must already have
        checked that ``artifact_id`` belongs to ``owner``.
        """
        self.db.execute(
            artifact_tags.delete().where(artifact_tags.c.artifact_id == artifact_id)
        )
        self.db.commit()

        applied: List[str] = []
        for raw in names or []:
            name = (raw or "").strip()
            if not name or name in applied:
                continue
            self.link(artifact_id, self.resolve(owner, name))
            applied.append(name)
        return applied

    def names_for(self, artifact_id: int) -> List[str]:
        rows = self.db.execute(
            select(TagModel.name)
            .join(artifact_tags, artifact_tags.c.tag_id == TagModel.id)
            .where(artifact_tags.c.artifact_id == artifact_id)
            .order_by(TagModel.name)
        ).all()
        return [row[0] for row in rows]

    def list(self, owner: str) -> List[Dict[str, Any]]:
        """List the owner's tags with how many artifacts use each."""
        usage = func.count(artifact_tags.c.artifact_id)
        rows = (
            self.db.query(TagModel, usage.label("usage_count"))
            .outerjoin(artifact_tags, artifact_tags.c.tag_id == TagModel.id)
            .filter(TagModel.user_email == owner)
            .group_by(TagModel.id)
            .order_by(usage.desc(), TagModel.name.asc())
            .all()
        )
        return [{**tag.to_dict(), "usage_count": count} for tag, count in rows]

    def delete(self, owner: str, name: str) -> bool:
        """Remove the tag's join rows, then the tag. No-op if it does not exist."""
        tag = self.get_by_name(owner, name)
        if tag is None:
            return False

        self.db.execute(artifact_tags.delete().where(artifact_tags.c.tag_id == tag.id))
        self.db.execute(sql_delete(TagModel).where(TagModel.id == tag.id))
        self.db.commit()
        logger.info("Tag deleted", owner=owner, tag=name)
        return True


class ArtifactService:
    """Owner-scoped create/read/update/delete for artifacts."""

    def __init__(self, db: Session, tags: Optional[TagService] = None):
        self.db = db
        self.tags = tags or TagService(db)

    def get(self, owner: str, artifact_id: int) -> Optional[ArtifactModel]:
        """Get one of the owner's artifacts by id."""
        return (
            self.db.query(ArtifactModel)
            .filter(ArtifactModel.id == artifact_id, ArtifactModel.user_email == owner)
            .first()
        )

    def existing_names(self, owner: str) -> List[str]:
        rows = self.db.execute(
            select(ArtifactModel.name).where(ArtifactModel.user_email == owner)
        ).all()
        return [row[0] for row in rows]

    def _require_collection(self, owner: str, collection_id: Optional[int]) -> None:
        if collection_id is None:
            return
        found = (
            self.db.query(CollectionModel.id)
            .filter(
                CollectionModel.id == collection_id,
                CollectionModel.user_email == owner,
            )
            .first()
        )
        if not found:
            raise NotFoundError("Collection not found")

    def create(self, owner: str, data: ArtifactCreate) -> ArtifactModel:
        """Create an artifact with a sanitized, owner-unique name.

        Raises:
            CatalogValidationError: when no usable name was supplied.
            NotFoundError: when ``collection_id`` is not one of the owner's.
        """
        if not data.name or not data.name.strip():
            raise CatalogValidationError("Name is required")
        self._require_collection(owner, data.collection_id)

        name = generate_unique_name(sanitize(data.name), self.existing_names(owner))
        now = utc_now()
        artifact = ArtifactModel(
            user_email=owner,
            name=name,
            description=data.description,
            artifact_type=data.artifact_type.value,
            source_type=data.source_type.value,
            published_url=data.published_url,
            artifact_id=data.artifact_id,
            file_name=data.file_name,
            file_size=data.file_size,
            file_content=data.file_content,
            language=data.language,
            framework=data.framework,
            claude_model=data.claude_model,
            conversation_url=data.conversation_url,
            notes=data.notes,
            collection_id=data.collection_id,
            is_favorite=data.is_favorite,
            artifact_created_at=data.artifact_created_at,
            created_at=now,
            updated_at=now,
        )

        self.db.add(artifact)
        self.db.commit()
        self.db.refresh(artifact)

        if data.tags:
            self.tags.replace_tags(owner, artifact.id, data.tags)

        logger.info(
            "Artifact created",
            owner=owner,
            artifact_id=artifact.id,
            artifact_type=artifact.artifact_type,
        )
        return artifact

    def update(
        self, owner: str, artifact_id: int, patch: ArtifactUpdate
    ) -> Optional[ArtifactModel]:
        """Apply the fields present in ``patch``. Returns None if not found."""
        artifact = self.get(owner, artifact_id)
        if artifact is None:
            return None

        changes = patch.model_dump(mode="json", exclude_unset=True)
        tag_names = changes.pop("tags", None)
        for field in _NON_NULLABLE_PATCH_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]
        if "name" in changes:
            changes["name"] = sanitize(changes["name"])
        if "collection_id" in changes:
            self._require_collection(owner, changes["collection_id"])

        for field, value in changes.items():
            setattr(artifact, field, value)
        artifact.updated_at = utc_now()
        self.db.commit()

        if tag_names is not None:
            self.tags.replace_tags(owner, artifact.id, tag_names)

        self.db.refresh(artifact)
        logger.info(
            "Artifact updated",
            owner=owner,
            artifact_id=artifact.id,
            fields=sorted(changes) + (["tags"] if tag_names is not None else []),
        )
        return artifact

    def delete(self, owner: str, artifact_id: int) -> bool:
        """Delete an artifact and its tag links."""
        artifact = self.get(owner, artifact_id)
        if artifact is None:
            return False

        # Tag links go with the artifact through the many-to-many relationship
        self.db.delete(artifact)
        self.db.commit()
        logger.info("Artifact deleted", owner=owner, artifact_id=artifact_id)
        return True

    def toggle_favorite(self, owner: str, artifact_id: int) -> Optional[bool]:
        """Flip ``is_favorite`` in one statement and return the new value."""
        result = self.db.execute(
            update(ArtifactModel)
            .where(ArtifactModel.id == artifact_id, ArtifactModel.user_email == owner)
            .values(is_favorite=not_(ArtifactModel.is_favorite), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            return None

        return bool(
            self.db.execute(
                select(ArtifactModel.is_favorite).where(ArtifactModel.id == artifact_id)
            ).scalar()
        )


class CollectionService:
    """Owner-scoped management of collections, addressed by slug."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, owner: str, slug: str) -> Optional[CollectionModel]:
        """Get one of the owner's collections by slug."""
        return (
            self.db.query(CollectionModel)
            .filter(CollectionModel.slug == slug, CollectionModel.user_email == owner)
            .first()
        )

    def list(self, owner: str) -> List[Dict[str, Any]]:
        """List collections with their artifact counts, ordered by name."""
        count = func.count(ArtifactModel.id)
        rows = (
            self.db.query(CollectionModel, count.label("artifact_count"))
            .outerjoin(
                ArtifactModel,
                (ArtifactModel.collection_id == CollectionModel.id)
                & (ArtifactModel.user_email == owner),
            )
            .filter(CollectionModel.user_email == owner)
            .group_by(CollectionModel.id)
            .order_by(CollectionModel.name.asc())
            .all()
        )
        return [
            {**collection.to_dict(), "artifact_count": n} for collection, n in rows
        ]

    @staticmethod
    def _slug_for(name: str) -> str:
        slug = slugify(name)
        if not slug:
            raise CatalogValidationError(
                "Collection name must contain at least one letter or number"
            )
        return slug

    def create(self, owner: str, data: CollectionCreate) -> CollectionModel:
        """Create a collection.

        Raises:
            CatalogValidationError: when the name yields an empty slug.
            ConflictError: when the owner already has a collection with that slug.
        """
        name = data.name.strip()
        slug = self._slug_for(name)
        if self.get(owner, slug) is not None:
            raise ConflictError(f"Collection with slug '{slug}' already exists")

        collection = CollectionModel(
            user_email=owner,
            name=name,
            slug=slug,
            description=data.description,
            color=data.color or DEFAULT_COLLECTION_COLOR,
            icon=data.icon or DEFAULT_COLLECTION_ICON,
            is_public=False,
            created_at=utc_now(),
        )
        self.db.add(collection)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Collection with slug '{slug}' already exists")
        self.db.refresh(collection)

        logger.info("Collection created", owner=owner, slug=slug)
        return collection

    def update(
        self, owner: str, slug: str, patch: CollectionUpdate
    ) -> Optional[CollectionModel]:
        """Apply a patch; a new name recomputes the slug."""
        collection = self.get(owner, slug)
        if collection is None:
            return None

        changes = patch.model_dump(exclude_unset=True)
        target_slug = collection.slug
        if changes.get("name"):
            new_name = changes["name"].strip()
            new_slug = self._slug_for(new_name)
            if new_slug != collection.slug and self.get(owner, new_slug) is not None:
                raise ConflictError(f"Collection with slug '{new_slug}' already exists")
            collection.name = new_name
            collection.slug = target_slug = new_slug
        if "description" in changes:
            collection.description = changes["description"]
        if "color" in changes:
            collection.color = changes["color"] or DEFAULT_COLLECTION_COLOR
        if "icon" in changes:
            collection.icon = changes["icon"] or DEFAULT_COLLECTION_ICON

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Collection with slug '{target_slug}' already exists")
        self.db.refresh(collection)

        logger.info("Collection updated", owner=owner, slug=collection.slug)
        return collection

    def delete(self, owner: str, slug: str) -> bool:
        """Delete a collection. Its artifacts stay, uncollected."""
        collection = self.get(owner, slug)
        if collection is None:
            return False

        self.db.execute(
            update(ArtifactModel)
            .where(
                ArtifactModel.collection_id == collection.id,
                ArtifactModel.user_email == owner,
            )
            .values(collection_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.delete(collection)
        self.db.commit()
        logger.info("Collection deleted", owner=owner, slug=slug)
        return True

    def slug_map(self, owner: str) -> Dict[str, int]:
        rows = self.db.execute(
            select(CollectionModel.slug, CollectionModel.id).where(
                CollectionModel.user_email == owner
            )
        ).all()
        return {slug: collection_id for slug, collection_id in rows}

    def create_defaults(self, owner: str) -> int:
        """Seed the default collections for an owner that has none."""
        has_any = (
            self.db.query(CollectionModel.id)
            .filter(CollectionModel.user_email == owner)
            .first()
        )
        if has_any:
            return 0

        now = utc_now()
        for default in DEFAULT_COLLECTIONS:
            self.db.add(
                CollectionModel(
                    user_email=owner,
                    name=default["name"],
                    slug=default["slug"],
                    color=default["color"],
                    icon=default["icon"],
                    is_public=False,
                    created_at=now,
                )
            )
        self.db.commit()
        logger.info("Default collections created", owner=owner)
        return len(DEFAULT_COLLECTIONS)


class CleanupService:
    """Finds and repairs artifacts stored under placeholder names."""

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, owner: str) -> List[ArtifactModel]:
        return (
            self.db.query(ArtifactModel)
            .filter(ArtifactModel.user_email == owner)
            .order_by(ArtifactModel.id.asc())
            .all()
        )

    def scan(self, owner: str) -> List[Dict[str, Any]]:
        """Return id, name and type of every artifact with a placeholder name."""
        return [
            {"id": a.id, "name": a.name, "artifact_type": a.artifact_type}
            for a in self._owned(owner)
            if is_placeholder(a.name)
        ]

    def fix(self, owner: str) -> int:
        """Rename placeholder-named artifacts after their type ("Code", "Code 2", ...)."""
        artifacts = self._owned(owner)
        names = [a.name for a in artifacts]
        fixed = 0

        for artifact in artifacts:
            if not is_placeholder(artifact.name):
                continue
            base = (artifact.artifact_type or "artifact").capitalize()
            new_name = generate_unique_name(base, names)
            artifact.name = new_name
            artifact.updated_at = utc_now()
            names.append(new_name)
            fixed += 1

        if fixed:
            self.db.commit()
        logger.info("Placeholder names fixed", owner=owner, fixed=fixed)
        return fixed


class StatsService:
    """Summary counts for an owner's catalog."""

    def __init__(self, db: Session):
        self.db = db

    def _count(self, stmt) -> int:
        return int(self.db.execute(stmt).scalar() or 0)

    def summary(self, owner: str) -> Dict[str, int]:
        owned = ArtifactModel.user_email == owner
        count_artifacts = select(func.count(ArtifactModel.id))
        return {
            "total_artifacts": self._count(count_artifacts.where(owned)),
            "published_count": self._count(
                count_artifacts.where(owned, ArtifactModel.source_type == "published")
            ),
            "downloaded_count": self._count(
                count_artifacts.where(owned, ArtifactModel.source_type == "downloaded")
            ),
            "favorites_count": self._count(
                count_artifacts.where(owned, ArtifactModel.is_favorite.is_(True))
            ),
            "total_collections": self._count(
                select(func.count(CollectionModel.id)).where(
                    CollectionModel.user_email == owner
                )
            ),
            "total_tags": self._count(
                select(func.count(func.distinct(TagModel.id)))
                .join(artifact_tags, artifact_tags.c.tag_id == TagModel.id)
                .join(ArtifactModel, ArtifactModel.id == artifact_tags.c.artifact_id)
                .where(owned)
            ),
        }

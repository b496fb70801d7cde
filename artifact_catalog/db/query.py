"""
Artifact listing queries.

Filters are expressed as a typed set of SQLAlchemy predicates rather than
a concatenated SQL string, so optional filters compose freely and bound
parameters always line up with their clauses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select, func, or_, select
from sqlalchemy.orm import Session, outerjoin

from .models import ArtifactModel, CollectionModel, TagModel, artifact_tags

# Columns covered by free-text search
SEARCH_COLUMNS = (
    ArtifactModel.name,
    ArtifactModel.description,
    ArtifactModel.notes,
    ArtifactModel.language,
    ArtifactModel.file_name,
)


class SortOrder(str, Enum):
    """Requested ordering for artifact listings."""

    NEWEST = "newest"
    OLDEST = "oldest"
    NAME = "name"
    UPDATED = "updated"
    TYPE = "type"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortOrder":
        """Return the matching order, defaulting to newest for unknown input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.NEWEST


# Secondary keys applied after favorites. The trailing id keeps ties stable.
_SORT_KEYS: Dict[SortOrder, Tuple[Any, ...]] = {
    SortOrder.NEWEST: (ArtifactModel.created_at.desc(), ArtifactModel.id.desc()),
    SortOrder.OLDEST: (ArtifactModel.created_at.asc(), ArtifactModel.id.asc()),
    SortOrder.NAME: (ArtifactModel.name.asc(), ArtifactModel.id.asc()),
    SortOrder.UPDATED: (ArtifactModel.updated_at.desc(), ArtifactModel.id.desc()),
    SortOrder.TYPE: (
        ArtifactModel.artifact_type.asc(),
        ArtifactModel.name.asc(),
        ArtifactModel.id.asc(),
    ),
}


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass(frozen=True)
class ArtifactFilters:
    """Optional, conjunctive constraints on an artifact listing."""

    collection_slug: Optional[str] = None
    tag_name: Optional[str] = None
    artifact_type: Optional[str] = None
    source_type: Optional[str] = None
    favorite_only: bool = False
    search_text: Optional[str] = None

    def predicates(self, owner: str) -> List[ColumnElement[bool]]:
        """Build the WHERE clauses for ``owner``; omitted filters add nothing."""
        clauses: List[ColumnElement[bool]] = [ArtifactModel.user_email == owner]

        if self.collection_slug:
            clauses.append(CollectionModel.slug == self.collection_slug)
        if self.artifact_type:
            clauses.append(ArtifactModel.artifact_type == self.artifact_type)
        if self.source_type:
            clauses.append(ArtifactModel.source_type == self.source_type)
        if self.favorite_only:
            clauses.append(ArtifactModel.is_favorite.is_(True))
        if self.search_text:
            pattern = _like_pattern(self.search_text)
            clauses.append(
                or_(*(column.ilike(pattern, escape="\\") for column in SEARCH_COLUMNS))
            )
        if self.tag_name:
            tagged = (
                select(artifact_tags.c.artifact_id)
                .join(TagModel, TagModel.id == artifact_tags.c.tag_id)
                .where(TagModel.name == self.tag_name, TagModel.user_email == owner)
            )
            clauses.append(ArtifactModel.id.in_(tagged))

        return clauses


class ArtifactQuery:
    """Builds and runs denormalized artifact listings for one owner.

    Each result row is an artifact dict extended with its collection's
    name/slug/color and its tag names, one row per artifact.
    """

    def __init__(self, db: Session):
        self.db = db

    def _tag_aggregate(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return func.string_agg(TagModel.name, ",")
        return func.group_concat(TagModel.name)

    def statement(
        self,
        owner: str,
        filters: Optional[ArtifactFilters] = None,
        sort: SortOrder = SortOrder.NEWEST,
    ) -> Select:
        """Return the SELECT for a listing without executing it."""
        filters = filters or ArtifactFilters()
        sort = SortOrder.parse(sort)

        joined = (
            outerjoin(
                ArtifactModel,
                CollectionModel,
                ArtifactModel.collection_id == CollectionModel.id,
            )
            .outerjoin(artifact_tags, artifact_tags.c.artifact_id == ArtifactModel.id)
            .outerjoin(TagModel, TagModel.id == artifact_tags.c.tag_id)
        )

        return (
            select(
                ArtifactModel,
                CollectionModel.name.label("collection_name"),
                CollectionModel.slug.label("collection_slug"),
                CollectionModel.color.label("collection_color"),
                self._tag_aggregate().label("tag_names"),
            )
            .select_from(joined)
            .where(*filters.predicates(owner))
            .group_by(ArtifactModel.id, CollectionModel.id)
            .order_by(ArtifactModel.is_favorite.desc(), *_SORT_KEYS[sort])
        )

    def list(
        self,
        owner: str,
        filters: Optional[ArtifactFilters] = None,
        sort: SortOrder = SortOrder.NEWEST,
    ) -> List[Dict[str, Any]]:
        """List the owner's artifacts. Not paginated; clients page locally."""
        rows = self.db.execute(self.statement(owner, filters, sort)).all()
        tags = self.tags_by_artifact([row[0].id for row in rows])
        return [self._row_to_dict(row, tags[row[0].id]) for row in rows]

    def get(self, owner: str, artifact_id: int) -> Optional[Dict[str, Any]]:
        """Fetch one artifact in listing shape, or None if not the owner's."""
        stmt = self.statement(owner).where(ArtifactModel.id == artifact_id)
        row = self.db.execute(stmt).first()
        if row is None:
            return None
        return self._row_to_dict(row, self.tags_by_artifact([artifact_id])[artifact_id])

    def tags_by_artifact(self, artifact_ids: List[int]) -> Dict[int, List[str]]:
        """Map each artifact id to its tag names, read from the join rows.

        ``tag_names`` is only a display string; a tag name may itself
        contain a comma, so the list is never recovered by splitting it.
        """
        tags: Dict[int, List[str]] = {artifact_id: [] for artifact_id in artifact_ids}
        if not artifact_ids:
            return tags

        rows = self.db.execute(
            select(artifact_tags.c.artifact_id, TagModel.name)
            .join(TagModel, TagModel.id == artifact_tags.c.tag_id)
            .where(artifact_tags.c.artifact_id.in_(artifact_ids))
            .order_by(TagModel.name)
        ).all()
        for artifact_id, name in rows:
            tags[artifact_id].append(name)
        return tags

    @staticmethod
    def _row_to_dict(row, tags: List[str]) -> Dict[str, Any]:
        artifact, collection_name, collection_slug, collection_color, tag_names = row
        data = artifact.to_dict()
        data.update(
            {
                "collection_name": collection_name,
                "collection_slug": collection_slug,
                "collection_color": collection_color,
                "tag_names": tag_names,
                "tags": tags,
            }
        )
        return data

"""
Capability-token sharing for artifacts and collections.

A share token is the only key the public render/share pages accept, so
tokens come from the ``secrets`` CSPRNG and are never derived from ids,
names or timestamps. Revoking clears the token column, which makes the
old token fail on the very next lookup.
"""

from __future__ import annotations

import secrets
import string
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db.models import ArtifactModel, CollectionModel, utc_now
from .db.query import ArtifactFilters, ArtifactQuery, SortOrder
from .db.services import ArtifactService, CollectionService
from .schemas.collection import ShareSettings

logger = structlog.get_logger()

ARTIFACT_TOKEN_LENGTH = 12
ARTIFACT_TOKEN_ALPHABET = string.ascii_letters + string.digits
# 32 random bytes; a collection token exposes many artifacts at once
COLLECTION_TOKEN_BYTES = 32
UNCATEGORIZED = "Uncategorized"

_MAX_MINT_ATTEMPTS = 5


def generate_artifact_token() -> str:
    """Return a random 12-character alphanumeric token."""
    return "".join(
        secrets.choice(ARTIFACT_TOKEN_ALPHABET) for _ in range(ARTIFACT_TOKEN_LENGTH)
    )


def generate_collection_token() -> str:
    """Return a URL-safe token with 256 bits of entropy."""
    return secrets.token_urlsafe(COLLECTION_TOKEN_BYTES)


def render_path(token: str) -> str:
    return f"/render/{token}"


def share_path(token: str) -> str:
    return f"/share/{token}"


def is_html_artifact(artifact: ArtifactModel) -> bool:
    """Whether stored content should be rendered as a live HTML page."""
    if artifact.artifact_type == "html":
        return True
    return bool(artifact.language and artifact.language.lower() == "html")


class ShareService:
    """Mints, revokes and resolves share tokens."""

    def __init__(self, db: Session):
        self.db = db
        self.artifacts = ArtifactService(db)
        self.collections = CollectionService(db)

    def _store_token(self, entity, generate, **extra) -> str:
        """Assign a fresh token, retrying if it collides with an existing one."""
        for _ in range(_MAX_MINT_ATTEMPTS):
            token = generate()
            entity.share_token = token
            entity.shared_at = utc_now()
            for field, value in extra.items():
                setattr(entity, field, value)
            try:
                self.db.commit()
                return token
            except IntegrityError:
                self.db.rollback()
                logger.warning("Share token collision, retrying")
        raise RuntimeError("Could not mint a unique share token")

    # -- artifacts -------------------------------------------------------

    def share_artifact(self, owner: str, artifact_id: int) -> Optional[str]:
        """Mint a new render token for the artifact, replacing any previous one."""
        artifact = self.artifacts.get(owner, artifact_id)
        if artifact is None:
            return None

        token = self._store_token(
            artifact, generate_artifact_token, updated_at=utc_now()
        )
        logger.info("Artifact shared", owner=owner, artifact_id=artifact_id)
        return token

    def unshare_artifact(self, owner: str, artifact_id: int) -> bool:
        artifact = self.artifacts.get(owner, artifact_id)
        if artifact is None:
            return False

        artifact.share_token = None
        artifact.shared_at = None
        artifact.updated_at = utc_now()
        self.db.commit()
        logger.info("Artifact unshared", owner=owner, artifact_id=artifact_id)
        return True

    def artifact_share_status(
        self, owner: str, artifact_id: int
    ) -> Optional[Dict[str, Any]]:
        """Report the current share state without minting anything."""
        artifact = self.artifacts.get(owner, artifact_id)
        if artifact is None:
            return None

        return {
            "is_shared": artifact.share_token is not None,
            "share_token": artifact.share_token,
            "shared_at": artifact.shared_at.isoformat() if artifact.shared_at else None,
            "render_path": render_path(artifact.share_token)
            if artifact.share_token
            else None,
        }

    def get_shared_artifact(self, token: str) -> Optional[ArtifactModel]:
        """Public lookup by token alone."""
        if not token:
            return None
        return (
            self.db.query(ArtifactModel)
            .filter(ArtifactModel.share_token == token)
            .first()
        )

    # -- collections -----------------------------------------------------

    def share_collection(
        self, owner: str, slug: str, settings: Optional[ShareSettings] = None
    ) -> Optional[str]:
        """Publish a collection: mint a token, mark it public, store settings."""
        collection = self.collections.get(owner, slug)
        if collection is None:
            return None

        settings = settings or ShareSettings()
        token = self._store_token(
            collection,
            generate_collection_token,
            is_public=True,
            share_settings=settings.to_stored(),
        )
        logger.info("Collection shared", owner=owner, slug=slug)
        return token

    def unshare_collection(self, owner: str, slug: str) -> bool:
        collection = self.collections.get(owner, slug)
        if collection is None:
            return False

        collection.is_public = False
        collection.share_token = None
        collection.share_settings = None
        collection.shared_at = None
        self.db.commit()
        logger.info("Collection unshared", owner=owner, slug=slug)
        return True

    def collection_share_status(
        self, owner: str, slug: str
    ) -> Optional[Dict[str, Any]]:
        collection = self.collections.get(owner, slug)
        if collection is None:
            return None

        shared = bool(collection.is_public and collection.share_token)
        return {
            "is_shared": shared,
            "share_token": collection.share_token if shared else None,
            "shared_at": collection.shared_at.isoformat()
            if collection.shared_at
            else None,
            "settings": ShareSettings.from_stored(collection.share_settings).to_stored(),
            "share_path": share_path(collection.share_token) if shared else None,
        }

    def get_public_collection(self, token: str) -> Optional[CollectionModel]:
        """Public lookup: the token must match AND the collection must be public."""
        if not token:
            return None
        return (
            self.db.query(CollectionModel)
            .filter(
                CollectionModel.share_token == token,
                CollectionModel.is_public.is_(True),
            )
            .first()
        )

    def public_collection_page(self, token: str) -> Optional[Dict[str, Any]]:
        """Everything the public share page shows, or None for any miss."""
        collection = self.get_public_collection(token)
        if collection is None:
            return None

        rows = ArtifactQuery(self.db).list(
            collection.user_email,
            ArtifactFilters(collection_slug=collection.slug),
            SortOrder.NEWEST,
        )
        return {
            "name": collection.name,
            "description": collection.description,
            "color": collection.color,
            "settings": ShareSettings.from_stored(collection.share_settings),
            "artifact_count": len(rows),
            "groups": group_by_tag(rows),
        }


# Fields a public card may show; file content never leaves through a share page
PUBLIC_CARD_FIELDS = (
    "name",
    "description",
    "artifact_type",
    "language",
    "published_url",
    "conversation_url",
)


LINK_FIELDS = ("published_url", "conversation_url")
LINK_SCHEMES = ("http", "https")


def safe_link(url: Optional[str]) -> Optional[str]:
    """Return ``url`` if it is an http(s) link, otherwise None."""
    if not url:
        return None
    url = url.strip()
    if urlsplit(url).scheme.lower() not in LINK_SCHEMES:
        return None
    return url


def public_card(row: Dict[str, Any]) -> Dict[str, Any]:
    card = {field: row.get(field) for field in PUBLIC_CARD_FIELDS}
    # Links come from scraped pages and end up in href attributes
    for field in LINK_FIELDS:
        card[field] = safe_link(card[field])
    return card


def group_by_tag(rows: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """Group listing rows into public cards per tag.

    An artifact appears once in every group it is tagged with; untagged
    artifacts go to "Uncategorized". Groups are ordered by tag name with
    "Uncategorized" last, members newest first.
    """
    members = sorted(
        rows, key=lambda row: (row["created_at"] or "", row["id"]), reverse=True
    )

    groups: Dict[str, List[Dict[str, Any]]] = {}
    for row in members:
        card = public_card(row)
        for tag in row["tags"] or [UNCATEGORIZED]:
            groups.setdefault(tag, []).append(card)

    ordered: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for tag in sorted(groups, key=lambda name: (name == UNCATEGORIZED, name.lower())):
        ordered[tag] = groups[tag]
    return ordered

"""
Artifact Catalog API routes.

All endpoints are prefixed with /api and scoped to the owner resolved by
``get_owner``. Ids and slugs that belong to another owner answer exactly
like ones that do not exist.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .auth import get_owner
from .config import get_settings
from .db.base import get_db
from .db.query import ArtifactFilters, ArtifactQuery, SortOrder
from .db.services import (
    ArtifactService,
    CleanupService,
    CollectionService,
    StatsService,
    TagService,
)
from .errors import CatalogError
from .schemas import (
    ArtifactCreate,
    ArtifactUpdate,
    CollectionCreate,
    CollectionShareRequest,
    CollectionUpdate,
    ImportDocument,
)
from .sharing import ShareService, render_path, share_path
from .transfer import TransferService, export_filename

router = APIRouter(prefix="/api", tags=["catalog"])


def _base_url(request: Request) -> str:
    configured = get_settings().public_base_url
    if configured:
        return configured.rstrip("/")
    return str(request.base_url).rstrip("/")


def _http_error(error: CatalogError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


# =============================================================================
# Artifact Endpoints
# =============================================================================


@router.get("/artifacts")
async def list_artifacts(
    collection: Optional[str] = None,
    tag: Optional[str] = None,
    artifact_type: Optional[str] = Query(None, alias="type"),
    source: Optional[str] = None,
    favorite: bool = False,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List the owner's artifacts, favorites first."""
    filters = ArtifactFilters(
        collection_slug=collection,
        tag_name=tag,
        artifact_type=artifact_type,
        source_type=source,
        favorite_only=favorite,
        search_text=search,
    )
    return ArtifactQuery(db).list(owner, filters, SortOrder.parse(sort))


@router.get("/artifacts/{artifact_id}")
async def get_artifact(
    artifact_id: int,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get one artifact with its collection and tags."""
    artifact = ArtifactQuery(db).get(owner, artifact_id)
    if not artifact:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return artifact


@router.post("/artifacts", status_code=201)
async def create_artifact(
    artifact: ArtifactCreate,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Create an artifact. The stored name may differ from the one sent."""
    try:
        db_artifact = ArtifactService(db).create(owner, artifact)
    except CatalogError as e:
        raise _http_error(e)

    return {
        "status": "success",
        "id": db_artifact.id,
        "artifact": ArtifactQuery(db).get(owner, db_artifact.id),
    }


@router.api_route("/artifacts/{artifact_id}", methods=["PUT", "PATCH"])
async def update_artifact(
    artifact_id: int,
    patch: ArtifactUpdate,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Update the fields present in the body."""
    try:
        db_artifact = ArtifactService(db).update(owner, artifact_id, patch)
    except CatalogError as e:
        raise _http_error(e)

    if not db_artifact:
        raise HTTPException(status_code=404, detail="Artifact not found")

    return {
        "status": "success",
        "artifact": ArtifactQuery(db).get(owner, artifact_id),
    }


@router.delete("/artifacts/{artifact_id}")
async def delete_artifact(
    artifact_id: int,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Delete an artifact and its tag links."""
    if not ArtifactService(db).delete(owner, artifact_id):
        raise HTTPException(status_code=404, detail="Artifact not found")
    return {"status": "success"}


@router.post("/artifacts/{artifact_id}/favorite")
async def toggle_favorite(
    artifact_id: int,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Flip the favorite flag."""
    is_favorite = ArtifactService(db).toggle_favorite(owner, artifact_id)
    if is_favorite is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return {"status": "success", "is_favorite": is_favorite}


@router.post("/artifacts/{artifact_id}/share")
async def share_artifact(
    artifact_id: int,
    request: Request,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Mint a fresh render token, replacing any previous one."""
    token = ShareService(db).share_artifact(owner, artifact_id)
    if token is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return {
        "status": "success",
        "share_token": token,
        "render_url": _base_url(request) + render_path(token),
    }


@router.delete("/artifacts/{artifact_id}/share")
async def unshare_artifact(
    artifact_id: int,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Revoke the render token."""
    if not ShareService(db).unshare_artifact(owner, artifact_id):
        raise HTTPException(status_code=404, detail="Artifact not found")
    return {"status": "success"}


@router.get("/artifacts/{artifact_id}/share")
async def artifact_share_status(
    artifact_id: int,
    request: Request,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Report the share state without minting a token."""
    status = ShareService(db).artifact_share_status(owner, artifact_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Artifact not found")

    path = status.pop("render_path")
    status["render_url"] = _base_url(request) + path if path else None
    return status


# =============================================================================
# Collection Endpoints
# =============================================================================


@router.get("/collections")
async def list_collections(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List collections with artifact counts."""
    return CollectionService(db).list(owner)


@router.post("/collections", status_code=201)
async def create_collection(
    collection: CollectionCreate,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Create a collection; its slug is derived from the name."""
    try:
        db_collection = CollectionService(db).create(owner, collection)
    except CatalogError as e:
        raise _http_error(e)

    return {
        "status": "success",
        "id": db_collection.id,
        "slug": db_collection.slug,
        "collection": db_collection.to_dict(),
    }


@router.put("/collections/{slug}")
async def update_collection(
    slug: str,
    patch: CollectionUpdate,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Update a collection. Renaming changes its slug."""
    try:
        db_collection = CollectionService(db).update(owner, slug, patch)
    except CatalogError as e:
        raise _http_error(e)

    if not db_collection:
        raise HTTPException(status_code=404, detail="Collection not found")

    return {
        "status": "success",
        "slug": db_collection.slug,
        "collection": db_collection.to_dict(),
    }


@router.delete("/collections/{slug}")
async def delete_collection(
    slug: str,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Delete a collection. Its artifacts are kept."""
    if not CollectionService(db).delete(owner, slug):
        raise HTTPException(status_code=404, detail="Collection not found")
    return {"status": "success"}


@router.post("/collections/{slug}/share")
async def share_collection(
    slug: str,
    request: Request,
    body: Optional[CollectionShareRequest] = None,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Publish the collection page under a fresh token."""
    settings = body.settings if body else None
    token = ShareService(db).share_collection(owner, slug, settings)
    if token is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return {
        "status": "success",
        "share_token": token,
        "share_url": _base_url(request) + share_path(token),
    }


@router.delete("/collections/{slug}/share")
async def unshare_collection(
    slug: str,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Take the collection page down."""
    if not ShareService(db).unshare_collection(owner, slug):
        raise HTTPException(status_code=404, detail="Collection not found")
    return {"status": "success"}


@router.get("/collections/{slug}/share")
async def collection_share_status(
    slug: str,
    request: Request,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    status = ShareService(db).collection_share_status(owner, slug)
    if status is None:
        raise HTTPException(status_code=404, detail="Collection not found")

    path = status.pop("share_path")
    status["share_url"] = _base_url(request) + path if path else None
    return status


# =============================================================================
# Tag Endpoints
# =============================================================================


@router.get("/tags")
async def list_tags(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List tags by usage."""
    return TagService(db).list(owner)


@router.delete("/tags/{name}")
async def delete_tag(
    name: str,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Delete a tag and unlink it from every artifact."""
    if not TagService(db).delete(owner, name):
        raise HTTPException(status_code=404, detail="Tag not found")
    return {"status": "success"}


# =============================================================================
# Maintenance Endpoints
# =============================================================================


@router.get("/stats")
async def get_stats(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, int]:
    return StatsService(db).summary(owner)


@router.get("/cleanup/scan")
async def scan_placeholders(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List artifacts still carrying a placeholder name."""
    return CleanupService(db).scan(owner)


@router.post("/cleanup/fix")
async def fix_placeholders(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Rename placeholder-named artifacts after their type."""
    return {"status": "success", "fixed": CleanupService(db).fix(owner)}


@router.get("/export")
async def export_catalog(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Download the owner's catalog as a JSON attachment."""
    document = TransferService(db).export_catalog(owner)
    filename = export_filename(document.exported_at)
    return JSONResponse(
        content=document.model_dump(mode="json"),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_catalog(
    document: ImportDocument,
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Merge a catalog document. Rows that cannot be used are counted as skipped."""
    result = TransferService(db).import_catalog(owner, document)
    return {"status": "success", **result.model_dump()}


@router.post("/init")
async def init_collections(
    owner: str = Depends(get_owner),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Seed the default collections for a new owner."""
    return {"status": "success", "created": CollectionService(db).create_defaults(owner)}

"""
Public render and share pages.

These routes take nothing but a share token. Every miss (unknown token,
revoked token, collection no longer public) renders the same 404 page so
a caller cannot tell which case it hit.
"""

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from .config import get_settings
from .db.base import get_db
from .sharing import ShareService, is_html_artifact

templates = Jinja2Templates(Path(__file__).parent / "templates")

router = APIRouter(include_in_schema=False)

# Scripts may run inside the frame, but without same-origin access to this host
RENDER_SANDBOX = "allow-scripts"


def _not_found(request: Request, heading: str, message: str):
    return templates.TemplateResponse(
        request=request,
        name="not_found.html",
        context={
            "app_name": get_settings().app_name,
            "heading": heading,
            "message": message,
        },
        status_code=404,
    )


@router.get("/render/{token}")
async def render_artifact(token: str, request: Request, db: Session = Depends(get_db)):
    """Render a shared artifact's content."""
    artifact = ShareService(db).get_shared_artifact(token)
    if artifact is None:
        return _not_found(
            request,
            "Artifact Not Found",
            "This artifact doesn't exist or is no longer shared.",
        )

    content = artifact.file_content or ""
    if is_html_artifact(artifact) and content:
        name, badge = "render_html.html", "HTML"
    else:
        name = "render_text.html"
        badge = artifact.language or artifact.artifact_type or "Code"

    return templates.TemplateResponse(
        request=request,
        name=name,
        context={
            "app_name": get_settings().app_name,
            "artifact": artifact,
            "badge": badge,
            "content": content,
            "sandbox": RENDER_SANDBOX,
        },
    )


@router.get("/share/{token}")
async def share_collection_page(
    token: str, request: Request, db: Session = Depends(get_db)
):
    """Render a public collection page grouped by tag."""
    page = ShareService(db).public_collection_page(token)
    if page is None:
        return _not_found(
            request,
            "Collection Not Found",
            "This collection doesn't exist or is no longer shared.",
        )

    return templates.TemplateResponse(
        request=request,
        name="share.html",
        context={"app_name": get_settings().app_name, "page": page},
    )

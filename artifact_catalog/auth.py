"""
Owner identity for the /api surface.

The catalog sits behind an authenticating edge (an access proxy, the
browser extension's gateway) that forwards the verified email in a
trusted header. No verification happens here.
"""

from fastapi import HTTPException, Request

from .config import get_settings


def get_owner(request: Request) -> str:
    """Return the owner email from the trusted identity header, or 401."""
    header = get_settings().owner_header
    owner = (request.headers.get(header) or "").strip()
    if not owner:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return owner

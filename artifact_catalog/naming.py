"""
Artifact name rules shared by every write path.

Placeholder detection, sanitization and unique-name generation live here
so that artifact creation, updates, cleanup and import all apply the same
rules as the desktop, extension and web clients.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

DEFAULT_FALLBACK_NAME = "Artifact"

# Transient labels emitted by clients while a save is still in flight
PLACEHOLDER_NAMES = frozenset(
    {
        "Saving...",
        "Loading...",
        "Downloading...",
        "New Artifact",
        "",
    }
)

_UNTITLED_PATTERN = re.compile(r"^Untitled(\s\d+)?$")
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def is_placeholder(name: Optional[str]) -> bool:
    """Return True when ``name`` is a placeholder rather than a real title.

    Matching is case-sensitive: "SAVING..." is a legitimate user title.
    """
    trimmed = (name or "").strip()
    if trimmed in PLACEHOLDER_NAMES:
        return True
    return _UNTITLED_PATTERN.match(trimmed) is not None


def sanitize(name: Optional[str], fallback: str = DEFAULT_FALLBACK_NAME) -> str:
    """Trim ``name`` and substitute ``fallback`` when it is a placeholder."""
    trimmed = (name or "").strip()
    if is_placeholder(trimmed):
        return fallback
    return trimmed


def generate_unique_name(base: str, existing_names: Iterable[str]) -> str:
    """Return ``base`` or the first free ``"base N"`` for N = 2, 3, ...

    The scan is sequential, so with "File", "File 2" and "File 5" taken
    the result is "File 3".
    """
    taken = set(existing_names)
    if base not in taken:
        return base

    counter = 2
    candidate = f"{base} {counter}"
    while candidate in taken:
        counter += 1
        candidate = f"{base} {counter}"
    return candidate


def slugify(name: str) -> str:
    """Derive a collection slug: lowercase, non-alphanumeric runs become '-'."""
    return _SLUG_SEPARATORS.sub("-", (name or "").lower()).strip("-")

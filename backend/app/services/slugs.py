from __future__ import annotations

import re
import unicodedata

from sqlalchemy.orm import Session

from ..models.company import Company

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """
    URL-safe slug: "Le Gourmet d'Alsace" -> "le-gourmet-dalsace".

    Accents are decomposed and dropped, anything outside [a-z0-9 -] is
    removed, whitespace becomes "-", and hyphen runs collapse.
    """
    value = unicodedata.normalize("NFD", str(text).strip().lower())
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _NON_SLUG_CHARS.sub("", value)
    value = _WHITESPACE.sub("-", value)
    value = _HYPHEN_RUNS.sub("-", value)
    slug = value.strip("-")
    if not slug:
        raise ValueError(f"Cannot derive a slug from {text!r}")
    return slug


def unique_slug(db: Session, name: str, exclude_id: int | None = None) -> str:
    """
    Slug for ``name`` that no other company uses. Company slugs are global
    across tenants, so collisions get "-2", "-3", ... appended.
    """
    base = slugify(name)
    candidate = base
    suffix = 2
    while True:
        query = db.query(Company.id).filter(Company.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Company.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1

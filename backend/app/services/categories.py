from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..models.category import Category
from ..models.company import Company
from ..schemas.directory import CategoryCount, CategoryCreate, CategoryOut, DomainOut
from .slugs import slugify
from .visibility import category_slug_family, has_any_tag, visible_companies_query

logger = logging.getLogger(__name__)


def list_main_categories(db: Session) -> list[Category]:
    return (
        db.query(Category)
        .filter(Category.parent_id.is_(None), Category.is_active.is_(True))
        .order_by(Category.order.asc(), Category.slug.asc())
        .all()
    )


def list_child_categories(db: Session, parent_slug: str) -> list[Category]:
    parent = db.query(Category).filter(Category.slug == parent_slug).first()
    if parent is None:
        return []
    return (
        db.query(Category)
        .filter(Category.parent_id == parent.id, Category.is_active.is_(True))
        .order_by(Category.order.asc(), Category.slug.asc())
        .all()
    )


def count_companies_in_category(db: Session, category_slug: str, tenant: DomainOut) -> int:
    """
    Number of companies visible on ``tenant`` tagged with the category.

    For a main category, companies tagged only with one of its children are
    counted too (each company once).
    """
    family = category_slug_family(db, category_slug)
    companies = (
        visible_companies_query(db, tenant)
        .with_entities(Company.id, Company.categories)
        .all()
    )
    return sum(1 for row in companies if has_any_tag(row, family))


def count_companies_in_category_global(db: Session, category_slug: str) -> int:
    """
    Tenant-unscoped count over all active companies. Admin use only; public
    pages must use count_companies_in_category.
    """
    family = category_slug_family(db, category_slug)
    companies = (
        db.query(Company.id, Company.categories)
        .filter(Company.is_active.is_(True))
        .all()
    )
    return sum(1 for row in companies if has_any_tag(row, family))


def category_counts_for_tenant(db: Session, tenant: DomainOut) -> list[CategoryCount]:
    """Main categories with their tenant-scoped company counts, for navigation."""
    visible = (
        visible_companies_query(db, tenant)
        .with_entities(Company.id, Company.categories)
        .all()
    )

    counts: list[CategoryCount] = []
    for category in list_main_categories(db):
        family = category_slug_family(db, category.slug)
        counts.append(
            CategoryCount(
                category=CategoryOut.model_validate(category),
                company_count=sum(1 for row in visible if has_any_tag(row, family)),
            )
        )
    return counts


def validate_category_parent(db: Session, category: Category, parent_id: int | None) -> None:
    """
    Keep the taxonomy two levels deep.

    Raises ValueError for self-parenting, for a parent that is itself a
    child, and for moving a category that has children under a parent.
    """
    if parent_id is None:
        return
    if category.id is not None and parent_id == category.id:
        raise ValueError("A category cannot be its own parent")

    parent = db.get(Category, parent_id)
    if parent is None:
        raise ValueError(f"Parent category {parent_id} does not exist")
    if parent.parent_id is not None:
        raise ValueError("Categories are limited to two levels")
    if category.id is not None and (
        db.query(Category.id).filter(Category.parent_id == category.id).first() is not None
    ):
        raise ValueError("A category with children cannot become a child")


def create_category(db: Session, payload: CategoryCreate) -> Category:
    """Administer the shared taxonomy (not tenant-scoped)."""
    slug = slugify(payload.slug or payload.name)
    if db.query(Category.id).filter(Category.slug == slug).first() is not None:
        raise ValueError(f"Category with slug {slug!r} already exists")

    category = Category(
        slug=slug,
        name=payload.name,
        name_fr=payload.name_fr,
        name_en=payload.name_en,
        name_de=payload.name_de,
        icon=payload.icon,
        order=payload.order,
        is_active=payload.is_active,
    )
    validate_category_parent(db, category, payload.parent_id)
    category.parent_id = payload.parent_id

    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Created category %s", category.slug, extra={"step": "create_category"})
    return category

"""
Tenant visibility gate for company lookups.

A company is visible on a tenant only through a CompanyContent row for that
tenant: ``domain_id = tenant.id AND is_visible``, with both the company and
the domain active. Every listing below starts from that join, so a company
listed on another tenant can never leak into the result set.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ..core.config import get_settings
from ..core.errors import InvalidFilter
from ..models.category import Category
from ..models.company import Company
from ..models.company_content import CompanyContent
from ..models.domain import Domain
from ..schemas.directory import CompanyFilter, CompanyView, DomainOut
from .overrides import merge_override

logger = logging.getLogger(__name__)


def parse_company_filter(params: Mapping[str, Any]) -> CompanyFilter:
    """
    Build a CompanyFilter from raw query parameters.

    Malformed input raises InvalidFilter; nothing is clamped.
    """
    settings = get_settings()
    raw = {k: v for k, v in params.items() if v is not None}
    raw.setdefault("limit", settings.DEFAULT_PAGE_SIZE)

    try:
        company_filter = CompanyFilter.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'filter'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidFilter(problems) from e

    if company_filter.limit > settings.MAX_PAGE_SIZE:
        raise InvalidFilter(f"limit: must be at most {settings.MAX_PAGE_SIZE}")
    return company_filter


def visible_companies_query(db: Session, tenant: DomainOut) -> Query:
    """(Company, CompanyContent) pairs visible on ``tenant``."""
    return (
        db.query(Company, CompanyContent)
        .join(CompanyContent, CompanyContent.company_id == Company.id)
        .join(Domain, Domain.id == CompanyContent.domain_id)
        .filter(
            CompanyContent.domain_id == tenant.id,
            CompanyContent.is_visible.is_(True),
            Company.is_active.is_(True),
            Domain.is_active.is_(True),
        )
    )


def category_slug_family(db: Session, slug: str) -> set[str]:
    """
    The slug itself plus, for a main category, the slugs of its children.

    Unknown slugs are still matched literally against company tags.
    """
    slug = slug.strip().lower()
    family = {slug}
    category = db.query(Category).filter(Category.slug == slug).first()
    if category is not None and category.parent_id is None:
        family.update(
            child_slug.lower()
            for (child_slug,) in db.query(Category.slug).filter(Category.parent_id == category.id)
        )
    return family


def has_any_tag(company: Company, slugs: set[str]) -> bool:
    return any((tag or "").strip().lower() in slugs for tag in (company.categories or []))


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _apply_filter(query: Query, company_filter: CompanyFilter) -> Query:
    if company_filter.search:
        pattern = _like_pattern(company_filter.search)
        query = query.filter(
            or_(
                Company.name.ilike(pattern, escape="\\"),
                Company.address.ilike(pattern, escape="\\"),
                Company.city.ilike(pattern, escape="\\"),
            )
        )
    if company_filter.city:
        query = query.filter(func.lower(Company.city) == company_filter.city.lower())
    if company_filter.min_rating is not None:
        query = query.filter(Company.rating >= company_filter.min_rating)

    if company_filter.sort in ("popular", "rating"):
        return query.order_by(
            Company.rating.desc().nulls_last(),
            Company.review_count.desc(),
            Company.name.asc(),
            Company.id.asc(),
        )
    return query.order_by(Company.name.asc(), Company.id.asc())


def list_visible_companies(
    db: Session,
    tenant: DomainOut,
    company_filter: CompanyFilter | None = None,
) -> list[CompanyView]:
    company_filter = company_filter or CompanyFilter()
    query = _apply_filter(visible_companies_query(db, tenant), company_filter)

    start = company_filter.offset
    stop = company_filter.offset + company_filter.limit

    if company_filter.category:
        # Tags live in a JSON list, so matching scans only (id, tags) of the
        # tenant-scoped, ordered query; full rows are loaded for the page.
        family = category_slug_family(db, company_filter.category)
        page_ids = [
            row.id
            for row in query.with_entities(Company.id, Company.categories)
            if has_any_tag(row, family)
        ][start:stop]
        if not page_ids:
            return []
        rows = query.filter(Company.id.in_(page_ids)).all()
    else:
        rows = query.offset(start).limit(company_filter.limit).all()

    return [merge_override(company, content) for company, content in rows]


def get_visible_company(db: Session, tenant: DomainOut, slug: str) -> CompanyView | None:
    """
    The company with ``slug`` as seen on ``tenant``, or None.

    None covers both "no such slug" and "listed on another tenant only";
    callers must not tell those apart.
    """
    row = visible_companies_query(db, tenant).filter(Company.slug == slug).first()
    if row is None:
        return None
    company, content = row
    return merge_override(company, content)


def get_visible_company_id(db: Session, tenant: DomainOut, slug: str) -> int | None:
    row = (
        visible_companies_query(db, tenant)
        .with_entities(Company.id)
        .filter(Company.slug == slug)
        .first()
    )
    return row[0] if row else None


def count_visible_companies(db: Session, tenant: DomainOut) -> int:
    return visible_companies_query(db, tenant).count()

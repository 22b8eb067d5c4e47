import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..core.errors import InvalidFilter
from ..models.category import Category
from ..schemas.directory import (
    CategoryCount,
    CompanyView,
    DomainOut,
    ReviewOut,
    ReviewSubmit,
)
from ..services.categories import category_counts_for_tenant, count_companies_in_category
from ..services.reviews import (
    DEFAULT_REVIEW_LIMIT,
    MAX_REVIEW_LIMIT,
    list_company_reviews,
    submit_review,
)
from ..services.tenancy import get_tenant
from ..services.visibility import (
    get_visible_company,
    list_visible_companies,
    parse_company_filter,
)

router = APIRouter(tags=["directory"])
logger = logging.getLogger(__name__)


@router.get("/tenant", response_model=DomainOut)
def read_tenant(tenant: DomainOut = Depends(get_tenant)):
    return tenant


@router.get("/companies", response_model=list[CompanyView])
def list_companies(
    search: str | None = Query(None),
    category: str | None = Query(None),
    city: str | None = Query(None),
    min_rating: str | None = Query(None),
    sort: str | None = Query(None),
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    """
    Companies visible on the requesting tenant.

    Parameters are taken raw and validated as one filter, so any malformed
    value is a 400 naming the offending field.
    """
    params = {
        "search": search,
        "category": category,
        "city": city,
        "min_rating": min_rating,
        "sort": sort,
        "limit": limit,
        "offset": offset,
    }
    try:
        company_filter = parse_company_filter(params)
    except InvalidFilter as e:
        logger.info(
            "Rejected company filter: %s",
            e,
            extra={"tenant": tenant.hostname, "step": "list_companies"},
        )
        raise HTTPException(status_code=400, detail=str(e))

    return list_visible_companies(db, tenant, company_filter)


@router.get("/companies/{slug}", response_model=CompanyView)
def read_company(
    slug: str,
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    company = get_visible_company(db, tenant, slug)
    if company is None:
        # Same answer whether the slug is unknown or listed elsewhere
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("/companies/{slug}/reviews", response_model=list[ReviewOut])
def read_company_reviews(
    slug: str,
    limit: int = Query(DEFAULT_REVIEW_LIMIT, ge=1, le=MAX_REVIEW_LIMIT),
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    reviews = list_company_reviews(db, tenant, slug, limit)
    if reviews is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return reviews


@router.post("/companies/{slug}/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    slug: str,
    payload: ReviewSubmit,
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    review = submit_review(db, tenant, slug, payload)
    if review is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return review


@router.get("/categories", response_model=list[CategoryCount])
def list_categories(
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    return category_counts_for_tenant(db, tenant)


@router.get("/categories/{slug}/count")
def category_count(
    slug: str,
    tenant: DomainOut = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    if db.query(Category.id).filter(Category.slug == slug.lower()).first() is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return {
        "category": slug.lower(),
        "company_count": count_companies_in_category(db, slug.lower(), tenant),
    }

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.db import get_db
from ..models.category import Category
from ..models.company import Company
from ..schemas.directory import (
    CategoryCreate,
    CategoryOut,
    CompanyContentUpdate,
    CompanyCreate,
    CompanyView,
    DomainActivation,
    DomainAssignmentRequest,
    DomainOut,
    DomainRemovalRequest,
    ReviewModeration,
    ReviewOut,
)
from ..services.catalog import (
    assign_companies_to_domain,
    create_company,
    remove_companies_from_domain,
    set_domain_active,
    update_company_content,
)
from ..services.categories import count_companies_in_category_global, create_category
from ..services.overrides import unscoped_company_view
from ..services.reviews import moderate_review
from .security import verify_api_key

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(verify_api_key)])
logger = logging.getLogger(__name__)


@router.post("/companies", response_model=CompanyView, status_code=201)
def admin_create_company(payload: CompanyCreate, db: Session = Depends(get_db)):
    try:
        company = create_company(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return unscoped_company_view(company)


@router.get("/companies/{company_id}", response_model=CompanyView)
def admin_read_company(company_id: int, db: Session = Depends(get_db)):
    """Unscoped view: ignores tenants and the company's active flag."""
    company = db.get(Company, company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return unscoped_company_view(company)


@router.post("/companies/{company_id}/sync-reviews", status_code=202)
def admin_sync_reviews(company_id: int, db: Session = Depends(get_db)):
    if db.get(Company, company_id) is None:
        raise HTTPException(status_code=404, detail="Company not found")

    celery_app.send_task(
        "app.services.review_sync.sync_company_reviews_task",
        args=[company_id],
        queue="reviews",
    )
    logger.info(
        "Queued review sync",
        extra={"company_id": company_id, "step": "sync_reviews"},
    )
    return {"company_id": company_id, "status": "queued"}


@router.post("/reviews/{review_id}/moderate", response_model=ReviewOut)
def admin_moderate_review(
    review_id: int,
    payload: ReviewModeration,
    db: Session = Depends(get_db),
):
    review = moderate_review(db, review_id, payload.action)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.post("/domains/{domain_id}/companies")
def admin_assign_companies(
    domain_id: int,
    payload: DomainAssignmentRequest,
    db: Session = Depends(get_db),
):
    assigned = assign_companies_to_domain(db, domain_id, payload.company_ids, payload.is_visible)
    if assigned is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return {"domain_id": domain_id, "assigned": assigned}


@router.delete("/domains/{domain_id}/companies")
def admin_remove_companies(
    domain_id: int,
    payload: DomainRemovalRequest,
    db: Session = Depends(get_db),
):
    removed = remove_companies_from_domain(db, domain_id, payload.company_ids)
    if removed is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return {"domain_id": domain_id, "removed": removed}


@router.patch("/domains/{domain_id}/companies/{company_id}")
def admin_update_content(
    domain_id: int,
    company_id: int,
    payload: CompanyContentUpdate,
    db: Session = Depends(get_db),
):
    content = update_company_content(db, domain_id, company_id, payload)
    if content is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return {
        "domain_id": content.domain_id,
        "company_id": content.company_id,
        "is_visible": content.is_visible,
        "custom_description": content.custom_description,
        "promotions": content.promotions,
        "extra_images": content.extra_images,
        "custom_fields": content.custom_fields,
    }


@router.patch("/domains/{domain_id}", response_model=DomainOut)
def admin_set_domain_active(
    domain_id: int,
    payload: DomainActivation,
    db: Session = Depends(get_db),
):
    domain = set_domain_active(db, domain_id, payload.is_active)
    if domain is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return domain


@router.post("/categories", response_model=CategoryOut, status_code=201)
def admin_create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    try:
        return create_category(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/categories/{slug}/count")
def admin_category_count(slug: str, db: Session = Depends(get_db)):
    if db.query(Category.id).filter(Category.slug == slug.lower()).first() is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return {
        "category": slug.lower(),
        "company_count": count_companies_in_category_global(db, slug.lower()),
    }

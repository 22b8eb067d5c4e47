from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.db import session_scope
from ..models.company import Company
from ..models.review import ReviewSource
from .connectors import ReviewsConnector, get_connectors, run_coroutine
from .reviews import ReviewAggregate, recompute_aggregate, upsert_external_reviews

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    company_id: int
    place_id: str | None
    upserted: int
    aggregate: ReviewAggregate | None


def sync_company_reviews(
    db: Session,
    company_id: int,
    connector: ReviewsConnector | None = None,
) -> SyncResult:
    """
    Pull provider reviews for one company and refresh its aggregate.

    - Looks up and stores the place id when the company has none yet.
    - Upserts on (company_id, source, external_review_id), so running the
      sync twice never duplicates a review.
    - The upsert, last_synced_at and the recomputed aggregate are committed
      together by recompute_aggregate.
    """
    company = db.query(Company).filter(Company.id == company_id).first()
    if company is None:
        raise ValueError(f"Company {company_id} not found")

    connector = connector or get_connectors().get(ReviewSource.GOOGLE)
    if connector is None:
        raise ValueError("No reviews connector available")

    place_id = company.google_place_id
    if not place_id:
        place_id = run_coroutine(connector.find_place_id(company.name, company.address))
        if not place_id:
            logger.info(
                "No place found for company",
                extra={"company_id": company_id, "connector": connector.name, "step": "sync_reviews"},
            )
            return SyncResult(company_id=company_id, place_id=None, upserted=0, aggregate=None)
        company.google_place_id = place_id

    reviews = run_coroutine(connector.fetch_reviews(place_id))

    try:
        upserted = upsert_external_reviews(db, company_id, reviews)
        company.last_synced_at = datetime.utcnow()
    except Exception:
        db.rollback()
        raise
    aggregate = recompute_aggregate(db, company_id)

    logger.info(
        "Synced %d reviews",
        upserted,
        extra={"company_id": company_id, "connector": connector.name, "step": "sync_reviews"},
    )
    return SyncResult(company_id=company_id, place_id=place_id, upserted=upserted, aggregate=aggregate)


@celery_app.task(name="app.services.review_sync.sync_company_reviews_task")
def sync_company_reviews_task(company_id: int) -> int:
    with session_scope() as db:
        try:
            result = sync_company_reviews(db, company_id)
        except Exception:
            logger.exception(
                "Review sync failed",
                extra={"company_id": company_id, "step": "sync_reviews"},
            )
            raise
        return result.upserted


@celery_app.task(name="app.services.review_sync.sync_all_reviews")
def sync_all_reviews() -> int:
    """
    Periodic task: queue one sync per active company linked to a place.

    Each company runs as its own task so one provider failure does not stop
    the batch.
    """
    with session_scope() as db:
        company_ids = [
            company_id
            for (company_id,) in db.query(Company.id)
            .filter(Company.is_active.is_(True), Company.google_place_id.isnot(None))
            .order_by(Company.id.asc())
        ]

    for company_id in company_ids:
        celery_app.send_task(
            "app.services.review_sync.sync_company_reviews_task",
            args=[company_id],
            queue="reviews",
        )

    logger.info(
        "Queued review sync for %d companies",
        len(company_ids),
        extra={"step": "sync_all_reviews"},
    )
    return len(company_ids)

"""
Review aggregation and review writes.

Company.rating / Company.review_count are only ever written by
``recompute_aggregate``, which always starts from the full qualifying review
set. It has exactly two callers: the external sync (review_sync) and
manual moderation (``moderate_review`` below). Re-running it is harmless.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from ..models.company import Company
from ..models.review import Review, ReviewSource
from ..schemas.directory import DomainOut, ExternalReview, ReviewSubmit
from .visibility import get_visible_company_id

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_LIMIT = 10
MAX_REVIEW_LIMIT = 50


@dataclass(frozen=True)
class ReviewAggregate:
    rating: float | None       # one decimal, None when there are no reviews
    rating_raw: float | None   # unrounded mean
    review_count: int


def round_rating(value: float) -> float:
    """Half-up rounding to one decimal (4.25 -> 4.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_aggregate(ratings: Sequence[int]) -> ReviewAggregate:
    if not ratings:
        return ReviewAggregate(rating=None, rating_raw=None, review_count=0)
    raw = sum(ratings) / len(ratings)
    return ReviewAggregate(rating=round_rating(raw), rating_raw=raw, review_count=len(ratings))


def recompute_aggregate(db: Session, company_id: int) -> ReviewAggregate:
    """
    Recompute and store the company's rating and review count from its
    active, approved reviews.

    Commits together with any pending changes in ``db`` (the review writes
    that triggered the recompute). On failure the session is rolled back and
    the error propagates so the caller can retry.
    """
    try:
        # autoflush is off; pending review edits must be visible below
        db.flush()
        company = (
            db.query(Company)
            .filter(Company.id == company_id)
            .with_for_update()
            .first()
        )
        if company is None:
            raise ValueError(f"Company {company_id} not found")

        ratings = [
            rating
            for (rating,) in db.query(Review.rating).filter(
                Review.company_id == company_id,
                Review.is_active.is_(True),
                Review.is_approved.is_(True),
            )
        ]
        aggregate = compute_aggregate(ratings)

        company.rating = aggregate.rating
        company.rating_raw = aggregate.rating_raw
        company.review_count = aggregate.review_count
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Recomputed review aggregate: rating=%s count=%s",
        aggregate.rating,
        aggregate.review_count,
        extra={"company_id": company_id, "step": "recompute_aggregate"},
    )
    return aggregate


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Review upsert is not supported on {dialect}")
    return insert


def upsert_external_reviews(
    db: Session,
    company_id: int,
    reviews: Iterable[ExternalReview],
) -> int:
    """
    Insert or update provider reviews keyed by
    (company_id, source, external_review_id).

    Re-delivered reviews update their mutable fields in place; moderation
    flags on existing rows are left alone. Does not commit.
    """
    insert = _dialect_insert(db)
    now = datetime.utcnow()
    upserted = 0

    for review in reviews:
        stmt = insert(Review.__table__).values(
            company_id=company_id,
            source=review.source,
            external_review_id=review.external_review_id,
            author_name=review.author_name,
            author_photo=review.author_photo,
            rating=review.rating,
            comment=review.comment,
            review_date=review.review_date,
            # provider reviews are published without moderation
            is_active=True,
            is_approved=True,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["company_id", "source", "external_review_id"],
            set_={
                "author_name": stmt.excluded.author_name,
                "author_photo": stmt.excluded.author_photo,
                "rating": stmt.excluded.rating,
                "comment": stmt.excluded.comment,
                "review_date": stmt.excluded.review_date,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        db.execute(stmt)
        upserted += 1

    return upserted


def submit_review(
    db: Session,
    tenant: DomainOut,
    company_slug: str,
    payload: ReviewSubmit,
) -> Review | None:
    """
    Store a visitor review, pending moderation.

    Returns None when the company is not visible on ``tenant``. Pending
    reviews do not count towards the aggregate, so nothing is recomputed.
    """
    company_id = get_visible_company_id(db, tenant, company_slug)
    if company_id is None:
        return None

    review = Review(
        company_id=company_id,
        author_name=payload.author_name.strip(),
        author_email=payload.author_email,
        rating=payload.rating,
        comment=payload.comment,
        source=ReviewSource.MANUAL,
        review_date=datetime.utcnow(),
        is_active=True,
        is_approved=False,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(
        "Review submitted for moderation",
        extra={
            "company_id": company_id,
            "review_id": review.id,
            "tenant": tenant.hostname,
            "step": "submit_review",
        },
    )
    return review


def moderate_review(db: Session, review_id: int, action: str) -> Review | None:
    """Approve or reject a review and refresh the company aggregate."""
    if action not in ("approve", "reject"):
        raise ValueError(f"Unknown moderation action {action!r}")

    review = db.query(Review).filter(Review.id == review_id).first()
    if review is None:
        return None

    review.is_approved = action == "approve"
    recompute_aggregate(db, review.company_id)
    db.refresh(review)

    logger.info(
        "Review %s",
        "approved" if review.is_approved else "rejected",
        extra={"company_id": review.company_id, "review_id": review.id, "step": "moderate_review"},
    )
    return review


def list_company_reviews(
    db: Session,
    tenant: DomainOut,
    company_slug: str,
    limit: int = DEFAULT_REVIEW_LIMIT,
) -> list[Review] | None:
    """
    Published reviews of a company visible on ``tenant``, newest first.

    Reviews belong to the company, so every tenant listing it shows the same
    set. Returns None when the company is not visible on ``tenant``.
    """
    company_id = get_visible_company_id(db, tenant, company_slug)
    if company_id is None:
        return None

    return (
        db.query(Review)
        .filter(
            Review.company_id == company_id,
            Review.is_active.is_(True),
            Review.is_approved.is_(True),
        )
        .order_by(Review.review_date.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )

"""
Tests for the external review sync (review_sync.py) with a fake provider.
"""
from datetime import datetime

import pytest
from unittest.mock import MagicMock

from app.core.errors import ReviewSyncError
from app.models import Company, Review, ReviewSource
from app.schemas.directory import ExternalReview
from app.services import review_sync
from app.services.connectors import ReviewsConnector
from app.services.review_sync import sync_all_reviews, sync_company_reviews, sync_company_reviews_task

from tests.fixtures.directory_fixtures import make_company, make_review


class FakeConnector(ReviewsConnector):
    name = "fake_places"
    source = ReviewSource.GOOGLE

    def __init__(self, reviews=None, place_id="place-1", error=None):
        self.reviews = reviews or []
        self.place_id = place_id
        self.error = error
        self.lookups = []

    async def find_place_id(self, name, address=None):
        self.lookups.append((name, address))
        return self.place_id

    async def fetch_reviews(self, place_id):
        if self.error:
            raise self.error
        return list(self.reviews)


def _review(external_id: str, rating: int) -> ExternalReview:
    return ExternalReview(
        source=ReviewSource.GOOGLE,
        external_review_id=external_id,
        author_name="Jean",
        rating=rating,
        comment="Service rapide et souriant.",
        review_date=datetime(2026, 3, 1),
    )


class TestSyncCompanyReviews:

    def test_sync_upserts_and_recomputes(self, db):
        company = make_company(db, "le-gourmet", google_place_id="place-1")
        connector = FakeConnector([_review("g1", 4), _review("g2", 5)])

        result = sync_company_reviews(db, company.id, connector)

        assert result.upserted == 2
        assert result.aggregate.rating == 4.5
        db.refresh(company)
        assert company.review_count == 2
        assert company.last_synced_at is not None
        assert connector.lookups == []

    def test_resync_with_changed_rating_keeps_one_row(self, db):
        company = make_company(db, "le-gourmet", google_place_id="place-1")

        sync_company_reviews(db, company.id, FakeConnector([_review("g1", 2)]))
        sync_company_reviews(db, company.id, FakeConnector([_review("g1", 5)]))

        rows = db.query(Review).filter(Review.external_review_id == "g1").all()
        assert len(rows) == 1
        assert rows[0].rating == 5
        db.refresh(company)
        assert company.rating == 5.0
        assert company.review_count == 1

    def test_manual_reviews_stay_in_aggregate(self, db):
        company = make_company(db, "le-gourmet", google_place_id="place-1")
        make_review(db, company, 3)

        result = sync_company_reviews(db, company.id, FakeConnector([_review("g1", 5)]))
        assert result.aggregate.review_count == 2
        assert result.aggregate.rating == 4.0

    def test_missing_place_id_is_looked_up_and_stored(self, db):
        company = make_company(db, "le-gourmet", address="1 rue du Sel")
        connector = FakeConnector([_review("g1", 4)], place_id="found-place")

        result = sync_company_reviews(db, company.id, connector)

        assert result.place_id == "found-place"
        assert connector.lookups == [("Le Gourmet", "1 rue du Sel")]
        db.refresh(company)
        assert company.google_place_id == "found-place"

    def test_no_place_found(self, db):
        company = make_company(db, "inconnu")
        result = sync_company_reviews(db, company.id, FakeConnector(place_id=None))

        assert result.place_id is None
        assert result.upserted == 0
        assert db.query(Review).count() == 0

    def test_provider_failure_propagates(self, db):
        company = make_company(db, "le-gourmet", google_place_id="place-1", rating=4.0, review_count=3)
        connector = FakeConnector(error=ReviewSyncError("status REQUEST_DENIED"))

        with pytest.raises(ReviewSyncError):
            sync_company_reviews(db, company.id, connector)

        db.refresh(company)
        assert company.rating == 4.0
        assert company.review_count == 3

    def test_unknown_company(self, db):
        with pytest.raises(ValueError):
            sync_company_reviews(db, 999, FakeConnector())


class TestSyncTasks:

    def test_task_uses_registered_connector(self, db, session_factory, monkeypatch):
        company = make_company(db, "le-gourmet", google_place_id="place-1")
        registry = MagicMock()
        registry.get.return_value = FakeConnector([_review("g1", 4)])
        monkeypatch.setattr(review_sync, "get_connectors", lambda: registry)

        assert sync_company_reviews_task.run(company.id) == 1
        registry.get.assert_called_once_with("google")

        db.expire_all()
        assert db.query(Company).filter(Company.id == company.id).one().review_count == 1

    def test_sync_all_queues_linked_active_companies(self, db, session_factory, monkeypatch):
        linked = make_company(db, "linked", google_place_id="p1")
        make_company(db, "unlinked")
        make_company(db, "inactive", google_place_id="p2", is_active=False)

        send_task = MagicMock()
        monkeypatch.setattr(review_sync.celery_app, "send_task", send_task)

        assert sync_all_reviews.run() == 1
        send_task.assert_called_once_with(
            "app.services.review_sync.sync_company_reviews_task",
            args=[linked.id],
            queue="reviews",
        )

# backend/app/services/connectors/google_places.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import logging

import httpx

from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import ReviewsConnector

from ...core.config import get_settings
from ...core.errors import ReviewSyncError
from ...models.review import ReviewSource
from ...schemas.directory import ExternalReview

from ..caching import cache_get, cache_set

logger = logging.getLogger(__name__)

# Statuses that mean "nothing there" rather than "request failed"
_EMPTY_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


def external_review_id(raw: Dict[str, Any]) -> str:
    """
    Stable provider-side id for a Google review.

    The Places API has no review id; the author's contributor URL is unique
    per (place, author), and author name + timestamp covers anonymous
    entries.
    """
    author_url = (raw.get("author_url") or "").strip()
    if author_url:
        parts = [p for p in author_url.split("/") if p]
        if "contrib" in parts:
            idx = parts.index("contrib")
            if idx + 1 < len(parts):
                return f"contrib:{parts[idx + 1]}"
        return author_url
    return f"{raw.get('author_name') or 'anonymous'}:{raw.get('time') or 0}"


def normalize_review(raw: Dict[str, Any]) -> Optional[ExternalReview]:
    """Google review payload -> ExternalReview, or None if it has no text or no usable rating."""
    text = (raw.get("text") or "").strip()
    if not text:
        return None

    try:
        rating = int(raw.get("rating"))
    except (TypeError, ValueError):
        return None
    if not 1 <= rating <= 5:
        return None

    timestamp = raw.get("time") or 0
    review_date = datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)

    return ExternalReview(
        source=ReviewSource.GOOGLE,
        external_review_id=external_review_id(raw),
        author_name=(raw.get("author_name") or "Anonyme").strip(),
        author_photo=raw.get("profile_photo_url"),
        rating=rating,
        comment=text,
        review_date=review_date,
    )


class GooglePlacesConnector(ReviewsConnector):
    name = "google_places"
    source = ReviewSource.GOOGLE

    def __init__(self) -> None:
        settings = get_settings()
        self.api_key: str | None = settings.GOOGLE_MAPS_API_KEY
        self.base_url: str = settings.GOOGLE_PLACES_BASE_URL.rstrip("/")
        self.timeout: int = int(settings.GOOGLE_PLACES_TIMEOUT_SECONDS or 20)
        self.language: str = settings.GOOGLE_PLACES_LANGUAGE or "fr"
        self.place_id_ttl: int = int(settings.GOOGLE_PLACE_ID_CACHE_TTL_SECONDS or 0)

    def _require_key(self) -> str:
        if not self.api_key:
            raise ReviewSyncError("GOOGLE_MAPS_API_KEY is not configured")
        return self.api_key

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "key": self._require_key()}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}/{path}", params=params)
            resp.raise_for_status()
            body = resp.json()

        status = body.get("status")
        if status == "OK" or status in _EMPTY_STATUSES:
            return body

        logger.warning(
            "Google Places %s returned %s: %s",
            path,
            status,
            (body.get("error_message") or "")[:200],
            extra={"connector": self.name},
        )
        raise ReviewSyncError(f"Google Places {path} failed with status {status}")

    async def find_place_id(self, name: str, address: str | None = None) -> str | None:
        query = f"{name}, {address}" if address else name
        cache_key = f"google_places:find:{query.lower()}"

        if self.place_id_ttl > 0:
            cached = cache_get(cache_key)
            if cached is not None:
                return cached or None

        body = await self._get(
            "findplacefromtext/json",
            {"input": query, "inputtype": "textquery", "fields": "place_id,name"},
        )
        candidates: List[Dict[str, Any]] = body.get("candidates") or []
        place_id = candidates[0].get("place_id") if candidates else None

        if self.place_id_ttl > 0:
            # Cache misses too ("") so unknown businesses are not re-queried every run
            cache_set(cache_key, place_id or "", self.place_id_ttl)
        return place_id

    async def fetch_reviews(self, place_id: str) -> list[ExternalReview]:
        body = await self._get(
            "details/json",
            {
                "place_id": place_id,
                "fields": "place_id,name,rating,user_ratings_total,reviews",
                "language": self.language,
                "reviews_sort": "newest",
            },
        )
        result = body.get("result") or {}
        reviews: list[ExternalReview] = []
        for raw in result.get("reviews") or []:
            review = normalize_review(raw)
            if review is not None:
                reviews.append(review)

        logger.info(
            "Fetched %d Google reviews",
            len(reviews),
            extra={"connector": self.name, "step": "fetch_reviews"},
        )
        return reviews

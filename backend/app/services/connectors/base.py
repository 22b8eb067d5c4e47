from abc import ABC, abstractmethod

from ...schemas.directory import ExternalReview


class ReviewsConnector(ABC):
    """Provider that can locate a business and deliver its reviews."""

    name: str
    # value stored in Review.source for rows from this connector
    source: str

    @abstractmethod
    async def find_place_id(self, name: str, address: str | None = None) -> str | None:
        ...

    @abstractmethod
    async def fetch_reviews(self, place_id: str) -> list[ExternalReview]:
        ...

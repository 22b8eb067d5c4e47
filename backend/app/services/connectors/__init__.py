from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Awaitable, Dict, TypeVar
import logging

from .base import ReviewsConnector
from .google_places import GooglePlacesConnector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectorRegistry:
    """
    Registry for review providers.

    - Instantiates each connector once per process (see get_connectors).
    - Looks connectors up by the Review.source value they produce.
    """

    def __init__(self) -> None:
        self._connectors: Dict[str, ReviewsConnector] = {
            "google": GooglePlacesConnector(),
        }

    def get(self, source: str) -> ReviewsConnector | None:
        connector = self._connectors.get(source)
        if connector is None:
            logger.warning(
                "No connector registered for source '%s'",
                source,
                extra={"connector": source},
            )
        return connector


def run_coroutine(coro: Awaitable[T]) -> T:
    """Run an async connector call from sync code (Celery tasks, sync routes)."""
    # Use a dedicated event loop; Celery workers are synchronous
    return asyncio.run(coro)


@lru_cache
def get_connectors() -> ConnectorRegistry:
    return ConnectorRegistry()


__all__ = [
    "ReviewsConnector",
    "GooglePlacesConnector",
    "ConnectorRegistry",
    "get_connectors",
    "run_coroutine",
]

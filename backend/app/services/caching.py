"""
JSON values in Redis with a TTL.

Used for host -> tenant resolution and Google place-id lookups. Redis being
unreachable degrades to a cache miss; it never fails the caller.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator

import redis
from ..core.config import get_settings

logger = logging.getLogger(__name__)


@contextmanager
def _redis_client() -> Iterator[redis.Redis]:
    # One short-lived client per operation; Celery workers fork and must not
    # inherit open sockets.
    client = redis.from_url(
        get_settings().REDIS_URL,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )
    try:
        yield client
    finally:
        try:
            client.close()
        except redis.RedisError:
            pass


def cache_get(key: str) -> Any | None:
    """Decoded value for ``key``, or None when missing, expired or unreachable."""
    with _redis_client() as client:
        try:
            raw = client.get(key)
        except redis.RedisError:
            logger.debug("Redis unavailable reading %s", key, extra={"step": "cache"})
            return None
    return json.loads(raw) if raw is not None else None


def cache_set(key: str, value: Any, ttl: int) -> None:
    with _redis_client() as client:
        try:
            client.set(key, json.dumps(value), ex=ttl)
        except redis.RedisError:
            logger.debug("Redis unavailable writing %s", key, extra={"step": "cache"})


def cache_delete(*keys: str) -> None:
    """Drop cached entries, e.g. after a domain is edited or deactivated."""
    if not keys:
        return
    with _redis_client() as client:
        try:
            client.delete(*keys)
        except redis.RedisError:
            logger.warning("Could not invalidate cache keys %s", keys, extra={"step": "cache"})

"""
Host resolution: maps the raw HTTP Host header to a tenant Domain.

Resolution happens once per request at the API boundary (see ``get_tenant``);
the resulting ``DomainOut`` is passed explicitly into every listing call.
"""
from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..core.errors import TenantNotResolved
from ..models.domain import Domain
from ..schemas.directory import DomainOut
from .caching import cache_delete, cache_get, cache_set

logger = logging.getLogger(__name__)

HOST_CACHE_PREFIX = "tenant:host:"


def normalize_host(host_header: str | None) -> str:
    """
    "www.Haguenau.pro:3000" -> "haguenau.pro".

    Drops everything after the first ":", a leading "www." and a trailing
    root dot, then lowercases.
    """
    host = (host_header or "").strip()
    host = host.split(":", 1)[0]
    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[len("www."):]
    return host


def _lookup_active_domain(db: Session, hostname: str) -> DomainOut | None:
    if not hostname:
        return None

    settings = get_settings()
    ttl = settings.DOMAIN_CACHE_TTL_SECONDS
    cache_key = f"{HOST_CACHE_PREFIX}{hostname}"

    if ttl > 0:
        cached = cache_get(cache_key)
        if cached is not None:
            return DomainOut.model_validate(cached)

    domain = (
        db.query(Domain)
        .filter(Domain.hostname == hostname, Domain.is_active.is_(True))
        .first()
    )
    if not domain:
        return None

    tenant = DomainOut.model_validate(domain)
    if ttl > 0:
        cache_set(cache_key, tenant.model_dump(), ttl)
    return tenant


def _default_tenant(db: Session) -> DomainOut:
    settings = get_settings()
    default_host = normalize_host(settings.DEFAULT_TENANT_HOSTNAME)
    if not default_host:
        raise TenantNotResolved("DEFAULT_TENANT_HOSTNAME is not configured")

    tenant = _lookup_active_domain(db, default_host)
    if tenant is None:
        raise TenantNotResolved(
            f"Default tenant {default_host!r} does not exist or is inactive"
        )
    return tenant


def resolve_tenant(db: Session, host_header: str | None) -> DomainOut:
    """
    Return the active Domain whose hostname matches ``host_header``.

    Unmatched (or deactivated) hosts are served by the configured default
    tenant; that fallback is logged, not raised. ``TenantNotResolved`` is
    raised only when the default itself is unusable.
    """
    hostname = normalize_host(host_header)
    tenant = _lookup_active_domain(db, hostname)
    if tenant is not None:
        return tenant

    tenant = _default_tenant(db)
    logger.warning(
        "Host %r matched no active domain; serving default tenant",
        host_header,
        extra={"host": hostname, "tenant": tenant.hostname, "step": "resolve_tenant"},
    )
    return tenant


def ensure_default_tenant(db: Session) -> DomainOut:
    """Start-up check: refuse to serve traffic without a usable default tenant."""
    tenant = _default_tenant(db)
    logger.info(
        "Default tenant is %s",
        tenant.hostname,
        extra={"tenant": tenant.hostname, "step": "startup"},
    )
    return tenant


def invalidate_tenant_cache(hostname: str) -> None:
    cache_delete(f"{HOST_CACHE_PREFIX}{normalize_host(hostname)}")


def get_tenant(request: Request, db: Session = Depends(get_db)) -> DomainOut:
    """FastAPI dependency: the tenant for this request's Host header."""
    return resolve_tenant(db, request.headers.get("host"))

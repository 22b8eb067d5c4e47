from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.company import Company
from ..models.company_content import CompanyContent
from ..models.domain import Domain
from ..schemas.directory import CompanyContentUpdate, CompanyCreate, DomainOut
from .slugs import unique_slug
from .tenancy import invalidate_tenant_cache

logger = logging.getLogger(__name__)


def create_company(db: Session, payload: CompanyCreate) -> Company:
    """
    Insert a company under a slug no other company uses.

    A concurrent insert can still take the slug between the check and the
    flush; in that case the slug is recomputed once.
    """
    data = payload.model_dump()
    for attempt in range(2):
        slug = unique_slug(db, payload.name)
        try:
            with db.begin_nested():
                company = Company(slug=slug, **data)
                db.add(company)
                db.flush()
            break
        except IntegrityError:
            if attempt == 1:
                db.rollback()
                raise
            logger.warning(
                "Slug %r taken concurrently, retrying",
                slug,
                extra={"step": "create_company"},
            )

    db.commit()
    db.refresh(company)
    logger.info(
        "Created company %s",
        company.slug,
        extra={"company_id": company.id, "step": "create_company"},
    )
    return company


def _get_content(db: Session, domain_id: int, company_id: int) -> CompanyContent | None:
    return (
        db.query(CompanyContent)
        .filter(
            CompanyContent.domain_id == domain_id,
            CompanyContent.company_id == company_id,
        )
        .with_for_update()
        .first()
    )


def assign_companies_to_domain(
    db: Session,
    domain_id: int,
    company_ids: Iterable[int],
    is_visible: bool = True,
) -> list[int] | None:
    """
    List companies on a domain. Existing listings only get their
    visibility flag updated; their overrides are kept.

    Returns the ids actually assigned (unknown companies are skipped), or
    None when the domain does not exist.
    """
    domain = db.query(Domain).filter(Domain.id == domain_id).first()
    if domain is None:
        return None

    wanted = list(dict.fromkeys(company_ids))
    known = {
        company_id
        for (company_id,) in db.query(Company.id).filter(Company.id.in_(wanted))
    }
    assigned: list[int] = []

    try:
        for company_id in wanted:
            if company_id not in known:
                logger.warning(
                    "Skipping unknown company",
                    extra={"company_id": company_id, "tenant": domain.hostname, "step": "assign"},
                )
                continue

            content = _get_content(db, domain_id, company_id)
            if content is None:
                try:
                    with db.begin_nested():
                        content = CompanyContent(
                            company_id=company_id,
                            domain_id=domain_id,
                            is_visible=is_visible,
                        )
                        db.add(content)
                        db.flush()
                except IntegrityError:
                    # Created by a concurrent request; update that row instead
                    content = _get_content(db, domain_id, company_id)
                    if content is None:
                        raise
            content.is_visible = is_visible
            assigned.append(company_id)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Assigned %d companies",
        len(assigned),
        extra={"tenant": domain.hostname, "step": "assign"},
    )
    return assigned


def remove_companies_from_domain(
    db: Session,
    domain_id: int,
    company_ids: Iterable[int],
) -> int | None:
    """Delete the listings (and their overrides). Returns the number removed."""
    domain = db.query(Domain).filter(Domain.id == domain_id).first()
    if domain is None:
        return None

    removed = (
        db.query(CompanyContent)
        .filter(
            CompanyContent.domain_id == domain_id,
            CompanyContent.company_id.in_(list(company_ids)),
        )
        .delete(synchronize_session=False)
    )
    db.commit()

    logger.info(
        "Removed %d companies",
        removed,
        extra={"tenant": domain.hostname, "step": "unassign"},
    )
    return removed


def update_company_content(
    db: Session,
    domain_id: int,
    company_id: int,
    overrides: CompanyContentUpdate,
) -> CompanyContent | None:
    """
    Apply the fields present in ``overrides`` to an existing listing.

    Sending an empty value clears the override so the company's own value
    shows again. Returns None when the company is not listed on the domain.
    """
    content = _get_content(db, domain_id, company_id)
    if content is None:
        return None

    changes = overrides.model_dump(exclude_unset=True)
    if changes.get("is_visible") is None:
        changes.pop("is_visible", None)
    for field, value in changes.items():
        setattr(content, field, value)

    db.commit()
    db.refresh(content)

    logger.info(
        "Updated listing overrides: %s",
        ", ".join(sorted(changes)) or "none",
        extra={"company_id": company_id, "step": "update_content"},
    )
    return content


def set_domain_active(db: Session, domain_id: int, is_active: bool) -> DomainOut | None:
    domain = db.query(Domain).filter(Domain.id == domain_id).first()
    if domain is None:
        return None

    domain.is_active = is_active
    db.commit()
    db.refresh(domain)
    invalidate_tenant_cache(domain.hostname)

    logger.info(
        "Domain %s",
        "activated" if is_active else "deactivated",
        extra={"tenant": domain.hostname, "step": "set_domain_active"},
    )
    return DomainOut.model_validate(domain)

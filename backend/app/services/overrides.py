from __future__ import annotations

from typing import Any

from ..models.company import Company
from ..models.company_content import CompanyContent
from ..schemas.directory import CompanyView

# (CompanyView field, CompanyContent override attribute, Company base attribute)
OVERRIDABLE_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("description", "custom_description", "description"),
    ("promotions", "promotions", "promotions"),
    ("images", "extra_images", "images"),
    ("custom_fields", "custom_fields", "custom_fields"),
)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def merge_override(company: Company, content: CompanyContent | None) -> CompanyView:
    """
    Shape a company for rendering on one tenant.

    Each overridable field takes the tenant's value when it is present and
    non-empty, else the company's own value unchanged. Without a content
    row the base fields are returned as they are and the view is marked
    ``tenant_scoped=False``.
    """
    data: dict[str, Any] = {
        "id": company.id,
        "name": company.name,
        "slug": company.slug,
        "address": company.address,
        "city": company.city,
        "postal_code": company.postal_code,
        "phone": company.phone,
        "email": company.email,
        "website": company.website,
        "categories": list(company.categories or []),
        "latitude": company.latitude,
        "longitude": company.longitude,
        "rating": company.rating,
        "review_count": company.review_count or 0,
        "tenant_scoped": content is not None,
    }

    for view_field, override_attr, base_attr in OVERRIDABLE_FIELDS:
        base_value = getattr(company, base_attr)
        override = getattr(content, override_attr) if content is not None else None
        data[view_field] = override if _is_present(override) else base_value

    return CompanyView(**data)


def unscoped_company_view(company: Company) -> CompanyView:
    """Admin-wide view of a company, outside any tenant."""
    return merge_override(company, None)

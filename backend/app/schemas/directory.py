# backend/app/schemas/directory.py
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, constr

MAX_SEARCH_LEN = 200
MAX_AUTHOR_NAME_LEN = 100
MIN_COMMENT_LEN = 10
MAX_COMMENT_LEN = 2000


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------

class DomainOut(BaseModel):
    """
    Resolved tenant. Plain data so it can be cached and passed explicitly
    into every listing call.
    """
    id: int
    hostname: str
    display_name: str
    is_active: bool
    primary_color: str | None = None
    logo_url: str | None = None
    site_title: str | None = None
    site_description: str | None = None
    settings: dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("settings", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or {}


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

class CompanyFilter(BaseModel):
    search: str | None = None
    category: str | None = None
    city: str | None = None
    min_rating: float | None = Field(default=None, ge=1, le=5)
    sort: Literal["name", "popular", "rating"] = "name"
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("search", "category", "city", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            stripped = v.strip()
            return stripped or None
        return v

    @field_validator("search")
    @classmethod
    def validate_search(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_SEARCH_LEN:
            raise ValueError(f"search must be at most {MAX_SEARCH_LEN} characters")
        return v

    @field_validator("category")
    @classmethod
    def _lower_category(cls, v: str | None) -> str | None:
        return v.lower() if v else v


class CompanyView(BaseModel):
    """Company as rendered for one tenant (or unscoped, for admin views)."""
    id: int
    name: str
    slug: str
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    categories: list[str] = []
    latitude: float | None = None
    longitude: float | None = None
    rating: float | None = None
    review_count: int = 0

    # overridable
    description: str | None = None
    promotions: str | None = None
    images: list[str] | None = None
    custom_fields: dict[str, Any] | None = None

    # False when built without a tenant join; never a tenant-visible result
    tenant_scoped: bool


class CompanyCreate(BaseModel):
    name: constr(min_length=1, max_length=200)
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    categories: list[str] = []
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    description: str | None = None
    promotions: str | None = None
    images: list[str] = []
    custom_fields: dict[str, Any] = {}
    google_place_id: str | None = None

    @field_validator("categories")
    @classmethod
    def _normalize_tags(cls, v: list[str]) -> list[str]:
        # tags are stored as category slugs
        seen: list[str] = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class CategoryOut(BaseModel):
    id: int
    slug: str
    name: str
    name_fr: str | None = None
    name_en: str | None = None
    name_de: str | None = None
    icon: str | None = None
    parent_id: int | None = None
    order: int = 0

    model_config = ConfigDict(from_attributes=True)


class CategoryCreate(BaseModel):
    name: constr(min_length=1, max_length=100)
    slug: str | None = None
    name_fr: str | None = None
    name_en: str | None = None
    name_de: str | None = None
    icon: str | None = None
    parent_id: int | None = None
    order: int = 0
    is_active: bool = True


class CategoryCount(BaseModel):
    category: CategoryOut
    company_count: int


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class ReviewSubmit(BaseModel):
    author_name: constr(min_length=2, max_length=MAX_AUTHOR_NAME_LEN)
    author_email: str | None = None
    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    @field_validator("comment", "author_email", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if len(v) < MIN_COMMENT_LEN:
            raise ValueError(f"comment must be at least {MIN_COMMENT_LEN} characters")
        if len(v) > MAX_COMMENT_LEN:
            raise ValueError(f"comment must be at most {MAX_COMMENT_LEN} characters")
        return v


class ReviewOut(BaseModel):
    id: int
    company_id: int
    author_name: str
    author_photo: str | None = None
    rating: int
    comment: str | None = None
    source: str
    review_date: datetime
    is_active: bool
    is_approved: bool

    model_config = ConfigDict(from_attributes=True)


class ExternalReview(BaseModel):
    """One review as delivered by an external provider, ready for upsert."""
    source: str
    external_review_id: str
    author_name: str
    author_photo: str | None = None
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    review_date: datetime


class ReviewModeration(BaseModel):
    action: Literal["approve", "reject"]


# ---------------------------------------------------------------------------
# Tenant assignment (admin)
# ---------------------------------------------------------------------------

class DomainAssignmentRequest(BaseModel):
    company_ids: list[int] = Field(min_length=1)
    is_visible: bool = True


class DomainRemovalRequest(BaseModel):
    company_ids: list[int] = Field(min_length=1)


class CompanyContentUpdate(BaseModel):
    is_visible: bool | None = None
    custom_description: str | None = None
    promotions: str | None = None
    extra_images: list[str] | None = None
    custom_fields: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")


class DomainActivation(BaseModel):
    is_active: bool

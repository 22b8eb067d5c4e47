"""
Tests for per-tenant field overrides in overrides.py.
"""
import pytest

from app.models import Company, CompanyContent
from app.services.overrides import OVERRIDABLE_FIELDS, merge_override, unscoped_company_view


def _company(**kwargs):
    defaults = dict(
        id=1,
        name="Le Gourmet",
        slug="le-gourmet",
        categories=["restaurant"],
        description="Cuisine alsacienne traditionnelle.",
        promotions="Menu du jour à 15 €",
        images=["https://cdn.example/base.jpg"],
        custom_fields={"terrasse": True},
        rating=4.3,
        review_count=12,
    )
    defaults.update(kwargs)
    return Company(**defaults)


class TestMergeOverride:
    """Each overridable field: tenant value if present, else the base value."""

    def test_override_wins_when_present(self):
        content = CompanyContent(
            custom_description="Le meilleur de Haguenau.",
            promotions="-10% en semaine",
            extra_images=["https://cdn.example/haguenau.jpg"],
            custom_fields={"parking": "gratuit"},
        )
        view = merge_override(_company(), content)

        assert view.description == "Le meilleur de Haguenau."
        assert view.promotions == "-10% en semaine"
        assert view.images == ["https://cdn.example/haguenau.jpg"]
        assert view.custom_fields == {"parking": "gratuit"}
        assert view.tenant_scoped is True

    @pytest.mark.parametrize("empty", [None, "", "   "])
    def test_blank_text_falls_back(self, empty):
        content = CompanyContent(custom_description=empty, promotions=empty)
        view = merge_override(_company(), content)

        assert view.description == "Cuisine alsacienne traditionnelle."
        assert view.promotions == "Menu du jour à 15 €"

    def test_empty_collections_fall_back(self):
        content = CompanyContent(extra_images=[], custom_fields={})
        view = merge_override(_company(), content)

        assert view.images == ["https://cdn.example/base.jpg"]
        assert view.custom_fields == {"terrasse": True}

    def test_override_is_not_merged_with_base(self):
        """Overrides replace the base value; dicts and lists are not combined."""
        content = CompanyContent(custom_fields={"parking": "gratuit"})
        view = merge_override(_company(), content)
        assert "terrasse" not in view.custom_fields

    def test_base_value_is_returned_unchanged(self):
        company = _company(description=None)
        view = merge_override(company, CompanyContent())
        assert view.description is None

    def test_non_overridable_fields_come_from_company(self):
        view = merge_override(_company(), CompanyContent(custom_description="X"))
        assert view.name == "Le Gourmet"
        assert view.rating == 4.3
        assert view.review_count == 12
        assert view.categories == ["restaurant"]

    def test_every_overridable_field_is_covered(self):
        assert {f for f, _, _ in OVERRIDABLE_FIELDS} == {
            "description", "promotions", "images", "custom_fields",
        }


class TestUnscopedView:
    """Views built without a tenant are marked as such."""

    def test_unscoped_view_uses_base_fields(self):
        view = unscoped_company_view(_company())
        assert view.tenant_scoped is False
        assert view.description == "Cuisine alsacienne traditionnelle."

"""
Tests for catalog administration in catalog.py: company creation, tenant
assignment and listing overrides.
"""
import pytest

from app.models import CompanyContent
from app.schemas.directory import CompanyContentUpdate, CompanyCreate
from app.services.catalog import (
    assign_companies_to_domain,
    create_company,
    remove_companies_from_domain,
    set_domain_active,
    update_company_content,
)
from app.services.tenancy import resolve_tenant
from app.services.visibility import get_visible_company

from tests.fixtures.directory_fixtures import (
    list_on,
    make_company,
    make_domain,
    tenant_of,
)


class TestCreateCompany:

    def test_slug_is_derived_from_name(self, db):
        company = create_company(db, CompanyCreate(name="Boulangerie Müller", city="Haguenau"))
        assert company.slug == "boulangerie-muller"
        assert company.is_active is True
        assert company.review_count == 0

    def test_same_name_gets_suffix(self, db):
        first = create_company(db, CompanyCreate(name="Le Gourmet"))
        second = create_company(db, CompanyCreate(name="Le Gourmet"))
        assert (first.slug, second.slug) == ("le-gourmet", "le-gourmet-2")

    def test_tags_are_normalised(self, db):
        company = create_company(
            db, CompanyCreate(name="Chez Paul", categories=[" Restaurant", "restaurant", "inconnu"])
        )

        assert company.categories == ["restaurant", "inconnu"]

    def test_new_company_is_not_listed_anywhere(self, db, default_domain):
        create_company(db, CompanyCreate(name="Le Gourmet"))
        assert get_visible_company(db, tenant_of(default_domain), "le-gourmet") is None


class TestAssignCompanies:

    def test_assign_makes_company_visible(self, db, default_domain):
        company = make_company(db, "le-gourmet")

        assigned = assign_companies_to_domain(db, default_domain.id, [company.id])

        assert assigned == [company.id]
        assert get_visible_company(db, tenant_of(default_domain), "le-gourmet") is not None

    def test_reassign_keeps_single_row_and_overrides(self, db, default_domain):
        company = make_company(db, "le-gourmet")
        list_on(db, company, default_domain, custom_description="Version Haguenau")

        assign_companies_to_domain(db, default_domain.id, [company.id, company.id], is_visible=False)

        rows = db.query(CompanyContent).filter(CompanyContent.company_id == company.id).all()
        assert len(rows) == 1
        assert rows[0].is_visible is False
        assert rows[0].custom_description == "Version Haguenau"

    def test_unknown_companies_are_skipped(self, db, default_domain):
        company = make_company(db, "le-gourmet")
        assert assign_companies_to_domain(db, default_domain.id, [999, company.id]) == [company.id]

    def test_unknown_domain(self, db):
        assert assign_companies_to_domain(db, 999, [1]) is None

    def test_remove(self, db, default_domain):
        bischwiller = make_domain(db, "bischwiller.pro")
        company = make_company(db, "le-gourmet")
        list_on(db, company, default_domain)
        list_on(db, company, bischwiller)

        assert remove_companies_from_domain(db, default_domain.id, [company.id]) == 1
        assert get_visible_company(db, tenant_of(default_domain), "le-gourmet") is None
        assert get_visible_company(db, tenant_of(bischwiller), "le-gourmet") is not None


class TestUpdateCompanyContent:

    def test_override_and_clear(self, db, default_domain):
        company = make_company(db, "le-gourmet", description="Base")
        list_on(db, company, default_domain)
        tenant = tenant_of(default_domain)

        update_company_content(
            db, default_domain.id, company.id, CompanyContentUpdate(custom_description="Spécial")
        )
        assert get_visible_company(db, tenant, "le-gourmet").description == "Spécial"

        update_company_content(
            db, default_domain.id, company.id, CompanyContentUpdate(custom_description="")
        )
        assert get_visible_company(db, tenant, "le-gourmet").description == "Base"

    def test_unset_fields_are_left_alone(self, db, default_domain):
        company = make_company(db, "le-gourmet")
        list_on(db, company, default_domain, promotions="-10%")

        content = update_company_content(
            db, default_domain.id, company.id, CompanyContentUpdate(custom_description="Nouveau")
        )
        assert content.promotions == "-10%"
        assert content.is_visible is True

    def test_not_listed(self, db, default_domain):
        company = make_company(db, "le-gourmet")
        assert update_company_content(db, default_domain.id, company.id, CompanyContentUpdate()) is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            CompanyContentUpdate(name="Autre nom")


class TestSetDomainActive:

    def test_deactivated_domain_falls_back_to_default(self, db, default_domain, no_cache_invalidation):
        saverne = make_domain(db, "saverne.pro")
        assert resolve_tenant(db, "saverne.pro").id == saverne.id

        out = set_domain_active(db, saverne.id, False)

        assert out.is_active is False
        assert no_cache_invalidation == ["saverne.pro"]
        assert resolve_tenant(db, "saverne.pro").id == default_domain.id

    def test_unknown_domain(self, db):
        assert set_domain_active(db, 999, True) is None

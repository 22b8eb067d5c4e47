from sqlalchemy import Column, Integer, Text, Boolean, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.db import Base


class CompanyContent(Base):
    """
    Listing of a company on one tenant domain, with optional overrides.

    A company without a row for a domain is invisible on that domain,
    whatever its own ``is_active`` flag says.
    """

    __tablename__ = "company_content"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), index=True, nullable=False)
    domain_id = Column(Integer, ForeignKey("domains.id"), index=True, nullable=False)
    is_visible = Column(Boolean, default=True, nullable=False)

    # overrides; empty values fall back to the company's own fields
    custom_description = Column(Text, nullable=True)
    promotions = Column(Text, nullable=True)
    extra_images = Column(JSON, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    company = relationship("Company", back_populates="contents")
    domain = relationship("Domain", back_populates="contents")

    __table_args__ = (
        UniqueConstraint("company_id", "domain_id", name="uq_company_content_company_domain"),
    )

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.db import Base


class Domain(Base):
    """One tenant: a city-branded hostname served by this backend."""

    __tablename__ = "domains"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Lowercase, no scheme, no port, no "www." prefix
    hostname = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=False)
    # Deactivate instead of deleting so CompanyContent history survives
    is_active = Column(Boolean, default=True, nullable=False)

    # branding
    primary_color = Column(String(16), nullable=True)
    logo_url = Column(String, nullable=True)
    site_title = Column(String, nullable=True)
    site_description = Column(String, nullable=True)

    settings = Column(JSON, nullable=True)  # free-form per-tenant settings
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    contents = relationship("CompanyContent", back_populates="domain")

    def __repr__(self) -> str:
        return f"<Domain {self.hostname}>"

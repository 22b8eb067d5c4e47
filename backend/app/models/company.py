from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.db import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    # Globally unique across tenants: one company, many listings
    slug = Column(String, unique=True, index=True, nullable=False)

    address = Column(String, nullable=True)
    city = Column(String, index=True, nullable=True)
    postal_code = Column(String(16), nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    website = Column(String, nullable=True)

    categories = Column(JSON, default=list, nullable=False)  # ["restaurant", "pizzeria", ...]
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Base values of the fields a tenant may override
    description = Column(Text, nullable=True)
    promotions = Column(Text, nullable=True)
    images = Column(JSON, default=list, nullable=False)
    custom_fields = Column(JSON, default=dict, nullable=False)

    google_place_id = Column(String, index=True, nullable=True)

    # Denormalised; only written by recompute_aggregate
    rating = Column(Float, nullable=True)      # one decimal, for display
    rating_raw = Column(Float, nullable=True)  # unrounded mean
    review_count = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    contents = relationship("CompanyContent", back_populates="company", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="company")

    def __repr__(self) -> str:
        return f"<Company {self.slug}>"

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.db import Base


class ReviewSource:
    """Values for Review.source."""
    GOOGLE = "google"
    MANUAL = "manual"


class Review(Base):
    """Company-level review, shown on every tenant that lists the company."""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), index=True, nullable=False)

    author_name = Column(String, nullable=False)
    author_photo = Column(String, nullable=True)
    author_email = Column(String, nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    source = Column(String(32), default=ReviewSource.MANUAL, nullable=False)
    external_review_id = Column(String, nullable=True)  # provider-side id, NULL for manual reviews
    review_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    company = relationship("Company", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
        # Idempotent external sync
        UniqueConstraint("company_id", "source", "external_review_id", name="uq_review_external"),
    )

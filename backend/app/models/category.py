from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from ..core.db import Base


class Category(Base):
    """
    Shared taxonomy node. Main categories have no parent; children are one
    level below. Deeper chains are rejected by validate_category_parent.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    name_fr = Column(String, nullable=True)
    name_en = Column(String, nullable=True)
    name_de = Column(String, nullable=True)
    icon = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), index=True, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")

    def __repr__(self) -> str:
        return f"<Category {self.slug}>"

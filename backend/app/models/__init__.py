# Import every model so Base.metadata is complete for create_all and Alembic.
from .domain import Domain
from .company import Company
from .company_content import CompanyContent
from .category import Category
from .review import Review, ReviewSource

__all__ = [
    "Domain",
    "Company",
    "CompanyContent",
    "Category",
    "Review",
    "ReviewSource",
]

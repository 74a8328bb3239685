"""
Retention Infrastructure Repositories

SQLAlchemy implementations of the retention ports.
"""

from app.domains.retention.infrastructure.repositories.cart_repository import SQLAlchemyCartRepository
from app.domains.retention.infrastructure.repositories.customer_repository import SQLAlchemyCustomerRepository
from app.domains.retention.infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from app.domains.retention.infrastructure.repositories.template_repository import (
    SQLAlchemyMessageRepository,
    SQLAlchemyTemplateRepository,
)

__all__ = [
    "SQLAlchemyCartRepository",
    "SQLAlchemyCustomerRepository",
    "SQLAlchemyOrderRepository",
    "SQLAlchemyMessageRepository",
    "SQLAlchemyTemplateRepository",
]

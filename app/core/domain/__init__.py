"""
Domain Layer - Core DDD building blocks

This module provides base classes for Domain-Driven Design:
- Entities: Objects with identity and lifecycle
- Value Objects: Immutable objects compared by value
- Events: Domain events published to the notification bus
- Exceptions: Domain-specific error handling
"""

from app.core.domain.entities import AggregateRoot, Entity, generate_uuid_str
from app.core.domain.events import DomainEvent
from app.core.domain.exceptions import (
    ClassificationError,
    DataAccessError,
    DispatchError,
    DomainException,
    EntityNotFoundException,
    InvalidOperationException,
    TemplateNotFoundError,
    ValidationException,
)
from app.core.domain.value_objects import StatusEnum, ValueObject

__all__ = [
    # Entities
    "Entity",
    "AggregateRoot",
    "generate_uuid_str",
    # Events
    "DomainEvent",
    # Value Objects
    "ValueObject",
    "StatusEnum",
    # Exceptions
    "DomainException",
    "ValidationException",
    "EntityNotFoundException",
    "InvalidOperationException",
    "DataAccessError",
    "ClassificationError",
    "TemplateNotFoundError",
    "DispatchError",
]

"""
Domain Exceptions

These exceptions represent business rule violations and failures at the
boundaries of the retention core. Read paths surface them to the caller;
background paths log and contain them per cart, attempt or channel.
"""

from typing import Any


class DomainException(Exception):
    """
    Base exception for all domain-related errors.

    Provides a standardized way to communicate business rule violations.
    """

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "CLASSIFICATION_ERROR")
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(DomainException):
    """
    Raised when domain validation fails.

    Use for invalid entity states, value object creation failures, etc.
    """

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class EntityNotFoundException(DomainException):
    """
    Raised when an entity is not found.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        message: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        msg = message or f"{entity_type} with ID {entity_id} not found"
        super().__init__(
            msg,
            "ENTITY_NOT_FOUND",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )


class InvalidOperationException(DomainException):
    """Raised when an operation is not valid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None):
        self.operation = operation
        self.current_state = current_state
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(
            msg,
            "INVALID_OPERATION",
            {"operation": operation, "current_state": current_state},
        )


class DataAccessError(DomainException):
    """
    Raised when the document store or the cache cannot be reached or fails.

    Propagated to the caller unchanged; the core never retries.
    """

    def __init__(self, resource: str, operation: str, message: str | None = None):
        self.resource = resource
        self.operation = operation
        msg = message or f"{resource} failed during '{operation}'"
        super().__init__(
            msg,
            "DATA_ACCESS_ERROR",
            {"resource": resource, "operation": operation},
        )


class ClassificationError(DomainException):
    """Raised when a segmentation rule faults; the previous segments stay in place."""

    def __init__(self, customer_id: Any, rule: str, message: str | None = None):
        self.customer_id = customer_id
        self.rule = rule
        msg = message or f"Segmentation rule '{rule}' failed for customer {customer_id}"
        super().__init__(
            msg,
            "CLASSIFICATION_ERROR",
            {"customer_id": str(customer_id), "rule": rule},
        )


class TemplateNotFoundError(DomainException):
    """Raised when no recovery template matches a channel and variant combination."""

    def __init__(self, channel: str, category: str, metadata: dict[str, Any] | None = None):
        self.channel = channel
        self.category = category
        self.metadata = metadata or {}
        super().__init__(
            f"No '{category}' template for channel '{channel}' with {self.metadata}",
            "TEMPLATE_NOT_FOUND",
            {"channel": channel, "category": category, **self.metadata},
        )


class DispatchError(DomainException):
    """Raised when the message dispatch service rejects or cannot receive a message."""

    def __init__(self, channel: str, recipient: str | None, message: str | None = None):
        self.channel = channel
        self.recipient = recipient
        msg = message or f"Dispatch failed on channel '{channel}'"
        super().__init__(
            msg,
            "DISPATCH_ERROR",
            {"channel": channel, "recipient": recipient},
        )

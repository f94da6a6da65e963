"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the analytics engine, enabling the service boundary to
translate them into well-shaped error results.
"""


class RideInsightsError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(RideInsightsError):
    """Exception raised when caller input fails validation."""


class InvalidRangeError(ValidationError):
    """Exception raised when a time window cannot be resolved."""


class RangeTooLargeError(ValidationError):
    """Exception raised when a custom time window exceeds the allowed span."""


class ExternalServiceError(RideInsightsError):
    """Exception raised when service calls fail."""


class SearchBackendError(ExternalServiceError):
    """Exception raised when the search backend fails or returns garbage."""


class SearchTimeoutError(SearchBackendError):
    """Exception raised when a search request exceeds its timeout."""


class ResourceNotFoundError(RideInsightsError):
    """Exception raised when a requested resource is not found."""


class CacheCorruptionError(RideInsightsError):
    """Exception raised when the query cache holds an unusable entry."""


RideInsightsException = RideInsightsError
ValidationException = ValidationError
ExternalServiceException = ExternalServiceError
NotFoundError = ResourceNotFoundError
ResourceNotFoundException = ResourceNotFoundError

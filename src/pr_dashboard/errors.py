"""Custom exception types for the PR evaluation dashboard."""


class DashboardError(Exception):
    """Base exception for all recoverable dashboard errors."""


class ConfigurationError(DashboardError):
    """Raised when runtime configuration values are missing or invalid."""


class ApiError(DashboardError):
    """Raised when an upstream PR service request fails or returns an unexpected response."""


class DataValidationError(DashboardError):
    """Raised when upstream payloads do not meet expected constraints."""


class ReportGenerationError(DashboardError):
    """Raised when the evaluation report cannot be laid out, rendered, or written."""

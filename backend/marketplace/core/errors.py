# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions and resolution warnings for the marketplace backend.

All exceptions inherit from MarketplaceError for consistent error handling.
Resolution warnings are plain records: they are logged and kept on the
resolution result, never raised and never serialized into a response.
"""

from typing import Optional, Dict, Any


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize marketplace error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(MarketplaceError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Component", "Demo")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class NothingResolvedError(NotFoundError):
    """Every seed of a resolution was missing from the store."""

    def __init__(self, seeds: list, details: Optional[dict] = None):
        super().__init__("Registry seeds", ", ".join(seeds), details=details)
        self.seeds = list(seeds)


class ValidationError(MarketplaceError):
    """Validation failed."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize validation error.

        Args:
            message: Validation error message
            field: Field that failed validation
            details: Additional error details
        """
        if field:
            details = {**(details or {}), "field": field}
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConfigurationError(MarketplaceError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=500, details=details)
        self.config_file = config_file


class StoreError(MarketplaceError):
    """Registry store transport or query failure. Always fatal, never retried."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize store error.

        Args:
            message: Store error message
            operation: Store operation that failed (e.g. "lookup_node")
            details: Additional error details
        """
        super().__init__(message, status_code=500, details=details)
        self.operation = operation


class StyleFetchError(MarketplaceError):
    """A style asset could not be fetched. Degrades to an empty style bundle."""

    def __init__(self, message: str, url: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=502, details=details)
        self.url = url


class ThemeParseError(ValueError):
    """Theme-extension fragment could not be parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


# Resolution warnings

class ResolutionWarning:
    """A non-fatal event observed while traversing the dependency graph."""

    kind = "resolution_warning"

    def __init__(self, reference: str, message: str, parent: Optional[str] = None):
        self.reference = reference
        self.message = message
        self.parent = parent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "reference": self.reference,
            "parent": self.parent,
            "message": self.message,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.reference!r}, parent={self.parent!r})"


class MissingSeedWarning(ResolutionWarning):
    """A seed reference does not exist in the store."""

    kind = "missing_seed"


class DanglingReferenceWarning(ResolutionWarning):
    """A non-seed internal dependency could not be found."""

    kind = "dangling_reference"


class CycleWarning(ResolutionWarning):
    """A dependency edge re-enters a node already on the active path."""

    kind = "cycle"


class DuplicatePathWarning(ResolutionWarning):
    """Two nodes produced the same file path; the later one was dropped."""

    kind = "duplicate_path"


class DepthLimitWarning(ResolutionWarning):
    """A dependency edge exceeded the configured maximum depth."""

    kind = "depth_limit"


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and credentials embedded in URLs.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()

    # Drop query strings, they may carry API keys
    if "apikey=" in error_msg:
        error_msg = error_msg.split("apikey=")[0] + "apikey=***"

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg

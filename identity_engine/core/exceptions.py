"""
Exception hierarchy for the Identity Engine

Structured error types. Request-path operations degrade instead of raising;
these are used at the validation boundary and for construction-time errors.
"""

from typing import Dict, Any, Optional


class IdentityEngineError(Exception):
    """Base exception for all identity engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidSessionError(IdentityEngineError):
    """Raised when a play session record cannot be parsed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ConfigurationError(IdentityEngineError):
    """Raised when an engine is constructed with invalid settings."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)

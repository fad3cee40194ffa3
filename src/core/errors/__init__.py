"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- RouterError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    ConfigurationError,
    # Enums
    ErrorCategory,
    PermanentError,
    PersistFailure,
    # Base classes
    RouterError,
    SubscriptionFailure,
    TransientError,
    TransientQueryFailure,
    # Classification utilities
    classify_exception,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "RouterError",
    "TransientError",
    "PermanentError",
    # Domain errors
    "TransientQueryFailure",
    "SubscriptionFailure",
    "PersistFailure",
    "ConfigurationError",
    # Classification utilities
    "classify_exception",
    "wrap_exception",
]

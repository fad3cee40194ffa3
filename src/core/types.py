"""
Core types used across modules.

Error categories shared by the error hierarchy and log formatting.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    The router never retries inline: every category is handled by logging
    and letting the next scheduled tick recompute. The category only decides
    how loudly a failure is reported and whether startup may continue.

    Categories:
        TRANSIENT: Temporary failures that the next polling cycle may fix
                   (e.g., network timeouts, 429/503 errors)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., validation errors, configuration issues)
        UNKNOWN: Unclassified errors, treated like transient ones
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = [
    "ErrorCategory",
]

"""
Core library: infrastructure-agnostic building blocks for the router.

Modules:
    logging     - Structured JSON logging with context propagation
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization and instance id helpers

Design Principles:
    - No dependencies on any specific feed, inventory or storage backend
    - All modules are independently testable
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]

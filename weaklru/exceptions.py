"""
weaklru exception hierarchy.

All custom exceptions inherit from WeakLRUException so callers can
catch a single base type when they want a broad safety net.  A dead
weak handle is never an error: it is reported as an ordinary miss.
"""


class WeakLRUException(Exception):
    """Base exception for all weaklru errors."""


class ConfigurationError(WeakLRUException, ValueError):
    """Raised when configuration is invalid or cannot be loaded."""


class OwnershipError(WeakLRUException, RuntimeError):
    """Raised when an entry is routed to a policy or cache that does not own it."""

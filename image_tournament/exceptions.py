"""
Exception classes for the image tournament system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    pass


class InvalidActionError(ValidationError):
    """Raised when the engine declines an operation. No state is mutated."""
    pass


class ChooserError(Exception):
    """Base exception for all chooser-related errors."""
    pass

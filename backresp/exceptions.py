"""
Exception hierarchy for backward responsibility computation
"""


class ResponsibilityError(ValueError):
    """Base class for all responsibility-specific errors."""


class MalformedInputError(ResponsibilityError):
    """Raised when the transition system or counterexample is inconsistent."""


class UnsupportedConfigurationError(ResponsibilityError):
    """Raised for unknown semantics or power indices (no silent fallback)."""


class ComputationLimitError(ResponsibilityError):
    """Raised when exact enumeration would exceed the configured player ceiling."""

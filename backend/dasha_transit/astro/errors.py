"""
Engine error taxonomy.

ValidationError is raised for malformed or out-of-range input and names the
offending field. CalculationError is raised when an internal invariant breaks
while processing input that passed validation.
"""


class DashaTransitError(Exception):
    """Base class for all engine errors."""


class ValidationError(DashaTransitError, ValueError):
    """Malformed or out-of-range input."""


class CalculationError(DashaTransitError, RuntimeError):
    """Internal invariant violated during a calculation."""

"""
Error types raised by the clustering core.

Both derive from ``ValueError`` so callers that already guard numeric input
with ``except ValueError`` keep working.
"""


class ConfigurationError(ValueError):
    """Invalid index/controller settings or an accessor that cannot resolve an item."""


class EmptyInputError(ValueError):
    """A computation that needs at least one coordinate was given none."""

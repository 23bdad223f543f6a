"""Exception hierarchy for the scanner.

All scanner-specific exceptions derive from :class:`FlowscanError` so callers
can catch every failure raised by this package uniformly.
"""

from __future__ import annotations


class FlowscanError(Exception):
    """Base class for scanner exceptions.

    Derived exceptions should extend this class so that callers can catch all
    scanner-specific errors uniformly.
    """


class ConfigError(FlowscanError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(FlowscanError):
    """Raised when a price, flow or name collaborator fails."""


class DataValidationError(FlowscanError, ValueError):
    """Raised when a field cannot be interpreted (e.g. an unparseable date).

    Named DataValidationError to avoid conflict with pydantic's ValidationError.
    """


__all__ = [
    "FlowscanError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
]

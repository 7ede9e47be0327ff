"""Custom exceptions for the price watch service.

The query path raises these to its callers (the HTTP layer maps them to
status codes). The scheduled path catches and logs them per asset/rule.
"""


class PriceWatchError(Exception):
    """Base exception for all price watch errors."""


class UpstreamError(PriceWatchError):
    """Raised when the price or exchange-rate source is unavailable or returns malformed data."""


class PersistenceError(PriceWatchError):
    """Raised when a store read or write fails."""


class InvalidArgument(PriceWatchError):
    """Raised when a caller-supplied value fails validation."""

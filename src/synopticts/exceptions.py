"""
Exceptions for Synoptic datastore operations.
"""

from typing import Optional


class SynopticError(Exception):
    """Base exception for Synoptic-related errors."""

    pass


class ParseError(SynopticError):
    """Malformed time series identifier, interval, filter clause or date/time."""

    pass


class ValidationError(SynopticError):
    """A read or command precondition was violated."""

    pass


class ServiceError(SynopticError):
    """Error status or unusable response from the Synoptic web service."""

    def __init__(
        self,
        message: str,
        response_code: Optional[int] = None,
        response_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.response_code = response_code
        self.response_message = response_message


class SynopticConnectionError(ServiceError):
    """Error connecting to the Synoptic web service."""

    pass


class CatalogMatchError(SynopticError):
    """A single time series identifier did not resolve to exactly one catalog entry."""

    pass


class NoMatchError(CatalogMatchError):
    """No catalog entry matched the time series identifier."""

    pass


class AmbiguousMatchError(CatalogMatchError):
    """More than one catalog entry matched the time series identifier."""

    def __init__(self, message: str, match_count: int):
        super().__init__(message)
        self.match_count = match_count

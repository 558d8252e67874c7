"""
Core exceptions for the whoip application.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""


class WhoipError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(WhoipError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(WhoipError):
    """Base class for errors related to external systems (network, disk)."""
    pass


class FetchError(InfrastructureError):
    """Base class for failures while downloading a feed."""
    pass


class TransportError(FetchError):
    """Raised on DNS, connection, protocol or timeout failures."""
    pass


class HTTPStatusError(FetchError):
    """Raised when a feed endpoint answers with anything but 200 OK."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"{url} answered with HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class SnapshotIOError(InfrastructureError):
    """Raised when a snapshot file cannot be created, read or written."""
    pass


class DecodeError(WhoipError):
    """Raised for an undecodable feed document or a corrupt snapshot file."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(WhoipError):
    """Base class for errors related to business logic failures."""
    pass


class EntryParseError(DomainError):
    """Raised for a single malformed prefix entry; always recovered locally."""
    pass


class InvalidAddressError(DomainError):
    """Raised when a lookup is asked for something that is not an IP address."""
    pass

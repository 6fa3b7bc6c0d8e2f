"""Exception hierarchy for freightsync."""

from __future__ import annotations


class FreightSyncError(Exception):
    """Base exception for all freightsync errors."""


class ConfigError(FreightSyncError):
    """Invalid or missing configuration."""


class NetworkError(FreightSyncError):
    """Request failed: transport error, non-2xx status or undecodable body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TimeoutExpired(FreightSyncError):
    """The session gate's resolution window elapsed without a profile.

    Never raised to callers; the gate records it and resolves to
    ``RESOLVED_ABSENT``.
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"No profile resolved within {timeout:g}s")


class UnknownEndpointError(FreightSyncError):
    """A descriptor names a resource or operation no registered API declares."""

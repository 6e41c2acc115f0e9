# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Exceptions for authenticated download strategies."""


class DownloadStrategyError(Exception):
    """Base exception for download strategy errors.

    Every error can carry the name of the strategy that was selected and a
    remediation hint for the operator. Both are rendered by ``str()``.
    """

    def __init__(self, message: str, *, strategy: str | None = None, remediation: str | None = None):
        super().__init__(message)
        self.message = message
        self.strategy = strategy
        self.remediation = remediation

    def __str__(self) -> str:
        parts = [self.message]
        if self.strategy:
            parts.append(f"strategy: {self.strategy}")
        if self.remediation:
            parts.append(f"remediation: {self.remediation}")
        return "\n".join(parts)


class InvalidLocatorError(DownloadStrategyError):
    """Raised when a locator does not match the patterns of its strategy."""
    pass


class UnrecognizedLocatorError(InvalidLocatorError):
    """Raised when no strategy family matches a locator."""
    pass


class UnsupportedStrategyError(DownloadStrategyError):
    """Raised when an explicitly requested strategy name is not known."""
    pass


class MissingCredentialsError(DownloadStrategyError):
    """Raised when no credential source produced a usable bundle."""
    pass


class UnknownAuthKindError(DownloadStrategyError):
    """Raised when an auth kind is not recognized or cannot be detected."""
    pass


class AssetNotFoundError(DownloadStrategyError):
    """Raised when a release does not contain the requested asset."""
    pass


class UpstreamApiError(DownloadStrategyError):
    """Raised when a lookup API returns malformed or error data."""

    def __init__(self, message: str, *, body: str | None = None, status_code: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.body = body
        self.status_code = status_code


class TransportError(DownloadStrategyError):
    """Raised by the HTTP client when a request cannot be completed."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code
        self.body = body

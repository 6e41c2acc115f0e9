# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Base strategy class and URL pattern helpers."""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar

from .config import FetchSettings
from .credentials import CredentialResolver, rejected_credentials_remediation
from .exceptions import InvalidLocatorError, TransportError, UpstreamApiError
from .http_client import HttpClient
from .models import AuthKind, CredentialBundle, FetchRequestDescriptor, ResourceLocator

logger = logging.getLogger(__name__)

REJECTED_STATUSES = (401, 403)


@dataclass(frozen=True)
class LocatorPattern:
    """One URL shape a strategy understands."""

    name: str
    regex: re.Pattern

    def match(self, url: str) -> dict[str, str] | None:
        match = self.regex.fullmatch(url)
        if match is None:
            return None
        return {key: value for key, value in match.groupdict().items() if value is not None}


def pattern(name: str, regex: str) -> LocatorPattern:
    return LocatorPattern(name=name, regex=re.compile(regex))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DownloadStrategy(ABC):
    """Abstract base class for provider download strategies.

    A strategy turns a locator into one authenticated request descriptor:
    parse the locator, resolve credentials, then build the request. Any
    indirection (latest tag, release asset link) happens in build_request.
    """

    name: ClassVar[str]
    """Strategy identifier used by the dispatcher and in error messages."""

    families: ClassVar[tuple[re.Pattern, ...]] = ()
    """Coarse patterns the dispatcher uses to pick this strategy."""

    patterns: ClassVar[tuple[LocatorPattern, ...]] = ()
    """Field-extracting patterns, most specific first."""

    def __init__(
        self,
        resolver: CredentialResolver,
        http_client: HttpClient,
        settings: FetchSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.resolver = resolver
        self.http_client = http_client
        self.settings = settings or resolver.settings
        self.clock = clock

    @classmethod
    def claims(cls, url: str) -> bool:
        """Whether the URL belongs to this strategy's provider family."""
        return any(family.match(url) for family in cls.families)

    def match_fields(self, locator: ResourceLocator) -> tuple[str, dict[str, str]]:
        """Return (pattern name, captured fields) of the first matching pattern.

        Raises:
            InvalidLocatorError: If no pattern matches
        """
        for candidate in self.patterns:
            fields = candidate.match(locator.url)
            if fields is not None:
                return candidate.name, fields
        raise InvalidLocatorError(
            f"Invalid URL for {self.name} strategy: {locator.url}",
            strategy=self.name,
            remediation=self.url_hint(),
        )

    def url_hint(self) -> str | None:
        return None

    @abstractmethod
    def parse_target(self, locator: ResourceLocator) -> Any:
        """Extract the strategy-specific target from a locator.

        Raises:
            InvalidLocatorError: If the locator does not fit this strategy
        """
        pass

    @abstractmethod
    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        pass

    def resolve_credentials(self, locator: ResourceLocator) -> CredentialBundle:
        return self.resolver.resolve(self.auth_kind(locator), locator.options)

    @abstractmethod
    def build_request(
        self,
        locator: ResourceLocator,
        target: Any,
        credentials: CredentialBundle,
        dest: str | None = None,
        timeout: float | None = None,
    ) -> FetchRequestDescriptor:
        """Build the final request descriptor, performing any lookups it needs."""
        pass

    def prepare(
        self, locator: ResourceLocator, dest: str | None = None, timeout: float | None = None
    ) -> FetchRequestDescriptor:
        """Parse, resolve credentials and build the request for a locator.

        A 401/403 from a lookup made while building carries a remediation
        naming where the rejected credentials came from.
        """
        target = self.parse_target(locator)
        credentials = self.resolve_credentials(locator)
        source = getattr(credentials, "source", None)
        logger.debug(f"{self.name}: credentials resolved from {source or ''}")
        try:
            request = self.build_request(locator, target, credentials, dest=dest, timeout=timeout)
        except (TransportError, UpstreamApiError) as e:
            if e.status_code in REJECTED_STATUSES and e.remediation is None:
                e.remediation = rejected_credentials_remediation(source)
            raise
        return replace(request, credential_source=source)

    def descriptor(
        self,
        url: str,
        headers: list[tuple[str, str]] | tuple[tuple[str, str], ...] = (),
        dest: str | None = None,
        timeout: float | None = None,
        auth: tuple[str, str] | None = None,
    ) -> FetchRequestDescriptor:
        return FetchRequestDescriptor(
            url=url,
            headers=tuple(headers),
            dest=dest,
            timeout=timeout,
            auth=auth,
            strategy=self.name,
        )

    def fetch_json(self, url: str, headers: list[tuple[str, str]], timeout: float | None = None) -> Any:
        """GET a JSON document from a provider API.

        HTTP error statuses and undecodable bodies raise UpstreamApiError with
        the raw body. Connection failures propagate as TransportError.
        """
        try:
            payload = self.http_client.execute(self.descriptor(url, headers, timeout=timeout))
        except TransportError as e:
            if e.status_code is None:
                raise
            raise UpstreamApiError(
                f"API request to {url} returned HTTP {e.status_code}",
                body=e.body,
                status_code=e.status_code,
                strategy=self.name,
            ) from e
        body = payload.decode("utf-8", errors="replace")
        try:
            return json.loads(body)
        except ValueError as e:
            raise UpstreamApiError(
                f"API response from {url} is not valid JSON", body=body, strategy=self.name
            ) from e

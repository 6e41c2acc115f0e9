# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Fetch orchestration: dispatch, credential resolution, request building, download."""

import logging
import os
from datetime import datetime
from typing import Any, Callable, Mapping

from .base import REJECTED_STATUSES, DownloadStrategy, utc_now
from .config import FetchSettings
from .credentials import CredentialResolver, rejected_credentials_remediation
from .dispatcher import select_strategy
from .environment import CommandRunner, Environment
from .exceptions import DownloadStrategyError, TransportError
from .http_client import HttpClient, RequestsHttpClient
from .models import FetchRequestDescriptor, FetchResult, ResourceLocator

logger = logging.getLogger(__name__)


class Fetcher:
    """Fetches authenticated artifacts.

    Holds only its injected capabilities; every call builds its own target,
    credentials and descriptor, so one instance can serve concurrent fetches.

    Example:
        >>> fetcher = Fetcher()
        >>> result = fetcher.fetch(
        ...     "https://github.com/acme/tool/releases/latest/download/tool.tar.gz",
        ...     "/tmp/tool.tar.gz",
        ...     name="tool",
        ... )
        >>> result.strategy
        'github-release'
    """

    def __init__(
        self,
        environment: Environment | None = None,
        command_runner: CommandRunner | None = None,
        http_client: HttpClient | None = None,
        settings: FetchSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.environment = environment or Environment()
        self.settings = settings or FetchSettings.from_env(self.environment)
        self.http_client = http_client or RequestsHttpClient(user_agent=self.settings.user_agent)
        self.resolver = CredentialResolver(
            environment=self.environment,
            command_runner=command_runner,
            http_client=self.http_client,
            settings=self.settings,
        )
        self.clock = clock

    def select(self, locator: ResourceLocator) -> DownloadStrategy:
        return select_strategy(locator, self.resolver, self.http_client, settings=self.settings, clock=self.clock)

    def prepare(
        self,
        url: str,
        dest: str | None = None,
        *,
        options: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> FetchRequestDescriptor:
        """Build the request descriptor for a URL without downloading it.

        Lookup calls (latest release tag, release assets, instance metadata)
        still go through the HTTP client.

        Raises:
            DownloadStrategyError: Any error of the taxonomy, tagged with the
                selected strategy name
        """
        locator = ResourceLocator(url=url, options=options or {})
        if timeout is None:
            timeout = self.settings.default_timeout

        strategy_name = None
        try:
            strategy = self.select(locator)
            strategy_name = strategy.name
            return strategy.prepare(locator, dest=dest, timeout=timeout)
        except DownloadStrategyError as e:
            if e.strategy is None:
                e.strategy = strategy_name
            raise

    def fetch(
        self,
        url: str,
        dest: str,
        *,
        name: str | None = None,
        version: str | None = None,
        options: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> FetchResult:
        """Download an artifact to dest.

        Args:
            url: Resource URL
            dest: Local file path to write
            name: Display name of the artifact (informational)
            version: Version of the artifact (informational)
            options: Per-call options (auth_type, token, region, headers, ...)
            timeout: Timeout in seconds passed unchanged to the HTTP client

        Returns:
            FetchResult describing the written file

        Raises:
            DownloadStrategyError: Any error of the taxonomy, tagged with the
                selected strategy name
        """
        label = f"{name} {version}".strip() if name or version else os.path.basename(dest)
        descriptor = None
        try:
            descriptor = self.prepare(url, dest, options=options, timeout=timeout)
            logger.info(f"Downloading {label} using {descriptor.strategy} strategy")
            path = self.http_client.download(descriptor)
        except DownloadStrategyError as e:
            if e.strategy is None and descriptor is not None:
                e.strategy = descriptor.strategy
            if (
                isinstance(e, TransportError)
                and e.status_code in REJECTED_STATUSES
                and e.remediation is None
                and descriptor is not None
            ):
                e.remediation = rejected_credentials_remediation(descriptor.credential_source)
            logger.error(f"Download of {label} failed: {e}")
            raise

        return FetchResult(path=path, strategy=descriptor.strategy, url=descriptor.url, name=name, version=version)


def fetch(
    url: str,
    dest: str,
    *,
    name: str | None = None,
    version: str | None = None,
    options: Mapping[str, Any] | None = None,
    timeout: float | None = None,
) -> FetchResult:
    """Download an artifact with the default environment and HTTP client."""
    return Fetcher().fetch(url, dest, name=name, version=version, options=options, timeout=timeout)

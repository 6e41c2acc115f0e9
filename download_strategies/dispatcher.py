# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Strategy lookup by name and URL dispatch."""

import logging

from .authenticated_strategy import AuthenticatedStrategy
from .base import DownloadStrategy
from .credentials import CredentialResolver
from .exceptions import UnrecognizedLocatorError, UnsupportedStrategyError
from .github_strategy import GitHubRawStrategy, GitHubReleaseStrategy
from .gitlab_strategy import GitLabRawStrategy, GitLabReleaseStrategy
from .http_client import HttpClient
from .models import AuthKind, ResourceLocator
from .s3_strategy import S3PublicStrategy, S3Strategy

logger = logging.getLogger(__name__)

STRATEGIES: dict[str, type[DownloadStrategy]] = {
    cls.name: cls
    for cls in (
        GitHubRawStrategy,
        GitHubReleaseStrategy,
        GitLabRawStrategy,
        GitLabReleaseStrategy,
        S3Strategy,
        S3PublicStrategy,
        AuthenticatedStrategy,
    )
}

# Provider families in match order. The generic https form of the
# authenticated strategy is tried only after every provider-specific family.
DISPATCH_TABLE: tuple[type[DownloadStrategy], ...] = (
    GitHubRawStrategy,
    GitHubReleaseStrategy,
    GitLabReleaseStrategy,
    GitLabRawStrategy,
    S3Strategy,
)
FALLBACK_STRATEGY: type[DownloadStrategy] = AuthenticatedStrategy


def strategy_class_for(locator: ResourceLocator) -> type[DownloadStrategy]:
    """Pick the strategy class for a locator.

    An explicit ``strategy`` option wins, then ``auth_type: none`` selects the
    unauthenticated strategy, then the dispatch table, then the generic form.

    Raises:
        UnsupportedStrategyError: If the strategy option names no strategy
        UnrecognizedLocatorError: If no family matches the URL
    """
    requested = locator.option("strategy")
    if requested is not None:
        name = str(requested).lower()
        if name not in STRATEGIES:
            raise UnsupportedStrategyError(
                f"Unsupported strategy: {requested}",
                remediation=f"Use one of: {', '.join(STRATEGIES)}",
            )
        return STRATEGIES[name]

    auth_type = locator.option("auth_type")
    if auth_type is not None and AuthKind.parse(auth_type) is AuthKind.NONE:
        return S3PublicStrategy

    for cls in DISPATCH_TABLE:
        if cls.claims(locator.url):
            return cls
    if FALLBACK_STRATEGY.claims(locator.url):
        return FALLBACK_STRATEGY

    raise UnrecognizedLocatorError(
        f"No download strategy recognizes URL: {locator.url}",
        remediation="Use an https:// or s3:// URL, or pass the strategy option explicitly.",
    )


def create_strategy(name: str, resolver: CredentialResolver, http_client: HttpClient, **kwargs) -> DownloadStrategy:
    """Factory function to create a strategy by name.

    Raises:
        UnsupportedStrategyError: If the name is not a known strategy
    """
    cls = STRATEGIES.get(name.lower())
    if cls is None:
        raise UnsupportedStrategyError(
            f"Unsupported strategy: {name}",
            remediation=f"Use one of: {', '.join(STRATEGIES)}",
        )
    return cls(resolver, http_client, **kwargs)


def select_strategy(locator: ResourceLocator, resolver: CredentialResolver, http_client: HttpClient,
                    **kwargs) -> DownloadStrategy:
    """Instantiate the strategy that handles a locator."""
    cls = strategy_class_for(locator)
    logger.info(f"Selected {cls.name} strategy for {locator.url.split('?', 1)[0]}")
    return cls(resolver, http_client, **kwargs)

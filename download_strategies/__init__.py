# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Authenticated download strategies.

Fetches single artifacts from private GitHub and GitLab repositories, release
assets, S3 buckets and generic authenticated HTTPS endpoints. Each provider is
a strategy selected from the URL; credentials come from explicit options,
environment variables, provider CLIs or the instance metadata service.
"""

__version__ = "0.1.0"

from .authenticated_strategy import AuthenticatedStrategy
from .base import DownloadStrategy, LocatorPattern
from .config import FetchSettings
from .credentials import CredentialResolver
from .dispatcher import STRATEGIES, create_strategy, select_strategy, strategy_class_for
from .environment import CommandResult, CommandRunner, Environment
from .exceptions import (
    AssetNotFoundError,
    DownloadStrategyError,
    InvalidLocatorError,
    MissingCredentialsError,
    TransportError,
    UnknownAuthKindError,
    UnrecognizedLocatorError,
    UnsupportedStrategyError,
    UpstreamApiError,
)
from .github_strategy import GitHubRawStrategy, GitHubReleaseStrategy
from .gitlab_strategy import GitLabRawStrategy, GitLabReleaseStrategy
from .http_client import HttpClient, RequestsHttpClient
from .models import (
    AnonymousCredentials,
    AuthKind,
    AwsCredentials,
    BasicCredentials,
    CanonicalRequestSpec,
    FetchRequestDescriptor,
    FetchResult,
    HeaderCredentials,
    PresignedUrlCredentials,
    ResourceLocator,
    SignedRequestHeaders,
    TokenCredentials,
)
from .orchestrator import Fetcher, fetch
from .s3_strategy import S3PublicStrategy, S3Strategy
from .signing import sign

__all__ = [
    # Version
    "__version__",
    # Orchestration
    "Fetcher",
    "fetch",
    # Strategies
    "DownloadStrategy",
    "LocatorPattern",
    "GitHubRawStrategy",
    "GitHubReleaseStrategy",
    "GitLabRawStrategy",
    "GitLabReleaseStrategy",
    "S3Strategy",
    "S3PublicStrategy",
    "AuthenticatedStrategy",
    # Dispatch
    "STRATEGIES",
    "create_strategy",
    "select_strategy",
    "strategy_class_for",
    # Capabilities
    "CredentialResolver",
    "Environment",
    "CommandRunner",
    "CommandResult",
    "HttpClient",
    "RequestsHttpClient",
    "FetchSettings",
    "sign",
    # Models
    "AuthKind",
    "ResourceLocator",
    "FetchRequestDescriptor",
    "FetchResult",
    "CanonicalRequestSpec",
    "SignedRequestHeaders",
    "TokenCredentials",
    "BasicCredentials",
    "HeaderCredentials",
    "AwsCredentials",
    "PresignedUrlCredentials",
    "AnonymousCredentials",
    # Exceptions
    "DownloadStrategyError",
    "InvalidLocatorError",
    "UnrecognizedLocatorError",
    "UnsupportedStrategyError",
    "MissingCredentialsError",
    "UnknownAuthKindError",
    "AssetNotFoundError",
    "UpstreamApiError",
    "TransportError",
]

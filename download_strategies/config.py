# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Runtime settings read from environment variables."""

from dataclasses import dataclass

from . import __version__
from .environment import Environment

DEFAULT_METADATA_ENDPOINT = "http://169.254.169.254/latest/meta-data/"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class FetchSettings:
    """Settings shared by the resolver, the strategies and the HTTP client."""

    default_timeout: float | None = None
    """Timeout used when the caller passes none. None means no timeout."""

    metadata_endpoint: str = DEFAULT_METADATA_ENDPOINT
    """Instance metadata service root, ending with a slash."""

    metadata_timeout: float = 1.0
    command_timeout: float = 10.0
    github_api_url: str = DEFAULT_GITHUB_API_URL
    user_agent: str = f"download-strategies/{__version__}"

    @classmethod
    def from_env(cls, environment: Environment | None = None) -> "FetchSettings":
        """Build settings from DOWNLOAD_STRATEGIES_* variables.

        Unparseable numeric values fall back to the defaults.
        """
        env = environment or Environment()
        endpoint = env.get("DOWNLOAD_STRATEGIES_METADATA_ENDPOINT", DEFAULT_METADATA_ENDPOINT)
        if not endpoint.endswith("/"):
            endpoint += "/"
        return cls(
            default_timeout=env.get_float("DOWNLOAD_STRATEGIES_TIMEOUT"),
            metadata_endpoint=endpoint,
            metadata_timeout=env.get_float("DOWNLOAD_STRATEGIES_METADATA_TIMEOUT", 1.0),
            command_timeout=env.get_float("DOWNLOAD_STRATEGIES_COMMAND_TIMEOUT", 10.0),
            github_api_url=env.get("DOWNLOAD_STRATEGIES_GITHUB_API", DEFAULT_GITHUB_API_URL).rstrip("/"),
            user_agent=env.get("DOWNLOAD_STRATEGIES_USER_AGENT", cls.user_agent),
        )

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""GitHub raw file and release asset strategies."""

import logging
import re

from .base import DownloadStrategy, pattern
from .exceptions import UpstreamApiError
from .models import (
    AuthKind,
    FetchRequestDescriptor,
    GitHubRawTarget,
    GitHubReleaseTarget,
    ResourceLocator,
    TokenCredentials,
)

logger = logging.getLogger(__name__)


def _token_header(credentials: TokenCredentials) -> tuple[str, str]:
    return ("Authorization", f"token {credentials.token}")


class GitHubRawStrategy(DownloadStrategy):
    """Raw files from private repositories on raw.githubusercontent.com."""

    name = "github-raw"
    families = (re.compile(r"https://raw\.githubusercontent\.com/"),)
    patterns = (
        pattern("raw", r"https://raw\.githubusercontent\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?P<path>[^?#]+)"),
    )

    def url_hint(self) -> str:
        return "Expected https://raw.githubusercontent.com/<owner>/<repo>/<ref>/<path>"

    def parse_target(self, locator: ResourceLocator) -> GitHubRawTarget:
        _, fields = self.match_fields(locator)
        return GitHubRawTarget(owner=fields["owner"], repo=fields["repo"], path=fields["path"])

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        return AuthKind.GITHUB_TOKEN

    def build_request(self, locator, target: GitHubRawTarget, credentials: TokenCredentials,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        url = f"https://raw.githubusercontent.com/{target.owner}/{target.repo}/{target.path}"
        return self.descriptor(url, [_token_header(credentials)], dest=dest, timeout=timeout)


class GitHubReleaseStrategy(DownloadStrategy):
    """Release assets by tag, by the "latest" alias, or by API asset id."""

    name = "github-release"
    families = (
        re.compile(r"https://github\.com/[^/]+/[^/]+/releases/"),
        re.compile(r"https://api\.github\.com/repos/[^/]+/[^/]+/releases/"),
    )
    patterns = (
        pattern(
            "latest",
            r"https://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/releases/latest/download/(?P<filename>[^?#]+)",
        ),
        pattern(
            "tagged",
            r"https://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/releases/download/(?P<tag>[^/]+)/(?P<filename>[^?#]+)",
        ),
        pattern(
            "asset",
            r"https://api\.github\.com/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)/releases/assets/(?P<asset_id>[^/?#]+)",
        ),
    )

    def url_hint(self) -> str:
        return (
            "Expected https://github.com/<owner>/<repo>/releases/download/<tag>/<file>, "
            ".../releases/latest/download/<file> or "
            "https://api.github.com/repos/<owner>/<repo>/releases/assets/<id>"
        )

    def parse_target(self, locator: ResourceLocator) -> GitHubReleaseTarget:
        shape, fields = self.match_fields(locator)
        if shape == "latest":
            fields["tag"] = "latest"
        return GitHubReleaseTarget(**fields)

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        return AuthKind.GITHUB_TOKEN

    def resolve_latest_tag(self, target: GitHubReleaseTarget, credentials: TokenCredentials,
                           timeout: float | None = None) -> str:
        """Look up the tag name of the latest release.

        Raises:
            UpstreamApiError: If the API response carries no tag name
        """
        api_url = f"{self.settings.github_api_url}/repos/{target.owner}/{target.repo}/releases/latest"
        headers = [_token_header(credentials), ("Accept", "application/vnd.github.v3+json")]
        release = self.fetch_json(api_url, headers, timeout=timeout)
        tag = release.get("tag_name") if isinstance(release, dict) else None
        if not tag or not isinstance(tag, str):
            raise UpstreamApiError(
                f"Latest release of {target.owner}/{target.repo} has no tag_name",
                body=str(release),
                strategy=self.name,
            )
        logger.info(f"Resolved latest release of {target.owner}/{target.repo} to {tag}")
        return tag

    def build_request(self, locator, target: GitHubReleaseTarget, credentials: TokenCredentials,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        if target.is_asset_api:
            url = f"{self.settings.github_api_url}/repos/{target.owner}/{target.repo}/releases/assets/{target.asset_id}"
            headers = [_token_header(credentials), ("Accept", "application/octet-stream")]
            return self.descriptor(url, headers, dest=dest, timeout=timeout)

        tag = target.tag
        if target.is_latest:
            tag = self.resolve_latest_tag(target, credentials, timeout=timeout)
        url = f"https://github.com/{target.owner}/{target.repo}/releases/download/{tag}/{target.filename}"
        return self.descriptor(url, [_token_header(credentials)], dest=dest, timeout=timeout)

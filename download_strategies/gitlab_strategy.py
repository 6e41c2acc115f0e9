# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""GitLab repository file and release asset strategies."""

import logging
import re
from urllib.parse import parse_qs, quote, unquote

from .base import DownloadStrategy, pattern
from .exceptions import AssetNotFoundError, UpstreamApiError
from .models import (
    AuthKind,
    FetchRequestDescriptor,
    GitLabRawTarget,
    GitLabReleaseTarget,
    ResourceLocator,
    TokenCredentials,
)

logger = logging.getLogger(__name__)

DEFAULT_REF = "main"

# Namespace plus project, allowing nested groups
_PROJECT = r"(?P<project>[^/]+(?:/[^/]+)+?)"


def encode_component(value: str) -> str:
    """Percent-encode a value as a single path component, slashes included."""
    return quote(value, safe="")


def project_api_url(host: str, project: str) -> str:
    return f"https://{host}/api/v4/projects/{encode_component(project)}"


def _token_header(credentials: TokenCredentials) -> tuple[str, str]:
    return ("PRIVATE-TOKEN", credentials.token)


class GitLabRawStrategy(DownloadStrategy):
    """Repository files from private GitLab projects.

    Raw URLs (``<host>/<project>/-/raw/<ref>/<path>``) are always rewritten to
    the repository files API, because GitLab's raw endpoint ignores
    PRIVATE-TOKEN on private projects. API URLs are decoded and re-encoded
    so both forms produce the same request target.
    """

    name = "gitlab-raw"
    families = (
        re.compile(r"https://[^/]+/.+/-/raw/"),
        re.compile(r"https://[^/]+/api/v4/projects/[^/]+/repository/files/"),
    )
    patterns = (
        pattern("raw", r"https://(?P<host>gitlab\.com)/" + _PROJECT + r"/-/raw/(?P<ref>[^/]+)/(?P<path>[^?#]+)"),
        pattern("raw", r"https://(?P<host>[^/]+)/" + _PROJECT + r"/-/raw/(?P<ref>[^/]+)/(?P<path>[^?#]+)"),
        pattern(
            "api",
            r"https://(?P<host>gitlab\.com)/api/v4/projects/(?P<project>[^/]+)/repository/files/"
            r"(?P<path>[^/?#]+)/raw(?:\?(?P<query>[^#]*))?",
        ),
        pattern(
            "api",
            r"https://(?P<host>[^/]+)/api/v4/projects/(?P<project>[^/]+)/repository/files/"
            r"(?P<path>[^/?#]+)/raw(?:\?(?P<query>[^#]*))?",
        ),
    )

    def url_hint(self) -> str:
        return (
            "Expected https://<host>/<namespace>/<project>/-/raw/<ref>/<path> or "
            "https://<host>/api/v4/projects/<id>/repository/files/<path>/raw?ref=<ref>"
        )

    def parse_target(self, locator: ResourceLocator) -> GitLabRawTarget:
        shape, fields = self.match_fields(locator)
        if shape == "raw":
            return GitLabRawTarget(
                host=fields["host"],
                project=unquote(fields["project"]),
                path=unquote(fields["path"]),
                ref=unquote(fields["ref"]),
            )
        query = parse_qs(fields.get("query", ""))
        ref = query.get("ref", [DEFAULT_REF])[0] or DEFAULT_REF
        return GitLabRawTarget(
            host=fields["host"],
            project=unquote(fields["project"]),
            path=unquote(fields["path"]),
            ref=ref,
        )

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        return AuthKind.GITLAB_TOKEN

    @staticmethod
    def api_url(target: GitLabRawTarget) -> str:
        return (
            f"{project_api_url(target.host, target.project)}/repository/files/"
            f"{encode_component(target.path)}/raw?ref={encode_component(target.ref)}"
        )

    def build_request(self, locator, target: GitLabRawTarget, credentials: TokenCredentials,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        return self.descriptor(self.api_url(target), [_token_header(credentials)], dest=dest, timeout=timeout)


def find_asset_link(release: dict, filename: str) -> dict | None:
    """Return the first asset link named filename or whose URL ends with it.

    Links are checked in the order the API lists them, so when one asset is
    named filename and another's URL merely ends with it, whichever comes
    first wins.
    """
    for link in release.get("assets", {}).get("links", []) or []:
        if not isinstance(link, dict):
            continue
        if link.get("name") == filename or str(link.get("url") or "").endswith(filename):
            return link
    return None


class GitLabReleaseStrategy(DownloadStrategy):
    """Release assets resolved through the GitLab releases API."""

    name = "gitlab-release"
    families = (re.compile(r"https://[^/]+/.+/-/releases/"),)
    patterns = (
        pattern(
            "release",
            r"https://(?P<host>gitlab\.com)/" + _PROJECT + r"/-/releases/(?P<tag>[^/]+)/downloads/(?P<filename>[^?#]+)",
        ),
        pattern(
            "release",
            r"https://(?P<host>[^/]+)/" + _PROJECT + r"/-/releases/(?P<tag>[^/]+)/downloads/(?P<filename>[^?#]+)",
        ),
    )

    def url_hint(self) -> str:
        return "Expected https://<host>/<namespace>/<project>/-/releases/<tag>/downloads/<file>"

    def parse_target(self, locator: ResourceLocator) -> GitLabReleaseTarget:
        _, fields = self.match_fields(locator)
        return GitLabReleaseTarget(
            host=fields["host"],
            project=unquote(fields["project"]),
            tag=unquote(fields["tag"]),
            filename=fields["filename"],
        )

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        return AuthKind.GITLAB_TOKEN

    def resolve_asset_url(self, target: GitLabReleaseTarget, credentials: TokenCredentials,
                          timeout: float | None = None) -> str:
        """Find the direct link of the requested asset in the release metadata.

        Raises:
            UpstreamApiError: If the release metadata is malformed
            AssetNotFoundError: If the release has no matching asset
        """
        api_url = f"{project_api_url(target.host, target.project)}/releases/{encode_component(target.tag)}"
        release = self.fetch_json(api_url, [_token_header(credentials)], timeout=timeout)
        if not isinstance(release, dict) or not isinstance(release.get("assets"), dict):
            raise UpstreamApiError(
                f"Release {target.tag} of {target.project} has no assets section",
                body=str(release),
                strategy=self.name,
            )
        link = find_asset_link(release, target.filename)
        if link is None or not link.get("url"):
            raise AssetNotFoundError(
                f"Asset {target.filename} not found in release {target.tag}",
                strategy=self.name,
                remediation=f"Check that release {target.tag} of {target.project} links an asset named {target.filename}.",
            )
        logger.info(f"Resolved asset {target.filename} of release {target.tag}")
        return link["url"]

    def build_request(self, locator, target: GitLabReleaseTarget, credentials: TokenCredentials,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        url = self.resolve_asset_url(target, credentials, timeout=timeout)
        return self.descriptor(url, [_token_header(credentials)], dest=dest, timeout=timeout)

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Data models for authenticated downloads."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .exceptions import UnknownAuthKindError


class AuthKind(Enum):
    """Closed set of authentication schemes."""

    BEARER = "bearer"
    BASIC = "basic"
    CUSTOM_HEADER = "custom_header"
    API_KEY = "api_key"
    GITHUB_TOKEN = "github_token"
    GITLAB_TOKEN = "gitlab_token"
    AWS_SIGV4 = "aws_sigv4"
    PRESIGNED_URL = "presigned_url"
    NONE = "none"

    @classmethod
    def parse(cls, value: "AuthKind | str") -> "AuthKind":
        """Parse an auth kind from an enum member or a string.

        Strings are matched case-insensitively and ``-`` is treated as ``_``.
        ``header`` is accepted as an alias of ``custom_header``.

        Raises:
            UnknownAuthKindError: If the value is not one of the known kinds
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownAuthKindError(f"Unknown authentication type: {value!r}")
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "header":
            normalized = cls.CUSTOM_HEADER.value
        try:
            return cls(normalized)
        except ValueError as e:
            known = ", ".join(kind.value for kind in cls)
            raise UnknownAuthKindError(
                f"Unknown authentication type: {value}",
                remediation=f"Use one of: {known}",
            ) from e


@dataclass(frozen=True)
class ResourceLocator:
    """URL of the artifact plus auxiliary options."""

    url: str
    """Remote URL (https:// or s3://)."""

    options: Mapping[str, Any] = field(default_factory=dict)
    """Per-call options such as auth_type, token, region or headers."""

    def __post_init__(self):
        object.__setattr__(self, "options", MappingProxyType(dict(self.options or {})))

    def option(self, key: str, default: Any = None) -> Any:
        """Return an option value, treating empty strings as absent."""
        value = self.options.get(key)
        if value is None or value == "":
            return default
        return value


# Parsed targets, one per strategy


@dataclass(frozen=True)
class GitHubRawTarget:
    owner: str
    repo: str
    path: str


@dataclass(frozen=True)
class GitHubReleaseTarget:
    owner: str
    repo: str
    tag: str | None = None
    filename: str | None = None
    asset_id: str | None = None

    @property
    def is_latest(self) -> bool:
        return self.tag == "latest"

    @property
    def is_asset_api(self) -> bool:
        return self.asset_id is not None


@dataclass(frozen=True)
class GitLabRawTarget:
    host: str
    project: str
    """Decoded project path ("group/project") or numeric project id."""

    path: str
    """Decoded file path inside the repository."""

    ref: str


@dataclass(frozen=True)
class GitLabReleaseTarget:
    host: str
    project: str
    tag: str
    filename: str


@dataclass(frozen=True)
class S3Target:
    bucket: str
    key: str
    """Decoded object key."""

    region: str
    style: str
    """Addressing style: 'virtual', 'path' or 'custom'."""

    endpoint: str | None = None
    """Host of a custom S3-compatible endpoint."""

    @property
    def host(self) -> str:
        if self.style == "custom":
            return self.endpoint
        if self.style == "path":
            return f"s3.{self.region}.amazonaws.com"
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def path(self) -> str:
        if self.style == "virtual":
            return f"/{self.key}"
        return f"/{self.bucket}/{self.key}"


@dataclass(frozen=True)
class PlainTarget:
    url: str


# Credential bundles. Secrets are excluded from repr so bundles never leak into logs.


@dataclass(frozen=True)
class TokenCredentials:
    token: str = field(repr=False)
    source: str = ""


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str = field(repr=False)
    source: str = ""


@dataclass(frozen=True)
class HeaderCredentials:
    name: str
    value: str = field(repr=False)
    source: str = ""


@dataclass(frozen=True)
class AwsCredentials:
    access_key: str
    secret_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    source: str = ""


@dataclass(frozen=True)
class PresignedUrlCredentials:
    url: str = field(repr=False)
    source: str = ""


@dataclass(frozen=True)
class AnonymousCredentials:
    source: str = "anonymous"


CredentialBundle = (
    TokenCredentials
    | BasicCredentials
    | HeaderCredentials
    | AwsCredentials
    | PresignedUrlCredentials
    | AnonymousCredentials
)


@dataclass(frozen=True)
class CanonicalRequestSpec:
    """Inputs of an AWS Signature Version 4 canonical request."""

    method: str
    canonical_uri: str
    canonical_query: str
    headers: tuple[tuple[str, str], ...]
    timestamp: str
    """Request time as YYYYMMDDTHHMMSSZ."""

    date_stamp: str
    """Request date as YYYYMMDD."""

    region: str
    payload_hash: str = "UNSIGNED-PAYLOAD"
    service: str = "s3"

    def __post_init__(self):
        normalized = sorted((name.strip().lower(), " ".join(str(value).split())) for name, value in self.headers)
        object.__setattr__(self, "headers", tuple(normalized))

    @property
    def signed_headers(self) -> str:
        return ";".join(name for name, _ in self.headers)

    @property
    def canonical_headers(self) -> str:
        return "".join(f"{name}:{value}\n" for name, value in self.headers)

    @property
    def credential_scope(self) -> str:
        return f"{self.date_stamp}/{self.region}/{self.service}/aws4_request"


@dataclass(frozen=True)
class SignedRequestHeaders:
    authorization: str = field(repr=False)
    amz_date: str
    content_sha256: str
    security_token: str | None = field(default=None, repr=False)

    def as_dict(self) -> dict[str, str]:
        headers = {
            "Authorization": self.authorization,
            "x-amz-date": self.amz_date,
            "x-amz-content-sha256": self.content_sha256,
        }
        if self.security_token:
            headers["x-amz-security-token"] = self.security_token
        return headers


@dataclass(frozen=True)
class FetchRequestDescriptor:
    """Transport-ready description of a single GET request."""

    url: str
    headers: tuple[tuple[str, str], ...] = ()
    dest: str | None = None
    timeout: float | None = None
    auth: tuple[str, str] | None = field(default=None, repr=False)
    """Basic auth (username, password) passed to the client instead of a header."""

    strategy: str | None = None
    method: str = "GET"
    credential_source: str | None = None
    """Where the credentials came from, for remediation when they are rejected."""

    def headers_dict(self) -> dict[str, str]:
        return dict(self.headers)


@dataclass
class FetchResult:
    """Outcome of a successful fetch."""

    path: str
    strategy: str
    url: str
    name: str | None = None
    version: str | None = None

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Credential resolution chains for each authentication kind.

Each chain walks its sources in order and stops at the first one that yields a
usable value. A source with nothing to offer returns None; only exhaustion of
the whole chain raises MissingCredentialsError.
"""

import json
import logging
from typing import Any, Mapping

from .config import FetchSettings
from .environment import CommandRunner, Environment
from .exceptions import MissingCredentialsError, TransportError, UnknownAuthKindError, UpstreamApiError
from .http_client import HttpClient
from .models import (
    AnonymousCredentials,
    AuthKind,
    AwsCredentials,
    BasicCredentials,
    CredentialBundle,
    FetchRequestDescriptor,
    HeaderCredentials,
    PresignedUrlCredentials,
    TokenCredentials,
)

logger = logging.getLogger(__name__)

GITHUB_TOKEN_VAR = "HOMEBREW_GITHUB_API_TOKEN"
GITLAB_TOKEN_VARS = ("HOMEBREW_GITLAB_API_TOKEN", "GITLAB_PRIVATE_TOKEN")
GLAB_TOKEN_VAR = "GITLAB_TOKEN"
BEARER_TOKEN_VAR = "HOMEBREW_BEARER_TOKEN"
BASIC_USER_VAR = "HOMEBREW_AUTH_USER"
BASIC_PASSWORD_VAR = "HOMEBREW_AUTH_PASSWORD"
HEADER_NAME_VAR = "HOMEBREW_AUTH_HEADER"
HEADER_VALUE_VAR = "HOMEBREW_AUTH_VALUE"
API_KEY_VAR = "HOMEBREW_API_KEY"
API_KEY_HEADER_VAR = "HOMEBREW_API_KEY_HEADER"
AWS_ACCESS_KEY_VAR = "AWS_ACCESS_KEY_ID"
AWS_SECRET_KEY_VAR = "AWS_SECRET_ACCESS_KEY"
AWS_SESSION_TOKEN_VAR = "AWS_SESSION_TOKEN"
AWS_REGION_VARS = ("AWS_REGION", "AWS_DEFAULT_REGION")
PRESIGNED_URL_VAR = "HOMEBREW_S3_PRESIGNED_URL"

DEFAULT_API_KEY_HEADER = "X-API-Key"

# Variables each provider reads, in resolution order. Used for remediation text and the CLI.
CREDENTIAL_VARIABLES: dict[str, tuple[str, ...]] = {
    "GitHub": (GITHUB_TOKEN_VAR,),
    "GitLab": GITLAB_TOKEN_VARS + (GLAB_TOKEN_VAR,),
    "AWS S3": (AWS_ACCESS_KEY_VAR, AWS_SECRET_KEY_VAR, AWS_SESSION_TOKEN_VAR) + AWS_REGION_VARS + (PRESIGNED_URL_VAR,),
    "Generic Auth": (
        BEARER_TOKEN_VAR,
        API_KEY_VAR,
        API_KEY_HEADER_VAR,
        BASIC_USER_VAR,
        BASIC_PASSWORD_VAR,
        HEADER_NAME_VAR,
        HEADER_VALUE_VAR,
    ),
}


def _option(options: Mapping[str, Any], key: str) -> str | None:
    value = options.get(key)
    if value is None or value == "":
        return None
    return str(value)


def rejected_credentials_remediation(source: str | None) -> str:
    """Remediation for a 401/403 answered to credentials from the given source."""
    if source == "gh":
        return "GitHub CLI token was rejected; run 'gh auth login' or 'gh auth refresh'."
    if source == "glab":
        return "GitLab CLI token was rejected; run 'glab auth login'."
    if source == GITHUB_TOKEN_VAR:
        return f"Token from {GITHUB_TOKEN_VAR} was rejected; refresh it or run 'gh auth login'."
    if source in GITLAB_TOKEN_VARS or source == GLAB_TOKEN_VAR:
        return f"Token from {source} was rejected; refresh it or run 'glab auth login'."
    if source == "option":
        return "Credentials passed in the options were rejected; check that they are current and grant access."
    if source == "instance-metadata":
        return "Instance role credentials were rejected; check the IAM role's permissions on this object."
    if not source or source == "anonymous":
        return "The resource requires authentication; configure credentials for this provider."
    return f"Credentials from {source} were rejected; refresh them or check that they grant access to this resource."


class CredentialResolver:
    """Resolves credential bundles from options, environment, CLIs and instance metadata."""

    def __init__(
        self,
        environment: Environment | None = None,
        command_runner: CommandRunner | None = None,
        http_client: HttpClient | None = None,
        settings: FetchSettings | None = None,
    ):
        self.environment = environment or Environment()
        self.settings = settings or FetchSettings.from_env(self.environment)
        self.command_runner = command_runner or CommandRunner(timeout=self.settings.command_timeout)
        self.http_client = http_client

    def resolve(self, kind: AuthKind | str, options: Mapping[str, Any] | None = None) -> CredentialBundle:
        """Resolve credentials for an auth kind.

        Args:
            kind: Authentication kind (enum member or name)
            options: Per-call options; explicit values win over every other source

        Returns:
            Credential bundle for the kind

        Raises:
            UnknownAuthKindError: If the kind is not recognized
            MissingCredentialsError: If no source produced a usable bundle
            UpstreamApiError: If the instance metadata service returned malformed data
        """
        kind = AuthKind.parse(kind)
        options = options or {}
        resolvers = {
            AuthKind.GITHUB_TOKEN: self._resolve_github,
            AuthKind.GITLAB_TOKEN: self._resolve_gitlab,
            AuthKind.BEARER: self._resolve_bearer,
            AuthKind.BASIC: self._resolve_basic,
            AuthKind.CUSTOM_HEADER: self._resolve_custom_header,
            AuthKind.API_KEY: self._resolve_api_key,
            AuthKind.AWS_SIGV4: self._resolve_aws,
            AuthKind.PRESIGNED_URL: self._resolve_presigned_url,
            AuthKind.NONE: lambda _options: AnonymousCredentials(),
        }
        return resolvers[kind](options)

    def detect_auth_kind(self, options: Mapping[str, Any] | None = None) -> AuthKind:
        """Infer the generic auth kind from option and environment signals.

        Priority is Bearer, ApiKey, Basic (both halves), CustomHeader.

        Raises:
            UnknownAuthKindError: If no signal is present
        """
        options = options or {}
        env = self.environment
        if _option(options, "token") or env.get(BEARER_TOKEN_VAR):
            return AuthKind.BEARER
        if _option(options, "api_key") or env.get(API_KEY_VAR):
            return AuthKind.API_KEY
        if (_option(options, "username") and _option(options, "password")) or (
            env.get(BASIC_USER_VAR) and env.get(BASIC_PASSWORD_VAR)
        ):
            return AuthKind.BASIC
        if _option(options, "header") or env.get(HEADER_NAME_VAR):
            return AuthKind.CUSTOM_HEADER
        raise UnknownAuthKindError(
            "Could not detect authentication type.",
            remediation=(
                f"Pass auth_type explicitly or set one of {BEARER_TOKEN_VAR}, {API_KEY_VAR}, "
                f"{BASIC_USER_VAR}+{BASIC_PASSWORD_VAR} or {HEADER_NAME_VAR}."
            ),
        )

    def region(self, options: Mapping[str, Any] | None = None, default: str = "us-east-1") -> str:
        """Region from the region option, then AWS_REGION/AWS_DEFAULT_REGION."""
        return _option(options or {}, "region") or self.environment.first(*AWS_REGION_VARS) or default

    # GitHub / GitLab

    def _resolve_github(self, options: Mapping[str, Any]) -> TokenCredentials:
        token = _option(options, "token")
        if token:
            return TokenCredentials(token=token, source="option")
        token = self.environment.get(GITHUB_TOKEN_VAR)
        if token:
            return TokenCredentials(token=token, source=GITHUB_TOKEN_VAR)
        token = self._gh_cli_token()
        if token:
            return TokenCredentials(token=token, source="gh")
        raise MissingCredentialsError(
            "GitHub authentication required.",
            remediation=f"Set {GITHUB_TOKEN_VAR} or authenticate with 'gh auth login'.",
        )

    def _gh_cli_token(self) -> str | None:
        runner = self.command_runner
        if not runner.available("gh"):
            logger.debug("gh CLI not installed")
            return None
        if not runner.run("gh", "auth", "status").ok:
            logger.debug("gh CLI is not authenticated")
            return None
        result = runner.run("gh", "auth", "token")
        token = result.stdout.strip()
        if not result.ok or not token:
            return None
        return token

    def _resolve_gitlab(self, options: Mapping[str, Any]) -> TokenCredentials:
        token = _option(options, "token")
        if token:
            return TokenCredentials(token=token, source="option")
        for name in GITLAB_TOKEN_VARS:
            token = self.environment.get(name)
            if token:
                return TokenCredentials(token=token, source=name)
        token = self._glab_cli_token()
        if token:
            return TokenCredentials(token=token, source="glab")
        token = self.environment.get(GLAB_TOKEN_VAR)
        if token:
            return TokenCredentials(token=token, source=GLAB_TOKEN_VAR)
        raise MissingCredentialsError(
            "GitLab authentication required.",
            remediation=f"Set {'/'.join(GITLAB_TOKEN_VARS)} or authenticate with 'glab auth login'.",
        )

    def _glab_cli_token(self) -> str | None:
        runner = self.command_runner
        if not runner.available("glab"):
            logger.debug("glab CLI not installed")
            return None
        result = runner.run("glab", "config", "get", "token")
        token = result.stdout.strip()
        if not result.ok or not token:
            return None
        return token

    # Generic kinds

    def _resolve_bearer(self, options: Mapping[str, Any]) -> TokenCredentials:
        token = _option(options, "token")
        if token:
            return TokenCredentials(token=token, source="option")
        token = self.environment.get(BEARER_TOKEN_VAR)
        if token:
            return TokenCredentials(token=token, source=BEARER_TOKEN_VAR)
        raise MissingCredentialsError(
            "Bearer token required.",
            remediation=f"Set the {BEARER_TOKEN_VAR} environment variable.",
        )

    def _resolve_basic(self, options: Mapping[str, Any]) -> BasicCredentials:
        username, password = _option(options, "username"), _option(options, "password")
        if username and password:
            return BasicCredentials(username=username, password=password, source="option")
        username, password = self.environment.get(BASIC_USER_VAR), self.environment.get(BASIC_PASSWORD_VAR)
        if username and password:
            return BasicCredentials(username=username, password=password, source=BASIC_USER_VAR)
        raise MissingCredentialsError(
            "Username and password required.",
            remediation=f"Set the {BASIC_USER_VAR} and {BASIC_PASSWORD_VAR} environment variables.",
        )

    def _resolve_custom_header(self, options: Mapping[str, Any]) -> HeaderCredentials:
        name, value = _option(options, "header"), _option(options, "header_value")
        if name and value:
            return HeaderCredentials(name=name, value=value, source="option")
        name, value = self.environment.get(HEADER_NAME_VAR), self.environment.get(HEADER_VALUE_VAR)
        if name and value:
            return HeaderCredentials(name=name, value=value, source=HEADER_NAME_VAR)
        raise MissingCredentialsError(
            "Custom header and value required.",
            remediation=f"Set the {HEADER_NAME_VAR} and {HEADER_VALUE_VAR} environment variables.",
        )

    def _resolve_api_key(self, options: Mapping[str, Any]) -> HeaderCredentials:
        header = (
            _option(options, "api_key_header")
            or self.environment.get(API_KEY_HEADER_VAR)
            or DEFAULT_API_KEY_HEADER
        )
        key = _option(options, "api_key")
        if key:
            return HeaderCredentials(name=header, value=key, source="option")
        key = self.environment.get(API_KEY_VAR)
        if key:
            return HeaderCredentials(name=header, value=key, source=API_KEY_VAR)
        raise MissingCredentialsError(
            "API key required.",
            remediation=f"Set the {API_KEY_VAR} environment variable.",
        )

    # AWS

    def _resolve_presigned_url(self, options: Mapping[str, Any]) -> PresignedUrlCredentials:
        url = _option(options, "presigned_url")
        if url:
            return PresignedUrlCredentials(url=url, source="option")
        url = self.environment.get(PRESIGNED_URL_VAR)
        if url:
            return PresignedUrlCredentials(url=url, source=PRESIGNED_URL_VAR)
        raise MissingCredentialsError(
            "Presigned URL required.",
            remediation=f"Pass presigned_url or set the {PRESIGNED_URL_VAR} environment variable.",
        )

    def _resolve_aws(self, options: Mapping[str, Any]) -> AwsCredentials:
        access_key, secret_key = _option(options, "access_key"), _option(options, "secret_key")
        if access_key and secret_key:
            return AwsCredentials(
                access_key=access_key,
                secret_key=secret_key,
                session_token=_option(options, "session_token"),
                source="option",
            )
        env = self.environment
        access_key, secret_key = env.get(AWS_ACCESS_KEY_VAR), env.get(AWS_SECRET_KEY_VAR)
        if access_key and secret_key:
            return AwsCredentials(
                access_key=access_key,
                secret_key=secret_key,
                session_token=env.get(AWS_SESSION_TOKEN_VAR),
                source=AWS_ACCESS_KEY_VAR,
            )
        credentials = self._instance_metadata_credentials()
        if credentials:
            return credentials
        raise MissingCredentialsError(
            "AWS credentials required.",
            remediation=(
                f"Set the {AWS_ACCESS_KEY_VAR} and {AWS_SECRET_KEY_VAR} environment variables, "
                "or run on an instance with an attached IAM role."
            ),
        )

    def _metadata_get(self, path: str, timeout: float | None) -> str:
        descriptor = FetchRequestDescriptor(
            url=f"{self.settings.metadata_endpoint}{path}",
            timeout=timeout,
            strategy="instance-metadata",
        )
        return self.http_client.execute(descriptor).decode("utf-8", errors="replace")

    def _instance_metadata_credentials(self) -> AwsCredentials | None:
        """Temporary keys of the instance role, or None when not on an instance."""
        if self.http_client is None:
            return None
        timeout = self.settings.metadata_timeout
        try:
            self._metadata_get("", timeout)
        except TransportError as e:
            logger.debug(f"Instance metadata service not reachable: {e.message}")
            return None

        try:
            roles = self._metadata_get("iam/security-credentials/", timeout)
        except TransportError as e:
            if e.status_code == 404:
                logger.debug("Instance has no IAM role attached")
                return None
            raise UpstreamApiError(
                "Instance metadata service failed to list IAM roles.", body=e.body
            ) from e
        role = roles.strip().splitlines()[0].strip() if roles.strip() else ""
        if not role:
            return None

        try:
            body = self._metadata_get(f"iam/security-credentials/{role}", timeout)
        except TransportError as e:
            raise UpstreamApiError(
                f"Instance metadata service failed to return credentials for role {role}.", body=e.body
            ) from e
        try:
            data = json.loads(body)
            access_key, secret_key = data["AccessKeyId"], data["SecretAccessKey"]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamApiError(
                "Instance metadata service returned malformed credentials.", body=body
            ) from e
        if not access_key or not secret_key:
            raise UpstreamApiError("Instance metadata service returned empty credentials.", body=body)
        logger.info(f"Using instance role credentials for role {role}")
        return AwsCredentials(
            access_key=access_key,
            secret_key=secret_key,
            session_token=data.get("Token") or None,
            source="instance-metadata",
        )

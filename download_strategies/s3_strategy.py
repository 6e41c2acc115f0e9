# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Amazon S3 strategies: SigV4-signed, presigned and public objects."""

import logging
import re
from urllib.parse import unquote

from . import signing
from .base import DownloadStrategy, pattern
from .credentials import PRESIGNED_URL_VAR
from .exceptions import InvalidLocatorError, MissingCredentialsError
from .models import (
    AuthKind,
    AwsCredentials,
    CredentialBundle,
    FetchRequestDescriptor,
    PlainTarget,
    PresignedUrlCredentials,
    ResourceLocator,
    S3Target,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
AWS_HOST = re.compile(r"\.amazonaws\.com(:\d+)?$", re.IGNORECASE)
DASH_REGION_ALIASES = {"external-1": "us-east-1"}
UNSUPPORTED_DASH_ENDPOINTS = ("accelerate",)


class S3Strategy(DownloadStrategy):
    """Objects in private S3 buckets or S3-compatible stores.

    Addressing styles, tried in order: ``s3://bucket/key``, virtual-hosted,
    path-style, the global endpoints, the legacy ``s3-<region>`` endpoints
    (requested through the regional ``s3.<region>`` host), and finally a
    custom endpoint ``https://host/bucket/key``. The custom form never
    accepts an amazonaws.com host. It matches almost any other URL, so the
    dispatcher never picks this strategy for it; it applies only when s3 is
    requested by name.
    """

    name = "s3"
    families = (
        re.compile(r"s3://"),
        re.compile(r"https://([^/]+\.)?s3[.-]([^/]+\.)?amazonaws\.com(/|$)"),
    )
    patterns = (
        pattern("shorthand", r"s3://(?P<bucket>[^/]+)/(?P<key>.+)"),
        pattern("virtual", r"https://(?P<bucket>[^/]+)\.s3\.(?P<region>[^./]+)\.amazonaws\.com/(?P<key>[^?#]+)"),
        pattern("path", r"https://s3\.(?P<region>[^./]+)\.amazonaws\.com/(?P<bucket>[^/]+)/(?P<key>[^?#]+)"),
        pattern("virtual-global", r"https://(?P<bucket>[^/]+)\.s3\.amazonaws\.com/(?P<key>[^?#]+)"),
        pattern("path-global", r"https://s3\.amazonaws\.com/(?P<bucket>[^/]+)/(?P<key>[^?#]+)"),
        pattern(
            "virtual-dash",
            r"https://(?P<bucket>[^/]+)\.s3-(?P<region>[^./]+)\.amazonaws\.com/(?P<key>[^?#]+)",
        ),
        pattern("path-dash", r"https://s3-(?P<region>[^./]+)\.amazonaws\.com/(?P<bucket>[^/]+)/(?P<key>[^?#]+)"),
        pattern("custom", r"https?://(?P<endpoint>[^/]+)/(?P<bucket>[^/]+)/(?P<key>[^?#]+)"),
    )

    def url_hint(self) -> str:
        return (
            "Expected s3://<bucket>/<key>, https://<bucket>.s3.<region>.amazonaws.com/<key>, "
            "https://s3.<region>.amazonaws.com/<bucket>/<key> or https://<endpoint>/<bucket>/<key>"
        )

    def parse_target(self, locator: ResourceLocator) -> S3Target:
        shape, fields = self.match_fields(locator)
        if shape == "shorthand":
            return S3Target(
                bucket=fields["bucket"],
                key=fields["key"],
                region=self.resolver.region(locator.options, DEFAULT_REGION),
                style="virtual",
            )

        key = unquote(fields["key"])
        if shape in ("virtual-dash", "path-dash"):
            region = DASH_REGION_ALIASES.get(fields["region"], fields["region"])
            if region in UNSUPPORTED_DASH_ENDPOINTS:
                raise InvalidLocatorError(
                    f"Unsupported Amazon S3 endpoint: {locator.url}", strategy=self.name, remediation=self.url_hint()
                )
            return S3Target(bucket=fields["bucket"], key=key, region=region, style=shape.split("-")[0])
        if shape in ("virtual", "path"):
            return S3Target(bucket=fields["bucket"], key=key, region=fields["region"], style=shape)
        if shape in ("virtual-global", "path-global"):
            return S3Target(
                bucket=fields["bucket"],
                key=key,
                region=self.resolver.region(locator.options, DEFAULT_REGION),
                style=shape.split("-")[0],
            )
        if AWS_HOST.search(fields["endpoint"]):
            raise InvalidLocatorError(
                f"Unsupported Amazon S3 endpoint: {locator.url}", strategy=self.name, remediation=self.url_hint()
            )
        if not locator.url.startswith("https://"):
            raise InvalidLocatorError(
                f"Custom S3 endpoints must use https: {locator.url}", strategy=self.name, remediation=self.url_hint()
            )
        return S3Target(
            bucket=fields["bucket"],
            key=key,
            region=self.resolver.region(locator.options, DEFAULT_REGION),
            style="custom",
            endpoint=fields["endpoint"],
        )

    def _presigned_url(self, locator: ResourceLocator) -> str | None:
        return locator.option("presigned_url") or self.resolver.environment.get(PRESIGNED_URL_VAR)

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        if self._presigned_url(locator):
            return AuthKind.PRESIGNED_URL
        return AuthKind.AWS_SIGV4

    def build_request(self, locator, target: S3Target, credentials: CredentialBundle,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        if isinstance(credentials, PresignedUrlCredentials):
            logger.info(f"Using presigned URL for s3://{target.bucket}/{target.key}")
            return self.descriptor(credentials.url, dest=dest, timeout=timeout)
        if not isinstance(credentials, AwsCredentials):
            raise MissingCredentialsError("AWS credentials required.", strategy=self.name)

        spec = signing.canonical_spec_for_get(
            host=target.host,
            path=target.path,
            when=self.clock(),
            region=target.region,
            session_token=credentials.session_token,
        )
        signed = signing.sign(spec, credentials.access_key, credentials.secret_key, credentials.session_token)
        url = f"https://{target.host}{spec.canonical_uri}"
        return self.descriptor(url, list(signed.as_dict().items()), dest=dest, timeout=timeout)


class S3PublicStrategy(DownloadStrategy):
    """Unauthenticated GET for public buckets or any URL with auth_type none."""

    name = "s3-public"
    patterns = (
        pattern("shorthand", r"s3://(?P<bucket>[^/]+)/(?P<key>.+)"),
        pattern("plain", r"https?://[^/]+/.*"),
    )

    def url_hint(self) -> str:
        return "Expected s3://<bucket>/<key> or an http(s) URL"

    def parse_target(self, locator: ResourceLocator) -> PlainTarget:
        shape, fields = self.match_fields(locator)
        if shape == "shorthand":
            target = S3Target(
                bucket=fields["bucket"],
                key=fields["key"],
                region=self.resolver.region(locator.options, DEFAULT_REGION),
                style="virtual",
            )
            return PlainTarget(url=f"https://{target.host}{signing.encode_uri_path(target.path)}")
        return PlainTarget(url=locator.url)

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        return AuthKind.NONE

    def build_request(self, locator, target: PlainTarget, credentials: CredentialBundle,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        return self.descriptor(target.url, dest=dest, timeout=timeout)

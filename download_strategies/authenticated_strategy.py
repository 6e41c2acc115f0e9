# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Generic authenticated HTTPS downloads (bearer, basic, API key, custom header)."""

import logging
import re
from collections.abc import Mapping
from typing import Any

from .base import DownloadStrategy, pattern
from .exceptions import InvalidLocatorError, UnknownAuthKindError
from .models import (
    AuthKind,
    BasicCredentials,
    CredentialBundle,
    FetchRequestDescriptor,
    HeaderCredentials,
    PlainTarget,
    ResourceLocator,
    TokenCredentials,
)

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = (AuthKind.BEARER, AuthKind.BASIC, AuthKind.API_KEY, AuthKind.CUSTOM_HEADER)


def extra_headers(value: Any, strategy: str | None = None) -> list[tuple[str, str]]:
    """Normalize the headers option into (name, value) pairs.

    Accepts a mapping, a list of pairs, or a list of "Name: value" strings.
    """
    if not value:
        return []
    if isinstance(value, Mapping):
        items = list(value.items())
    else:
        items = []
        for entry in value:
            if isinstance(entry, str):
                name, sep, header_value = entry.partition(":")
                if not sep:
                    raise InvalidLocatorError(f"Malformed header {entry!r}, expected 'Name: value'", strategy=strategy)
                items.append((name, header_value))
            else:
                name, header_value = entry
                items.append((name, header_value))
    return [(str(name).strip(), str(header_value).strip()) for name, header_value in items]


class AuthenticatedStrategy(DownloadStrategy):
    """Any HTTPS URL with a declared or detected generic auth scheme."""

    name = "authenticated"
    families = (re.compile(r"https?://[^/]+(/|$)"),)
    patterns = (pattern("plain", r"https?://[^/]+(?:/.*)?"),)

    def url_hint(self) -> str:
        return "Expected an https URL"

    def parse_target(self, locator: ResourceLocator) -> PlainTarget:
        self.match_fields(locator)
        if not locator.url.lower().startswith("https://"):
            raise InvalidLocatorError(
                f"Refusing to send credentials over plain HTTP: {locator.url.split('?', 1)[0]}",
                strategy=self.name,
                remediation="Use an https:// URL, or pass auth_type none for an unauthenticated download.",
            )
        return PlainTarget(url=locator.url)

    def auth_kind(self, locator: ResourceLocator) -> AuthKind:
        declared = locator.option("auth_type")
        if declared is None:
            kind = self.resolver.detect_auth_kind(locator.options)
            logger.debug(f"Detected {kind.value} authentication for {locator.url.split('?', 1)[0]}")
            return kind
        kind = AuthKind.parse(declared)
        if kind not in SUPPORTED_KINDS:
            raise UnknownAuthKindError(
                f"Unknown authentication type: {declared}",
                strategy=self.name,
                remediation="Use one of: bearer, basic, api_key, header",
            )
        return kind

    def build_request(self, locator, target: PlainTarget, credentials: CredentialBundle,
                      dest=None, timeout=None) -> FetchRequestDescriptor:
        headers: list[tuple[str, str]] = []
        auth = None
        if isinstance(credentials, TokenCredentials):
            headers.append(("Authorization", f"Bearer {credentials.token}"))
        elif isinstance(credentials, BasicCredentials):
            auth = (credentials.username, credentials.password)
        elif isinstance(credentials, HeaderCredentials):
            headers.append((credentials.name, credentials.value))
        headers.extend(extra_headers(locator.option("headers"), strategy=self.name))
        return self.descriptor(target.url, headers, dest=dest, timeout=timeout, auth=auth)

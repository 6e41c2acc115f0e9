# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Test fixtures for download strategies: fake HTTP client, CLI runner and clock."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from download_strategies import (
    CommandResult,
    CredentialResolver,
    Environment,
    FetchSettings,
    HttpClient,
    TransportError,
)


class FakeHttpClient(HttpClient):
    """HttpClient that serves canned responses keyed by URL.

    A response is bytes, a dict/list (served as JSON), or an exception
    instance to raise. Every descriptor passed in is recorded.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = dict(responses or {})
        self.executed = []
        self.downloaded = []

    def _respond(self, descriptor):
        if descriptor.url not in self.responses:
            raise TransportError(f"connection refused: {descriptor.url}", url=descriptor.url)
        response = self.responses[descriptor.url]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response).encode("utf-8")
        return response

    def execute(self, descriptor):
        self.executed.append(descriptor)
        return self._respond(descriptor)

    def download(self, descriptor):
        self.downloaded.append(descriptor)
        payload = self._respond(descriptor)
        with open(descriptor.dest, "wb") as f:
            f.write(payload)
        return descriptor.dest


class FakeCommandRunner:
    """CommandRunner with a fixed set of installed commands and canned results."""

    def __init__(self, installed=(), results: dict | None = None):
        self.installed = set(installed)
        self.results = dict(results or {})
        self.calls = []

    def available(self, command):
        return command in self.installed

    def run(self, command, *args):
        self.calls.append((command, *args))
        if command not in self.installed:
            return CommandResult(stdout="", exit_code=127)
        return self.results.get((command, *args), CommandResult(stdout="", exit_code=1))


FIXED_TIME = datetime(2013, 5, 24, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def http_client():
    return FakeHttpClient()


@pytest.fixture
def command_runner():
    return FakeCommandRunner()


@pytest.fixture
def make_resolver(http_client, command_runner):
    """Build a CredentialResolver over a fake environment."""

    def _make(env: dict | None = None, client=None, runner=None):
        environment = Environment(env or {})
        return CredentialResolver(
            environment=environment,
            command_runner=runner or command_runner,
            http_client=client or http_client,
            settings=FetchSettings.from_env(environment),
        )

    return _make


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME

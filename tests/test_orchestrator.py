# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for the Fetcher orchestrator."""

import logging

import pytest
from download_strategies import (
    CommandResult,
    Environment,
    Fetcher,
    FetchResult,
    InvalidLocatorError,
    MissingCredentialsError,
    TransportError,
    UnrecognizedLocatorError,
    UpstreamApiError,
)

RAW_URL = "https://raw.githubusercontent.com/acme/tool/main/install.sh"


@pytest.fixture
def make_fetcher(http_client, command_runner, fixed_clock):
    def _make(env=None):
        return Fetcher(
            environment=Environment(env or {}),
            command_runner=command_runner,
            http_client=http_client,
            clock=fixed_clock,
        )

    return _make


class TestPrepare:
    """Tests for Fetcher.prepare."""

    def test_prepare_is_repeatable(self, make_fetcher):
        """Test that preparing the same inputs twice gives equal descriptors."""
        fetcher = make_fetcher(
            {"AWS_ACCESS_KEY_ID": "AKID", "AWS_SECRET_ACCESS_KEY": "secret", "AWS_REGION": "eu-west-1"}
        )

        first = fetcher.prepare("s3://bucket/tool.tar.gz", "/tmp/tool.tar.gz")
        second = fetcher.prepare("s3://bucket/tool.tar.gz", "/tmp/tool.tar.gz")

        assert first == second
        assert first.url == "https://bucket.s3.eu-west-1.amazonaws.com/tool.tar.gz"

    def test_default_timeout_from_settings(self, make_fetcher):
        fetcher = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t", "DOWNLOAD_STRATEGIES_TIMEOUT": "30"})
        assert fetcher.prepare(RAW_URL).timeout == 30.0

    def test_explicit_timeout_passed_through(self, make_fetcher):
        fetcher = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t", "DOWNLOAD_STRATEGIES_TIMEOUT": "30"})
        assert fetcher.prepare(RAW_URL, timeout=2.5).timeout == 2.5

    def test_error_is_tagged_with_strategy(self, make_fetcher):
        """Test that resolver errors name the strategy that needed the credentials."""
        with pytest.raises(MissingCredentialsError) as exc_info:
            make_fetcher({}).prepare(RAW_URL)
        assert exc_info.value.strategy == "github-raw"
        assert "strategy: github-raw" in str(exc_info.value)

    def test_unrecognized_url(self, make_fetcher):
        with pytest.raises(UnrecognizedLocatorError) as exc_info:
            make_fetcher({}).prepare("ftp://example.com/file")
        assert exc_info.value.strategy is None


class TestFetch:
    """Tests for Fetcher.fetch."""

    def test_fetch_writes_file(self, make_fetcher, http_client, tmp_path):
        http_client.responses[RAW_URL] = b"#!/bin/sh\necho hi\n"
        dest = str(tmp_path / "install.sh")

        result = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t"}).fetch(RAW_URL, dest, name="tool", version="1.0")

        assert result == FetchResult(path=dest, strategy="github-raw", url=RAW_URL, name="tool", version="1.0")
        with open(dest, "rb") as f:
            assert f.read() == b"#!/bin/sh\necho hi\n"
        assert http_client.downloaded[0].headers_dict() == {"Authorization": "token t"}

    def test_fetch_latest_release(self, make_fetcher, http_client, tmp_path):
        """Test the lookup and the download both go through the client."""
        http_client.responses["https://api.github.com/repos/acme/tool/releases/latest"] = {"tag_name": "v2.3.0"}
        http_client.responses["https://github.com/acme/tool/releases/download/v2.3.0/tool.tar.gz"] = b"tarball"

        result = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t"}).fetch(
            "https://github.com/acme/tool/releases/latest/download/tool.tar.gz", str(tmp_path / "tool.tar.gz")
        )

        assert result.url == "https://github.com/acme/tool/releases/download/v2.3.0/tool.tar.gz"
        assert len(http_client.executed) == 1
        assert len(http_client.downloaded) == 1

    def test_transport_error_tagged_and_logged(self, make_fetcher, tmp_path, caplog):
        """Test that a failed download names the strategy and is logged."""
        fetcher = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t"})

        with caplog.at_level(logging.ERROR, logger="download_strategies.orchestrator"):
            with pytest.raises(TransportError) as exc_info:
                fetcher.fetch(RAW_URL, str(tmp_path / "install.sh"), name="tool", version="1.0")

        assert exc_info.value.strategy == "github-raw"
        assert "Download of tool 1.0 failed" in caplog.text

    def test_options_reach_strategy(self, make_fetcher, http_client, tmp_path):
        url = "https://artifacts.example.com/tool.tar.gz"
        http_client.responses[url] = b"data"

        make_fetcher({}).fetch(url, str(tmp_path / "t"), options={"auth_type": "bearer", "token": "abc"})

        assert http_client.downloaded[0].headers_dict() == {"Authorization": "Bearer abc"}

    def test_plain_http_with_credentials_refused(self, make_fetcher, http_client, tmp_path):
        url = "http://artifacts.example.com/tool.tar.gz"
        http_client.responses[url] = b"data"

        with pytest.raises(InvalidLocatorError) as exc_info:
            make_fetcher({"HOMEBREW_BEARER_TOKEN": "b"}).fetch(url, str(tmp_path / "t"))

        assert exc_info.value.strategy == "authenticated"
        assert http_client.downloaded == []

    def test_fetcher_is_reusable(self, make_fetcher, http_client, tmp_path):
        """Test that one fetcher serves several unrelated downloads."""
        fetcher = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "gh", "HOMEBREW_BEARER_TOKEN": "b"})
        http_client.responses[RAW_URL] = b"a"
        http_client.responses["https://artifacts.example.com/x"] = b"b"

        first = fetcher.fetch(RAW_URL, str(tmp_path / "a"))
        second = fetcher.fetch("https://artifacts.example.com/x", str(tmp_path / "b"))

        assert (first.strategy, second.strategy) == ("github-raw", "authenticated")


class TestRejectedCredentials:
    """Tests for the remediation attached to 401/403 responses."""

    def test_download_401_names_env_token(self, make_fetcher, http_client, tmp_path):
        """Test that a rejected environment token points at the variable to refresh."""
        http_client.responses[RAW_URL] = TransportError(f"HTTP 401 from {RAW_URL}", url=RAW_URL, status_code=401)

        with pytest.raises(TransportError) as exc_info:
            make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "expired"}).fetch(RAW_URL, str(tmp_path / "install.sh"))

        remediation = exc_info.value.remediation
        assert "HOMEBREW_GITHUB_API_TOKEN" in remediation
        assert "gh auth login" in remediation
        assert f"remediation: {remediation}" in str(exc_info.value)
        assert "expired" not in str(exc_info.value)

    def test_download_403_from_gh_cli(self, make_fetcher, http_client, command_runner, tmp_path):
        command_runner.installed.add("gh")
        command_runner.results[("gh", "auth", "status")] = CommandResult(stdout="Logged in", exit_code=0)
        command_runner.results[("gh", "auth", "token")] = CommandResult(stdout="gho_abc\n", exit_code=0)
        http_client.responses[RAW_URL] = TransportError("HTTP 403", url=RAW_URL, status_code=403)

        with pytest.raises(TransportError) as exc_info:
            make_fetcher({}).fetch(RAW_URL, str(tmp_path / "install.sh"))

        assert "gh auth refresh" in exc_info.value.remediation

    def test_server_error_has_no_remediation(self, make_fetcher, http_client, tmp_path):
        http_client.responses[RAW_URL] = TransportError("HTTP 502", url=RAW_URL, status_code=502)

        with pytest.raises(TransportError) as exc_info:
            make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t"}).fetch(RAW_URL, str(tmp_path / "install.sh"))

        assert exc_info.value.remediation is None

    def test_latest_lookup_401(self, make_fetcher, http_client, tmp_path):
        """Test that a rejected token on the latest-release lookup carries the same hint."""
        api_url = "https://api.github.com/repos/acme/tool/releases/latest"
        http_client.responses[api_url] = TransportError("HTTP 401", url=api_url, status_code=401, body="Bad credentials")

        with pytest.raises(UpstreamApiError) as exc_info:
            make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "expired"}).fetch(
                "https://github.com/acme/tool/releases/latest/download/tool.tar.gz", str(tmp_path / "tool.tar.gz")
            )

        assert exc_info.value.status_code == 401
        assert exc_info.value.strategy == "github-release"
        assert "HOMEBREW_GITHUB_API_TOKEN" in exc_info.value.remediation
        assert http_client.downloaded == []

    def test_prepare_records_credential_source(self, make_fetcher):
        descriptor = make_fetcher({"HOMEBREW_GITHUB_API_TOKEN": "t"}).prepare(RAW_URL)
        assert descriptor.credential_source == "HOMEBREW_GITHUB_API_TOKEN"
        assert "credential_source='HOMEBREW_GITHUB_API_TOKEN'" in repr(descriptor)

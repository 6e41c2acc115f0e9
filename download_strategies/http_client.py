# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""HTTP client capability and its requests-based implementation."""

import logging
import os
from abc import ABC, abstractmethod

import requests

from .exceptions import TransportError
from .models import FetchRequestDescriptor

logger = logging.getLogger(__name__)

# Longest response body kept on a TransportError for diagnosis
MAX_ERROR_BODY = 4096


class HttpClient(ABC):
    """Executes request descriptors. Implementations own all network I/O."""

    @abstractmethod
    def execute(self, descriptor: FetchRequestDescriptor) -> bytes:
        """Perform the request and return the response body.

        Raises:
            TransportError: If the request fails or returns an error status
        """
        pass

    @abstractmethod
    def download(self, descriptor: FetchRequestDescriptor) -> str:
        """Perform the request and stream the body to ``descriptor.dest``.

        Returns:
            Path of the written file

        Raises:
            TransportError: If the request fails or returns an error status
        """
        pass


class RequestsHttpClient(HttpClient):
    """HttpClient backed by a requests session.

    Redirects are followed. requests drops the Authorization header when a
    redirect crosses hosts.
    """

    def __init__(self, session: requests.Session | None = None, user_agent: str | None = None,
                 chunk_size: int = 8192):
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.chunk_size = chunk_size

    def _send(self, descriptor: FetchRequestDescriptor, stream: bool) -> requests.Response:
        headers = descriptor.headers_dict()
        if self.user_agent:
            headers.setdefault("User-Agent", self.user_agent)
        try:
            response = self.session.request(
                descriptor.method,
                descriptor.url,
                headers=headers,
                auth=descriptor.auth,
                timeout=descriptor.timeout,
                allow_redirects=True,
                stream=stream,
            )
        except requests.RequestException as e:
            raise TransportError(f"Request to {_redact(descriptor.url)} failed: {e}", url=descriptor.url) from e

        if response.status_code >= 400:
            try:
                body = response.text[:MAX_ERROR_BODY]
            except requests.RequestException:
                body = ""
            response.close()
            raise TransportError(
                f"Request to {_redact(descriptor.url)} returned HTTP {response.status_code}",
                url=descriptor.url,
                status_code=response.status_code,
                body=body,
            )
        return response

    def execute(self, descriptor: FetchRequestDescriptor) -> bytes:
        response = self._send(descriptor, stream=False)
        return response.content

    def download(self, descriptor: FetchRequestDescriptor) -> str:
        if not descriptor.dest:
            raise ValueError("download() requires a descriptor with a destination path")

        directory = os.path.dirname(descriptor.dest)
        if directory:
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise TransportError(f"Cannot create {directory}: {e}", url=descriptor.url) from e

        response = self._send(descriptor, stream=True)
        temp_path = f"{descriptor.dest}.part"
        try:
            with open(temp_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
            os.replace(temp_path, descriptor.dest)
        except requests.RequestException as e:
            _remove_quietly(temp_path)
            raise TransportError(
                f"Download from {_redact(descriptor.url)} interrupted: {e}", url=descriptor.url
            ) from e
        except OSError as e:
            _remove_quietly(temp_path)
            raise TransportError(
                f"Cannot write {_redact(descriptor.url)} to {descriptor.dest}: {e}", url=descriptor.url
            ) from e
        finally:
            response.close()

        logger.info(f"Downloaded {_redact(descriptor.url)} to {descriptor.dest}")
        return descriptor.dest


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


def _redact(url: str) -> str:
    """Drop the query string, which carries signatures for presigned URLs."""
    return url.split("?", 1)[0]

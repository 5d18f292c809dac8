"""
Shared HTTP plumbing for REST connectors.

Each connector owns one `httpx.Client`, created on first use and kept for the
life of the process. Requests are not retried; a failed call surfaces as a
ConnectorError carrying the provider's message.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from gittask.core.config import get_env

from .base import ConnectorError, MissingTokenError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def timestamp(value: str | None) -> str:
    """Convert an ISO 8601 timestamp to epoch seconds as a string."""
    if not value:
        return ""
    return str(int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()))


class HttpConnector:
    """
    Base class holding the lazily created client and token lookup.

    Subclasses set `token_env_vars` and implement `_base_url()` and
    `_auth_headers()`.
    """

    token_env_vars: tuple[str, ...] = ()
    default_headers: dict[str, str] = {}

    def __init__(
        self,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            token: API token. Read from the environment when omitted.
            transport: Custom httpx transport (used by tests).
        """
        self._token = token
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def token(self) -> str | None:
        return self._token or get_env(*self.token_env_vars)

    def _base_url(self) -> str:
        raise NotImplementedError

    def _auth_headers(self, token: str) -> dict[str, str]:
        raise NotImplementedError

    def _missing_token_message(self) -> str:
        return f"Could not find {self.token_env_vars[0]} environment variable."

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            headers = dict(self.default_headers)
            token = self.token
            if token:
                headers.update(self._auth_headers(token))
            self._client = httpx.Client(
                base_url=self._base_url(),
                headers=headers,
                timeout=DEFAULT_TIMEOUT,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _request(
        self,
        method: str,
        path: str,
        *,
        write: bool = False,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> Any:
        """
        Send one request and decode its JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL.
            write: The call modifies remote state and needs a token.
            allow_missing: Return None on 404 instead of raising.

        Returns:
            Decoded JSON, or None for empty bodies and allowed 404s.

        Raises:
            MissingTokenError: If write is set and no token is configured.
            ConnectorError: On transport errors and error responses.
        """
        if write and not self.token:
            raise MissingTokenError(self._missing_token_message())

        logger.debug("%s %s", method, path)
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ConnectorError(f"Request failed: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.is_error:
            raise ConnectorError(self._error_message(response))
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"{response.status_code}: {response.text}"
        if isinstance(data, dict):
            message = data.get("message") or data.get("error")
            if message:
                return str(message)
        return f"{response.status_code}: {response.text}"

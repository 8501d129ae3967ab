"""Low-level HTTP transport layer wrapping httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from f1ledger._retry import BackoffPolicy, Sleeper, blocking_sleep, retry_call
from f1ledger.exceptions import (
    MalformedResponseError,
    RateLimitedError,
    UpstreamAPIError,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

# Statuses meaning "the provider has nothing for this resource yet".
NO_DATA_STATUSES = frozenset({404, 503})


def _handle_response(response: httpx.Response, endpoint: str) -> Any | None:
    """Classify the response status and return parsed JSON, or None for no data."""
    status = response.status_code
    if status in NO_DATA_STATUSES:
        logger.info("%s returned %d, assuming no data", endpoint, status)
        return None
    if status == 429:
        raise RateLimitedError(endpoint)
    if status >= 400:
        raise UpstreamAPIError(status_code=status, message=response.text)
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"{endpoint} returned a non-JSON body") from exc


class SyncTransport:
    """Synchronous HTTP transport using httpx.Client with retry and backoff."""

    def __init__(
        self,
        base_url: str,
        policy: BackoffPolicy,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Sleeper = blocking_sleep,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self.policy = policy
        self._sleep = sleep

    def get_once(self, endpoint: str, params: list[tuple[str, str]]) -> Any | None:
        """Perform a single GET request and classify the outcome."""
        try:
            response = self._client.get(endpoint, params=params)
        except httpx.ConnectError as exc:
            raise UpstreamConnectionError(str(exc)) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(str(exc)) from exc
        except httpx.TransportError as exc:
            raise UpstreamConnectionError(str(exc)) from exc
        return _handle_response(response, endpoint)

    def get(
        self,
        endpoint: str,
        params: list[tuple[str, str]],
        context: str | None = None,
    ) -> Any | None:
        """Perform a GET request under the retry policy.

        Returns parsed JSON, or None when the provider has no data.
        """
        return retry_call(
            lambda: self.get_once(endpoint, params),
            self.policy,
            sleep=self._sleep,
            context=context or endpoint,
        )

    def close(self) -> None:
        self._client.close()

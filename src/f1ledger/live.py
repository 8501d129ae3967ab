"""Client for the live (OpenF1) current-session provider."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from f1ledger._filters import build_query_params
from f1ledger._http import DEFAULT_TIMEOUT, SyncTransport
from f1ledger._logging import log_upstream_call
from f1ledger._retry import BackoffPolicy, Sleeper, blocking_sleep
from f1ledger.config import LIVE_BASE_URL
from f1ledger.exceptions import MalformedResponseError
from f1ledger.models.live import LiveDriver

_DRIVER_LIST = TypeAdapter(list[LiveDriver])


def _validate_drivers(data: Any) -> list[LiveDriver]:
    """Validate a driver array against the LiveDriver model."""
    try:
        return _DRIVER_LIST.validate_python(data)
    except ValidationError as exc:
        raise MalformedResponseError(f"Failed to validate drivers response: {exc}") from exc


class LiveClient:
    """Synchronous client for the live provider's driver roster.

    Usage:
        with LiveClient() as live:
            roster = live.session_drivers()            # latest session
            field = live.drivers(session_key=9161)
    """

    provider = "live"

    def __init__(
        self,
        base_url: str = LIVE_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        policy: BackoffPolicy | None = None,
        sleep: Sleeper = blocking_sleep,
    ) -> None:
        self._transport = SyncTransport(
            base_url=base_url,
            policy=policy or BackoffPolicy(base_delay=10.0),
            timeout=timeout,
            sleep=sleep,
        )

    def __enter__(self) -> LiveClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection."""
        self._transport.close()

    @log_upstream_call
    def drivers(self, **kwargs: Any) -> list[LiveDriver] | None:
        """Get driver records, filtered by equality on session_key, meeting_key or driver_number."""
        params = build_query_params(**kwargs)
        data = self._transport.get("drivers", params, context="live drivers")
        if data is None:
            return None
        return _validate_drivers(data)

    def session_drivers(
        self, meeting_key: int | str = "latest", session_key: int | str = "latest",
    ) -> list[LiveDriver] | None:
        """Get the roster of one session (the latest one by default)."""
        return self.drivers(meeting_key=meeting_key, session_key=session_key)

    def all_drivers(self) -> list[LiveDriver] | None:
        """Get every driver record the provider knows about."""
        return self.drivers()

"""Client for the historical (Jolpica/Ergast) statistics provider."""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from f1ledger._filters import build_query_params
from f1ledger._http import DEFAULT_TIMEOUT, SyncTransport
from f1ledger._logging import log_upstream_call
from f1ledger._retry import BackoffPolicy, Sleeper, blocking_sleep
from f1ledger.config import HISTORICAL_BASE_URL
from f1ledger.exceptions import MalformedResponseError
from f1ledger.models.historical import (
    HistoricalConstructor,
    HistoricalDriver,
    HistoricalRace,
    HistoricalResponse,
    StandingsList,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_PAGE_DELAY = 1.5


def _parse(payload: Any, context: str) -> HistoricalResponse:
    try:
        return HistoricalResponse.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Unexpected {context} payload: {exc}") from exc


class HistoricalClient:
    """Synchronous client for the historical provider.

    Every fetch returns a typed payload, or None when the provider has no data
    for the resource yet (404/503, a missing table or an empty list). Rate
    limits and transient failures are retried by the transport; exhausted
    retries surface as UpstreamFatalError.

    Usage:
        with HistoricalClient() as ergast:
            race = ergast.race_results(2026, 3)
            if race is None:
                ...  # not run yet
    """

    provider = "historical"

    def __init__(
        self,
        base_url: str = HISTORICAL_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        policy: BackoffPolicy | None = None,
        sleep: Sleeper = blocking_sleep,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_delay: float = DEFAULT_PAGE_DELAY,
    ) -> None:
        self._transport = SyncTransport(
            base_url=base_url,
            policy=policy or BackoffPolicy(base_delay=60.0),
            timeout=timeout,
            sleep=sleep,
        )
        self._sleep = sleep
        self.page_size = page_size
        self.page_delay = page_delay

    def __enter__(self) -> HistoricalClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection."""
        self._transport.close()

    def _get(self, endpoint: str, context: str, **kwargs: Any) -> HistoricalResponse | None:
        params = build_query_params(**kwargs)
        payload = self._transport.get(endpoint, params, context=context)
        if payload is None:
            return None
        return _parse(payload, context)

    def _single_race(self, endpoint: str, context: str) -> HistoricalRace | None:
        response = self._get(endpoint, context)
        if response is None or not response.races:
            logger.info("No %s yet", context)
            return None
        return response.races[0]

    def _paginate[T](
        self,
        fetch_page: Callable[[int, int], tuple[list[T], int | None] | None],
    ) -> list[T]:
        items: list[T] = []
        offset = 0
        while True:
            page = fetch_page(self.page_size, offset)
            if page is None:
                break
            rows, total = page
            if not rows:
                break
            items.extend(rows)
            offset += self.page_size
            if total is None or offset >= total:
                break
            self._sleep(self.page_delay)
        return items

    # ── Reference listings ─────────────────────────────────────

    def _drivers_page(self, limit: int, offset: int) -> tuple[list[HistoricalDriver], int | None] | None:
        response = self._get("drivers.json", f"drivers offset {offset}", limit=limit, offset=offset)
        if response is None or response.mr_data.driver_table is None:
            return None
        return response.mr_data.driver_table.drivers, response.total

    def _constructors_page(
        self, limit: int, offset: int,
    ) -> tuple[list[HistoricalConstructor], int | None] | None:
        response = self._get(
            "constructors.json", f"constructors offset {offset}", limit=limit, offset=offset,
        )
        if response is None or response.mr_data.constructor_table is None:
            return None
        return response.mr_data.constructor_table.constructors, response.total

    @log_upstream_call
    def drivers(self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> list[HistoricalDriver] | None:
        """Get one page of the all-time driver listing."""
        page = self._drivers_page(limit, offset)
        return page[0] if page is not None else None

    @log_upstream_call
    def constructors(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0,
    ) -> list[HistoricalConstructor] | None:
        """Get one page of the all-time constructor listing."""
        page = self._constructors_page(limit, offset)
        return page[0] if page is not None else None

    @log_upstream_call
    def all_drivers(self) -> list[HistoricalDriver]:
        """Walk every page of the driver listing, one request at a time."""
        return self._paginate(self._drivers_page)

    @log_upstream_call
    def all_constructors(self) -> list[HistoricalConstructor]:
        """Walk every page of the constructor listing, one request at a time."""
        return self._paginate(self._constructors_page)

    # ── Per-round resources ────────────────────────────────────

    @log_upstream_call
    def race_results(self, season: int | str, round: int | str) -> HistoricalRace | None:
        """Get the main race classification for one round."""
        return self._single_race(
            f"{season}/{round}/results.json", f"race results for {season} round {round}",
        )

    @log_upstream_call
    def qualifying_results(self, season: int | str, round: int | str) -> HistoricalRace | None:
        """Get the qualifying classification for one round."""
        return self._single_race(
            f"{season}/{round}/qualifying.json", f"qualifying results for {season} round {round}",
        )

    @log_upstream_call
    def sprint_results(self, season: int | str, round: int | str) -> HistoricalRace | None:
        """Get the sprint classification for one round (None on non-sprint weekends)."""
        return self._single_race(
            f"{season}/{round}/sprint.json", f"sprint results for {season} round {round}",
        )

    # ── Season resources ───────────────────────────────────────

    @log_upstream_call
    def races(self, season: int | str) -> list[HistoricalRace] | None:
        """Get the season calendar."""
        response = self._get(f"{season}/races.json", f"calendar for {season}", limit=100)
        if response is None or not response.races:
            return None
        return response.races

    def _standings(self, endpoint: str, context: str) -> StandingsList | None:
        response = self._get(endpoint, context)
        if response is None:
            return None
        table = response.mr_data.standings_table
        if table is None or not table.standings_lists:
            return None
        return table.standings_lists[0]

    @log_upstream_call
    def driver_standings(self, season: int | str) -> StandingsList | None:
        """Get the current drivers' championship table."""
        return self._standings(f"{season}/driverstandings.json", f"driver standings for {season}")

    @log_upstream_call
    def constructor_standings(self, season: int | str) -> StandingsList | None:
        """Get the current constructors' championship table."""
        return self._standings(
            f"{season}/constructorstandings.json", f"constructor standings for {season}",
        )

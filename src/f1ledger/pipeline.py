"""Ingestion orchestration: fetch, reconcile, fold and persist one race at a time."""

from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Callable

from f1ledger.accumulator import FoldReport, StandingsTally, StatisticsAccumulator
from f1ledger.exceptions import AlreadyProcessedError, UpstreamFatalError
from f1ledger.historical import HistoricalClient
from f1ledger.live import LiveClient
from f1ledger.models.domain import FailedRequest, Race, Result, race_id
from f1ledger.models.historical import HistoricalRace, HistoricalResult
from f1ledger.reconcile import IdentityReconciler
from f1ledger.snapshot import export_snapshot, load_snapshot
from f1ledger.standings import StandingsUpdater
from f1ledger.storage import StorageGateway

logger = logging.getLogger(__name__)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class IngestionStatus(StrEnum):
    PROCESSED = "processed"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of one race ingestion, as seen by the scheduler."""

    season: str
    round: str
    status: IngestionStatus
    message: str = ""
    report: FoldReport | None = None

    @property
    def processed(self) -> bool:
        return self.status is IngestionStatus.PROCESSED


@dataclass(frozen=True)
class _Fetched:
    race: HistoricalRace
    qualifying: HistoricalRace | None
    sprint: HistoricalRace | None

    def to_race(self) -> Race:
        race = Race.from_historical(self.race)
        if self.qualifying is not None:
            race.qualifying_results = [
                Result.from_historical(r) for r in self.qualifying.qualifying_results
            ]
        if self.sprint is not None:
            race.sprint_results = [Result.from_historical(r) for r in self.sprint.sprint_results]
        return race

    @property
    def rows(self) -> list[HistoricalResult]:
        rows = list(self.race.results)
        if self.qualifying is not None:
            rows += self.qualifying.qualifying_results
        if self.sprint is not None:
            rows += self.sprint.sprint_results
        return rows


class IngestionPipeline:
    """Everything the scheduler and the admin trigger can ask for.

    Runs are serialised by ``lock`` (re-entrant, so an admin reingest can
    ingest and refresh standings in one critical section). A race is folded
    into the counters at most once: ``ingest_race`` refuses races whose
    ``standings_updated`` flag is already set.

    Usage:
        pipeline = IngestionPipeline(ergast, openf1, storage, reconciler, season="2026")
        pipeline.initialize_reference_data()
        pipeline.sync_calendar()
        result = pipeline.ingest_race("2026", "3")
    """

    def __init__(
        self,
        historical: HistoricalClient,
        live: LiveClient,
        storage: StorageGateway,
        reconciler: IdentityReconciler,
        accumulator: StatisticsAccumulator | None = None,
        standings: StandingsUpdater | None = None,
        *,
        season: str | int | None = None,
        snapshot_path: Path | None = None,
        now: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self.historical = historical
        self.live = live
        self.storage = storage
        self.reconciler = reconciler
        self.accumulator = accumulator or StatisticsAccumulator()
        self.standings = standings or StandingsUpdater(historical, storage)
        self._season = str(season) if season is not None else None
        self.snapshot_path = snapshot_path
        self.now = now
        self.lock = threading.RLock()

    @property
    def active_season(self) -> str:
        return self._season or str(self.now().year)

    # ── Reference data ─────────────────────────────────────────

    def initialize_reference_data(self) -> None:
        """Seed drivers and constructors when the store has none."""
        with self.lock:
            if self.snapshot_path is not None and self.storage.drivers.count() == 0:
                load_snapshot(self.snapshot_path, self.storage)
            if self.storage.drivers.count() == 0:
                logger.info("No drivers stored; running a full driver sync")
                self.sync_drivers()
            if self.storage.constructors.count() == 0:
                logger.info("No constructors stored; running a full constructor sync")
                self.sync_constructors()

    def sync_drivers(self) -> int:
        """Merge the full historical driver listing and the live roster into the store."""
        with self.lock:
            stored = {d.driver_id: d for d in self.storage.drivers.all()}
            for record in self.historical.all_drivers():
                driver = self.reconciler.driver_from_historical(record)
                stored.setdefault(driver.driver_id, driver)

            drivers = list(stored.values())
            roster = self.live.session_drivers()
            if roster:
                drivers = self.reconciler.reconcile_drivers(drivers, roster)
            else:
                logger.warning("Live roster unavailable; active flags left unchanged")
            self.storage.drivers.save_all(drivers)
            logger.info("Driver sync stored %d drivers", len(drivers))
            return len(drivers)

    def sync_constructors(self) -> int:
        """Merge the full historical constructor listing and the live teams into the store."""
        with self.lock:
            stored = {c.constructor_id: c for c in self.storage.constructors.all()}
            for record in self.historical.all_constructors():
                constructor = self.reconciler.constructor_from_historical(record)
                stored.setdefault(constructor.constructor_id, constructor)

            roster = self.live.session_drivers() or []
            constructors = self.reconciler.reconcile_constructors(stored.values(), roster)
            self.storage.constructors.save_all(constructors)
            logger.info("Constructor sync stored %d constructors", len(constructors))
            return len(constructors)

    def refresh_active_roster(self) -> int:
        """Re-apply the latest live session roster; returns the number of active drivers."""
        with self.lock:
            roster = self.live.session_drivers()
            if not roster:
                logger.info("No live roster available; active flags left unchanged")
                return 0
            drivers = self.reconciler.reconcile_drivers(self.storage.drivers.all(), roster)
            constructors = self.reconciler.reconcile_constructors(
                self.storage.constructors.all(), roster,
            )
            self.storage.drivers.save_all(drivers)
            self.storage.constructors.save_all(constructors)
            active = sum(1 for d in drivers if d.active)
            logger.info("Active roster refreshed: %d active drivers", active)
            return active

    # ── Calendar ───────────────────────────────────────────────

    def _collapse_duplicates(self, season: str, round: str) -> Race | None:
        """Reduce the stored documents for (season, round) to one, keyed canonically."""
        matches = self.storage.races.find_by(season=season, round=round)
        if not matches:
            return None
        kept, *duplicates = matches
        canonical_id = race_id(season, round)
        for duplicate in duplicates:
            logger.warning("Collapsing duplicate race document %s into %s", duplicate.id, canonical_id)
            kept.standings_updated = kept.standings_updated or duplicate.standings_updated
            for name in ("results", "qualifying_results", "sprint_results"):
                if not getattr(kept, name) and getattr(duplicate, name):
                    setattr(kept, name, getattr(duplicate, name))
            self.storage.races.delete(duplicate.id)
        rekeyed = kept.id != canonical_id
        if rekeyed:
            self.storage.races.delete(kept.id)
            kept.id = canonical_id
        if duplicates or rekeyed:
            self.storage.races.save(kept)
        return kept

    def sync_calendar(self, season: str | int | None = None) -> int:
        """Upsert the season's calendar, keeping stored results and processed flags.

        Unprocessed races the feed no longer lists (cancelled rounds) are
        deleted; processed ones stay, their counters are already folded.
        """
        season = str(season) if season is not None else self.active_season
        with self.lock:
            races = self.historical.races(season)
            if not races:
                logger.info("No calendar published for %s", season)
                return 0
            listed = {record.round for record in races}
            for stale in self.storage.races.find_by(season=season):
                if stale.round not in listed and not stale.standings_updated:
                    logger.warning("Race %s is no longer on the calendar; removing it", stale.id)
                    self.storage.races.delete(stale.id)
            for record in races:
                fresh = Race.from_historical(record)
                stored = self._collapse_duplicates(fresh.season, fresh.round)
                if stored is not None:
                    fresh.results = stored.results
                    fresh.qualifying_results = stored.qualifying_results
                    fresh.sprint_results = stored.sprint_results
                    fresh.standings_updated = stored.standings_updated
                self.storage.races.save(fresh)
            logger.info("Calendar for %s synced: %d races", season, len(races))
            return len(races)

    def season_races(self, season: str | int | None = None) -> list[Race]:
        season = str(season) if season is not None else self.active_season
        return self.storage.races.find_by(season=season)

    # ── Race ingestion ─────────────────────────────────────────

    def _record_failure(self, season: str, round: str | None, kind: str, exc: Exception) -> None:
        logger.error("Ingestion step %s failed for %s round %s: %s", kind, season, round, exc)
        self.storage.failed_requests.save(
            FailedRequest(season=season, round=round, kind=kind, error=str(exc))
        )

    def _resolve_failures(self, season: str, round: str) -> None:
        for failure in self.storage.failed_requests.find_by(season=season, round=round, processed=False):
            failure.processed = True
            self.storage.failed_requests.save(failure)

    def pending_failures(self) -> list[FailedRequest]:
        return self.storage.failed_requests.find_by(processed=False)

    def _fetch(self, season: str, round: str) -> _Fetched | None:
        race = self.historical.race_results(season, round)
        if race is None or not race.results:
            return None
        return _Fetched(
            race=race,
            qualifying=self.historical.qualifying_results(season, round),
            sprint=self.historical.sprint_results(season, round),
        )

    def ingest_race(self, season: str | int, round: str | int) -> IngestionResult:
        """Fetch, reconcile and fold one race, then mark it processed.

        Raises AlreadyProcessedError if the race was folded before. Fatal
        upstream failures come back as a FAILED result with the race left
        unprocessed; FetchInterruptedError propagates.
        """
        season, round = str(season), str(round)
        with self.lock:
            stored = self._collapse_duplicates(season, round)
            if stored is not None and stored.standings_updated:
                raise AlreadyProcessedError(season, round)

            try:
                fetched = self._fetch(season, round)
            except UpstreamFatalError as exc:
                self._record_failure(season, round, "race_results", exc)
                return IngestionResult(season, round, IngestionStatus.FAILED, str(exc))
            if fetched is None:
                logger.info("No results yet for %s round %s", season, round)
                return IngestionResult(season, round, IngestionStatus.NO_DATA, "no results published")

            drivers = {d.driver_id: d for d in self.storage.drivers.all()}
            constructors = {c.constructor_id: c for c in self.storage.constructors.all()}
            resolution = self.reconciler.resolve_results(fetched.rows, drivers, constructors)

            race = fetched.to_race()
            if stored is not None:
                race.circuit = race.circuit or stored.circuit
                race.time = race.time or stored.time

            tally = self._tally() if season == self.active_season else None
            report = self.accumulator.fold(race, drivers, constructors, standings=tally)

            for old_id in resolution.retired_drivers:
                self.storage.drivers.delete(old_id)
            for old_id in resolution.retired_constructors:
                self.storage.constructors.delete(old_id)
            touched_drivers = report.drivers | set(resolution.created_drivers)
            touched_constructors = report.constructors | set(resolution.created_constructors)
            self.storage.drivers.save_all(drivers[i] for i in touched_drivers if i in drivers)
            self.storage.constructors.save_all(
                constructors[i] for i in touched_constructors if i in constructors
            )
            if tally is not None:
                self.storage.driver_standings.save_all(tally.drivers.values())
                self.storage.constructor_standings.save_all(tally.constructors.values())

            race.standings_updated = True
            self.storage.races.save(race)
            self._resolve_failures(season, round)
            if self.snapshot_path is not None:
                export_snapshot(self.snapshot_path, self.storage)
            logger.info("Race %s round %s processed", season, round)
            return IngestionResult(season, round, IngestionStatus.PROCESSED, report=report)

    def _tally(self) -> StandingsTally:
        return StandingsTally(
            drivers={s.driver_id: s for s in self.storage.driver_standings.all()},
            constructors={s.constructor_id: s for s in self.storage.constructor_standings.all()},
        )

    def refresh_standings(self, season: str | int | None = None) -> str:
        """Replace the standings snapshot, which only ever holds the active season."""
        season = str(season) if season is not None else self.active_season
        if season != self.active_season:
            logger.info(
                "Standings refresh for %s skipped; the snapshot tracks %s", season, self.active_season,
            )
            return f"standings untouched ({season} is not the active season)"
        with self.lock:
            try:
                return self.standings.refresh(season)
            except UpstreamFatalError as exc:
                self._record_failure(season, None, "standings", exc)
                return f"standings refresh failed: {exc}"

    # ── Administrative trigger ─────────────────────────────────

    def _refresh_stored_results(self, season: str, round: str) -> str:
        try:
            fetched = self._fetch(season, round)
        except UpstreamFatalError as exc:
            self._record_failure(season, round, "race_results", exc)
            return f"results refresh failed: {exc}"
        if fetched is None:
            return "no results published, stored results kept"
        race = fetched.to_race()
        race.standings_updated = True
        self.storage.races.save(race)
        return f"stored results refreshed ({len(race.results)} rows), counters untouched"

    def reingest_race(self, season: str | int, round: str | int) -> str:
        """Ingest one race on demand and describe what happened."""
        season, round = str(season), str(round)
        with self.lock:
            try:
                result = self.ingest_race(season, round)
            except AlreadyProcessedError:
                status = self._refresh_stored_results(season, round)
                standings = self.refresh_standings(season)
                return f"Race {season} round {round} was already processed; {status}; {standings}"

            if result.status is IngestionStatus.NO_DATA:
                return f"No results yet for {season} round {round}; nothing updated"
            if result.status is IngestionStatus.FAILED:
                return (
                    f"Ingestion of {season} round {round} failed: {result.message}; "
                    "it will be retried on the next scheduled wake"
                )
            standings = self.refresh_standings(season)
            touched = len(result.report.drivers) if result.report is not None else 0
            return f"Race {season} round {round} processed ({touched} drivers updated); {standings}"

    # ── Queries ────────────────────────────────────────────────

    def latest_results(self, season: str | int | None = None) -> Race | None:
        """The highest-round race of the season that has run and has stored results."""
        now = self.now()
        finished = [
            race for race in self.season_races(season)
            if race.results and (race.starts_at() or now) <= now
        ]
        if not finished:
            return None
        return max(finished, key=lambda race: int(race.round))

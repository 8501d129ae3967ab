"""Calendar-driven wake planning and the single re-armable wake timer."""

from __future__ import annotations

import datetime as dt
import functools
import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Callable, Protocol

from f1ledger.exceptions import AlreadyProcessedError, FetchInterruptedError, UpstreamFatalError
from f1ledger.models.domain import Race
from f1ledger.pipeline import IngestionPipeline, utc_now

logger = logging.getLogger(__name__)

OVERDUE_DELAY = dt.timedelta(minutes=30)
POST_RACE_DELAY = dt.timedelta(hours=4)
IDLE_DELAY = dt.timedelta(hours=24)

_NEVER = dt.datetime.min.replace(tzinfo=dt.UTC)


class Clock(Protocol):
    def now(self) -> dt.datetime: ...


class SystemClock:
    def now(self) -> dt.datetime:
        return utc_now()


@dataclass(frozen=True)
class WakePlan:
    """When to wake next and which (season, round) to ingest then, if any."""

    wake_at: dt.datetime
    target: tuple[str, str] | None
    reason: str

    def delay(self, now: dt.datetime) -> float:
        return max(0.0, (self.wake_at - now).total_seconds())


def plan_next_wake(
    races: Iterable[Race],
    now: dt.datetime,
    *,
    attempts: Mapping[tuple[str, str], dt.datetime] | None = None,
    overdue_delay: dt.timedelta = OVERDUE_DELAY,
    post_race_delay: dt.timedelta = POST_RACE_DELAY,
    idle_delay: dt.timedelta = IDLE_DELAY,
) -> WakePlan:
    """Pick the next wake from the stored calendar.

    1. A race that has started but is not processed: wake shortly. Among
       several, the least recently attempted one goes first (then the
       earliest), so a round whose results never appear cannot starve the
       rounds after it.
    2. Otherwise the nearest future race: wake a few hours after its start.
    3. Otherwise wake in a day with no target.

    ``attempts`` maps (season, round) to the time of the last unsuccessful
    ingestion. Races whose date cannot be parsed are ignored.
    """
    attempts = attempts or {}
    scheduled = [(start, race) for race in races if (start := race.starts_at()) is not None]

    overdue = [(start, race) for start, race in scheduled if start <= now and not race.standings_updated]
    if overdue:
        start, race = min(
            overdue, key=lambda item: (attempts.get((item[1].season, item[1].round), _NEVER), item[0]),
        )
        return WakePlan(
            wake_at=now + overdue_delay,
            target=(race.season, race.round),
            reason=f"race {race.id} started {start.isoformat()} and is not processed",
        )

    upcoming = [(start, race) for start, race in scheduled if start > now]
    if upcoming:
        start, race = min(upcoming, key=lambda item: item[0])
        return WakePlan(
            wake_at=start + post_race_delay,
            target=(race.season, race.round),
            reason=f"next race {race.id} starts {start.isoformat()}",
        )

    return WakePlan(wake_at=now + idle_delay, target=None, reason="no upcoming races")


class CancellableTimer:
    """Holds at most one pending ``threading.Timer``.

    Arming cancels whatever was pending, under the same lock that installs
    the replacement.
    """

    def __init__(self, name: str = "f1ledger-wake") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def arm(self, delay: float, fn: Callable[[], object]) -> threading.Timer:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(delay, fn)
            timer.name = self.name
            timer.daemon = True
            self._timer = timer
            timer.start()
            return timer

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> threading.Timer | None:
        with self._lock:
            if self._timer is not None and not self._timer.finished.is_set():
                return self._timer
            return None


class RaceCalendarScheduler:
    """Wakes the pipeline around the race calendar instead of a fixed interval.

    Every wake re-reads the upstream calendar before acting, so postponed or
    cancelled rounds are noticed. A no-target wake doubles as the bootstrap:
    it seeds reference data, syncs the calendar and refreshes the roster, and
    when that fails it is retried after the short overdue delay.

    Usage:
        scheduler = RaceCalendarScheduler(pipeline, stop_event=stop)
        scheduler.start()       # seeds data if needed and arms the first wake
        ...
        scheduler.stop()        # cancels the timer, aborts backoff sleeps
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        *,
        clock: Clock | None = None,
        timer: CancellableTimer | None = None,
        stop_event: threading.Event | None = None,
        overdue_delay: dt.timedelta = OVERDUE_DELAY,
        post_race_delay: dt.timedelta = POST_RACE_DELAY,
        idle_delay: dt.timedelta = IDLE_DELAY,
    ) -> None:
        self.pipeline = pipeline
        self.clock = clock or SystemClock()
        self.timer = timer or CancellableTimer()
        self.stop_event = stop_event or threading.Event()
        self.overdue_delay = overdue_delay
        self.post_race_delay = post_race_delay
        self.idle_delay = idle_delay
        self.plan: WakePlan | None = None
        # (season, round) -> last wake that left the race unprocessed
        self.attempts: dict[tuple[str, str], dt.datetime] = {}

    @property
    def stopping(self) -> bool:
        return self.stop_event.is_set()

    def start(self) -> WakePlan | None:
        """Seed reference data and the calendar, then arm the first wake.

        An upstream outage here does not stop the worker: the bootstrap is
        retried after ``overdue_delay``.
        """
        try:
            self.pipeline.initialize_reference_data()
            if not self.pipeline.season_races():
                logger.info("No calendar stored for %s; syncing", self.pipeline.active_season)
                self.pipeline.sync_calendar()
        except UpstreamFatalError as exc:
            logger.error("Bootstrap failed: %s", exc)
            return self.retry_soon(f"retry bootstrap after: {exc}")
        return self.rearm()

    def plan_next(self) -> WakePlan:
        return plan_next_wake(
            self.pipeline.season_races(),
            self.clock.now(),
            attempts=self.attempts,
            overdue_delay=self.overdue_delay,
            post_race_delay=self.post_race_delay,
            idle_delay=self.idle_delay,
        )

    def _arm(self, plan: WakePlan) -> WakePlan:
        delay = plan.delay(self.clock.now())
        self.timer.arm(delay, functools.partial(self.wake, plan))
        self.plan = plan
        logger.info("Next wake at %s (in %.0fs): %s", plan.wake_at.isoformat(), delay, plan.reason)
        return plan

    def rearm(self) -> WakePlan | None:
        """Plan the next wake and replace the pending timer with it."""
        if self.stopping:
            return None
        return self._arm(self.plan_next())

    def retry_soon(self, reason: str) -> WakePlan | None:
        """Arm a no-target wake after ``overdue_delay``."""
        if self.stopping:
            return None
        return self._arm(WakePlan(self.clock.now() + self.overdue_delay, None, reason))

    def wake(self, plan: WakePlan | None = None) -> None:
        """Run one wake, then re-arm.

        A failed no-target wake is retried after ``overdue_delay`` instead of
        falling back to the idle wait. FetchInterruptedError (the scheduler is
        stopping) propagates without re-arming.
        """
        plan = plan or self.plan_next()
        try:
            self._run(plan)
        except FetchInterruptedError:
            logger.info("Wake aborted: scheduler is stopping")
            raise
        except Exception as exc:
            logger.exception("Wake for %s failed; re-arming", plan.target)
            if plan.target is None:
                self.retry_soon(f"retry calendar sync after: {exc}")
                return
        self.rearm()

    def _run(self, plan: WakePlan) -> None:
        with self.pipeline.lock:
            if plan.target is None:
                self.pipeline.initialize_reference_data()
                self.pipeline.sync_calendar()
                self.pipeline.refresh_active_roster()
                return

            season, round = plan.target
            try:
                self.pipeline.sync_calendar(season)
            except UpstreamFatalError as exc:
                logger.warning("Calendar refresh failed (%s); using the stored calendar", exc)
            if not self._still_due(season, round):
                self.attempts.pop(plan.target, None)
                return

            try:
                result = self.pipeline.ingest_race(season, round)
            except AlreadyProcessedError:
                logger.info("Race %s round %s already processed; nothing to do", season, round)
                self.attempts.pop(plan.target, None)
                return
            if result.processed:
                self.attempts.pop(plan.target, None)
                logger.info("Standings: %s", self.pipeline.refresh_standings(season))
            else:
                self.attempts[plan.target] = self.clock.now()
                logger.info(
                    "Race %s round %s not processed (%s: %s); will retry",
                    season, round, result.status, result.message,
                )

    def _still_due(self, season: str, round: str) -> bool:
        race = next(
            (r for r in self.pipeline.season_races(season) if r.round == round), None,
        )
        if race is None:
            logger.info("Race %s round %s is no longer on the calendar; skipping", season, round)
            return False
        start = race.starts_at()
        if start is None or start > self.clock.now():
            logger.info("Race %s round %s was rescheduled to %s; skipping for now", season, round, start)
            return False
        return True

    def stop(self) -> None:
        self.stop_event.set()
        self.timer.cancel()
        logger.info("Scheduler stopped")

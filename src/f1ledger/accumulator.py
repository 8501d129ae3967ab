"""Fold one race's classification into cumulative driver/constructor counters."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from f1ledger.exceptions import MappingError
from f1ledger.models.domain import (
    Constructor,
    ConstructorStanding,
    Driver,
    DriverStanding,
    Race,
    Result,
)

logger = logging.getLogger(__name__)

PODIUM_SIZE = 3


def parse_points(raw: str | None, context: str = "") -> float:
    """``"25"`` -> 25.0, ``"0.5"`` -> 0.5; anything else raises MappingError."""
    if raw is None:
        raise MappingError("points", raw, context)
    try:
        return float(raw)
    except ValueError as exc:
        raise MappingError("points", raw, context) from exc


@dataclass
class StandingsTally:
    """Current-season snapshot rows that a fold adds to, keyed by entity id.

    Rows missing from the tally are created on first contact (position 0) so
    podiums survive until the next standings refresh.
    """

    drivers: dict[str, DriverStanding] = field(default_factory=dict)
    constructors: dict[str, ConstructorStanding] = field(default_factory=dict)

    def driver_row(self, driver: Driver) -> DriverStanding:
        row = self.drivers.get(driver.driver_id)
        if row is None:
            row = DriverStanding(
                driver_id=driver.driver_id,
                full_name=driver.full_name,
                team_name=driver.team_name or "",
            )
            self.drivers[driver.driver_id] = row
        return row

    def constructor_row(self, constructor: Constructor) -> ConstructorStanding:
        row = self.constructors.get(constructor.constructor_id)
        if row is None:
            row = ConstructorStanding(
                constructor_id=constructor.constructor_id,
                name=constructor.name,
                color=constructor.color_code,
            )
            self.constructors[constructor.constructor_id] = row
        return row


@dataclass
class FoldReport:
    """What a fold touched, plus the rows it could only partly use."""

    race_id: str
    drivers: set[str] = field(default_factory=set)
    constructors: set[str] = field(default_factory=set)
    mapping_errors: list[MappingError] = field(default_factory=list)
    skipped: int = 0
    pole_driver_id: str | None = None

    @property
    def clean(self) -> bool:
        return not self.mapping_errors and not self.skipped


class StatisticsAccumulator:
    """Applies the counting rules for race, sprint and qualifying sessions.

    ``fold`` only mutates the entities it is given and never checks whether
    the race was folded before; gating on ``Race.standings_updated`` is the
    caller's job.
    """

    def fold(
        self,
        race: Race,
        drivers: Mapping[str, Driver],
        constructors: Mapping[str, Constructor],
        *,
        qualifying: bool = True,
        sprint: bool = True,
        standings: StandingsTally | None = None,
    ) -> FoldReport:
        report = FoldReport(race_id=race.id)
        self._fold_race(race.results, drivers, constructors, standings, report)
        if qualifying:
            self._fold_qualifying(race.qualifying_results, drivers, constructors, report)
        if sprint and race.sprint_results:
            self._fold_sprint(race.sprint_results, drivers, constructors, standings, report)
        logger.info(
            "Folded %s: %d drivers, %d constructors, %d mapping errors, %d skipped rows",
            race.id, len(report.drivers), len(report.constructors),
            len(report.mapping_errors), report.skipped,
        )
        return report

    def _lookup(
        self,
        row: Result,
        drivers: Mapping[str, Driver],
        constructors: Mapping[str, Constructor],
        report: FoldReport,
        session: str,
    ) -> tuple[Driver, Constructor] | None:
        driver = drivers.get(row.driver_id) if row.driver_id else None
        constructor = constructors.get(row.constructor_id) if row.constructor_id else None
        if driver is None or constructor is None:
            logger.warning(
                "Skipping %s row in %s: unknown driver %r or constructor %r",
                session, report.race_id, row.driver_id, row.constructor_id,
            )
            report.skipped += 1
            return None
        return driver, constructor

    def _points(self, row: Result, report: FoldReport, session: str) -> float:
        try:
            return parse_points(row.points, f"{session} {report.race_id} {row.driver_id}")
        except MappingError as exc:
            logger.warning("%s; no points counted", exc)
            report.mapping_errors.append(exc)
            return 0.0

    def _fold_race(
        self,
        rows: Sequence[Result],
        drivers: Mapping[str, Driver],
        constructors: Mapping[str, Constructor],
        standings: StandingsTally | None,
        report: FoldReport,
    ) -> None:
        counted: set[str] = set()
        for index, row in enumerate(rows):
            pair = self._lookup(row, drivers, constructors, report, "race")
            if pair is None:
                continue
            driver, constructor = pair
            points = self._points(row, report, "race")
            won = index == 0
            podium = index < PODIUM_SIZE

            driver.points += points
            constructor.points += points
            if won:
                driver.wins += 1
                constructor.wins += 1
            if podium:
                driver.podiums += 1
                constructor.podiums += 1
            if row.fastest_lap_rank == "1":
                driver.fastest_laps += 1
                constructor.fastest_laps += 1

            driver.total_races += 1
            if constructor.constructor_id not in counted:
                constructor.total_races += 1
                counted.add(constructor.constructor_id)

            if standings is not None:
                for standing in (standings.driver_row(driver), standings.constructor_row(constructor)):
                    standing.points += points
                    standing.wins += int(won)
                    standing.podiums += int(podium)

            report.drivers.add(driver.driver_id)
            report.constructors.add(constructor.constructor_id)

    def _fold_qualifying(
        self,
        rows: Sequence[Result],
        drivers: Mapping[str, Driver],
        constructors: Mapping[str, Constructor],
        report: FoldReport,
    ) -> None:
        pole = next((row for row in rows if row.position == "1"), None)
        if pole is None:
            if rows:
                logger.warning("No pole-sitter in qualifying for %s", report.race_id)
            return
        pair = self._lookup(pole, drivers, constructors, report, "qualifying")
        if pair is None:
            return
        driver, constructor = pair
        driver.poles += 1
        constructor.pole_positions += 1
        report.pole_driver_id = driver.driver_id
        report.drivers.add(driver.driver_id)
        report.constructors.add(constructor.constructor_id)

    def _fold_sprint(
        self,
        rows: Sequence[Result],
        drivers: Mapping[str, Driver],
        constructors: Mapping[str, Constructor],
        standings: StandingsTally | None,
        report: FoldReport,
    ) -> None:
        counted: set[str] = set()
        for index, row in enumerate(rows):
            pair = self._lookup(row, drivers, constructors, report, "sprint")
            if pair is None:
                continue
            driver, constructor = pair
            points = self._points(row, report, "sprint")

            driver.points += points
            constructor.points += points
            driver.sprint_races += 1
            if constructor.constructor_id not in counted:
                constructor.sprint_races += 1
                counted.add(constructor.constructor_id)
            if index == 0:
                driver.sprint_wins += 1
                constructor.sprint_wins += 1
            if index < PODIUM_SIZE:
                driver.sprint_podiums += 1
                constructor.sprint_podiums += 1

            if standings is not None:
                standings.driver_row(driver).points += points
                standings.constructor_row(constructor).points += points

            report.drivers.add(driver.driver_id)
            report.constructors.add(constructor.constructor_id)

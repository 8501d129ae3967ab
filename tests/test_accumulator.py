"""Tests for folding race classifications into cumulative counters."""

from __future__ import annotations

import pytest

from f1ledger.accumulator import StandingsTally, StatisticsAccumulator, parse_points
from f1ledger.exceptions import MappingError
from f1ledger.models.domain import Constructor, Driver, DriverStanding, Race, Result

TEAMS = {
    "max_verstappen": "red_bull",
    "perez": "red_bull",
    "leclerc": "ferrari",
    "hulkenberg": "haas",
}


def _row(driver_id: str, points: str = "0", position: int = 0, fastest_lap_rank: str | None = None) -> Result:
    return Result(
        position=str(position) if position else None,
        points=points,
        fastest_lap_rank=fastest_lap_rank,
        driver_id=driver_id,
        constructor_id=TEAMS.get(driver_id),
    )


def _race(**kwargs: object) -> Race:
    return Race(season="2024", round="5", **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def drivers() -> dict[str, Driver]:
    return {driver_id: Driver(driver_id=driver_id) for driver_id in TEAMS}


@pytest.fixture
def constructors() -> dict[str, Constructor]:
    return {team: Constructor(constructor_id=team) for team in set(TEAMS.values())}


@pytest.fixture
def accumulator() -> StatisticsAccumulator:
    return StatisticsAccumulator()


MAIN_RACE = [
    _row("max_verstappen", "25", fastest_lap_rank="1"),
    _row("perez", "18", fastest_lap_rank="3"),
    _row("leclerc", "15", fastest_lap_rank="2"),
    _row("hulkenberg", "12"),
]


class TestParsePoints:
    @pytest.mark.parametrize(("raw", "value"), [("25", 25.0), ("0.5", 0.5), ("0", 0.0)])
    def test_numeric(self, raw: str, value: float) -> None:
        assert parse_points(raw) == value

    @pytest.mark.parametrize("raw", [None, "", "N/A"])
    def test_unparseable(self, raw: str | None) -> None:
        with pytest.raises(MappingError) as exc_info:
            parse_points(raw, "race 2024_5")
        assert exc_info.value.field == "points"


class TestMainRace:
    def test_winner_scenario(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(results=MAIN_RACE), drivers, constructors)
        ver = drivers["max_verstappen"]
        assert (ver.wins, ver.podiums, ver.points, ver.fastest_laps, ver.total_races) == (1, 1, 25.0, 1, 1)

        red_bull = constructors["red_bull"]
        assert red_bull.wins == 1
        assert red_bull.podiums == 2
        assert red_bull.points == 43.0
        assert red_bull.fastest_laps == 1
        assert red_bull.total_races == 1

    def test_podium_only_for_top_three(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(results=MAIN_RACE), drivers, constructors)
        assert drivers["perez"].podiums == 1
        assert drivers["leclerc"].podiums == 1
        assert drivers["hulkenberg"].podiums == 0
        assert drivers["perez"].wins == 0
        assert constructors["haas"].podiums == 0
        assert constructors["haas"].total_races == 1

    def test_points_sum_over_races(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(results=MAIN_RACE), drivers, constructors)
        second = [_row("leclerc", "26", fastest_lap_rank="1"), _row("max_verstappen", "18")]
        accumulator.fold(Race(season="2024", round="6", results=second), drivers, constructors)
        assert drivers["max_verstappen"].points == 43.0
        assert drivers["leclerc"].points == 41.0
        assert drivers["leclerc"].wins == 1
        assert drivers["max_verstappen"].total_races == 2
        assert drivers["hulkenberg"].total_races == 1

    def test_unparseable_points_still_counts_the_start(self, accumulator, drivers, constructors) -> None:
        rows = [_row("max_verstappen", "N/A"), _row("perez", "18")]
        report = accumulator.fold(_race(results=rows), drivers, constructors)
        assert len(report.mapping_errors) == 1
        assert report.mapping_errors[0].value == "N/A"
        assert drivers["max_verstappen"].points == 0.0
        assert drivers["max_verstappen"].wins == 1
        assert drivers["max_verstappen"].total_races == 1
        assert drivers["perez"].points == 18.0
        assert not report.clean

    def test_unknown_reference_is_skipped(self, accumulator, drivers, constructors) -> None:
        rows = [_row("max_verstappen", "25"), Result(points="18", driver_id=None), _row("ghost", "15")]
        report = accumulator.fold(_race(results=rows), drivers, constructors)
        assert report.skipped == 2
        assert drivers["max_verstappen"].points == 25.0
        assert report.drivers == {"max_verstappen"}


class TestQualifying:
    def test_pole_goes_to_position_one(self, accumulator, drivers, constructors) -> None:
        qualifying = [_row("perez", position=2), _row("leclerc", position=1), _row("max_verstappen", position=3)]
        report = accumulator.fold(_race(qualifying_results=qualifying), drivers, constructors)
        assert drivers["leclerc"].poles == 1
        assert constructors["ferrari"].pole_positions == 1
        assert drivers["perez"].poles == 0
        assert report.pole_driver_id == "leclerc"

    def test_qualifying_is_optional(self, accumulator, drivers, constructors) -> None:
        race = _race(results=MAIN_RACE, qualifying_results=[_row("leclerc", position=1)])
        accumulator.fold(race, drivers, constructors, qualifying=False)
        assert drivers["leclerc"].poles == 0

    def test_qualifying_does_not_touch_race_counters(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(qualifying_results=[_row("leclerc", position=1)]), drivers, constructors)
        assert drivers["leclerc"].total_races == 0
        assert drivers["leclerc"].points == 0.0


class TestSprint:
    SPRINT = [
        _row("max_verstappen", "8", fastest_lap_rank="1"),
        _row("leclerc", "7"),
        _row("perez", "6"),
        _row("hulkenberg", "5"),
    ]

    def test_sprint_counters(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(sprint_results=self.SPRINT), drivers, constructors)
        ver = drivers["max_verstappen"]
        assert ver.points == 8.0
        assert (ver.sprint_wins, ver.sprint_podiums, ver.sprint_races) == (1, 1, 1)
        assert (ver.wins, ver.podiums, ver.fastest_laps, ver.total_races) == (0, 0, 0, 0)
        assert drivers["hulkenberg"].sprint_podiums == 0

    def test_constructor_counted_once_per_sprint(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(sprint_results=self.SPRINT), drivers, constructors)
        red_bull = constructors["red_bull"]
        assert red_bull.sprint_races == 1
        assert red_bull.sprint_podiums == 2
        assert red_bull.points == 14.0
        assert red_bull.total_races == 0

    def test_sprint_weekend(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(results=MAIN_RACE, sprint_results=self.SPRINT), drivers, constructors)
        ver = drivers["max_verstappen"]
        assert ver.points == 33.0
        assert ver.wins == 1
        assert ver.fastest_laps == 1
        assert ver.total_races == 1

    def test_sprint_can_be_skipped(self, accumulator, drivers, constructors) -> None:
        accumulator.fold(_race(results=MAIN_RACE, sprint_results=self.SPRINT), drivers, constructors, sprint=False)
        assert drivers["max_verstappen"].points == 25.0
        assert drivers["max_verstappen"].sprint_races == 0


class TestStandingsTally:
    def test_tally_gets_points_wins_and_podiums(self, accumulator, drivers, constructors) -> None:
        tally = StandingsTally(
            drivers={"max_verstappen": DriverStanding(driver_id="max_verstappen", position=1, points=85.0, podiums=3)}
        )
        race = _race(results=MAIN_RACE, sprint_results=TestSprint.SPRINT)
        accumulator.fold(race, drivers, constructors, standings=tally)
        ver = tally.drivers["max_verstappen"]
        assert ver.points == 85.0 + 25.0 + 8.0
        assert ver.wins == 1
        assert ver.podiums == 4
        assert ver.position == 1

    def test_missing_rows_are_seeded(self, accumulator, drivers, constructors) -> None:
        tally = StandingsTally()
        accumulator.fold(_race(results=MAIN_RACE), drivers, constructors, standings=tally)
        assert set(tally.drivers) == set(TEAMS)
        assert tally.drivers["hulkenberg"].position == 0
        assert tally.constructors["red_bull"].podiums == 2
        assert tally.constructors["red_bull"].points == 43.0

    def test_no_tally_outside_active_season(self, accumulator, drivers, constructors) -> None:
        report = accumulator.fold(_race(results=MAIN_RACE), drivers, constructors, standings=None)
        assert report.drivers == set(TEAMS)

"""Canonical entities persisted by the pipeline."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from f1ledger.models.historical import HistoricalCircuit, HistoricalRace, HistoricalResult


def race_id(season: str | int, round: str | int) -> str:
    return f"{season}_{round}"


class Entity(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    @property
    def entity_id(self) -> str:
        raise NotImplementedError


class Driver(Entity):
    """Long-lived driver aggregate with career counters."""

    driver_id: str
    driver_number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str = ""
    nationality: str | None = None
    date_of_birth: str | None = None
    team_name: str | None = None
    image_url: str | None = None
    active: bool = False

    wins: int = 0
    podiums: int = 0
    points: float = 0.0
    poles: int = 0
    fastest_laps: int = 0
    total_races: int = 0
    sprint_wins: int = 0
    sprint_podiums: int = 0
    sprint_races: int = 0

    @property
    def entity_id(self) -> str:
        return self.driver_id


class Constructor(Entity):
    """Long-lived constructor aggregate with career counters."""

    constructor_id: str
    name: str = ""
    nationality: str | None = None
    url: str | None = None
    color_code: str | None = None

    wins: int = 0
    podiums: int = 0
    points: float = 0.0
    pole_positions: int = 0
    fastest_laps: int = 0
    total_races: int = 0
    sprint_wins: int = 0
    sprint_podiums: int = 0
    sprint_races: int = 0

    @property
    def entity_id(self) -> str:
        return self.constructor_id


class Location(BaseModel):
    lat: str | None = None
    long: str | None = None
    locality: str | None = None
    country: str | None = None


class Circuit(BaseModel):
    circuit_id: str | None = None
    circuit_name: str | None = None
    url: str | None = None
    location: Location | None = None

    @classmethod
    def from_historical(cls, circuit: HistoricalCircuit) -> Circuit:
        loc = circuit.location
        return cls(
            circuit_id=circuit.circuit_id,
            circuit_name=circuit.circuit_name,
            url=circuit.url,
            location=Location(**loc.model_dump()) if loc is not None else None,
        )


class Result(BaseModel):
    """A single finishing (or qualifying) row, owned by its Race."""

    number: str | None = None
    position: str | None = None
    position_text: str | None = None
    points: str | None = None
    grid: str | None = None
    laps: str | None = None
    status: str | None = None
    fastest_lap_rank: str | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    constructor_id: str | None = None
    constructor_name: str | None = None

    @classmethod
    def from_historical(cls, row: HistoricalResult) -> Result:
        driver = row.driver
        constructor = row.constructor
        return cls(
            number=row.number,
            position=row.position,
            position_text=row.position_text,
            points=row.points,
            grid=row.grid,
            laps=row.laps,
            status=row.status,
            fastest_lap_rank=row.fastest_lap.rank if row.fastest_lap is not None else None,
            driver_id=driver.driver_id if driver is not None else None,
            driver_name=driver.full_name.upper() if driver is not None else None,
            constructor_id=constructor.constructor_id if constructor is not None else None,
            constructor_name=constructor.name if constructor is not None else None,
        )


class Race(Entity):
    """A calendar entry plus its stored results."""

    id: str = ""
    season: str
    round: str
    race_name: str | None = None
    url: str | None = None
    date: str | None = None
    time: str | None = None
    circuit: Circuit | None = None
    results: list[Result] = Field(default_factory=list)
    qualifying_results: list[Result] = Field(default_factory=list)
    sprint_results: list[Result] = Field(default_factory=list)
    standings_updated: bool = False

    def model_post_init(self, context: Any, /) -> None:
        if not self.id:
            self.id = race_id(self.season, self.round)

    @property
    def entity_id(self) -> str:
        return self.id

    def starts_at(self) -> dt.datetime | None:
        """Scheduled start in UTC; midnight UTC when the time is unknown."""
        if not self.date:
            return None
        try:
            day = dt.date.fromisoformat(self.date)
            start = dt.time.fromisoformat(self.time.rstrip("Z")) if self.time else dt.time(0, 0)
        except ValueError:
            return None
        return dt.datetime.combine(day, start.replace(tzinfo=None), tzinfo=dt.UTC)

    @classmethod
    def from_historical(cls, race: HistoricalRace) -> Race:
        return cls(
            season=race.season,
            round=race.round,
            race_name=race.race_name,
            url=race.url,
            date=race.date,
            time=race.time,
            circuit=Circuit.from_historical(race.circuit) if race.circuit is not None else None,
            results=[Result.from_historical(r) for r in race.results],
            qualifying_results=[Result.from_historical(r) for r in race.qualifying_results],
            sprint_results=[Result.from_historical(r) for r in race.sprint_results],
        )


class DriverStanding(Entity):
    driver_id: str
    full_name: str = ""
    team_name: str = ""
    position: int = 0
    points: float = 0.0
    wins: int = 0
    podiums: int = 0
    positions_moved: int = 0

    @property
    def entity_id(self) -> str:
        return self.driver_id


class ConstructorStanding(Entity):
    constructor_id: str
    name: str = ""
    color: str | None = None
    position: int = 0
    points: float = 0.0
    wins: int = 0
    podiums: int = 0
    positions_moved: int = 0

    @property
    def entity_id(self) -> str:
        return self.constructor_id


class FailedRequest(Entity):
    """A failed ingestion step kept for operational follow-up."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    season: str
    round: str | None = None
    kind: str
    error: str
    timestamp: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.UTC))
    processed: bool = False

    @property
    def entity_id(self) -> str:
        return self.id

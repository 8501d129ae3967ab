"""Historical provider (Jolpica/Ergast) payload models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HistoricalModel(BaseModel):
    """Base for provider-A models: camelCase keys, capitalised nested tables."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class HistoricalDriver(HistoricalModel):
    driver_id: str | None = None
    permanent_number: str | None = None
    code: str | None = None
    url: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    date_of_birth: str | None = None
    nationality: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.given_name, self.family_name) if p)


class HistoricalConstructor(HistoricalModel):
    constructor_id: str | None = None
    url: str | None = None
    name: str | None = None
    nationality: str | None = None


class ResultTime(HistoricalModel):
    millis: str | None = None
    time: str | None = None


class FastestLap(HistoricalModel):
    rank: str | None = None
    lap: str | None = None
    time: ResultTime | None = Field(default=None, alias="Time")


class Location(HistoricalModel):
    lat: str | None = None
    long: str | None = None
    locality: str | None = None
    country: str | None = None


class HistoricalCircuit(HistoricalModel):
    circuit_id: str | None = None
    url: str | None = None
    circuit_name: str | None = None
    location: Location | None = Field(default=None, alias="Location")


class HistoricalResult(HistoricalModel):
    """One row of a results, qualifying or sprint table."""

    number: str | None = None
    position: str | None = None
    position_text: str | None = None
    points: str | None = None
    grid: str | None = None
    laps: str | None = None
    status: str | None = None
    q1: str | None = Field(default=None, alias="Q1")
    q2: str | None = Field(default=None, alias="Q2")
    q3: str | None = Field(default=None, alias="Q3")
    driver: HistoricalDriver | None = Field(default=None, alias="Driver")
    constructor: HistoricalConstructor | None = Field(default=None, alias="Constructor")
    time: ResultTime | None = Field(default=None, alias="Time")
    fastest_lap: FastestLap | None = Field(default=None, alias="FastestLap")


class HistoricalRace(HistoricalModel):
    season: str
    round: str
    url: str | None = None
    race_name: str | None = None
    circuit: HistoricalCircuit | None = Field(default=None, alias="Circuit")
    date: str | None = None
    time: str | None = None
    results: list[HistoricalResult] = Field(default_factory=list, alias="Results")
    qualifying_results: list[HistoricalResult] = Field(
        default_factory=list, alias="QualifyingResults"
    )
    sprint_results: list[HistoricalResult] = Field(default_factory=list, alias="SprintResults")


class RaceTable(HistoricalModel):
    season: str | None = None
    round: str | None = None
    races: list[HistoricalRace] = Field(default_factory=list, alias="Races")


class DriverTable(HistoricalModel):
    drivers: list[HistoricalDriver] = Field(default_factory=list, alias="Drivers")


class ConstructorTable(HistoricalModel):
    constructors: list[HistoricalConstructor] = Field(default_factory=list, alias="Constructors")


class DriverStandingEntry(HistoricalModel):
    position: str | None = None
    position_text: str | None = None
    points: str | None = None
    wins: str | None = None
    driver: HistoricalDriver | None = Field(default=None, alias="Driver")
    constructors: list[HistoricalConstructor] = Field(default_factory=list, alias="Constructors")


class ConstructorStandingEntry(HistoricalModel):
    position: str | None = None
    position_text: str | None = None
    points: str | None = None
    wins: str | None = None
    constructor: HistoricalConstructor | None = Field(default=None, alias="Constructor")


class StandingsList(HistoricalModel):
    season: str | None = None
    round: str | None = None
    driver_standings: list[DriverStandingEntry] = Field(
        default_factory=list, alias="DriverStandings"
    )
    constructor_standings: list[ConstructorStandingEntry] = Field(
        default_factory=list, alias="ConstructorStandings"
    )


class StandingsTable(HistoricalModel):
    season: str | None = None
    standings_lists: list[StandingsList] = Field(default_factory=list, alias="StandingsLists")


class MRData(HistoricalModel):
    """The root object every historical response is wrapped in."""

    limit: str | None = None
    offset: str | None = None
    total: str | None = None
    race_table: RaceTable | None = Field(default=None, alias="RaceTable")
    driver_table: DriverTable | None = Field(default=None, alias="DriverTable")
    constructor_table: ConstructorTable | None = Field(default=None, alias="ConstructorTable")
    standings_table: StandingsTable | None = Field(default=None, alias="StandingsTable")


class HistoricalResponse(HistoricalModel):
    mr_data: MRData = Field(alias="MRData")

    @property
    def races(self) -> list[HistoricalRace]:
        table = self.mr_data.race_table
        return table.races if table is not None else []

    @property
    def total(self) -> int | None:
        try:
            return int(self.mr_data.total) if self.mr_data.total is not None else None
        except ValueError:
            return None

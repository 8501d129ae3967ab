"""Shared test fixtures and sample provider responses."""

from __future__ import annotations

from typing import Any

import pytest

from f1ledger.config import ReferenceData
from f1ledger.storage import InMemoryStorage

HISTORICAL_URL = "https://api.jolpi.ca/ergast/f1"
LIVE_URL = "https://api.openf1.org/v1"


# ── Historical provider samples ───────────────────────────────────────────

DRIVER_VERSTAPPEN = {
    "driverId": "max_verstappen",
    "permanentNumber": "33",
    "code": "VER",
    "url": "http://en.wikipedia.org/wiki/Max_Verstappen",
    "givenName": "Max",
    "familyName": "Verstappen",
    "dateOfBirth": "1997-09-30",
    "nationality": "Dutch",
}

DRIVER_PEREZ = {
    "driverId": "perez",
    "permanentNumber": "11",
    "code": "PER",
    "url": "http://en.wikipedia.org/wiki/Sergio_P%C3%A9rez",
    "givenName": "Sergio",
    "familyName": "Pérez",
    "dateOfBirth": "1990-01-26",
    "nationality": "Mexican",
}

DRIVER_LECLERC = {
    "driverId": "leclerc",
    "permanentNumber": "16",
    "code": "LEC",
    "url": "http://en.wikipedia.org/wiki/Charles_Leclerc",
    "givenName": "Charles",
    "familyName": "Leclerc",
    "dateOfBirth": "1997-10-16",
    "nationality": "Monegasque",
}

DRIVER_HULKENBERG = {
    "driverId": "hulkenberg",
    "permanentNumber": "27",
    "code": "HUL",
    "url": "http://en.wikipedia.org/wiki/Nico_H%C3%BClkenberg",
    "givenName": "Nico",
    "familyName": "Hülkenberg",
    "dateOfBirth": "1987-08-19",
    "nationality": "German",
}

CONSTRUCTOR_RED_BULL = {
    "constructorId": "red_bull",
    "url": "http://en.wikipedia.org/wiki/Red_Bull_Racing",
    "name": "Red Bull",
    "nationality": "Austrian",
}

CONSTRUCTOR_FERRARI = {
    "constructorId": "ferrari",
    "url": "http://en.wikipedia.org/wiki/Scuderia_Ferrari",
    "name": "Ferrari",
    "nationality": "Italian",
}

CONSTRUCTOR_HAAS = {
    "constructorId": "haas",
    "url": "http://en.wikipedia.org/wiki/Haas_F1_Team",
    "name": "Haas F1 Team",
    "nationality": "American",
}

CIRCUIT_SHANGHAI = {
    "circuitId": "shanghai",
    "url": "http://en.wikipedia.org/wiki/Shanghai_International_Circuit",
    "circuitName": "Shanghai International Circuit",
    "Location": {"lat": "31.3389", "long": "121.22", "locality": "Shanghai", "country": "China"},
}


def result_row(
    position: int,
    driver: dict[str, Any],
    constructor: dict[str, Any],
    points: str = "0",
    fastest_lap_rank: str | None = None,
) -> dict[str, Any]:
    row: dict[str, Any] = {
        "number": driver["permanentNumber"],
        "position": str(position),
        "positionText": str(position),
        "points": points,
        "Driver": driver,
        "Constructor": constructor,
        "grid": str(position),
        "laps": "56",
        "status": "Finished",
    }
    if fastest_lap_rank is not None:
        row["FastestLap"] = {"rank": fastest_lap_rank, "lap": "40", "Time": {"time": "1:37.810"}}
    return row


def qualifying_row(position: int, driver: dict[str, Any], constructor: dict[str, Any]) -> dict[str, Any]:
    return {
        "number": driver["permanentNumber"],
        "position": str(position),
        "Driver": driver,
        "Constructor": constructor,
        "Q1": "1:34.742",
        "Q2": "1:34.207",
        "Q3": "1:33.660",
    }


def race_entry(season: str = "2024", round: str = "5", **tables: Any) -> dict[str, Any]:
    return {
        "season": season,
        "round": round,
        "url": "http://en.wikipedia.org/wiki/2024_Chinese_Grand_Prix",
        "raceName": "Chinese Grand Prix",
        "Circuit": CIRCUIT_SHANGHAI,
        "date": "2024-04-21",
        "time": "07:00:00Z",
        **tables,
    }


def mrdata(total: int | None = None, **tables: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"xmlns": "", "series": "f1", "limit": "30", "offset": "0", **tables}
    if total is not None:
        data["total"] = str(total)
    return {"MRData": data}


def race_table(*races: dict[str, Any]) -> dict[str, Any]:
    return mrdata(total=len(races), RaceTable={"Races": list(races)})


SAMPLE_RACE_RESULTS = race_table(
    race_entry(
        Results=[
            result_row(1, DRIVER_VERSTAPPEN, CONSTRUCTOR_RED_BULL, "25", fastest_lap_rank="1"),
            result_row(2, DRIVER_PEREZ, CONSTRUCTOR_RED_BULL, "18", fastest_lap_rank="3"),
            result_row(3, DRIVER_LECLERC, CONSTRUCTOR_FERRARI, "15", fastest_lap_rank="2"),
            result_row(4, DRIVER_HULKENBERG, CONSTRUCTOR_HAAS, "12"),
        ]
    )
)

SAMPLE_QUALIFYING = race_table(
    race_entry(
        QualifyingResults=[
            qualifying_row(1, DRIVER_VERSTAPPEN, CONSTRUCTOR_RED_BULL),
            qualifying_row(2, DRIVER_PEREZ, CONSTRUCTOR_RED_BULL),
            qualifying_row(3, DRIVER_LECLERC, CONSTRUCTOR_FERRARI),
            qualifying_row(4, DRIVER_HULKENBERG, CONSTRUCTOR_HAAS),
        ]
    )
)

SAMPLE_SPRINT = race_table(
    race_entry(
        SprintResults=[
            result_row(1, DRIVER_VERSTAPPEN, CONSTRUCTOR_RED_BULL, "8", fastest_lap_rank="1"),
            result_row(2, DRIVER_LECLERC, CONSTRUCTOR_FERRARI, "7"),
            result_row(3, DRIVER_PEREZ, CONSTRUCTOR_RED_BULL, "6"),
        ]
    )
)

EMPTY_RACE_TABLE = mrdata(total=0, RaceTable={"season": "2024", "round": "6", "Races": []})

SAMPLE_CALENDAR = race_table(
    {
        "season": "2024",
        "round": "5",
        "raceName": "Chinese Grand Prix",
        "Circuit": CIRCUIT_SHANGHAI,
        "date": "2024-04-21",
        "time": "07:00:00Z",
    },
    {
        "season": "2024",
        "round": "6",
        "raceName": "Miami Grand Prix",
        "Circuit": {
            "circuitId": "miami",
            "circuitName": "Miami International Autodrome",
            "Location": {"lat": "25.9581", "long": "-80.2389", "locality": "Miami", "country": "USA"},
        },
        "date": "2024-05-05",
        "time": "20:00:00Z",
    },
)

SAMPLE_DRIVER_LISTING = mrdata(
    total=4,
    DriverTable={"Drivers": [DRIVER_VERSTAPPEN, DRIVER_PEREZ, DRIVER_LECLERC, DRIVER_HULKENBERG]},
)

SAMPLE_CONSTRUCTOR_LISTING = mrdata(
    total=3,
    ConstructorTable={"Constructors": [CONSTRUCTOR_RED_BULL, CONSTRUCTOR_FERRARI, CONSTRUCTOR_HAAS]},
)

SAMPLE_DRIVER_STANDINGS = mrdata(
    total=3,
    StandingsTable={
        "season": "2024",
        "StandingsLists": [
            {
                "season": "2024",
                "round": "5",
                "DriverStandings": [
                    {"position": "1", "positionText": "1", "points": "110", "wins": "4",
                     "Driver": DRIVER_VERSTAPPEN, "Constructors": [CONSTRUCTOR_RED_BULL]},
                    {"position": "2", "positionText": "2", "points": "85", "wins": "0",
                     "Driver": DRIVER_PEREZ, "Constructors": [CONSTRUCTOR_RED_BULL]},
                    {"position": "3", "positionText": "3", "points": "76", "wins": "0",
                     "Driver": DRIVER_LECLERC, "Constructors": [CONSTRUCTOR_FERRARI]},
                ],
            }
        ],
    },
)

SAMPLE_CONSTRUCTOR_STANDINGS = mrdata(
    total=2,
    StandingsTable={
        "season": "2024",
        "StandingsLists": [
            {
                "season": "2024",
                "round": "5",
                "ConstructorStandings": [
                    {"position": "1", "positionText": "1", "points": "195", "wins": "4",
                     "Constructor": CONSTRUCTOR_RED_BULL},
                    {"position": "2", "positionText": "2", "points": "151", "wins": "1",
                     "Constructor": CONSTRUCTOR_FERRARI},
                ],
            }
        ],
    },
)


# ── Live provider samples ─────────────────────────────────────────────────

SAMPLE_LIVE_DRIVER = {
    "broadcast_name": "M VERSTAPPEN",
    "country_code": "NED",
    "driver_number": 1,
    "first_name": "Max",
    "full_name": "Max VERSTAPPEN",
    "headshot_url": "https://example.com/ver.png",
    "last_name": "Verstappen",
    "meeting_key": 1219,
    "name_acronym": "VER",
    "session_key": 9161,
    "team_colour": "3671C6",
    "team_name": "Red Bull Racing",
}

SAMPLE_LIVE_HULKENBERG = {
    "broadcast_name": "N HULKENBERG",
    "country_code": "GER",
    "driver_number": 27,
    "first_name": "Nico",
    "full_name": "Nico HULKENBERG",
    "headshot_url": "https://example.com/hul.png",
    "last_name": "Hulkenberg",
    "meeting_key": 1219,
    "name_acronym": "HUL",
    "session_key": 9161,
    "team_colour": "B6BABD",
    "team_name": "Kick Sauber",
}

SAMPLE_LIVE_ROOKIE = {
    "broadcast_name": "A LINDBLAD",
    "country_code": "GBR",
    "driver_number": 41,
    "first_name": "Arvid",
    "full_name": "Arvid LINDBLAD",
    "headshot_url": "https://example.com/lin.png",
    "last_name": "Lindblad",
    "meeting_key": 1219,
    "name_acronym": "LIN",
    "session_key": 9161,
    "team_colour": "6692FF",
    "team_name": "Racing Bulls",
}


# ── Fixtures ──────────────────────────────────────────────────────────────


class RecordingSleeper:
    """Sleeper that records requested waits instead of blocking."""

    def __init__(self) -> None:
        self.waits: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def reference() -> ReferenceData:
    return ReferenceData.load()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()

"""Roster record returned by the live (OpenF1) provider."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LiveDriver(BaseModel):
    """One car in the live session roster.

    Only enriches a canonical Driver: the reconciler matches it by full name
    and copies over the car number, current team and headshot. The team name
    and colour also seed constructors the historical listing does not know.
    """

    model_config = ConfigDict(frozen=True)

    broadcast_name: str | None = None
    country_code: str | None = None
    driver_number: int | None = None
    first_name: str | None = None
    full_name: str | None = None
    headshot_url: str | None = None
    last_name: str | None = None
    meeting_key: int | None = None
    name_acronym: str | None = None
    session_key: int | None = None
    team_colour: str | None = None
    team_name: str | None = None

"""f1ledger data models."""

from f1ledger.models.domain import (
    Circuit,
    Constructor,
    ConstructorStanding,
    Driver,
    DriverStanding,
    FailedRequest,
    Location,
    Race,
    Result,
    race_id,
)
from f1ledger.models.historical import (
    HistoricalConstructor,
    HistoricalDriver,
    HistoricalRace,
    HistoricalResponse,
    HistoricalResult,
)
from f1ledger.models.live import LiveDriver

__all__ = [
    "Circuit",
    "Constructor",
    "ConstructorStanding",
    "Driver",
    "DriverStanding",
    "FailedRequest",
    "HistoricalConstructor",
    "HistoricalDriver",
    "HistoricalRace",
    "HistoricalResponse",
    "HistoricalResult",
    "LiveDriver",
    "Location",
    "Race",
    "Result",
    "race_id",
]

"""f1ledger: motorsport statistics ingestion and reconciliation pipeline."""

from f1ledger.accumulator import FoldReport, StandingsTally, StatisticsAccumulator
from f1ledger.config import ReferenceData, Settings
from f1ledger.exceptions import (
    AlreadyProcessedError,
    ConfigurationError,
    F1LedgerError,
    FetchInterruptedError,
    MalformedResponseError,
    MappingError,
    RateLimitedError,
    UpstreamAPIError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamFatalError,
    UpstreamTimeoutError,
)
from f1ledger.historical import HistoricalClient
from f1ledger.live import LiveClient
from f1ledger.pipeline import IngestionPipeline, IngestionResult, IngestionStatus
from f1ledger.reconcile import IdentityReconciler
from f1ledger.scheduler import CancellableTimer, RaceCalendarScheduler, WakePlan, plan_next_wake
from f1ledger.standings import StandingsUpdater
from f1ledger.storage import InMemoryStorage, MongoStorage, StorageGateway

__all__ = [
    "AlreadyProcessedError",
    "CancellableTimer",
    "ConfigurationError",
    "F1LedgerError",
    "FetchInterruptedError",
    "FoldReport",
    "HistoricalClient",
    "IdentityReconciler",
    "InMemoryStorage",
    "IngestionPipeline",
    "IngestionResult",
    "IngestionStatus",
    "LiveClient",
    "MalformedResponseError",
    "MappingError",
    "MongoStorage",
    "RaceCalendarScheduler",
    "RateLimitedError",
    "ReferenceData",
    "Settings",
    "StandingsTally",
    "StandingsUpdater",
    "StatisticsAccumulator",
    "StorageGateway",
    "UpstreamAPIError",
    "UpstreamConnectionError",
    "UpstreamError",
    "UpstreamFatalError",
    "UpstreamTimeoutError",
    "WakePlan",
    "plan_next_wake",
]

__version__ = "0.1.0"

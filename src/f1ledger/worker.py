"""Long-running ingestion worker: wiring, signal handling and shutdown."""

from __future__ import annotations

import datetime as dt
import logging
import signal
import threading
from types import FrameType

from f1ledger._logging import configure_logging
from f1ledger._retry import BackoffPolicy, EventSleeper
from f1ledger.config import ReferenceData, Settings
from f1ledger.historical import HistoricalClient
from f1ledger.live import LiveClient
from f1ledger.pipeline import IngestionPipeline
from f1ledger.reconcile import IdentityReconciler
from f1ledger.scheduler import RaceCalendarScheduler
from f1ledger.storage import InMemoryStorage, MongoStorage, StorageGateway

logger = logging.getLogger(__name__)


class Worker:
    """Builds the pipeline from ``Settings`` and runs the scheduler until signalled.

    Usage:
        worker = Worker(Settings.from_env())
        worker.run()      # blocks until SIGINT/SIGTERM
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageGateway | None = None,
        reference: ReferenceData | None = None,
    ) -> None:
        self.settings = settings
        self.stop_event = threading.Event()
        sleeper = EventSleeper(self.stop_event)

        self.historical = HistoricalClient(
            base_url=settings.historical_base_url,
            timeout=settings.request_timeout,
            policy=BackoffPolicy(settings.historical_backoff_base, max_retries=settings.max_retries),
            sleep=sleeper,
            page_size=settings.page_size,
            page_delay=settings.page_delay,
        )
        self.live = LiveClient(
            base_url=settings.live_base_url,
            timeout=settings.request_timeout,
            policy=BackoffPolicy(settings.live_backoff_base, max_retries=settings.max_retries),
            sleep=sleeper,
        )
        self.storage = storage or self._default_storage(settings)
        self.pipeline = IngestionPipeline(
            self.historical,
            self.live,
            self.storage,
            IdentityReconciler(reference or ReferenceData.load()),
            season=settings.season,
            snapshot_path=settings.snapshot_path,
        )
        self.scheduler = RaceCalendarScheduler(
            self.pipeline,
            stop_event=self.stop_event,
            overdue_delay=dt.timedelta(minutes=settings.overdue_delay_minutes),
            post_race_delay=dt.timedelta(hours=settings.post_race_delay_hours),
            idle_delay=dt.timedelta(hours=settings.idle_delay_hours),
        )

    @staticmethod
    def _default_storage(settings: Settings) -> StorageGateway:
        if settings.mongodb_uri:
            return MongoStorage.from_uri(settings.mongodb_uri, settings.mongodb_database)
        logger.warning("F1LEDGER_MONGODB_URI not set; using in-memory storage")
        return InMemoryStorage()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s; shutting down", signal.Signals(signum).name)
        self.stop()

    def run(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)
        logger.info("Worker starting for season %s", self.pipeline.active_season)
        try:
            self.scheduler.start()
            self.stop_event.wait()
        finally:
            self.stop()
            self.close()

    def stop(self) -> None:
        self.scheduler.stop()

    def close(self) -> None:
        self.historical.close()
        self.live.close()


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_file)
    Worker(settings).run()

"""Tests for worker wiring and shutdown."""

from __future__ import annotations

import datetime as dt
import signal
from unittest.mock import MagicMock

import pytest

from f1ledger import worker as worker_module
from f1ledger._retry import EventSleeper
from f1ledger.config import ReferenceData, Settings
from f1ledger.exceptions import FetchInterruptedError
from f1ledger.storage import InMemoryStorage
from f1ledger.worker import Worker


@pytest.fixture
def settings() -> Settings:
    return Settings(season=2024, max_retries=2, historical_backoff_base=30.0, idle_delay_hours=12.0)


class TestWorker:
    def test_wiring_follows_settings(self, settings: Settings, reference: ReferenceData) -> None:
        worker = Worker(settings, storage=InMemoryStorage(), reference=reference)
        try:
            policy = worker.historical._transport.policy
            assert (policy.base_delay, policy.max_retries) == (30.0, 2)
            assert worker.live._transport.policy.base_delay == 10.0
            assert worker.pipeline.active_season == "2024"
            assert worker.scheduler.idle_delay == dt.timedelta(hours=12)
            assert worker.scheduler.stop_event is worker.stop_event
        finally:
            worker.close()

    def test_defaults_to_in_memory_storage(self, settings: Settings, reference: ReferenceData) -> None:
        worker = Worker(settings, reference=reference)
        try:
            assert isinstance(worker.storage, InMemoryStorage)
        finally:
            worker.close()

    def test_mongo_storage_from_uri(self, reference: ReferenceData, monkeypatch: pytest.MonkeyPatch) -> None:
        from_uri = MagicMock(return_value=InMemoryStorage())
        monkeypatch.setattr(worker_module.MongoStorage, "from_uri", from_uri)
        worker = Worker(Settings(mongodb_uri="mongodb://db:27017", mongodb_database="ledger"), reference=reference)
        try:
            from_uri.assert_called_once_with("mongodb://db:27017", "ledger")
        finally:
            worker.close()

    def test_stop_aborts_backoff_sleeps(self, settings: Settings, reference: ReferenceData) -> None:
        worker = Worker(settings, storage=InMemoryStorage(), reference=reference)
        try:
            worker.stop()
            assert worker.scheduler.stopping
            with pytest.raises(FetchInterruptedError):
                EventSleeper(worker.stop_event)(60.0)
        finally:
            worker.close()

    def test_run_returns_once_stopped(
        self, settings: Settings, reference: ReferenceData, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        handlers = {}
        monkeypatch.setattr(signal, "signal", lambda signum, handler: handlers.setdefault(signum, handler))
        worker = Worker(settings, storage=InMemoryStorage(), reference=reference)
        monkeypatch.setattr(worker.scheduler, "start", lambda: worker._handle_signal(signal.SIGTERM, None))

        worker.run()

        assert set(handlers) == {signal.SIGINT, signal.SIGTERM}
        assert worker.stop_event.is_set()
        assert worker.scheduler.timer.pending is None

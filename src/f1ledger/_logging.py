"""Logging setup and upstream call logging for the ingestion pipeline."""

from __future__ import annotations

import functools
import logging
import time
from pathlib import Path
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
UPSTREAM_LOGGER = "f1ledger.upstream"


def configure_logging(level: str | int = "INFO", log_file: Path | None = None) -> None:
    """Install a stream handler (and optionally a file handler) on the package logger."""
    root = logging.getLogger("f1ledger")
    root.setLevel(level)
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def _count(result: Any) -> int:
    if isinstance(result, list):
        return len(result)
    # A single race counts its classification rows.
    tables = ("results", "qualifying_results", "sprint_results")
    return sum(len(getattr(result, name, None) or []) for name in tables) or 1


def _describe_call(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    return ", ".join([*(repr(a) for a in args), *(f"{k}={v!r}" for k, v in kwargs.items())])


def log_upstream_call(fn: F) -> F:
    """Log an upstream client method on the ``f1ledger.upstream`` logger.

    Lines are labelled ``<provider>.<method>``, taking ``provider`` from the
    client (its class name when it has none). A None return is the provider's
    "no data yet" and is logged as NO DATA rather than as an empty success.
    """

    @functools.wraps(fn)
    def wrapper(client: Any, *args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(UPSTREAM_LOGGER)
        label = f"{getattr(client, 'provider', type(client).__name__)}.{fn.__name__}"
        call = _describe_call(args, kwargs)
        logger.debug("CALL: %s(%s)", label, call)

        started = time.monotonic()
        try:
            result = fn(client, *args, **kwargs)
        except Exception as exc:
            logger.error(
                "FAIL: %s(%s) -> %s: %s (%.3fs)",
                label, call, type(exc).__name__, exc, time.monotonic() - started,
            )
            raise
        elapsed = time.monotonic() - started
        if result is None:
            logger.info("NO DATA: %s(%s) (%.3fs)", label, call, elapsed)
        else:
            logger.info("OK: %s(%s) -> %d rows (%.3fs)", label, call, _count(result), elapsed)
        return result

    return wrapper  # type: ignore[return-value]

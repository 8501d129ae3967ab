"""JSON snapshot of the driver and constructor aggregates."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from f1ledger.exceptions import ConfigurationError
from f1ledger.models.domain import Constructor, Driver
from f1ledger.storage import StorageGateway

logger = logging.getLogger(__name__)


class Snapshot(BaseModel):
    drivers: list[Driver] = Field(default_factory=list)
    constructors: list[Constructor] = Field(default_factory=list)


def load_snapshot(path: Path, storage: StorageGateway) -> int:
    """Seed empty driver/constructor collections from ``path``.

    Collections that already hold documents are left alone. Returns the number
    of entities written; a missing file is not an error.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No snapshot at %s", path)
        return 0
    try:
        snapshot = Snapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise ConfigurationError(f"Cannot read snapshot {path}: {exc}") from exc

    written = 0
    if storage.drivers.count() == 0 and snapshot.drivers:
        storage.drivers.save_all(snapshot.drivers)
        written += len(snapshot.drivers)
    if storage.constructors.count() == 0 and snapshot.constructors:
        storage.constructors.save_all(snapshot.constructors)
        written += len(snapshot.constructors)
    logger.info("Loaded %d entities from snapshot %s", written, path)
    return written


def export_snapshot(path: Path, storage: StorageGateway) -> None:
    """Write the stored drivers and constructors to ``path``."""
    path = Path(path)
    snapshot = Snapshot(drivers=storage.drivers.all(), constructors=storage.constructors.all())
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    tmp.replace(path)
    logger.info(
        "Exported %d drivers and %d constructors to %s",
        len(snapshot.drivers), len(snapshot.constructors), path,
    )

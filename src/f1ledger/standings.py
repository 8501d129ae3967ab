"""Season-wide replacement of the championship standings snapshot."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from f1ledger.historical import HistoricalClient
from f1ledger.models.domain import Constructor, ConstructorStanding, Driver, DriverStanding
from f1ledger.models.historical import ConstructorStandingEntry, DriverStandingEntry
from f1ledger.storage import StorageGateway

logger = logging.getLogger(__name__)


def _moved(new_position: int, previous: DriverStanding | ConstructorStanding | None) -> int:
    # Position 0 marks a row seeded by a fold before any refresh placed it.
    if previous is None or previous.position == 0:
        return 0
    return new_position - previous.position


class StandingsUpdater:
    """Rebuilds both standings collections from the provider's current tables.

    Usage:
        updater = StandingsUpdater(ergast, storage)
        status = updater.refresh("2026")
    """

    def __init__(self, historical: HistoricalClient, storage: StorageGateway) -> None:
        self.historical = historical
        self.storage = storage

    def refresh(self, season: str | int) -> str:
        """Replace the driver and constructor snapshots for ``season``.

        Returns a one-line status per table. A table whose feed is empty keeps
        its previous snapshot.
        """
        driver_status = self._refresh_drivers(season)
        constructor_status = self._refresh_constructors(season)
        return f"{driver_status}; {constructor_status}"

    def _refresh_drivers(self, season: str | int) -> str:
        table = self.historical.driver_standings(season)
        if table is None or not table.driver_standings:
            logger.info("No driver standings for %s; keeping previous snapshot", season)
            return "driver standings: no data, previous snapshot kept"

        previous = {s.driver_id: s for s in self.storage.driver_standings.all()}
        drivers = {d.driver_id: d for d in self.storage.drivers.all()}
        rows: dict[str, DriverStanding] = {}
        skipped = 0
        for entry in table.driver_standings:
            row = self._driver_row(entry, drivers, previous)
            if row is None or row.driver_id in rows:
                skipped += 1
                continue
            rows[row.driver_id] = row

        self.storage.driver_standings.delete_all()
        self.storage.driver_standings.save_all(rows.values())
        logger.info("Driver standings for %s replaced: %d rows, %d skipped", season, len(rows), skipped)
        return f"driver standings: {len(rows)} rows, {skipped} skipped"

    def _driver_row(
        self,
        entry: DriverStandingEntry,
        drivers: Mapping[str, Driver],
        previous: Mapping[str, DriverStanding],
    ) -> DriverStanding | None:
        driver_id = entry.driver.driver_id if entry.driver is not None else None
        if not driver_id or driver_id not in drivers:
            logger.warning("Skipping driver standing for unknown driver %r", driver_id)
            return None
        try:
            position = int(entry.position or "")
            points = float(entry.points or "")
            wins = int(entry.wins or 0)
        except ValueError:
            logger.warning(
                "Skipping malformed driver standing for %s: position=%r points=%r",
                driver_id, entry.position, entry.points,
            )
            return None

        driver = drivers[driver_id]
        before = previous.get(driver_id)
        team_name = entry.constructors[-1].name if entry.constructors else driver.team_name
        return DriverStanding(
            driver_id=driver_id,
            full_name=driver.full_name,
            team_name=team_name or "",
            position=position,
            points=points,
            wins=wins,
            podiums=before.podiums if before is not None else 0,
            positions_moved=_moved(position, before),
        )

    def _refresh_constructors(self, season: str | int) -> str:
        table = self.historical.constructor_standings(season)
        if table is None or not table.constructor_standings:
            logger.info("No constructor standings for %s; keeping previous snapshot", season)
            return "constructor standings: no data, previous snapshot kept"

        previous = {s.constructor_id: s for s in self.storage.constructor_standings.all()}
        constructors = {c.constructor_id: c for c in self.storage.constructors.all()}
        rows: dict[str, ConstructorStanding] = {}
        skipped = 0
        for entry in table.constructor_standings:
            row = self._constructor_row(entry, constructors, previous)
            if row is None:
                skipped += 1
                continue
            if row.constructor_id in rows:
                logger.warning("Dropping duplicate constructor standing for %s", row.constructor_id)
                skipped += 1
                continue
            rows[row.constructor_id] = row

        self.storage.constructor_standings.delete_all()
        self.storage.constructor_standings.save_all(rows.values())
        logger.info(
            "Constructor standings for %s replaced: %d rows, %d skipped", season, len(rows), skipped,
        )
        return f"constructor standings: {len(rows)} rows, {skipped} skipped"

    def _constructor_row(
        self,
        entry: ConstructorStandingEntry,
        constructors: Mapping[str, Constructor],
        previous: Mapping[str, ConstructorStanding],
    ) -> ConstructorStanding | None:
        constructor_id = entry.constructor.constructor_id if entry.constructor is not None else None
        if not constructor_id or constructor_id not in constructors:
            logger.warning("Skipping constructor standing for unknown constructor %r", constructor_id)
            return None
        try:
            position = int(entry.position or "")
            points = float(entry.points or "")
            wins = int(entry.wins or 0)
        except ValueError:
            logger.warning(
                "Skipping malformed constructor standing for %s: position=%r points=%r",
                constructor_id, entry.position, entry.points,
            )
            return None

        constructor = constructors[constructor_id]
        before = previous.get(constructor_id)
        return ConstructorStanding(
            constructor_id=constructor_id,
            name=constructor.name,
            color=constructor.color_code,
            position=position,
            points=points,
            wins=wins,
            podiums=before.podiums if before is not None else 0,
            positions_moved=_moved(position, before),
        )

"""Merge historical and live provider identities into canonical entities."""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable, MutableMapping
from dataclasses import dataclass, field

from f1ledger.config import ReferenceData
from f1ledger.models.domain import Constructor, Driver
from f1ledger.models.historical import HistoricalConstructor, HistoricalDriver, HistoricalResult
from f1ledger.models.live import LiveDriver

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """``"Nico Hülkenberg"`` -> ``"nico_hulkenberg"``."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG.sub("_", ascii_name.lower()).strip("_")


def _upper(name: str | None) -> str:
    return _WHITESPACE.sub(" ", name or "").strip().upper()


@dataclass
class Resolution:
    """Identities created or re-keyed while resolving a result list."""

    created_drivers: list[str] = field(default_factory=list)
    created_constructors: list[str] = field(default_factory=list)
    # Live-only ids replaced by the historical id of the same entity.
    retired_drivers: list[str] = field(default_factory=list)
    retired_constructors: list[str] = field(default_factory=list)


class IdentityReconciler:
    """Produces one canonical Driver/Constructor per real-world entity.

    The historical provider owns identity (ids, birth dates, nationality);
    the live provider only enriches it with current team, car number and
    headshot. Names are matched on their uppercase form after the override
    table has been applied.
    """

    def __init__(self, reference: ReferenceData) -> None:
        self.reference = reference

    # ── Name normalisation ─────────────────────────────────────

    def canonical_name(self, name: str | None) -> str:
        upper = _upper(name)
        return self.reference.driver_name_overrides.get(upper, upper)

    def canonical_team(self, name: str | None) -> str:
        upper = _upper(name)
        return self.reference.team_name_overrides.get(upper, upper)

    def _live_full_name(self, record: LiveDriver) -> str:
        if record.full_name:
            return self.canonical_name(record.full_name)
        return self.canonical_name(f"{record.first_name or ''} {record.last_name or ''}")

    # ── Historical records ─────────────────────────────────────

    def driver_from_historical(self, record: HistoricalDriver) -> Driver:
        full_name = _upper(record.full_name)
        return Driver(
            driver_id=record.driver_id or slugify(full_name),
            driver_number=record.permanent_number,
            first_name=record.given_name,
            last_name=record.family_name,
            full_name=full_name,
            nationality=record.nationality,
            date_of_birth=record.date_of_birth,
            image_url=self.reference.driver_image_overrides.get(full_name),
        )

    def constructor_from_historical(self, record: HistoricalConstructor) -> Constructor:
        name = record.name or ""
        constructor_id = record.constructor_id or slugify(name)
        return Constructor(
            constructor_id=constructor_id,
            name=name,
            nationality=record.nationality,
            url=record.url,
            color_code=self.reference.constructor_colors.get(constructor_id),
        )

    # ── Live overlay ───────────────────────────────────────────

    def _overlay_driver(self, driver: Driver, record: LiveDriver) -> None:
        if record.driver_number is not None:
            driver.driver_number = str(record.driver_number)
        if record.team_name:
            driver.team_name = record.team_name
        override = self.reference.driver_image_overrides.get(_upper(driver.full_name))
        driver.image_url = override or record.headshot_url or driver.image_url

    def _driver_from_live(self, record: LiveDriver, full_name: str) -> Driver:
        driver = Driver(
            driver_id=slugify(full_name),
            first_name=record.first_name,
            last_name=record.last_name,
            full_name=full_name,
        )
        self._overlay_driver(driver, record)
        return driver

    def reconcile_drivers(self, known: Iterable[Driver], live: Iterable[LiveDriver]) -> list[Driver]:
        """Merge the live roster into the known drivers.

        Matched drivers keep their id, counters and historical fields; live
        records with no match become new drivers keyed by the slug of their
        name. Only drivers present in the live roster end up active.
        """
        drivers = list(known)
        by_name: dict[str, Driver] = {}
        by_id: dict[str, Driver] = {}
        for driver in drivers:
            by_name[self.canonical_name(driver.full_name)] = driver
            by_id[driver.driver_id] = driver

        roster: dict[str, LiveDriver] = {}
        for record in live:
            name = self._live_full_name(record)
            if not name:
                logger.warning("Skipping live driver #%s without a name", record.driver_number)
                continue
            roster[name] = record

        seen: set[str] = set()
        for name, record in roster.items():
            driver = by_name.get(name) or by_id.get(slugify(name))
            if driver is None:
                driver = self._driver_from_live(record, name)
                drivers.append(driver)
                by_name[name] = driver
                by_id[driver.driver_id] = driver
                logger.info("New driver %s (%s) from live feed", driver.driver_id, name)
            else:
                self._overlay_driver(driver, record)
            seen.add(driver.driver_id)

        for driver in drivers:
            driver.active = driver.driver_id in seen
        return drivers

    def reconcile_constructors(
        self, known: Iterable[Constructor], live: Iterable[LiveDriver],
    ) -> list[Constructor]:
        """Merge the live teams into the known constructors and assign colours."""
        constructors = list(known)
        by_name = {self.canonical_team(c.name): c for c in constructors}
        by_id = {c.constructor_id: c for c in constructors}

        for record in live:
            if not record.team_name:
                continue
            name = self.canonical_team(record.team_name)
            constructor = by_name.get(name) or by_id.get(slugify(name))
            if constructor is None:
                constructor = Constructor(constructor_id=slugify(name), name=record.team_name)
                constructors.append(constructor)
                by_name[name] = constructor
                by_id[constructor.constructor_id] = constructor
                logger.info("New constructor %s from live feed", constructor.constructor_id)
            if constructor.color_code is None and record.team_colour:
                constructor.color_code = f"#{record.team_colour.lstrip('#').upper()}"

        for constructor in constructors:
            color = self.reference.constructor_colors.get(constructor.constructor_id)
            if color is not None:
                constructor.color_code = color
        return constructors

    # ── Result references ──────────────────────────────────────

    def resolve_results(
        self,
        rows: Iterable[HistoricalResult],
        drivers: MutableMapping[str, Driver],
        constructors: MutableMapping[str, Constructor],
    ) -> Resolution:
        """Make sure every driver/constructor referenced by ``rows`` is in the maps.

        A missing id whose name matches a live-only entity adopts that entity
        under the historical id (its old id is reported as retired); anything
        else is created from the record embedded in the result.
        """
        resolution = Resolution()
        for row in rows:
            if row.driver is not None and row.driver.driver_id:
                self._resolve_driver(row.driver, drivers, resolution)
            if row.constructor is not None and row.constructor.constructor_id:
                self._resolve_constructor(row.constructor, constructors, resolution)
        return resolution

    def _resolve_driver(
        self,
        record: HistoricalDriver,
        drivers: MutableMapping[str, Driver],
        resolution: Resolution,
    ) -> None:
        driver_id = record.driver_id
        if driver_id in drivers:
            return
        canonical = self.driver_from_historical(record)
        name = self.canonical_name(canonical.full_name)
        twin = next(
            (
                d for d in drivers.values()
                if d.driver_id == slugify(name) and self.canonical_name(d.full_name) == name
            ),
            None,
        )
        if twin is not None:
            adopted = twin.model_copy(update={
                "driver_id": driver_id,
                "first_name": canonical.first_name,
                "last_name": canonical.last_name,
                "full_name": canonical.full_name,
                "nationality": canonical.nationality,
                "date_of_birth": canonical.date_of_birth,
            })
            del drivers[twin.driver_id]
            drivers[driver_id] = adopted
            resolution.retired_drivers.append(twin.driver_id)
            logger.info("Driver %s re-keyed to historical id %s", twin.driver_id, driver_id)
        else:
            drivers[driver_id] = canonical
            logger.info("Created driver %s from race results", driver_id)
        resolution.created_drivers.append(driver_id)

    def _resolve_constructor(
        self,
        record: HistoricalConstructor,
        constructors: MutableMapping[str, Constructor],
        resolution: Resolution,
    ) -> None:
        constructor_id = record.constructor_id
        if constructor_id in constructors:
            return
        canonical = self.constructor_from_historical(record)
        name = self.canonical_team(canonical.name)
        twin = next(
            (
                c for c in constructors.values()
                if c.constructor_id == slugify(name) and self.canonical_team(c.name) == name
            ),
            None,
        )
        if twin is not None:
            adopted = twin.model_copy(update={
                "constructor_id": constructor_id,
                "name": canonical.name,
                "nationality": canonical.nationality,
                "url": canonical.url,
                "color_code": twin.color_code or canonical.color_code,
            })
            del constructors[twin.constructor_id]
            constructors[constructor_id] = adopted
            resolution.retired_constructors.append(twin.constructor_id)
            logger.info(
                "Constructor %s re-keyed to historical id %s", twin.constructor_id, constructor_id,
            )
        else:
            constructors[constructor_id] = canonical
            logger.info("Created constructor %s from race results", constructor_id)
        resolution.created_constructors.append(constructor_id)

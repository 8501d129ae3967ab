"""Runtime settings and curated reference tables."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from f1ledger.exceptions import ConfigurationError

ENV_PREFIX = "F1LEDGER_"

HISTORICAL_BASE_URL = "https://api.jolpi.ca/ergast/f1/"
LIVE_BASE_URL = "https://api.openf1.org/v1/"


class Settings(BaseModel):
    """Worker settings, overridable through ``F1LEDGER_*`` environment variables."""

    model_config = ConfigDict(frozen=True)

    historical_base_url: str = HISTORICAL_BASE_URL
    live_base_url: str = LIVE_BASE_URL
    request_timeout: float = 5.0

    historical_backoff_base: float = 60.0
    live_backoff_base: float = 10.0
    max_retries: int = 5
    page_size: int = 100
    page_delay: float = 1.5

    # None means "the current calendar year".
    season: int | None = None

    overdue_delay_minutes: float = 30.0
    post_race_delay_hours: float = 4.0
    idle_delay_hours: float = 24.0

    mongodb_uri: str | None = None
    mongodb_database: str = "f1ledger"
    snapshot_path: Path | None = None

    log_level: str = "INFO"
    log_file: Path | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, dotenv: bool = True) -> Settings:
        """Build settings from the environment (and a ``.env`` file, if present)."""
        if env is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            env = os.environ
        values = {
            name: env[ENV_PREFIX + name.upper()]
            for name in cls.model_fields
            if env.get(ENV_PREFIX + name.upper())
        }
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid settings: {exc}") from exc


def _read_only_upper(table: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({k.upper(): v.upper() for k, v in table.items()})


class ReferenceData(BaseModel):
    """Curated identity corrections and display tables.

    Loaded once at startup and handed to the reconciler; every table is a
    read-only mapping.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    driver_name_overrides: Mapping[str, str] = MappingProxyType({})
    driver_image_overrides: Mapping[str, str] = MappingProxyType({})
    team_name_overrides: Mapping[str, str] = MappingProxyType({})
    constructor_colors: Mapping[str, str] = MappingProxyType({})

    @field_validator("driver_name_overrides", "team_name_overrides")
    @classmethod
    def _normalize_names(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return _read_only_upper(value)

    @field_validator("driver_image_overrides")
    @classmethod
    def _normalize_image_keys(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType({k.upper(): v for k, v in value.items()})

    @field_validator("constructor_colors")
    @classmethod
    def _freeze_colors(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @classmethod
    def load(cls, path: Path | None = None) -> ReferenceData:
        """Load the tables from ``path``, or the bundled ``reference.json``."""
        try:
            if path is None:
                text = resources.files("f1ledger.data").joinpath("reference.json").read_text(
                    encoding="utf-8"
                )
            else:
                text = Path(path).read_text(encoding="utf-8")
            return cls.model_validate(json.loads(text))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Cannot load reference data: {exc}") from exc

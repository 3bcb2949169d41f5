"""Mini README: Centralised configuration for the fleetledger finance core.

Structure:
    * FleetLedgerSettings - pydantic-settings model describing runtime options.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read the operating currency, log level, the
    location of the persisted reconciliation queue and the service port of
    the JSON interface. Values come from ``FLEETLEDGER_*`` environment
    variables or a ``.env`` file and are validated once per process.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FleetLedgerSettings(BaseSettings):
    """Runtime configuration for the finance core and its interfaces."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETLEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    currency: str = Field(
        "GBP",
        description="ISO code of the single currency every amount is expressed in.",
        min_length=3,
        max_length=3,
    )
    log_level: str = Field("INFO", description="Root logging level name.")
    reconciliation_log_path: Optional[Path] = Field(
        None,
        description=(
            "JSON-lines file receiving reconciliation queue entries."
            " Leave unset to keep the queue in memory only."
        ),
    )
    hire_weekly_rate: Decimal = Field(
        Decimal("400"),
        description="Weekly vehicle hire charge used when pricing hire periods.",
        ge=0,
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the JSON service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Port the JSON service exposes.",
        ge=1,
        le=65535,
    )

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        """Store currency codes in their canonical upper-case form."""

        return value.upper()

    @field_validator("reconciliation_log_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        """Expand user directories and make sure the parent folder exists."""

        if value in (None, ""):
            return None
        path = Path(value).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


@lru_cache()
def get_settings() -> FleetLedgerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return FleetLedgerSettings()

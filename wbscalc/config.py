"""wbscalc configuration management.

Loads configuration from environment variables with sensible defaults.
Business assumptions baked into budget parsing (fallback rates, nominal
workday, average hours per month) live in ImportConfig so they can be
overridden per deployment instead of per release.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class DBConfig:
    """Database connection configuration."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class ImportConfig:
    """Budget import assumptions and tolerances."""

    fallback_direct_rate: Decimal = Decimal("75")
    hours_per_day: Decimal = Decimal("10")
    hours_per_month: Decimal = Decimal("173")
    weeks_per_month: Decimal = Decimal("4.33")
    fallback_monthly_rate: Decimal = Decimal("7000")
    reconciliation_tolerance: Decimal = Decimal("0.00")
    required_sheets: tuple[str, ...] = ("DIRECTS",)

    # Per-category overrides merged over the literal tables in ingestion.catalogs
    standard_rate_overrides: dict[str, Decimal] = field(default_factory=dict)
    crew_size_overrides: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Divisors in the duration and staffing formulas
        for name in ("hours_per_day", "hours_per_month", "weeks_per_month"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("fallback_direct_rate", "fallback_monthly_rate", "reconciliation_tolerance"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

    @classmethod
    def from_env(cls) -> ImportConfig:
        """Build import settings from WBS_* environment variables."""
        required = os.getenv("WBS_REQUIRED_SHEETS", "DIRECTS")
        config = cls(
            fallback_direct_rate=Decimal(os.getenv("WBS_FALLBACK_DIRECT_RATE", "75")),
            hours_per_day=Decimal(os.getenv("WBS_HOURS_PER_DAY", "10")),
            hours_per_month=Decimal(os.getenv("WBS_HOURS_PER_MONTH", "173")),
            weeks_per_month=Decimal(os.getenv("WBS_WEEKS_PER_MONTH", "4.33")),
            fallback_monthly_rate=Decimal(os.getenv("WBS_FALLBACK_MONTHLY_RATE", "7000")),
            reconciliation_tolerance=Decimal(
                os.getenv("WBS_RECONCILIATION_TOLERANCE", "0.00")
            ),
            required_sheets=tuple(
                name.strip().upper() for name in required.split(",") if name.strip()
            ),
        )

        overrides_path = os.getenv("WBS_RATE_OVERRIDES")
        if overrides_path:
            config.load_overrides(Path(overrides_path))

        return config

    def load_overrides(self, path: Path) -> None:
        """Merge standard rate and crew size overrides from a YAML file.

        Expected format::

            standard_rates:
              Welder - Class A: 95
            crew_sizes:
              Helper: 3

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If a key is not a canonical direct labor category, a
                rate is negative or a crew size is not positive
        """
        from wbscalc.ingestion.catalogs import DIRECT_LABOR_CATEGORIES

        if not path.exists():
            raise FileNotFoundError(f"Rate override file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        known = set(DIRECT_LABOR_CATEGORIES)
        for section in ("standard_rates", "crew_sizes"):
            unknown = set((data.get(section) or {})) - known
            if unknown:
                raise ValueError(
                    f"Unknown labor categories in {section}: {sorted(unknown)}"
                )

        rates = {c: Decimal(str(r)) for c, r in (data.get("standard_rates") or {}).items()}
        sizes = {c: int(s) for c, s in (data.get("crew_sizes") or {}).items()}

        bad_rates = sorted(c for c, r in rates.items() if r < 0)
        if bad_rates:
            raise ValueError(f"Negative standard rates for: {bad_rates}")
        bad_sizes = sorted(c for c, s in sizes.items() if s <= 0)
        if bad_sizes:
            raise ValueError(f"Crew sizes must be positive for: {bad_sizes}")

        self.standard_rate_overrides.update(rates)
        self.crew_size_overrides.update(sizes)


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    db: DBConfig
    log_level: str = "INFO"
    log_format: str = "text"  # json or text

    importer: ImportConfig = field(default_factory=ImportConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - DATABASE_URL: SQLAlchemy async connection string

        Optional (with defaults):
        - LOG_LEVEL: Logging verbosity (default: "INFO")
        - WBS_*: import assumptions, see ImportConfig.from_env

        Raises:
            KeyError: If required environment variables are missing
        """
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///./wbscalc.db"
            )

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format="json" if os.getenv("JSON_LOGS", "false").lower() == "true" else "text",
            db=DBConfig(
                url=database_url,
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            importer=ImportConfig.from_env(),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached singleton (tests, CLI re-entry)."""
    global _config
    _config = None

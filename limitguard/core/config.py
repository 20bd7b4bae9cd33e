from datetime import date
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, DATA_DIR,
    DB_FILENAME, DEFAULT_LIMIT, RATE_SOURCE, ALPHAVANTAGE_API_KEY). Collection fields such as
    SUPPORTED_CURRENCIES and STATIC_RATES are read as JSON.
    """

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    # Basic app metadata
    app_name: str = "Expense Limit Tracker"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "limits.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Limits are always expressed in the reference currency
    reference_currency: str = "USD"
    supported_currencies: Tuple[str, ...] = ("KZT", "RUB")
    default_limit: Decimal = Decimal("1000.00")

    # Rate source: 'alphavantage' (FX_DAILY over HTTP) or 'static' (fixed offline series)
    rate_source: str = "alphavantage"
    alphavantage_base_url: str = "https://www.alphavantage.co"
    alphavantage_api_key: str = "demo"
    http_timeout_seconds: float = 5.0
    http_retries: int = 2
    http_backoff_seconds: float = 0.5

    # Used only by the static source; every rate is dated static_rates_as_of
    static_rates: Dict[str, Decimal] = {
        "KZT": Decimal("500.00"),
        "RUB": Decimal("90.00"),
    }
    static_rates_as_of: date = date(2000, 1, 1)

    # Evaluate transactions of one category one at a time within this process
    serialize_by_category: bool = True

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.reference_currency = self.reference_currency.upper()
        self.supported_currencies = tuple(
            c.strip().upper() for c in self.supported_currencies if c.strip()
        )
        allowed = {"alphavantage", "static"}
        if self.rate_source not in allowed:
            raise ValueError(
                f"Unsupported rate_source '{self.rate_source}'. Allowed: {allowed}"
            )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings

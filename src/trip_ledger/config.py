"""Configuration management for Trip Ledger."""

from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# Seed table used until the user edits rates. Prices are in JPY.
DEFAULT_RATES: dict[str, Decimal] = {
    "JPY": Decimal("1"),
    "HKD": Decimal("19.2"),
    "AUD": Decimal("96.5"),
    "USD": Decimal("150.0"),
    "EUR": Decimal("162.0"),
    "TWD": Decimal("4.7"),
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Currency settings
    reference_currency: str = "JPY"  # Unit all balance arithmetic is done in
    display_currency: str = "HKD"  # Default unit for balances and plans
    default_rates: dict[str, Decimal] = DEFAULT_RATES

    # Settlement settings
    settlement_threshold: Decimal = Decimal("1")  # Balances below this are settled

    # Reject expenses that reference members missing from the roster
    strict_members: bool = False

    # Database path
    database_path: Path = Path.home() / ".trip_ledger" / "trip_ledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your .env file and "
            f"TRIP_LEDGER_* environment variables.\n"
            f"Error: {e}"
        ) from e

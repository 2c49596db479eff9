"""
Configuration Management for Split Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_GROUP_CATEGORIES = [
    "Rent",
    "Electricity",
    "Water",
    "Internet",
    "Gas",
    "Groceries",
    "Cleaning",
    "Maintenance",
    "Other",
]


class LedgerSettings(BaseSettings):
    """Group ledger rules and collection names."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    # Money rules
    split_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Maximum allowed difference between split sum and expense amount"
    )
    zero_band: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Balances within this distance of zero count as settled"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Symbol used in human-readable messages"
    )
    budget_warning_percent: Decimal = Field(
        default=Decimal("80"),
        gt=0,
        le=100,
        description="Percent of a budget spent before a warning is raised"
    )
    default_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GROUP_CATEGORIES),
        description="Expense categories given to new groups"
    )

    # Read-after-write lag on freshly created groups
    member_lookup_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Extra attempts when a member query comes back empty"
    )
    member_lookup_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Seconds to wait between member query attempts"
    )

    # Collection names within the document store
    groups_collection: str = Field(default="groups")
    members_collection: str = Field(default="groupMembers")
    expenses_collection: str = Field(default="groupExpenses")
    settlements_collection: str = Field(default="groupSettlements")
    audit_collection: str = Field(default="groupAuditEvents")


class StoreSettings(BaseSettings):
    """Which document store backend to use."""

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Document store backend"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    worksheet_rows: int = Field(
        default=1000,
        ge=10,
        description="Initial row count for newly created collection worksheets"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class EncryptionSettings(BaseSettings):
    """Field encryption for member contact details."""

    model_config = SettingsConfigDict(
        env_prefix="ENCRYPTION_",
        extra="ignore"
    )

    key: Optional[str] = Field(
        default=None,
        description="Fernet key (urlsafe base64). Contact fields are stored in clear when unset."
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def encryption(self) -> EncryptionSettings:
        return EncryptionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for sections that failed to load.
    """
    results = {}
    settings = get_settings()

    sections = {
        "ledger": lambda: settings.ledger,
        "store": lambda: settings.store,
        "encryption": lambda: settings.encryption,
        "app": lambda: settings.app,
    }
    # Sheets credentials are only required when that backend is selected
    try:
        needs_sheets = settings.store.backend == "google_sheets"
    except Exception:
        needs_sheets = False  # reported under "store" below
    if needs_sheets:
        sections["google_sheets"] = lambda: settings.google_sheets

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

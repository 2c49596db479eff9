"""Configuration package."""

from splitledger.config.settings import (
    DEFAULT_GROUP_CATEGORIES,
    AppSettings,
    EncryptionSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_GROUP_CATEGORIES",
    "AppSettings",
    "EncryptionSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]

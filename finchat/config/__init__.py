"""Configuration package."""

from finchat.config.settings import (
    AppSettings,
    ChatSettings,
    RemoteGenerationSettings,
    Settings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ChatSettings",
    "RemoteGenerationSettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
    "validate_all_settings",
]

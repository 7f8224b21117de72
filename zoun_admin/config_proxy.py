"""
Configuration management for zoun-admin.

This module provides a settings proxy that resolves keys from the
``ZOUN_ADMIN`` Django setting first and the library defaults second.
"""

from typing import Any, Optional

from django.conf import settings
from django.core.signals import setting_changed

from .defaults import LIBRARY_DEFAULTS

SETTINGS_NAME = "ZOUN_ADMIN"


class SettingsProxy:
    """
    Proxy for accessing zoun-admin settings with hierarchical resolution.

    Settings are resolved in the following order:
    1. Global Django settings (ZOUN_ADMIN)
    2. Library defaults (LIBRARY_DEFAULTS)
    """

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value with hierarchical resolution and caching.

        Args:
            key: Setting key to retrieve, dot notation for nested keys
            default: Default value if setting is not found

        Returns:
            The setting value from the highest priority source
        """
        if key in self._cache:
            return self._cache[key]

        django_value = self._get_django_setting(key)
        if django_value is not None:
            self._cache[key] = django_value
            return django_value

        library_value = self._get_nested_value(LIBRARY_DEFAULTS, key)
        if library_value is not None:
            self._cache[key] = library_value
            return library_value

        self._cache[key] = default
        return default

    def section(self, name: str) -> dict[str, Any]:
        """Return a whole settings section, library defaults merged under overrides."""
        from .defaults import merge_settings

        defaults = LIBRARY_DEFAULTS.get(name, {})
        overrides = self._get_django_setting(name) or {}
        return merge_settings(defaults, overrides)

    def _get_django_setting(self, key: str) -> Any:
        return self._get_nested_value(getattr(settings, SETTINGS_NAME, {}), key)

    def _get_nested_value(self, data: dict[str, Any], key: str) -> Any:
        """
        Get nested value from dictionary using dot notation.

        Args:
            data: Dictionary to search in
            key: Key to retrieve (supports dot notation for nested access)

        Returns:
            The value or None if not found
        """
        if not isinstance(data, dict):
            return None

        current = data
        for k in key.split("."):
            if not isinstance(current, dict) or k not in current:
                return None
            current = current[k]

        return current

    def clear_cache(self) -> None:
        """
        Clear the settings cache.
        """
        self._cache.clear()

    def validate(self) -> dict[str, Any]:
        """
        Validate current settings configuration.

        Returns:
            Dictionary with validation results
        """
        from .defaults import validate_settings

        merged = {name: self.section(name) for name in LIBRARY_DEFAULTS}
        errors = validate_settings(merged)
        return {"valid": not errors, "errors": errors, "warnings": []}


# Global settings proxy instance
settings_proxy = SettingsProxy()


def get_settings_proxy() -> SettingsProxy:
    """Return the shared settings proxy."""
    return settings_proxy


def get_setting(key: str, default: Optional[Any] = None) -> Any:
    """Shortcut for ``settings_proxy.get``."""
    return settings_proxy.get(key, default)


def _reset_on_setting_changed(setting: str = "", **kwargs) -> None:
    if setting == SETTINGS_NAME:
        settings_proxy.clear_cache()


setting_changed.connect(_reset_on_setting_changed)

"""
Internal utility functions for settings loading.
"""

from typing import Any, Optional

from ...config_proxy import get_settings_proxy
from ...defaults import merge_settings


def _load_section(name: str, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Library defaults, then ``ZOUN_ADMIN[name]``, then explicit overrides."""
    return merge_settings(get_settings_proxy().section(name), overrides or {})


def _dataclass_kwargs(cls, data: dict[str, Any]) -> dict[str, Any]:
    valid_fields = set(cls.__dataclass_fields__.keys())
    return {k: v for k, v in data.items() if k in valid_fields}

"""
RegistrySettings implementation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import _dataclass_kwargs, _load_section


@dataclass
class RegistrySettings:
    """Settings controlling which models become entities."""

    apps: List[str] = field(default_factory=list)
    models: List[str] = field(default_factory=list)
    exclude_models: List[str] = field(default_factory=list)
    excluded_apps: List[str] = field(default_factory=list)
    build_on_startup: bool = True

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None) -> "RegistrySettings":
        merged = _load_section("registry_settings", overrides)
        return cls(**_dataclass_kwargs(cls, merged))

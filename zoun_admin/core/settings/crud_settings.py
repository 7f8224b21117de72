"""
CrudSettings implementation.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .base import _dataclass_kwargs, _load_section


@dataclass
class CrudSettings:
    """Settings for create, update and delete operations."""

    access_hook: Optional[Union[str, Callable[..., bool]]] = None
    sanitize_html: bool = False
    allowed_html_tags: List[str] = field(default_factory=list)
    allowed_html_attributes: Dict[str, List[str]] = field(default_factory=dict)
    max_binary_size: int = 10 * 1024 * 1024
    store: str = "django"

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None) -> "CrudSettings":
        merged = _load_section("crud_settings", overrides)
        return cls(**_dataclass_kwargs(cls, merged))

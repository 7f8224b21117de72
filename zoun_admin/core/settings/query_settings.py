"""
QuerySettings implementation.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import _dataclass_kwargs, _load_section


@dataclass
class QuerySettings:
    """Settings for list queries and to-many relationship pages."""

    default_page_size: int = 20
    max_page_size: int = 100
    statement_timeout: Optional[float] = None

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None) -> "QuerySettings":
        merged = _load_section("query_settings", overrides)
        return cls(**_dataclass_kwargs(cls, merged))

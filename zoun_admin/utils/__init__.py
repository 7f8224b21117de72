"""
Utility helpers shared by the engine components.
"""

from .coercion import CoercionError, coerce_bool, coerce_int, coerce_list, coerce_value
from .sanitization import sanitize_html

__all__ = [
    "CoercionError",
    "coerce_bool",
    "coerce_int",
    "coerce_list",
    "coerce_value",
    "sanitize_html",
]

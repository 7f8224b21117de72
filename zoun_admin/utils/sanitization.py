"""
Sanitization utilities for zoun-admin.

String input can be cleaned with bleach before it is persisted when
``crud_settings.sanitize_html`` is enabled.
"""

from typing import Dict, Iterable, List, Optional

import bleach


def sanitize_html(
    value: str,
    *,
    tags: Optional[Iterable[str]] = None,
    attributes: Optional[Dict[str, List[str]]] = None,
) -> str:
    """
    Strip every HTML tag and attribute that is not allow-listed.

    Examples:
        >>> sanitize_html("<b>bold</b><script>x()</script>", tags=["b"])
        '<b>bold</b>x()'
    """
    if not value:
        return value
    return bleach.clean(
        value,
        tags=set(tags or ()),
        attributes=dict(attributes or {}),
        strip=True,
    )

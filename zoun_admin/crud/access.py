"""
Access pre-check run before every engine operation.
"""

import logging
from typing import Any, Callable, Optional, Union

from django.utils.module_loading import import_string

from ..core.exceptions import ForbiddenError

logger = logging.getLogger(__name__)

AccessHook = Callable[[str, str, Any], bool]


def load_access_hook(hook: Optional[Union[str, AccessHook]]) -> Optional[AccessHook]:
    """Resolve a dotted path or return the callable unchanged."""
    if hook is None or hook == "":
        return None
    if isinstance(hook, str):
        hook = import_string(hook)
    if not callable(hook):
        raise TypeError(f"Access hook {hook!r} is not callable")
    return hook


class AccessGate:
    """Calls the configured hook and raises ForbiddenError on denial."""

    def __init__(self, hook: Optional[Union[str, AccessHook]] = None):
        self.hook = load_access_hook(hook)

    def allows(self, entity: str, operation: str, context: Any = None) -> bool:
        if self.hook is None:
            return True
        return bool(self.hook(entity, operation, context))

    def check(self, entity: str, operation: str, context: Any = None) -> None:
        if not self.allows(entity, operation, context):
            logger.warning("Denied %s on %s", operation, entity)
            raise ForbiddenError(entity, operation)

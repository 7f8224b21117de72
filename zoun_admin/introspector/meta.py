"""
Declarative admin configuration for Django models.

Models can declare an inner ``AdminMeta`` class to adjust how the engine
describes them:

    class Book(models.Model):
        ...

        class AdminMeta:
            label = "Book"
            hidden = ["internal_notes"]
            read_only = ["slug"]
            order = ["title", "isbn"]
            version_field = "revision"
            cascade = {"author": "none"}
            fetch = {"author": "lazy"}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from django.db import models

from .types import CascadePolicy, FetchPolicy

logger = logging.getLogger(__name__)


class AdminMeta:
    """Optional base class for inner ``AdminMeta`` declarations."""

    label: Optional[str] = None
    plural_label: Optional[str] = None
    labels: Dict[str, str] = {}
    help_texts: Dict[str, str] = {}
    hidden: Tuple[str, ...] = ()
    read_only: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    order: Tuple[str, ...] = ()
    version_field: Optional[str] = None
    cascade: Dict[str, str] = {}
    fetch: Dict[str, str] = {}


@dataclass(frozen=True)
class AdminMetaConfig:
    """Normalized view of a model's ``AdminMeta``."""

    label: Optional[str] = None
    plural_label: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    help_texts: Dict[str, str] = field(default_factory=dict)
    hidden: frozenset = frozenset()
    read_only: frozenset = frozenset()
    exclude: frozenset = frozenset()
    order: Tuple[str, ...] = ()
    version_field: Optional[str] = None
    cascade: Dict[str, CascadePolicy] = field(default_factory=dict)
    fetch: Dict[str, FetchPolicy] = field(default_factory=dict)

    def order_of(self, name: str) -> Optional[int]:
        if name in self.order:
            return self.order.index(name)
        return None


def _coerce_policies(raw: Any, enum_cls, model_name: str, attr: str) -> Dict[str, Any]:
    policies = {}
    for name, value in dict(raw or {}).items():
        try:
            policies[name] = enum_cls(getattr(value, "value", value))
        except ValueError:
            logger.warning(
                "Ignoring invalid AdminMeta.%s value %r for %s.%s",
                attr,
                value,
                model_name,
                name,
            )
    return policies


def get_model_admin_meta(model: type[models.Model]) -> AdminMetaConfig:
    """Read the inner ``AdminMeta`` class of a model, if any."""
    meta = getattr(model, "AdminMeta", None)
    if meta is None:
        return AdminMetaConfig()
    model_name = model.__name__
    return AdminMetaConfig(
        label=getattr(meta, "label", None),
        plural_label=getattr(meta, "plural_label", None),
        labels=dict(getattr(meta, "labels", None) or {}),
        help_texts=dict(getattr(meta, "help_texts", None) or {}),
        hidden=frozenset(getattr(meta, "hidden", None) or ()),
        read_only=frozenset(getattr(meta, "read_only", None) or ()),
        exclude=frozenset(getattr(meta, "exclude", None) or ()),
        order=tuple(getattr(meta, "order", None) or ()),
        version_field=getattr(meta, "version_field", None),
        cascade=_coerce_policies(
            getattr(meta, "cascade", None), CascadePolicy, model_name, "cascade"
        ),
        fetch=_coerce_policies(
            getattr(meta, "fetch", None), FetchPolicy, model_name, "fetch"
        ),
    )

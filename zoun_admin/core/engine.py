"""
AdminEngine: the object that ties the engine components together.

One engine is built by ``AppConfig.ready()`` and reached through the app
config (``get_engine()``); tests build their own with ``AdminEngine.build``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .registry import MetadataRegistry, build_registry
from .settings import CrudSettings, QuerySettings, RegistrySettings

logger = logging.getLogger(__name__)


@dataclass
class AdminEngine:
    registry: MetadataRegistry
    store: Any
    query_settings: QuerySettings = field(default_factory=QuerySettings)
    crud_settings: CrudSettings = field(default_factory=CrudSettings)

    def __post_init__(self):
        from ..crud import CrudExecutor
        from ..query import QueryBuilder

        self.builder = QueryBuilder(self.registry, self.query_settings)
        self.executor = CrudExecutor(
            self.registry,
            self.store,
            builder=self.builder,
            settings=self.crud_settings,
            query_settings=self.query_settings,
        )
        self.resolver = self.executor.resolver

    @classmethod
    def build(
        cls,
        candidates: Optional[Iterable[Any]] = None,
        store: Any = None,
        registry_settings: Optional[RegistrySettings] = None,
        query_settings: Optional[QuerySettings] = None,
        crud_settings: Optional[CrudSettings] = None,
    ) -> "AdminEngine":
        """
        Build the registry and wire every component.

        ``store`` defaults to the backend named by ``crud_settings.store``.
        """
        registry_settings = registry_settings or RegistrySettings.from_settings()
        query_settings = query_settings or QuerySettings.from_settings()
        crud_settings = crud_settings or CrudSettings.from_settings()
        registry = build_registry(candidates, settings=registry_settings)
        if store is None:
            store = create_store(crud_settings.store, registry)
        return cls(
            registry=registry,
            store=store,
            query_settings=query_settings,
            crud_settings=crud_settings,
        )


def create_store(backend: str, registry: MetadataRegistry):
    from ..store import DjangoStore, MemoryStore

    if backend == "memory":
        return MemoryStore(registry)
    if backend == "django":
        return DjangoStore(registry)
    raise ValueError(f"Unknown store backend '{backend}'")


def get_engine() -> AdminEngine:
    """Return the engine built at startup by the zoun_admin app config."""
    from django.apps import apps

    app_config = apps.get_app_config("zoun_admin")
    engine = getattr(app_config, "engine", None)
    if engine is None:
        raise RuntimeError(
            "The admin engine is not built; enable registry_settings.build_on_startup "
            "or call AppConfig.build_engine()"
        )
    return engine

"""
Model discovery and registry construction.
"""

import logging
from typing import Any, Iterable, List, Optional

from django.apps import apps
from django.db import models

from ...introspector import SchemaIntrospector
from ..exceptions import SchemaError
from ..settings import RegistrySettings
from .registry import MetadataRegistry

logger = logging.getLogger(__name__)


def _is_valid_model(model: type[models.Model]) -> bool:
    opts = model._meta
    if opts.abstract or opts.proxy or opts.swapped:
        return False
    if opts.auto_created:
        return False
    return True


def _model_key(model: type[models.Model]) -> str:
    return f"{model._meta.app_label}.{model.__name__}".lower()


def _resolve_model(spec: str) -> type[models.Model]:
    try:
        return apps.get_model(spec)
    except (LookupError, ValueError) as exc:
        raise SchemaError(f"Unknown model '{spec}' in registry_settings: {exc}") from exc


def discover_models(settings: Optional[RegistrySettings] = None) -> List[type[models.Model]]:
    """
    Select the models that become entities.

    Models come from ``settings.apps`` (every installed app not in
    ``excluded_apps`` when empty) plus ``settings.models``, minus
    ``exclude_models``. Order follows app then model declaration order.
    """
    settings = settings or RegistrySettings.from_settings()
    discovered: List[type[models.Model]] = []

    if settings.apps:
        app_configs = []
        for app_label in settings.apps:
            try:
                app_configs.append(apps.get_app_config(app_label))
            except LookupError as exc:
                raise SchemaError(f"App '{app_label}' is not installed") from exc
    else:
        app_configs = [
            app_config
            for app_config in apps.get_app_configs()
            if app_config.label not in settings.excluded_apps
        ]

    for app_config in app_configs:
        for model in app_config.get_models():
            if _is_valid_model(model):
                discovered.append(model)
            else:
                logger.debug("Skipping model %s", _model_key(model))

    for spec in settings.models:
        model = _resolve_model(spec)
        if model not in discovered:
            discovered.append(model)

    excluded = {spec.lower() for spec in settings.exclude_models}
    return [model for model in discovered if _model_key(model) not in excluded]


def build_registry(
    candidates: Optional[Iterable[Any]] = None,
    introspector: Optional[SchemaIntrospector] = None,
    settings: Optional[RegistrySettings] = None,
) -> MetadataRegistry:
    """
    Introspect ``candidates``, register the results and freeze the registry.

    ``candidates`` defaults to the models selected by ``discover_models``.
    Any inconsistency raises SchemaError and no registry is returned.
    """
    if candidates is None:
        candidates = discover_models(settings)
    introspector = introspector or SchemaIntrospector()
    registry = MetadataRegistry(introspector.introspect(candidates))
    return registry.freeze()

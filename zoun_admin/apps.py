"""
Django app configuration for zoun-admin.

The metadata registry is built and frozen here, once, before the first
request. A SchemaError aborts startup.
"""

import logging

from django.apps import AppConfig as BaseAppConfig

logger = logging.getLogger(__name__)


class AppConfig(BaseAppConfig):
    """Django app configuration for zoun-admin."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "zoun_admin"
    verbose_name = "Zoun Admin"
    label = "zoun_admin"

    engine = None

    def ready(self):
        """Initialize the application after Django has loaded."""
        self._validate_configuration()

        from .core.settings import RegistrySettings

        if RegistrySettings.from_settings().build_on_startup:
            self.build_engine()

    def _validate_configuration(self):
        from django.core.exceptions import ImproperlyConfigured

        from .config_proxy import get_settings_proxy

        report = get_settings_proxy().validate()
        if not report["valid"]:
            raise ImproperlyConfigured(
                "Invalid ZOUN_ADMIN settings: " + "; ".join(report["errors"])
            )

    def build_engine(self):
        """(Re)build the engine from current settings."""
        from .core.engine import AdminEngine

        self.engine = AdminEngine.build()
        logger.info(
            "Zoun admin engine ready with %d entities", len(self.engine.registry)
        )
        return self.engine

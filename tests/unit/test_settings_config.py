import pytest
from django.core.exceptions import ImproperlyConfigured

from zoun_admin.apps import AppConfig
from zoun_admin.config_proxy import get_setting, settings_proxy
from zoun_admin.core.settings import CrudSettings, QuerySettings, RegistrySettings
from zoun_admin.defaults import merge_settings, validate_settings
from zoun_admin.testing import override_zoun_settings

pytestmark = [pytest.mark.unit]


def test_library_defaults_apply():
    settings = QuerySettings.from_settings()

    assert settings.default_page_size == 20
    assert settings.max_page_size == 100
    assert get_setting("crud_settings.store") == "django"


def test_project_settings_override_defaults():
    with override_zoun_settings(query_settings={"max_page_size": 50}):
        assert QuerySettings.from_settings().max_page_size == 50
        assert QuerySettings.from_settings().default_page_size == 20
        assert get_setting("query_settings.max_page_size") == 50
        assert RegistrySettings.from_settings().apps == ["test_app"]

    assert get_setting("query_settings.max_page_size") == 100


def test_explicit_overrides_win():
    settings = CrudSettings.from_settings({"sanitize_html": True, "unknown": 1})

    assert settings.sanitize_html is True
    assert not hasattr(settings, "unknown")


def test_merge_settings_is_deep():
    merged = merge_settings({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})

    assert merged == {"a": {"b": 1, "c": 3}}


def test_validate_settings_reports_errors():
    errors = validate_settings(
        {
            "query_settings": {"default_page_size": 200, "max_page_size": 100},
            "crud_settings": {"store": "redis"},
        }
    )

    assert len(errors) == 2


def test_settings_proxy_validate():
    with override_zoun_settings(query_settings={"max_page_size": 0}):
        report = settings_proxy.validate()

    assert report["valid"] is False


def test_app_ready_rejects_invalid_settings():
    from django.apps import apps

    config = apps.get_app_config("zoun_admin")
    assert isinstance(config, AppConfig)
    with override_zoun_settings(crud_settings={"store": "redis"}):
        with pytest.raises(ImproperlyConfigured):
            config.ready()

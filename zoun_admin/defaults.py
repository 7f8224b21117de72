"""
Library default settings for zoun-admin.

These values are used when a key is missing from the ``ZOUN_ADMIN`` Django
setting. Nested sections are merged key by key, so a project only has to
declare what it changes.
"""

from typing import Any

LIBRARY_DEFAULTS: dict[str, Any] = {
    # Entity discovery and registry construction
    "registry_settings": {
        # App labels whose models become entities; empty means every installed
        # app not listed in ``excluded_apps``
        "apps": [],
        # Extra models as "app_label.ModelName"
        "models": [],
        # Models to leave out, as "app_label.ModelName"
        "exclude_models": [],
        "excluded_apps": [
            "admin",
            "auth",
            "contenttypes",
            "sessions",
            "messages",
            "staticfiles",
            "graphene_django",
            "zoun_admin",
        ],
        # Build and freeze the registry in AppConfig.ready()
        "build_on_startup": True,
    },
    # List queries and relationship pagination
    "query_settings": {
        "default_page_size": 20,
        "max_page_size": 100,
        # Seconds; None leaves the database default in place
        "statement_timeout": None,
    },
    # Create / update / delete behaviour
    "crud_settings": {
        # Callable or dotted path: hook(entity, operation, context) -> bool
        "access_hook": None,
        "sanitize_html": False,
        "allowed_html_tags": [
            "p",
            "br",
            "strong",
            "em",
            "u",
            "ol",
            "ul",
            "li",
            "a",
        ],
        "allowed_html_attributes": {"a": ["href", "title"]},
        "max_binary_size": 10 * 1024 * 1024,
        # Store backend: "django" or "memory"
        "store": "django",
    },
    # GraphQL endpoint
    "graphql_settings": {
        "enable_graphiql": False,
    },
}


# --------------------------------------------------------------------------- #
# Helper functions
# --------------------------------------------------------------------------- #
def merge_settings(*settings_dicts: dict[str, Any]) -> dict[str, Any]:
    """
    Merge multiple settings dictionaries with deep merging for nested dicts.
    Later dictionaries override earlier ones.
    """
    result: dict[str, Any] = {}
    for settings_dict in settings_dicts:
        for key, value in (settings_dict or {}).items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = merge_settings(result[key], value)
            else:
                result[key] = value
    return result


def validate_settings(settings: dict[str, Any]) -> list[str]:
    """
    Validate a settings dictionary and return a list of validation errors.
    """
    errors: list[str] = []

    query_settings = settings.get("query_settings", {})
    default_page_size = query_settings.get("default_page_size")
    max_page_size = query_settings.get("max_page_size")

    if default_page_size is not None and default_page_size <= 0:
        errors.append("query_settings.default_page_size must be greater than 0")
    if max_page_size is not None and max_page_size <= 0:
        errors.append("query_settings.max_page_size must be greater than 0")
    if default_page_size and max_page_size and default_page_size > max_page_size:
        errors.append(
            "query_settings.default_page_size cannot be greater than max_page_size"
        )

    crud_settings = settings.get("crud_settings", {})
    max_binary_size = crud_settings.get("max_binary_size")
    if max_binary_size is not None and max_binary_size <= 0:
        errors.append("crud_settings.max_binary_size must be greater than 0")
    store = crud_settings.get("store")
    if store is not None and store not in ("django", "memory"):
        errors.append("crud_settings.store must be 'django' or 'memory'")

    return errors

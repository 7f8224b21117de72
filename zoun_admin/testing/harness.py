"""
Testing helpers for zoun-admin.

This module provides small helpers for building engines, GraphQL test
clients, and request contexts in unit/integration tests.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterable, Mapping, Optional

from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory
from django.test.utils import override_settings
from graphene.test import Client

from ..core.engine import AdminEngine
from ..core.settings import CrudSettings, QuerySettings, RegistrySettings


def _normalize_headers(headers: Optional[Mapping[str, str]]) -> dict[str, str]:
    if not headers:
        return {}
    normalized: dict[str, str] = {}
    for key, value in headers.items():
        if not key:
            continue
        name = key.replace("-", "_").upper()
        if name not in {"CONTENT_TYPE", "CONTENT_LENGTH"} and not name.startswith("HTTP_"):
            name = f"HTTP_{name}"
        normalized[name] = value
    return normalized


def build_request(
    path: str = "/graphql/",
    method: str = "POST",
    *,
    user: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    data: Optional[dict[str, Any]] = None,
):
    rf = RequestFactory()
    method_upper = method.upper()
    request_headers = _normalize_headers(headers)

    if method_upper in {"GET", "HEAD", "OPTIONS", "TRACE"}:
        request = rf.get(path, data=data or {}, **request_headers)
    else:
        request = rf.generic(
            method_upper,
            path,
            data=json.dumps(data or {}),
            content_type="application/json",
            **request_headers,
        )

    request.user = user or AnonymousUser()
    return request


def build_memory_engine(
    candidates: Iterable[Any],
    *,
    query: Optional[dict[str, Any]] = None,
    crud: Optional[dict[str, Any]] = None,
) -> AdminEngine:
    """
    Build an engine over ``candidates`` backed by a MemoryStore.

    ``query`` and ``crud`` override the matching settings sections.
    """
    crud_settings = CrudSettings.from_settings({"store": "memory", **(crud or {})})
    return AdminEngine.build(
        candidates,
        registry_settings=RegistrySettings.from_settings(),
        query_settings=QuerySettings.from_settings(query),
        crud_settings=crud_settings,
    )


class AdminGraphQLTestClient:
    def __init__(
        self,
        schema: Any = None,
        *,
        user: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        if schema is None:
            from ..graphql.schema import schema as default_schema

            schema = default_schema
        self.schema = schema
        self.user = user
        self.headers = dict(headers or {})
        self._client = Client(schema)

    def execute(
        self,
        query: str,
        *,
        variables: Optional[dict[str, Any]] = None,
        user: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        operation_name: Optional[str] = None,
    ):
        merged_headers = dict(self.headers)
        if headers:
            merged_headers.update(headers)

        request = build_request(
            user=user or self.user,
            headers=merged_headers,
            data={"query": query, "variables": variables or {}},
        )
        return self._client.execute(
            query,
            variable_values=variables,
            context_value=request,
            operation_name=operation_name,
        )


@contextmanager
def override_zoun_settings(**sections: Any):
    """
    Override ZOUN_ADMIN sections for the duration of the block.

    Sections are merged over the current ZOUN_ADMIN value, so
    ``override_zoun_settings(crud_settings={"sanitize_html": True})`` keeps
    the configured registry apps.
    """
    from django.conf import settings

    from ..config_proxy import SETTINGS_NAME, settings_proxy
    from ..defaults import merge_settings

    current = getattr(settings, SETTINGS_NAME, {}) or {}
    with override_settings(**{SETTINGS_NAME: merge_settings(current, sections)}):
        settings_proxy.clear_cache()
        try:
            yield
        finally:
            settings_proxy.clear_cache()

"""
Settings package for zoun-admin.
"""

from .crud_settings import CrudSettings
from .query_settings import QuerySettings
from .registry_settings import RegistrySettings

__all__ = [
    "RegistrySettings",
    "QuerySettings",
    "CrudSettings",
]

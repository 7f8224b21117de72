"""
Persistence stores consumed by the CRUD executor.
"""

from .base import PersistenceStore
from .django_store import DjangoStore
from .memory import MemoryStore

__all__ = ["PersistenceStore", "DjangoStore", "MemoryStore"]

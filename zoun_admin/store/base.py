"""
Persistence collaborator interface.

The engine reads and writes records only through these five operations.
Rows are plain dicts keyed by the entity's column names: plain fields plus
owning to-one relationships (holding the target key). ``insert`` and
``update`` also accept owning many-to-many relationships as lists of keys.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from ..query.plan import Predicate, QueryPlan


@runtime_checkable
class PersistenceStore(Protocol):
    def execute_query(
        self, plan: QueryPlan, *, timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        ...

    def insert(
        self, entity: str, values: Mapping[str, Any], *, timeout: Optional[float] = None
    ) -> Any:
        """Persist a new record and return its primary key."""
        ...

    def update(
        self,
        entity: str,
        pk: Any,
        values: Mapping[str, Any],
        *,
        where: Iterable[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        """
        Return the number of records changed (0 or 1).

        When ``where`` is given the record is only changed if it still matches
        every predicate at the moment of the write.
        """
        ...

    def delete(self, entity: str, pk: Any, *, timeout: Optional[float] = None) -> int:
        ...

    def count(
        self,
        entity: str,
        predicates: Iterable[Predicate] = (),
        *,
        timeout: Optional[float] = None,
    ) -> int:
        ...

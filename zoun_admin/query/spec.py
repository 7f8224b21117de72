"""
Caller-facing description of a list request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import InvalidQueryError


class Operator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    ICONTAINS = "icontains"
    STARTSWITH = "startswith"
    ISNULL = "isnull"

    @property
    def takes_list(self) -> bool:
        return self in (Operator.IN, Operator.NOT_IN)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FilterPredicate:
    field: str
    operator: Operator = Operator.EQ
    value: Any = None


@dataclass(frozen=True)
class SortOrder:
    field: str
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


def _parse_operator(raw: Any) -> Operator:
    try:
        return Operator(getattr(raw, "value", raw))
    except ValueError:
        raise InvalidQueryError(f"Unknown filter operator '{raw}'") from None


def _parse_sort(raw: Any) -> SortOrder:
    if isinstance(raw, SortOrder):
        return raw
    if isinstance(raw, str):
        # "-title" sorts descending, as Django's order_by does.
        if raw.startswith("-"):
            return SortOrder(raw[1:], SortDirection.DESC)
        return SortOrder(raw)
    if isinstance(raw, Mapping) and "field" in raw:
        direction = str(raw.get("direction") or "asc").lower()
        try:
            return SortOrder(str(raw["field"]), SortDirection(direction))
        except ValueError:
            raise InvalidQueryError(f"Unknown sort direction '{direction}'") from None
    raise InvalidQueryError(f"Invalid sort order {raw!r}")


def _parse_filter(raw: Any) -> FilterPredicate:
    if isinstance(raw, FilterPredicate):
        return raw
    if isinstance(raw, Mapping) and "field" in raw:
        return FilterPredicate(
            field=str(raw["field"]),
            operator=_parse_operator(raw.get("operator", raw.get("op", "eq"))),
            value=raw.get("value"),
        )
    if isinstance(raw, (tuple, list)) and len(raw) in (2, 3):
        operator = raw[1] if len(raw) == 3 else Operator.EQ
        return FilterPredicate(str(raw[0]), _parse_operator(operator), raw[-1])
    raise InvalidQueryError(f"Invalid filter {raw!r}")


@dataclass(frozen=True)
class QuerySpec:
    """Filters, sort orders and the requested window of one list request."""

    filters: Tuple[FilterPredicate, ...] = ()
    sort: Tuple[SortOrder, ...] = ()
    offset: int = 0
    limit: Optional[int] = None

    @classmethod
    def build(
        cls,
        filters: Optional[Sequence[Any]] = None,
        sort: Optional[Sequence[Any]] = None,
        offset: Optional[int] = 0,
        limit: Optional[int] = None,
    ) -> "QuerySpec":
        """Accept predicates as objects, dicts or ``(field, op, value)`` tuples."""
        if isinstance(sort, str):
            sort = [sort]
        return cls(
            filters=tuple(_parse_filter(item) for item in filters or ()),
            sort=tuple(_parse_sort(item) for item in sort or ()),
            offset=0 if offset is None else offset,
            limit=limit,
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "QuerySpec":
        """Parse the JSON shape used by the GraphQL boundary."""
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidQueryError("Query must be an object")
        return cls.build(
            filters=data.get("filters"),
            sort=data.get("sort"),
            offset=data.get("offset", 0),
            limit=data.get("limit"),
        )

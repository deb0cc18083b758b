"""Query/Filter engine.

Filters are conjunctive predicates over copies of the collections:
case-insensitive substring search on text fields, enum equality where
``None`` or ``"all"`` matches everything. Results keep the input order.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar, Union

from wms_core.engine.stock_ledger import classify
from wms_core.errors import InvalidFilter
from wms_core.models.warehouse import (
    Article,
    ArticleType,
    LocationStatus,
    LocationType,
    OrderStatus,
    Request,
    RequestStatus,
    RequestType,
    StockLevel,
    StorageLocation,
    TransportOrder,
)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

Predicate = Callable[[T], bool]
EnumFilter = Union[str, Enum, None]

MATCH_ALL = "all"


def _match_all(_item: object) -> bool:
    return True


def coerce_enum(enum_cls: type[E], wanted: EnumFilter) -> Optional[E]:
    """Turns a filter value into an enum member; None/"all" means no filter."""
    if wanted is None or wanted == MATCH_ALL:
        return None
    try:
        return enum_cls(wanted)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidFilter(
            f"{wanted!r} is not a valid {enum_cls.__name__} (expected one of: {allowed})"
        ) from None


def text_contains(term: Optional[str], *fields: Callable[[T], str]) -> Predicate:
    """Matches when any of the fields contains term, ignoring case."""
    if not term:
        return _match_all
    needle = term.lower()
    return lambda item: any(needle in (field(item) or "").lower() for field in fields)


def equals(field: Callable[[T], Enum], wanted: EnumFilter, enum_cls: type[Enum]) -> Predicate:
    member = coerce_enum(enum_cls, wanted)
    if member is None:
        return _match_all
    return lambda item: field(item) == member


def all_of(*predicates: Predicate) -> Predicate:
    return lambda item: all(p(item) for p in predicates)


def apply(items: Iterable[T], *predicates: Predicate) -> list[T]:
    match = all_of(*predicates)
    return [item for item in items if match(item)]


# --- Collection filters ---

def filter_locations(
    locations: Iterable[StorageLocation],
    search: Optional[str] = None,
    status: EnumFilter = None,
    type: EnumFilter = None,
) -> list[StorageLocation]:
    return apply(
        locations,
        text_contains(search, lambda l: l.location_id, lambda l: l.warehouse_id),
        equals(lambda l: l.status, status, LocationStatus),
        equals(lambda l: l.type, type, LocationType),
    )


def filter_articles(
    articles: Iterable[Article],
    search: Optional[str] = None,
    type: EnumFilter = None,
    stock_level: EnumFilter = None,
) -> list[Article]:
    return apply(
        articles,
        text_contains(search, lambda a: a.article_id, lambda a: a.name),
        equals(lambda a: a.type, type, ArticleType),
        equals(classify, stock_level, StockLevel),
    )


def filter_orders(
    orders: Iterable[TransportOrder],
    search: Optional[str] = None,
    status: EnumFilter = None,
    request_id: Optional[str] = None,
) -> list[TransportOrder]:
    predicates = [
        text_contains(search, lambda o: o.order_id, lambda o: o.storage_unit_id),
        equals(lambda o: o.status, status, OrderStatus),
    ]
    if request_id:
        predicates.append(lambda o: o.request_id == request_id)
    return apply(orders, *predicates)


def filter_requests(
    requests: Iterable[Request],
    search: Optional[str] = None,
    status: EnumFilter = None,
    request_type: EnumFilter = None,
) -> list[Request]:
    return apply(
        requests,
        text_contains(search, lambda r: r.request_id, lambda r: r.article_id),
        equals(lambda r: r.status, status, RequestStatus),
        equals(lambda r: r.request_type, request_type, RequestType),
    )

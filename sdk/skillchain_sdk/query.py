"""
Read path for the SkillChain Arkiv SDK.

This module provides:
- Predicate builders (eq, neq, gt, lt, gte, lte) for the query builder
- compile_predicates(): rendering to the store's query language
- QueryEngine: filtered listing, single-key fetch and live subscription

Example:
    >>> engine = QueryEngine(handles)
    >>> profiles = await engine.query(QueryOptions(
    ...     filters=[QueryFilter("type", "profile")],
    ...     limit=5,
    ... ))

Invariants:
    - Filters are issued in caller order, never rewritten or reordered
    - Only the first page is returned; there is no auto-pagination
    - Reads never mutate store state
    - Transport errors on reads propagate to the caller
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from .normalize import to_entity
from .subscription import EntityCallback, Subscription
from .types import Entity, QueryFilter, QueryOperator, QueryOptions

if TYPE_CHECKING:
    from .factory import ClientHandles

logger = logging.getLogger(__name__)

_SYMBOLS = {
    QueryOperator.EQ: "=",
    QueryOperator.NE: "!=",
    QueryOperator.NEQ: "!=",
    QueryOperator.GT: ">",
    QueryOperator.LT: "<",
    QueryOperator.GTE: ">=",
    QueryOperator.LTE: "<=",
}

_ORDERING = {QueryOperator.GT, QueryOperator.LT, QueryOperator.GTE, QueryOperator.LTE}

_INTEGER = re.compile(r"^-?\d+$")

ALL_ENTITIES = "$all"


@dataclass(frozen=True)
class Predicate:
    """One attribute comparison handed to QueryBuilder.where()."""

    key: str
    operator: QueryOperator
    value: str

    def render(self) -> str:
        """Render as a query-language term, e.g. ``type = "profile"``."""
        symbol = _SYMBOLS[self.operator]
        if self.operator in _ORDERING and _INTEGER.match(self.value):
            return f"{self.key} {symbol} {self.value}"
        escaped = self.value.replace("\\", "\\\\").replace('"', '\\"')
        return f'{self.key} {symbol} "{escaped}"'


def eq(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.EQ, str(value))


def neq(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.NEQ, str(value))


ne = neq


def gt(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.GT, str(value))


def lt(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.LT, str(value))


def gte(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.GTE, str(value))


def lte(key: str, value: Any) -> Predicate:
    return Predicate(key, QueryOperator.LTE, str(value))


def predicate_for(query_filter: QueryFilter) -> Predicate:
    """Map a QueryFilter to a Predicate. ne and neq are the same comparison."""
    return Predicate(query_filter.key, query_filter.operator, query_filter.value)


def compile_predicates(predicates: Iterable[Predicate]) -> str:
    """Join predicates with ``&&`` in the given order."""
    terms = [p.render() for p in predicates]
    return " && ".join(terms) if terms else ALL_ENTITIES


class QueryEngine:
    """Executes reads against the read handle.

    Every call is a network round trip; nothing is cached.
    """

    def __init__(self, handles: ClientHandles) -> None:
        self._handles = handles

    async def query(self, options: QueryOptions | None = None) -> list[Entity]:
        """Fetch the first page of entities matching the filters.

        Args:
            options: Filters, inclusion flags and page limit

        Returns:
            Decoded entities from the first page only
        """
        options = options or QueryOptions()

        builder = self._handles.public.build_query()
        for query_filter in options.filters:
            builder = builder.where(predicate_for(query_filter))
        builder = builder.with_attributes(options.with_attributes)
        builder = builder.with_payload(options.with_payload)
        if options.limit is not None:
            builder = builder.limit(options.limit)

        page = await builder.fetch()
        entities = [to_entity(raw) for raw in page.entities]
        if options.limit is not None and len(entities) > options.limit:
            entities = entities[: options.limit]

        logger.debug(
            f"Query returned {len(entities)} entities",
            extra={"filter_count": len(options.filters), "limit": options.limit},
        )
        return entities

    async def get_entity(self, entity_key: str) -> Entity | None:
        """Fetch one entity by key.

        Returns:
            The decoded entity, or None if the key is unknown
        """
        raw = await self._handles.public.get_entity(entity_key)
        if raw is None:
            logger.debug("Entity not found", extra={"entity_key": entity_key})
            return None
        return to_entity(raw)

    async def subscribe(self, callback: EntityCallback) -> Subscription:
        """Open a live channel of newly created entities.

        Returns:
            A started Subscription; call it to unsubscribe
        """
        subscription = Subscription(callback)
        await subscription.start(self._handles.public)
        return subscription

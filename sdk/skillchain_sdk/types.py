"""
Domain types for the SkillChain Arkiv SDK.

This module defines the values callers exchange with ArkivClient:
- Attribute, Entity: stored records as seen by the client
- QueryFilter, QueryOptions: read-side request shapes
- CreateEntityOptions, UpdateEntityOptions: write-side request shapes
- WriteResult: closed success/failure outcome of every write

Invariants:
    - An entity key never changes once assigned by the network
    - A failed WriteResult always carries a non-empty error
    - A successful WriteResult never carries an error
    - Filters keep caller-given order
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

DEFAULT_CONTENT_TYPE = "application/json"


class QueryOperator(str, Enum):
    """Comparison operators accepted in a QueryFilter."""

    EQ = "eq"
    NE = "ne"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"


class ClientState(str, Enum):
    """Lifecycle states of an ArkivClient."""

    READ_ONLY = "read_only"
    READ_WRITE = "read_write"
    CLOSED = "closed"


@dataclass(frozen=True)
class Attribute:
    """A key/value pair attached to an entity for filtering.

    Keys may repeat within one entity.
    """

    key: str
    value: str

    @classmethod
    def coerce(cls, item: Attribute | Mapping[str, Any] | tuple[str, Any]) -> Attribute:
        if isinstance(item, Attribute):
            return item
        if isinstance(item, Mapping):
            return cls(key=str(item["key"]), value=str(item["value"]))
        key, value = item
        return cls(key=str(key), value=str(value))


def coerce_attributes(items: Iterable[Any] | Mapping[str, Any] | None) -> list[Attribute]:
    """Normalize attributes given as a list of pairs/dicts or a plain mapping."""
    if not items:
        return []
    if isinstance(items, Mapping):
        return [Attribute(key=str(k), value=str(v)) for k, v in items.items()]
    return [Attribute.coerce(item) for item in items]


@dataclass
class Entity:
    """A stored, keyed record fetched from the entity network.

    Attributes:
        entity_key: Network-assigned hex key (0x-prefixed)
        content_type: Payload content type
        attributes: Filterable key/value pairs, in store order
        created_at: Creation timestamp (Unix ms)
        payload: Decoded payload, None when not requested or absent
        expires_at: Expiration timestamp (Unix ms), if any
    """

    entity_key: str
    content_type: str
    attributes: list[Attribute] = field(default_factory=list)
    created_at: int = 0
    payload: Any = None
    expires_at: int | None = None

    def get_attribute(self, key: str, default: str | None = None) -> str | None:
        """Return the first attribute value for key."""
        for attr in self.attributes:
            if attr.key == key:
                return attr.value
        return default

    def get_attributes(self, key: str) -> list[str]:
        """Return every value stored under key, in order."""
        return [attr.value for attr in self.attributes if attr.key == key]


@dataclass(frozen=True)
class QueryFilter:
    """A single attribute predicate.

    Attributes:
        key: Attribute key to filter by
        value: Value to compare against
        operator: Comparison operator (defaults to eq)
    """

    key: str
    value: str
    operator: QueryOperator = QueryOperator.EQ

    def __post_init__(self) -> None:
        if not isinstance(self.operator, QueryOperator):
            try:
                object.__setattr__(self, "operator", QueryOperator(str(self.operator).lower()))
            except ValueError:
                raise ValueError(
                    f"Unknown query operator '{self.operator}'. "
                    f"Expected one of: {', '.join(op.value for op in QueryOperator)}"
                ) from None

    @classmethod
    def coerce(cls, item: QueryFilter | Mapping[str, Any]) -> QueryFilter:
        if isinstance(item, QueryFilter):
            return item
        return cls(
            key=str(item["key"]),
            value=str(item["value"]),
            operator=item.get("operator") or QueryOperator.EQ,
        )


@dataclass
class QueryOptions:
    """Options for ArkivClient.query().

    Attributes:
        filters: Conjunctive filters, applied in order
        with_attributes: Include attributes in results
        with_payload: Include payload in results
        limit: Maximum number of entities in the single returned page
    """

    filters: list[QueryFilter] = field(default_factory=list)
    with_attributes: bool = True
    with_payload: bool = True
    limit: int | None = None

    def __post_init__(self) -> None:
        self.filters = [QueryFilter.coerce(f) for f in (self.filters or [])]
        if self.limit is not None:
            if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
                raise ValueError(f"limit must be a positive integer, got {self.limit!r}")


@dataclass
class CreateEntityOptions:
    """Options for ArkivClient.create_entity().

    Attributes:
        payload: Any JSON-serializable value
        content_type: Content type metadata stored with the payload
        attributes: Key/value pairs for querying
        expires_in_minutes: Lifetime relative to issuance, if any
    """

    payload: Any
    content_type: str = DEFAULT_CONTENT_TYPE
    attributes: list[Attribute] = field(default_factory=list)
    expires_in_minutes: int | None = None

    def __post_init__(self) -> None:
        self.content_type = self.content_type or DEFAULT_CONTENT_TYPE
        self.attributes = coerce_attributes(self.attributes)


@dataclass
class UpdateEntityOptions:
    """Options for ArkivClient.update_entity().

    The attribute list replaces whatever the entity carried before.
    """

    entity_key: str
    payload: Any
    content_type: str = DEFAULT_CONTENT_TYPE
    attributes: list[Attribute] = field(default_factory=list)
    expires_in_minutes: int | None = None

    def __post_init__(self) -> None:
        if not self.entity_key:
            raise ValueError("entity_key is required")
        self.content_type = self.content_type or DEFAULT_CONTENT_TYPE
        self.attributes = coerce_attributes(self.attributes)


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a create/update/delete.

    Use WriteResult.ok() / WriteResult.err() rather than the constructor.

    Attributes:
        success: Whether the network accepted the write
        entity_key: Key of the affected entity (success only)
        tx_hash: Transaction hash (success only)
        error: Failure message (failure only)
    """

    success: bool
    entity_key: str | None = None
    tx_hash: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.success:
            if self.error is not None:
                raise ValueError("A successful WriteResult cannot carry an error")
            if not self.entity_key or not self.tx_hash:
                raise ValueError("A successful WriteResult needs entity_key and tx_hash")
        else:
            if not self.error:
                raise ValueError("A failed WriteResult needs a non-empty error")
            if self.entity_key is not None or self.tx_hash is not None:
                raise ValueError("A failed WriteResult cannot carry entity_key or tx_hash")

    @classmethod
    def ok(cls, entity_key: str, tx_hash: str) -> WriteResult:
        return cls(success=True, entity_key=entity_key, tx_hash=tx_hash)

    @classmethod
    def err(cls, message: str) -> WriteResult:
        return cls(success=False, error=message)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        """Wire-style dict, omitting absent fields."""
        data: dict[str, Any] = {"success": self.success}
        if self.entity_key is not None:
            data["entityKey"] = self.entity_key
        if self.tx_hash is not None:
            data["txHash"] = self.tx_hash
        if self.error is not None:
            data["error"] = self.error
        return data


_OPTION_ALIASES = {
    "entityKey": "entity_key",
    "contentType": "content_type",
    "expiresInMinutes": "expires_in_minutes",
    "withAttributes": "with_attributes",
    "withPayload": "with_payload",
}


def coerce_options(cls: type, options: Any = None, **kwargs: Any) -> Any:
    """Build an options dataclass from an instance, a mapping, or kwargs.

    Mapping keys may be camelCase or snake_case.
    """
    if isinstance(options, cls):
        if kwargs:
            raise TypeError(f"Pass either a {cls.__name__} or keyword arguments, not both")
        return options
    data: dict[str, Any] = {}
    if options is not None:
        if not isinstance(options, Mapping):
            raise TypeError(f"Expected {cls.__name__} or mapping, got {type(options).__name__}")
        data.update(options)
    data.update(kwargs)
    return cls(**{_OPTION_ALIASES.get(k, k): v for k, v in data.items()})

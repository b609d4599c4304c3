"""
SkillChain Python SDK - Arkiv data-layer client.

This SDK provides an async interface to the Arkiv entity network:
- ArkivClient facade with read-only and read-write modes
- Entity, Attribute and WriteResult domain types
- Attribute filters with eq/neq/gt/lt/gte/lte operators
- Live subscription to newly created entities

Example:
    >>> from skillchain_sdk import ArkivClient, RpcDriver
    >>>
    >>> driver = RpcDriver(signer_factory=make_local_signer)
    >>> async with ArkivClient({"privateKey": "0x..."}, driver=driver) as arkiv:
    ...     result = await arkiv.create_entity(payload={"name": "Ada"})
    ...     if result.success:
    ...         entity = await arkiv.get_entity(result.entity_key)

Invariants:
    - Writes return a WriteResult and never raise
    - Without a private key every write fails with "Wallet client not initialized"
    - Reads are network round trips; nothing is cached

Version: 0.1.0
"""

__version__ = "0.1.0"

from ._rpc_client import OperationSigner, RpcDriver
from .client import ArkivClient
from .codec import decode_payload, encode_payload, expiration_from_minutes
from .config import ArkivConfig, ArkivSettings, ResolvedConfig, resolve_config
from .errors import (
    ArkivError,
    ClientClosedError,
    ConnectionError,
    DecodeError,
    SigningUnavailableError,
    TransportError,
)
from .factory import ClientFactory, ClientHandles
from .query import Predicate, eq, gt, gte, lt, lte, ne, neq
from .subscription import Subscription
from .types import (
    Attribute,
    ClientState,
    CreateEntityOptions,
    Entity,
    QueryFilter,
    QueryOperator,
    QueryOptions,
    UpdateEntityOptions,
    WriteResult,
)

__all__ = [
    # Version
    "__version__",
    # Client
    "ArkivClient",
    "ClientFactory",
    "ClientHandles",
    "RpcDriver",
    "OperationSigner",
    "Subscription",
    # Config
    "ArkivConfig",
    "ArkivSettings",
    "ResolvedConfig",
    "resolve_config",
    # Types
    "Attribute",
    "ClientState",
    "CreateEntityOptions",
    "Entity",
    "QueryFilter",
    "QueryOperator",
    "QueryOptions",
    "UpdateEntityOptions",
    "WriteResult",
    # Query predicates
    "Predicate",
    "eq",
    "ne",
    "neq",
    "gt",
    "lt",
    "gte",
    "lte",
    # Codec
    "encode_payload",
    "decode_payload",
    "expiration_from_minutes",
    # Errors
    "ArkivError",
    "ConnectionError",
    "TransportError",
    "ClientClosedError",
    "DecodeError",
    "SigningUnavailableError",
]

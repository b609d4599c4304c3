"""
Construction of read and write handles.

The ClientFactory turns a ResolvedConfig into ClientHandles through a
NetworkDriver. The read handle is always built; the write handle only when
a credential is present. Its absence is the one capability gate that
EntityWriter checks on every call.

The protocols below describe everything the SDK consumes from the network
client. Any object satisfying them (an adapter over another SDK, or a test
double) can be passed as ``driver``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from .config import ResolvedConfig

logger = logging.getLogger(__name__)


class QueryPage(Protocol):
    entities: list[Any]

    def has_next_page(self) -> bool: ...

    async def next(self) -> QueryPage: ...


class QueryBuilder(Protocol):
    def where(self, predicate: Any) -> QueryBuilder: ...

    def with_attributes(self, include: bool = True) -> QueryBuilder: ...

    def with_payload(self, include: bool = True) -> QueryBuilder: ...

    def limit(self, count: int) -> QueryBuilder: ...

    async def fetch(self) -> QueryPage: ...


class ReadHandle(Protocol):
    def build_query(self) -> QueryBuilder: ...

    async def get_entity(self, entity_key: str) -> Any | None: ...

    async def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], Awaitable[None] | None]: ...


class WriteHandle(Protocol):
    async def create_entity(
        self,
        *,
        payload: bytes,
        content_type: str,
        attributes: list[Any],
        expires_at: int | None,
    ) -> Any: ...

    async def update_entity(
        self,
        *,
        entity_key: str,
        payload: bytes,
        content_type: str,
        attributes: list[Any],
        expires_at: int | None,
    ) -> Any: ...

    async def delete_entity(self, *, entity_key: str) -> Any: ...


class NetworkDriver(Protocol):
    def create_public_client(self, config: ResolvedConfig) -> ReadHandle: ...

    def create_wallet_client(self, config: ResolvedConfig, private_key: str) -> WriteHandle: ...


@dataclass
class ClientHandles:
    """Handles produced for one ArkivClient.

    Attributes:
        public: Read handle (query, get_entity, subscribe), always present
        wallet: Write handle (create, update, delete), None when read-only
    """

    public: ReadHandle
    wallet: WriteHandle | None = None

    @property
    def writable(self) -> bool:
        return self.wallet is not None


class ClientFactory:
    """Builds ClientHandles from resolved configuration."""

    def __init__(self, driver: NetworkDriver | None = None) -> None:
        if driver is None:
            from ._rpc_client import RpcDriver

            driver = RpcDriver()
        self.driver = driver

    def create(self, config: ResolvedConfig) -> ClientHandles:
        """Build handles. Performs no network I/O.

        Raises:
            SigningUnavailableError: If a credential is set but the driver cannot sign
        """
        public = self.driver.create_public_client(config)
        wallet = None
        if config.private_key:
            wallet = self.driver.create_wallet_client(config, config.private_key)

        logger.info(
            "Arkiv client handles created",
            extra={"rpc_url": config.rpc_url, "writable": wallet is not None},
        )
        return ClientHandles(public=public, wallet=wallet)

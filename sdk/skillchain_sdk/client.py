"""
Arkiv client for the SkillChain Python SDK.

This module provides the main client interface:
- ArkivClient: Facade over the entity network's data layer

Example:
    >>> driver = RpcDriver(signer_factory=make_local_signer)
    >>> async with ArkivClient({"privateKey": "0x..."}, driver=driver) as arkiv:
    ...     result = await arkiv.create_entity(
    ...         payload={"name": "Ada", "skills": ["Rust"]},
    ...         attributes=[{"key": "type", "value": "profile"}],
    ...         expires_in_minutes=60,
    ...     )
    ...     profiles = await arkiv.query(filters=[{"key": "type", "value": "profile"}])

Invariants:
    - Capability (read-only or read-write) is fixed at construction
    - Write operations never raise; they return a WriteResult
    - Read operations propagate transport errors
    - disconnect() is idempotent and never raises
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping

from .config import ArkivConfig, ArkivSettings, ResolvedConfig, resolve_config
from .errors import CLIENT_CLOSED, WALLET_NOT_INITIALIZED, ClientClosedError
from .factory import ClientFactory, ClientHandles, NetworkDriver
from .query import QueryEngine
from .subscription import EntityCallback, Subscription
from .types import (
    ClientState,
    CreateEntityOptions,
    Entity,
    QueryOptions,
    UpdateEntityOptions,
    WriteResult,
    coerce_options,
)
from .writer import EntityWriter

logger = logging.getLogger(__name__)

_OVERRIDE_KEYS = {"private_key", "rpc_url", "ws_url"}


class ArkivClient:
    """Client for the Arkiv entity network.

    Constructed without a private key the client is read-only: query,
    get_entity and subscribe work, and every write returns a failed
    WriteResult without touching the network.

    Example:
        >>> arkiv = ArkivClient()
        >>> entity = await arkiv.get_entity("0x1234...")
        >>> await arkiv.disconnect()
    """

    def __init__(
        self,
        config: ArkivConfig | Mapping[str, Any] | None = None,
        *,
        driver: NetworkDriver | None = None,
        settings: ArkivSettings | None = None,
        **overrides: Any,
    ) -> None:
        """Initialize client.

        Args:
            config: privateKey/rpcUrl/wsUrl as ArkivConfig or mapping
            driver: Network driver (defaults to the JSON-RPC driver)
            settings: Pre-loaded environment settings
            **overrides: private_key, rpc_url or ws_url keyword overrides

        Raises:
            SigningUnavailableError: If a private key is given to a driver that cannot sign
        """
        if overrides:
            unknown = set(overrides) - _OVERRIDE_KEYS
            if unknown:
                raise TypeError(f"Unexpected config arguments: {', '.join(sorted(unknown))}")
            base = config if isinstance(config, Mapping) else _config_dict(config)
            config = {**base, **overrides}

        self._config: ResolvedConfig = resolve_config(config, settings)
        self._handles: ClientHandles = ClientFactory(driver).create(self._config)
        self._writer = EntityWriter(self._handles)
        self._reader = QueryEngine(self._handles)
        self._subscriptions: set[Subscription] = set()
        self._closed = False

        logger.info(f"ArkivClient ready ({self.state.value})", extra={"rpc_url": self._config.rpc_url})

    @property
    def config(self) -> ResolvedConfig:
        return self._config

    @property
    def can_write(self) -> bool:
        return self._handles.writable

    @property
    def state(self) -> ClientState:
        if self._closed:
            return ClientState.CLOSED
        return ClientState.READ_WRITE if self.can_write else ClientState.READ_ONLY

    async def __aenter__(self) -> ArkivClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    # Writes

    async def create_entity(
        self, options: CreateEntityOptions | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> WriteResult:
        """Create an entity.

        Args:
            options: CreateEntityOptions, a mapping, or use kwargs
                (payload, content_type, attributes, expires_in_minutes)

        Returns:
            WriteResult; success carries entity_key and tx_hash
        """
        gate = self._write_gate()
        if gate is not None:
            return gate
        try:
            opts = coerce_options(CreateEntityOptions, options, **kwargs)
        except (TypeError, ValueError, KeyError) as e:
            return WriteResult.err(f"Invalid create options: {e}")
        return await self._writer.create_entity(opts)

    async def update_entity(
        self, options: UpdateEntityOptions | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> WriteResult:
        """Replace an entity's payload, attributes and expiration.

        Returns:
            WriteResult; success echoes the targeted entity_key
        """
        gate = self._write_gate()
        if gate is not None:
            return gate
        try:
            opts = coerce_options(UpdateEntityOptions, options, **kwargs)
        except (TypeError, ValueError, KeyError) as e:
            return WriteResult.err(f"Invalid update options: {e}")
        return await self._writer.update_entity(opts)

    async def delete_entity(self, entity_key: str) -> WriteResult:
        """Delete an entity by key."""
        gate = self._write_gate()
        if gate is not None:
            return gate
        return await self._writer.delete_entity(entity_key)

    def _write_gate(self) -> WriteResult | None:
        if not self._handles.writable:
            return WriteResult.err(WALLET_NOT_INITIALIZED)
        if self._closed:
            return WriteResult.err(CLIENT_CLOSED)
        return None

    # Reads

    async def query(
        self, options: QueryOptions | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> list[Entity]:
        """Query entities by attribute filters.

        Args:
            options: QueryOptions, a mapping, or use kwargs
                (filters, with_attributes, with_payload, limit)

        Returns:
            Entities from the first result page

        Raises:
            ClientClosedError: If called after disconnect()
            ValueError: If a filter operator or limit is invalid
        """
        self._ensure_open("query")
        opts = coerce_options(QueryOptions, options, **kwargs)
        return await self._reader.query(opts)

    async def get_entity(self, entity_key: str) -> Entity | None:
        """Get an entity by key.

        Returns:
            Entity if found, None otherwise
        """
        self._ensure_open("get_entity")
        return await self._reader.get_entity(entity_key)

    async def subscribe(self, callback: EntityCallback) -> Subscription:
        """Receive each entity created after this call.

        Args:
            callback: Called (or awaited, if async) with each new Entity

        Returns:
            Subscription; call it to unsubscribe
        """
        self._ensure_open("subscribe")
        subscription = await self._reader.subscribe(callback)
        self._subscriptions = {s for s in self._subscriptions if not s.closed}
        self._subscriptions.add(subscription)
        return subscription

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise ClientClosedError(operation)

    # Lifecycle

    async def disconnect(self) -> None:
        """Close subscriptions and release network handles.

        Idempotent; teardown errors are logged, never raised.
        """
        if self._closed:
            return
        self._closed = True

        subscriptions, self._subscriptions = self._subscriptions, set()
        for subscription in subscriptions:
            try:
                await subscription.aclose()
            except Exception as e:
                logger.warning(f"Error closing subscription: {e}")

        for handle in (self._handles.wallet, self._handles.public):
            if handle is None:
                continue
            await _close_handle(handle)

        logger.info("ArkivClient disconnected")


async def _close_handle(handle: Any) -> None:
    close = getattr(handle, "close", None) or getattr(handle, "aclose", None)
    if close is None:
        return
    try:
        result = close()
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(f"Error closing network handle: {e}")


def _config_dict(config: ArkivConfig | None) -> dict[str, Any]:
    if config is None:
        return {}
    return {"private_key": config.private_key, "rpc_url": config.rpc_url, "ws_url": config.ws_url}

"""
Internal JSON-RPC client for the SkillChain Arkiv SDK.

This module provides the default network driver: JSON-RPC 2.0 over HTTP
(httpx) for queries, and a WebSocket (aiohttp) channel for entity-created
notifications. Writes go through a caller-supplied OperationSigner that
signs locally; the private key is never put on the wire by this module.
It is internal to the SDK and should not be used directly by users.

Users should use ArkivClient instead, which provides a clean Python API.

Wire methods:
    - arkiv_query(query, {resultsPerPage, includeData, cursor})
    - arkiv_subscribe("entityCreated") / arkiv_unsubscribe(id)
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import aiohttp
import httpx

from .codec import bytes_to_hex, hex_to_bytes
from .config import ResolvedConfig
from .errors import ConnectionError, SigningUnavailableError, TransportError
from .query import Predicate, compile_predicates, eq
from .types import Attribute

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
SUBSCRIBE_TIMEOUT = 10.0


def entity_from_wire(item: dict[str, Any]) -> dict[str, Any]:
    """Convert a wire entity (hex payload) into a raw record with bytes payload."""
    raw = dict(item)
    value = raw.pop("value", None)
    if raw.get("payload") is None and value is not None:
        raw["payload"] = value
    payload = raw.get("payload")
    if isinstance(payload, str):
        raw["payload"] = hex_to_bytes(payload)
    return raw


def _attributes_to_wire(attributes: list[Attribute]) -> list[dict[str, str]]:
    return [{"key": a.key, "value": a.value} for a in attributes]


def _rpc_error(error: Any, method: str, fallback: str) -> TransportError:
    if isinstance(error, dict):
        return TransportError(error.get("message") or fallback, method=method, rpc_code=error.get("code"))
    return TransportError(str(error) or fallback, method=method)


class RpcTransport:
    """JSON-RPC 2.0 over HTTP.

    The underlying httpx.AsyncClient is created on first use, so building a
    transport never touches the network.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                transport=self._http_transport,
            )
        return self._client

    async def call(self, method: str, params: list[Any]) -> Any:
        """Invoke a JSON-RPC method and return its result.

        Raises:
            ConnectionError: If the endpoint cannot be reached
            TransportError: If the node returns an error or a malformed reply
        """
        client = self._ensure_client()
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            response = await client.post(self._url, json=request)
            response.raise_for_status()
        except httpx.TransportError as e:
            raise ConnectionError(f"Failed to reach {self._url}: {e}", url=self._url) from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code} from entity network",
                method=method,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"Malformed JSON-RPC response: {e}", method=method) from e
        if not isinstance(body, dict):
            raise TransportError("Malformed JSON-RPC response: expected an object", method=method)

        error = body.get("error")
        if error:
            raise _rpc_error(error, method, "Unknown JSON-RPC error")
        return body.get("result")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug(f"Closed JSON-RPC transport to {self._url}")


@dataclass
class RpcQueryPage:
    """One page of query results."""

    entities: list[dict[str, Any]]
    cursor: str | None = None
    _fetch_next: Callable[[str], Any] | None = field(default=None, repr=False)

    def has_next_page(self) -> bool:
        return bool(self.cursor)

    async def next(self) -> RpcQueryPage:
        if not self.cursor or self._fetch_next is None:
            raise TransportError("No further page", method="arkiv_query")
        return await self._fetch_next(self.cursor)


class RpcQueryBuilder:
    """Chained query builder compiled to the store query language."""

    def __init__(self, client: PublicClient) -> None:
        self._client = client
        self._predicates: list[Predicate] = []
        self._with_attributes = False
        self._with_payload = False
        self._limit: int | None = None

    def where(self, predicate: Predicate) -> RpcQueryBuilder:
        self._predicates.append(predicate)
        return self

    def with_attributes(self, include: bool = True) -> RpcQueryBuilder:
        self._with_attributes = include
        return self

    def with_payload(self, include: bool = True) -> RpcQueryBuilder:
        self._with_payload = include
        return self

    def limit(self, count: int) -> RpcQueryBuilder:
        self._limit = count
        return self

    @property
    def query_string(self) -> str:
        return compile_predicates(self._predicates)

    async def fetch(self) -> RpcQueryPage:
        return await self._fetch_page(None)

    async def _fetch_page(self, cursor: str | None) -> RpcQueryPage:
        options: dict[str, Any] = {
            "resultsPerPage": self._limit or DEFAULT_PAGE_SIZE,
            "includeData": {
                "key": True,
                "contentType": True,
                "expiration": True,
                "createdAt": True,
                "attributes": self._with_attributes,
                "payload": self._with_payload,
            },
        }
        if cursor:
            options["cursor"] = cursor

        result = await self._client.transport.call("arkiv_query", [self.query_string, options]) or {}
        if not isinstance(result, dict):
            raise TransportError("Malformed query result: expected an object", method="arkiv_query")
        try:
            entities = [entity_from_wire(item) for item in result.get("data") or []]
        except ValueError as e:
            raise TransportError(f"Malformed entity payload: {e}", method="arkiv_query") from e
        return RpcQueryPage(
            entities=entities,
            cursor=result.get("cursor"),
            _fetch_next=self._fetch_page,
        )


class EntitySocket:
    """WebSocket subscription to entity-created notifications."""

    def __init__(
        self,
        ws_url: str,
        callback: Callable[[dict[str, Any]], None],
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ) -> None:
        self._ws_url = ws_url
        self._callback = callback
        self._session_factory = session_factory
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._subscription_id: str | None = None
        self._closed = False

    @property
    def subscription_id(self) -> str | None:
        return self._subscription_id

    async def open(self) -> None:
        """Connect and register for entity-created events.

        Raises:
            ConnectionError: If the socket cannot be opened
            TransportError: If the node rejects the subscription
        """
        self._session = self._session_factory()
        try:
            self._ws = await self._session.ws_connect(self._ws_url)
            await self._ws.send_json(
                {"jsonrpc": "2.0", "id": 1, "method": "arkiv_subscribe", "params": ["entityCreated"]}
            )
            reply = await asyncio.wait_for(self._ws.receive_json(), timeout=SUBSCRIBE_TIMEOUT)
        except (aiohttp.ClientError, asyncio.TimeoutError, TypeError, ValueError) as e:
            await self.close()
            raise ConnectionError(f"Failed to open subscription socket: {e}", url=self._ws_url) from e

        if not isinstance(reply, dict):
            await self.close()
            raise TransportError("Malformed subscribe reply: expected an object", method="arkiv_subscribe")
        if reply.get("error"):
            await self.close()
            raise _rpc_error(reply["error"], "arkiv_subscribe", "Subscription rejected")

        self._subscription_id = reply.get("result")
        self._reader = asyncio.create_task(self._read_loop())
        logger.info(f"Subscribed to entity-created events at {self._ws_url}")

    async def _read_loop(self) -> None:
        if self._ws is None:
            return
        try:
            async for message in self._ws:
                if message.type != aiohttp.WSMsgType.TEXT:
                    if message.type == aiohttp.WSMsgType.ERROR:
                        logger.warning(f"Subscription socket error: {self._ws.exception()}")
                    continue
                self._handle(message.data)
        except asyncio.CancelledError:
            logger.debug("Subscription reader cancelled")
            raise

    def _handle(self, data: str) -> None:
        try:
            notification = json.loads(data)
        except ValueError:
            logger.warning("Ignoring non-JSON subscription message")
            return
        if not isinstance(notification, dict) or notification.get("method") != "arkiv_subscription":
            return
        params = notification.get("params")
        item = params.get("result") if isinstance(params, dict) else None
        if not isinstance(item, dict):
            return
        try:
            raw = entity_from_wire(item)
        except ValueError as e:
            logger.warning(f"Ignoring entity with malformed payload: {e}")
            return
        self._callback(raw)

    async def close(self) -> None:
        """Unsubscribe and release the socket. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True

        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._ws is not None:
            if self._subscription_id is not None and not self._ws.closed:
                try:
                    await self._ws.send_json(
                        {
                            "jsonrpc": "2.0",
                            "id": 2,
                            "method": "arkiv_unsubscribe",
                            "params": [self._subscription_id],
                        }
                    )
                except (aiohttp.ClientError, ConnectionResetError) as e:
                    logger.debug(f"Unsubscribe message not sent: {e}")
            await self._ws.close()
            self._ws = None

        if self._session is not None:
            await self._session.close()
            self._session = None


class PublicClient:
    """Read handle: query, get_entity, subscribe."""

    def __init__(
        self,
        config: ResolvedConfig,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ) -> None:
        self.transport = RpcTransport(
            config.rpc_url,
            timeout=config.request_timeout,
            http_transport=http_transport,
        )
        self._ws_url = config.ws_url
        self._session_factory = session_factory
        self._sockets: set[EntitySocket] = set()

    def build_query(self) -> RpcQueryBuilder:
        return RpcQueryBuilder(self)

    async def get_entity(self, entity_key: str) -> dict[str, Any] | None:
        page = await (
            self.build_query()
            .where(eq("$key", entity_key))
            .with_attributes(True)
            .with_payload(True)
            .limit(1)
            .fetch()
        )
        return page.entities[0] if page.entities else None

    async def subscribe(self, callback: Callable[[dict[str, Any]], None]) -> Callable[[], Any]:
        socket = EntitySocket(self._ws_url, callback, self._session_factory)
        await socket.open()
        self._sockets.add(socket)

        async def unsubscribe() -> None:
            self._sockets.discard(socket)
            await socket.close()

        return unsubscribe

    async def close(self) -> None:
        sockets, self._sockets = self._sockets, set()
        for socket in sockets:
            await socket.close()
        await self.transport.close()


class OperationSigner(Protocol):
    """Signs entity operations locally and submits the resulting transaction.

    Implementations hold the private key in process. send_operations returns
    the network's receipt, e.g. {"entityKey": ..., "txHash": ...}.
    """

    async def send_operations(self, operations: dict[str, Any]) -> dict[str, Any]: ...


SignerFactory = Callable[[ResolvedConfig, str], OperationSigner]


class WalletClient:
    """Write handle: create, update, delete.

    Encodes operations (hex payload, wire attributes, absolute expiration)
    and hands them to an OperationSigner. Holds no credential itself.
    """

    def __init__(self, signer: OperationSigner) -> None:
        self._signer = signer

    async def _send(self, operations: dict[str, Any]) -> dict[str, Any]:
        result = await self._signer.send_operations(operations)
        if not isinstance(result, dict):
            raise TransportError("Unexpected signer receipt", method="send_operations")
        return result

    async def create_entity(
        self,
        *,
        payload: bytes,
        content_type: str,
        attributes: list[Attribute],
        expires_at: int | None,
    ) -> dict[str, Any]:
        create: dict[str, Any] = {
            "payload": bytes_to_hex(payload),
            "contentType": content_type,
            "attributes": _attributes_to_wire(attributes),
        }
        if expires_at is not None:
            create["expiresAt"] = expires_at
        return await self._send({"creates": [create]})

    async def update_entity(
        self,
        *,
        entity_key: str,
        payload: bytes,
        content_type: str,
        attributes: list[Attribute],
        expires_at: int | None,
    ) -> dict[str, Any]:
        update: dict[str, Any] = {
            "entityKey": entity_key,
            "payload": bytes_to_hex(payload),
            "contentType": content_type,
            "attributes": _attributes_to_wire(attributes),
        }
        if expires_at is not None:
            update["expiresAt"] = expires_at
        return await self._send({"updates": [update]})

    async def delete_entity(self, *, entity_key: str) -> dict[str, Any]:
        return await self._send({"deletes": [{"entityKey": entity_key}]})

    async def close(self) -> None:
        close = getattr(self._signer, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result


class RpcDriver:
    """Default NetworkDriver producing PublicClient / WalletClient handles.

    Without a signer_factory the driver is read-only: asking it for a write
    handle raises SigningUnavailableError instead of shipping the key to the
    RPC node.
    """

    def __init__(
        self,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
        signer_factory: SignerFactory | None = None,
    ) -> None:
        self._http_transport = http_transport
        self._session_factory = session_factory
        self._signer_factory = signer_factory

    def create_public_client(self, config: ResolvedConfig) -> PublicClient:
        return PublicClient(
            config,
            http_transport=self._http_transport,
            session_factory=self._session_factory,
        )

    def create_wallet_client(self, config: ResolvedConfig, private_key: str) -> WalletClient:
        """Build a write handle around a locally signing OperationSigner.

        Raises:
            SigningUnavailableError: If no signer_factory was configured
        """
        if self._signer_factory is None:
            raise SigningUnavailableError(
                "RpcDriver cannot sign writes; pass signer_factory or a signing NetworkDriver"
            )
        return WalletClient(self._signer_factory(config, private_key))

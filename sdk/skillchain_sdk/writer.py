"""
Write path for the SkillChain Arkiv SDK.

EntityWriter implements create/update/delete against the write handle.
Every operation returns a WriteResult; none of them raise.

Invariants:
    - The write handle is checked on every call, before any other work
    - Without a write handle no network call is attempted
    - Failures always carry a non-empty error message
    - Updates replace the attribute set wholesale
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from .codec import encode_payload, expiration_from_minutes
from .errors import WALLET_NOT_INITIALIZED
from .normalize import failure_result, to_write_result
from .types import CreateEntityOptions, UpdateEntityOptions, WriteResult

if TYPE_CHECKING:
    from .factory import ClientHandles

logger = logging.getLogger(__name__)


class EntityWriter:
    """Creates, updates and deletes entities through the write handle."""

    def __init__(self, handles: ClientHandles) -> None:
        self._handles = handles

    async def create_entity(self, options: CreateEntityOptions) -> WriteResult:
        """Create a new entity.

        Args:
            options: Payload, content type, attributes and lifetime

        Returns:
            WriteResult with the network-assigned entity key on success
        """
        wallet = self._handles.wallet
        if wallet is None:
            return WriteResult.err(WALLET_NOT_INITIALIZED)

        async def submit() -> Any:
            return await wallet.create_entity(
                payload=encode_payload(options.payload),
                content_type=options.content_type,
                attributes=list(options.attributes),
                expires_at=_expires_at(options.expires_in_minutes),
            )

        return await self._dispatch("create", submit)

    async def update_entity(self, options: UpdateEntityOptions) -> WriteResult:
        """Replace an existing entity's payload and attributes.

        Returns:
            WriteResult echoing the targeted entity key on success
        """
        wallet = self._handles.wallet
        if wallet is None:
            return WriteResult.err(WALLET_NOT_INITIALIZED)

        async def submit() -> Any:
            return await wallet.update_entity(
                entity_key=options.entity_key,
                payload=encode_payload(options.payload),
                content_type=options.content_type,
                attributes=list(options.attributes),
                expires_at=_expires_at(options.expires_in_minutes),
            )

        return await self._dispatch("update", submit, options.entity_key)

    async def delete_entity(self, entity_key: str) -> WriteResult:
        """Delete an entity by key.

        Deleting an unknown key is reported by the network and surfaces as a
        failed WriteResult.
        """
        wallet = self._handles.wallet
        if wallet is None:
            return WriteResult.err(WALLET_NOT_INITIALIZED)
        if not entity_key:
            return WriteResult.err("entity_key is required")

        async def submit() -> Any:
            return await wallet.delete_entity(entity_key=entity_key)

        return await self._dispatch("delete", submit, entity_key)

    async def _dispatch(
        self,
        operation: str,
        submit: Callable[[], Awaitable[Any]],
        entity_key: str | None = None,
    ) -> WriteResult:
        try:
            response = await submit()
        except Exception as e:
            result = failure_result(e)
        else:
            result = to_write_result(response, entity_key)

        if result.success:
            logger.debug(
                f"Entity {operation} accepted",
                extra={"entity_key": result.entity_key, "tx_hash": result.tx_hash},
            )
        else:
            logger.warning(
                f"Entity {operation} failed: {result.error}",
                extra={"entity_key": entity_key},
            )
        return result


def _expires_at(minutes: int | None) -> int | None:
    if minutes is None:
        return None
    return expiration_from_minutes(minutes)

"""
Configuration for the SkillChain Arkiv SDK.

Uses pydantic-settings for environment variable loading. Resolution order
for the endpoints is: caller-supplied value, then ARKIV_* environment
variable, then the Mendoza testnet default. The private key is only ever
taken from the caller.

Invariants:
    - The private key is never logged or shown in repr()
    - A missing or empty private key means read-only operation
    - The environment never grants write capability
    - No key format validation happens here; malformed keys fail downstream
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

MENDOZA_RPC_URL = "https://mendoza.hoodi.arkiv.network/rpc"
MENDOZA_WS_URL = "wss://mendoza.hoodi.arkiv.network/rpc/ws"


class ArkivSettings(BaseSettings):
    """Network defaults loaded from environment."""

    rpc_url: str = Field(default=MENDOZA_RPC_URL, description="Entity network JSON-RPC endpoint")
    ws_url: str = Field(default=MENDOZA_WS_URL, description="Entity network WebSocket endpoint")
    request_timeout: float = Field(default=30.0, description="HTTP request timeout seconds")

    model_config = {"env_prefix": "ARKIV_"}


@dataclass(frozen=True)
class ArkivConfig:
    """Caller-supplied construction config. Omitted fields fall back to defaults."""

    private_key: str | None = field(default=None, repr=False)
    rpc_url: str | None = None
    ws_url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ArkivConfig:
        """Accept camelCase (privateKey, rpcUrl, wsUrl) or snake_case keys."""
        return cls(
            private_key=data.get("private_key", data.get("privateKey")),
            rpc_url=data.get("rpc_url", data.get("rpcUrl")),
            ws_url=data.get("ws_url", data.get("wsUrl")),
        )


@dataclass(frozen=True)
class ResolvedConfig:
    """Fully resolved configuration handed to the ClientFactory."""

    rpc_url: str
    ws_url: str
    private_key: str | None = field(default=None, repr=False)
    request_timeout: float = 30.0

    @property
    def has_credential(self) -> bool:
        return bool(self.private_key)


def resolve_config(
    config: ArkivConfig | Mapping[str, Any] | None = None,
    settings: ArkivSettings | None = None,
) -> ResolvedConfig:
    """Merge caller config with environment/network defaults.

    Args:
        config: Caller config (dataclass, mapping, or None)
        settings: Pre-loaded settings (loaded from env when omitted)

    Returns:
        ResolvedConfig with every endpoint populated
    """
    if config is None:
        config = ArkivConfig()
    elif isinstance(config, Mapping):
        config = ArkivConfig.from_mapping(config)

    settings = settings or ArkivSettings()

    resolved = ResolvedConfig(
        rpc_url=config.rpc_url or settings.rpc_url,
        ws_url=config.ws_url or settings.ws_url,
        private_key=config.private_key or None,
        request_timeout=settings.request_timeout,
    )

    logger.debug(
        "Resolved Arkiv config",
        extra={
            "rpc_url": resolved.rpc_url,
            "ws_url": resolved.ws_url,
            "writable": resolved.has_credential,
        },
    )
    return resolved

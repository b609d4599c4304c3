"""
Error types for the SkillChain Arkiv SDK.

This module defines the exception types raised on the read path:
- ArkivError: Base exception
- ConnectionError: Endpoint unreachable or socket failure
- TransportError: The entity network rejected a request
- ClientClosedError: Operation attempted after disconnect()
- DecodeError: A raw entity could not be normalized
- SigningUnavailableError: A credential was given to a driver that cannot sign

Write operations never raise; they return a WriteResult instead.

Invariants:
    - All errors inherit from ArkivError
    - Errors include context for debugging
    - Error messages never contain credentials
"""

from __future__ import annotations

from typing import Any, Dict, Optional

WALLET_NOT_INITIALIZED = "Wallet client not initialized"
CLIENT_CLOSED = "Client is closed"


class ArkivError(Exception):
    """Base exception for all SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ARKIV_ERROR"
        self.details = details or {}


class ConnectionError(ArkivError):
    """Failed to reach the entity network.

    Raised when:
    - RPC endpoint is unreachable
    - Request times out
    - WebSocket handshake fails
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"url": url},
        )
        self.url = url


class TransportError(ArkivError):
    """The entity network rejected a request.

    Attributes:
        method: JSON-RPC method that failed
        rpc_code: Error code returned by the node, if any
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        rpc_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"method": method, "rpc_code": rpc_code},
        )
        self.method = method
        self.rpc_code = rpc_code


class ClientClosedError(ArkivError):
    """Read attempted on a client after disconnect()."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"{CLIENT_CLOSED}: cannot run {operation}",
            code="CLIENT_CLOSED",
            details={"operation": operation},
        )
        self.operation = operation


class DecodeError(ArkivError):
    """A raw entity from the network could not be normalized.

    Payload bytes that are not valid JSON are NOT a DecodeError; those
    degrade to the decoded string. This covers structurally broken records,
    such as a missing entity key.
    """

    def __init__(self, message: str, raw: Any = None) -> None:
        super().__init__(
            message,
            code="DECODE_ERROR",
            details={"raw_type": type(raw).__name__},
        )


class SigningUnavailableError(ArkivError):
    """A credential was supplied but the driver has no local signer.

    Raised at construction so a private key is never handed to a driver
    that would have to send it elsewhere to get a write signed.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SIGNING_UNAVAILABLE")

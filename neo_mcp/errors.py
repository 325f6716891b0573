"""Typed error taxonomy shared by validators, handlers and the dispatcher."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "ValidationError"
    NETWORK_ERROR = "NetworkError"
    TRANSACTION_ERROR = "TransactionError"
    CONTRACT_ERROR = "ContractError"
    RATE_LIMIT_ERROR = "RateLimitError"
    INTERNAL_ERROR = "InternalError"


class NeoMcpError(Exception):
    """Base exception for errors that already carry a taxonomy kind."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(NeoMcpError):
    """Raised when an argument is missing or malformed."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if field is not None:
            details = {**(details or {}), "field": field}
        super().__init__(message, details=details)
        self.field = field


class ToolNotFoundError(ValidationError):
    """Raised for tool names absent from the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(
            f"Tool not found: {tool_name}",
            details={"reason": "tool_not_found", "tool": tool_name},
        )
        self.tool_name = tool_name


class NetworkError(NeoMcpError):
    """Raised when a backend node is unreachable or times out."""

    kind = ErrorKind.NETWORK_ERROR


class TransactionError(NeoMcpError):
    kind = ErrorKind.TRANSACTION_ERROR


class ContractError(NeoMcpError):
    kind = ErrorKind.CONTRACT_ERROR


class RateLimitError(NeoMcpError):
    """Raised when a client exceeds its request quota for the current window."""

    kind = ErrorKind.RATE_LIMIT_ERROR

    def __init__(self, message: str, *, retry_after: int, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details={**(details or {}), "retryAfter": retry_after})
        self.retry_after = retry_after


class InternalError(NeoMcpError):
    kind = ErrorKind.INTERNAL_ERROR


class NetworkNotConfiguredError(InternalError):
    """A well-formed network was requested but no backend or wallet is bound to it."""

    def __init__(self, network: str) -> None:
        super().__init__(
            f"Network {network} is not enabled on this server.",
            details={"reason": "network_not_configured", "network": network},
        )
        self.network = network


class ConfigurationError(Exception):
    """Unrecoverable startup misconfiguration; aborts the process."""

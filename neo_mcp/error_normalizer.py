"""
Map raw failures to a stable error envelope.

Lookup order is part of the contract: typed errors pass through, then an exact
match on a structured error code, then the first substring match scanning
``MESSAGE_SIGNALS`` top to bottom. Anything else becomes an InternalError that
keeps the original message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from neo_mcp.errors import ErrorKind, NeoMcpError


@dataclass(frozen=True, slots=True)
class ErrorEnvelope:
    kind: ErrorKind
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_response(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message, "code": self.kind.value}
        if self.details:
            error["details"] = self.details
        return {"error": error}


CODE_SIGNALS: Dict[str, Tuple[str, ErrorKind]] = {
    "ECONNREFUSED": (
        "Could not connect to Neo N3 node. Please check the node URL and try again.",
        ErrorKind.NETWORK_ERROR,
    ),
    "ETIMEDOUT": ("Request to Neo N3 node timed out.", ErrorKind.NETWORK_ERROR),
    "ENOTFOUND": ("Neo N3 node host could not be resolved.", ErrorKind.NETWORK_ERROR),
    "ECONNRESET": ("Connection to Neo N3 node was reset.", ErrorKind.NETWORK_ERROR),
}

# Scanned in order; first match wins. Append new entries at the end only.
MESSAGE_SIGNALS: Tuple[Tuple[str, str, ErrorKind], ...] = (
    ("insufficient funds", "Insufficient funds to complete the transaction.", ErrorKind.TRANSACTION_ERROR),
    ("invalid signature", "Invalid signature. Please check your wallet credentials.", ErrorKind.TRANSACTION_ERROR),
    ("vm fault", "Contract execution failed (VM fault).", ErrorKind.CONTRACT_ERROR),
    ("already exists", "Transaction already exists on the network.", ErrorKind.TRANSACTION_ERROR),
    ("unknown transaction", "Transaction not found.", ErrorKind.TRANSACTION_ERROR),
    ("expired", "Transaction has expired.", ErrorKind.TRANSACTION_ERROR),
    ("unknown asset", "", ErrorKind.VALIDATION_ERROR),
    ("timed out", "Request to Neo N3 node timed out.", ErrorKind.NETWORK_ERROR),
    ("connection refused", CODE_SIGNALS["ECONNREFUSED"][0], ErrorKind.NETWORK_ERROR),
)


def _raw_message(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(error)
    return text or error.__class__.__name__


def normalize_error(error: BaseException) -> ErrorEnvelope:
    """Return the envelope for ``error``. Never raises."""
    try:
        if isinstance(error, NeoMcpError):
            return ErrorEnvelope(error.kind, error.message, error.details)

        code = getattr(error, "code", None)
        if isinstance(code, str) and code.upper() in CODE_SIGNALS:
            message, kind = CODE_SIGNALS[code.upper()]
            return ErrorEnvelope(kind, message)

        raw = _raw_message(error)
        lowered = raw.lower()
        for needle, message, kind in MESSAGE_SIGNALS:
            if needle in lowered:
                # Empty template means the backend message is already user-facing.
                return ErrorEnvelope(kind, message or raw)

        return ErrorEnvelope(ErrorKind.INTERNAL_ERROR, raw)
    except Exception:  # pragma: no cover - last resort, normalizer must not raise
        return ErrorEnvelope(ErrorKind.INTERNAL_ERROR, "Unexpected error.")

"""JSON-RPC client wrappers for Neo N3 nodes."""

from .backend import ChainBackend
from .client import NeoRpcClient, NeoRpcError, NodeUnreachableError

__all__ = [
    "ChainBackend",
    "NeoRpcClient",
    "NeoRpcError",
    "NodeUnreachableError",
]

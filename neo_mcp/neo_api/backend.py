"""Interface the gateway consumes from a Neo N3 chain backend."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Union


class ChainBackend(Protocol):
    async def get_block_count(self) -> int:
        ...

    async def get_block(self, hash_or_height: Union[str, int]) -> Dict[str, Any]:
        ...

    async def get_transaction(self, txid: str) -> Dict[str, Any]:
        ...

    async def get_raw_transaction_with_confirmations(self, txid: str) -> Optional[Dict[str, Any]]:
        """Verbose transaction, or None when the node does not know ``txid``."""
        ...

    async def get_balance(self, address: str) -> Dict[str, str]:
        """Token balances keyed by symbol (or script hash) as decimal strings."""
        ...

    async def invoke_script(self, script: str, signers: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        ...

    async def send_raw_transaction(self, signed_tx: str) -> str:
        """Submit a base64 transaction and return its hash."""
        ...

    async def get_validators(self) -> List[Dict[str, Any]]:
        ...

    async def get_unclaimed_gas(self, address: str) -> str:
        ...

    async def calculate_network_fee(self, tx: str) -> int:
        ...

    async def aclose(self) -> None:
        ...

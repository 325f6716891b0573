"""
Thin JSON-RPC client for the Neo N3 node methods the gateway consumes.

Transport failures become NodeUnreachableError carrying a structured code
(ECONNREFUSED, ETIMEDOUT, ENOTFOUND, ECONNRESET); JSON-RPC error objects become
NeoRpcError with the node's message so the error normalizer can classify them.
"""

from __future__ import annotations

import itertools
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import httpx

from neo_mcp.contracts import token_by_hash

logger = logging.getLogger(__name__)

UNKNOWN_TRANSACTION_CODES = {-100, -103}
_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
)


class NeoRpcError(Exception):
    """JSON-RPC level error returned by a Neo node."""

    def __init__(self, message: str, *, code: Optional[Union[int, str]] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data


class NodeUnreachableError(NeoRpcError):
    """Raised when the node cannot be reached at the transport level."""


def _transport_code(exc: httpx.RequestError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "ETIMEDOUT"
    if isinstance(exc, httpx.ConnectError):
        lowered = str(exc).lower()
        if any(marker in lowered for marker in _DNS_FAILURE_MARKERS):
            return "ENOTFOUND"
        return "ECONNREFUSED"
    return "ECONNRESET"


def _format_amount(raw_amount: Any, decimals: int) -> str:
    try:
        value = Decimal(str(raw_amount))
    except ArithmeticError:
        return str(raw_amount)
    if decimals:
        value = value.scaleb(-decimals)
    text = format(value.normalize(), "f") if value else "0"
    return text


class NeoRpcClient:
    """Async client for a single Neo N3 RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 10.0,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        client = await self._get_client()
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        try:
            response = await client.post(self.rpc_url, json=payload)
        except httpx.RequestError as exc:
            code = _transport_code(exc)
            logger.warning("Neo node unreachable method=%s code=%s", method, code)
            raise NodeUnreachableError(f"Node unreachable: {exc}", code=code) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise NeoRpcError(
                f"Unexpected response from node (HTTP {response.status_code}).",
                code=response.status_code,
            )

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                message = str(error.get("message") or "Neo RPC error")
                data = error.get("data")
                if isinstance(data, str) and data and data not in message:
                    message = f"{message}: {data}"
                raise NeoRpcError(message, code=error.get("code"), data=data)
            raise NeoRpcError(str(error))

        if response.status_code >= 400:
            raise NeoRpcError(f"Neo RPC HTTP error {response.status_code}.", code=response.status_code)

        return body.get("result")

    async def get_block_count(self) -> int:
        return int(await self._call("getblockcount"))

    async def get_block(self, hash_or_height: Union[str, int]) -> Dict[str, Any]:
        return await self._call("getblock", [hash_or_height, True])

    async def get_transaction(self, txid: str) -> Dict[str, Any]:
        return await self._call("getrawtransaction", [txid, True])

    async def get_raw_transaction_with_confirmations(self, txid: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._call("getrawtransaction", [txid, True])
        except NodeUnreachableError:
            raise
        except NeoRpcError as exc:
            if exc.code in UNKNOWN_TRANSACTION_CODES or "unknown transaction" in exc.message.lower():
                return None
            raise

    async def get_balance(self, address: str) -> Dict[str, str]:
        result = await self._call("getnep17balances", [address])
        balances: Dict[str, str] = {}
        entries = result.get("balance", []) if isinstance(result, dict) else []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            asset_hash = str(entry.get("assethash", ""))
            token = token_by_hash(asset_hash) if asset_hash else None
            symbol = entry.get("symbol") or (token.symbol if token else asset_hash)
            decimals = entry.get("decimals")
            if decimals is None:
                decimals = token.decimals if token else 0
            balances[str(symbol)] = _format_amount(entry.get("amount", "0"), int(decimals))
        return balances

    async def invoke_script(self, script: str, signers: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        params: List[Any] = [script]
        if signers:
            params.append(signers)
        return await self._call("invokescript", params)

    async def send_raw_transaction(self, signed_tx: str) -> str:
        result = await self._call("sendrawtransaction", [signed_tx])
        if isinstance(result, dict):
            return str(result.get("hash", ""))
        return str(result)

    async def get_validators(self) -> List[Dict[str, Any]]:
        result = await self._call("getnextblockvalidators")
        return result if isinstance(result, list) else []

    async def get_unclaimed_gas(self, address: str) -> str:
        result = await self._call("getunclaimedgas", [address])
        raw = result.get("unclaimed", "0") if isinstance(result, dict) else result
        return _format_amount(raw, 8)

    async def calculate_network_fee(self, tx: str) -> int:
        result = await self._call("calculatenetworkfee", [tx])
        raw = result.get("networkfee", 0) if isinstance(result, dict) else result
        return int(raw)

"""Read-only chain queries: height, blocks, transactions and balances."""

from __future__ import annotations

import logging
from typing import Any, Dict, Union

from neo_mcp.tools.context import ToolContext

logger = logging.getLogger(__name__)

# Height and validator set change at most once per block (~15s).
CHAIN_INFO_TTL_MS = 5_000


async def get_blockchain_info(ctx: ToolContext) -> Dict[str, Any]:
    """Return current height and next-block validators for the network."""
    network = ctx.require_network()

    async def _fetch() -> Dict[str, Any]:
        height = await ctx.backend.get_block_count()
        validators = await ctx.backend.get_validators()
        return {"height": height, "validators": validators, "network": network.value}

    if ctx.cache is None:
        return await _fetch()
    return await ctx.cache.get_or_compute("blockchain_info", _fetch, CHAIN_INFO_TTL_MS)


async def get_block_count(ctx: ToolContext) -> Dict[str, Any]:
    network = ctx.require_network()
    count = await ctx.backend.get_block_count()
    return {"blockCount": count, "network": network.value}


async def get_block(ctx: ToolContext, hash_or_height: Union[str, int]) -> Dict[str, Any]:
    ctx.require_network()
    return await ctx.backend.get_block(hash_or_height)


async def get_transaction(ctx: ToolContext, txid: str) -> Dict[str, Any]:
    ctx.require_network()
    return await ctx.backend.get_transaction(txid)


async def check_transaction_status(ctx: ToolContext, txid: str) -> Dict[str, Any]:
    """
    Return the monitor's record for ``txid``.

    Unknown ids are registered so later calls observe confirmation progress;
    registration is idempotent and never resets an existing record.
    """
    ctx.require_network()
    record = ctx.monitor.get_transaction(txid)
    if record is None:
        record = ctx.monitor.track_transaction(txid)
    return record.to_dict()


async def get_balance(ctx: ToolContext, address: str) -> Dict[str, str]:
    """Token balances keyed by symbol, amounts as decimal strings."""
    ctx.require_network()
    return await ctx.backend.get_balance(address)

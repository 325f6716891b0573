"""Shared simulate / sign / submit steps for the write tools and fee estimates."""

from __future__ import annotations

import base64
import logging
from decimal import Decimal
from typing import Any, Dict, List

from neo_mcp.config import NETWORK_MAGIC, VALID_UNTIL_BLOCK_INCREMENT
from neo_mcp.errors import ContractError
from neo_mcp.tools.context import ToolContext
from neo_mcp.wallet.account import Account
from neo_mcp.wallet.transaction import (
    Signer,
    Transaction,
    estimate_network_fee,
    placeholder_witness,
    sender_signers,
)

logger = logging.getLogger(__name__)

GAS_DECIMALS = 8


def format_gas(value: int) -> str:
    """Render an integer GAS fraction amount (1e-8 units) as a decimal string."""
    return format(Decimal(value).scaleb(-GAS_DECIMALS).normalize(), "f")


def _fee_summary(system_fee: int, network_fee: int) -> Dict[str, str]:
    return {
        "systemFee": format_gas(system_fee),
        "networkFee": format_gas(network_fee),
        "totalFee": format_gas(system_fee + network_fee),
        "unit": "GAS",
    }


async def simulate(ctx: ToolContext, script: bytes, signers: List[Signer] | None = None) -> Dict[str, Any]:
    """Run ``script`` through invokescript and raise ContractError unless the VM halted."""
    encoded = base64.b64encode(script).decode("ascii")
    rpc_signers = [signer.to_rpc() for signer in signers] if signers else None
    result = await ctx.backend.invoke_script(encoded, rpc_signers)
    state = str(result.get("state", ""))
    if not state.upper().startswith("HALT"):
        exception = result.get("exception") or "unknown reason"
        raise ContractError(
            f"Contract execution failed (VM fault): {exception}",
            details={"state": state, "exception": result.get("exception")},
        )
    return result


async def _build_transaction(ctx: ToolContext, script: bytes, signers: List[Signer]) -> Transaction:
    invocation = await simulate(ctx, script, signers)
    block_count = await ctx.backend.get_block_count()
    return Transaction(
        script=script,
        signers=signers,
        valid_until_block=block_count - 1 + VALID_UNTIL_BLOCK_INCREMENT,
        system_fee=int(invocation.get("gasconsumed", 0)),
    )


async def estimate_fees(ctx: ToolContext, script: bytes, sender_script_hash: bytes) -> Dict[str, str]:
    """Fee estimate without a public key: the network fee is computed offline."""
    tx = await _build_transaction(ctx, script, sender_signers(sender_script_hash))
    return _fee_summary(tx.system_fee, estimate_network_fee(tx))


async def submit_script(ctx: ToolContext, account: Account, script: bytes) -> Dict[str, Any]:
    """Simulate, sign and broadcast ``script`` from ``account``; the txid is handed to the monitor."""
    network = ctx.require_network()
    tx = await _build_transaction(ctx, script, sender_signers(account.script_hash))

    tx.witnesses = [placeholder_witness(account)]
    tx.network_fee = await ctx.backend.calculate_network_fee(tx.to_base64())
    tx.witnesses = []

    ctx.wallet.sign_transaction(tx, account, NETWORK_MAGIC[network])
    txid = await ctx.backend.send_raw_transaction(tx.to_base64()) or f"0x{tx.txid}"
    record = ctx.monitor.track_transaction(txid)
    logger.info(
        "transaction submitted txid=%s network=%s",
        record.txid,
        network.value,
        extra={"txid": record.txid, "network": network.value},
    )
    return {
        "txid": txid,
        "network": network.value,
        **_fee_summary(tx.system_fee, tx.network_fee),
        "transaction": record.to_dict(),
    }

"""NEP-17 transfers, transfer fee estimates and GAS claims."""

from __future__ import annotations

import logging
from decimal import Decimal, localcontext
from typing import Any, Dict, Optional, Tuple

from neo_mcp.contracts import NATIVE_TOKENS, token_by_hash
from neo_mcp.errors import ValidationError
from neo_mcp.tools.context import ToolContext
from neo_mcp.tools.submission import estimate_fees, submit_script
from neo_mcp.tools.validators import SCRIPT_HASH_LENGTH, strip_hex_prefix
from neo_mcp.wallet.account import Account, address_to_script_hash
from neo_mcp.wallet.script import build_contract_call

logger = logging.getLogger(__name__)


def resolve_asset(asset: str) -> Tuple[str, str, Optional[int]]:
    """Return ``(symbol, script_hash, decimals)``; decimals is None for unlisted tokens."""
    token = NATIVE_TOKENS.get(asset.upper())
    if token is not None:
        return token.symbol, token.script_hash, token.decimals
    if len(strip_hex_prefix(asset)) == SCRIPT_HASH_LENGTH:
        known = token_by_hash(asset)
        if known is not None:
            return known.symbol, known.script_hash, known.decimals
        script_hash = f"0x{strip_hex_prefix(asset).lower()}"
        return script_hash, script_hash, None
    raise ValidationError(f"Unknown asset: {asset}", field="asset")


def to_integer_amount(amount: str, decimals: Optional[int], symbol: str) -> int:
    """Scale a decimal amount to the token's integer units."""
    value = Decimal(amount)
    # scaleb rounds to context precision; size it so no digit is dropped.
    with localcontext() as context:
        context.prec = max(context.prec, len(value.as_tuple().digits) + (decimals or 0))
        if decimals:
            value = value.scaleb(decimals)
        exact = value == value.to_integral_value()
    if not exact:
        if decimals is None:
            message = f"Amount for {symbol} must be given in integer token units."
        else:
            message = f"Amount {amount} has more than {decimals} decimal places for {symbol}."
        raise ValidationError(message, field="amount")
    return int(value)


def _transfer_script(asset_hash: str, sender: bytes, recipient: bytes, units: int) -> bytes:
    args = [
        {"type": "Hash160", "value": f"0x{sender[::-1].hex()}"},
        {"type": "Hash160", "value": f"0x{recipient[::-1].hex()}"},
        {"type": "Integer", "value": units},
        None,
    ]
    return build_contract_call(asset_hash, "transfer", args)


async def transfer_assets(
    ctx: ToolContext,
    from_wif: str,
    to_address: str,
    asset: str,
    amount: str,
) -> Dict[str, Any]:
    """Sign and broadcast a NEP-17 transfer; the transaction is tracked until confirmed."""
    ctx.require_network()
    symbol, asset_hash, decimals = resolve_asset(asset)
    units = to_integer_amount(amount, decimals, symbol)
    account: Account = ctx.wallet.import_account(from_wif)
    script = _transfer_script(asset_hash, account.script_hash, address_to_script_hash(to_address), units)
    result = await submit_script(ctx, account, script)
    return {
        **result,
        "from": account.address,
        "to": to_address,
        "asset": symbol,
        "amount": amount,
    }


async def estimate_transfer_fees(
    ctx: ToolContext,
    from_address: str,
    to_address: str,
    asset: str,
    amount: str,
) -> Dict[str, Any]:
    ctx.require_network()
    symbol, asset_hash, decimals = resolve_asset(asset)
    units = to_integer_amount(amount, decimals, symbol)
    sender = address_to_script_hash(from_address)
    script = _transfer_script(asset_hash, sender, address_to_script_hash(to_address), units)
    fees = await estimate_fees(ctx, script, sender)
    return {**fees, "asset": symbol, "amount": amount}


async def claim_gas(ctx: ToolContext, from_wif: str) -> Dict[str, Any]:
    """Claim unclaimed GAS by sending 0 NEO to the account itself."""
    ctx.require_network()
    account: Account = ctx.wallet.import_account(from_wif)
    unclaimed = await ctx.backend.get_unclaimed_gas(account.address)
    neo = NATIVE_TOKENS["NEO"]
    script = _transfer_script(neo.script_hash, account.script_hash, account.script_hash, 0)
    result = await submit_script(ctx, account, script)
    logger.info("gas claim submitted address=%s unclaimed=%s", account.address, unclaimed)
    return {**result, "address": account.address, "unclaimedGas": unclaimed}

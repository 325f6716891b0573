"""Key material tools; neither touches a network backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from neo_mcp.errors import ValidationError
from neo_mcp.tools.context import ToolContext

logger = logging.getLogger(__name__)


def _account_summary(account) -> Dict[str, Any]:
    return {
        "address": account.address,
        "publicKey": account.public_key_hex,
        "scriptHash": account.script_hash_hex,
    }


async def create_wallet(ctx: ToolContext, password: str) -> Dict[str, Any]:
    """Generate a new account and return it with its NEP-2 encrypted key."""
    account = ctx.wallet.create_account()
    # NEP-2 runs scrypt; keep it off the event loop.
    encrypted = await asyncio.to_thread(ctx.wallet.encrypt_key, account, password)
    return {**_account_summary(account), "encryptedWIF": encrypted}


async def import_wallet(ctx: ToolContext, key: str, password: Optional[str] = None) -> Dict[str, Any]:
    """
    Import from a WIF, a hex private key or a NEP-2 key.

    NEP-2 keys need ``password`` to decrypt. For plain keys a password
    re-encrypts the key as NEP-2; without one the WIF is returned as-is.
    """
    if ctx.wallet.is_nep2(key):
        if password is None:
            raise ValidationError("Password is required to import a NEP-2 encrypted key.", field="password")
        account = await asyncio.to_thread(ctx.wallet.decrypt_key, key, password)
        return _account_summary(account)

    account = ctx.wallet.import_account(key)
    if password is not None:
        encrypted = await asyncio.to_thread(ctx.wallet.encrypt_key, account, password)
        return {**_account_summary(account), "encryptedWIF": encrypted}
    logger.warning("wallet imported without password; returning unencrypted WIF address=%s", account.address)
    return {**_account_summary(account), "WIF": account.wif}

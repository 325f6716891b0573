"""Contract invocation (read and signed write paths) and the contract catalog."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from neo_mcp.contracts import FAMOUS_CONTRACTS, describe_contracts, find_contract
from neo_mcp.errors import ContractError, ValidationError
from neo_mcp.tools.context import ToolContext
from neo_mcp.tools.submission import estimate_fees, format_gas, simulate, submit_script
from neo_mcp.tools.validators import strip_hex_prefix
from neo_mcp.wallet.account import Account, address_to_script_hash
from neo_mcp.wallet.script import build_contract_call

logger = logging.getLogger(__name__)


def _script_hash(value: str) -> str:
    return f"0x{strip_hex_prefix(value).lower()}"


async def invoke_contract(
    ctx: ToolContext,
    script_hash: str,
    operation: str,
    args: Optional[List[Any]] = None,
    from_wif: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Call ``operation`` on a contract.

    Without ``from_wif`` the call is a read-only test invocation and the VM
    result stack is returned. With it, the call is signed and broadcast.
    """
    network = ctx.require_network()
    target = _script_hash(script_hash)
    script = build_contract_call(target, operation, args or [])

    if from_wif is not None:
        account: Account = ctx.wallet.import_account(from_wif)
        result = await submit_script(ctx, account, script)
        return {**result, "scriptHash": target, "operation": operation}

    invocation = await simulate(ctx, script)
    return {
        "scriptHash": target,
        "operation": operation,
        "network": network.value,
        "state": invocation.get("state"),
        "gasConsumed": format_gas(int(invocation.get("gasconsumed", 0))),
        "stack": invocation.get("stack", []),
    }


async def estimate_invoke_fees(
    ctx: ToolContext,
    signer_address: str,
    script_hash: str,
    operation: str,
    args: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    ctx.require_network()
    target = _script_hash(script_hash)
    script = build_contract_call(target, operation, args or [])
    fees = await estimate_fees(ctx, script, address_to_script_hash(signer_address))
    return {**fees, "scriptHash": target, "operation": operation}


async def list_famous_contracts(ctx: ToolContext) -> Dict[str, Any]:
    """Catalog for one network when given, otherwise every contract with its per-network hashes."""
    if ctx.network is not None:
        return {"network": ctx.network.value, "contracts": describe_contracts(ctx.network)}
    contracts = [
        {
            "name": contract.name,
            "description": contract.description,
            "scriptHashes": {network.value: script_hash for network, script_hash in contract.script_hashes.items()},
            "operationCount": len(contract.operations),
        }
        for contract in FAMOUS_CONTRACTS
    ]
    return {"contracts": contracts}


async def get_contract_info(ctx: ToolContext, name_or_hash: str) -> Dict[str, Any]:
    network = ctx.require_network()
    contract = find_contract(name_or_hash)
    if contract is None:
        raise ValidationError(f"Unknown contract: {name_or_hash}", field="nameOrHash")
    if not contract.is_available(network):
        raise ContractError(
            f"Contract {contract.name} is not deployed on {network.value}.",
            details={"contract": contract.name, "network": network.value},
        )
    return {
        "name": contract.name,
        "description": contract.description,
        "scriptHash": contract.script_hash(network),
        "network": network.value,
        "operations": [operation.to_dict() for operation in contract.operations],
    }

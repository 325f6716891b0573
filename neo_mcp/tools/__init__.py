"""LLM-facing tool implementations."""

from .context import ToolContext
from .network import get_network_mode
from .blockchain import (
    get_blockchain_info,
    get_block_count,
    get_block,
    get_transaction,
    check_transaction_status,
    get_balance,
)
from .assets import transfer_assets, estimate_transfer_fees, claim_gas
from .contracts import (
    invoke_contract,
    estimate_invoke_fees,
    list_famous_contracts,
    get_contract_info,
)
from .wallet import create_wallet, import_wallet

__all__ = [
    "ToolContext",
    "get_network_mode",
    "get_blockchain_info",
    "get_block_count",
    "get_block",
    "get_transaction",
    "check_transaction_status",
    "get_balance",
    "transfer_assets",
    "estimate_transfer_fees",
    "claim_gas",
    "invoke_contract",
    "estimate_invoke_fees",
    "list_famous_contracts",
    "get_contract_info",
    "create_wallet",
    "import_wallet",
]

"""Key handling, script building and transaction encoding for Neo N3."""

from .account import Account, address_to_script_hash, script_hash_to_address
from .provider import NeoWalletProvider, WalletProvider
from .script import ScriptBuilder, build_contract_call
from .transaction import Signer, Transaction, Witness

__all__ = [
    "Account",
    "NeoWalletProvider",
    "ScriptBuilder",
    "Signer",
    "Transaction",
    "WalletProvider",
    "Witness",
    "address_to_script_hash",
    "build_contract_call",
    "script_hash_to_address",
]

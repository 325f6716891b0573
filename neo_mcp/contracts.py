"""
Catalog of native tokens and well-known Neo N3 contracts.

Script hashes are big-endian with the ``0x`` prefix, as shown by explorers and
returned by the RPC API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from neo_mcp.config import NeoNetwork


@dataclass(frozen=True, slots=True)
class TokenInfo:
    symbol: str
    script_hash: str
    decimals: int


NATIVE_TOKENS: Dict[str, TokenInfo] = {
    "NEO": TokenInfo("NEO", "0xef4073a0f2b305a38ec4050e4d3d28bc40ea63f5", 0),
    "GAS": TokenInfo("GAS", "0xd2a4cff31913016155e38e474a2c06d08be276cf", 8),
}


def token_by_hash(script_hash: str) -> Optional[TokenInfo]:
    normalized = script_hash.lower()
    if not normalized.startswith("0x"):
        normalized = f"0x{normalized}"
    for token in NATIVE_TOKENS.values():
        if token.script_hash == normalized:
            return token
    return None


@dataclass(frozen=True, slots=True)
class ContractOperation:
    name: str
    description: str
    args: Tuple[Tuple[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "args": [{"name": arg_name, "type": arg_type} for arg_name, arg_type in self.args],
        }


@dataclass(frozen=True, slots=True)
class ContractDefinition:
    name: str
    description: str
    script_hashes: Dict[NeoNetwork, str]
    operations: Tuple[ContractOperation, ...] = field(default_factory=tuple)

    def script_hash(self, network: NeoNetwork) -> Optional[str]:
        return self.script_hashes.get(network)

    def is_available(self, network: NeoNetwork) -> bool:
        return network in self.script_hashes


FAMOUS_CONTRACTS: Tuple[ContractDefinition, ...] = (
    ContractDefinition(
        name="NEO",
        description="Native NEO governance token",
        script_hashes={
            NeoNetwork.MAINNET: NATIVE_TOKENS["NEO"].script_hash,
            NeoNetwork.TESTNET: NATIVE_TOKENS["NEO"].script_hash,
        },
        operations=(
            ContractOperation("balanceOf", "Get NEO balance of an account", (("account", "hash160"),)),
            ContractOperation(
                "transfer",
                "Transfer NEO",
                (("from", "hash160"), ("to", "hash160"), ("amount", "integer"), ("data", "any")),
            ),
            ContractOperation("unclaimedGas", "Unclaimed GAS for an account", (("account", "hash160"), ("end", "integer"))),
        ),
    ),
    ContractDefinition(
        name="GAS",
        description="Native GAS utility token",
        script_hashes={
            NeoNetwork.MAINNET: NATIVE_TOKENS["GAS"].script_hash,
            NeoNetwork.TESTNET: NATIVE_TOKENS["GAS"].script_hash,
        },
        operations=(
            ContractOperation("balanceOf", "Get GAS balance of an account", (("account", "hash160"),)),
            ContractOperation(
                "transfer",
                "Transfer GAS",
                (("from", "hash160"), ("to", "hash160"), ("amount", "integer"), ("data", "any")),
            ),
        ),
    ),
    ContractDefinition(
        name="NeoFS",
        description="Decentralized storage system on Neo N3 blockchain",
        script_hashes={
            NeoNetwork.MAINNET: "0x50ac1c37690cc2cfc594472833cf57505d5f46de",
            NeoNetwork.TESTNET: "0xccca29443855a1c455d72a3318cf605debb9e384",
        },
        operations=(
            ContractOperation("createContainer", "Create a storage container", (("ownerId", "string"), ("rules", "array"))),
            ContractOperation("deleteContainer", "Delete a storage container", (("containerId", "string"),)),
            ContractOperation("getContainers", "Get containers owned by an address", (("ownerId", "string"),)),
        ),
    ),
    ContractDefinition(
        name="NeoBurger",
        description="Neo N3 staking service",
        script_hashes={NeoNetwork.MAINNET: "0x48c40d4666f93408be1bef038b6722404d9a4c2a"},
        operations=(
            ContractOperation("exchange", "Deposit NEO to receive bNEO tokens", (("account", "hash160"),)),
            ContractOperation(
                "exchange_to_neo",
                "Withdraw NEO by returning bNEO tokens",
                (("account", "hash160"), ("amount", "integer")),
            ),
            ContractOperation("balanceOf", "Get bNEO balance of an account", (("account", "hash160"),)),
        ),
    ),
    ContractDefinition(
        name="Flamingo",
        description="Flamingo Finance FLM token and staking",
        script_hashes={NeoNetwork.MAINNET: "0xf970f4ccecd765b63732b821775dc38c25d74b39"},
        operations=(
            ContractOperation("balanceOf", "Get FLM balance of an account", (("account", "hash160"),)),
            ContractOperation("stake", "Stake FLM tokens", (("account", "hash160"), ("amount", "integer"))),
            ContractOperation("unstake", "Unstake FLM tokens", (("account", "hash160"), ("amount", "integer"))),
        ),
    ),
    ContractDefinition(
        name="NeoCompound",
        description="Automated interest compounding service",
        script_hashes={NeoNetwork.MAINNET: "0xd6c41383808d22d7d1e40f8a741e20dc24b858e7"},
        operations=(
            ContractOperation(
                "deposit", "Deposit assets", (("account", "hash160"), ("assetId", "hash160"), ("amount", "integer"))
            ),
            ContractOperation(
                "withdraw", "Withdraw assets", (("account", "hash160"), ("assetId", "hash160"), ("amount", "integer"))
            ),
            ContractOperation("getBalance", "Get deposited balance", (("account", "hash160"), ("assetId", "hash160"))),
        ),
    ),
    ContractDefinition(
        name="GrandShare",
        description="Decentralized funding pools",
        script_hashes={NeoNetwork.MAINNET: "0xbbcb7a1e3defbeeafc18b3358a27ccb93d0b2b13"},
        operations=(
            ContractOperation(
                "deposit", "Deposit into a pool", (("account", "hash160"), ("poolId", "integer"), ("amount", "integer"))
            ),
            ContractOperation(
                "withdraw", "Withdraw from a pool", (("account", "hash160"), ("poolId", "integer"), ("amount", "integer"))
            ),
            ContractOperation("getPoolDetails", "Get pool details", (("poolId", "integer"),)),
        ),
    ),
    ContractDefinition(
        name="GhostMarket",
        description="NFT marketplace",
        script_hashes={NeoNetwork.MAINNET: "0x7a8d62e32f1f4ed880f05e93d9b03d48e3b6add7"},
        operations=(
            ContractOperation(
                "mintToken", "Mint an NFT", (("owner", "hash160"), ("tokenURI", "string"), ("properties", "array"))
            ),
            ContractOperation(
                "listToken", "List an NFT for sale", (("tokenId", "integer"), ("price", "integer"), ("paymentToken", "hash160"))
            ),
            ContractOperation("buyToken", "Buy a listed NFT", (("tokenId", "integer"),)),
            ContractOperation("getTokenInfo", "Get NFT details", (("tokenId", "integer"),)),
        ),
    ),
)


def find_contract(name_or_hash: str, network: Optional[NeoNetwork] = None) -> Optional[ContractDefinition]:
    """Look up a contract by case-insensitive name or by script hash (any network unless given)."""
    key = name_or_hash.strip().lower()
    for contract in FAMOUS_CONTRACTS:
        if contract.name.lower() == key:
            return contract
    hash_key = key if key.startswith("0x") else f"0x{key}"
    for contract in FAMOUS_CONTRACTS:
        networks = [network] if network is not None else list(contract.script_hashes)
        for candidate in networks:
            if contract.script_hashes.get(candidate) == hash_key:
                return contract
    return None


def describe_contracts(network: NeoNetwork) -> List[Dict[str, Any]]:
    return [
        {
            "name": contract.name,
            "description": contract.description,
            "scriptHash": contract.script_hash(network),
            "available": contract.is_available(network),
            "operationCount": len(contract.operations),
            "network": network.value,
        }
        for contract in FAMOUS_CONTRACTS
    ]

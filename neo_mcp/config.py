"""
Configuration helpers for the Neo N3 MCP server.

This module centralizes RPC endpoint selection, network mode, default timeouts,
rate limiting and transaction monitoring settings. Values come from the
environment with conservative defaults; nothing secret is read or stored here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import List

# Default connection settings
DEFAULT_MAINNET_RPC = "https://mainnet1.neo.coz.io:443"
DEFAULT_TESTNET_RPC = "https://testnet1.neo.coz.io:443"


class NeoNetwork(str, Enum):
    """Network namespaces the gateway can route to."""

    MAINNET = "mainnet"
    TESTNET = "testnet"


class NetworkMode(str, Enum):
    MAINNET_ONLY = "mainnet_only"
    TESTNET_ONLY = "testnet_only"
    BOTH = "both"


# Network magic numbers used when signing transactions.
NETWORK_MAGIC = {
    NeoNetwork.MAINNET: 860833102,
    NeoNetwork.TESTNET: 894710606,
}

# Blocks a freshly built transaction stays valid for (roughly one day).
VALID_UNTIL_BLOCK_INCREMENT = 5760


def parse_network_mode(value: str | None) -> NetworkMode:
    """Map loose env values (``mainnet``, ``testnet_only``...) to a NetworkMode."""
    if not value:
        return NetworkMode.BOTH
    normalized = value.strip().lower()
    if normalized in {"mainnet", "mainnet_only"}:
        return NetworkMode.MAINNET_ONLY
    if normalized in {"testnet", "testnet_only"}:
        return NetworkMode.TESTNET_ONLY
    return NetworkMode.BOTH


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw:
        try:
            return int(raw)
        except ValueError:
            return default
    return default


def _load_timeout() -> float:
    raw_timeout = os.getenv("NEO_HTTP_TIMEOUT")
    if raw_timeout:
        try:
            return float(raw_timeout)
        except ValueError:
            return 10.0
    return 10.0


def _load_poll_interval() -> float:
    raw = os.getenv("NEO_TX_POLL_INTERVAL")
    if raw:
        try:
            value = float(raw)
        except ValueError:
            return 15.0
        return value if value > 0 else 15.0
    return 15.0


DEFAULT_TIMEOUT = _load_timeout()

# Rate limiting
RATE_LIMITING_ENABLED = _env_bool("RATE_LIMITING_ENABLED", True)
MAX_REQUESTS_PER_MINUTE = _env_int("MAX_REQUESTS_PER_MINUTE", 60)
RATE_LIMIT_WINDOW_MS = _env_int("RATE_LIMIT_WINDOW_MS", 60_000)

# Transaction monitoring
TX_POLL_INTERVAL = _load_poll_interval()
TX_TIMEOUT_MS = _env_int("NEO_TX_TIMEOUT_MS", 3_600_000)
TX_CACHE_TTL_MS = 86_400_000

LOG_LEVEL = os.getenv("NEO_MCP_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("NEO_MCP_LOG_FORMAT", "json")  # json or plain


@dataclass(slots=True)
class NeoConfig:
    """Runtime configuration for the gateway and its Neo N3 backends."""

    mainnet_rpc_url: str = os.getenv("NEO_MAINNET_RPC_URL", DEFAULT_MAINNET_RPC)
    testnet_rpc_url: str = os.getenv("NEO_TESTNET_RPC_URL", DEFAULT_TESTNET_RPC)
    network_mode: NetworkMode = parse_network_mode(os.getenv("NEO_NETWORK_MODE"))
    require_network: bool = _env_bool("NEO_MCP_REQUIRE_NETWORK", False)
    timeout: float = DEFAULT_TIMEOUT
    rate_limiting_enabled: bool = RATE_LIMITING_ENABLED
    max_requests_per_window: int = MAX_REQUESTS_PER_MINUTE
    rate_limit_window_ms: int = RATE_LIMIT_WINDOW_MS
    tx_poll_interval: float = TX_POLL_INTERVAL
    tx_timeout_ms: int = TX_TIMEOUT_MS
    tx_cache_ttl_ms: int = TX_CACHE_TTL_MS
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT

    def enabled_networks(self) -> List[NeoNetwork]:
        """Networks this configuration allows, in a stable order."""
        if self.network_mode == NetworkMode.MAINNET_ONLY:
            return [NeoNetwork.MAINNET]
        if self.network_mode == NetworkMode.TESTNET_ONLY:
            return [NeoNetwork.TESTNET]
        return [NeoNetwork.MAINNET, NeoNetwork.TESTNET]

    def default_network(self) -> NeoNetwork:
        if self.network_mode == NetworkMode.TESTNET_ONLY:
            return NeoNetwork.TESTNET
        return NeoNetwork.MAINNET

    def rpc_url(self, network: NeoNetwork) -> str:
        if network == NeoNetwork.TESTNET:
            return self.testnet_rpc_url
        return self.mainnet_rpc_url


default_config = NeoConfig()

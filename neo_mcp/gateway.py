"""
Service wiring: one backend, wallet provider, monitor and cache per network.

``build_gateway`` constructs every collaborator once at startup and hands
them to the dispatcher explicitly; nothing in the core reaches for module
globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from neo_mcp.cache import Clock, TTLCache, now_ms
from neo_mcp.config import NeoConfig, NeoNetwork, default_config
from neo_mcp.errors import ConfigurationError
from neo_mcp.metrics import MetricsRecorder
from neo_mcp.monitor import TransactionMonitor
from neo_mcp.neo_api import ChainBackend, NeoRpcClient
from neo_mcp.rate_limiter import FixedWindowRateLimiter
from neo_mcp.wallet import NeoWalletProvider, WalletProvider

logger = logging.getLogger(__name__)

CHAIN_CACHE_TTL_MS = 5_000


@dataclass
class NetworkServices:
    network: NeoNetwork
    backend: ChainBackend
    wallet: WalletProvider
    monitor: TransactionMonitor
    cache: TTLCache[Any]


@dataclass
class Gateway:
    config: NeoConfig
    networks: Dict[NeoNetwork, NetworkServices]
    wallet: WalletProvider
    rate_limiter: FixedWindowRateLimiter
    metrics: MetricsRecorder = field(default_factory=MetricsRecorder)

    def default_network(self) -> NeoNetwork:
        """Configured default when bound, else the first bound network."""
        preferred = self.config.default_network()
        if preferred in self.networks:
            return preferred
        return next(iter(self.networks))

    async def start(self) -> None:
        self.rate_limiter.start()
        for services in self.networks.values():
            services.monitor.start()
        logger.info("gateway started networks=%s", ",".join(network.value for network in self.networks))

    async def aclose(self) -> None:
        await self.rate_limiter.stop()
        for services in self.networks.values():
            await services.monitor.stop()
            await services.backend.aclose()
        logger.info("gateway stopped")


def build_gateway(
    config: Optional[NeoConfig] = None,
    *,
    backends: Optional[Mapping[NeoNetwork, ChainBackend]] = None,
    wallet: Optional[WalletProvider] = None,
    metrics: Optional[MetricsRecorder] = None,
    clock: Clock = now_ms,
) -> Gateway:
    """
    Bind services for every enabled network.

    When ``backends`` is given only those networks are bound (tests pass stubs
    here); otherwise each enabled network with a non-empty RPC URL gets a
    NeoRpcClient. Raises ConfigurationError when no network ends up bound.
    """
    config = config or default_config
    wallet = wallet or NeoWalletProvider()
    networks: Dict[NeoNetwork, NetworkServices] = {}

    for network in config.enabled_networks():
        if backends is not None:
            backend = backends.get(network)
            if backend is None:
                continue
        else:
            rpc_url = config.rpc_url(network)
            if not rpc_url:
                logger.warning("network=%s enabled but no RPC URL configured; skipping", network.value)
                continue
            backend = NeoRpcClient(rpc_url, timeout=config.timeout)

        networks[network] = NetworkServices(
            network=network,
            backend=backend,
            wallet=wallet,
            monitor=TransactionMonitor(
                network,
                backend,
                poll_interval_s=config.tx_poll_interval,
                timeout_ms=config.tx_timeout_ms,
                cache_ttl_ms=config.tx_cache_ttl_ms,
                clock=clock,
            ),
            cache=TTLCache(f"chain:{network.value}", CHAIN_CACHE_TTL_MS, clock=clock),
        )

    if not networks:
        raise ConfigurationError(
            "No Neo N3 network is configured. Check NEO_NETWORK_MODE and the NEO_*_RPC_URL settings."
        )

    return Gateway(
        config=config,
        networks=networks,
        wallet=wallet,
        rate_limiter=FixedWindowRateLimiter(
            config.max_requests_per_window,
            config.rate_limit_window_ms,
            config.rate_limiting_enabled,
            clock=clock,
        ),
        metrics=metrics or MetricsRecorder(),
    )

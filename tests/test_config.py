import pytest

from neo_mcp.config import (
    NeoConfig,
    NeoNetwork,
    NetworkMode,
    _env_bool,
    _env_int,
    _load_poll_interval,
    _load_timeout,
    parse_network_mode,
)
from neo_mcp.errors import ConfigurationError
from neo_mcp.gateway import build_gateway
from neo_mcp.neo_api import NeoRpcClient


def test_load_timeout_invalid_env(monkeypatch):
    monkeypatch.setenv("NEO_HTTP_TIMEOUT", "not-a-number")
    assert _load_timeout() == 10.0  # falls back to default on parse error


def test_load_timeout_valid_env(monkeypatch):
    monkeypatch.setenv("NEO_HTTP_TIMEOUT", "5.5")
    assert _load_timeout() == 5.5


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, NetworkMode.BOTH),
        ("", NetworkMode.BOTH),
        ("mainnet", NetworkMode.MAINNET_ONLY),
        ("MAINNET_ONLY", NetworkMode.MAINNET_ONLY),
        (" testnet ", NetworkMode.TESTNET_ONLY),
        ("testnet_only", NetworkMode.TESTNET_ONLY),
        ("whatever", NetworkMode.BOTH),
    ],
)
def test_parse_network_mode(raw, expected):
    assert parse_network_mode(raw) is expected


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("NEO_TEST_FLAG", "off")
    assert _env_bool("NEO_TEST_FLAG", True) is False
    monkeypatch.setenv("NEO_TEST_FLAG", "yes")
    assert _env_bool("NEO_TEST_FLAG", False) is True
    monkeypatch.delenv("NEO_TEST_FLAG")
    assert _env_bool("NEO_TEST_FLAG", True) is True

    monkeypatch.setenv("NEO_TEST_INT", "42")
    assert _env_int("NEO_TEST_INT", 1) == 42
    monkeypatch.setenv("NEO_TEST_INT", "forty-two")
    assert _env_int("NEO_TEST_INT", 1) == 1


@pytest.mark.parametrize("raw,expected", [("2.5", 2.5), ("0", 15.0), ("-3", 15.0), ("abc", 15.0)])
def test_poll_interval_env(monkeypatch, raw, expected):
    monkeypatch.setenv("NEO_TX_POLL_INTERVAL", raw)
    assert _load_poll_interval() == expected


def test_network_selection():
    both = NeoConfig(network_mode=NetworkMode.BOTH, mainnet_rpc_url="http://main", testnet_rpc_url="http://test")
    assert both.enabled_networks() == [NeoNetwork.MAINNET, NeoNetwork.TESTNET]
    assert both.default_network() is NeoNetwork.MAINNET
    assert both.rpc_url(NeoNetwork.TESTNET) == "http://test"

    testnet = NeoConfig(network_mode=NetworkMode.TESTNET_ONLY)
    assert testnet.enabled_networks() == [NeoNetwork.TESTNET]
    assert testnet.default_network() is NeoNetwork.TESTNET


def test_build_gateway_without_any_network_fails():
    config = NeoConfig(network_mode=NetworkMode.BOTH, mainnet_rpc_url="", testnet_rpc_url="")
    with pytest.raises(ConfigurationError):
        build_gateway(config)


@pytest.mark.asyncio
async def test_build_gateway_skips_networks_without_url():
    config = NeoConfig(network_mode=NetworkMode.BOTH, mainnet_rpc_url="", testnet_rpc_url="http://test:20332")
    gateway = build_gateway(config)
    assert list(gateway.networks) == [NeoNetwork.TESTNET]
    # Configured default is mainnet, which is not bound.
    assert gateway.default_network() is NeoNetwork.TESTNET
    backend = gateway.networks[NeoNetwork.TESTNET].backend
    assert isinstance(backend, NeoRpcClient)
    assert backend.rpc_url == "http://test:20332"
    await gateway.aclose()


@pytest.mark.asyncio
async def test_gateway_lifecycle_closes_backends(make_gateway, backend):
    gateway = make_gateway(rate_limiting_enabled=True)
    await gateway.start()
    await gateway.aclose()
    assert backend.closed is True

import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from neo_mcp.config import NeoConfig, NetworkMode  # noqa: E402
from neo_mcp.gateway import build_gateway  # noqa: E402
from neo_mcp.wallet import Account  # noqa: E402

SENDER_KEY = bytes.fromhex("11" * 32)
RECIPIENT_KEY = bytes.fromhex("22" * 32)
SUBMITTED_TXID = "0x" + "ab" * 32


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class StubBackend:
    """In-memory chain backend that records every call."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.block_count = 1000
        self.balances: Dict[str, str] = {}
        self.validators: List[Dict[str, Any]] = [{"publickey": "02" + "aa" * 32, "votes": "100"}]
        self.invoke_result: Dict[str, Any] = {"state": "HALT", "gasconsumed": "997775", "stack": []}
        self.raw_transaction: Optional[Dict[str, Any]] = None
        self.raw_error: Optional[Exception] = None
        self.network_fee = 1_230_000
        self.unclaimed = "0.5"
        self.sent: List[str] = []
        self.invoked: List[Any] = []
        self.closed = False

    async def get_block_count(self) -> int:
        self.calls.append("get_block_count")
        return self.block_count

    async def get_block(self, hash_or_height):
        self.calls.append("get_block")
        return {"index": hash_or_height if isinstance(hash_or_height, int) else 1, "hash": "0x" + "cd" * 32}

    async def get_transaction(self, txid: str):
        self.calls.append("get_transaction")
        return {"hash": txid}

    async def get_raw_transaction_with_confirmations(self, txid: str):
        self.calls.append("get_raw_transaction_with_confirmations")
        if self.raw_error is not None:
            raise self.raw_error
        return self.raw_transaction

    async def get_balance(self, address: str) -> Dict[str, str]:
        self.calls.append("get_balance")
        return dict(self.balances)

    async def invoke_script(self, script: str, signers=None):
        self.calls.append("invoke_script")
        self.invoked.append((script, signers))
        return dict(self.invoke_result)

    async def send_raw_transaction(self, signed_tx: str) -> str:
        self.calls.append("send_raw_transaction")
        self.sent.append(signed_tx)
        return SUBMITTED_TXID

    async def get_validators(self):
        self.calls.append("get_validators")
        return list(self.validators)

    async def get_unclaimed_gas(self, address: str) -> str:
        self.calls.append("get_unclaimed_gas")
        return self.unclaimed

    async def calculate_network_fee(self, tx: str) -> int:
        self.calls.append("calculate_network_fee")
        return self.network_fee

    async def aclose(self) -> None:
        self.closed = True


def make_config(**overrides) -> NeoConfig:
    settings = {
        "network_mode": NetworkMode.TESTNET_ONLY,
        "require_network": False,
        "rate_limiting_enabled": False,
        "max_requests_per_window": 60,
        "rate_limit_window_ms": 60_000,
        "tx_poll_interval": 3600.0,
        "tx_timeout_ms": 3_600_000,
    }
    settings.update(overrides)
    return NeoConfig(**settings)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def make_gateway(backend, clock):
    def _make(backends=None, **overrides):
        config = make_config(**overrides)
        if backends is None:
            backends = {network: backend for network in config.enabled_networks()}
        return build_gateway(config, backends=backends, clock=clock)

    return _make


@pytest.fixture
def sender():
    return Account.from_private_key(SENDER_KEY)


@pytest.fixture
def recipient():
    return Account.from_private_key(RECIPIENT_KEY)

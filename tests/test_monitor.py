import asyncio

import pytest

from neo_mcp.config import NeoNetwork
from neo_mcp.monitor import NOT_FOUND_AFTER_TIMEOUT, TransactionMonitor, TransactionStatus
from neo_mcp.neo_api.client import NodeUnreachableError

TXID = "0x" + "AB" * 32
TIMEOUT_MS = 60_000


def _monitor(backend, clock, **kwargs):
    kwargs.setdefault("poll_interval_s", 3600.0)
    return TransactionMonitor(NeoNetwork.TESTNET, backend, timeout_ms=TIMEOUT_MS, clock=clock, **kwargs)


@pytest.mark.asyncio
async def test_track_is_idempotent(backend, clock):
    monitor = _monitor(backend, clock)
    first = monitor.track_transaction(TXID)
    clock.advance(5_000)
    second = monitor.track_transaction(TXID[2:].lower())
    assert first is second
    assert first.txid == "ab" * 32
    assert first.status is TransactionStatus.PENDING
    assert first.last_checked == clock.now - 5_000
    assert len(monitor.get_all_transactions()) == 1
    assert monitor.get_pending_count() == 1
    await monitor.stop()


@pytest.mark.asyncio
async def test_confirmed_record_is_terminal(backend, clock):
    monitor = _monitor(backend, clock)
    record = monitor.track_transaction(TXID)
    backend.raw_transaction = {"confirmations": 3, "blockheight": 42, "blocktime": 1_700_000_000}

    await monitor.poll_once()
    assert record.status is TransactionStatus.CONFIRMED
    assert record.confirmations == 3
    assert record.block_height == 42
    assert record.timestamp == 1_700_000_000_000
    assert monitor.get_pending_count() == 0

    # Later polls leave terminal records alone and do not hit the backend.
    backend.raw_transaction = None
    clock.advance(TIMEOUT_MS * 2)
    calls = len(backend.calls)
    await monitor.poll_once()
    assert record.status is TransactionStatus.CONFIRMED
    assert len(backend.calls) == calls
    assert record.to_dict()["status"] == "confirmed"
    await monitor.stop()


@pytest.mark.asyncio
async def test_zero_confirmations_stays_pending(backend, clock):
    monitor = _monitor(backend, clock)
    record = monitor.track_transaction(TXID)
    backend.raw_transaction = {"confirmations": 0}
    clock.advance(1_000)
    await monitor.poll_once()
    assert record.status is TransactionStatus.PENDING
    assert record.last_checked == clock.now
    await monitor.stop()


@pytest.mark.asyncio
async def test_not_found_fails_only_after_timeout(backend, clock):
    monitor = _monitor(backend, clock)
    record = monitor.track_transaction(TXID)

    clock.advance(TIMEOUT_MS)
    await monitor.poll_once()
    assert record.status is TransactionStatus.PENDING

    clock.advance(1)
    await monitor.poll_once()
    assert record.status is TransactionStatus.FAILED
    assert record.error == NOT_FOUND_AFTER_TIMEOUT
    assert record.to_dict()["error"] == NOT_FOUND_AFTER_TIMEOUT
    await monitor.stop()


@pytest.mark.asyncio
async def test_backend_error_refreshes_last_checked(backend, clock):
    monitor = _monitor(backend, clock)
    record = monitor.track_transaction(TXID)
    backend.raw_error = NodeUnreachableError("down", code="ECONNREFUSED")

    clock.advance(TIMEOUT_MS - 1)
    await monitor.poll_once()
    assert record.status is TransactionStatus.PENDING
    assert record.last_checked == clock.now

    # The refreshed timestamp restarts the not-found window.
    backend.raw_error = None
    clock.advance(TIMEOUT_MS - 1)
    await monitor.poll_once()
    assert record.status is TransactionStatus.PENDING
    await monitor.stop()


@pytest.mark.asyncio
async def test_records_expire_with_cache_ttl(backend, clock):
    monitor = _monitor(backend, clock, cache_ttl_ms=1_000)
    monitor.track_transaction(TXID)
    clock.advance(1_001)
    assert monitor.get_transaction(TXID) is None
    assert monitor.get_all_transactions() == []
    await monitor.stop()


@pytest.mark.asyncio
async def test_listing_drops_expired_records(backend, clock):
    monitor = _monitor(backend, clock, cache_ttl_ms=1_000)
    monitor.track_transaction(TXID)
    monitor.track_transaction("0x" + "cd" * 32)
    clock.advance(1_001)
    assert monitor.get_all_transactions() == []
    assert monitor._records.size() == 0
    await monitor.stop()


@pytest.mark.asyncio
async def test_stop_lets_in_flight_tick_finish(backend, clock):
    entered = asyncio.Event()
    release = asyncio.Event()

    async def slow_lookup(txid):
        entered.set()
        await release.wait()
        return {"confirmations": 1, "blockheight": 7, "blocktime": 1_700_000_000_000}

    backend.get_raw_transaction_with_confirmations = slow_lookup
    monitor = _monitor(backend, clock, poll_interval_s=0.01)
    record = monitor.track_transaction(TXID)

    await asyncio.wait_for(entered.wait(), timeout=2)
    stopper = asyncio.ensure_future(monitor.stop())
    await asyncio.sleep(0)
    assert not stopper.done()
    release.set()
    await asyncio.wait_for(stopper, timeout=2)

    assert record.status is TransactionStatus.CONFIRMED
    assert record.timestamp == 1_700_000_000_000


@pytest.mark.asyncio
async def test_stop_cancels_idle_loop(backend, clock):
    monitor = _monitor(backend, clock)
    monitor.track_transaction(TXID)
    task = monitor._task
    assert task is not None and not task.done()
    await monitor.stop()
    assert task.done()
    await monitor.stop()

"""
Per-network transaction confirmation monitor.

Each submitted transaction gets a PENDING record keyed ``network:txid``. A
single asyncio task polls the chain backend every ``poll_interval_s`` seconds
and moves records to CONFIRMED (at least one confirmation) or FAILED (unknown
to the node for longer than ``timeout_ms`` since the last successful check).
Ticks never overlap: ``poll_once`` holds a lock for the whole pass, so a slow
backend delays the next tick instead of stacking concurrent passes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from neo_mcp.cache import Clock, TTLCache, now_ms
from neo_mcp.config import NeoNetwork
from neo_mcp.error_normalizer import normalize_error
from neo_mcp.neo_api.backend import ChainBackend

logger = logging.getLogger(__name__)

NOT_FOUND_AFTER_TIMEOUT = "Transaction not found after timeout"


def normalize_txid(txid: str) -> str:
    return (txid[2:] if txid.lower().startswith("0x") else txid).lower()


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class TransactionRecord:
    txid: str
    network: NeoNetwork
    last_checked: float
    status: TransactionStatus = TransactionStatus.PENDING
    confirmations: int = 0
    block_height: Optional[int] = None
    timestamp: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "txid": self.txid,
            "status": self.status.value,
            "confirmations": self.confirmations,
            "lastChecked": int(self.last_checked),
            "network": self.network.value,
        }
        if self.block_height is not None:
            payload["blockHeight"] = self.block_height
        if self.timestamp is not None:
            payload["timestamp"] = self.timestamp
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _block_time_ms(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return None
    # Neo N3 reports milliseconds; older nodes and tests may hand back seconds.
    return numeric * 1000 if numeric < 1_000_000_000_000 else numeric


class TransactionMonitor:
    """Tracks transactions for one network against one chain backend."""

    def __init__(
        self,
        network: NeoNetwork,
        backend: ChainBackend,
        *,
        poll_interval_s: float = 15.0,
        timeout_ms: float = 3_600_000,
        cache_ttl_ms: float = 86_400_000,
        clock: Clock = now_ms,
    ) -> None:
        self.network = network
        self.backend = backend
        self.poll_interval_s = poll_interval_s
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._records: TTLCache[TransactionRecord] = TTLCache(
            f"transactions:{network.value}", cache_ttl_ms, clock=clock
        )
        self._poll_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        self._in_tick = False
        logger.info("transaction monitor initialized network=%s", network.value, extra={"network": network.value})

    def _key(self, txid: str) -> str:
        return f"{self.network.value}:{normalize_txid(txid)}"

    def track_transaction(self, txid: str) -> TransactionRecord:
        """Register ``txid`` (idempotent) and return its record."""
        key = self._key(txid)
        existing = self._records.get(key)
        if existing is not None:
            return existing

        record = TransactionRecord(
            txid=normalize_txid(txid),
            network=self.network,
            last_checked=self._clock(),
        )
        self._records.set(key, record)
        logger.info(
            "tracking transaction txid=%s network=%s",
            record.txid,
            self.network.value,
            extra={"txid": record.txid, "network": self.network.value},
        )
        self.start()
        return record

    def get_transaction(self, txid: str) -> Optional[TransactionRecord]:
        return self._records.get(self._key(txid))

    def get_all_transactions(self) -> List[TransactionRecord]:
        return [record for _, record in self._records.entries()]

    def get_pending_count(self) -> int:
        return sum(1 for record in self.get_all_transactions() if record.status == TransactionStatus.PENDING)

    async def poll_once(self) -> None:
        """Check every pending record once; concurrent callers wait for the running pass."""
        async with self._poll_lock:
            pending = [record for record in self.get_all_transactions() if record.status == TransactionStatus.PENDING]
            if not pending:
                return
            logger.debug("checking %s pending transactions network=%s", len(pending), self.network.value)
            for record in pending:
                await self._check(record)

    async def _check(self, record: TransactionRecord) -> None:
        try:
            tx = await self.backend.get_raw_transaction_with_confirmations(record.txid)
        except Exception as exc:
            envelope = normalize_error(exc)
            logger.warning(
                "error checking transaction txid=%s network=%s error=%s",
                record.txid,
                self.network.value,
                envelope.message,
                extra={"txid": record.txid, "network": self.network.value, "error": envelope.kind.value},
            )
            if not record.is_terminal:
                record.last_checked = self._clock()
            return

        # The record may have been resolved by another path while the call was in flight.
        if record.is_terminal:
            return

        now = self._clock()
        if tx is None:
            if now - record.last_checked > self.timeout_ms:
                record.status = TransactionStatus.FAILED
                record.error = NOT_FOUND_AFTER_TIMEOUT
                record.last_checked = now
                logger.warning(
                    "transaction failed txid=%s network=%s reason=not_found_after_timeout",
                    record.txid,
                    self.network.value,
                    extra={"txid": record.txid, "network": self.network.value},
                )
            return

        confirmations = int(tx.get("confirmations") or 0)
        record.last_checked = now
        if confirmations < 1:
            logger.debug("transaction still pending txid=%s network=%s", record.txid, self.network.value)
            return

        record.status = TransactionStatus.CONFIRMED
        record.confirmations = confirmations
        height = tx.get("blockheight")
        record.block_height = int(height) if height is not None else None
        record.timestamp = _block_time_ms(tx.get("blocktime"))
        logger.info(
            "transaction confirmed txid=%s network=%s confirmations=%s",
            record.txid,
            self.network.value,
            confirmations,
            extra={"txid": record.txid, "network": self.network.value},
        )

    def start(self) -> None:
        """Start the poll loop if an event loop is running and it is not already active."""
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._stopping = False
        self._task = loop.create_task(self._run())
        logger.debug("transaction polling started network=%s", self.network.value)

    async def stop(self) -> None:
        """Stop scheduling ticks. A pass already in flight finishes and its results apply."""
        self._stopping = True
        task, self._task = self._task, None
        if task is None:
            return
        if self._in_tick:
            await task
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while not self._stopping:
            await asyncio.sleep(self.poll_interval_s)
            if self._stopping:
                break
            self._in_tick = True
            try:
                await self.poll_once()
            except Exception:
                logger.exception("transaction poll failed network=%s", self.network.value)
            finally:
                self._in_tick = False

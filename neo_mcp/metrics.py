"""In-process counters for the gateway (per worker, reset on restart)."""

from __future__ import annotations

from collections import Counter, deque
from threading import Lock
from typing import Deque, Dict, Tuple

RECENT_DURATIONS = 100


class MetricsRecorder:
    """
    Request and tool-call counters exposed on ``/metrics``.

    Only the most recent request durations are kept so memory stays bounded.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._requests = 0
        self._durations: Deque[Tuple[str, float]] = deque(maxlen=RECENT_DURATIONS)
        self._rate_limited = 0
        self._tool_success: Counter[str] = Counter()
        self._tool_error: Counter[str] = Counter()
        self._error_codes: Counter[str] = Counter()
        self._transactions_submitted: Counter[str] = Counter()

    def incr_request(self) -> None:
        with self._lock:
            self._requests += 1

    def record_duration(self, request_id: str, duration_ms: float) -> None:
        with self._lock:
            self._durations.append((request_id, duration_ms))

    def incr_rate_limited(self) -> None:
        with self._lock:
            self._rate_limited += 1

    def record_tool(self, tool: str, *, success: bool, error_code: str | None = None) -> None:
        with self._lock:
            if success:
                self._tool_success[tool] += 1
                return
            self._tool_error[tool] += 1
            if error_code:
                self._error_codes[error_code] += 1

    def record_submission(self, network: str) -> None:
        with self._lock:
            self._transactions_submitted[network] += 1

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "requests": self._requests,
                "rate_limited": self._rate_limited,
                "tool_success": dict(self._tool_success),
                "tool_error": dict(self._tool_error),
                "error_codes": dict(self._error_codes),
                "transactions_submitted": dict(self._transactions_submitted),
                "recent_request_durations_ms": dict(self._durations),
            }

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._durations.clear()
            self._rate_limited = 0
            self._tool_success.clear()
            self._tool_error.clear()
            self._error_codes.clear()
            self._transactions_submitted.clear()

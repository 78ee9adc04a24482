"""Per-client fixed-window rate limiting.

State lives in process memory only: it is lost on restart and not shared between
workers or instances. A shared store (e.g. Redis) can be plugged in behind the
`RateLimiter` protocol; the API layer only depends on `check_and_record`.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

ANONYMOUS_CLIENT_KEY = "anonymous"

_FORWARDED_FOR_HEADER = "x-forwarded-for"
_SESSION_HEADER = "x-session-id"


class RateLimiter(Protocol):
    def check_and_record(self, client_key: str) -> bool: ...


@dataclass
class ClientWindowState:
    count: int
    window_reset_at: float


class FixedWindowRateLimiter:
    """
    Count requests per client key inside fixed windows.

    The (N+1)th request within one window is the first rejected. The whole
    reset/increment/compare sequence runs under one lock so concurrent requests for
    the same key cannot lose increments.

    Stale keys are never evicted; the map grows with the number of distinct clients
    seen by this process.
    """

    def __init__(
        self,
        *,
        window_seconds: float = 60.0,
        max_requests: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._window_seconds = window_seconds
        self._max_requests = max_requests
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[str, ClientWindowState] = {}

    def check_and_record(self, client_key: str) -> bool:
        """Record one request for `client_key`; return True when it is over the limit."""

        with self._lock:
            now = self._clock()
            state = self._states.get(client_key)
            if state is None or now > state.window_reset_at:
                state = ClientWindowState(count=0, window_reset_at=now + self._window_seconds)
                self._states[client_key] = state
            state.count += 1
            return state.count > self._max_requests

    def snapshot(self, client_key: str) -> ClientWindowState | None:
        with self._lock:
            state = self._states.get(client_key)
            if state is None:
                return None
            return ClientWindowState(count=state.count, window_reset_at=state.window_reset_at)


def client_key_from_headers(headers: Mapping[str, str]) -> str:
    """
    Derive the rate-limit key for a request.

    Uses the first X-Forwarded-For hop, then X-Session-ID. Callers with neither share
    the "anonymous" bucket.
    """

    forwarded_for = headers.get(_FORWARDED_FOR_HEADER)
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    session_id = (headers.get(_SESSION_HEADER) or "").strip()
    if session_id:
        return session_id

    return ANONYMOUS_CLIENT_KEY

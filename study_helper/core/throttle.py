"""
Process-local per-IP request throttles.

Sliding window over request timestamps, keyed by (scope, client IP). State
lives in the ``RequestThrottle`` instance owned by the app, so each worker
process throttles independently.
"""
import logging
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Dict, Tuple

from fastapi import Request

from study_helper.core.errors import Throttled

logger = logging.getLogger(__name__)

THROTTLE_MESSAGES = {
    "auth": "Too many login attempts, please try again later.",
    "ai": "Too many AI requests, please slow down.",
    "api": "Too many requests from this IP, please try again later.",
}


class RequestThrottle:
    def __init__(
        self,
        limits: Dict[str, Tuple[int, int]],
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limits = limits
        self.enabled = enabled
        self.clock = clock
        self._buckets: Dict[Tuple[str, str], deque] = defaultdict(deque)
        self._lock = threading.Lock()
        self._sweep_every = max((window for _, window in limits.values()), default=60)
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Drop buckets whose newest hit has left its scope's window. Caller holds the lock."""
        stale = [
            key for key, dq in self._buckets.items()
            if not dq or now - dq[-1] >= self.limits[key[0]][1]
        ]
        for key in stale:
            del self._buckets[key]
        self._last_sweep = now
        if stale:
            logger.debug("Throttle sweep dropped %s idle buckets", len(stale))

    def hit(self, scope: str, client: str) -> None:
        if not self.enabled or scope not in self.limits:
            return
        limit, window = self.limits[scope]
        key = (scope, client)
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self._sweep_every:
                self._sweep(now)
            dq = self._buckets[key]
            while dq and now - dq[0] >= window:
                dq.popleft()
            if len(dq) >= limit:
                logger.info("Throttled %s for scope %s", client, scope)
                raise Throttled(THROTTLE_MESSAGES.get(scope))
            dq.append(now)

    def bucket_count(self) -> int:
        with self._lock:
            return len(self._buckets)


def throttle(scope: str):
    """FastAPI dependency factory applying the app's throttle for ``scope``."""
    def dep(request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        request.app.state.throttle.hit(scope, client)
    return dep

import threading
import time
from collections import defaultdict, deque
from typing import Dict

from fitplan.config import AI_RATE_LIMIT_REQUESTS, AI_RATE_LIMIT_WINDOW_SECONDS


class RateLimiter:
    """
    In-process sliding-window limiter for AI generation calls.
    check() returns {"allowed", "message", "wait_seconds"}.
    """

    def __init__(self, max_requests: int = AI_RATE_LIMIT_REQUESTS, window_seconds: int = AI_RATE_LIMIT_WINDOW_SECONDS, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls = defaultdict(deque)
        self._lock = threading.Lock()

    def check(self, user_id: int) -> Dict:
        now = self._clock()
        with self._lock:
            calls = self._calls[user_id]
            while calls and now - calls[0] >= self.window_seconds:
                calls.popleft()

            if len(calls) >= self.max_requests:
                wait_seconds = int(self.window_seconds - (now - calls[0])) + 1
                return {
                    "allowed": False,
                    "message": f"AI limit reached. Try again in {wait_seconds} seconds.",
                    "wait_seconds": wait_seconds,
                }

            calls.append(now)
            return {"allowed": True, "message": "", "wait_seconds": 0}

    def reset(self, user_id: int = None):
        with self._lock:
            if user_id is None:
                self._calls.clear()
            else:
                self._calls.pop(user_id, None)


rate_limiter = RateLimiter()

"""Failed-login counting per username.

Uses Redis when REDIS_URL is configured and reachable; otherwise counts in
process memory, which is enough for a single worker.
"""
import logging
import threading
import time
from typing import Dict, Optional, Tuple

from redis import Redis

from . import config

logger = logging.getLogger(__name__)


def connect_redis(url: Optional[str] = None):
    """Return a connected Redis client, or None when unset or unreachable."""
    url = url or config.redis_url()
    if not url:
        return None
    try:
        client = Redis.from_url(url, decode_responses=True)
        client.ping()
        logger.info("Connected to Redis.")
        return client
    except Exception as e:
        logger.warning(f"Redis not available: {e}")
        return None


class LoginAttemptTracker:
    def __init__(self, redis_client=None, max_attempts: Optional[int] = None, window_seconds: Optional[int] = None):
        self.redis = redis_client
        self.max_attempts = max_attempts if max_attempts is not None else config.max_login_attempts()
        self.window_seconds = window_seconds if window_seconds is not None else config.login_window_seconds()
        # username -> (failures, window start)
        self._local: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(username: str) -> str:
        return f"login_failures:{username}"

    def _sweep(self, now: float) -> None:
        expired = [u for u, (_, started) in self._local.items() if now - started > self.window_seconds]
        for u in expired:
            del self._local[u]

    def failures(self, username: str) -> int:
        if self.redis is not None:
            raw = self.redis.get(self._key(username))
            return int(raw) if raw else 0
        with self._lock:
            count, started = self._local.get(username, (0, 0.0))
            if time.monotonic() - started > self.window_seconds:
                self._local.pop(username, None)
                return 0
            return count

    def is_locked(self, username: str) -> bool:
        return self.failures(username) >= self.max_attempts

    def record_failure(self, username: str) -> int:
        if self.redis is not None:
            key = self._key(username)
            # the key is created with its TTL before it is ever incremented
            pipe = self.redis.pipeline()
            pipe.set(key, 0, ex=self.window_seconds, nx=True)
            pipe.incr(key)
            _, count = pipe.execute()
            count = int(count)
        else:
            with self._lock:
                now = time.monotonic()
                self._sweep(now)
                count, started = self._local.get(username, (0, now))
                if now - started > self.window_seconds:
                    count, started = 0, now
                count += 1
                self._local[username] = (count, started)
        if count >= self.max_attempts:
            logger.warning("Login locked for %s after %d failed attempts", username, count)
        return count

    def reset(self, username: str) -> None:
        if self.redis is not None:
            self.redis.delete(self._key(username))
        else:
            with self._lock:
                self._local.pop(username, None)


__all__ = ["LoginAttemptTracker", "connect_redis"]

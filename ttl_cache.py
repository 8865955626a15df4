import threading
import time


class TTLCache:
    """Small thread-safe read-through cache with a fixed time-to-live per entry.

    Entries are dropped lazily when read after expiry. A stale hit is fine:
    callers use this to avoid recomputing per-request results, not for
    correctness.
    """

    def __init__(self, ttl_seconds: float = 30, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires = entry
            if expires <= now:
                self._entries.pop(key, None)
                return default
            return value

    def set(self, key, value):
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def invalidate(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def get_or_load(self, key, loader):
        # the loader runs outside the lock; two concurrent misses may both load
        missing = object()
        value = self.get(key, missing)
        if value is not missing:
            return value
        value = loader()
        self.set(key, value)
        return value

    def __len__(self):
        now = self._clock()
        with self._lock:
            return sum(1 for _value, expires in self._entries.values() if expires > now)

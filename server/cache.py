import threading
import time
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Holds a single value for `ttl` seconds. A ttl of 0 disables caching.
    `invalidate` bumps a generation counter, so a load that was already running
    when the data changed never stores its stale result.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._value: T | None = None
        self._stored_at: float | None = None
        self._generation = 0

    def get(self) -> T | None:
        with self._lock:
            if self._stored_at is None or self._clock() - self._stored_at >= self._ttl:
                return None
            return self._value

    def set(self, value: T):
        with self._lock:
            self._store(value)

    def get_or_load(self, load: Callable[[], T]) -> T:
        with self._lock:
            generation = self._generation
        value = self.get()
        if value is None:
            value = load()
            with self._lock:
                if generation == self._generation:
                    self._store(value)
        return value

    def invalidate(self):
        with self._lock:
            self._generation += 1
            self._value = None
            self._stored_at = None

    def _store(self, value: T):
        self._value = value
        self._stored_at = self._clock()

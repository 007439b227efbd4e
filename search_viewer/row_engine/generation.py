from __future__ import annotations

import threading


class GenerationToken:
    """Monotonic counter naming the current result-set epoch.

    Asynchronous work captures ``current`` when it starts and checks
    ``is_current`` when it completes; a mismatch means the result set was
    replaced in between and the completion must be dropped.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = int(start)
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def advance(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._value

    def __repr__(self) -> str:
        return f"GenerationToken({self.current})"

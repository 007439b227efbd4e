from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from typing import Any


class ResultSet:
    """Ordered, immutable sequence of opaque row keys for one generation.

    The key -> position index is built once here, so every component that
    resolves keys for this generation sees the same mapping. Duplicate keys
    resolve to their first position; ``None`` marks a position with no key.
    """

    __slots__ = ("_generation", "_keys", "_index_for_key")

    def __init__(self, keys: Iterable[Any] = (), generation: int = 0) -> None:
        self._keys: tuple[Any, ...] = tuple(keys)
        self._generation = int(generation)
        index: dict[Hashable, int] = {}
        for i, key in enumerate(self._keys):
            if key is None:
                continue
            try:
                index.setdefault(key, i)
            except TypeError:
                # unhashable keys can still be fetched, just never patched
                continue
        self._index_for_key = index

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def keys(self) -> tuple[Any, ...]:
        return self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._keys)

    def key_at(self, index: int) -> Any | None:
        if 0 <= index < len(self._keys):
            return self._keys[index]
        return None

    def has_key_at(self, index: int) -> bool:
        return self.key_at(index) is not None

    def index_of(self, key: Any) -> int | None:
        try:
            return self._index_for_key.get(key)
        except TypeError:
            return None

    def __repr__(self) -> str:
        return f"ResultSet(generation={self._generation}, rows={len(self._keys)})"

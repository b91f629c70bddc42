from collections import OrderedDict, defaultdict
from typing import DefaultDict, Dict, Generic, Iterator, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

__all__ = ["LFUCache"]


class LFUCache(Generic[K, V]):
    """
    Bounded mapping that evicts the least frequently used key when full.

    Ties between equally used keys are broken by age, the oldest goes first.
    Both `get` and `put` count as a use.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")

        self.capacity = capacity
        self._items: Dict[K, Tuple[V, int]] = {}
        self._buckets: DefaultDict[int, "OrderedDict[K, None]"] = defaultdict(OrderedDict)
        self._min_freq = 0

    def _touch(self, key: K) -> int:
        _, freq = self._items[key]
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
            if freq == self._min_freq:
                self._min_freq = freq + 1
        self._buckets[freq + 1][key] = None
        return freq + 1

    def get(self, key: K) -> V:
        if key not in self._items:
            raise KeyError(f"Key {key} not found")
        value, _ = self._items[key]
        self._items[key] = (value, self._touch(key))
        return value

    def put(self, key: K, value: V) -> None:
        if key in self._items:
            self._items[key] = (value, self._touch(key))
            return

        if len(self._items) >= self.capacity:
            evicted_key, _ = self._buckets[self._min_freq].popitem(last=False)
            if not self._buckets[self._min_freq]:
                del self._buckets[self._min_freq]
            del self._items[evicted_key]

        self._items[key] = (value, 1)
        self._buckets[1][key] = None
        self._min_freq = 1

    def remove_key(self, key: K) -> None:
        if key not in self._items:
            return
        _, freq = self._items.pop(key)
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
            if freq == self._min_freq:
                self._min_freq = min(self._buckets, default=0)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        yield from self._items

"""크기 제한 LRU 캐시.

Agent별 권고안/파싱 결과 캐시에 사용합니다. 동시 질의에서 공유되므로
모든 접근은 lock으로 보호합니다.
"""

from collections import OrderedDict
from threading import Lock
from typing import Generic, TypeVar

T = TypeVar("T")


class LRUCache(Generic[T]):
    """최대 크기를 넘으면 가장 오래 사용되지 않은 항목을 제거하는 캐시.

    Examples:
        >>> cache = LRUCache[list](max_size=2)
        >>> cache.set("a", [1])
        >>> cache.get("a")
        [1]
    """

    def __init__(self, max_size: int = 256):
        if max_size < 1:
            raise ValueError("max_size는 1 이상이어야 합니다")
        self.max_size = max_size
        self._data: OrderedDict[str, T] = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> T | None:
        with self._lock:
            if key not in self._data:
                self.misses += 1
                return None
            self._data.move_to_end(key)
            self.hits += 1
            return self._data[key]

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.max_size:
                self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: str) -> bool:
        # LRU 순서를 바꾸지 않음
        with self._lock:
            return key in self._data

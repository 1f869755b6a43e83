from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")

class RingBuffer(Generic[T]):
    """
    Fixed-capacity buffer. Pushing into a full buffer overwrites the oldest item.
    Storage is allocated once; push/evict are O(1).
    """

    def __init__(self, capacity: int, items: Optional[List[T]] = None):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._cap = capacity
        self._buf: List[Optional[T]] = [None] * capacity
        self._start = 0  # index of oldest
        self._len = 0
        for it in items or []:
            self.append(it)

    def __len__(self) -> int:
        return self._len

    def append(self, item: T) -> None:
        if self._len < self._cap:
            self._buf[(self._start + self._len) % self._cap] = item
            self._len += 1
        else:
            self._buf[self._start] = item
            self._start = (self._start + 1) % self._cap

    def __iter__(self) -> Iterator[T]:
        # oldest -> newest
        for i in range(self._len):
            yield self._buf[(self._start + i) % self._cap]

    def newest_first(self) -> List[T]:
        return list(self)[::-1]

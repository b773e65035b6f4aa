"""
Growable record buffer.

Backs records whose size is only discovered while decoding. Views into the
buffer are handed out as bounds-checked memoryview slices and must be
re-acquired after every grow(): a resize can move the underlying storage,
and holding a memoryview would also block the resize.
"""

from typing import Optional

from ..core.errors import AllocationFailure


class RecordBuffer:
    """
    Owned, growable byte storage for one decoded record.

    Args:
        capacity: Initial size in bytes
        max_size: Upper bound on growth (None = unbounded)
    """

    def __init__(self, capacity: int = 0, max_size: Optional[int] = None):
        if max_size is not None and capacity > max_size:
            raise AllocationFailure(
                f"initial capacity {capacity} exceeds max_size {max_size}"
            )
        self._data = bytearray(capacity)
        self.max_size = max_size
        self.length = 0  # bytes of the record currently held

    @property
    def capacity(self) -> int:
        return len(self._data)

    def grow(self, size: int) -> None:
        """
        Ensure at least ``size`` bytes of storage.

        Raises:
            AllocationFailure: If ``size`` exceeds max_size or can't be allocated
        """
        if size <= len(self._data):
            return
        if self.max_size is not None and size > self.max_size:
            raise AllocationFailure(
                f"record needs {size} bytes",
                context={'max_size': self.max_size},
            )
        try:
            self._data.extend(bytes(size - len(self._data)))
        except (MemoryError, OverflowError) as e:
            raise AllocationFailure(f"record needs {size} bytes") from e

    def view(self, offset: int, size: int) -> memoryview:
        """Writable view of ``size`` bytes at ``offset``, bounds-checked."""
        if offset < 0 or size < 0 or offset + size > len(self._data):
            raise IndexError(
                f"view [{offset}:{offset + size}] outside buffer of {len(self._data)}"
            )
        return memoryview(self._data)[offset:offset + size]

    def write(self, offset: int, data: bytes) -> None:
        if offset < 0 or offset + len(data) > len(self._data):
            raise IndexError(
                f"write [{offset}:{offset + len(data)}] outside buffer of {len(self._data)}"
            )
        self._data[offset:offset + len(data)] = data

    def getvalue(self) -> bytes:
        """Bytes of the record currently held."""
        return bytes(self._data[:self.length])

    def clear(self) -> None:
        self.length = 0

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return (f"RecordBuffer(length={self.length}, capacity={self.capacity}, "
                f"max_size={self.max_size})")

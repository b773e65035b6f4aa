"""
Module log - the container-side interface the record codecs consume.

The log container (block compression, header index, job metadata) is
handled elsewhere. Codecs only need to:
- read up to N bytes of one module's region from the current position
- append an exact-size buffer tagged with a module id and format version
- know how many bytes a module has (in total and still unread), its
  declared version, and whether the log's byte order differs from the
  host's

MemoryModuleLog implements this over in-memory regions, and can load a
single region dumped to disk.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from .byteorder import HOST_BYTE_ORDER, needs_swap
from .module_ids import ModuleId
from ..core.errors import IoFailure


logger = logging.getLogger(__name__)


class ModuleLog(ABC):
    """Abstract per-module read/append access to a log."""

    @property
    @abstractmethod
    def swap_flag(self) -> bool:
        """True when records must be byte-swapped on this host."""
        pass

    @abstractmethod
    def read(self, module_id: int, size: int) -> bytes:
        """
        Read up to ``size`` bytes of a module's region.

        Returns:
            The bytes read; an empty result means end of data.

        Raises:
            IoFailure: If the underlying read fails
        """
        pass

    @abstractmethod
    def append(self, module_id: int, data: bytes, version: int) -> int:
        """Append ``data`` to a module's region, tagged with ``version``."""
        pass

    @abstractmethod
    def mapped_length(self, module_id: int) -> int:
        """Number of bytes mapped for a module in this log."""
        pass

    @abstractmethod
    def remaining(self, module_id: int) -> int:
        """Bytes of a module's region not read yet."""
        pass

    @abstractmethod
    def version(self, module_id: int) -> int:
        """Declared format version of a module's records (0 if unset)."""
        pass


class MemoryModuleLog(ModuleLog):
    """
    In-memory module log.

    Usage:
        log = MemoryModuleLog()
        lookup(ModuleId.LUSTRE).encode(log, record)
        log.rewind()
        again = lookup(ModuleId.LUSTRE).decode(log)
    """

    def __init__(self, byte_order: str = HOST_BYTE_ORDER):
        self.byte_order = byte_order
        self._swap = needs_swap(byte_order)
        self._regions: Dict[int, bytearray] = {}
        self._versions: Dict[int, int] = {}
        self._positions: Dict[int, int] = {}

    @property
    def swap_flag(self) -> bool:
        return self._swap

    def read(self, module_id: int, size: int) -> bytes:
        if size < 0:
            raise IoFailure(f"negative read size {size}",
                            context={'module': ModuleId.name(module_id)})
        region = self._regions.get(module_id)
        if region is None:
            return b''
        pos = self._positions.get(module_id, 0)
        data = bytes(region[pos:pos + size])
        self._positions[module_id] = pos + len(data)
        return data

    def append(self, module_id: int, data: bytes, version: int) -> int:
        current = self._versions.get(module_id)
        if current is not None and current != version:
            raise IoFailure(
                f"cannot mix versions {current} and {version} in one region",
                context={'module': ModuleId.name(module_id)},
            )
        self._regions.setdefault(module_id, bytearray()).extend(data)
        self._versions[module_id] = version
        return len(data)

    def mapped_length(self, module_id: int) -> int:
        return len(self._regions.get(module_id, b''))

    def remaining(self, module_id: int) -> int:
        return self.mapped_length(module_id) - self._positions.get(module_id, 0)

    def version(self, module_id: int) -> int:
        return self._versions.get(module_id, 0)

    def set_region(self, module_id: int, data: bytes, version: int) -> None:
        """Replace a module's region with raw bytes (e.g. a dump)."""
        self._regions[module_id] = bytearray(data)
        self._versions[module_id] = version
        self._positions[module_id] = 0

    def region(self, module_id: int) -> bytes:
        """Raw bytes of a module's region."""
        return bytes(self._regions.get(module_id, b''))

    def rewind(self, module_id: Optional[int] = None) -> None:
        """Reset read position(s) to the start of the region."""
        if module_id is None:
            self._positions.clear()
        else:
            self._positions[module_id] = 0

    @classmethod
    def from_region_file(
        cls,
        path: Union[Path, str],
        module_id: int,
        version: int,
        byte_order: str = HOST_BYTE_ORDER,
    ) -> 'MemoryModuleLog':
        """
        Load one module region dumped to a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Region file not found: {path}")

        log = cls(byte_order=byte_order)
        log.set_region(module_id, path.read_bytes(), version)
        logger.debug("loaded %d bytes of %s region v%d from %s",
                     log.mapped_length(module_id), ModuleId.name(module_id),
                     version, path)
        return log

    def write_region_file(self, path: Union[Path, str], module_id: int) -> int:
        """Dump one module region to a file. Returns bytes written."""
        data = self.region(module_id)
        Path(path).write_bytes(data)
        return len(data)

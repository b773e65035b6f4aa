"""Log-level definitions: byte order, base record, module ids, module log."""

from .byteorder import HOST_BYTE_ORDER, Normalizer, swap_block, needs_swap, opposite
from .base_record import BaseRecord, AGGREGATE_RANK, BASE_SIZE
from .module_ids import ModuleId
from .module_log import ModuleLog, MemoryModuleLog

__all__ = [
    'HOST_BYTE_ORDER',
    'Normalizer',
    'swap_block',
    'needs_swap',
    'opposite',
    'BaseRecord',
    'AGGREGATE_RANK',
    'BASE_SIZE',
    'ModuleId',
    'ModuleLog',
    'MemoryModuleLog',
]

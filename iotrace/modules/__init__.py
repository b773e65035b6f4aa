"""
Module record codecs and the module registry.

Each codec decodes and encodes the records of one module and knows how to
print, diff and aggregate them. Callers look codecs up by module id:

    codec = lookup(ModuleId.LUSTRE)
    for record in codec.iter_records(log):
        print('\\n'.join(codec.print_record(record)))
"""

from types import MappingProxyType
from typing import List

from .base import ModuleCodec, format_counter, format_header
from .record_buffer import RecordBuffer
from .stdio import StdioModule, StdioRecord
from .lustre import LustreModule, LustreRecord, LustreComponent, LustreBuffer
from ..core.errors import UnknownModule
from ..formats.module_ids import ModuleId


# Static registration; read-only after import
_REGISTRY = MappingProxyType({
    ModuleId.LUSTRE: LustreModule(),
    ModuleId.STDIO: StdioModule(),
})


def lookup(module_id: int) -> ModuleCodec:
    """
    Get the codec registered for a module id.

    Raises:
        UnknownModule: If no codec is registered for the id
    """
    try:
        return _REGISTRY[module_id]
    except KeyError:
        raise UnknownModule(
            f"module id {module_id}",
            context={'registered': sorted(_REGISTRY)},
        ) from None


def registered_modules() -> List[int]:
    """Module ids with a registered codec, in id order."""
    return sorted(_REGISTRY)


__all__ = [
    'ModuleCodec',
    'RecordBuffer',
    'StdioModule',
    'StdioRecord',
    'LustreModule',
    'LustreRecord',
    'LustreComponent',
    'LustreBuffer',
    'format_counter',
    'format_header',
    'lookup',
    'registered_modules',
]

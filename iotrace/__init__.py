"""
iotrace - record codecs for I/O trace logs.

This package provides:
- formats: byte order, base record, module ids and the module log interface
- modules: per-module record codecs (STDIO, LUSTRE) and the module registry
- config: YAML configuration with environment variable support
- core: error taxonomy
- cli: command-line interface
"""

__version__ = "1.0.0"

from .formats import (
    BaseRecord,
    AGGREGATE_RANK,
    ModuleId,
    ModuleLog,
    MemoryModuleLog,
    Normalizer,
)
from .modules import (
    ModuleCodec,
    StdioModule,
    StdioRecord,
    LustreModule,
    LustreRecord,
    LustreComponent,
    LustreBuffer,
    RecordBuffer,
    lookup,
    registered_modules,
)
from .config import IotraceConfig, load_config
from .core import (
    CodecError,
    UnsupportedVersion,
    TruncatedRecord,
    CorruptRecord,
    AllocationFailure,
    IoFailure,
    UnknownModule,
    RecordInvariantError,
)

__all__ = [
    # Version
    '__version__',
    # Formats
    'BaseRecord',
    'AGGREGATE_RANK',
    'ModuleId',
    'ModuleLog',
    'MemoryModuleLog',
    'Normalizer',
    # Modules
    'ModuleCodec',
    'StdioModule',
    'StdioRecord',
    'LustreModule',
    'LustreRecord',
    'LustreComponent',
    'LustreBuffer',
    'RecordBuffer',
    'lookup',
    'registered_modules',
    # Config
    'IotraceConfig',
    'load_config',
    # Errors
    'CodecError',
    'UnsupportedVersion',
    'TruncatedRecord',
    'CorruptRecord',
    'AllocationFailure',
    'IoFailure',
    'UnknownModule',
    'RecordInvariantError',
]

"""Shared error taxonomy."""

from .errors import (
    ErrorCode,
    ERROR_METADATA,
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
    'ErrorCode',
    'ERROR_METADATA',
    'CodecError',
    'UnsupportedVersion',
    'TruncatedRecord',
    'CorruptRecord',
    'AllocationFailure',
    'IoFailure',
    'UnknownModule',
    'RecordInvariantError',
]

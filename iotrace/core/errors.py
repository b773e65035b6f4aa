"""
Error codes for iotrace.

Structured error codes for machine-parseable reports.

Format: E{category}{number}
- E1xxx: Record data errors

Every decode failure is raised as a CodecError subclass carrying one of
these codes. End of data is not an error and is never raised.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Structured error codes."""

    # E1xxx: Record data errors
    E1002_UNSUPPORTED_VERSION = "E1002"
    E1003_TRUNCATED_RECORD = "E1003"
    E1007_CORRUPT_RECORD = "E1007"
    E1008_ALLOCATION_FAILURE = "E1008"
    E1009_IO_FAILURE = "E1009"
    E1010_UNKNOWN_MODULE = "E1010"
    E1011_RECORD_INVARIANT = "E1011"


# Error code metadata
ERROR_METADATA = {
    ErrorCode.E1002_UNSUPPORTED_VERSION: {
        'severity': 'error',
        'message': 'Unsupported module format version',
        'recoverable': False,
    },
    ErrorCode.E1003_TRUNCATED_RECORD: {
        'severity': 'error',
        'message': 'Record truncated or incomplete',
        'recoverable': False,
    },
    ErrorCode.E1007_CORRUPT_RECORD: {
        'severity': 'error',
        'message': 'Record fields are inconsistent',
        'recoverable': False,
    },
    ErrorCode.E1008_ALLOCATION_FAILURE: {
        'severity': 'error',
        'message': 'Record buffer could not be grown',
        'recoverable': False,
    },
    ErrorCode.E1009_IO_FAILURE: {
        'severity': 'error',
        'message': 'Underlying log read or write failed',
        'recoverable': False,
    },
    ErrorCode.E1010_UNKNOWN_MODULE: {
        'severity': 'error',
        'message': 'No codec registered for module',
        'recoverable': False,
    },
    ErrorCode.E1011_RECORD_INVARIANT: {
        'severity': 'error',
        'message': 'Record violates its size invariant',
        'recoverable': False,
    },
}


class CodecError(Exception):
    """
    Base class for record codec failures.

    Example:
        raise TruncatedRecord(
            "short OST id read",
            context={'module': 'LUSTRE', 'expected': 24, 'actual': 16},
        )
    """

    code = ErrorCode.E1007_CORRUPT_RECORD

    def __init__(self, detail: str = '', context: Optional[dict] = None):
        self.detail = detail
        self.context = context
        super().__init__(self.message)

    @property
    def severity(self) -> str:
        return ERROR_METADATA.get(self.code, {}).get('severity', 'error')

    @property
    def message(self) -> str:
        base_msg = ERROR_METADATA.get(self.code, {}).get('message', 'Unknown error')
        if self.detail:
            base_msg = f"{base_msg}: {self.detail}"
        if self.context:
            return f"{base_msg} {self.context}"
        return base_msg

    @property
    def recoverable(self) -> bool:
        return ERROR_METADATA.get(self.code, {}).get('recoverable', False)

    def to_dict(self) -> dict:
        return {
            'code': self.code.value,
            'severity': self.severity,
            'message': self.message,
            'recoverable': self.recoverable,
            'context': self.context,
        }


class UnsupportedVersion(CodecError):
    """Declared module version is 0 or newer than the codec knows."""
    code = ErrorCode.E1002_UNSUPPORTED_VERSION


class TruncatedRecord(CodecError):
    """A stage committed to N bytes and got fewer."""
    code = ErrorCode.E1003_TRUNCATED_RECORD


class CorruptRecord(CodecError):
    """Decoded length fields are impossible (e.g. negative counts)."""
    code = ErrorCode.E1007_CORRUPT_RECORD


class AllocationFailure(CodecError):
    """Record buffer growth failed."""
    code = ErrorCode.E1008_ALLOCATION_FAILURE


class IoFailure(CodecError):
    """Underlying log I/O failed."""
    code = ErrorCode.E1009_IO_FAILURE


class UnknownModule(CodecError, KeyError):
    """No codec registered for a module id."""
    code = ErrorCode.E1010_UNKNOWN_MODULE

    def __str__(self) -> str:
        return self.message


class RecordInvariantError(CodecError):
    """Record to encode disagrees with its own size invariant."""
    code = ErrorCode.E1011_RECORD_INVARIANT

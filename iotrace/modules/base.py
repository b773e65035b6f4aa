"""
Base class for module record codecs.

ModuleCodec is the uniform operation set every module kind implements:
decode, encode, print_record, print_description, print_diff and aggregate.
Callers look a codec up by module id and drive it without knowing whether
its records are fixed or variable length.

Print operations return lines rather than writing them, so the CLI (or a
test) decides where they go.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..core.errors import TruncatedRecord, UnsupportedVersion
from ..formats.byteorder import Normalizer
from ..formats.module_ids import ModuleId
from ..formats.module_log import ModuleLog


logger = logging.getLogger(__name__)

# Column header printed after module descriptions
HEADER_COLUMNS = (
    '<module>', '<rank>', '<record id>', '<counter>', '<value>',
    '<file name>', '<mount pt>', '<fs type>',
)


def format_header() -> str:
    return '#' + '\t'.join(HEADER_COLUMNS)


def format_counter(
    module: str,
    rank: int,
    rec_id: int,
    counter: str,
    value: Any,
    file_name: str = '',
    mnt_pt: str = '',
    fs_type: str = '',
) -> str:
    """
    Format one counter as a tab-separated line.

    Integers print in decimal, floats with six decimals and anything else
    (labels, pool names) verbatim.
    """
    if isinstance(value, float):
        rendered = f"{value:.6f}"
    else:
        rendered = str(value)
    return '\t'.join((
        module, str(rank), str(rec_id), counter, rendered,
        file_name, mnt_pt, fs_type,
    ))


class ModuleCodec(ABC):
    """
    Abstract base class for module record codecs.

    Codecs hold no per-record state; everything a decode needs lives on the
    call stack or in the ModuleLog.
    """

    module_id: int = 0
    current_version: int = 1

    @property
    def name(self) -> str:
        return ModuleId.name(self.module_id)

    def check_version(self, log: ModuleLog) -> int:
        """
        Validate the module's declared version.

        Returns:
            The declared version

        Raises:
            UnsupportedVersion: If the version is 0 or newer than current
        """
        version = log.version(self.module_id)
        if version < 1 or version > self.current_version:
            logger.error("invalid %s module version number (got %d)",
                         self.name, version)
            raise UnsupportedVersion(
                f"{self.name} version {version}",
                context={'supported': [1, self.current_version]},
            )
        return version

    def read_exact(self, log: ModuleLog, size: int, stage: str) -> bytes:
        """Read exactly ``size`` bytes or raise TruncatedRecord."""
        data = log.read(self.module_id, size)
        if len(data) < size:
            raise TruncatedRecord(
                f"short {self.name} {stage} read",
                context={'expected': size, 'actual': len(data)},
            )
        return data

    @staticmethod
    def normalizer(log: ModuleLog) -> Normalizer:
        return Normalizer(swap=log.swap_flag)

    @abstractmethod
    def decode(self, log: ModuleLog) -> Optional[Any]:
        """
        Decode the next record from the module's region.

        Returns:
            The record, or None at end of data

        Raises:
            CodecError: On unsupported versions or truncated records
        """
        pass

    @abstractmethod
    def encode(self, log: ModuleLog, record: Any) -> int:
        """Append ``record`` in the current format. Returns bytes written."""
        pass

    @abstractmethod
    def print_record(
        self,
        record: Any,
        file_name: str = '',
        mnt_pt: str = '',
        fs_type: str = '',
    ) -> List[str]:
        pass

    @abstractmethod
    def print_description(self, version: Optional[int] = None) -> List[str]:
        pass

    @abstractmethod
    def print_diff(
        self,
        rec1: Optional[Any],
        file_name1: str,
        rec2: Optional[Any],
        file_name2: str,
    ) -> List[str]:
        """
        Compare two records of the same id.

        Either record may be None when it exists in only one log. Lines are
        prefixed with '- ' (first record) or '+ ' (second record).
        """
        pass

    @abstractmethod
    def aggregate(self, record: Any, agg: Optional[Any]) -> Any:
        """
        Fold ``record`` into the running aggregate ``agg``.

        Pass ``agg=None`` for the first record. Returns the new aggregate.
        """
        pass

    def iter_records(self, log: ModuleLog):
        """Yield records until end of data."""
        while True:
            record = self.decode(log)
            if record is None:
                return
            yield record

    def __repr__(self) -> str:
        return f"{type(self).__name__}(module={self.name}, version={self.current_version})"

"""
Codec for STDIO module records.

STDIO records are fixed size, so a decode is a single read.

Layout (248 bytes):
    Bytes 0-15:    base record  (u64 id, i64 rank)
    Bytes 16-127:  counters     (14 x i64)
    Bytes 128-247: fcounters    (15 x f64)

Version 2 is current; version 1 records are read with the same layout.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from .base import ModuleCodec, format_counter, format_header
from ..core.errors import TruncatedRecord
from ..formats.base_record import AGGREGATE_RANK, BaseRecord
from ..formats.byteorder import Normalizer
from ..formats.module_ids import ModuleId
from ..formats.module_log import ModuleLog


STDIO_COUNTERS = (
    'STDIO_OPENS',
    'STDIO_FDOPENS',
    'STDIO_READS',
    'STDIO_WRITES',
    'STDIO_SEEKS',
    'STDIO_FLUSHES',
    'STDIO_BYTES_WRITTEN',
    'STDIO_BYTES_READ',
    'STDIO_MAX_BYTE_READ',
    'STDIO_MAX_BYTE_WRITTEN',
    'STDIO_FASTEST_RANK',
    'STDIO_FASTEST_RANK_BYTES',
    'STDIO_SLOWEST_RANK',
    'STDIO_SLOWEST_RANK_BYTES',
)

STDIO_F_COUNTERS = (
    'STDIO_F_META_TIME',
    'STDIO_F_WRITE_TIME',
    'STDIO_F_READ_TIME',
    'STDIO_F_OPEN_START_TIMESTAMP',
    'STDIO_F_CLOSE_START_TIMESTAMP',
    'STDIO_F_WRITE_START_TIMESTAMP',
    'STDIO_F_READ_START_TIMESTAMP',
    'STDIO_F_OPEN_END_TIMESTAMP',
    'STDIO_F_CLOSE_END_TIMESTAMP',
    'STDIO_F_WRITE_END_TIMESTAMP',
    'STDIO_F_READ_END_TIMESTAMP',
    'STDIO_F_FASTEST_RANK_TIME',
    'STDIO_F_SLOWEST_RANK_TIME',
    'STDIO_F_VARIANCE_RANK_TIME',
    'STDIO_F_VARIANCE_RANK_BYTES',
)

STDIO_NUM_INDICES = len(STDIO_COUNTERS)
STDIO_F_NUM_INDICES = len(STDIO_F_COUNTERS)

# Q=id, q=rank, 14q=counters, 15d=fcounters
STDIO_LAYOUT = f'Qq{STDIO_NUM_INDICES}q{STDIO_F_NUM_INDICES}d'
STDIO_SIZE = 248

_IDX = {name: i for i, name in enumerate(STDIO_COUNTERS)}
_FIDX = {name: i for i, name in enumerate(STDIO_F_COUNTERS)}

# Summed when aggregating
_SUM_COUNTERS = (
    'STDIO_OPENS', 'STDIO_FDOPENS', 'STDIO_READS', 'STDIO_WRITES',
    'STDIO_SEEKS', 'STDIO_FLUSHES', 'STDIO_BYTES_WRITTEN', 'STDIO_BYTES_READ',
)
_MAX_COUNTERS = ('STDIO_MAX_BYTE_READ', 'STDIO_MAX_BYTE_WRITTEN')
_SUM_F_COUNTERS = ('STDIO_F_META_TIME', 'STDIO_F_WRITE_TIME', 'STDIO_F_READ_TIME')
_START_TIMESTAMPS = (
    'STDIO_F_OPEN_START_TIMESTAMP', 'STDIO_F_CLOSE_START_TIMESTAMP',
    'STDIO_F_WRITE_START_TIMESTAMP', 'STDIO_F_READ_START_TIMESTAMP',
)
_END_TIMESTAMPS = (
    'STDIO_F_OPEN_END_TIMESTAMP', 'STDIO_F_CLOSE_END_TIMESTAMP',
    'STDIO_F_WRITE_END_TIMESTAMP', 'STDIO_F_READ_END_TIMESTAMP',
)


@dataclass(frozen=True)
class StdioRecord:
    """Decoded STDIO record."""

    base: BaseRecord
    counters: Tuple[int, ...] = (0,) * STDIO_NUM_INDICES
    fcounters: Tuple[float, ...] = (0.0,) * STDIO_F_NUM_INDICES

    def __post_init__(self):
        if len(self.counters) != STDIO_NUM_INDICES:
            raise ValueError(
                f"STDIO record needs {STDIO_NUM_INDICES} counters, got {len(self.counters)}"
            )
        if len(self.fcounters) != STDIO_F_NUM_INDICES:
            raise ValueError(
                f"STDIO record needs {STDIO_F_NUM_INDICES} fcounters, got {len(self.fcounters)}"
            )

    def counter(self, name: str) -> int:
        return self.counters[_IDX[name]]

    def fcounter(self, name: str) -> float:
        return self.fcounters[_FIDX[name]]

    @property
    def total_time(self) -> float:
        """Meta + read + write time."""
        return sum(self.fcounter(n) for n in _SUM_F_COUNTERS)

    @property
    def total_bytes(self) -> int:
        return self.counter('STDIO_BYTES_READ') + self.counter('STDIO_BYTES_WRITTEN')

    @classmethod
    def from_counters(cls, rec_id: int, rank: int = 0, **values) -> 'StdioRecord':
        """
        Build a record from named counters; anything unnamed is zero.

        Example:
            StdioRecord.from_counters(42, rank=3, STDIO_OPENS=1, STDIO_F_META_TIME=0.5)
        """
        counters = [0] * STDIO_NUM_INDICES
        fcounters = [0.0] * STDIO_F_NUM_INDICES
        for name, value in values.items():
            if name in _IDX:
                counters[_IDX[name]] = int(value)
            elif name in _FIDX:
                fcounters[_FIDX[name]] = float(value)
            else:
                raise ValueError(f"Unknown STDIO counter: {name}")
        return cls(BaseRecord(rec_id, rank), tuple(counters), tuple(fcounters))


class StdioModule(ModuleCodec):
    """Fixed-size record codec for the STDIO module."""

    module_id = ModuleId.STDIO
    current_version = 2

    def record_size(self) -> int:
        return STDIO_SIZE

    def decode(self, log: ModuleLog) -> Optional[StdioRecord]:
        if log.mapped_length(self.module_id) == 0:
            return None
        self.check_version(log)

        size = self.record_size()
        raw = log.read(self.module_id, size)
        if len(raw) == 0:
            return None
        if len(raw) < size:
            raise TruncatedRecord(
                "short STDIO record read",
                context={'expected': size, 'actual': len(raw)},
            )

        fields = self.normalizer(log).unpack(STDIO_LAYOUT, raw)
        counters_end = 2 + STDIO_NUM_INDICES
        return StdioRecord(
            base=BaseRecord(id=fields[0], rank=fields[1]),
            counters=tuple(fields[2:counters_end]),
            fcounters=tuple(fields[counters_end:]),
        )

    def encode(self, log: ModuleLog, record: StdioRecord) -> int:
        data = self.normalizer(log).pack(
            STDIO_LAYOUT,
            record.base.id,
            record.base.rank,
            *record.counters,
            *record.fcounters,
        )
        return log.append(self.module_id, data, self.current_version)

    def print_record(
        self,
        record: StdioRecord,
        file_name: str = '',
        mnt_pt: str = '',
        fs_type: str = '',
    ) -> List[str]:
        base = record.base
        lines = [
            format_counter(self.name, base.rank, base.id, name, value,
                           file_name, mnt_pt, fs_type)
            for name, value in zip(STDIO_COUNTERS, record.counters)
        ]
        lines.extend(
            format_counter(self.name, base.rank, base.id, name, value,
                           file_name, mnt_pt, fs_type)
            for name, value in zip(STDIO_F_COUNTERS, record.fcounters)
        )
        return lines

    def print_description(self, version: Optional[int] = None) -> List[str]:
        return [
            '',
            '# description of STDIO counters:',
            '#   STDIO_{OPENS|FDOPENS|WRITES|READS|SEEKS|FLUSHES} are types of operations.',
            '#   STDIO_BYTES_*: total bytes read and written.',
            '#   STDIO_MAX_BYTE_*: highest offset byte read and written.',
            '#   STDIO_*_RANK: rank of the processes that were the fastest and slowest at I/O (for shared files).',
            '#   STDIO_*_RANK_BYTES: bytes transferred by the fastest and slowest ranks (for shared files).',
            '#   STDIO_F_*_START_TIMESTAMP: timestamp of the first call to that type of function.',
            '#   STDIO_F_*_END_TIMESTAMP: timestamp of the completion of the last call to that type of function.',
            '#   STDIO_F_*_TIME: cumulative time spent in different types of functions.',
            '#   STDIO_F_*_RANK_TIME: fastest and slowest I/O time for a single rank (for shared files).',
            '#   STDIO_F_VARIANCE_RANK_*: variance of total I/O time and bytes moved for all ranks (for shared files).',
            '',
            format_header(),
        ]

    def print_diff(
        self,
        rec1: Optional[StdioRecord],
        file_name1: str,
        rec2: Optional[StdioRecord],
        file_name2: str,
    ) -> List[str]:
        # Both records are assumed to be the same module version
        lines = []

        def emit(prefix, rec, file_name, name, value):
            lines.append(prefix + format_counter(
                self.name, rec.base.rank, rec.base.id, name, value, file_name))

        for names, attr in ((STDIO_COUNTERS, 'counters'), (STDIO_F_COUNTERS, 'fcounters')):
            for i, name in enumerate(names):
                if rec2 is None:
                    emit('- ', rec1, file_name1, name, getattr(rec1, attr)[i])
                elif rec1 is None:
                    emit('+ ', rec2, file_name2, name, getattr(rec2, attr)[i])
                elif getattr(rec1, attr)[i] != getattr(rec2, attr)[i]:
                    emit('- ', rec1, file_name1, name, getattr(rec1, attr)[i])
                    emit('+ ', rec2, file_name2, name, getattr(rec2, attr)[i])

        return lines

    def aggregate(self, record: StdioRecord, agg: Optional[StdioRecord]) -> StdioRecord:
        """
        Fold per-rank records of one file into a shared-file record.

        Variance counters are left at zero: they cannot be recombined from
        finished per-rank records.
        """
        if agg is None:
            agg = StdioRecord(BaseRecord(record.base.id, AGGREGATE_RANK))
            first = True
        else:
            first = False

        counters = list(agg.counters)
        fcounters = list(agg.fcounters)

        for name in _SUM_COUNTERS:
            counters[_IDX[name]] += record.counter(name)
        for name in _MAX_COUNTERS:
            counters[_IDX[name]] = max(counters[_IDX[name]], record.counter(name))
        for name in _SUM_F_COUNTERS:
            fcounters[_FIDX[name]] += record.fcounter(name)
        for name in _START_TIMESTAMPS:
            value = record.fcounter(name)
            current = fcounters[_FIDX[name]]
            if value > 0 and (current == 0 or value < current):
                fcounters[_FIDX[name]] = value
        for name in _END_TIMESTAMPS:
            fcounters[_FIDX[name]] = max(fcounters[_FIDX[name]], record.fcounter(name))

        rank_time = record.total_time
        rank_bytes = record.total_bytes
        if first or rank_time < fcounters[_FIDX['STDIO_F_FASTEST_RANK_TIME']]:
            counters[_IDX['STDIO_FASTEST_RANK']] = record.base.rank
            counters[_IDX['STDIO_FASTEST_RANK_BYTES']] = rank_bytes
            fcounters[_FIDX['STDIO_F_FASTEST_RANK_TIME']] = rank_time
        if first or rank_time > fcounters[_FIDX['STDIO_F_SLOWEST_RANK_TIME']]:
            counters[_IDX['STDIO_SLOWEST_RANK']] = record.base.rank
            counters[_IDX['STDIO_SLOWEST_RANK_BYTES']] = rank_bytes
            fcounters[_FIDX['STDIO_F_SLOWEST_RANK_TIME']] = rank_time

        return replace(agg, counters=tuple(counters), fcounters=tuple(fcounters))


# Verify struct size at module load
_computed_size = Normalizer().struct(STDIO_LAYOUT).size
assert _computed_size == STDIO_SIZE, \
    f"STDIO layout size mismatch: {_computed_size} != {STDIO_SIZE}"

"""
Codec for LUSTRE module records.

A LUSTRE record describes a file's layout: a list of layout components,
each striped over some number of OSTs, followed by the flat list of OST ids
for all components. Its size is only known once the header and the
components have been read.

Current layout (version 2):
    Bytes 0-23:    header      (u64 id, i64 rank, i64 num_components)
    Next 72*N:     components  (7 x i64 counters, 16-byte pool name)
    Next 8*M:      OST ids     (i64), M = sum of component stripe counts

Legacy layout (version 1):
    Bytes 0-55:    7 x i64     (id, rank, 3 unused, stripe size, stripe count)
    Next 8*M:      OST ids     (i64), M = stripe count

Version 1 records are upgraded to a single-component record on decode and
are always written back in the current layout.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .base import ModuleCodec, format_counter
from .record_buffer import RecordBuffer
from ..core.errors import CorruptRecord, RecordInvariantError, TruncatedRecord
from ..formats.base_record import BaseRecord
from ..formats.byteorder import Normalizer, swap_block
from ..formats.module_ids import ModuleId
from ..formats.module_log import ModuleLog


logger = logging.getLogger(__name__)


LUSTRE_COMP_COUNTERS = (
    'LUSTRE_COMP_STRIPE_SIZE',
    'LUSTRE_COMP_STRIPE_COUNT',
    'LUSTRE_COMP_STRIPE_PATTERN',
    'LUSTRE_COMP_FLAGS',
    'LUSTRE_COMP_EXT_START',
    'LUSTRE_COMP_EXT_END',
    'LUSTRE_COMP_MIRROR_ID',
)
LUSTRE_COMP_NUM_INDICES = len(LUSTRE_COMP_COUNTERS)

# Sentinel for counters the producer could not determine
UNKNOWN = -1

# 15 usable bytes plus the terminating NUL
POOL_NAME_SIZE = 16

# Q=id, q=rank, q=num_components
HEADER_LAYOUT = 'Qqq'
HEADER_SIZE = 24

# 7q=component counters, 16s=pool name
COMPONENT_LAYOUT = f'{LUSTRE_COMP_NUM_INDICES}q{POOL_NAME_SIZE}s'
COMPONENT_SIZE = 72

OST_LAYOUT = 'q'
OST_SIZE = 8

# Q=id, q=rank, 3q=unused, q=stripe size, q=stripe count
LEGACY_LAYOUT = 'Qq5q'
LEGACY_SIZE = 56

STRIPE_PATTERNS = {
    0: 'raid0',
    2: 'mdt',
    4: 'raid0,overstriped',
    8: 'foreign',
}

# Component flag labels, indexed by bit position
COMPONENT_FLAGS = (
    'stale',
    'prefrd',
    'prefwr',
    'offline',
    'init',
    'nosync',
    'extension',
    'parity',
    'compress',
    'partial',
    'nocompr',
    'neg',
)

_HOST = Normalizer()


def stripe_pattern_label(pattern: int) -> str:
    return STRIPE_PATTERNS.get(pattern, 'N/A')


def component_flags_label(flags: int) -> str:
    """Comma-joined flag names, '0' when none are set, 'N/A' if unknown."""
    if flags == UNKNOWN:
        return 'N/A'
    names = [name for bit, name in enumerate(COMPONENT_FLAGS) if flags & (1 << bit)]
    return ','.join(names) if names else '0'


def _pool_bytes(pool_name: str) -> bytes:
    # Undecodable bytes from the log survive as surrogates
    return pool_name.encode('utf-8', errors='surrogateescape')


def component_counter_name(counter: str, index: int) -> str:
    """LUSTRE_COMP_STRIPE_SIZE, 2 -> LUSTRE_COMP2_STRIPE_SIZE."""
    return counter.replace('LUSTRE_COMP_', f'LUSTRE_COMP{index}_', 1)


@dataclass(frozen=True)
class LustreComponent:
    """One layout component of a file."""

    stripe_size: int = 0
    stripe_count: int = 0
    stripe_pattern: int = UNKNOWN
    flags: int = UNKNOWN
    ext_start: int = 0
    ext_end: int = UNKNOWN
    mirror_id: int = UNKNOWN
    pool_name: str = ''

    def __post_init__(self):
        if len(_pool_bytes(self.pool_name)) >= POOL_NAME_SIZE:
            raise ValueError(
                f"Pool name {self.pool_name!r} longer than {POOL_NAME_SIZE - 1} bytes"
            )

    @property
    def counters(self) -> Tuple[int, ...]:
        return (
            self.stripe_size,
            self.stripe_count,
            self.stripe_pattern,
            self.flags,
            self.ext_start,
            self.ext_end,
            self.mirror_id,
        )

    def pack(self, normalizer: Normalizer) -> bytes:
        return normalizer.pack(
            COMPONENT_LAYOUT, *self.counters, _pool_bytes(self.pool_name))

    @classmethod
    def unpack(cls, normalizer: Normalizer, data, offset: int = 0) -> 'LustreComponent':
        """
        Raises:
            CorruptRecord: If the pool name field is not NUL-terminated
        """
        fields = normalizer.unpack(COMPONENT_LAYOUT, data, offset)
        raw_pool = fields[LUSTRE_COMP_NUM_INDICES]
        if b'\0' not in raw_pool:
            raise CorruptRecord(
                "LUSTRE pool name is not NUL-terminated",
                context={'pool_name': raw_pool},
            )
        pool = raw_pool.split(b'\0', 1)[0]
        return cls(*fields[:LUSTRE_COMP_NUM_INDICES],
                   pool_name=pool.decode('utf-8', errors='surrogateescape'))


@dataclass(frozen=True)
class LustreRecord:
    """
    Decoded LUSTRE record.

    The OST id list is stored flat; ``num_osts`` is always recomputed from
    the components' stripe counts rather than stored.
    """

    base: BaseRecord
    components: Tuple[LustreComponent, ...] = ()
    ost_ids: Tuple[int, ...] = ()

    @property
    def num_components(self) -> int:
        return len(self.components)

    @property
    def num_osts(self) -> int:
        return sum(c.stripe_count for c in self.components)

    @property
    def wire_size(self) -> int:
        return HEADER_SIZE + self.num_components * COMPONENT_SIZE + self.num_osts * OST_SIZE

    def component_ost_ids(self, index: int) -> Tuple[int, ...]:
        """OST ids belonging to component ``index`` (0-based)."""
        start = sum(c.stripe_count for c in self.components[:index])
        return self.ost_ids[start:start + self.components[index].stripe_count]

    def check_invariant(self) -> None:
        """
        Raises:
            RecordInvariantError: If the OST id list does not match the stripe counts
        """
        for i, comp in enumerate(self.components):
            if comp.stripe_count < 0:
                raise RecordInvariantError(
                    f"component {i} has negative stripe count {comp.stripe_count}")
        if len(self.ost_ids) != self.num_osts:
            raise RecordInvariantError(
                "OST id count does not match stripe counts",
                context={'ost_ids': len(self.ost_ids), 'stripe_total': self.num_osts},
            )


class LustreBuffer(RecordBuffer):
    """
    Record buffer laid out as a current-version LUSTRE record, host order.

    Component and OST views are derived from the header on every call, so
    they always reflect the current storage after a grow(). Only the first
    ``length`` bytes count: a cleared buffer has no components or OST ids,
    whatever an earlier record left behind.
    """

    @property
    def num_components(self) -> int:
        if self.length < HEADER_SIZE:
            return 0
        return _HOST.unpack(HEADER_LAYOUT, self.view(0, HEADER_SIZE))[2]

    def base_record(self) -> BaseRecord:
        return BaseRecord.decode(_HOST, self.view(0, HEADER_SIZE))

    def component(self, index: int) -> LustreComponent:
        if not 0 <= index < self.num_components:
            raise IndexError(f"component {index} out of range")
        offset = HEADER_SIZE + index * COMPONENT_SIZE
        return LustreComponent.unpack(_HOST, self.view(offset, COMPONENT_SIZE))

    def num_osts(self) -> int:
        return sum(self.component(i).stripe_count for i in range(self.num_components))

    def ost_view(self) -> memoryview:
        if self.length == 0:
            return memoryview(b'').cast(OST_LAYOUT)
        offset = HEADER_SIZE + self.num_components * COMPONENT_SIZE
        return self.view(offset, self.num_osts() * OST_SIZE).cast(OST_LAYOUT)

    def to_record(self) -> LustreRecord:
        """Copy the held record out of the buffer."""
        if self.length == 0:
            raise ValueError("buffer holds no record")
        components = tuple(self.component(i) for i in range(self.num_components))
        with self.ost_view() as osts:
            ost_ids = tuple(osts)
        return LustreRecord(self.base_record(), components, ost_ids)


class LustreModule(ModuleCodec):
    """
    Variable-length record codec for the LUSTRE module.

    Args:
        max_record_bytes: Growth limit for buffers this codec allocates
    """

    module_id = ModuleId.LUSTRE
    current_version = 2

    def __init__(self, max_record_bytes: Optional[int] = None):
        self.max_record_bytes = max_record_bytes

    # === DECODE ===

    def decode(self, log: ModuleLog) -> Optional[LustreRecord]:
        buffer = LustreBuffer(max_size=self.max_record_bytes)
        if self._decode_stages(log, buffer) == 0:
            return None
        return buffer.to_record()

    def decode_into(self, log: ModuleLog, buffer: LustreBuffer) -> int:
        """
        Decode the next record into a caller-supplied buffer.

        The buffer is left empty at end of data and after any failure.

        Returns:
            Size in bytes of the decoded record, 0 at end of data

        Raises:
            AllocationFailure: If the buffer's max_size is too small
        """
        buffer.clear()
        try:
            return self._decode_stages(log, buffer)
        except Exception:
            buffer.clear()
            raise

    def select_decoder(self, version: int) -> Callable[[ModuleLog, LustreBuffer], int]:
        """Decoding stage for a (validated) module version."""
        decoders: Dict[int, Callable[[ModuleLog, LustreBuffer], int]] = {
            1: self._decode_v1,
        }
        return decoders.get(version, self._decode_current)

    def _decode_stages(self, log: ModuleLog, buffer: LustreBuffer) -> int:
        if log.mapped_length(self.module_id) == 0:
            return 0
        version = self.check_version(log)
        return self.select_decoder(version)(log, buffer)

    def _to_host(self, log: ModuleLog, raw: bytes, layout: str) -> bytes:
        if log.swap_flag:
            return swap_block(raw, layout)
        return raw

    def _require(self, log: ModuleLog, size: int, stage: str) -> None:
        """Fail before allocating when the region can't hold ``size`` more bytes."""
        available = log.remaining(self.module_id)
        if size > available:
            raise TruncatedRecord(
                f"short {self.name} {stage} read",
                context={'expected': size, 'actual': available},
            )

    def _decode_current(self, log: ModuleLog, buffer: LustreBuffer) -> int:
        raw = log.read(self.module_id, HEADER_SIZE)
        if len(raw) < HEADER_SIZE:
            if raw:
                logger.debug("discarding %d-byte partial LUSTRE header", len(raw))
            return 0

        header = self._to_host(log, raw, HEADER_LAYOUT)
        rec_id, rank, num_comps = _HOST.unpack(HEADER_LAYOUT, header)
        if num_comps < 1:
            # No layout: a record with no components and no OST ids
            buffer.grow(HEADER_SIZE)
            buffer.write(0, _HOST.pack(HEADER_LAYOUT, rec_id, rank, 0))
            buffer.length = HEADER_SIZE
            return buffer.length

        comps_size = num_comps * COMPONENT_SIZE
        self._require(log, comps_size, 'component array')
        buffer.grow(HEADER_SIZE + comps_size)
        buffer.write(0, header)
        raw = self.read_exact(log, comps_size, 'component array')
        buffer.write(HEADER_SIZE, self._to_host(log, raw, COMPONENT_LAYOUT))
        buffer.length = HEADER_SIZE + comps_size

        for i in range(num_comps):
            stripe_count = buffer.component(i).stripe_count
            if stripe_count < 0:
                raise CorruptRecord(
                    f"negative stripe count in LUSTRE component {i}",
                    context={'id': rec_id, 'stripe_count': stripe_count},
                )
        osts_size = buffer.num_osts() * OST_SIZE

        total = HEADER_SIZE + comps_size + osts_size
        self._require(log, osts_size, 'OST id array')
        buffer.grow(total)
        raw = self.read_exact(log, osts_size, 'OST id array')
        buffer.write(HEADER_SIZE + comps_size, self._to_host(log, raw, OST_LAYOUT))

        buffer.length = total
        return total

    def _decode_v1(self, log: ModuleLog, buffer: LustreBuffer) -> int:
        raw = log.read(self.module_id, LEGACY_SIZE)
        if len(raw) < LEGACY_SIZE:
            if raw:
                logger.debug("discarding %d-byte partial v1 LUSTRE record", len(raw))
            return 0

        fields = _HOST.unpack(LEGACY_LAYOUT, self._to_host(log, raw, LEGACY_LAYOUT))
        rec_id, rank = fields[0], fields[1]
        stripe_size, stripe_count = fields[5], fields[6]
        if stripe_count < 0:
            raise CorruptRecord(
                "negative stripe count in v1 LUSTRE record",
                context={'id': rec_id, 'stripe_count': stripe_count},
            )
        logger.debug("upgrading v1 LUSTRE record %d to a single component", rec_id)

        # Only 1 component for old records; everything but the striping is unknown
        component = LustreComponent(
            stripe_size=stripe_size,
            stripe_count=stripe_count,
            stripe_pattern=UNKNOWN,
            flags=UNKNOWN,
            ext_start=0,
            ext_end=UNKNOWN,
            mirror_id=UNKNOWN,
            pool_name='',
        )
        osts_size = stripe_count * OST_SIZE
        total = HEADER_SIZE + COMPONENT_SIZE + osts_size

        self._require(log, osts_size, 'OST id array')
        buffer.grow(total)
        buffer.write(0, _HOST.pack(HEADER_LAYOUT, rec_id, rank, 1))
        buffer.write(HEADER_SIZE, component.pack(_HOST))

        raw = self.read_exact(log, osts_size, 'OST id array')
        buffer.write(HEADER_SIZE + COMPONENT_SIZE, self._to_host(log, raw, OST_LAYOUT))

        buffer.length = total
        return total

    # === ENCODE ===

    def encode(self, log: ModuleLog, record: LustreRecord) -> int:
        """
        Append ``record`` in the current layout.

        Raises:
            RecordInvariantError: If the OST ids don't match the stripe counts
        """
        record.check_invariant()

        normalizer = self.normalizer(log)
        parts = [record.base.encode(normalizer),
                 normalizer.pack('q', record.num_components)]
        parts.extend(comp.pack(normalizer) for comp in record.components)
        if record.ost_ids:
            parts.append(normalizer.pack(f'{len(record.ost_ids)}{OST_LAYOUT}',
                                         *record.ost_ids))
        data = b''.join(parts)
        return log.append(self.module_id, data, self.current_version)

    # === PRINT ===

    def print_record(
        self,
        record: LustreRecord,
        file_name: str = '',
        mnt_pt: str = '',
        fs_type: str = '',
    ) -> List[str]:
        base = record.base

        def line(counter, value):
            return format_counter(self.name, base.rank, base.id, counter, value,
                                  file_name, mnt_pt, fs_type)

        lines = [line('LUSTRE_NUM_COMPONENTS', record.num_components)]
        global_ost_idx = 0

        for i, comp in enumerate(record.components, start=1):
            for counter, value in zip(LUSTRE_COMP_COUNTERS, comp.counters):
                name = component_counter_name(counter, i)
                if counter == 'LUSTRE_COMP_STRIPE_PATTERN':
                    value = stripe_pattern_label(value)
                elif counter == 'LUSTRE_COMP_FLAGS':
                    value = component_flags_label(value)
                lines.append(line(name, value))

            pool = _pool_bytes(comp.pool_name).decode('utf-8', errors='replace')
            lines.append(line(f'LUSTRE_COMP{i}_POOL_NAME', pool or 'N/A'))

            for j in range(comp.stripe_count):
                # Tolerate records built by hand that are short on OST ids
                if global_ost_idx < len(record.ost_ids):
                    ost_id = record.ost_ids[global_ost_idx]
                else:
                    ost_id = 'N/A'
                lines.append(line(f'LUSTRE_COMP{i}_OST_ID_{j}', ost_id))
                global_ost_idx += 1

        return lines

    def print_description(self, version: Optional[int] = None) -> List[str]:
        return [
            '',
            '# description of LUSTRE counters:',
            '#   LUSTRE_OSTS: number of OSTs across the entire file system.',
            '#   LUSTRE_MDTS: number of MDTs across the entire file system.',
            '#   LUSTRE_STRIPE_OFFSET: OST ID offset specified when the file was created.',
            '#   LUSTRE_STRIPE_SIZE: stripe size for file in bytes.',
            '#   LUSTRE_STRIPE_COUNT: number of OSTs over which the file is striped.',
            '#   LUSTRE_OST_ID_*: indices of OSTs over which the file is striped.',
        ]

    # === DIFF / AGGREGATE ===
    # Placeholders. Per-component positional diff and identity-checking
    # aggregation are pending a decision on the intended semantics.

    def print_diff(
        self,
        rec1: Optional[LustreRecord],
        file_name1: str,
        rec2: Optional[LustreRecord],
        file_name2: str,
    ) -> List[str]:
        """Placeholder: LUSTRE records are not diffed yet, always no lines."""
        logger.debug("LUSTRE record diff not implemented; skipping")
        return []

    def aggregate(self, record: LustreRecord, agg: Optional[LustreRecord]) -> LustreRecord:
        """Placeholder: keeps the first record seen as the aggregate."""
        if agg is None:
            return record
        return agg


# Verify struct sizes at module load
assert _HOST.struct(HEADER_LAYOUT).size == HEADER_SIZE, "LUSTRE header size mismatch"
assert _HOST.struct(COMPONENT_LAYOUT).size == COMPONENT_SIZE, "LUSTRE component size mismatch"
assert _HOST.struct(LEGACY_LAYOUT).size == LEGACY_SIZE, "LUSTRE v1 header size mismatch"

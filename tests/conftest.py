"""Pytest fixtures shared by the codec tests."""

import struct
import sys

import pytest

from iotrace.formats import BaseRecord, MemoryModuleLog, HOST_BYTE_ORDER, opposite
from iotrace.modules.lustre import LustreComponent, LustreRecord
from iotrace.modules.stdio import StdioRecord


# struct prefix for data written by a machine of the other byte order
OTHER_PREFIX = '>' if sys.byteorder == 'little' else '<'


def legacy_lustre_bytes(rec_id, rank, stripe_size, ost_ids, prefix='='):
    """Build a version 1 LUSTRE record: 7 words then the OST ids."""
    data = struct.pack(prefix + 'Qq5q', rec_id, rank, 0, 0, 0,
                       stripe_size, len(ost_ids))
    if ost_ids:
        data += struct.pack(f'{prefix}{len(ost_ids)}q', *ost_ids)
    return data


def parse_lines(lines):
    """Map counter name -> printed value for tab-separated counter lines."""
    values = {}
    for line in lines:
        cols = line.split('\t')
        values[cols[3]] = cols[4]
    return values


@pytest.fixture
def native_log():
    return MemoryModuleLog()


@pytest.fixture
def swapped_log():
    return MemoryModuleLog(byte_order=opposite(HOST_BYTE_ORDER))


@pytest.fixture
def two_component_record():
    """Two components: 2 stripes in pool_a, then 1 stripe with no pool."""
    return LustreRecord(
        base=BaseRecord(id=0xDEADBEEFCAFE, rank=0),
        components=(
            LustreComponent(
                stripe_size=1048576, stripe_count=2, stripe_pattern=0,
                flags=0, ext_start=0, ext_end=134217728, mirror_id=0,
                pool_name='pool_a',
            ),
            LustreComponent(
                stripe_size=4194304, stripe_count=1, stripe_pattern=4,
                flags=0b10001, ext_start=134217728, ext_end=-1, mirror_id=0,
                pool_name='',
            ),
        ),
        ost_ids=(10, 11, 20),
    )


@pytest.fixture
def stdio_record():
    return StdioRecord.from_counters(
        42, rank=3,
        STDIO_OPENS=1,
        STDIO_WRITES=4,
        STDIO_BYTES_WRITTEN=4096,
        STDIO_MAX_BYTE_WRITTEN=4095,
        STDIO_F_META_TIME=0.5,
        STDIO_F_WRITE_TIME=0.25,
        STDIO_F_OPEN_START_TIMESTAMP=1.0,
        STDIO_F_OPEN_END_TIMESTAMP=1.125,
    )

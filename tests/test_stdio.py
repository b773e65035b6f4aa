"""
Tests for the STDIO fixed-size record codec.

These tests verify:
1. Struct layout is exactly 248 bytes
2. Round trip in native and swapped byte order
3. End of data vs truncated records
4. Printing, diffing and aggregation of counters
"""

import struct

import pytest

from conftest import OTHER_PREFIX, parse_lines

from iotrace.core.errors import TruncatedRecord, UnsupportedVersion
from iotrace.formats import AGGREGATE_RANK, MemoryModuleLog, ModuleId
from iotrace.modules.stdio import (
    STDIO_COUNTERS,
    STDIO_F_COUNTERS,
    STDIO_LAYOUT,
    STDIO_SIZE,
    StdioModule,
    StdioRecord,
)


STDIO = ModuleId.STDIO


class TestLayout:
    """Record layout and counter tables."""

    def test_record_size(self):
        assert STDIO_SIZE == 248
        assert struct.calcsize('<' + STDIO_LAYOUT) == STDIO_SIZE
        assert StdioModule().record_size() == STDIO_SIZE

    def test_counter_tables(self):
        assert len(STDIO_COUNTERS) == 14
        assert len(STDIO_F_COUNTERS) == 15
        assert STDIO_COUNTERS[1] == 'STDIO_FDOPENS'

    def test_wrong_counter_count_rejected(self, stdio_record):
        with pytest.raises(ValueError, match="counters"):
            StdioRecord(stdio_record.base, counters=(0,) * 3)

    def test_unknown_counter_name(self):
        with pytest.raises(ValueError, match="Unknown STDIO counter"):
            StdioRecord.from_counters(1, STDIO_BOGUS=1)


class TestRoundTrip:
    """Encode then decode in either byte order."""

    def test_native(self, native_log, stdio_record):
        codec = StdioModule()
        assert codec.encode(native_log, stdio_record) == STDIO_SIZE
        assert native_log.version(STDIO) == 2

        assert codec.decode(native_log) == stdio_record
        assert codec.decode(native_log) is None

    def test_swapped(self, swapped_log, stdio_record):
        codec = StdioModule()
        codec.encode(swapped_log, stdio_record)

        raw = swapped_log.region(STDIO)
        fields = struct.unpack(OTHER_PREFIX + STDIO_LAYOUT, raw)
        assert fields[0] == 42
        assert fields[1] == 3

        assert codec.decode(swapped_log) == stdio_record

    def test_many_records(self, native_log):
        codec = StdioModule()
        records = [StdioRecord.from_counters(i, rank=i, STDIO_READS=i * 10) for i in range(5)]
        for record in records:
            codec.encode(native_log, record)

        assert list(codec.iter_records(native_log)) == records


class TestDecodeErrors:
    """End of data, truncation and version checks."""

    def test_unmapped_is_end_of_data(self):
        assert StdioModule().decode(MemoryModuleLog()) is None

    def test_short_read_is_truncated(self, native_log, stdio_record):
        StdioModule().encode(native_log, stdio_record)
        data = native_log.region(STDIO)

        log = MemoryModuleLog()
        log.set_region(STDIO, data + data[:100], 2)
        codec = StdioModule()
        assert codec.decode(log) == stdio_record
        with pytest.raises(TruncatedRecord):
            codec.decode(log)

    @pytest.mark.parametrize("version", [0, 3])
    def test_unsupported_version(self, version):
        log = MemoryModuleLog()
        log.set_region(STDIO, b'\x00' * STDIO_SIZE, version)
        with pytest.raises(UnsupportedVersion):
            StdioModule().decode(log)

    def test_version_one_accepted(self):
        log = MemoryModuleLog()
        log.set_region(STDIO, b'\x00' * STDIO_SIZE, 1)
        record = StdioModule().decode(log)
        assert record.base.id == 0


class TestPrint:
    """Counter lines and description text."""

    def test_print_record(self, stdio_record):
        lines = StdioModule().print_record(stdio_record, 'out.txt', '/home', 'ext4')

        assert len(lines) == 14 + 15
        assert lines[0] == 'STDIO\t3\t42\tSTDIO_OPENS\t1\tout.txt\t/home\text4'

        values = parse_lines(lines)
        assert values['STDIO_BYTES_WRITTEN'] == '4096'
        assert values['STDIO_F_META_TIME'] == '0.500000'
        assert values['STDIO_F_OPEN_END_TIMESTAMP'] == '1.125000'

    def test_description(self):
        lines = StdioModule().print_description()
        assert lines[1] == '# description of STDIO counters:'
        assert lines[-1] == (
            '#<module>\t<rank>\t<record id>\t<counter>\t<value>'
            '\t<file name>\t<mount pt>\t<fs type>'
        )


class TestDiff:
    """Counter-by-counter record comparison."""

    def test_identical_records(self, stdio_record):
        assert StdioModule().print_diff(stdio_record, 'a', stdio_record, 'b') == []

    def test_removed_record(self, stdio_record):
        lines = StdioModule().print_diff(stdio_record, 'a', None, 'b')
        assert len(lines) == 29
        assert all(line.startswith('- ') for line in lines)

    def test_added_record(self, stdio_record):
        lines = StdioModule().print_diff(None, 'a', stdio_record, 'b')
        assert len(lines) == 29
        assert all(line.startswith('+ ') for line in lines)
        assert lines[0].split('\t')[5] == 'b'

    def test_changed_counters(self, stdio_record):
        changed = StdioRecord.from_counters(
            42, rank=3,
            STDIO_OPENS=2,
            STDIO_WRITES=4,
            STDIO_BYTES_WRITTEN=4096,
            STDIO_MAX_BYTE_WRITTEN=4095,
            STDIO_F_META_TIME=0.75,
            STDIO_F_WRITE_TIME=0.25,
            STDIO_F_OPEN_START_TIMESTAMP=1.0,
            STDIO_F_OPEN_END_TIMESTAMP=1.125,
        )
        lines = StdioModule().print_diff(stdio_record, 'a', changed, 'b')

        assert lines == [
            '- STDIO\t3\t42\tSTDIO_OPENS\t1\ta\t\t',
            '+ STDIO\t3\t42\tSTDIO_OPENS\t2\tb\t\t',
            '- STDIO\t3\t42\tSTDIO_F_META_TIME\t0.500000\ta\t\t',
            '+ STDIO\t3\t42\tSTDIO_F_META_TIME\t0.750000\tb\t\t',
        ]


class TestAggregate:
    """Folding per-rank records into a shared-file record."""

    def _ranks(self):
        r0 = StdioRecord.from_counters(
            7, rank=0,
            STDIO_OPENS=1, STDIO_BYTES_READ=100, STDIO_MAX_BYTE_READ=99,
            STDIO_F_META_TIME=1.0, STDIO_F_READ_TIME=2.0,
            STDIO_F_OPEN_START_TIMESTAMP=5.0, STDIO_F_OPEN_END_TIMESTAMP=6.0,
        )
        r1 = StdioRecord.from_counters(
            7, rank=1,
            STDIO_OPENS=2, STDIO_BYTES_READ=50, STDIO_MAX_BYTE_READ=49,
            STDIO_F_META_TIME=0.5,
            STDIO_F_OPEN_START_TIMESTAMP=3.0, STDIO_F_OPEN_END_TIMESTAMP=9.0,
        )
        return r0, r1

    def test_sums_and_extremes(self):
        codec = StdioModule()
        r0, r1 = self._ranks()

        agg = codec.aggregate(r1, codec.aggregate(r0, None))

        assert agg.base.id == 7
        assert agg.base.rank == AGGREGATE_RANK
        assert agg.counter('STDIO_OPENS') == 3
        assert agg.counter('STDIO_BYTES_READ') == 150
        assert agg.counter('STDIO_MAX_BYTE_READ') == 99
        assert agg.fcounter('STDIO_F_META_TIME') == 1.5
        assert agg.fcounter('STDIO_F_READ_TIME') == 2.0
        assert agg.fcounter('STDIO_F_OPEN_START_TIMESTAMP') == 3.0
        assert agg.fcounter('STDIO_F_OPEN_END_TIMESTAMP') == 9.0

    def test_fastest_and_slowest(self):
        codec = StdioModule()
        r0, r1 = self._ranks()

        agg = codec.aggregate(r1, codec.aggregate(r0, None))

        assert agg.counter('STDIO_FASTEST_RANK') == 1
        assert agg.counter('STDIO_FASTEST_RANK_BYTES') == 50
        assert agg.fcounter('STDIO_F_FASTEST_RANK_TIME') == 0.5
        assert agg.counter('STDIO_SLOWEST_RANK') == 0
        assert agg.counter('STDIO_SLOWEST_RANK_BYTES') == 100
        assert agg.fcounter('STDIO_F_SLOWEST_RANK_TIME') == 3.0

    def test_zero_start_timestamp_ignored(self):
        codec = StdioModule()
        r0, _ = self._ranks()
        idle = StdioRecord.from_counters(7, rank=2)

        agg = codec.aggregate(idle, codec.aggregate(r0, None))
        assert agg.fcounter('STDIO_F_OPEN_START_TIMESTAMP') == 5.0

    def test_inputs_unchanged(self):
        codec = StdioModule()
        r0, r1 = self._ranks()
        first = codec.aggregate(r0, None)
        codec.aggregate(r1, first)
        assert first.counter('STDIO_OPENS') == 1

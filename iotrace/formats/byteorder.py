"""
Byte-order normalization for log records.

Records are written in the byte order of the machine that produced the log.
When that order differs from the host's, every multi-byte integer and float
field is swapped independently; fixed-size byte strings are left alone.

Rather than swapping words after the fact, fields are unpacked through a
struct whose byte-order prefix matches the log. Layouts are plain struct
format strings without a prefix (e.g. 'qq' or '7q16s').
"""

import struct
import sys
from functools import lru_cache


HOST_BYTE_ORDER = sys.byteorder

_PREFIX = {
    'little': '<',
    'big': '>',
}


def opposite(order: str) -> str:
    """Return the other byte order name."""
    return 'big' if order == 'little' else 'little'


def needs_swap(log_order: str) -> bool:
    """True when a log declared in ``log_order`` must be swapped on this host."""
    if log_order not in _PREFIX:
        raise ValueError(f"Invalid byte order: {log_order!r}")
    return log_order != HOST_BYTE_ORDER


@lru_cache(maxsize=None)
def layout_struct(layout: str, order: str) -> struct.Struct:
    """Compiled struct for ``layout`` in the given byte order."""
    return struct.Struct(_PREFIX[order] + layout)


def swap_block(data: bytes, layout: str) -> bytes:
    """
    Byte-swap every multi-byte field of a block laid out as ``layout``.

    ``data`` may hold several consecutive copies of the layout. Swapping
    twice returns the original bytes.
    """
    src = layout_struct(layout, 'little')
    dst = layout_struct(layout, 'big')
    if len(data) % src.size:
        raise ValueError(
            f"Block of {len(data)} bytes is not a multiple of {src.size}"
        )
    return b''.join(
        dst.pack(*fields) for fields in src.iter_unpack(data)
    )


class Normalizer:
    """
    Packs and unpacks record fields in a log's byte order.

    Args:
        swap: True when the log's byte order differs from the host's
    """

    def __init__(self, swap: bool = False):
        self.swap = swap
        self.order = opposite(HOST_BYTE_ORDER) if swap else HOST_BYTE_ORDER

    def struct(self, layout: str) -> struct.Struct:
        return layout_struct(layout, self.order)

    def unpack(self, layout: str, data: bytes, offset: int = 0) -> tuple:
        return self.struct(layout).unpack_from(data, offset)

    def pack(self, layout: str, *values) -> bytes:
        return self.struct(layout).pack(*values)

    def __repr__(self) -> str:
        return f"Normalizer(order={self.order!r}, swap={self.swap})"

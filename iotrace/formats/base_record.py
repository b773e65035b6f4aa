"""
Base record shared by every module record kind.

Layout (16 bytes):
    Bytes 0-7:   id    (u64) Record identifier (hash of the file name)
    Bytes 8-15:  rank  (i64) Producing rank, -1 when aggregated
"""

from dataclasses import dataclass

from .byteorder import Normalizer


# Rank value for records aggregated across all ranks (shared files)
AGGREGATE_RANK = -1

BASE_LAYOUT = 'Qq'
BASE_SIZE = 16


@dataclass(frozen=True)
class BaseRecord:
    """Identity pair carried at the front of every record."""

    id: int
    rank: int = 0

    @property
    def is_aggregate(self) -> bool:
        return self.rank == AGGREGATE_RANK

    def encode(self, normalizer: Normalizer) -> bytes:
        return normalizer.pack(BASE_LAYOUT, self.id, self.rank)

    @classmethod
    def decode(cls, normalizer: Normalizer, data: bytes, offset: int = 0) -> 'BaseRecord':
        rec_id, rank = normalizer.unpack(BASE_LAYOUT, data, offset)
        return cls(id=rec_id, rank=rank)


assert Normalizer().struct(BASE_LAYOUT).size == BASE_SIZE, \
    "BaseRecord layout size mismatch"

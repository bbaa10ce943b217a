#!/usr/bin/env python3

# Copyright (c) 2026 Stephen P Smith
# MIT License

"""
FAT12 Allocation Table
Packed 12-bit FAT codec and cluster chain operations
"""

import logging
from typing import List, Optional

from .errors import BrokenChainError, CorruptImageError, FAT12CorruptionError
from .layout import ImageLayout

logger = logging.getLogger(__name__)

FAT_FREE = 0x000
FAT_RESERVED = 0x001
FAT_BAD = 0xFF7
FAT_EOC_MIN = 0xFF8
FAT_EOC = 0xFFF  # written when terminating a chain


class AllocationTable:
    """In-memory FAT: one 12-bit value per cluster index"""

    # Cluster status constants
    CLUSTER_FREE = 'FREE'
    CLUSTER_RESERVED = 'RESERVED'
    CLUSTER_BAD = 'BAD'
    CLUSTER_EOF = 'EOF'
    CLUSTER_USED = 'USED'

    def __init__(self, layout: ImageLayout, entries: Optional[List[int]] = None):
        self.layout = layout
        if entries is None:
            entries = [FAT_FREE] * layout.entry_count
        elif len(entries) != layout.entry_count:
            raise ValueError(f"Expected {layout.entry_count} FAT entries, got {len(entries)}")
        self.entries = list(entries)

    def __eq__(self, other):
        if not isinstance(other, AllocationTable):
            return NotImplemented
        return self.layout == other.layout and self.entries == other.entries

    def __len__(self):
        return len(self.entries)

    @classmethod
    def blank(cls, layout: ImageLayout) -> 'AllocationTable':
        """Freshly formatted table: media descriptor in entry 0, end marker in entry 1"""
        table = cls(layout)
        table.entries[0] = 0xF00 | layout.media_descriptor
        table.entries[1] = FAT_EOC
        return table

    @classmethod
    def decode(cls, raw: bytes, layout: ImageLayout) -> 'AllocationTable':
        """
        Unpack a raw FAT region.

        Every 3 bytes hold two entries: the low byte of A, then A's high
        nibble in the low half and B's low nibble in the high half, then the
        high byte of B.

        Args:
            raw: Bytes read from the FAT region.
            layout: Image layout describing the region size.

        Returns:
            The decoded AllocationTable.

        Raises:
            CorruptImageError: If the data is shorter than the region or not
                a whole number of 3-byte groups.
        """
        if len(raw) % 3 or len(raw) < layout.fat_bytes:
            logger.critical(f"Invalid FAT region length: {len(raw)} bytes (expected {layout.fat_bytes})")
            raise CorruptImageError(
                f"FAT region is {len(raw)} bytes, expected a multiple of 3 of at least {layout.fat_bytes}"
            )

        entries = []
        for offset in range(0, layout.fat_bytes, 3):
            b0, b1, b2 = raw[offset], raw[offset + 1], raw[offset + 2]
            entries.append(b0 | ((b1 & 0x0F) << 8))
            entries.append((b1 >> 4) | (b2 << 4))
        return cls(layout, entries)

    def encode(self) -> bytes:
        """Pack the table back into exactly ``layout.fat_bytes`` bytes"""
        raw = bytearray(self.layout.fat_bytes)
        for index in range(0, len(self.entries), 2):
            a = self.entries[index]
            b = self.entries[index + 1]
            offset = index // 2 * 3
            raw[offset] = a & 0xFF
            raw[offset + 1] = ((a >> 8) & 0x0F) | ((b & 0x0F) << 4)
            raw[offset + 2] = (b >> 4) & 0xFF
        return bytes(raw)

    def classify(self, value: int) -> str:
        """
        Classify a FAT12 cluster value.

        Returns:
            One of the CLUSTER_* constants (FREE, RESERVED, BAD, EOF, USED).
        """
        if value == FAT_FREE:
            return self.CLUSTER_FREE
        elif value == FAT_RESERVED:
            return self.CLUSTER_RESERVED
        elif value == FAT_BAD:
            return self.CLUSTER_BAD
        elif value >= FAT_EOC_MIN:
            return self.CLUSTER_EOF
        else:
            return self.CLUSTER_USED

    @staticmethod
    def is_end_of_chain(value: int) -> bool:
        return value >= FAT_EOC_MIN

    def is_link(self, value: int) -> bool:
        """True if ``value`` names a cluster that can be part of a chain"""
        return self.layout.first_data_cluster <= value <= self.layout.max_cluster

    def _allocatable(self):
        return range(self.layout.first_data_cluster, self.layout.max_cluster + 1)

    def get_next(self, cluster: int) -> int:
        if not 0 <= cluster < len(self.entries):
            raise IndexError(f"Cluster {cluster} is outside the FAT")
        return self.entries[cluster]

    def set_next(self, cluster: int, value: int):
        if not 0 <= cluster < len(self.entries):
            raise IndexError(f"Cluster {cluster} is outside the FAT")
        if not 0 <= value <= 0xFFF:
            raise ValueError(f"FAT12 entry value out of range: {value:#x}")
        self.entries[cluster] = value

    def free_count(self) -> int:
        """Number of allocatable clusters currently free"""
        return sum(1 for cluster in self._allocatable() if self.entries[cluster] == FAT_FREE)

    def has_free_entries(self, count: int) -> Optional[int]:
        """
        Check that at least ``count`` free clusters exist anywhere on disk.

        The free clusters do not have to be adjacent.

        Returns:
            The first free cluster (a starting hint for allocation), or None
            if there are not enough free clusters.
        """
        first_free = None
        found = 0
        for cluster in self._allocatable():
            if self.entries[cluster] != FAT_FREE:
                continue
            if first_free is None:
                first_free = cluster
            found += 1
            if found >= count:
                return first_free
        return None

    def find_free_from(self, start: int) -> Optional[int]:
        """First free cluster at or after ``start``; never wraps around"""
        for cluster in range(max(start, self.layout.first_data_cluster), self.layout.max_cluster + 1):
            if self.entries[cluster] == FAT_FREE:
                return cluster
        return None

    def free_chain(self, start_cluster: int, size_bytes: int):
        """
        Release the chain owned by a file of ``size_bytes`` bytes.

        Walks exactly ceil(size / cluster_bytes) clusters, zeroing each entry.
        Only the in-memory table changes; nothing is written to disk.

        Raises:
            BrokenChainError: If the chain ends (or points somewhere invalid)
                before the expected number of clusters was visited.
        """
        steps = self.layout.clusters_needed(size_bytes)
        if steps == 0:
            return
        if not self.is_link(start_cluster):
            logger.critical(f"File of {size_bytes} bytes has invalid start cluster {start_cluster}")
            raise BrokenChainError(start_cluster, start_cluster, 0, steps)

        current = start_cluster
        for step in range(steps):
            next_cluster = self.get_next(current)
            self.entries[current] = FAT_FREE

            if step == steps - 1:
                if not self.is_end_of_chain(next_cluster):
                    logger.warning(
                        f"Chain from cluster {start_cluster} continues past its recorded size "
                        f"(cluster {current} -> {next_cluster:#x}, {self.classify(next_cluster)})"
                    )
                break

            if not self.is_link(next_cluster):
                logger.critical(
                    f"Broken chain from cluster {start_cluster}: cluster {current} holds "
                    f"{next_cluster:#x} ({self.classify(next_cluster)}) at step {step + 1} of {steps}"
                )
                raise BrokenChainError(start_cluster, current, step, steps)
            current = next_cluster

        logger.debug(f"Freed {steps} cluster(s) starting at {start_cluster}")

    def chain(self, start_cluster: int, limit: Optional[int] = None) -> List[int]:
        """
        Follow a chain from its first cluster.

        Args:
            start_cluster: First cluster of the chain.
            limit: Stop after this many clusters (None for no limit).

        Returns:
            The clusters visited, in order.

        Raises:
            FAT12CorruptionError: If the chain loops back on itself.
        """
        chain = []
        visited = set()
        current = start_cluster
        while self.is_link(current):
            if limit is not None and len(chain) >= limit:
                break
            if current in visited:
                raise FAT12CorruptionError(f"Loop detected in cluster chain at {current}")
            visited.add(current)
            chain.append(current)
            current = self.entries[current]
        return chain
